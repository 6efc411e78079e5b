from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator

from sms_recon.config import get_settings

settings = get_settings()

# SQLite doesn't support pool_size/max_overflow
if settings.database_url.startswith("sqlite"):
    sqlite_options = {
        "connect_args": {
            "check_same_thread": False,
            "timeout": settings.persistence_timeout_ms / 1000,
        },
    }
    # In-memory databases live and die with their single connection
    if settings.database_url in ("sqlite://", "sqlite:///:memory:"):
        sqlite_options["poolclass"] = StaticPool
    engine = create_engine(settings.database_url, **sqlite_options)

    # Enable foreign keys for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
else:
    engine = create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=max(1, settings.persistence_timeout_ms // 1000),
        connect_args={
            "options": f"-c statement_timeout={settings.persistence_timeout_ms}",
        },
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting database sessions."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
