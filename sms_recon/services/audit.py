from sqlalchemy.orm import Session

from sms_recon.models.audit_log import AuditLog


def log_audit(
    db: Session,
    action: str,
    entity_type: str,
    entity_id=None,
    actor: str | None = None,
    meta: dict | None = None,
) -> AuditLog:
    """
    Stage an audit entry in the current transaction.

    Not committed here: the entry lands together with the change it
    describes, or not at all.

    Args:
        db: Database session
        action: What happened (e.g. "manual_match", "dismiss")
        entity_type: Kind of entity acted on (e.g. "sms", "payment_request")
        entity_id: Id of that entity
        actor: Operator id, None for system actions
        meta: Extra JSON-serialisable details
    """
    entry = AuditLog(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=meta,
    )
    db.add(entry)
    return entry
