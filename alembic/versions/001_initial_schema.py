"""Initial schema with all tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    request_status_enum = postgresql.ENUM(
        'awaiting', 'settled', 'partially_settled', 'expired', 'needs_review',
        name='requeststatus',
        create_type=False
    )
    request_status_enum.create(op.get_bind(), checkfirst=True)

    message_status_enum = postgresql.ENUM(
        'unprocessed', 'auto_matched', 'needs_review', 'manually_matched', 'dismissed',
        name='messagestatus',
        create_type=False
    )
    message_status_enum.create(op.get_bind(), checkfirst=True)

    match_type_enum = postgresql.ENUM(
        'auto', 'manual',
        name='matchtype',
        create_type=False
    )
    match_type_enum.create(op.get_bind(), checkfirst=True)

    # Create devices table
    op.create_table(
        'devices',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('device_uuid', sa.String(64), nullable=False, unique=True),
        sa.Column('shop_id', sa.String(36), nullable=False, index=True),
        sa.Column('device_name', sa.Text(), nullable=True),
        sa.Column('webhook_token_hash', sa.String(64), nullable=False),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.Column('last_seen_at', sa.DateTime(), nullable=True),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # Create payment_requests table
    op.create_table(
        'payment_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('shop_id', sa.String(36), nullable=False, index=True),
        sa.Column('invoice_no', sa.String(50), nullable=False, index=True),
        sa.Column('amount_minor', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', request_status_enum, server_default='awaiting', index=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('settled_at', sa.DateTime(), nullable=True),
    )

    # Create sms_messages table
    op.create_table(
        'sms_messages',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('device_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('devices.id', ondelete='SET NULL'), nullable=True),
        sa.Column('shop_id', sa.String(36), nullable=False, index=True),
        sa.Column('sender', sa.Text(), nullable=True),
        sa.Column('raw_text', sa.Text(), nullable=False),
        sa.Column('received_at', sa.DateTime(), nullable=False),
        sa.Column('raw_meta', postgresql.JSONB(), nullable=True),
        sa.Column('parsed_amount_minor', sa.Integer(), nullable=True),
        sa.Column('parsed_utr', sa.Text(), nullable=True),
        sa.Column('parsed_vpa', sa.Text(), nullable=True),
        sa.Column('status', message_status_enum, server_default='unprocessed', index=True),
        sa.Column('review_candidates', postgresql.JSONB(), nullable=True),
        sa.Column('matched_request_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('payment_requests.id', ondelete='SET NULL'), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    # Rate-limit lookups: recent messages per device
    op.create_index('ix_sms_messages_device_created', 'sms_messages', ['device_id', 'created_at'])

    # Create payments table
    op.create_table(
        'payments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('payment_request_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('payment_requests.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('transaction_id', sa.String(50), nullable=False, unique=True),
        sa.Column('amount_minor', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(20), server_default='upi'),
        sa.Column('verified_by', sa.String(100), nullable=True),
        sa.Column('verified_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # Create match_records table
    op.create_table(
        'match_records',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('payment_request_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('payment_requests.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('sms_message_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('sms_messages.id', ondelete='SET NULL'), nullable=True),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('match_type', match_type_enum, nullable=False),
        sa.Column('matched_by', sa.String(100), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('matched_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # Create audit_logs table
    op.create_table(
        'audit_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('actor', sa.String(100), nullable=True),
        sa.Column('action', sa.String(50), nullable=False, index=True),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(36), nullable=True, index=True),
        sa.Column('meta', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), index=True),
    )


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('match_records')
    op.drop_table('payments')
    op.drop_index('ix_sms_messages_device_created', table_name='sms_messages')
    op.drop_table('sms_messages')
    op.drop_table('payment_requests')
    op.drop_table('devices')

    op.execute('DROP TYPE IF EXISTS matchtype')
    op.execute('DROP TYPE IF EXISTS messagestatus')
    op.execute('DROP TYPE IF EXISTS requeststatus')
