"""Baseline migration - registry tables

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Creates case records (chalanis, dartas), their audit trail, the counter
store, number allocations and the idempotency index. Column types are kept
portable so the same revision runs on PostgreSQL and SQLite.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
TIMESTAMP = sa.DateTime(timezone=True)


def _case_record_columns() -> list[sa.Column]:
    return [
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('scope', sa.String(20), nullable=False),
        sa.Column('ward_id', sa.String(50), nullable=True),
        sa.Column('fiscal_year', sa.String(20), nullable=False),
        sa.Column('status', sa.String(40), nullable=False),
        sa.Column('subject', sa.String(500), nullable=False),
        sa.Column('number', sa.Integer(), nullable=True),
        sa.Column('formatted_number', sa.String(100), nullable=True),
        sa.Column('allocation_id', sa.Uuid(), nullable=True),
        sa.Column('supersedes_id', sa.Uuid(), nullable=True),
        sa.Column('superseded_by_id', sa.Uuid(), nullable=True),
        sa.Column('created_by', sa.String(255), nullable=False),
        sa.Column('created_at', TIMESTAMP, server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', TIMESTAMP, server_default=sa.func.now(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
    ]


def upgrade() -> None:
    """Create registry tables."""

    # ==========================================================================
    # Chalani (outgoing)
    # ==========================================================================
    op.create_table(
        'chalanis',
        *_case_record_columns(),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('template_id', sa.String(100), nullable=True),
        sa.Column('linked_darta_id', sa.Uuid(), nullable=True),
        sa.Column('recipient', JSON, nullable=False),
        sa.Column('required_signatory_ids', JSON, nullable=False),
        sa.Column('attachment_ids', JSON, nullable=False),
        sa.Column('dispatch_channel', sa.String(30), nullable=True),
        sa.Column('tracking_id', sa.String(100), nullable=True),
        sa.Column('courier_name', sa.String(255), nullable=True),
        sa.Column('scheduled_dispatch_at', TIMESTAMP, nullable=True),
        sa.Column('dispatched_at', TIMESTAMP, nullable=True),
        sa.Column('acknowledged_at', TIMESTAMP, nullable=True),
        sa.Column('acknowledged_by', sa.String(255), nullable=True),
        sa.Column('delivered_at', TIMESTAMP, nullable=True),
        sa.Column('signed_at', TIMESTAMP, nullable=True),
        sa.Column('sealed_at', TIMESTAMP, nullable=True),
    )
    op.create_index('idx_chalanis_status', 'chalanis', ['status'])
    op.create_index('idx_chalanis_number', 'chalanis', ['fiscal_year', 'scope', 'ward_id', 'number'])

    # ==========================================================================
    # Darta (incoming)
    # ==========================================================================
    op.create_table(
        'dartas',
        *_case_record_columns(),
        sa.Column('applicant', JSON, nullable=False),
        sa.Column('intake_channel', sa.String(30), nullable=False),
        sa.Column('primary_document_id', sa.String(100), nullable=False),
        sa.Column('annex_ids', JSON, nullable=False),
        sa.Column('priority', sa.String(20), nullable=False),
        sa.Column('received_date', TIMESTAMP, nullable=False),
        sa.Column('organizational_unit_id', sa.String(100), nullable=True),
        sa.Column('assignee_id', sa.String(255), nullable=True),
        sa.Column('sla_deadline', TIMESTAMP, nullable=True),
        sa.Column('classification_code', sa.String(100), nullable=True),
    )
    op.create_index('idx_dartas_status', 'dartas', ['status'])
    op.create_index('idx_dartas_number', 'dartas', ['fiscal_year', 'scope', 'ward_id', 'number'])
    op.create_index('idx_dartas_assignee', 'dartas', ['assignee_id'])

    # ==========================================================================
    # Audit trail (insert-only)
    # ==========================================================================
    op.create_table(
        'case_audit_entries',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('entity_type', sa.String(20), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('from_status', sa.String(40), nullable=True),
        sa.Column('to_status', sa.String(40), nullable=False),
        sa.Column('actor', sa.String(255), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('details', JSON, nullable=False),
        sa.Column('timestamp', TIMESTAMP, server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('entity_type', 'entity_id', 'sequence', name='uq_case_audit_sequence'),
    )
    op.create_index('idx_case_audit_actor', 'case_audit_entries', ['actor'])

    # ==========================================================================
    # Counter store
    # ==========================================================================
    op.create_table(
        'number_counters',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('scope', sa.String(20), nullable=False),
        sa.Column('document_type', sa.String(20), nullable=False),
        sa.Column('fiscal_year', sa.String(20), nullable=False),
        sa.Column('ward_id', sa.String(50), nullable=True),
        sa.Column('ward_key', sa.String(50), nullable=False),
        sa.Column('current_value', sa.Integer(), nullable=False),
        sa.Column('last_issued_at', TIMESTAMP, nullable=True),
        sa.Column('is_locked', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('locked_by', sa.String(255), nullable=True),
        sa.Column('locked_reason', sa.Text(), nullable=True),
        sa.Column('locked_at', TIMESTAMP, nullable=True),
        sa.Column('closed_at', TIMESTAMP, nullable=True),
        sa.Column('created_at', TIMESTAMP, server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', TIMESTAMP, server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            'scope', 'document_type', 'fiscal_year', 'ward_key', name='uq_number_counter_key'
        ),
    )

    # ==========================================================================
    # Number allocations
    # ==========================================================================
    op.create_table(
        'number_allocations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'counter_id',
            sa.Uuid(),
            sa.ForeignKey('number_counters.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('scope', sa.String(20), nullable=False),
        sa.Column('document_type', sa.String(20), nullable=False),
        sa.Column('fiscal_year', sa.String(20), nullable=False),
        sa.Column('ward_id', sa.String(50), nullable=True),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('formatted_number', sa.String(100), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('idempotency_key', sa.String(255), nullable=False, unique=True),
        sa.Column('expires_at', TIMESTAMP, nullable=True),
        sa.Column('allocated_by', sa.String(255), nullable=False),
        sa.Column('allocated_at', TIMESTAMP, server_default=sa.func.now(), nullable=False),
        sa.Column('reserved_for_id', sa.Uuid(), nullable=True),
        sa.Column('reserved_for_type', sa.String(20), nullable=True),
        sa.Column('committed_entity_id', sa.Uuid(), nullable=True),
        sa.Column('committed_entity_type', sa.String(20), nullable=True),
        sa.Column('committed_at', TIMESTAMP, nullable=True),
        sa.Column('void_reason', sa.Text(), nullable=True),
        sa.Column('voided_at', TIMESTAMP, nullable=True),
        sa.Column('expired_at', TIMESTAMP, nullable=True),
    )
    op.create_index(
        'idx_number_allocations_status_expiry', 'number_allocations', ['status', 'expires_at']
    )
    op.create_index(
        'idx_number_allocations_reserved_for',
        'number_allocations',
        ['reserved_for_type', 'reserved_for_id'],
    )

    # ==========================================================================
    # Idempotency index
    # ==========================================================================
    op.create_table(
        'idempotency_records',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('kind', sa.String(80), nullable=False),
        sa.Column('key', sa.String(255), nullable=False),
        sa.Column('entity_type', sa.String(20), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('related_entity_id', sa.Uuid(), nullable=True),
        sa.Column('result', JSON, nullable=True),
        sa.Column('created_by', sa.String(255), nullable=False),
        sa.Column('created_at', TIMESTAMP, server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('kind', 'key', name='uq_idempotency_kind_key'),
    )


def downgrade() -> None:
    """Drop registry tables."""
    op.drop_table('idempotency_records')
    op.drop_index('idx_number_allocations_reserved_for', table_name='number_allocations')
    op.drop_index('idx_number_allocations_status_expiry', table_name='number_allocations')
    op.drop_table('number_allocations')
    op.drop_table('number_counters')
    op.drop_index('idx_case_audit_actor', table_name='case_audit_entries')
    op.drop_table('case_audit_entries')
    op.drop_index('idx_dartas_assignee', table_name='dartas')
    op.drop_index('idx_dartas_number', table_name='dartas')
    op.drop_index('idx_dartas_status', table_name='dartas')
    op.drop_table('dartas')
    op.drop_index('idx_chalanis_number', table_name='chalanis')
    op.drop_index('idx_chalanis_status', table_name='chalanis')
    op.drop_table('chalanis')
