"""Create processed_events table for webhook idempotency markers.

Revision ID: 001_processed_events
Revises:
Create Date: 2026-10-18

One row per applied event, keyed by the SHA-256 fingerprint of
(source_system, event_type, external_item_id, new_value). Rows older than
the configured TTL are ignored by lookups.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_processed_events'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'processed_events',
        sa.Column('key', sa.String(64), primary_key=True),
        sa.Column('source_system', sa.String(32), nullable=False),
        sa.Column('event_type', sa.String(64), nullable=False),
        sa.Column('external_item_id', sa.String(255), nullable=False),
        sa.Column('new_value', sa.Text(), nullable=False),
        sa.Column(
            'applied_at', sa.DateTime(timezone=True),
            nullable=False, server_default=sa.func.now(),
        ),
    )
    op.create_index(
        'ix_processed_events_applied_at', 'processed_events', ['applied_at'],
    )


def downgrade() -> None:
    op.drop_index('ix_processed_events_applied_at', table_name='processed_events')
    op.drop_table('processed_events')
