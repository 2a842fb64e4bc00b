"""create availability_slots and availability_exceptions

Revision ID: 0001_availability
Revises:
Create Date: 2026-10-16 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_availability'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'availability_slots',
        sa.Column('slot_id', sa.Uuid(), primary_key=True),
        sa.Column('day_of_week', sa.SmallInteger(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('session_type', sa.Enum('vod-review', 'live-coaching', name='session_type'), nullable=False),
        sa.Column('slot_duration', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_availability_slots_day_of_week', 'availability_slots', ['day_of_week'])

    op.create_table(
        'availability_exceptions',
        sa.Column('exception_id', sa.Uuid(), primary_key=True),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ends_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reason', sa.Enum('blocked', 'holiday', 'booked', name='exception_reason'), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column(
            'slot_id',
            sa.Uuid(),
            sa.ForeignKey('availability_slots.slot_id', ondelete='CASCADE'),
            nullable=True,
        ),
        sa.Column('booking_ref', sa.String(64), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_availability_exceptions_starts_at', 'availability_exceptions', ['starts_at'])
    op.create_index('ix_availability_exceptions_slot_id', 'availability_exceptions', ['slot_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_availability_exceptions_slot_id', table_name='availability_exceptions')
    op.drop_index('ix_availability_exceptions_starts_at', table_name='availability_exceptions')
    op.drop_table('availability_exceptions')
    op.drop_index('ix_availability_slots_day_of_week', table_name='availability_slots')
    op.drop_table('availability_slots')
    sa.Enum(name='exception_reason').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='session_type').drop(op.get_bind(), checkfirst=True)
