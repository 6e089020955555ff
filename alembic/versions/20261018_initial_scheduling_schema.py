"""Initial scheduling schema

Revision ID: 3c7e1a52b9d4
Revises:
Create Date: 2026-10-18

Creates the tables used by the scheduling engine:
- staff_members: Professionals and their weekly schedule
- appointments / appointment_items: Bookings and their service line items
- time_blocks: Manual blocks and availability overrides
- system_settings: Global key/value configuration (booking lead time)
- staff_day_ledgers: Per professional and date version counters for conditional writes
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c7e1a52b9d4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list:
    return [
        sa.Column('id', sa.CHAR(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table('staff_members',
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('location_id', sa.String(length=100), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('weekly_schedule', sa.JSON(), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('staff_members', schema=None) as batch_op:
        batch_op.create_index('idx_staff_deleted', ['deleted_at'], unique=False)
        batch_op.create_index('idx_staff_location', ['location_id'], unique=False)

    op.create_table('appointments',
        sa.Column('staff_id', sa.CHAR(length=32), nullable=False),
        sa.Column('date', sa.String(length=10), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('client_name', sa.String(length=200), nullable=True),
        sa.Column('client_phone', sa.String(length=50), nullable=True),
        sa.Column('location_id', sa.String(length=100), nullable=True),
        sa.Column('origin', sa.String(length=50), nullable=False),
        sa.Column('total', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['staff_id'], ['staff_members.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('appointments', schema=None) as batch_op:
        batch_op.create_index('idx_appointment_date', ['date'], unique=False)
        batch_op.create_index('idx_appointment_deleted', ['deleted_at'], unique=False)
        batch_op.create_index('idx_appointment_staff_date', ['staff_id', 'date'], unique=False)
        batch_op.create_index('idx_appointment_status', ['status'], unique=False)

    op.create_table('appointment_items',
        sa.Column('appointment_id', sa.CHAR(length=32), nullable=False),
        sa.Column('staff_id', sa.CHAR(length=32), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('service_name', sa.String(length=200), nullable=False),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ),
        sa.ForeignKeyConstraint(['staff_id'], ['staff_members.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('appointment_items', schema=None) as batch_op:
        batch_op.create_index('idx_item_appointment', ['appointment_id'], unique=False)
        batch_op.create_index('idx_item_staff', ['staff_id'], unique=False)

    op.create_table('time_blocks',
        sa.Column('staff_id', sa.CHAR(length=32), nullable=False),
        sa.Column('date', sa.String(length=10), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('location_id', sa.String(length=100), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['staff_id'], ['staff_members.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('time_blocks', schema=None) as batch_op:
        batch_op.create_index('idx_block_date', ['date'], unique=False)
        batch_op.create_index('idx_block_deleted', ['deleted_at'], unique=False)
        batch_op.create_index('idx_block_staff_date', ['staff_id', 'date'], unique=False)

    op.create_table('system_settings',
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.JSON(), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key')
    )

    op.create_table('staff_day_ledgers',
        sa.Column('staff_id', sa.CHAR(length=32), nullable=False),
        sa.Column('date', sa.String(length=10), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['staff_id'], ['staff_members.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('staff_id', 'date', name='uq_staff_day_ledger')
    )


def downgrade() -> None:
    op.drop_table('staff_day_ledgers')
    op.drop_table('system_settings')

    with op.batch_alter_table('time_blocks', schema=None) as batch_op:
        batch_op.drop_index('idx_block_staff_date')
        batch_op.drop_index('idx_block_deleted')
        batch_op.drop_index('idx_block_date')
    op.drop_table('time_blocks')

    with op.batch_alter_table('appointment_items', schema=None) as batch_op:
        batch_op.drop_index('idx_item_staff')
        batch_op.drop_index('idx_item_appointment')
    op.drop_table('appointment_items')

    with op.batch_alter_table('appointments', schema=None) as batch_op:
        batch_op.drop_index('idx_appointment_status')
        batch_op.drop_index('idx_appointment_staff_date')
        batch_op.drop_index('idx_appointment_deleted')
        batch_op.drop_index('idx_appointment_date')
    op.drop_table('appointments')

    with op.batch_alter_table('staff_members', schema=None) as batch_op:
        batch_op.drop_index('idx_staff_location')
        batch_op.drop_index('idx_staff_deleted')
    op.drop_table('staff_members')
