"""add coach slots and bookings

Revision ID: 9c3d5e7f1a2b
Revises: 4b7e2c91d0a3
Create Date: 2026-09-16 14:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9c3d5e7f1a2b'
down_revision = '4b7e2c91d0a3'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'coach_slots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('coach_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column('is_booked', sa.Boolean(), nullable=False),
        sa.Column('booked_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['booked_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['coach_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('coach_id', 'date', 'start_time', 'end_time', name='uq_coach_slot_time')
    )
    with op.batch_alter_table('coach_slots', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_coach_slots_coach_id'), ['coach_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_coach_slots_date'), ['date'], unique=False)

    op.create_table(
        'coach_bookings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('coach_id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('slot_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column('rejection_reason', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['coach_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['player_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('coach_bookings', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_coach_bookings_slot_id'), ['slot_id'], unique=False)
        batch_op.create_index('ix_coach_bookings_coach_status', ['coach_id', 'status'], unique=False)
        batch_op.create_index('ix_coach_bookings_player_status', ['player_id', 'status'], unique=False)
        batch_op.create_index(
            'uq_coach_booking_live',
            ['slot_id', 'player_id'],
            unique=True,
            sqlite_where=sa.text("status != 'rejected'"),
            postgresql_where=sa.text("status != 'rejected'"),
        )


def downgrade():
    with op.batch_alter_table('coach_bookings', schema=None) as batch_op:
        batch_op.drop_index('uq_coach_booking_live')
        batch_op.drop_index('ix_coach_bookings_player_status')
        batch_op.drop_index('ix_coach_bookings_coach_status')
        batch_op.drop_index(batch_op.f('ix_coach_bookings_slot_id'))
    op.drop_table('coach_bookings')

    with op.batch_alter_table('coach_slots', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_coach_slots_date'))
        batch_op.drop_index(batch_op.f('ix_coach_slots_coach_id'))
    op.drop_table('coach_slots')
