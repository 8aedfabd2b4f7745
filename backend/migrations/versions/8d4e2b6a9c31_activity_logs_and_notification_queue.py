"""activity logs and notification queue

Revision ID: 8d4e2b6a9c31
Revises: 3f1c9a7b2e10
Create Date: 2026-09-09 14:40:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision = '8d4e2b6a9c31'
down_revision = '3f1c9a7b2e10'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = inspect(bind)

    def _table_exists(table_name: str) -> bool:
        try:
            return insp.has_table(table_name)
        except Exception:
            return False

    if not _table_exists("activity_logs"):
        op.create_table(
            'activity_logs',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('actor_user_id', sa.Integer(), nullable=True),
            sa.Column('action', sa.String(length=64), nullable=False),
            sa.Column('target_type', sa.String(length=64), nullable=True),
            sa.Column('target_id', sa.Integer(), nullable=True),
            sa.Column('meta', sa.JSON(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        with op.batch_alter_table('activity_logs', schema=None) as batch_op:
            batch_op.create_index(batch_op.f('ix_activity_logs_action'), ['action'], unique=False)

    if not _table_exists("notification_queue"):
        op.create_table(
            'notification_queue',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('channel', sa.String(length=32), nullable=False),
            sa.Column('to', sa.String(length=160), nullable=False),
            sa.Column('template', sa.String(length=64), nullable=False),
            sa.Column('payload', sa.JSON(), nullable=True),
            sa.Column('status', sa.String(length=32), nullable=False),
            sa.Column('reference', sa.String(length=128), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('sent_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
        )
        with op.batch_alter_table('notification_queue', schema=None) as batch_op:
            batch_op.create_index(batch_op.f('ix_notification_queue_reference'), ['reference'], unique=False)


def downgrade():
    with op.batch_alter_table('notification_queue', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_notification_queue_reference'))
    op.drop_table('notification_queue')

    with op.batch_alter_table('activity_logs', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_activity_logs_action'))
    op.drop_table('activity_logs')
