"""create profiles, tasks, nudge_configs, nudges, manager_reports

Revision ID: 5e2b9c4d7a10
Revises:
Create Date: 2025-12-10 06:40:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


# revision identifiers, used by Alembic.
revision: str = '5e2b9c4d7a10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


role_type = sa.Enum('user', 'manager', name='role_type')
task_status = sa.Enum('todo', 'in_progress', 'done', name='task_status')
nudge_status = sa.Enum('scheduled', 'sent', 'failed', 'acknowledged', name='nudge_status')
report_status = sa.Enum('scheduled', 'sent', 'failed', name='report_status')


def upgrade() -> None:
    """Create the 5 tables the nudge and report sweeps work on."""

    # 1. profiles (managed by the auth layer; email NULL = no deliverable address)
    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=True, unique=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('role', role_type, nullable=False, server_default='user'),
        sa.Column('manager_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_profiles_manager_id', 'profiles', ['manager_id'])

    # 2. tasks
    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('status', task_status, nullable=False, server_default='todo'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_tasks_owner_id', 'tasks', ['owner_id'])

    # 3. nudge_configs (one per user, upserted in place)
    op.create_table(
        'nudge_configs',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('times', JSONB(), nullable=False, server_default=sa.text("'[\"09:00\", \"13:00\", \"17:00\"]'::jsonb")),
        sa.Column('timezone', sa.String(64), nullable=False, server_default='UTC'),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # 4. nudges: unique (user_id, scheduled_at) is the materialization dedup key
    op.create_table(
        'nudges',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('scheduled_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('sent_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('acknowledged_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('status', nudge_status, nullable=False, server_default='scheduled'),
        sa.Column('payload', JSONB(), nullable=True),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'scheduled_at', name='uq_nudge_user_slot'),
    )
    op.create_index('ix_nudges_user_id', 'nudges', ['user_id'])
    op.create_index('ix_nudges_due', 'nudges', ['scheduled_at', 'sent_at'])

    # 5. manager_reports: unique (manager_id, report_date) is the upsert key
    op.create_table(
        'manager_reports',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('manager_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('report_date', sa.Date(), nullable=False),
        sa.Column('sent_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('status', report_status, nullable=False, server_default='scheduled'),
        sa.Column('summary', JSONB(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('manager_id', 'report_date', name='uq_manager_report_date'),
    )
    op.create_index('ix_manager_reports_manager_id', 'manager_reports', ['manager_id'])


def downgrade() -> None:
    op.drop_table('manager_reports')
    op.drop_table('nudges')
    op.drop_table('nudge_configs')
    op.drop_table('tasks')
    op.drop_table('profiles')
    for enum_type in (report_status, nudge_status, task_status, role_type):
        enum_type.drop(op.get_bind(), checkfirst=True)
