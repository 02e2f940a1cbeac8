"""create subscriptions table

Revision ID: 3f1c9e2b7a40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9e2b7a40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add subscriptions table holding per-installation sync progress."""
    op.create_table('subscriptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('github_installation_id', sa.Integer(), nullable=False),
        sa.Column('jira_host', sa.String(length=255), nullable=False),
        sa.Column('sync_status', sa.Enum('PENDING', 'ACTIVE', 'COMPLETE', 'FAILED', name='syncstatus'), nullable=False),
        sa.Column('sync_warning', sa.Text(), nullable=True),
        sa.Column('repo_sync_state', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('jira_host', 'github_installation_id', name='uq_host_installation')
    )
    op.create_index('ix_subscriptions_sync_status', 'subscriptions', ['sync_status'])


def downgrade() -> None:
    """Remove subscriptions table."""
    op.drop_index('ix_subscriptions_sync_status', table_name='subscriptions')
    op.drop_table('subscriptions')
    sa.Enum(name='syncstatus').drop(op.get_bind(), checkfirst=True)
