"""initial schema

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _integration_fk() -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(['integration_id'], ['integrations.id'], ondelete='CASCADE')


def upgrade() -> None:
    """Create integrations, synced entity tables and the TTL store tables."""
    op.create_table('integrations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('github_login', sa.String(length=100), nullable=False),
        sa.Column('github_user_id', sa.BigInteger(), nullable=True),
        sa.Column('access_token', sa.Text(), nullable=True),
        sa.Column('scope', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('sync_status', sa.Enum('IDLE', 'SYNCING', 'COMPLETED', 'FAILED', name='syncstatus'), nullable=False),
        sa.Column('sync_progress', sa.JSON(), nullable=False),
        sa.Column('sync_metadata', sa.JSON(), nullable=False),
        sa.Column('rate_limit_info', sa.JSON(), nullable=False),
        sa.Column('last_sync_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('organizations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('github_id', sa.BigInteger(), nullable=False),
        sa.Column('login', sa.String(length=100), nullable=False),
        sa.Column('type', sa.Enum('USER', 'ORGANIZATION', name='organizationtype'), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('url', sa.String(length=500), nullable=True),
        sa.Column('html_url', sa.String(length=500), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('location', sa.String(length=200), nullable=True),
        sa.Column('email', sa.String(length=200), nullable=True),
        sa.Column('public_repos', sa.Integer(), nullable=False),
        sa.Column('public_gists', sa.Integer(), nullable=False),
        sa.Column('followers', sa.Integer(), nullable=False),
        sa.Column('following', sa.Integer(), nullable=False),
        sa.Column('github_created_at', sa.DateTime(), nullable=True),
        sa.Column('github_updated_at', sa.DateTime(), nullable=True),
        sa.Column('synced_at', sa.DateTime(), nullable=False),
        _integration_fk(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('github_id')
    )
    op.create_index('ix_organizations_login', 'organizations', ['login'])
    op.create_index('ix_organizations_synced_at', 'organizations', ['synced_at'])

    op.create_table('repos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=True),
        sa.Column('github_id', sa.BigInteger(), nullable=False),
        sa.Column('owner', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('full_name', sa.String(length=300), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('private', sa.Boolean(), nullable=False),
        sa.Column('fork', sa.Boolean(), nullable=False),
        sa.Column('html_url', sa.String(length=500), nullable=True),
        sa.Column('clone_url', sa.String(length=500), nullable=True),
        sa.Column('homepage', sa.String(length=500), nullable=True),
        sa.Column('language', sa.String(length=100), nullable=True),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('stargazers_count', sa.Integer(), nullable=False),
        sa.Column('watchers_count', sa.Integer(), nullable=False),
        sa.Column('forks_count', sa.Integer(), nullable=False),
        sa.Column('open_issues_count', sa.Integer(), nullable=False),
        sa.Column('default_branch', sa.String(length=200), nullable=True),
        sa.Column('topics', sa.JSON(), nullable=False),
        sa.Column('visibility', sa.String(length=20), nullable=True),
        sa.Column('archived', sa.Boolean(), nullable=False),
        sa.Column('disabled', sa.Boolean(), nullable=False),
        sa.Column('owner_info', sa.JSON(), nullable=False),
        sa.Column('pushed_at', sa.DateTime(), nullable=True),
        sa.Column('github_created_at', sa.DateTime(), nullable=True),
        sa.Column('github_updated_at', sa.DateTime(), nullable=True),
        sa.Column('synced_at', sa.DateTime(), nullable=False),
        _integration_fk(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('github_id'),
        sa.UniqueConstraint('owner', 'name', name='uq_repo_owner_name')
    )
    op.create_index('ix_repos_full_name', 'repos', ['full_name'])
    op.create_index('ix_repos_synced_at', 'repos', ['synced_at'])

    op.create_table('commits',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('repo_id', sa.Integer(), nullable=False),
        sa.Column('sha', sa.String(length=40), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('author', sa.JSON(), nullable=False),
        sa.Column('committer', sa.JSON(), nullable=False),
        sa.Column('html_url', sa.String(length=500), nullable=True),
        sa.Column('comment_count', sa.Integer(), nullable=False),
        sa.Column('additions', sa.Integer(), nullable=False),
        sa.Column('deletions', sa.Integer(), nullable=False),
        sa.Column('total_changes', sa.Integer(), nullable=False),
        sa.Column('files', sa.JSON(), nullable=False),
        sa.Column('parents', sa.JSON(), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('signature', sa.Text(), nullable=True),
        sa.Column('committed_at', sa.DateTime(), nullable=True),
        sa.Column('synced_at', sa.DateTime(), nullable=False),
        _integration_fk(),
        sa.ForeignKeyConstraint(['repo_id'], ['repos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sha')
    )
    op.create_index('ix_commits_repo_id', 'commits', ['repo_id'])
    op.create_index('ix_commits_synced_at', 'commits', ['synced_at'])

    op.create_table('pulls',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('repo_id', sa.Integer(), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('github_id', sa.BigInteger(), nullable=False),
        sa.Column('title', sa.String(length=1000), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('state', sa.String(length=20), nullable=False),
        sa.Column('locked', sa.Boolean(), nullable=False),
        sa.Column('draft', sa.Boolean(), nullable=False),
        sa.Column('merged', sa.Boolean(), nullable=False),
        sa.Column('user', sa.JSON(), nullable=False),
        sa.Column('labels', sa.JSON(), nullable=False),
        sa.Column('milestone', sa.JSON(), nullable=True),
        sa.Column('assignees', sa.JSON(), nullable=False),
        sa.Column('requested_reviewers', sa.JSON(), nullable=False),
        sa.Column('head', sa.JSON(), nullable=False),
        sa.Column('base', sa.JSON(), nullable=False),
        sa.Column('html_url', sa.String(length=500), nullable=True),
        sa.Column('github_created_at', sa.DateTime(), nullable=True),
        sa.Column('github_updated_at', sa.DateTime(), nullable=True),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('merged_at', sa.DateTime(), nullable=True),
        sa.Column('synced_at', sa.DateTime(), nullable=False),
        _integration_fk(),
        sa.ForeignKeyConstraint(['repo_id'], ['repos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('repo_id', 'number', name='uq_pull_repo_number')
    )
    op.create_index('ix_pulls_repo_id', 'pulls', ['repo_id'])
    op.create_index('ix_pulls_state', 'pulls', ['state'])
    op.create_index('ix_pulls_synced_at', 'pulls', ['synced_at'])

    op.create_table('issues',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('repo_id', sa.Integer(), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('github_id', sa.BigInteger(), nullable=False),
        sa.Column('title', sa.String(length=1000), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('state', sa.String(length=20), nullable=False),
        sa.Column('state_reason', sa.String(length=50), nullable=True),
        sa.Column('locked', sa.Boolean(), nullable=False),
        sa.Column('user', sa.JSON(), nullable=False),
        sa.Column('labels', sa.JSON(), nullable=False),
        sa.Column('assignees', sa.JSON(), nullable=False),
        sa.Column('milestone', sa.JSON(), nullable=True),
        sa.Column('comments', sa.Integer(), nullable=False),
        sa.Column('closed_by', sa.JSON(), nullable=True),
        sa.Column('html_url', sa.String(length=500), nullable=True),
        sa.Column('github_created_at', sa.DateTime(), nullable=True),
        sa.Column('github_updated_at', sa.DateTime(), nullable=True),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('synced_at', sa.DateTime(), nullable=False),
        _integration_fk(),
        sa.ForeignKeyConstraint(['repo_id'], ['repos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('repo_id', 'number', name='uq_issue_repo_number')
    )
    op.create_index('ix_issues_repo_id', 'issues', ['repo_id'])
    op.create_index('ix_issues_state', 'issues', ['state'])
    op.create_index('ix_issues_synced_at', 'issues', ['synced_at'])

    op.create_table('changelogs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('issue_id', sa.Integer(), nullable=False),
        sa.Column('github_event_id', sa.BigInteger(), nullable=False),
        sa.Column('event', sa.String(length=100), nullable=False),
        sa.Column('actor', sa.JSON(), nullable=True),
        sa.Column('commit_id', sa.String(length=40), nullable=True),
        sa.Column('label', sa.JSON(), nullable=True),
        sa.Column('assignee', sa.JSON(), nullable=True),
        sa.Column('milestone', sa.JSON(), nullable=True),
        sa.Column('rename', sa.JSON(), nullable=True),
        sa.Column('review_requester', sa.JSON(), nullable=True),
        sa.Column('requested_reviewer', sa.JSON(), nullable=True),
        sa.Column('event_created_at', sa.DateTime(), nullable=True),
        sa.Column('synced_at', sa.DateTime(), nullable=False),
        _integration_fk(),
        sa.ForeignKeyConstraint(['issue_id'], ['issues.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('issue_id', 'github_event_id', name='uq_changelog_issue_event')
    )
    op.create_index('ix_changelogs_issue_id', 'changelogs', ['issue_id'])
    op.create_index('ix_changelogs_synced_at', 'changelogs', ['synced_at'])

    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=True),
        sa.Column('github_id', sa.BigInteger(), nullable=False),
        sa.Column('login', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('email', sa.String(length=200), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('html_url', sa.String(length=500), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('site_admin', sa.Boolean(), nullable=False),
        sa.Column('company', sa.String(length=200), nullable=True),
        sa.Column('blog', sa.String(length=500), nullable=True),
        sa.Column('location', sa.String(length=200), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('twitter_username', sa.String(length=100), nullable=True),
        sa.Column('public_repos', sa.Integer(), nullable=False),
        sa.Column('public_gists', sa.Integer(), nullable=False),
        sa.Column('followers', sa.Integer(), nullable=False),
        sa.Column('following', sa.Integer(), nullable=False),
        sa.Column('github_created_at', sa.DateTime(), nullable=True),
        sa.Column('github_updated_at', sa.DateTime(), nullable=True),
        sa.Column('synced_at', sa.DateTime(), nullable=False),
        _integration_fk(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('github_id')
    )
    op.create_index('ix_users_login', 'users', ['login'])
    op.create_index('ix_users_synced_at', 'users', ['synced_at'])

    # Shared store tables; rows carry their own expiry
    op.create_table('sync_progress',
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('current', sa.Integer(), nullable=False),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        _integration_fk(),
        sa.PrimaryKeyConstraint('integration_id')
    )

    op.create_table('rate_limit_snapshots',
        sa.Column('integration_id', sa.Integer(), nullable=False),
        sa.Column('limit', sa.Integer(), nullable=False),
        sa.Column('remaining', sa.Integer(), nullable=False),
        sa.Column('used', sa.Integer(), nullable=False),
        sa.Column('reset_at', sa.DateTime(), nullable=False),
        sa.Column('recorded_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        _integration_fk(),
        sa.PrimaryKeyConstraint('integration_id')
    )


def downgrade() -> None:
    """Drop every table in reverse dependency order."""
    op.drop_table('rate_limit_snapshots')
    op.drop_table('sync_progress')
    op.drop_index('ix_users_synced_at', table_name='users')
    op.drop_index('ix_users_login', table_name='users')
    op.drop_table('users')
    op.drop_index('ix_changelogs_synced_at', table_name='changelogs')
    op.drop_index('ix_changelogs_issue_id', table_name='changelogs')
    op.drop_table('changelogs')
    op.drop_index('ix_issues_synced_at', table_name='issues')
    op.drop_index('ix_issues_state', table_name='issues')
    op.drop_index('ix_issues_repo_id', table_name='issues')
    op.drop_table('issues')
    op.drop_index('ix_pulls_synced_at', table_name='pulls')
    op.drop_index('ix_pulls_state', table_name='pulls')
    op.drop_index('ix_pulls_repo_id', table_name='pulls')
    op.drop_table('pulls')
    op.drop_index('ix_commits_synced_at', table_name='commits')
    op.drop_index('ix_commits_repo_id', table_name='commits')
    op.drop_table('commits')
    op.drop_index('ix_repos_synced_at', table_name='repos')
    op.drop_index('ix_repos_full_name', table_name='repos')
    op.drop_table('repos')
    op.drop_index('ix_organizations_synced_at', table_name='organizations')
    op.drop_index('ix_organizations_login', table_name='organizations')
    op.drop_table('organizations')
    op.drop_table('integrations')
