"""create users, search cache, smart index and history tables

Revision ID: create_job_search
Revises: 
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'create_job_search'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('role', sa.String(32), nullable=False, server_default='user'),
        sa.Column('roles', sa.JSON(), nullable=False),
        sa.Column('plan', sa.String(32), nullable=False, server_default='free'),
        sa.Column('ai_usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ai_usage_monthly_limit', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'job_search_cache',
        sa.Column('key', sa.String(512), primary_key=True),
        sa.Column('query', sa.String(512), nullable=False),
        sa.Column('location', sa.String(512), nullable=False),
        sa.Column('jobs', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_accessed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'cached_jobs',
        sa.Column('id', sa.String(100), primary_key=True),
        sa.Column('title', sa.String(512), nullable=False),
        sa.Column('company', sa.String(512), nullable=False),
        sa.Column('location', sa.String(512), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('url', sa.String(2048), nullable=False),
        sa.Column('salary', sa.String(255), nullable=True),
        sa.Column('posted', sa.String(255), nullable=True),
        sa.Column('source', sa.String(64), nullable=True),
        sa.Column('company_lower', sa.String(512), nullable=False),
        sa.Column('location_lower', sa.String(512), nullable=False),
        sa.Column('title_keywords', sa.JSON(), nullable=False),
        sa.Column('source_query', sa.String(512), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_accessed_at', sa.DateTime(timezone=True), nullable=False),
    )
    # prefix range scans for smart search
    op.create_index('ix_cached_jobs_company_lower', 'cached_jobs', ['company_lower'])
    op.create_index('ix_cached_jobs_location_lower', 'cached_jobs', ['location_lower'])

    op.create_table(
        'cached_job_keywords',
        sa.Column('job_id', sa.String(100), sa.ForeignKey('cached_jobs.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('keyword', sa.String(255), primary_key=True),
    )
    op.create_index('ix_cached_job_keywords_keyword', 'cached_job_keywords', ['keyword'])

    op.create_table(
        'job_search_history',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('job_id', sa.String(100), primary_key=True),
        sa.Column('title', sa.String(512), nullable=False),
        sa.Column('company', sa.String(512), nullable=False),
        sa.Column('location', sa.String(512), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('url', sa.String(2048), nullable=False),
        sa.Column('salary', sa.String(255), nullable=True),
        sa.Column('posted', sa.String(255), nullable=True),
        sa.Column('source', sa.String(64), nullable=False, server_default='google'),
        sa.Column('search_query', sa.String(1024), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_job_search_history_user_created', 'job_search_history', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_job_search_history_user_created', table_name='job_search_history')
    op.drop_table('job_search_history')
    op.drop_index('ix_cached_job_keywords_keyword', table_name='cached_job_keywords')
    op.drop_table('cached_job_keywords')
    op.drop_index('ix_cached_jobs_location_lower', table_name='cached_jobs')
    op.drop_index('ix_cached_jobs_company_lower', table_name='cached_jobs')
    op.drop_table('cached_jobs')
    op.drop_table('job_search_cache')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
