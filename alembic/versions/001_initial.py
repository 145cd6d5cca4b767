"""Initial database schema

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

project_status = sa.Enum('ACTIVE', 'ARCHIVED', 'GRADUATED', 'DRAFT', name='projectstatus')
event_type = sa.Enum(
    'PAGE_VIEW', 'FORM_SUBMISSION', 'BUTTON_CLICK', 'LINK_CLICK', 'SCROLL_DEPTH', 'SESSION_START',
    name='analyticseventtype',
)

def upgrade():
    # Create projects table
    op.create_table(
        'projects',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('slug', sa.String(), nullable=False),
        sa.Column('domain', sa.String(), nullable=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', project_status, nullable=False),
        sa.Column('notification_email', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_projects_id', 'projects', ['id'])
    op.create_index('ix_projects_slug', 'projects', ['slug'], unique=True)
    op.create_index('ix_projects_domain', 'projects', ['domain'], unique=True)

    # Create page_configs table
    op.create_table(
        'page_configs',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('project_id', sa.String(), nullable=False),
        sa.Column('template_config', sa.JSON(), nullable=False),
        sa.Column('design_config', sa.JSON(), nullable=False),
        sa.Column('schema_version', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_page_configs_id', 'page_configs', ['id'])
    op.create_index('ix_page_configs_project_id', 'page_configs', ['project_id'])

    # Create form_submissions table
    op.create_table(
        'form_submissions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('project_id', sa.String(), nullable=False),
        sa.Column('form_data', sa.JSON(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('ip_hash', sa.String(), nullable=True),
        sa.Column('user_agent', sa.String(), nullable=True),
        sa.Column('referrer', sa.String(), nullable=True),
        sa.Column('utm_source', sa.String(), nullable=True),
        sa.Column('utm_medium', sa.String(), nullable=True),
        sa.Column('utm_campaign', sa.String(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('project_id', 'email', name='uq_form_submissions_project_email')
    )
    op.create_index('ix_form_submissions_id', 'form_submissions', ['id'])
    op.create_index('ix_form_submissions_project_id', 'form_submissions', ['project_id'])
    op.create_index('ix_form_submissions_submitted_at', 'form_submissions', ['submitted_at'])

    # Create analytics_events table
    op.create_table(
        'analytics_events',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('project_id', sa.String(), nullable=False),
        sa.Column('event_type', event_type, nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('ip_hash', sa.String(), nullable=True),
        sa.Column('user_agent', sa.String(), nullable=True),
        sa.Column('referrer', sa.String(), nullable=True),
        sa.Column('pathname', sa.String(), nullable=True),
        sa.Column('utm_source', sa.String(), nullable=True),
        sa.Column('utm_medium', sa.String(), nullable=True),
        sa.Column('utm_campaign', sa.String(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_analytics_events_id', 'analytics_events', ['id'])
    op.create_index('ix_analytics_project_type_ts', 'analytics_events', ['project_id', 'event_type', 'timestamp'])

def downgrade():
    op.drop_table('analytics_events')
    op.drop_table('form_submissions')
    op.drop_table('page_configs')
    op.drop_table('projects')

    # Drop enums (no-op hors PostgreSQL)
    event_type.drop(op.get_bind(), checkfirst=True)
    project_status.drop(op.get_bind(), checkfirst=True)
