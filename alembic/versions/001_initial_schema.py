"""Initial schema: accounts, companies, memberships, jobs and applications

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create all tables, constraints and indexes."""
    op.create_table(
        'users',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='users_email_key'),
    )
    op.create_index('idx_users_email', 'users', ['email'])

    op.create_table(
        'candidate_profiles',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('photo_url', sa.Text(), nullable=True),
        sa.Column('linkedin_url', sa.Text(), nullable=True),
        sa.Column('portfolio_url', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', name='candidate_profiles_user_id_key'),
    )

    op.create_table(
        'resumes',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('file_url', sa.Text(), nullable=False),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('idx_resumes_user', 'resumes', ['user_id'])
    # At most one primary resume per user
    op.create_index(
        'uq_resumes_user_primary',
        'resumes',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text('is_primary'),
    )

    op.create_table(
        'companies',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('logo_url', sa.Text(), nullable=True),
        sa.Column('website', sa.String(length=255), nullable=True),
        sa.Column('created_by_id', sa.BigInteger(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id']),
    )
    op.create_index('idx_companies_deleted_at', 'companies', ['deleted_at'])
    op.create_index('idx_companies_created_by', 'companies', ['created_by_id'])

    op.create_table(
        'company_members',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('company_id', sa.BigInteger(), nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='INVITED'),
        sa.Column('invited_by_id', sa.BigInteger(), nullable=True),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['invited_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('company_id', 'user_id', name='uq_company_members_company_user'),
    )
    op.create_index('idx_company_members_user', 'company_members', ['user_id'])
    op.create_index(
        'idx_company_members_owner_lookup', 'company_members', ['company_id', 'role', 'status']
    )

    op.create_table(
        'question_banks',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('company_id', sa.BigInteger(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('questions_json', sa.JSON(), nullable=False),
        sa.Column('created_by_id', sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('idx_question_banks_company', 'question_banks', ['company_id'])

    op.create_table(
        'job_postings',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('company_id', sa.BigInteger(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('requirements', sa.Text(), nullable=True),
        sa.Column('salary_range', sa.String(length=100), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('employment_type', sa.String(length=50), nullable=True),
        sa.Column('application_mode', sa.String(length=20), nullable=False, server_default='STANDARD'),
        sa.Column('visibility', sa.String(length=20), nullable=False, server_default='PUBLIC'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='DRAFT'),
        sa.Column('application_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('screening_questions', sa.JSON(), nullable=True),
        sa.Column('created_by_id', sa.BigInteger(), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('idx_job_postings_company_status', 'job_postings', ['company_id', 'status'])
    op.create_index('idx_job_postings_deleted_at', 'job_postings', ['deleted_at'])
    op.create_index('idx_job_postings_deadline', 'job_postings', ['status', 'application_deadline'])
    op.create_index('idx_job_postings_public', 'job_postings', ['visibility', 'status'])

    op.create_table(
        'applications',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('job_id', sa.BigInteger(), nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('company_id', sa.BigInteger(), nullable=False),
        sa.Column('resume_id', sa.BigInteger(), nullable=True),
        sa.Column('answers_json', sa.JSON(), nullable=True),
        sa.Column('video_url', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='APPLIED'),
        sa.Column('status_changed_by_id', sa.BigInteger(), nullable=True),
        sa.Column('status_changed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['job_id'], ['job_postings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['resume_id'], ['resumes.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['status_changed_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('job_id', 'user_id', name='uq_applications_job_user'),
    )
    op.create_index('idx_applications_company_status', 'applications', ['company_id', 'status'])
    op.create_index('idx_applications_user', 'applications', ['user_id'])
    op.create_index('idx_applications_resume', 'applications', ['resume_id'])

    op.create_table(
        'application_comments',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('application_id', sa.BigInteger(), nullable=False),
        sa.Column('company_id', sa.BigInteger(), nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('visible_to_candidate', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index(
        'idx_application_comments_application', 'application_comments', ['application_id']
    )
    op.create_index('idx_application_comments_company', 'application_comments', ['company_id'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index('idx_application_comments_company', table_name='application_comments')
    op.drop_index('idx_application_comments_application', table_name='application_comments')
    op.drop_table('application_comments')
    op.drop_index('idx_applications_resume', table_name='applications')
    op.drop_index('idx_applications_user', table_name='applications')
    op.drop_index('idx_applications_company_status', table_name='applications')
    op.drop_table('applications')
    op.drop_index('idx_job_postings_public', table_name='job_postings')
    op.drop_index('idx_job_postings_deadline', table_name='job_postings')
    op.drop_index('idx_job_postings_deleted_at', table_name='job_postings')
    op.drop_index('idx_job_postings_company_status', table_name='job_postings')
    op.drop_table('job_postings')
    op.drop_index('idx_question_banks_company', table_name='question_banks')
    op.drop_table('question_banks')
    op.drop_index('idx_company_members_owner_lookup', table_name='company_members')
    op.drop_index('idx_company_members_user', table_name='company_members')
    op.drop_table('company_members')
    op.drop_index('idx_companies_created_by', table_name='companies')
    op.drop_index('idx_companies_deleted_at', table_name='companies')
    op.drop_table('companies')
    op.drop_index('uq_resumes_user_primary', table_name='resumes')
    op.drop_index('idx_resumes_user', table_name='resumes')
    op.drop_table('resumes')
    op.drop_table('candidate_profiles')
    op.drop_index('idx_users_email', table_name='users')
    op.drop_table('users')
