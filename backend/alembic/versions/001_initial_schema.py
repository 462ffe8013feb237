"""Initial schema

Revision ID: 001
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('name', sa.String(128)),
        sa.Column('passport_country', sa.String(2)),
        sa.Column('timezone', sa.String(50), server_default='Asia/Seoul'),
        sa.Column('notifications_enabled', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'country_visits',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('country', sa.String(64), nullable=False),
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('exit_date', sa.Date()),
        sa.Column('visa_type', sa.String(50), server_default='Tourist'),
        sa.Column('max_days', sa.Integer(), server_default='90'),
        sa.Column('passport_country', sa.String(2)),
        sa.Column('notes', sa.Text()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_country_visits_user_id', 'country_visits', ['user_id'])
    op.create_index('ix_country_visits_user_entry', 'country_visits', ['user_id', 'entry_date'])

    op.create_table(
        'user_visas',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('country_code', sa.String(2), nullable=False),
        sa.Column('country_name', sa.String(64), nullable=False),
        sa.Column('visa_type', sa.String(50), nullable=False),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=False),
        sa.Column('max_stay_days', sa.Integer()),
        sa.Column('entry_type', sa.String(20), server_default='multiple'),
        sa.Column('status', sa.String(20), server_default='active'),
        sa.Column('last_alert_sent', sa.DateTime()),
        sa.Column('notes', sa.Text()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_user_visas_user_id', 'user_visas', ['user_id'])
    op.create_index('ix_user_visas_country_code', 'user_visas', ['country_code'])
    op.create_index('ix_user_visas_expiry_date', 'user_visas', ['expiry_date'])
    op.create_index('ix_user_visas_status', 'user_visas', ['status'])

    op.create_table(
        'visa_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_visa_id', sa.Integer(), sa.ForeignKey('user_visas.id', ondelete='CASCADE'), nullable=False),
        sa.Column('country_visit_id', sa.Integer(), sa.ForeignKey('country_visits.id', ondelete='SET NULL')),
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('exit_date', sa.Date()),
        sa.Column('entry_point', sa.String(128)),
        sa.Column('exit_point', sa.String(128)),
        sa.Column('purpose', sa.String(64)),
        sa.Column('stay_days', sa.Integer()),
        sa.Column('notes', sa.Text()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_visa_entries_user_visa_id', 'visa_entries', ['user_visa_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('action', sa.String(32), nullable=False),
        sa.Column('resource_type', sa.String(32), nullable=False),
        sa.Column('resource_id', sa.Integer()),
        sa.Column('details', sa.JSON()),
        sa.Column('ip_address', sa.String(64)),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])


def downgrade():
    op.drop_table('audit_logs')
    op.drop_table('visa_entries')
    op.drop_table('user_visas')
    op.drop_table('country_visits')
    op.drop_table('users')
