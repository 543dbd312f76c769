"""Create admin core tables: rate limit buckets, admin auth, modules and presets

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str | None = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Apply schema changes."""
    # Token buckets, one row per "{class}:{identifier}"
    op.create_table(
        'rate_limit_buckets',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('tokens', sa.Integer(), nullable=False),
        sa.Column('last_refill', sa.BigInteger(), nullable=False),
        sa.CheckConstraint('tokens >= 0', name='ck_rate_limit_buckets_tokens_non_negative'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_rate_limit_buckets')),
    )
    op.create_index('ix_rate_limit_buckets_key', 'rate_limit_buckets', ['key'], unique=True)

    # Create roles table
    op.create_table(
        'roles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('color', sa.String(length=20), nullable=True),
        sa.Column('is_system', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('is_super_admin', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('permissions', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_roles')),
    )
    op.create_index('ix_roles_name', 'roles', ['name'], unique=True)
    op.create_index('ix_roles_is_system', 'roles', ['is_system'], unique=False)

    # Create admin_users table
    op.create_table(
        'admin_users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('role_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], name=op.f('fk_admin_users_role_id_roles'), ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_admin_users')),
    )
    op.create_index('ix_admin_users_email', 'admin_users', ['email'], unique=True)
    op.create_index('ix_admin_users_status', 'admin_users', ['status'], unique=False)
    op.create_index('ix_admin_users_role_id_status', 'admin_users', ['role_id', 'status'], unique=False)

    # Create admin_sessions table
    op.create_table(
        'admin_sessions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['admin_users.id'], name=op.f('fk_admin_sessions_user_id_admin_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_admin_sessions')),
    )
    op.create_index('ix_admin_sessions_token_hash', 'admin_sessions', ['token_hash'], unique=True)
    op.create_index('ix_admin_sessions_user_id', 'admin_sessions', ['user_id'], unique=False)

    # Create admin_modules table
    op.create_table(
        'admin_modules',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('icon', sa.String(length=100), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('enabled', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('is_core', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('dependencies', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('dependency_type', sa.String(length=10), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('updated_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint(
            "category IN ('content', 'commerce', 'user', 'system', 'marketing')",
            name='ck_admin_modules_category',
        ),
        sa.CheckConstraint(
            "dependency_type IS NULL OR dependency_type IN ('all', 'any')",
            name='ck_admin_modules_dependency_type',
        ),
        sa.ForeignKeyConstraint(['updated_by'], ['admin_users.id'], name=op.f('fk_admin_modules_updated_by_admin_users'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_admin_modules')),
    )
    op.create_index('ix_admin_modules_key', 'admin_modules', ['key'], unique=True)
    op.create_index('ix_admin_modules_category_enabled', 'admin_modules', ['category', 'enabled'], unique=False)
    op.create_index('ix_admin_modules_enabled_order', 'admin_modules', ['enabled', 'order'], unique=False)

    # Create system_presets table
    op.create_table(
        'system_presets',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('enabled_modules', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('is_default', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_system_presets')),
    )
    op.create_index('ix_system_presets_key', 'system_presets', ['key'], unique=True)
    # At most one default preset
    op.create_index(
        'uq_system_presets_single_default',
        'system_presets',
        ['is_default'],
        unique=True,
        postgresql_where=sa.text('is_default'),
    )


def downgrade() -> None:
    """Revert schema changes."""
    op.drop_index('uq_system_presets_single_default', table_name='system_presets')
    op.drop_index('ix_system_presets_key', table_name='system_presets')
    op.drop_table('system_presets')

    op.drop_index('ix_admin_modules_enabled_order', table_name='admin_modules')
    op.drop_index('ix_admin_modules_category_enabled', table_name='admin_modules')
    op.drop_index('ix_admin_modules_key', table_name='admin_modules')
    op.drop_table('admin_modules')

    op.drop_index('ix_admin_sessions_user_id', table_name='admin_sessions')
    op.drop_index('ix_admin_sessions_token_hash', table_name='admin_sessions')
    op.drop_table('admin_sessions')

    op.drop_index('ix_admin_users_role_id_status', table_name='admin_users')
    op.drop_index('ix_admin_users_status', table_name='admin_users')
    op.drop_index('ix_admin_users_email', table_name='admin_users')
    op.drop_table('admin_users')

    op.drop_index('ix_roles_is_system', table_name='roles')
    op.drop_index('ix_roles_name', table_name='roles')
    op.drop_table('roles')

    op.drop_index('ix_rate_limit_buckets_key', table_name='rate_limit_buckets')
    op.drop_table('rate_limit_buckets')
