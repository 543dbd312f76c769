"""Create per-module fields, features and settings tables

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19 15:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str | None = '0002'
down_revision: Union[str, None] = '0001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Apply schema changes."""
    # Create module_fields table
    op.create_table(
        'module_fields',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('module_key', sa.String(length=100), nullable=False),
        sa.Column('field_key', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('group', sa.String(length=100), nullable=True),
        sa.Column('linked_feature', sa.String(length=100), nullable=True),
        sa.Column('required', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('enabled', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('is_system', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['module_key'], ['admin_modules.key'], name=op.f('fk_module_fields_module_key_admin_modules'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_module_fields')),
        sa.UniqueConstraint('module_key', 'field_key', name='uq_module_fields_module_field'),
    )
    op.create_index('ix_module_fields_module_order', 'module_fields', ['module_key', 'order'], unique=False)
    op.create_index('ix_module_fields_module_enabled', 'module_fields', ['module_key', 'enabled'], unique=False)

    # Create module_features table
    op.create_table(
        'module_features',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('module_key', sa.String(length=100), nullable=False),
        sa.Column('feature_key', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('enabled', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('linked_field_key', sa.String(length=100), nullable=True),
        sa.ForeignKeyConstraint(['module_key'], ['admin_modules.key'], name=op.f('fk_module_features_module_key_admin_modules'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_module_features')),
        sa.UniqueConstraint('module_key', 'feature_key', name='uq_module_features_module_feature'),
    )
    op.create_index('ix_module_features_module_key', 'module_features', ['module_key'], unique=False)

    # Create module_settings table
    op.create_table(
        'module_settings',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('module_key', sa.String(length=100), nullable=False),
        sa.Column('setting_key', sa.String(length=100), nullable=False),
        sa.Column('value', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['module_key'], ['admin_modules.key'], name=op.f('fk_module_settings_module_key_admin_modules'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_module_settings')),
        sa.UniqueConstraint('module_key', 'setting_key', name='uq_module_settings_module_setting'),
    )
    op.create_index('ix_module_settings_module_key', 'module_settings', ['module_key'], unique=False)


def downgrade() -> None:
    """Revert schema changes."""
    op.drop_index('ix_module_settings_module_key', table_name='module_settings')
    op.drop_table('module_settings')

    op.drop_index('ix_module_features_module_key', table_name='module_features')
    op.drop_table('module_features')

    op.drop_index('ix_module_fields_module_enabled', table_name='module_fields')
    op.drop_index('ix_module_fields_module_order', table_name='module_fields')
    op.drop_table('module_fields')
