"""tenancy, catalog and rbac tables

Revision ID: 0001_initial_schema
Revises: 
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def _id():
    return sa.Column('id', sa.String(length=36), primary_key=True)


def _window_columns():
    return [
        sa.Column('start_day', sa.String(length=16), nullable=False),
        sa.Column('end_day', sa.String(length=16), nullable=False),
        sa.Column('opening_hour', sa.Time(), nullable=False),
        sa.Column('closing_hour', sa.Time(), nullable=False),
        sa.Column('status', sa.Boolean(), nullable=False, server_default=sa.true()),
    ]


def upgrade():
    op.create_table('tenants',
        _id(),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('name_key', sa.String(length=120), nullable=False, unique=True),
        sa.Column('description', sa.String(length=255)),
        sa.Column('status', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('max_subsidiaries', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('max_users', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('max_roles', sa.Integer(), nullable=False, server_default='20'),
        *_timestamps(),
    )

    op.create_table('subsidiaries',
        _id(),
        sa.Column('tenant_id', sa.String(length=36), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('name_key', sa.String(length=120), nullable=False),
        sa.Column('subsidiary_type', sa.String(length=16), nullable=False),
        sa.Column('allow_negative_stock', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('address', sa.String(length=255)),
        sa.Column('city', sa.String(length=80)),
        sa.Column('country', sa.String(length=80)),
        sa.Column('status', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint('tenant_id', 'name_key', name='uq_subsidiary_tenant_name'),
    )
    op.create_index('ix_subsidiaries_tenant_id', 'subsidiaries', ['tenant_id'])

    op.create_table('schedule_subsidiaries',
        _id(),
        sa.Column('subsidiary_id', sa.String(length=36), sa.ForeignKey('subsidiaries.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tenant_id', sa.String(length=36), sa.ForeignKey('tenants.id'), nullable=False),
        *_window_columns(),
        *_timestamps(),
        sa.UniqueConstraint('subsidiary_id', 'start_day', 'end_day', 'opening_hour', 'closing_hour',
                            name='uq_schedule_subsidiary_window'),
        sa.CheckConstraint('opening_hour < closing_hour', name='ck_schedule_subsidiary_hours'),
    )
    op.create_index('ix_schedule_subsidiaries_subsidiary_id', 'schedule_subsidiaries', ['subsidiary_id'])

    op.create_table('sections',
        _id(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('name_key', sa.String(length=100), nullable=False, unique=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('visibility', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('status', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table('modules',
        _id(),
        sa.Column('section_id', sa.String(length=36), sa.ForeignKey('sections.id'), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('name_key', sa.String(length=100), nullable=False),
        sa.Column('route', sa.String(length=200)),
        sa.Column('icon_name', sa.String(length=80)),
        sa.Column('status', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint('section_id', 'name_key', name='uq_module_section_name'),
    )
    op.create_index('ix_modules_section_id', 'modules', ['section_id'])

    op.create_table('submodules',
        _id(),
        sa.Column('module_id', sa.String(length=36), sa.ForeignKey('modules.id'), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('name_key', sa.String(length=100), nullable=False),
        sa.Column('route', sa.String(length=200)),
        sa.Column('status', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint('module_id', 'name_key', name='uq_submodule_module_name'),
    )
    op.create_index('ix_submodules_module_id', 'submodules', ['module_id'])

    op.create_table('permission_actions',
        _id(),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('name_key', sa.String(length=50), nullable=False, unique=True),
        sa.Column('description', sa.String(length=255)),
        sa.Column('status', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table('allowed_actions',
        _id(),
        sa.Column('action_id', sa.String(length=36), sa.ForeignKey('permission_actions.id'), nullable=False),
        sa.Column('module_id', sa.String(length=36), sa.ForeignKey('modules.id'), nullable=True),
        sa.Column('submodule_id', sa.String(length=36), sa.ForeignKey('submodules.id'), nullable=True),
        sa.Column('composite_key', sa.String(length=120), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint(
            '(module_id IS NULL AND submodule_id IS NOT NULL) OR (module_id IS NOT NULL AND submodule_id IS NULL)',
            name='ck_allowed_action_target',
        ),
    )
    for col in ('action_id', 'module_id', 'submodule_id'):
        op.create_index(f'ix_allowed_actions_{col}', 'allowed_actions', [col])

    op.create_table('roles',
        _id(),
        sa.Column('tenant_id', sa.String(length=36), sa.ForeignKey('tenants.id'), nullable=True),
        sa.Column('subsidiary_id', sa.String(length=36), sa.ForeignKey('subsidiaries.id'), nullable=True),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('name_key', sa.String(length=64), nullable=False),
        sa.Column('description', sa.String(length=255)),
        sa.Column('template', sa.String(length=32), nullable=False, server_default='CUSTOM'),
        sa.Column('status', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint('tenant_id', 'subsidiary_id', 'name_key', name='uq_role_scope_name'),
    )
    op.create_index('ix_roles_tenant_id', 'roles', ['tenant_id'])
    op.create_index('ix_roles_subsidiary_id', 'roles', ['subsidiary_id'])

    op.create_table('role_permissions',
        _id(),
        sa.Column('role_id', sa.String(length=36), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('action_id', sa.String(length=36), sa.ForeignKey('permission_actions.id'), nullable=False),
        sa.Column('tenant_id', sa.String(length=36), sa.ForeignKey('tenants.id'), nullable=True),
        sa.Column('level', sa.String(length=16), nullable=False),
        sa.Column('section_id', sa.String(length=36), sa.ForeignKey('sections.id'), nullable=False),
        sa.Column('module_id', sa.String(length=36), sa.ForeignKey('modules.id'), nullable=True),
        sa.Column('submodule_id', sa.String(length=36), sa.ForeignKey('submodules.id'), nullable=True),
        sa.Column('permission_key', sa.String(length=200), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint(
            "(level = 'SECTION' AND module_id IS NULL AND submodule_id IS NULL)"
            " OR (level = 'MODULE' AND module_id IS NOT NULL AND submodule_id IS NULL)"
            " OR (level = 'SUBMODULE' AND module_id IS NOT NULL AND submodule_id IS NOT NULL)",
            name='ck_role_permission_level',
        ),
    )
    op.create_index('ix_role_permissions_role_id', 'role_permissions', ['role_id'])

    op.create_table('users',
        _id(),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=128)),
        sa.Column('lastname', sa.String(length=128)),
        sa.Column('email', sa.String(length=128)),
        sa.Column('role_id', sa.String(length=36), sa.ForeignKey('roles.id'), nullable=False),
        sa.Column('subsidiary_id', sa.String(length=36), sa.ForeignKey('subsidiaries.id'), nullable=False),
        sa.Column('tenant_id', sa.String(length=36), sa.ForeignKey('tenants.id'), nullable=True),
        sa.Column('status', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint('subsidiary_id', 'username', name='uq_user_subsidiary_username'),
    )
    for col in ('username', 'role_id', 'subsidiary_id', 'tenant_id'):
        op.create_index(f'ix_users_{col}', 'users', [col])

    op.create_table('schedule_users',
        _id(),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tenant_id', sa.String(length=36), sa.ForeignKey('tenants.id'), nullable=True),
        sa.Column('subsidiary_id', sa.String(length=36), sa.ForeignKey('subsidiaries.id'), nullable=False),
        *_window_columns(),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'start_day', 'end_day', 'opening_hour', 'closing_hour',
                            name='uq_schedule_user_window'),
        sa.CheckConstraint('opening_hour < closing_hour', name='ck_schedule_user_hours'),
    )
    op.create_index('ix_schedule_users_user_id', 'schedule_users', ['user_id'])


def downgrade():
    for table in ('schedule_users', 'users', 'role_permissions', 'roles', 'allowed_actions',
                  'permission_actions', 'submodules', 'modules', 'sections',
                  'schedule_subsidiaries', 'subsidiaries', 'tenants'):
        op.drop_table(table)
