"""Initial schema for the accounts service

Revision ID: 5c1e9a7f2b34
Revises:
Create Date: 2026-10-19

Enums:
- account_type_enum: main, institutional, regional, district, branch, department
  (declaration order is the hierarchy order)
- user_role_enum: admin, user
- admin_type_enum: limited, unlimited

Tables Created:
- accounts: Organizational hierarchy (self-referencing parent_id)
- users: Administrators and plain users, each assigned to one account

Both foreign keys use ON DELETE RESTRICT: the account service moves users and
child accounts away before it deletes an account.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5c1e9a7f2b34'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ACCOUNT_TYPES = ('main', 'institutional', 'regional', 'district', 'branch', 'department')
USER_ROLES = ('admin', 'user')
ADMIN_TYPES = ('limited', 'unlimited')


def upgrade() -> None:
    """Upgrade schema."""
    # =========================================================================
    # STEP 1: Enums
    # =========================================================================
    postgresql.ENUM(*ACCOUNT_TYPES, name='account_type_enum').create(op.get_bind(), checkfirst=True)
    postgresql.ENUM(*USER_ROLES, name='user_role_enum').create(op.get_bind(), checkfirst=True)
    postgresql.ENUM(*ADMIN_TYPES, name='admin_type_enum').create(op.get_bind(), checkfirst=True)

    # =========================================================================
    # STEP 2: Tables
    # =========================================================================

    # accounts table
    op.create_table(
        'accounts',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', postgresql.ENUM(name='account_type_enum', create_type=False), nullable=False),
        sa.Column('parent_id', sa.String(length=64), nullable=True),
        sa.Column('country', sa.String(length=100), nullable=False),
        sa.Column('primary_admin_id', sa.String(length=64), nullable=True),
        sa.Column('external_key', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ['parent_id'], ['accounts.id'],
            name=op.f('fk_accounts_parent_id_accounts'),
            ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_accounts')),
        sa.UniqueConstraint('external_key', name=op.f('uq_accounts_external_key')),
    )
    op.create_index(op.f('ix_accounts_name'), 'accounts', ['name'], unique=False)
    op.create_index(op.f('ix_accounts_type'), 'accounts', ['type'], unique=False)
    op.create_index(op.f('ix_accounts_parent_id'), 'accounts', ['parent_id'], unique=False)
    op.create_index(op.f('ix_accounts_primary_admin_id'), 'accounts', ['primary_admin_id'], unique=False)
    op.create_index(op.f('ix_accounts_created_at'), 'accounts', ['created_at'], unique=False)

    # users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=False, server_default=''),
        sa.Column('role', postgresql.ENUM(name='user_role_enum', create_type=False), nullable=False),
        sa.Column('admin_type', postgresql.ENUM(name='admin_type_enum', create_type=False), nullable=True),
        sa.Column('account_id', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "role = 'admin' OR admin_type IS NULL",
            name=op.f('ck_users_user_role_has_no_admin_type'),
        ),
        sa.ForeignKeyConstraint(
            ['account_id'], ['accounts.id'],
            name=op.f('fk_users_account_id_accounts'),
            ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_phone'), 'users', ['phone'], unique=False)
    op.create_index(op.f('ix_users_role'), 'users', ['role'], unique=False)
    op.create_index(op.f('ix_users_account_id'), 'users', ['account_id'], unique=False)
    op.create_index(op.f('ix_users_created_at'), 'users', ['created_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_users_created_at'), table_name='users')
    op.drop_index(op.f('ix_users_account_id'), table_name='users')
    op.drop_index(op.f('ix_users_role'), table_name='users')
    op.drop_index(op.f('ix_users_phone'), table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')

    op.drop_index(op.f('ix_accounts_created_at'), table_name='accounts')
    op.drop_index(op.f('ix_accounts_primary_admin_id'), table_name='accounts')
    op.drop_index(op.f('ix_accounts_parent_id'), table_name='accounts')
    op.drop_index(op.f('ix_accounts_type'), table_name='accounts')
    op.drop_index(op.f('ix_accounts_name'), table_name='accounts')
    op.drop_table('accounts')

    postgresql.ENUM(name='admin_type_enum').drop(op.get_bind(), checkfirst=True)
    postgresql.ENUM(name='user_role_enum').drop(op.get_bind(), checkfirst=True)
    postgresql.ENUM(name='account_type_enum').drop(op.get_bind(), checkfirst=True)
