"""create cash ledger (branches, users, categories, cash days and movements)

Revision ID: a0c1cashledger01
Revises:
Create Date: 2026-10-17

"""

from alembic import op
import sqlalchemy as sa


revision = 'a0c1cashledger01'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ---- Tenancy / acceso ----
    op.create_table(
        'branches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('timezone', sa.String(length=64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('name', name='uq_branches_name'),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=180), nullable=False),
        sa.Column('full_name', sa.String(length=120), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'branch_users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'branch_id', name='uq_branch_users_user_branch'),
    )
    op.create_index('ix_branch_users_user_id', 'branch_users', ['user_id'], unique=False)
    op.create_index('ix_branch_users_branch_id', 'branch_users', ['branch_id'], unique=False)

    # ---- Directorio de categorías (solo lectura para caja) ----
    op.create_table(
        'finance_categories',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('type', sa.String(length=10), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    # ---- Caja ----
    op.create_table(
        'cash_days',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=False),
        sa.Column('date_key', sa.String(length=10), nullable=False),
        sa.Column('status', sa.String(length=10), nullable=False, server_default='OPEN'),
        sa.Column('opening_cash', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('counted_cash', sa.Numeric(12, 2), nullable=True),
        sa.Column('diff_cash', sa.Numeric(12, 2), nullable=True),
        sa.Column('admin_override', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('close_note', sa.Text(), nullable=True),
        sa.Column('closed_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('opened_at', sa.DateTime(), nullable=False),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.UniqueConstraint('branch_id', 'date_key', name='uq_cash_days_branch_date'),
    )
    op.create_index('ix_cash_days_branch_id', 'cash_days', ['branch_id'], unique=False)
    op.create_index('ix_cash_days_date_key', 'cash_days', ['date_key'], unique=False)
    op.create_index('ix_cash_days_status', 'cash_days', ['status'], unique=False)

    op.create_table(
        'cash_movements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('cash_day_id', sa.Integer(), sa.ForeignKey('cash_days.id'), nullable=False),
        sa.Column('move_type', sa.String(length=10), nullable=False),
        sa.Column('method', sa.String(length=10), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('category_id', sa.String(length=64), nullable=True),
        sa.Column('concept', sa.String(length=160), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('voided', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('void_reason', sa.Text(), nullable=True),
        sa.Column('voided_at', sa.DateTime(), nullable=True),
        sa.Column('voided_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('created_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
    )
    op.create_index('ix_cash_movements_cash_day_id', 'cash_movements', ['cash_day_id'], unique=False)
    op.create_index('ix_cash_movements_move_type', 'cash_movements', ['move_type'], unique=False)
    op.create_index('ix_cash_movements_method', 'cash_movements', ['method'], unique=False)
    op.create_index('ix_cash_movements_category_id', 'cash_movements', ['category_id'], unique=False)
    op.create_index('ix_cash_movements_voided', 'cash_movements', ['voided'], unique=False)
    op.create_index('ix_cash_movements_created_at', 'cash_movements', ['created_at'], unique=False)

    op.create_table(
        'cash_day_notes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('cash_day_id', sa.Integer(), sa.ForeignKey('cash_days.id'), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_cash_day_notes_cash_day_id', 'cash_day_notes', ['cash_day_id'], unique=False)


def downgrade():
    op.drop_index('ix_cash_day_notes_cash_day_id', table_name='cash_day_notes')
    op.drop_table('cash_day_notes')

    for ix in ('created_at', 'voided', 'category_id', 'method', 'move_type', 'cash_day_id'):
        op.drop_index(f'ix_cash_movements_{ix}', table_name='cash_movements')
    op.drop_table('cash_movements')

    op.drop_index('ix_cash_days_status', table_name='cash_days')
    op.drop_index('ix_cash_days_date_key', table_name='cash_days')
    op.drop_index('ix_cash_days_branch_id', table_name='cash_days')
    op.drop_table('cash_days')

    op.drop_table('finance_categories')

    op.drop_index('ix_branch_users_branch_id', table_name='branch_users')
    op.drop_index('ix_branch_users_user_id', table_name='branch_users')
    op.drop_table('branch_users')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')

    op.drop_table('branches')
