"""initial schema

Revision ID: pd0001initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the poultrydesk schema:
- users / session_tokens: accounts (tenants) and opaque bearer sessions
- flocks: bird groups, the unit all money is booked against
- sales / expenses / egg_productions: time-stamped records per flock
- inventory_items: current stock per flock (no ledger)
- flock_financial_data: one snapshot per (flock, user, period_start)
- reports / notifications
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'pd0001initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    # ============================================================================
    # users / session_tokens
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('contact', sa.String(length=32), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_username', 'users', ['username'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])

    # ============================================================================
    # flocks
    # ============================================================================
    op.create_table(
        'flocks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('breed', sa.String(length=120), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='ACTIVE'),
        sa.Column('initial_bird_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bird_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('age_weeks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('feed_intake', sa.Float(), nullable=False, server_default='0'),
        sa.Column('revenue_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('expenses_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('mortality_rate', sa.Float(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'name', name='uq_flocks_user_name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_flocks_user_id', 'flocks', ['user_id'])

    # ============================================================================
    # sales / expenses / egg_productions
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('flock_id', sa.Integer(), nullable=False),
        sa.Column('ref_no', sa.String(length=64), nullable=False),
        sa.Column('product', sa.String(length=100), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('sold_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['flock_id'], ['flocks.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ref_no'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_user_id', 'sales', ['user_id'])
    op.create_index('ix_sales_flock_id', 'sales', ['flock_id'])
    op.create_index('ix_sales_sold_at', 'sales', ['sold_at'])
    op.create_index('ix_sales_user_flock_sold_at', 'sales', ['user_id', 'flock_id', 'sold_at'])

    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('flock_id', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('incurred_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['flock_id'], ['flocks.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_expenses_user_id', 'expenses', ['user_id'])
    op.create_index('ix_expenses_flock_id', 'expenses', ['flock_id'])
    op.create_index('ix_expenses_incurred_at', 'expenses', ['incurred_at'])
    op.create_index('ix_expenses_user_flock_incurred_at', 'expenses', ['user_id', 'flock_id', 'incurred_at'])

    op.create_table(
        'egg_productions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('flock_id', sa.Integer(), nullable=False),
        sa.Column('eggs_collected', sa.Integer(), nullable=False),
        sa.Column('price_per_unit_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('produced_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['flock_id'], ['flocks.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_egg_productions_user_id', 'egg_productions', ['user_id'])
    op.create_index('ix_egg_productions_flock_id', 'egg_productions', ['flock_id'])
    op.create_index('ix_egg_productions_produced_at', 'egg_productions', ['produced_at'])
    op.create_index('ix_egg_productions_user_flock_produced_at', 'egg_productions',
                    ['user_id', 'flock_id', 'produced_at'])

    # ============================================================================
    # inventory_items
    # ============================================================================
    op.create_table(
        'inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('flock_id', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reorder_level', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cost_per_unit_cents', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['flock_id'], ['flocks.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_items_user_id', 'inventory_items', ['user_id'])
    op.create_index('ix_inventory_items_flock_id', 'inventory_items', ['flock_id'])

    # ============================================================================
    # flock_financial_data: upsert target, unique per (flock, user, period_start)
    # ============================================================================
    op.create_table(
        'flock_financial_data',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('flock_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('period_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('period_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_revenue_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_expenses_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('net_profit_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('profit_margin', sa.Float(), nullable=True),
        sa.Column('expense_ratio', sa.Float(), nullable=True),
        sa.Column('cost_per_unit_cents', sa.Float(), nullable=True),
        sa.Column('inventory_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['flock_id'], ['flocks.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('flock_id', 'user_id', 'period_start', name='uq_flock_financial_period'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_flock_financial_data_flock_id', 'flock_financial_data', ['flock_id'])
    op.create_index('ix_flock_financial_data_user_id', 'flock_financial_data', ['user_id'])
    op.create_index('ix_flock_financial_user_period', 'flock_financial_data', ['user_id', 'period_start'])

    # ============================================================================
    # reports / notifications
    # ============================================================================
    op.create_table(
        'reports',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('report_type', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('file_path', sa.String(length=1024), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_reports_user_id', 'reports', ['user_id'])
    op.create_index('ix_reports_user_generated_at', 'reports', ['user_id', 'generated_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('type', sa.String(length=16), nullable=False, server_default='info'),
        sa.Column('url', sa.String(length=255), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_user_read', 'notifications', ['user_id', 'is_read'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('notifications')
    op.drop_table('reports')
    op.drop_table('flock_financial_data')
    op.drop_table('inventory_items')
    op.drop_table('egg_productions')
    op.drop_table('expenses')
    op.drop_table('sales')
    op.drop_table('flocks')
    op.drop_table('session_tokens')
    op.drop_table('users')
