"""budgets, vaccinations, flock observation series

Revision ID: pd0002budgets
Revises: pd0001initial
Create Date: 2026-10-19 12:00:00.000000

- flocks.mortality_rate_data: JSON list of head-count / mortality / feed observations
- budgets: one planned spend per (user, flock, year, month)
- vaccinations: scheduled doses per flock, with reminder bookkeeping
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'pd0002budgets'
down_revision = 'pd0001initial'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table('flocks') as batch_op:
        batch_op.add_column(
            sa.Column('mortality_rate_data', sa.JSON(), nullable=False, server_default='[]')
        )

    op.create_table(
        'budgets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('flock_id', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['flock_id'], ['flocks.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'flock_id', 'year', 'month', name='uq_budgets_flock_month'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_budgets_user_id', 'budgets', ['user_id'])
    op.create_index('ix_budgets_flock_id', 'budgets', ['flock_id'])
    op.create_index('ix_budgets_user_period', 'budgets', ['user_id', 'year', 'month'])

    op.create_table(
        'vaccinations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('flock_id', sa.Integer(), nullable=False),
        sa.Column('vaccine_name', sa.String(length=120), nullable=False),
        sa.Column('mode_of_administration', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='SCHEDULED'),
        sa.Column('period', sa.String(length=32), nullable=True),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reminder_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['flock_id'], ['flocks.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vaccinations_user_id', 'vaccinations', ['user_id'])
    op.create_index('ix_vaccinations_flock_id', 'vaccinations', ['flock_id'])
    op.create_index('ix_vaccinations_scheduled_at', 'vaccinations', ['scheduled_at'])
    op.create_index('ix_vaccinations_user_flock_scheduled_at', 'vaccinations',
                    ['user_id', 'flock_id', 'scheduled_at'])


def downgrade():
    op.drop_table('vaccinations')
    op.drop_table('budgets')
    with op.batch_alter_table('flocks') as batch_op:
        batch_op.drop_column('mortality_rate_data')
