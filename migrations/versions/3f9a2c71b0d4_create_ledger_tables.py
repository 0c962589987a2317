"""create_ledger_tables

Revision ID: 3f9a2c71b0d4
Revises:
Create Date: 2026-10-19 10:12:44.512093

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a2c71b0d4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bank', sa.String(length=255), nullable=False),
        sa.Column('agency_number', sa.String(length=20), nullable=False),
        sa.Column('account_number', sa.String(length=30), nullable=False),
        sa.Column('account_kind', sa.String(length=50), nullable=False),
        sa.Column('holder', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('account_number'),
    )

    # Enum columns hold the symbolic name (VARCHAR, no native PG enum)
    op.create_table(
        'financial_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('movement_type', sa.String(length=32), nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=False),
        sa.Column('category', sa.String(length=32), nullable=False),
        sa.Column('movement_date', sa.Date(), nullable=False),
        sa.Column('registered_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('source', sa.String(length=32), nullable=False),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.Column('prior_balance', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('resulting_balance', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('origin_file', sa.String(length=100), nullable=True),
        sa.Column('external_id', sa.String(length=50), nullable=True),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_financial_movements_account_id', 'financial_movements', ['account_id'])
    op.create_index('ix_movements_account_date', 'financial_movements', ['account_id', 'movement_date'])
    op.create_index('ix_movements_account_external', 'financial_movements', ['account_id', 'external_id'])

    op.create_table(
        'savings_goals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.String(length=1000), nullable=True),
        sa.Column('goal_type', sa.String(length=32), nullable=False),
        sa.Column('target_amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('current_amount', sa.Numeric(precision=15, scale=2), server_default='0', nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('registered_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.Column('completion_percentage', sa.Numeric(precision=24, scale=4), server_default='0', nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_savings_goals_account_id', 'savings_goals', ['account_id'])
    op.create_index('ix_savings_goals_end_date', 'savings_goals', ['end_date'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_savings_goals_end_date', table_name='savings_goals')
    op.drop_index('ix_savings_goals_account_id', table_name='savings_goals')
    op.drop_table('savings_goals')
    op.drop_index('ix_movements_account_external', table_name='financial_movements')
    op.drop_index('ix_movements_account_date', table_name='financial_movements')
    op.drop_index('ix_financial_movements_account_id', table_name='financial_movements')
    op.drop_table('financial_movements')
    op.drop_table('accounts')
