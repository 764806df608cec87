"""Create accounts and referrals tables.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19

Account documents with an optimistic-lock version column, and the
per-referrer referral sub-collection.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_000001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create accounts and referrals tables."""
    op.create_table(
        'accounts',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column(
            'principal',
            sa.DECIMAL(precision=28, scale=12),
            nullable=False,
            comment='Deposited capital'
        ),
        sa.Column(
            'earnings_balance',
            sa.DECIMAL(precision=28, scale=12),
            nullable=False,
            comment='Settled interest plus referral bonuses'
        ),
        sa.Column('tier_name', sa.String(length=64), nullable=False),
        sa.Column(
            'last_settled_at',
            sa.DateTime(timezone=True),
            nullable=False,
            comment='Earnings are settled up to this instant'
        ),
        sa.Column('referred_by', sa.String(length=64), nullable=True),
        sa.Column('referral_code', sa.String(length=20), nullable=True),
        sa.Column(
            'auto_compound',
            sa.Boolean(),
            nullable=False,
            server_default=sa.true()
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            'version',
            sa.Integer(),
            nullable=False,
            comment='Optimistic lock counter'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'principal >= 0', name='check_account_principal_non_negative'
        ),
        sa.CheckConstraint(
            'earnings_balance >= 0', name='check_account_earnings_non_negative'
        ),
    )
    op.create_index(
        'ix_accounts_last_settled_at', 'accounts', ['last_settled_at']
    )
    op.create_index('ix_accounts_referred_by', 'accounts', ['referred_by'])
    op.create_index(
        'ix_accounts_referral_code', 'accounts', ['referral_code'], unique=True
    )

    op.create_table(
        'referrals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_id', sa.String(length=64), nullable=False),
        sa.Column('referred_id', sa.String(length=64), nullable=False),
        sa.Column(
            'total_deposit',
            sa.DECIMAL(precision=28, scale=12),
            nullable=False,
            comment='Cumulative deposits of the referred account (display only)'
        ),
        sa.Column(
            'total_bonus',
            sa.DECIMAL(precision=28, scale=12),
            nullable=False,
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'referrer_id', 'referred_id', name='uq_referral_pair'
        ),
        sa.CheckConstraint(
            'total_deposit >= 0', name='check_referral_deposit_non_negative'
        ),
        sa.CheckConstraint(
            'total_bonus >= 0', name='check_referral_bonus_non_negative'
        ),
    )
    op.create_index('ix_referrals_referrer_id', 'referrals', ['referrer_id'])


def downgrade() -> None:
    """Drop referrals and accounts tables."""
    op.drop_index('ix_referrals_referrer_id', table_name='referrals')
    op.drop_table('referrals')
    op.drop_index('ix_accounts_referral_code', table_name='accounts')
    op.drop_index('ix_accounts_referred_by', table_name='accounts')
    op.drop_index('ix_accounts_last_settled_at', table_name='accounts')
    op.drop_table('accounts')
