"""create_subscription_tracker_tables

Revision ID: 0c1f5e2a9b31
Revises:
Create Date: 2025-12-02 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0c1f5e2a9b31'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'], unique=False)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('icon', sa.String(length=32), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='EUR'),
        sa.Column('category', sa.String(length=50), nullable=True),
        sa.Column('billing_cycle', sa.String(length=20), nullable=False, server_default='monthly'),
        sa.Column('renewal_day', sa.Integer(), nullable=False),
        sa.Column('renewal_month', sa.Integer(), nullable=True),
        sa.Column('trial_end_date', sa.Date(), nullable=True),
        sa.Column('credits_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('credits_remaining', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('credits_tracking_disabled', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('last_reset_date', sa.Date(), nullable=True),
        sa.Column('alerts_enabled', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.CheckConstraint('credits_remaining <= credits_total', name='ck_subscriptions_credits'),
        sa.CheckConstraint('renewal_day BETWEEN 1 AND 31', name='ck_subscriptions_renewal_day'),
    )
    op.create_index('ix_subscriptions_id', 'subscriptions', ['id'], unique=False)
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'], unique=False)

    op.create_table(
        'credit_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('subscription_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('credits_used', sa.Integer(), nullable=False),
        sa.Column('credits_total', sa.Integer(), nullable=False),
        sa.Column('recorded_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['subscription_id'], ['subscriptions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_credit_history_id', 'credit_history', ['id'], unique=False)
    op.create_index('ix_credit_history_subscription_id', 'credit_history', ['subscription_id'], unique=False)
    op.create_index('ix_credit_history_user_id', 'credit_history', ['user_id'], unique=False)
    op.create_index('ix_credit_history_recorded_at', 'credit_history', ['recorded_at'], unique=False)

    op.create_table(
        'renewal_alerts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('subscription_id', sa.Integer(), nullable=False),
        sa.Column('renewal_date', sa.Date(), nullable=False),
        sa.Column('days_before', sa.Integer(), nullable=False),
        sa.Column('recipient', sa.String(length=255), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['subscription_id'], ['subscriptions.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('subscription_id', 'renewal_date', 'days_before', name='uq_renewal_alert'),
    )
    op.create_index('ix_renewal_alerts_id', 'renewal_alerts', ['id'], unique=False)
    op.create_index('ix_renewal_alerts_subscription_id', 'renewal_alerts', ['subscription_id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_renewal_alerts_subscription_id', table_name='renewal_alerts')
    op.drop_index('ix_renewal_alerts_id', table_name='renewal_alerts')
    op.drop_table('renewal_alerts')

    op.drop_index('ix_credit_history_recorded_at', table_name='credit_history')
    op.drop_index('ix_credit_history_user_id', table_name='credit_history')
    op.drop_index('ix_credit_history_subscription_id', table_name='credit_history')
    op.drop_index('ix_credit_history_id', table_name='credit_history')
    op.drop_table('credit_history')

    op.drop_index('ix_subscriptions_user_id', table_name='subscriptions')
    op.drop_index('ix_subscriptions_id', table_name='subscriptions')
    op.drop_table('subscriptions')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
