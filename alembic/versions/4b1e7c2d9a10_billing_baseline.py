"""billing_baseline

Revision ID: 4b1e7c2d9a10
Revises: 
Create Date: 2026-10-19 09:12:41.118204

Production-safe migration: Only creates tables that do not exist yet.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '4b1e7c2d9a10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    if not table_exists('users'):
        op.create_table('users',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('email', sa.String(), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('role', sa.String(), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('last_login_at', sa.DateTime(), nullable=True),
            sa.Column('deleted_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    if not table_exists('plans'):
        op.create_table('plans',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('display_name', sa.String(), nullable=False),
            sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False),
            sa.Column('duration_days', sa.Integer(), nullable=True),
            sa.Column('max_resumes', sa.Integer(), nullable=True),
            sa.Column('max_ats_checks', sa.Integer(), nullable=True),
            sa.Column('max_interviews', sa.Integer(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('deleted_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_plans_name'), 'plans', ['name'], unique=True)

    if not table_exists('subscriptions'):
        op.create_table('subscriptions',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('plan_id', sa.String(length=36), nullable=False),
            sa.Column('start_date', sa.DateTime(), nullable=False),
            sa.Column('end_date', sa.DateTime(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('deleted_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['plan_id'], ['plans.id'], ),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_subscriptions_user_id'), 'subscriptions', ['user_id'], unique=False)
        op.create_index(op.f('ix_subscriptions_plan_id'), 'subscriptions', ['plan_id'], unique=False)
        op.create_index(
            'uq_subscriptions_user_active', 'subscriptions', ['user_id'], unique=True,
            postgresql_where=sa.text("status = 'active' AND deleted_at IS NULL"),
            sqlite_where=sa.text("status = 'active' AND deleted_at IS NULL"),
        )

    if not table_exists('usage'):
        op.create_table('usage',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('feature', sa.String(), nullable=False),
            sa.Column('period_month', sa.Date(), nullable=False),
            sa.Column('count', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'feature', 'period_month', name='uq_usage_user_feature_period')
        )
        op.create_index(op.f('ix_usage_user_id'), 'usage', ['user_id'], unique=False)

    if not table_exists('transactions'):
        op.create_table('transactions',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('plan_id', sa.String(length=36), nullable=False),
            sa.Column('subscription_id', sa.String(length=36), nullable=True),
            sa.Column('order_id', sa.String(), nullable=False),
            sa.Column('gross_amount', sa.Numeric(precision=12, scale=2), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('gateway_transaction_id', sa.String(), nullable=True),
            sa.Column('gateway_transaction_status', sa.String(), nullable=True),
            sa.Column('fraud_status', sa.String(), nullable=True),
            sa.Column('payment_type', sa.String(), nullable=True),
            sa.Column('payment_method', sa.String(), nullable=True),
            sa.Column('session_token', sa.String(), nullable=True),
            sa.Column('redirect_url', sa.String(), nullable=True),
            sa.Column('gateway_raw_response', sa.JSON(), nullable=True),
            sa.Column('paid_at', sa.DateTime(), nullable=True),
            sa.Column('expired_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.Column('deleted_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['plan_id'], ['plans.id'], ),
            sa.ForeignKeyConstraint(['subscription_id'], ['subscriptions.id'], ),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_transactions_order_id'), 'transactions', ['order_id'], unique=True)
        op.create_index(op.f('ix_transactions_user_id'), 'transactions', ['user_id'], unique=False)
        op.create_index('idx_transactions_user_created', 'transactions', ['user_id', 'created_at'], unique=False)


def downgrade() -> None:
    op.drop_table('transactions')
    op.drop_table('usage')
    op.drop_table('subscriptions')
    op.drop_table('plans')
    op.drop_table('users')
