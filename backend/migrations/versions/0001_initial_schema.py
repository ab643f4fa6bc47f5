"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the account tables (users, session_tokens) and the six business
tables: sim_types, sim_packages, customers, sale_orders, transactions,
due_date_logs. Business tables use client-generated string ids and carry no
foreign keys between each other.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # users / session_tokens: accounts and live sessions
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_email', 'users', ['email'])

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
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # sim_types / sim_packages: catalog and imported batches
    # ============================================================================
    op.create_table(
        'sim_types',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'sim_packages',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('sim_type_id', sa.String(length=64), nullable=False),
        sa.Column('import_date', sa.Date(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('total_import_price', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sim_packages_sim_type_id', 'sim_packages', ['sim_type_id'])

    # ============================================================================
    # customers
    # ============================================================================
    op.create_table(
        'customers',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('cid', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )

    # ============================================================================
    # sale_orders / due_date_logs
    # ============================================================================
    op.create_table(
        'sale_orders',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('customer_id', sa.String(length=64), nullable=True),
        sa.Column('agent_name', sa.String(length=255), nullable=True),
        sa.Column('sale_type', sa.String(length=16), nullable=False),
        sa.Column('sim_type_id', sa.String(length=64), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('sale_price', sa.BigInteger(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('due_date_changes', sa.Integer(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('is_finished', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sale_orders_customer_id', 'sale_orders', ['customer_id'])
    op.create_index('ix_sale_orders_sim_type_id', 'sale_orders', ['sim_type_id'])

    op.create_table(
        'due_date_logs',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('order_id', sa.String(length=64), nullable=False),
        sa.Column('old_date', sa.Date(), nullable=True),
        sa.Column('new_date', sa.Date(), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_due_date_logs_order_id', 'due_date_logs', ['order_id'])

    # ============================================================================
    # transactions: cash ledger
    # ============================================================================
    op.create_table(
        'transactions',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('type', sa.String(length=8), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=True),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('sale_order_id', sa.String(length=64), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_sale_order_id', 'transactions', ['sale_order_id'])
    op.create_index('ix_transactions_date', 'transactions', ['date'])


def downgrade():
    op.drop_table('transactions')
    op.drop_table('due_date_logs')
    op.drop_table('sale_orders')
    op.drop_table('customers')
    op.drop_table('sim_packages')
    op.drop_table('sim_types')
    op.drop_table('session_tokens')
    op.drop_table('users')
