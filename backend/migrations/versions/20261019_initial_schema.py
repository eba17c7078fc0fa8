"""Initial schema: tenants, people, inventory, receipts and debts

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration creates:
1. companies, customers, workers
2. inventory_items, unit_conversions, breakdown_history, stock_transactions, notifications
3. receipts, receipt_details
4. debts, debt_payments
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. TENANTS AND PEOPLE
    # ==========================================================================
    op.create_table('companies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('tax_rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('receipt_template', sa.String(length=32), nullable=False, server_default='template1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    op.create_table('customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('company', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('customers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_customers_company_id'), ['company_id'], unique=False)
        batch_op.create_index('ix_customers_company_name', ['company_id', 'name'], unique=False)

    op.create_table('workers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='worker'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('workers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_workers_company_id'), ['company_id'], unique=False)

    # ==========================================================================
    # 2. INVENTORY
    # ==========================================================================
    op.create_table('inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('base_unit', sa.String(length=32), nullable=False, server_default='unit'),
        sa.Column('atomic_unit', sa.String(length=32), nullable=True),
        sa.Column('conversion_factor', sa.Float(), nullable=False, server_default='1'),
        sa.Column('loss_factor', sa.Float(), nullable=False, server_default='0'),
        sa.Column('onhand', sa.Float(), nullable=False, server_default='0'),
        sa.Column('atomic_onhand', sa.Float(), nullable=False, server_default='0'),
        sa.Column('cost_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('sales_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('reorder_point', sa.Float(), nullable=False, server_default='0'),
        sa.Column('last_breakdown_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'name', name='uq_inventory_company_name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('inventory_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_inventory_items_company_id'), ['company_id'], unique=False)
        batch_op.create_index('ix_inventory_company_name', ['company_id', 'name'], unique=False)

    op.create_table('unit_conversions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('inventory_id', sa.Integer(), nullable=False),
        sa.Column('from_unit', sa.String(length=32), nullable=False),
        sa.Column('to_unit', sa.String(length=32), nullable=False),
        sa.Column('conversion_rate', sa.Float(), nullable=False),
        sa.Column('sales_price', sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(['inventory_id'], ['inventory_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('inventory_id', 'to_unit', name='uq_unit_conversions_item_unit'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('unit_conversions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_unit_conversions_inventory_id'), ['inventory_id'], unique=False)

    op.create_table('breakdown_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('inventory_id', sa.Integer(), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('from_unit', sa.String(length=32), nullable=False),
        sa.Column('to_unit', sa.String(length=32), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('loss', sa.Float(), nullable=False, server_default='0'),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['inventory_id'], ['inventory_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('breakdown_history', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_breakdown_history_inventory_id'), ['inventory_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_breakdown_history_occurred_at'), ['occurred_at'], unique=False)

    op.create_table('stock_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('inventory_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('quantity_delta', sa.Float(), nullable=False),
        sa.Column('cost_price', sa.Float(), nullable=True),
        sa.Column('sales_price', sa.Float(), nullable=True),
        sa.Column('receipt_id', sa.String(length=36), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['inventory_id'], ['inventory_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_transactions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_transactions_inventory_id'), ['inventory_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_transactions_type'), ['type'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_transactions_receipt_id'), ['receipt_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_transactions_occurred_at'), ['occurred_at'], unique=False)
        batch_op.create_index('ix_stock_txns_item_occurred', ['inventory_id', 'occurred_at'], unique=False)

    op.create_table('notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False, server_default='info'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('notifications', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_notifications_company_id'), ['company_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_notifications_created_at'), ['created_at'], unique=False)

    # ==========================================================================
    # 3. RECEIPTS
    # ==========================================================================
    op.create_table('receipts',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('worker_id', sa.Integer(), nullable=True),
        sa.Column('total', sa.Float(), nullable=False, server_default='0'),
        sa.Column('discount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('amount_paid', sa.Float(), nullable=False, server_default='0'),
        sa.Column('balance', sa.Float(), nullable=False, server_default='0'),
        sa.Column('profit', sa.Float(), nullable=False, server_default='0'),
        sa.Column('payment_method', sa.String(length=32), nullable=False, server_default='cash'),
        sa.Column('includes_unit_breakdown', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('flagged', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('debt_id', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['worker_id'], ['workers.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('receipts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_receipts_company_id'), ['company_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_receipts_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_receipts_worker_id'), ['worker_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_receipts_flagged'), ['flagged'], unique=False)
        batch_op.create_index(batch_op.f('ix_receipts_debt_id'), ['debt_id'], unique=False)
        batch_op.create_index('ix_receipts_company_created', ['company_id', 'created_at'], unique=False)
        batch_op.create_index('ix_receipts_company_flagged', ['company_id', 'flagged'], unique=False)

    op.create_table('receipt_details',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('receipt_id', sa.String(length=36), nullable=False),
        sa.Column('inventory_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('atomic_quantity', sa.Float(), nullable=True),
        sa.Column('cost_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('sales_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('conversion_rate', sa.Float(), nullable=False, server_default='1'),
        sa.Column('needs_conversion', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('original_unit', sa.String(length=32), nullable=True),
        sa.Column('original_quantity', sa.Float(), nullable=True),
        sa.Column('atomic_unit', sa.String(length=32), nullable=True),
        sa.Column('loss', sa.Float(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['receipt_id'], ['receipts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('receipt_details', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_receipt_details_receipt_id'), ['receipt_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_receipt_details_inventory_id'), ['inventory_id'], unique=False)

    # ==========================================================================
    # 4. DEBTS
    # ==========================================================================
    op.create_table('debts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('worker_id', sa.Integer(), nullable=True),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('receipt_id', sa.String(length=36), nullable=True),
        sa.Column('amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['worker_id'], ['workers.id'], ),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['receipt_id'], ['receipts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('debts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_debts_company_id'), ['company_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_debts_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_debts_receipt_id'), ['receipt_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_debts_status'), ['status'], unique=False)
        batch_op.create_index('ix_debts_customer_created', ['customer_id', 'created_at'], unique=False)
        batch_op.create_index('ix_debts_company_status', ['company_id', 'status'], unique=False)

    op.create_table('debt_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('debt_id', sa.Integer(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('amount_paid', sa.Float(), nullable=False),
        sa.Column('worker_id', sa.Integer(), nullable=True),
        sa.Column('payment_method', sa.String(length=32), nullable=True),
        sa.ForeignKeyConstraint(['debt_id'], ['debts.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['worker_id'], ['workers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('debt_payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_debt_payments_debt_id'), ['debt_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_debt_payments_occurred_at'), ['occurred_at'], unique=False)
        batch_op.create_index('ix_debt_payments_debt_occurred', ['debt_id', 'occurred_at'], unique=False)


def downgrade():
    # Drop tables in reverse order of creation (respect foreign keys)
    op.drop_table('debt_payments')
    op.drop_table('debts')
    op.drop_table('receipt_details')
    op.drop_table('receipts')
    op.drop_table('notifications')
    op.drop_table('stock_transactions')
    op.drop_table('breakdown_history')
    op.drop_table('unit_conversions')
    op.drop_table('inventory_items')
    op.drop_table('workers')
    op.drop_table('customers')
    op.drop_table('companies')
