"""Initial schema: users, parties, sales, purchases, dual-currency invoices, containers, daily ledger

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration creates:
1. Users and session tokens
2. Customers and suppliers
3. Document sequences (invoice numbering)
4. Sales invoices and sale payments
5. Purchases
6. Dual-currency invoices (freight, transport, Dubai transport, Dubai clearance) and payments
7. Container statements, product lines and expenses
8. Daily ledgers and ledger entries
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]


def upgrade():
    # ==========================================================================
    # 1. USERS AND SESSIONS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('department', sa.String(length=64), nullable=True),
        sa.Column('position', sa.String(length=64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_email'), ['email'], unique=False)

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_session_tokens_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_token_hash'), ['token_hash'], unique=True)
        batch_op.create_index(batch_op.f('ix_session_tokens_expires_at'), ['expires_at'], unique=False)
        batch_op.create_index('ix_session_tokens_user_active', ['user_id', 'is_revoked'], unique=False)

    # ==========================================================================
    # 2. CUSTOMERS AND SUPPLIERS
    # ==========================================================================
    for table, extra in (
        ('customers', sa.Column('trn', sa.String(length=32), nullable=True)),
        ('suppliers', sa.Column('marka', sa.String(length=64), nullable=True)),
    ):
        op.create_table(table,
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('ename', sa.String(length=128), nullable=False),
            sa.Column('uname', sa.String(length=128), nullable=True),
            sa.Column('email', sa.String(length=255), nullable=True),
            sa.Column('number', sa.String(length=32), nullable=True),
            extra,
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
            sa.Column('created_by_user_id', sa.Integer(), nullable=False),
            sa.Column('updated_by_user_id', sa.Integer(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
            sa.ForeignKeyConstraint(['updated_by_user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('ename', name=f'uq_{table}_ename'),
            sqlite_autoincrement=True
        )
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.create_index(batch_op.f(f'ix_{table}_ename'), ['ename'], unique=False)
            batch_op.create_index(batch_op.f(f'ix_{table}_is_active'), ['is_active'], unique=False)

    # ==========================================================================
    # 3. DOCUMENT SEQUENCES
    # ==========================================================================
    op.create_table('document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', name='uq_doc_sequences_type'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('document_sequences', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_document_sequences_document_type'), ['document_type'], unique=False)

    # ==========================================================================
    # 4. SALES
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=64), nullable=False),
        sa.Column('customer', sa.String(length=128), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('supplier', sa.String(length=128), nullable=True),
        sa.Column('container_no', sa.String(length=64), nullable=True),
        sa.Column('product', sa.String(length=128), nullable=False),
        sa.Column('marka', sa.String(length=64), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('invoice_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False, server_default='0'),
        sa.Column('return_quantity', sa.Float(), nullable=False, server_default='0'),
        sa.Column('rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('vat_percentage', sa.Float(), nullable=False, server_default='0'),
        sa.Column('discount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('subtotal', sa.Float(), nullable=False, server_default='0'),
        sa.Column('vat_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('final_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('received_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('outstanding_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='unpaid'),
        sa.Column('last_payment_date', sa.Date(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=False),
        sa.Column('updated_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['updated_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_number', name='uq_sales_invoice_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_customer'), ['customer'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_container_no'), ['container_no'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_product'), ['product'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_invoice_date'), ['invoice_date'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_status'), ['status'], unique=False)
        batch_op.create_index('ix_sales_customer_status', ['customer', 'status'], unique=False)

    op.create_table('sale_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('payment_type', sa.String(length=16), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('reference', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='COMPLETED'),
        sa.Column('received_by_user_id', sa.Integer(), nullable=False),
        sa.Column('reversed_by_user_id', sa.Integer(), nullable=True),
        sa.Column('reversed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reversal_reason', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['received_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['reversed_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_payments_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sale_payments_payment_date'), ['payment_date'], unique=False)
        batch_op.create_index('ix_sale_payments_sale_status', ['sale_id', 'status'], unique=False)

    # ==========================================================================
    # 5. PURCHASES
    # ==========================================================================
    op.create_table('purchases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('container_no', sa.String(length=64), nullable=False),
        sa.Column('product', sa.String(length=128), nullable=False),
        sa.Column('supplier', sa.String(length=128), nullable=True),
        sa.Column('purchase_date', sa.Date(), nullable=True),
        sa.Column('quantity', sa.Float(), nullable=False, server_default='0'),
        sa.Column('rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('transport', sa.Float(), nullable=False, server_default='0'),
        sa.Column('freight', sa.Float(), nullable=False, server_default='0'),
        sa.Column('e_form', sa.Float(), nullable=False, server_default='0'),
        sa.Column('miscellaneous', sa.Float(), nullable=False, server_default='0'),
        sa.Column('transfer_rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('subtotal_pkr', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_pkr', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_aed', sa.Float(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=False),
        sa.Column('updated_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['updated_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchases', schema=None) as batch_op:
        batch_op.create_index('ix_purchases_container_no', ['container_no'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchases_purchase_date'), ['purchase_date'], unique=False)

    # ==========================================================================
    # 6. DUAL-CURRENCY INVOICES
    # ==========================================================================
    op.create_table('dual_currency_invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=32), nullable=False),
        sa.Column('invoice_number', sa.String(length=64), nullable=False),
        sa.Column('agent', sa.String(length=128), nullable=False),
        sa.Column('container_no', sa.String(length=64), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('invoice_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('conversion_rate', sa.Float(), nullable=False),
        sa.Column('amount_pkr', sa.Float(), nullable=False, server_default='0'),
        sa.Column('amount_aed', sa.Float(), nullable=False, server_default='0'),
        sa.Column('paid_amount_pkr', sa.Float(), nullable=False, server_default='0'),
        sa.Column('paid_amount_aed', sa.Float(), nullable=False, server_default='0'),
        sa.Column('outstanding_amount_pkr', sa.Float(), nullable=False, server_default='0'),
        sa.Column('outstanding_amount_aed', sa.Float(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='unpaid'),
        sa.Column('last_payment_date', sa.Date(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=False),
        sa.Column('updated_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['updated_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('kind', 'invoice_number', name='uq_dual_invoices_kind_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('dual_currency_invoices', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_dual_currency_invoices_kind'), ['kind'], unique=False)
        batch_op.create_index(batch_op.f('ix_dual_currency_invoices_agent'), ['agent'], unique=False)
        batch_op.create_index(batch_op.f('ix_dual_currency_invoices_invoice_date'), ['invoice_date'], unique=False)
        batch_op.create_index(batch_op.f('ix_dual_currency_invoices_status'), ['status'], unique=False)
        batch_op.create_index('ix_dual_invoices_kind_status', ['kind', 'status'], unique=False)

    op.create_table('dual_currency_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('payment_type', sa.String(length=16), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('reference', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='COMPLETED'),
        sa.Column('received_by_user_id', sa.Integer(), nullable=False),
        sa.Column('reversed_by_user_id', sa.Integer(), nullable=True),
        sa.Column('reversed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reversal_reason', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['invoice_id'], ['dual_currency_invoices.id'], ),
        sa.ForeignKeyConstraint(['received_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['reversed_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('dual_currency_payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_dual_currency_payments_invoice_id'), ['invoice_id'], unique=False)
        batch_op.create_index('ix_dual_payments_invoice_status', ['invoice_id', 'status'], unique=False)

    # ==========================================================================
    # 7. CONTAINER STATEMENTS
    # ==========================================================================
    op.create_table('container_statements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('container_no', sa.String(length=64), nullable=False),
        sa.Column('commission_percent', sa.Float(), nullable=False, server_default='0'),
        sa.Column('gross_sale', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_expenses', sa.Float(), nullable=False, server_default='0'),
        sa.Column('net_sale', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_quantity', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_by_user_id', sa.Integer(), nullable=False),
        sa.Column('updated_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['updated_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('container_no', name='uq_container_statements_container_no'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('container_statements', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_container_statements_container_no'), ['container_no'], unique=False)

    op.create_table('container_product_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('statement_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product', sa.String(length=128), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit_price', sa.Float(), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['statement_id'], ['container_statements.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('container_product_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_container_product_lines_statement_id'), ['statement_id'], unique=False)

    op.create_table('container_expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('statement_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('is_auto_generated', sa.Boolean(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['statement_id'], ['container_statements.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('container_expenses', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_container_expenses_statement_id'), ['statement_id'], unique=False)

    # ==========================================================================
    # 8. DAILY LEDGER
    # ==========================================================================
    op.create_table('daily_ledgers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ledger_date', sa.Date(), nullable=False),
        sa.Column('opening_cash', sa.Float(), nullable=False, server_default='0'),
        sa.Column('opening_bank', sa.Float(), nullable=False, server_default='0'),
        sa.Column('receipts_cash', sa.Float(), nullable=False, server_default='0'),
        sa.Column('receipts_bank', sa.Float(), nullable=False, server_default='0'),
        sa.Column('payments_cash', sa.Float(), nullable=False, server_default='0'),
        sa.Column('payments_bank', sa.Float(), nullable=False, server_default='0'),
        sa.Column('auto_sales_inflow', sa.Float(), nullable=False, server_default='0'),
        sa.Column('closing_cash', sa.Float(), nullable=False, server_default='0'),
        sa.Column('closing_bank', sa.Float(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_closed', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closed_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['closed_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ledger_date', name='uq_daily_ledgers_date'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('daily_ledgers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_daily_ledgers_ledger_date'), ['ledger_date'], unique=False)

    op.create_table('ledger_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ledger_id', sa.Integer(), nullable=False),
        sa.Column('entry_type', sa.String(length=16), nullable=False),
        sa.Column('mode', sa.String(length=8), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('reference_type', sa.String(length=32), nullable=False, server_default='manual'),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['ledger_id'], ['daily_ledgers.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('ledger_entries', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_ledger_entries_ledger_id'), ['ledger_id'], unique=False)
        batch_op.create_index('ix_ledger_entries_reference', ['reference_type', 'reference_id'], unique=False)


def downgrade():
    for table in (
        'ledger_entries',
        'daily_ledgers',
        'container_expenses',
        'container_product_lines',
        'container_statements',
        'dual_currency_payments',
        'dual_currency_invoices',
        'purchases',
        'sale_payments',
        'sales',
        'document_sequences',
        'suppliers',
        'customers',
        'session_tokens',
        'users',
    ):
        op.drop_table(table)
