"""Phone inventory: phones, sales, returns, credits, credit payments

Revision ID: 20261001_phone_inventory
Revises:
Create Date: 2026-10-01

Every table is scoped by owner_id. IMEI uniqueness is per owner.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261001_phone_inventory'
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
    # 1. PHONES
    # ==========================================================================
    op.create_table('phones',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('imei1', sa.String(length=32), nullable=False),
        sa.Column('imei2', sa.String(length=32), nullable=True),
        sa.Column('model_name', sa.String(length=120), nullable=True),
        sa.Column('storage', sa.String(length=32), nullable=True),
        sa.Column('color', sa.String(length=64), nullable=True),
        sa.Column('condition', sa.String(length=64), nullable=True),
        sa.Column('unlock_status', sa.String(length=64), nullable=True),
        sa.Column('battery_health', sa.String(length=16), nullable=True),
        sa.Column('vendor', sa.String(length=120), nullable=True),
        sa.Column('purchase_date', sa.String(length=32), nullable=True),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('sale_date', sa.String(length=32), nullable=True),
        sa.Column('sale_price_cents', sa.Integer(), nullable=True),
        sa.Column('receipt_number', sa.String(length=32), nullable=True),
        sa.Column('customer_name', sa.String(length=120), nullable=True),
        sa.Column('payment_method', sa.String(length=32), nullable=True),
        sa.Column('is_credit', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('credit_received_cents', sa.Integer(), nullable=True),
        sa.Column('credit_remaining_cents', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_id', 'imei1', name='uq_phones_owner_imei1'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('phones', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_phones_owner_id'), ['owner_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_phones_imei2'), ['imei2'], unique=False)
        batch_op.create_index('ix_phones_owner_status', ['owner_id', 'status'], unique=False)
        batch_op.create_index('ix_phones_owner_model', ['owner_id', 'model_name'], unique=False)

    # ==========================================================================
    # 2. SALES
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('phone_id', sa.Integer(), nullable=False),
        sa.Column('sale_price_cents', sa.Integer(), nullable=False),
        sa.Column('sale_date', sa.String(length=32), nullable=False),
        sa.Column('customer_name', sa.String(length=120), nullable=True),
        sa.Column('payment_method', sa.String(length=32), nullable=True),
        sa.Column('profit_cents', sa.Integer(), nullable=False),
        sa.Column('receipt_number', sa.String(length=32), nullable=False),
        sa.Column('is_credit', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('credit_received_cents', sa.Integer(), nullable=True),
        sa.Column('credit_remaining_cents', sa.Integer(), nullable=True),
        sa.Column('is_resale', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('original_return_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['phone_id'], ['phones.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_owner_id'), ['owner_id'], unique=False)
        batch_op.create_index('ix_sales_owner_phone', ['owner_id', 'phone_id'], unique=False)
        batch_op.create_index('ix_sales_receipt_number', ['receipt_number'], unique=False)

    # ==========================================================================
    # 3. RETURNS
    # ==========================================================================
    op.create_table('returns',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('phone_id', sa.Integer(), nullable=False),
        sa.Column('return_type', sa.String(length=16), nullable=False),
        sa.Column('return_price_cents', sa.Integer(), nullable=False),
        sa.Column('new_price_cents', sa.Integer(), nullable=False),
        sa.Column('return_reason', sa.String(length=255), nullable=True),
        sa.Column('return_date', sa.String(length=32), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['phone_id'], ['phones.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('returns', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_returns_owner_id'), ['owner_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_returns_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index('ix_returns_owner_phone', ['owner_id', 'phone_id'], unique=False)

    # ==========================================================================
    # 4. CREDITS AND PAYMENTS
    # ==========================================================================
    op.create_table('credits',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('phone_id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=120), nullable=True),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('received_amount_cents', sa.Integer(), nullable=False),
        sa.Column('remaining_amount_cents', sa.Integer(), nullable=False),
        sa.Column('sale_date', sa.String(length=32), nullable=True),
        sa.Column('payment_method', sa.String(length=32), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['phone_id'], ['phones.id'], ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('credits', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_credits_owner_id'), ['owner_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_credits_phone_id'), ['phone_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_credits_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index('ix_credits_owner_status', ['owner_id', 'status'], unique=False)

    op.create_table('credit_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('credit_id', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('payment_date', sa.String(length=32), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['credit_id'], ['credits.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('credit_payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_credit_payments_owner_id'), ['owner_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_credit_payments_credit_id'), ['credit_id'], unique=False)


def downgrade():
    op.drop_table('credit_payments')
    op.drop_table('credits')
    op.drop_table('returns')
    op.drop_table('sales')
    op.drop_table('phones')
