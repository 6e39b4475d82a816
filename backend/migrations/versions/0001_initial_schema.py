"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17 00:00:00.000000

Creates the full stock ledger schema:
- organizations / users / session_tokens: tenancy and auth
- categories / brands / suppliers: catalog lookups
- arrivages: shipments with denormalized totals
- products: counters (quantity_received, quantity_sold) + version_id
- stock_movements: append-only ledger, one row per counter change
- sales / expenses / settings
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def _updated_at():
    return sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # organizations / users / session_tokens
    # ============================================================================
    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_organizations_code', 'organizations', ['code'], unique=True)
    op.create_index('ix_organizations_is_active', 'organizations', ['is_active'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('locale', sa.String(length=5), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _created_at(),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_org_id', 'users', ['org_id'])
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        _created_at(),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_org_id', 'session_tokens', ['org_id'])
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])

    # ============================================================================
    # catalog lookups
    # ============================================================================
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('name_fr', sa.String(length=100), nullable=True),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('target_margin', sa.Numeric(5, 2), nullable=True),
        sa.Column('min_margin', sa.Numeric(5, 2), nullable=True),
        sa.Column('color', sa.String(length=16), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'name', name='uq_categories_org_name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_categories_org_id', 'categories', ['org_id'])

    op.create_table(
        'brands',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('country', sa.String(length=64), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'name', name='uq_brands_org_name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_brands_org_id', 'brands', ['org_id'])

    op.create_table(
        'suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('contact_info', sa.String(length=500), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'name', name='uq_suppliers_org_name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_suppliers_org_id', 'suppliers', ['org_id'])

    # ============================================================================
    # arrivages: shipments
    # ============================================================================
    op.create_table(
        'arrivages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('reference', sa.String(length=100), nullable=False),
        sa.Column('source', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('exchange_rate', sa.Numeric(10, 4), nullable=False),
        sa.Column('purchase_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ship_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('received_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('shipping_cost_eur_cents', sa.Integer(), nullable=False),
        sa.Column('packaging_cost_eur_cents', sa.Integer(), nullable=False),
        sa.Column('total_cost_eur_cents', sa.Integer(), nullable=False),
        sa.Column('total_cost_dh_cents', sa.Integer(), nullable=False),
        sa.Column('product_count', sa.Integer(), nullable=False),
        sa.Column('total_units', sa.Integer(), nullable=False),
        sa.Column('notes', sa.String(length=500), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'reference', name='uq_arrivages_org_reference'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_arrivages_org_id', 'arrivages', ['org_id'])

    # ============================================================================
    # products: stock = quantity_received - quantity_sold
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('brand_id', sa.Integer(), nullable=True),
        sa.Column('arrivage_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('purchase_source', sa.String(length=16), nullable=False),
        sa.Column('purchase_price_eur_cents', sa.Integer(), nullable=True),
        sa.Column('purchase_price_mad_cents', sa.Integer(), nullable=False),
        sa.Column('selling_price_cents', sa.Integer(), nullable=False),
        sa.Column('promo_price_cents', sa.Integer(), nullable=True),
        sa.Column('quantity_received', sa.Integer(), nullable=False),
        sa.Column('quantity_sold', sa.Integer(), nullable=False),
        sa.Column('reorder_level', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint('quantity_received >= 0', name='ck_products_received_nonneg'),
        sa.CheckConstraint('quantity_sold >= 0', name='ck_products_sold_nonneg'),
        sa.CheckConstraint('quantity_sold <= quantity_received', name='ck_products_stock_nonneg'),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.ForeignKeyConstraint(['brand_id'], ['brands.id']),
        sa.ForeignKeyConstraint(['arrivage_id'], ['arrivages.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_org_id', 'products', ['org_id'])
    op.create_index('ix_products_category_id', 'products', ['category_id'])
    op.create_index('ix_products_arrivage_id', 'products', ['arrivage_id'])
    op.create_index('ix_products_org_name', 'products', ['org_id', 'name'])
    op.create_index('ix_products_org_active', 'products', ['org_id', 'is_active'])

    # ============================================================================
    # stock_movements: append-only ledger
    # ============================================================================
    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('previous_qty', sa.Integer(), nullable=False),
        sa.Column('new_qty', sa.Integer(), nullable=False),
        sa.Column('reference', sa.String(length=200), nullable=True),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.CheckConstraint('new_qty = previous_qty + quantity', name='ck_movements_arithmetic'),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_movements_org_id', 'stock_movements', ['org_id'])
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_type', 'stock_movements', ['type'])
    op.create_index('ix_stock_movements_sale_id', 'stock_movements', ['sale_id'])
    op.create_index('ix_stock_movements_user_id', 'stock_movements', ['user_id'])
    op.create_index('ix_movements_product_created', 'stock_movements', ['product_id', 'created_at'])

    # ============================================================================
    # sales / expenses / settings
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_per_unit_cents', sa.Integer(), nullable=False),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('pricing_mode', sa.String(length=16), nullable=False),
        sa.Column('is_promo', sa.Boolean(), nullable=False),
        sa.Column('sale_date', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint('quantity >= 1', name='ck_sales_quantity_positive'),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_org_id', 'sales', ['org_id'])
    op.create_index('ix_sales_product_id', 'sales', ['product_id'])
    op.create_index('ix_sales_org_date', 'sales', ['org_id', 'sale_date'])

    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('arrivage_id', sa.Integer(), nullable=True),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('amount_eur_cents', sa.Integer(), nullable=False),
        sa.Column('amount_dh_cents', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['arrivage_id'], ['arrivages.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_expenses_org_id', 'expenses', ['org_id'])
    op.create_index('ix_expenses_arrivage_id', 'expenses', ['arrivage_id'])
    op.create_index('ix_expenses_org_date', 'expenses', ['org_id', 'date'])

    op.create_table(
        'settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('value', sa.String(length=255), nullable=False),
        _updated_at(),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'key', name='uq_settings_org_key'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_settings_org_id', 'settings', ['org_id'])


def downgrade():
    for table in (
        'settings',
        'expenses',
        'sales',
        'stock_movements',
        'products',
        'arrivages',
        'suppliers',
        'brands',
        'categories',
        'session_tokens',
        'users',
        'organizations',
    ):
        op.drop_table(table)
