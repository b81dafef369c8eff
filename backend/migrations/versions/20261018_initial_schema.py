"""Initial schema: users, reference data, catalog, sales, purchases, expenses, tasks

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False)


def upgrade():
    # ==========================================================================
    # AUTH
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _created_at(),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index('ix_users_username', ['username'], unique=True)

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_session_tokens_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_session_tokens'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index('ix_session_tokens_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_session_tokens_token_hash', ['token_hash'], unique=True)

    # ==========================================================================
    # REFERENCE DATA
    # ==========================================================================
    for table in ('categories', 'locations', 'procedures'):
        op.create_table(table,
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            _created_at(),
            sa.PrimaryKeyConstraint('id', name=f'pk_{table}'),
            sa.UniqueConstraint('name', name=f'uq_{table}_name'),
            sqlite_autoincrement=True
        )

    op.create_table('materials',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('current_unit_cost', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('unit_of_measure', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id', name='pk_materials'),
        sa.UniqueConstraint('name', name='uq_materials_name'),
        sqlite_autoincrement=True
    )

    op.create_table('customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=128), nullable=False),
        sa.Column('last_name', sa.String(length=128), nullable=False),
        sa.Column('gender', sa.String(length=16), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('tin', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('first_sale_date', sa.Date(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_customers'),
        sa.UniqueConstraint('email', name='uq_customers_email'),
        sa.UniqueConstraint('tin', name='uq_customers_tin'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('customers', schema=None) as batch_op:
        batch_op.create_index('ix_customers_is_active', ['is_active'], unique=False)

    op.create_table('suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('tin', sa.String(length=32), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id', name='pk_suppliers'),
        sa.UniqueConstraint('tin', name='uq_suppliers_tin'),
        sqlite_autoincrement=True
    )

    # ==========================================================================
    # CATALOG
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('minutes_to_make', sa.Integer(), nullable=False),
        sa.Column('suggested_retail_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('suggested_wholesale_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('final_retail_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('final_wholesale_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=True),
        sa.Column('low_stock_alert', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], name='fk_products_category_id_categories'),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_code', ['code'], unique=True)
        batch_op.create_index('ix_products_category_id', ['category_id'], unique=False)
        batch_op.create_index('ix_products_active_category', ['is_active', 'category_id'], unique=False)

    op.create_table('product_materials',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Numeric(precision=10, scale=4), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_product_materials_product_id_products'),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id'], name='fk_product_materials_material_id_materials'),
        sa.PrimaryKeyConstraint('id', name='pk_product_materials'),
        sa.UniqueConstraint('product_id', 'material_id', name='uq_product_materials_product_material'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('product_materials', schema=None) as batch_op:
        batch_op.create_index('ix_product_materials_product_id', ['product_id'], unique=False)
        batch_op.create_index('ix_product_materials_material_id', ['material_id'], unique=False)

    op.create_table('product_procedures',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('procedure_id', sa.Integer(), nullable=True),
        sa.Column('cost', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_product_procedures_product_id_products'),
        sa.ForeignKeyConstraint(['procedure_id'], ['procedures.id'], name='fk_product_procedures_procedure_id_procedures'),
        sa.PrimaryKeyConstraint('id', name='pk_product_procedures'),
        sa.UniqueConstraint('product_id', 'procedure_id', name='uq_product_procedures_product_procedure'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('product_procedures', schema=None) as batch_op:
        batch_op.create_index('ix_product_procedures_product_id', ['product_id'], unique=False)
        batch_op.create_index('ix_product_procedures_procedure_id', ['procedure_id'], unique=False)

    # ==========================================================================
    # SALES
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('sale_date', sa.Date(), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('is_wholesale', sa.Boolean(), nullable=False),
        sa.Column('packaging_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('suggested_total_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('final_total_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('discount_percentage', sa.Numeric(precision=7, scale=2), nullable=False),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], name='fk_sales_customer_id_customers'),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id'], name='fk_sales_location_id_locations'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], name='fk_sales_created_by_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_sales'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index('ix_sales_customer_id', ['customer_id'], unique=False)
        batch_op.create_index('ix_sales_sale_date', ['sale_date'], unique=False)
        batch_op.create_index('ix_sales_location_date', ['location_id', 'sale_date'], unique=False)

    op.create_table('sale_products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('product_description_snapshot', sa.String(length=512), nullable=False),
        sa.Column('suggested_price_at_the_time', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('price_at_the_time', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], name='fk_sale_products_sale_id_sales'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_sale_products_product_id_products'),
        sa.PrimaryKeyConstraint('id', name='pk_sale_products'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_products', schema=None) as batch_op:
        batch_op.create_index('ix_sale_products_sale_id', ['sale_id'], unique=False)
        batch_op.create_index('ix_sale_products_product_id', ['product_id'], unique=False)

    # ==========================================================================
    # PURCHASES AND EXPENSES
    # ==========================================================================
    op.create_table('purchases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('purchase_date', sa.Date(), nullable=False),
        sa.Column('total_cost', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], name='fk_purchases_supplier_id_suppliers'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], name='fk_purchases_created_by_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_purchases'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchases', schema=None) as batch_op:
        batch_op.create_index('ix_purchases_supplier_id', ['supplier_id'], unique=False)
        batch_op.create_index('ix_purchases_purchase_date', ['purchase_date'], unique=False)

    op.create_table('purchase_materials',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=10, scale=4), nullable=False),
        sa.Column('price_at_the_time', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('material_description_snapshot', sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id'], name='fk_purchase_materials_purchase_id_purchases'),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id'], name='fk_purchase_materials_material_id_materials'),
        sa.PrimaryKeyConstraint('id', name='pk_purchase_materials'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchase_materials', schema=None) as batch_op:
        batch_op.create_index('ix_purchase_materials_purchase_id', ['purchase_id'], unique=False)
        batch_op.create_index('ix_purchase_materials_material_id', ['material_id'], unique=False)

    op.create_table('expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('expense_date', sa.Date(), nullable=False),
        sa.Column('expense_type', sa.String(length=32), nullable=False),
        sa.Column('purchase_id', sa.Integer(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id'], name='fk_expenses_purchase_id_purchases'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], name='fk_expenses_created_by_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_expenses'),
        sa.UniqueConstraint('purchase_id', name='uq_expenses_purchase_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('expenses', schema=None) as batch_op:
        batch_op.create_index('ix_expenses_expense_date', ['expense_date'], unique=False)

    # ==========================================================================
    # TASKS
    # ==========================================================================
    op.create_table('todo_tasks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('date_completed', sa.Date(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id', name='pk_todo_tasks'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('todo_tasks', schema=None) as batch_op:
        batch_op.create_index('ix_todo_tasks_status_date', ['status', 'date'], unique=False)


def downgrade():
    for table in (
        'todo_tasks',
        'expenses',
        'purchase_materials',
        'purchases',
        'sale_products',
        'sales',
        'product_procedures',
        'product_materials',
        'products',
        'suppliers',
        'customers',
        'materials',
        'procedures',
        'locations',
        'categories',
        'session_tokens',
        'users',
    ):
        op.drop_table(table)
