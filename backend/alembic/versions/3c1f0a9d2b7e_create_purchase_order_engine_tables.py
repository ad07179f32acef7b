"""create purchase order engine tables

Revision ID: 3c1f0a9d2b7e
Revises:
Create Date: 2026-10-18 10:12:44.318220

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c1f0a9d2b7e'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp_columns():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('updated_by', sa.String(), nullable=True),
    ]


def upgrade() -> None:
    """Create the order, line, stock ledger and supporting tables."""
    op.create_table(
        'business_partners',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('contact_name', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('status', sa.Enum('ACTIVE', 'INACTIVE', 'BLOCKED', name='partnerstatus'), nullable=False),
        sa.Column('is_vendor', sa.Boolean(), nullable=False),
        *_timestamp_columns(),
    )
    op.create_index('ix_business_partners_id', 'business_partners', ['id'])
    op.create_index('ix_business_partners_tenant_id', 'business_partners', ['tenant_id'])

    op.create_table(
        'inventory_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('unit', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('current_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamp_columns(),
        sa.UniqueConstraint('name', 'tenant_id', name='_inventory_items_name_tenant_uc'),
    )
    op.create_index('ix_inventory_items_id', 'inventory_items', ['id'])
    op.create_index('ix_inventory_items_tenant_id', 'inventory_items', ['tenant_id'])

    op.create_table(
        'materials_to_order',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('project_name', sa.String(), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'PARTIALLY_ORDERED', 'FULLY_ORDERED', name='materialstoorderstatus'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamp_columns(),
    )
    op.create_index('ix_materials_to_order_id', 'materials_to_order', ['id'])
    op.create_index('ix_materials_to_order_tenant_id', 'materials_to_order', ['tenant_id'])

    op.create_table(
        'materials_to_order_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('mto_id', sa.Integer(), sa.ForeignKey('materials_to_order.id', ondelete='CASCADE'), nullable=False),
        sa.Column('inventory_item_id', sa.Integer(), sa.ForeignKey('inventory_items.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('quantity_ordered_po', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.UniqueConstraint('mto_id', 'inventory_item_id', name='_mto_item_uc'),
    )
    op.create_index('ix_materials_to_order_items_id', 'materials_to_order_items', ['id'])
    op.create_index('ix_materials_to_order_items_mto_id', 'materials_to_order_items', ['mto_id'])
    op.create_index('ix_materials_to_order_items_tenant_id', 'materials_to_order_items', ['tenant_id'])

    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('order_number', sa.String(length=64), nullable=False),
        sa.Column('status', sa.Enum('DRAFT', 'ORDERED', 'PARTIALLY_RECEIVED', 'FULLY_RECEIVED', 'CANCELLED', name='purchaseorderstatus'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('total_amount', sa.Numeric(12, 3), nullable=True),
        sa.Column('delivery_charge', sa.Numeric(12, 3), nullable=True),
        sa.Column('ordered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('invoice_date', sa.Date(), nullable=True),
        sa.Column('invoice_url', sa.String(length=500), nullable=True),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('business_partners.id'), nullable=True),
        sa.Column('mto_id', sa.Integer(), sa.ForeignKey('materials_to_order.id', ondelete='SET NULL'), nullable=True),
        sa.Column('ordered_by', sa.String(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        *_timestamp_columns(),
        sa.UniqueConstraint('tenant_id', 'order_number', name='_tenant_order_number_uc'),
    )
    op.create_index('ix_purchase_orders_id', 'purchase_orders', ['id'])
    op.create_index('ix_purchase_orders_tenant_id', 'purchase_orders', ['tenant_id'])

    op.create_table(
        'purchase_order_lines',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('purchase_order_id', sa.Integer(), sa.ForeignKey('purchase_orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('inventory_item_id', sa.Integer(), sa.ForeignKey('inventory_items.id'), nullable=False),
        sa.Column('quantity_ordered', sa.Integer(), nullable=False),
        sa.Column('quantity_received', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unit_price', sa.Numeric(12, 3), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.UniqueConstraint('purchase_order_id', 'inventory_item_id', name='_po_line_item_uc'),
        sa.CheckConstraint('quantity_ordered >= 0', name='ck_po_line_qty_ordered_nonneg'),
        sa.CheckConstraint('quantity_received >= 0', name='ck_po_line_qty_received_nonneg'),
    )
    op.create_index('ix_purchase_order_lines_id', 'purchase_order_lines', ['id'])
    op.create_index('ix_purchase_order_lines_purchase_order_id', 'purchase_order_lines', ['purchase_order_id'])
    op.create_index('ix_purchase_order_lines_tenant_id', 'purchase_order_lines', ['tenant_id'])

    op.create_table(
        'inventory_item_audit',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('inventory_item_id', sa.Integer(), sa.ForeignKey('inventory_items.id'), nullable=False),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('change_type', sa.String(), nullable=False),
        sa.Column('change_amount', sa.Integer(), nullable=False),
        sa.Column('old_quantity', sa.Integer(), nullable=False),
        sa.Column('new_quantity', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=True),
        sa.Column('purchase_order_line_id', sa.Integer(), nullable=True),
        sa.Column('changed_by', sa.String(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('note', sa.String(), nullable=True),
    )
    op.create_index('ix_inventory_item_audit_id', 'inventory_item_audit', ['id'])
    op.create_index('ix_inventory_item_audit_inventory_item_id', 'inventory_item_audit', ['inventory_item_id'])
    op.create_index('ix_inventory_item_audit_tenant_id', 'inventory_item_audit', ['tenant_id'])
    op.create_index('ix_inventory_item_audit_purchase_order_id', 'inventory_item_audit', ['purchase_order_id'])

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('table_name', sa.String(), nullable=False),
        sa.Column('record_id', sa.Integer(), nullable=False),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('changed_by', sa.String(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('old_values', sa.JSON(), nullable=True),
        sa.Column('new_values', sa.JSON(), nullable=True),
    )
    op.create_index('ix_audit_log_id', 'audit_log', ['id'])
    op.create_index('ix_audit_log_tenant_id', 'audit_log', ['tenant_id'])


def downgrade() -> None:
    """Drop the engine tables in dependency order."""
    for table in (
        'audit_log',
        'inventory_item_audit',
        'purchase_order_lines',
        'purchase_orders',
        'materials_to_order_items',
        'materials_to_order',
        'inventory_items',
        'business_partners',
    ):
        op.drop_table(table)
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for enum_name in ('purchaseorderstatus', 'materialstoorderstatus', 'partnerstatus'):
            op.execute(f'DROP TYPE IF EXISTS {enum_name}')
