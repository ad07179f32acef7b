from models.audit_log import AuditLog
from models.business_partners import BusinessPartner
from models.inventory_items import InventoryItem
from models.inventory_item_audit import InventoryItemAudit
from models.materials_to_order import MaterialsToOrder, MaterialsToOrderItem
from models.purchase_orders import PurchaseOrder, PurchaseOrderStatus
from models.purchase_order_lines import PurchaseOrderLine

__all__ = ['AuditLog', 'BusinessPartner', 'InventoryItem', 'InventoryItemAudit', 'MaterialsToOrder', 'MaterialsToOrderItem', 'PurchaseOrder', 'PurchaseOrderLine', 'PurchaseOrderStatus',]
