from .tenancy import Tenant, Branch, Warehouse
from .auth import User, Role, Permission, RolePermission, SessionToken
from .security import SecurityEvent
from .catalog import Product, Supplier, Customer
from .inventory import Stock, StockMovement
from .purchases import Purchase, PurchaseItem, PurchasePayment
from .sales import Sale, SaleItem
from .returns import PurchaseReturn, PurchaseReturnItem, SalesReturn, SalesReturnItem
from .documents import DocumentSequence

__all__ = [
    'Tenant', 'Branch', 'Warehouse',
    'User', 'Role', 'Permission', 'RolePermission', 'SessionToken',
    'SecurityEvent',
    'Product', 'Supplier', 'Customer',
    'Stock', 'StockMovement',
    'Purchase', 'PurchaseItem', 'PurchasePayment',
    'Sale', 'SaleItem',
    'PurchaseReturn', 'PurchaseReturnItem', 'SalesReturn', 'SalesReturnItem',
    'DocumentSequence',
]
