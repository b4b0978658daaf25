from .catalog import ItemType, Item
from .inventory import Inventory, StockIn, StockInDetail
from .sales import Sale, SaleDetail, SALE_STATUSES, PAYMENT_METHODS
from .customers import Customer
from .documents import DocumentSequence

__all__ = [
    'ItemType', 'Item',
    'Inventory', 'StockIn', 'StockInDetail',
    'Sale', 'SaleDetail', 'SALE_STATUSES', 'PAYMENT_METHODS',
    'Customer',
    'DocumentSequence',
]
