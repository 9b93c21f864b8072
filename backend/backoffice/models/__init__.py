from .catalog import Product, Service
from .transactions import Sale, SaleItem, Purchase, PurchaseItem
from .ledger import StockLedgerEntry, FinancialAdjustment

__all__ = [
    'Product', 'Service',
    'Sale', 'SaleItem', 'Purchase', 'PurchaseItem',
    'StockLedgerEntry', 'FinancialAdjustment',
]
