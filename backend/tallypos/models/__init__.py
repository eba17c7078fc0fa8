from .tenancy import Company
from .people import Customer, Worker
from .inventory import InventoryItem, UnitConversion, BreakdownHistory, StockTransaction, Notification
from .receipts import Receipt, ReceiptDetail
from .debts import Debt, DebtPayment

__all__ = [
    'Company',
    'Customer', 'Worker',
    'InventoryItem', 'UnitConversion', 'BreakdownHistory', 'StockTransaction', 'Notification',
    'Receipt', 'ReceiptDetail',
    'Debt', 'DebtPayment',
]
