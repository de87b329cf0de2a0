from .auth import User, SessionToken, ROLE_ADMIN, ROLE_EMPLOYEE, VALID_ROLES
from .parties import Customer, Supplier
from .sales import Sale, SalePayment
from .purchases import Purchase
from .freight import DualCurrencyInvoice, DualCurrencyPayment
from .containers import ContainerStatement, ContainerProductLine, ContainerExpense
from .ledger import DailyLedger, LedgerEntry
from .documents import DocumentSequence

__all__ = [
    'User', 'SessionToken', 'ROLE_ADMIN', 'ROLE_EMPLOYEE', 'VALID_ROLES',
    'Customer', 'Supplier',
    'Sale', 'SalePayment',
    'Purchase',
    'DualCurrencyInvoice', 'DualCurrencyPayment',
    'ContainerStatement', 'ContainerProductLine', 'ContainerExpense',
    'DailyLedger', 'LedgerEntry',
    'DocumentSequence',
]
