"""
Invoice/payment computation core.

Pure functions and immutable values only: no database, no Flask, no
logging. Services load records, call into here, and persist the results.
"""

from .amounts import (
    ConversionDirection,
    PurchaseTotal,
    SalesAmount,
    ceil_to_cents,
    compute_dual_currency_amount,
    compute_purchase_total,
    compute_sales_amount,
    default_due_date,
    to_amount,
)
from .containers import (
    ExpenseLine,
    GroupedProductLine,
    ProductLine,
    Settlement,
    add_expense,
    aggregate_product_lines,
    commission_expense,
    compute_settlement,
    refresh_commission,
    remove_expense,
)
from .dual_currency import (
    Currency,
    DualAmount,
    DualBalance,
    InvoiceKind,
    dual_balance,
    invoice_amounts,
)
from .errors import (
    AlreadySettledError,
    DomainError,
    OverpaymentError,
    UnauthorizedReversalError,
    ValidationError,
)
from .ledger import (
    EntryMode,
    EntryType,
    LedgerTotals,
    Movement,
    ReferenceType,
    compute_ledger_totals,
)
from .outstanding import (
    GroupBy,
    OutstandingInvoice,
    OutstandingPage,
    OutstandingQuery,
    aggregate_outstanding,
)
from .payments import (
    InvoiceBalance,
    PaymentEntry,
    PaymentMethod,
    PaymentResult,
    PaymentType,
    apply_payment,
    require_authorization,
    reverse_payment,
)
from .status import InvoiceStatus, derive_status

__all__ = [
    "ConversionDirection", "PurchaseTotal", "SalesAmount",
    "ceil_to_cents", "compute_dual_currency_amount", "compute_purchase_total",
    "compute_sales_amount", "default_due_date", "to_amount",
    "ExpenseLine", "GroupedProductLine", "ProductLine", "Settlement",
    "add_expense", "aggregate_product_lines", "commission_expense",
    "compute_settlement", "refresh_commission", "remove_expense",
    "Currency", "DualAmount", "DualBalance", "InvoiceKind", "dual_balance",
    "invoice_amounts",
    "AlreadySettledError", "DomainError", "OverpaymentError",
    "UnauthorizedReversalError", "ValidationError",
    "EntryMode", "EntryType", "LedgerTotals", "Movement", "ReferenceType",
    "compute_ledger_totals",
    "GroupBy", "OutstandingInvoice", "OutstandingPage", "OutstandingQuery",
    "aggregate_outstanding",
    "InvoiceBalance", "PaymentEntry", "PaymentMethod", "PaymentResult",
    "PaymentType", "apply_payment", "require_authorization", "reverse_payment",
    "InvoiceStatus", "derive_status",
]
