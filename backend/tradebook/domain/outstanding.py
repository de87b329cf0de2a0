# Overview: Per-customer / per-product outstanding rollups with filtering, sorting and paging.

"""
Outstanding Aggregator

Read-side rollup behind the "who owes us money" views. Nothing here is
persisted; every call recomputes from the invoice states passed in.

ALGORITHM:
1. Keep invoices matching the optional status filter (no implicit
   "not paid" filter: paid invoices add 0 outstanding but still count).
2. Group by customer or product name. Keys are compared exactly as stored.
3. Roll each group up.
4. Filter groups by search substring and outstanding range, sort, page.
5. Summary totals cover every filtered group, not just the current page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable

from .errors import ValidationError
from .status import InvoiceStatus


class GroupBy(str, Enum):
    CUSTOMER = "customer"
    PRODUCT = "product"


SORT_FIELDS = {
    "name",
    "total_outstanding",
    "total_amount",
    "total_received",
    "invoice_count",
    "last_payment_date",
    "oldest_due_date",
}


@dataclass(frozen=True)
class OutstandingInvoice:
    """The slice of an invoice the aggregator needs. Status is pre-derived."""

    customer: str
    product: str
    final_amount: float
    received_amount: float
    outstanding_amount: float
    status: InvoiceStatus
    due_date: date | None = None
    last_payment_date: date | None = None


@dataclass(frozen=True)
class OutstandingQuery:
    group_by: GroupBy = GroupBy.CUSTOMER
    search: str | None = None
    min_amount: float | None = None
    max_amount: float | None = None
    status: InvoiceStatus | None = None
    sort_by: str = "total_outstanding"
    sort_order: str = "desc"
    page: int = 1
    limit: int = 10

    def validate(self) -> None:
        if self.sort_by not in SORT_FIELDS:
            raise ValidationError(
                f"Invalid sort field: {self.sort_by}. Must be one of {', '.join(sorted(SORT_FIELDS))}"
            )
        if self.sort_order not in ("asc", "desc"):
            raise ValidationError("sort_order must be asc or desc")
        if self.page < 1:
            raise ValidationError("page must be >= 1")
        if self.limit < 1:
            raise ValidationError("limit must be >= 1")
        if (
            self.min_amount is not None
            and self.max_amount is not None
            and self.min_amount > self.max_amount
        ):
            raise ValidationError("min_amount cannot be greater than max_amount")


@dataclass(frozen=True)
class OutstandingGroup:
    name: str
    total_outstanding: float
    total_amount: float
    total_received: float
    invoice_count: int
    unpaid_invoices: int
    partially_paid_invoices: int
    overdue_invoices: int
    paid_invoices: int
    last_payment_date: date | None
    oldest_due_date: date | None
    status: InvoiceStatus
    customer_count: int = 0

    def to_dict(self, group_by: GroupBy = GroupBy.CUSTOMER) -> dict:
        data = {
            "total_outstanding": self.total_outstanding,
            "total_amount": self.total_amount,
            "total_received": self.total_received,
            "invoice_count": self.invoice_count,
            "unpaid_invoices": self.unpaid_invoices,
            "partially_paid_invoices": self.partially_paid_invoices,
            "overdue_invoices": self.overdue_invoices,
            "paid_invoices": self.paid_invoices,
            "last_payment_date": self.last_payment_date.isoformat() if self.last_payment_date else None,
            "oldest_due_date": self.oldest_due_date.isoformat() if self.oldest_due_date else None,
            "status": self.status.value,
        }
        if group_by is GroupBy.PRODUCT:
            data["product_name"] = self.name
            data["total_customers"] = self.customer_count
        else:
            data["customer_name"] = self.name
        return data


@dataclass(frozen=True)
class OutstandingSummary:
    total_outstanding: float = 0.0
    total_amount: float = 0.0
    total_received: float = 0.0
    group_count: int = 0
    invoice_count: int = 0

    def to_dict(self) -> dict:
        return {
            "total_outstanding": self.total_outstanding,
            "total_amount": self.total_amount,
            "total_received": self.total_received,
            "group_count": self.group_count,
            "invoice_count": self.invoice_count,
        }


@dataclass(frozen=True)
class OutstandingPage:
    rows: tuple[OutstandingGroup, ...]
    page: int
    limit: int
    total: int
    summary: OutstandingSummary = field(default_factory=OutstandingSummary)

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.total > 0 else 1

    def to_dict(self, group_by: GroupBy = GroupBy.CUSTOMER) -> dict:
        return {
            "items": [row.to_dict(group_by) for row in self.rows],
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
                "total_pages": self.total_pages,
                "has_next": self.page < self.total_pages,
                "has_prev": self.page > 1,
            },
            "summary": self.summary.to_dict(),
        }


def _group_status(members: list[OutstandingInvoice]) -> InvoiceStatus:
    statuses = {m.status for m in members}
    if statuses == {InvoiceStatus.PAID}:
        return InvoiceStatus.PAID
    if InvoiceStatus.OVERDUE in statuses:
        return InvoiceStatus.OVERDUE
    if InvoiceStatus.PARTIALLY_PAID in statuses:
        return InvoiceStatus.PARTIALLY_PAID
    return InvoiceStatus.UNPAID


def _roll_up(name: str, members: list[OutstandingInvoice]) -> OutstandingGroup:
    counts = {status: 0 for status in InvoiceStatus}
    for m in members:
        counts[m.status] += 1

    payment_dates = [m.last_payment_date for m in members if m.last_payment_date]
    due_dates = [m.due_date for m in members if m.due_date]

    return OutstandingGroup(
        name=name,
        total_outstanding=round(sum(m.outstanding_amount for m in members), 2),
        total_amount=round(sum(m.final_amount for m in members), 2),
        total_received=round(sum(m.received_amount for m in members), 2),
        invoice_count=len(members),
        unpaid_invoices=counts[InvoiceStatus.UNPAID],
        partially_paid_invoices=counts[InvoiceStatus.PARTIALLY_PAID],
        overdue_invoices=counts[InvoiceStatus.OVERDUE],
        paid_invoices=counts[InvoiceStatus.PAID],
        last_payment_date=max(payment_dates) if payment_dates else None,
        oldest_due_date=min(due_dates) if due_dates else None,
        status=_group_status(members),
        customer_count=len({m.customer for m in members}),
    )


def group_invoices(
    invoices: Iterable[OutstandingInvoice],
    group_by: GroupBy = GroupBy.CUSTOMER,
) -> list[OutstandingGroup]:
    """Group invoices by exact customer or product name, in first-seen order."""
    buckets: dict[str, list[OutstandingInvoice]] = {}
    for invoice in invoices:
        key = invoice.product if group_by is GroupBy.PRODUCT else invoice.customer
        buckets.setdefault(key or "", []).append(invoice)
    return [_roll_up(name, members) for name, members in buckets.items()]


def _sort_groups(groups: list[OutstandingGroup], sort_by: str, descending: bool) -> list[OutstandingGroup]:
    # Name order first so equal keys come out deterministic
    ordered = sorted(groups, key=lambda g: g.name)
    if sort_by == "name":
        return sorted(ordered, key=lambda g: g.name, reverse=descending)

    present = [g for g in ordered if getattr(g, sort_by) is not None]
    missing = [g for g in ordered if getattr(g, sort_by) is None]
    present.sort(key=lambda g: getattr(g, sort_by), reverse=descending)
    return present + missing


def aggregate_outstanding(
    invoices: Iterable[OutstandingInvoice],
    query: OutstandingQuery | None = None,
) -> OutstandingPage:
    query = query or OutstandingQuery()
    query.validate()

    selected = [inv for inv in invoices if query.status is None or inv.status == query.status]
    groups = group_invoices(selected, query.group_by)

    if query.search:
        needle = query.search.strip().lower()
        groups = [g for g in groups if needle in g.name.lower()]
    if query.min_amount is not None:
        groups = [g for g in groups if g.total_outstanding >= query.min_amount]
    if query.max_amount is not None:
        groups = [g for g in groups if g.total_outstanding <= query.max_amount]

    groups = _sort_groups(groups, query.sort_by, query.sort_order == "desc")

    summary = OutstandingSummary(
        total_outstanding=round(sum(g.total_outstanding for g in groups), 2),
        total_amount=round(sum(g.total_amount for g in groups), 2),
        total_received=round(sum(g.total_received for g in groups), 2),
        group_count=len(groups),
        invoice_count=sum(g.invoice_count for g in groups),
    )

    start = (query.page - 1) * query.limit
    return OutstandingPage(
        rows=tuple(groups[start:start + query.limit]),
        page=query.page,
        limit=query.limit,
        total=len(groups),
        summary=summary,
    )
