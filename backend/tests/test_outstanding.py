"""Outstanding rollups by customer and product."""

from datetime import date

import pytest

from tradebook.domain import (
    GroupBy,
    InvoiceStatus,
    OutstandingInvoice,
    OutstandingQuery,
    ValidationError,
    aggregate_outstanding,
)


def invoice(customer, product, final, received, status, due=None, paid_on=None):
    return OutstandingInvoice(
        customer=customer,
        product=product,
        final_amount=final,
        received_amount=received,
        outstanding_amount=round(final - received, 2),
        status=status,
        due_date=due,
        last_payment_date=paid_on,
    )


@pytest.fixture
def invoices():
    return [
        invoice("Al Noor", "Rice", 1000, 400, InvoiceStatus.PARTIALLY_PAID, date(2026, 2, 1), date(2026, 1, 10)),
        invoice("Al Noor", "Sugar", 500, 0, InvoiceStatus.OVERDUE, date(2026, 1, 1)),
        invoice("Baraka", "Rice", 200, 200, InvoiceStatus.PAID, date(2026, 1, 15), date(2026, 1, 12)),
        invoice("Crescent", "Sugar", 300, 0, InvoiceStatus.UNPAID, date(2026, 3, 1)),
    ]


def test_groups_by_customer(invoices):
    page = aggregate_outstanding(invoices)
    names = [row.name for row in page.rows]
    assert names == ["Al Noor", "Crescent", "Baraka"]

    al_noor = page.rows[0]
    assert al_noor.total_outstanding == 1100
    assert al_noor.total_amount == 1500
    assert al_noor.total_received == 400
    assert al_noor.invoice_count == 2
    assert al_noor.overdue_invoices == 1
    assert al_noor.status is InvoiceStatus.OVERDUE
    assert al_noor.oldest_due_date == date(2026, 1, 1)
    assert al_noor.last_payment_date == date(2026, 1, 10)

    assert page.rows[2].status is InvoiceStatus.PAID


def test_summary_does_not_depend_on_page(invoices):
    first = aggregate_outstanding(invoices, OutstandingQuery(limit=1, page=1))
    second = aggregate_outstanding(invoices, OutstandingQuery(limit=1, page=2))

    assert len(first.rows) == 1
    assert second.rows[0].name == "Crescent"
    assert first.summary == second.summary
    assert first.summary.total_outstanding == 1400
    assert first.summary.group_count == 3
    assert first.summary.invoice_count == 4

    data = second.to_dict()
    assert data["pagination"] == {
        "page": 2, "limit": 1, "total": 3, "total_pages": 3, "has_next": True, "has_prev": True,
    }


def test_groups_by_product(invoices):
    page = aggregate_outstanding(invoices, OutstandingQuery(group_by=GroupBy.PRODUCT, sort_by="name", sort_order="asc"))
    rows = page.to_dict(GroupBy.PRODUCT)["items"]
    assert [r["product_name"] for r in rows] == ["Rice", "Sugar"]
    assert rows[0]["total_customers"] == 2
    assert rows[1]["total_outstanding"] == 800


def test_filters(invoices):
    query = OutstandingQuery(search="al", min_amount=1, status=None)
    assert [r.name for r in aggregate_outstanding(invoices, query).rows] == ["Al Noor"]

    query = OutstandingQuery(status=InvoiceStatus.UNPAID)
    page = aggregate_outstanding(invoices, query)
    assert [r.name for r in page.rows] == ["Crescent"]

    query = OutstandingQuery(max_amount=300)
    assert {r.name for r in aggregate_outstanding(invoices, query).rows} == {"Crescent", "Baraka"}


def test_missing_sort_values_go_last(invoices):
    query = OutstandingQuery(sort_by="last_payment_date", sort_order="desc")
    names = [r.name for r in aggregate_outstanding(invoices, query).rows]
    assert names == ["Baraka", "Al Noor", "Crescent"]


def test_names_are_grouped_exactly():
    rows = aggregate_outstanding([
        invoice("Al Noor", "Rice", 100, 0, InvoiceStatus.UNPAID),
        invoice("al noor", "Rice", 100, 0, InvoiceStatus.UNPAID),
    ]).rows
    assert len(rows) == 2


@pytest.mark.parametrize("query", [
    OutstandingQuery(sort_by="colour"),
    OutstandingQuery(sort_order="up"),
    OutstandingQuery(page=0),
    OutstandingQuery(min_amount=10, max_amount=5),
])
def test_invalid_query(invoices, query):
    with pytest.raises(ValidationError):
        aggregate_outstanding(invoices, query)


def test_empty():
    page = aggregate_outstanding([])
    assert page.rows == ()
    assert page.total_pages == 1
    assert page.summary.total_outstanding == 0
