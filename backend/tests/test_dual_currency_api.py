"""
Freight / transport / Dubai invoice API tests.

Verifies:
- Each kind is mounted under its own prefix with its own numbering
- Only the source-currency amount is writable; the other is derived
- Payments are recorded in the source currency and keep both currencies in step
"""

import pytest

from conftest import ADMIN_PASSWORD


def create_invoice(client, headers, prefix, **overrides):
    payload = {
        "agent": "Gulf Lines",
        "container_no": "MSCU1234567",
        "invoice_date": "2026-01-05",
        "due_date": "2099-01-01",
        "conversion_rate": 76,
    }
    payload.update(overrides)
    resp = client.post(prefix, json=payload, headers=headers)
    assert resp.status_code == 201, resp.json
    return resp.json["invoice"]


class TestFreightInvoices:

    def test_pkr_source(self, client, employee_headers):
        invoice = create_invoice(client, employee_headers, "/api/freight-invoices", amount_pkr=7600)
        assert invoice["invoice_number"] == "FRT-000001"
        assert invoice["kind"] == "freight"
        assert invoice["currency"] == "PKR"
        assert invoice["amount_aed"] == 100
        assert invoice["outstanding_amount_pkr"] == 7600
        assert invoice["status"] == "unpaid"

    def test_derived_currency_is_not_writable(self, client, employee_headers):
        resp = client.post("/api/freight-invoices", json={
            "agent": "Gulf Lines", "invoice_date": "2026-01-05", "conversion_rate": 76,
            "amount_pkr": 7600, "amount_aed": 50,
        }, headers=employee_headers)
        assert resp.status_code == 400

    def test_zero_rate_is_rejected(self, client, employee_headers):
        resp = client.post("/api/freight-invoices", json={
            "agent": "Gulf Lines", "invoice_date": "2026-01-05", "conversion_rate": 0, "amount_pkr": 7600,
        }, headers=employee_headers)
        assert resp.status_code == 400

    def test_payments_update_both_currencies(self, client, employee_headers):
        invoice = create_invoice(client, employee_headers, "/api/freight-invoices", amount_pkr=7600)
        url = f"/api/freight-invoices/{invoice['id']}/payments"

        resp = client.post(url, json={"amount": 1900, "payment_method": "bank"}, headers=employee_headers)
        assert resp.status_code == 201
        body = resp.json["invoice"]
        assert resp.json["payment"]["currency"] == "PKR"
        assert body["paid_amount_pkr"] == 1900
        assert body["paid_amount_aed"] == 25
        assert body["outstanding_amount_aed"] == 75
        assert body["status"] == "partially_paid"

        assert client.post(url, json={"amount": 6000}, headers=employee_headers).status_code == 409

        resp = client.post(url, json={"payment_type": "full"}, headers=employee_headers)
        assert resp.json["invoice"]["status"] == "paid"
        assert resp.json["invoice"]["outstanding_amount_pkr"] == 0

    def test_edit_rederives(self, client, employee_headers):
        invoice = create_invoice(client, employee_headers, "/api/freight-invoices", amount_pkr=7600)
        resp = client.put(
            f"/api/freight-invoices/{invoice['id']}",
            json={"conversion_rate": 80},
            headers=employee_headers,
        )
        assert resp.status_code == 200
        assert resp.json["invoice"]["amount_aed"] == 95

    def test_reversal(self, client, admin_headers):
        invoice = create_invoice(client, admin_headers, "/api/freight-invoices", amount_pkr=7600)
        payment = client.post(
            f"/api/freight-invoices/{invoice['id']}/payments", json={"amount": 7600}, headers=admin_headers
        ).json["payment"]

        resp = client.delete(
            f"/api/freight-invoices/{invoice['id']}/payments/{payment['id']}",
            json={"admin_password": ADMIN_PASSWORD},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["invoice"]["paid_amount_pkr"] == 0
        assert resp.json["invoice"]["status"] == "unpaid"

    def test_uneven_rate_keeps_aed_balance_consistent(self, client, employee_headers):
        invoice = create_invoice(client, employee_headers, "/api/freight-invoices", amount_pkr=1000, conversion_rate=3)
        resp = client.post(
            f"/api/freight-invoices/{invoice['id']}/payments", json={"amount": 500}, headers=employee_headers
        )
        assert resp.status_code == 201
        body = resp.json["invoice"]
        assert body["amount_aed"] == 333.33
        assert body["paid_amount_aed"] == 166.67
        assert body["outstanding_amount_aed"] == 166.66
        assert round(body["amount_aed"] - body["paid_amount_aed"], 2) == body["outstanding_amount_aed"]

        stats = client.get("/api/freight-invoices/stats", headers=employee_headers).json["stats"]
        assert stats["total_outstanding_aed"] == 166.66
        assert stats["total_outstanding_pkr"] == 500


class TestDubaiInvoices:

    def test_aed_source(self, client, employee_headers):
        invoice = create_invoice(client, employee_headers, "/api/dubai-clearance-invoices", amount_aed=250, conversion_rate=76.5)
        assert invoice["invoice_number"] == "DCL-000001"
        assert invoice["currency"] == "AED"
        assert invoice["amount_pkr"] == 19125

        resp = client.post(
            f"/api/dubai-clearance-invoices/{invoice['id']}/payments",
            json={"amount": 50},
            headers=employee_headers,
        )
        assert resp.json["payment"]["currency"] == "AED"
        assert resp.json["invoice"]["paid_amount_pkr"] == 3825

    def test_pkr_amount_is_not_writable(self, client, employee_headers):
        resp = client.post("/api/dubai-transport-invoices", json={
            "agent": "Jebel Ali", "invoice_date": "2026-01-05", "conversion_rate": 76, "amount_pkr": 7600,
        }, headers=employee_headers)
        assert resp.status_code == 400


@pytest.mark.parametrize("prefix,number", [
    ("/api/freight-invoices", "FRT-000001"),
    ("/api/transport-invoices", "TRN-000001"),
    ("/api/dubai-transport-invoices", "DTR-000001"),
    ("/api/dubai-clearance-invoices", "DCL-000001"),
])
def test_kinds_are_isolated(client, employee_headers, prefix, number):
    amount_field = "amount_aed" if "dubai" in prefix else "amount_pkr"
    invoice = create_invoice(client, employee_headers, prefix, **{amount_field: 100})
    assert invoice["invoice_number"] == number

    listing = client.get(prefix, headers=employee_headers).json
    assert listing["pagination"]["total"] == 1

    other = "/api/transport-invoices" if prefix == "/api/freight-invoices" else "/api/freight-invoices"
    assert client.get(f"{other}/{invoice['id']}", headers=employee_headers).status_code == 404


def test_stats(client, employee_headers):
    first = create_invoice(client, employee_headers, "/api/transport-invoices", amount_pkr=1000)
    create_invoice(client, employee_headers, "/api/transport-invoices", amount_pkr=500, due_date="2020-01-01", invoice_date="2019-12-01")
    client.post(f"/api/transport-invoices/{first['id']}/payments", json={"amount": 1000}, headers=employee_headers)

    resp = client.get("/api/transport-invoices/stats", headers=employee_headers)
    assert resp.status_code == 200
    stats = resp.json["stats"]
    assert stats["total_invoices"] == 2
    assert stats["by_status"]["paid"] == 1
    assert stats["by_status"]["overdue"] == 1

    overdue = client.get("/api/transport-invoices?status=overdue", headers=employee_headers).json
    assert overdue["pagination"]["total"] == 1
