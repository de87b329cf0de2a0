"""
Sales invoice API tests.

Verifies:
- Amounts and invoice numbers are derived on create and edit
- Payments move received/outstanding/status and refuse overpayment (409)
- Reversal and deletion need an admin who re-enters their password (403)
- Customer outstanding rollup over the API
"""

from conftest import ADMIN_PASSWORD, create_sale


class TestCreateSale:

    def test_amounts_are_derived(self, client, admin_headers):
        sale = create_sale(client, admin_headers, vat_percentage=5, discount=20)
        assert sale["subtotal"] == 1000
        assert sale["vat_amount"] == 50
        assert sale["final_amount"] == 1030
        assert sale["received_amount"] == 0
        assert sale["outstanding_amount"] == 1030
        assert sale["status"] == "unpaid"

    def test_invoice_numbers_are_sequential(self, client, admin_headers):
        first = create_sale(client, admin_headers)
        second = create_sale(client, admin_headers, invoice_number="")
        assert first["invoice_number"] == "INV-000001"
        assert second["invoice_number"] == "INV-000002"

    def test_duplicate_invoice_number_conflicts(self, client, admin_headers):
        create_sale(client, admin_headers, invoice_number="MAN-1")
        resp = client.post("/api/sales", json={
            "invoice_number": "MAN-1", "customer": "X", "product": "Y",
            "invoice_date": "2026-01-05", "quantity": 1, "rate": 1,
        }, headers=admin_headers)
        assert resp.status_code == 409

    def test_default_due_date(self, client, admin_headers):
        sale = create_sale(client, admin_headers, invoice_date="2026-01-25", due_date=None)
        assert sale["due_date"] == "2026-02-04"

    def test_past_due_date_is_overdue(self, client, admin_headers):
        sale = create_sale(client, admin_headers, invoice_date="2020-01-01", due_date="2020-01-11")
        assert sale["status"] == "overdue"

    def test_missing_fields(self, client, admin_headers):
        resp = client.post("/api/sales", json={"customer": "X"}, headers=admin_headers)
        assert resp.status_code == 400
        assert "Missing required fields" in resp.json["error"]

    def test_unknown_field_is_rejected(self, client, admin_headers):
        resp = client.post("/api/sales", json={
            "customer": "X", "product": "Y", "invoice_date": "2026-01-05",
            "quantity": 1, "rate": 1, "final_amount": 5,
        }, headers=admin_headers)
        assert resp.status_code == 400

    def test_non_positive_total_is_rejected(self, client, admin_headers):
        resp = client.post("/api/sales", json={
            "customer": "X", "product": "Y", "invoice_date": "2026-01-05",
            "quantity": 1, "rate": 10, "discount": 10,
        }, headers=admin_headers)
        assert resp.status_code == 400

    def test_requires_auth(self, client, db_session):
        assert client.get("/api/sales").status_code == 401
        assert client.post("/api/sales", json={}).status_code == 401


class TestSalePayments:

    def test_partial_then_full_payment(self, client, employee_headers):
        sale = create_sale(client, employee_headers)

        resp = client.post(f"/api/sales/{sale['id']}/payments", json={"amount": 400}, headers=employee_headers)
        assert resp.status_code == 201
        assert resp.json["payment"]["payment_type"] == "partial"
        assert resp.json["sale"]["received_amount"] == 400
        assert resp.json["sale"]["outstanding_amount"] == 600
        assert resp.json["sale"]["status"] == "partially_paid"

        resp = client.post(f"/api/sales/{sale['id']}/payments", json={"payment_type": "full"}, headers=employee_headers)
        assert resp.status_code == 201
        assert resp.json["payment"]["amount"] == 600
        assert resp.json["sale"]["status"] == "paid"

        resp = client.post(f"/api/sales/{sale['id']}/payments", json={"amount": 1}, headers=employee_headers)
        assert resp.status_code == 409

    def test_overpayment_conflicts_and_changes_nothing(self, client, employee_headers):
        sale = create_sale(client, employee_headers)
        resp = client.post(f"/api/sales/{sale['id']}/payments", json={"amount": 1000.01}, headers=employee_headers)
        assert resp.status_code == 409
        assert resp.json["type"] == "OverpaymentError"

        fetched = client.get(f"/api/sales/{sale['id']}", headers=employee_headers).json["sale"]
        assert fetched["received_amount"] == 0
        assert fetched["payments"] == []

    def test_edit_below_received_conflicts(self, client, employee_headers):
        sale = create_sale(client, employee_headers)
        client.post(f"/api/sales/{sale['id']}/payments", json={"amount": 500}, headers=employee_headers)

        resp = client.put(f"/api/sales/{sale['id']}", json={"quantity": 4}, headers=employee_headers)
        assert resp.status_code == 409

        resp = client.put(f"/api/sales/{sale['id']}", json={"quantity": 20}, headers=employee_headers)
        assert resp.status_code == 200
        assert resp.json["sale"]["final_amount"] == 2000
        assert resp.json["sale"]["outstanding_amount"] == 1500

    def test_payment_for_missing_sale(self, client, employee_headers):
        resp = client.post("/api/sales/9999/payments", json={"amount": 1}, headers=employee_headers)
        assert resp.status_code == 404


class TestReversal:

    def _paid_sale(self, client, headers):
        sale = create_sale(client, headers)
        resp = client.post(f"/api/sales/{sale['id']}/payments", json={"amount": 400}, headers=headers)
        return sale, resp.json["payment"]

    def test_employee_cannot_reverse(self, client, employee_headers):
        sale, payment = self._paid_sale(client, employee_headers)
        resp = client.delete(
            f"/api/sales/{sale['id']}/payments/{payment['id']}",
            json={"admin_password": ADMIN_PASSWORD},
            headers=employee_headers,
        )
        assert resp.status_code == 403

    def test_wrong_admin_password(self, client, admin_headers):
        sale, payment = self._paid_sale(client, admin_headers)
        resp = client.delete(
            f"/api/sales/{sale['id']}/payments/{payment['id']}",
            json={"admin_password": "nope"},
            headers=admin_headers,
        )
        assert resp.status_code == 403

    def test_admin_reverses_payment(self, client, admin_headers):
        sale, payment = self._paid_sale(client, admin_headers)
        resp = client.delete(
            f"/api/sales/{sale['id']}/payments/{payment['id']}",
            json={"admin_password": ADMIN_PASSWORD, "reason": "bounced cheque"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        body = resp.json["sale"]
        assert body["received_amount"] == 0
        assert body["outstanding_amount"] == 1000
        assert body["status"] == "unpaid"
        assert body["last_payment_date"] is None
        assert body["payments"][0]["status"] == "REVERSED"
        assert body["payments"][0]["reversal_reason"] == "bounced cheque"

        # A reversed payment cannot be reversed twice
        resp = client.delete(
            f"/api/sales/{sale['id']}/payments/{payment['id']}",
            headers={**admin_headers, "X-Admin-Password": ADMIN_PASSWORD},
        )
        assert resp.status_code == 400

        active = client.get(
            f"/api/sales/{sale['id']}/payments?include_reversed=false", headers=admin_headers
        ).json["items"]
        assert active == []

    def test_delete_sale_requires_password(self, client, admin_headers):
        sale = create_sale(client, admin_headers)
        assert client.delete(f"/api/sales/{sale['id']}", headers=admin_headers).status_code == 403

        resp = client.delete(f"/api/sales/{sale['id']}", json={"admin_password": ADMIN_PASSWORD}, headers=admin_headers)
        assert resp.status_code == 200
        assert client.get(f"/api/sales/{sale['id']}", headers=admin_headers).status_code == 404


class TestListing:

    def test_filters_and_pagination(self, client, admin_headers):
        create_sale(client, admin_headers, customer="Al Noor", product="Rice")
        create_sale(client, admin_headers, customer="Baraka", product="Sugar")
        overdue = create_sale(client, admin_headers, customer="Baraka", product="Rice", due_date="2020-01-01", invoice_date="2019-12-01")

        resp = client.get("/api/sales?customer=baraka&limit=1", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 1
        assert resp.json["pagination"]["total"] == 2
        assert resp.json["pagination"]["has_next"] is True

        resp = client.get("/api/sales?status=overdue", headers=admin_headers)
        assert [s["id"] for s in resp.json["items"]] == [overdue["id"]]

        resp = client.get("/api/sales?status=bogus", headers=admin_headers)
        assert resp.status_code == 400

        products = client.get("/api/sales/products", headers=admin_headers).json["items"]
        assert products == ["Rice", "Sugar"]

    def test_statistics(self, client, admin_headers):
        sale = create_sale(client, admin_headers)
        create_sale(client, admin_headers, quantity=1, rate=500)
        client.post(f"/api/sales/{sale['id']}/payments", json={"amount": 1000}, headers=admin_headers)

        stats = client.get("/api/sales/statistics", headers=admin_headers).json["statistics"]
        assert stats["total_invoices"] == 2
        assert stats["total_amount"] == 1500
        assert stats["total_received"] == 1000
        assert stats["total_outstanding"] == 500
        assert stats["by_status"]["paid"] == 1
        assert stats["by_status"]["unpaid"] == 1

    def test_customer_outstanding(self, client, admin_headers):
        first = create_sale(client, admin_headers, customer="Al Noor")
        create_sale(client, admin_headers, customer="Al Noor", quantity=5)
        create_sale(client, admin_headers, customer="Baraka", quantity=1)
        client.post(f"/api/sales/{first['id']}/payments", json={"amount": 250}, headers=admin_headers)

        resp = client.get("/api/sales/customer-outstanding?limit=1", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.json
        assert body["items"][0]["customer_name"] == "Al Noor"
        assert body["items"][0]["total_outstanding"] == 1250
        assert body["items"][0]["invoice_count"] == 2
        assert body["pagination"]["total"] == 2
        assert body["summary"]["total_outstanding"] == 1350

        resp = client.get("/api/sales/customer-outstanding?sort_by=colour", headers=admin_headers)
        assert resp.status_code == 400
