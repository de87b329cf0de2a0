"""Container statement API tests."""

from conftest import ADMIN_PASSWORD
from tradebook.services import container_service


def create_statement(client, headers, **overrides):
    payload = {
        "container_no": "MSCU7654321",
        "products": [
            {"product": "Rice", "quantity": 5, "unit_price": 10},
            {"product": "Rice", "quantity": 2.5, "unit_price": 10},
        ],
        "expenses": [{"description": "Clearing", "amount": 10}],
        "commission_percent": 0,
    }
    payload.update(overrides)
    resp = client.post("/api/container-statements", json=payload, headers=headers)
    assert resp.status_code == 201, resp.json
    return resp.json["statement"]


def test_settlement_figures(client, employee_headers):
    statement = create_statement(client, employee_headers)
    assert statement["gross_sale"] == 75
    assert statement["total_expenses"] == 10
    assert statement["net_sale"] == 65
    assert statement["total_quantity"] == 7.5
    assert len(statement["product_lines"]) == 2
    assert statement["products"] == [
        {"sr_no": 1, "product": "Rice", "quantity": 7.5, "unit_price": 10, "amount": 75},
    ]


def test_default_commission_is_added(client, employee_headers):
    statement = create_statement(
        client, employee_headers,
        products=[{"product": "Sugar", "quantity": 100, "unit_price": 10}],
        expenses=[],
        commission_percent=None,
    )
    auto = [e for e in statement["expenses"] if e["is_auto_generated"]]
    assert statement["commission_percent"] == 5
    assert [e["amount"] for e in auto] == [50]
    assert statement["net_sale"] == 950


def test_commission_follows_product_changes(client, employee_headers):
    statement = create_statement(client, employee_headers, commission_percent=10, expenses=[])
    assert statement["total_expenses"] == 7.5

    resp = client.put(
        f"/api/container-statements/{statement['id']}",
        json={"products": [{"product": "Rice", "quantity": 10, "unit_price": 20}]},
        headers=employee_headers,
    )
    assert resp.status_code == 200
    body = resp.json["statement"]
    assert body["gross_sale"] == 200
    assert [e["amount"] for e in body["expenses"] if e["is_auto_generated"]] == [20]
    assert body["net_sale"] == 180


def test_expense_add_and_remove(client, employee_headers):
    statement = create_statement(client, employee_headers, commission_percent=5)
    base = f"/api/container-statements/{statement['id']}"

    resp = client.post(f"{base}/expenses", json={"description": "Labour", "amount": 5}, headers=employee_headers)
    assert resp.status_code == 201
    body = resp.json["statement"]
    assert body["total_expenses"] == 18.75
    assert body["net_sale"] == 56.25

    auto = next(e for e in body["expenses"] if e["is_auto_generated"])
    labour = next(e for e in body["expenses"] if e["description"] == "Labour")

    assert client.delete(f"{base}/expenses/{auto['id']}", headers=employee_headers).status_code == 400
    assert client.delete(f"{base}/expenses/99999", headers=employee_headers).status_code == 404

    resp = client.delete(f"{base}/expenses/{labour['id']}", headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json["statement"]["total_expenses"] == 13.75

    bad = client.post(f"{base}/expenses", json={"description": "", "amount": 5}, headers=employee_headers)
    assert bad.status_code == 400


def test_one_statement_per_container(client, employee_headers):
    create_statement(client, employee_headers)
    resp = client.post("/api/container-statements", json={"container_no": "MSCU7654321"}, headers=employee_headers)
    assert resp.status_code == 409


def test_lookup(client, employee_headers):
    statement = create_statement(client, employee_headers)

    resp = client.get("/api/container-statements/container/MSCU7654321", headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json["statement"]["id"] == statement["id"]

    assert client.get("/api/container-statements/container/NOPE", headers=employee_headers).status_code == 404

    listing = client.get("/api/container-statements?search=7654", headers=employee_headers).json
    assert listing["pagination"]["total"] == 1


def test_invalid_lines(client, employee_headers):
    resp = client.post("/api/container-statements", json={
        "container_no": "X1", "products": [{"product": "Rice", "quantity": 0, "unit_price": 5}],
    }, headers=employee_headers)
    assert resp.status_code == 400

    resp = client.post("/api/container-statements", json={
        "container_no": "X2", "commission_percent": 150,
    }, headers=employee_headers)
    assert resp.status_code == 400


def test_lookup_by_container_number_on_the_id_path(client, employee_headers):
    statement = create_statement(client, employee_headers)

    resp = client.get("/api/container-statements/MSCU7654321", headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json["statement"]["id"] == statement["id"]

    by_id = client.get(f"/api/container-statements/{statement['id']}", headers=employee_headers)
    assert by_id.json["statement"]["container_no"] == "MSCU7654321"

    assert client.get("/api/container-statements/NOPE", headers=employee_headers).status_code == 404


def test_concurrent_duplicate_is_a_conflict(client, employee_headers, monkeypatch):
    create_statement(client, employee_headers)
    # The other request's row lands after this one's duplicate check
    monkeypatch.setattr(container_service, "_container_taken", lambda container_no: False)

    resp = client.post("/api/container-statements", json={"container_no": "MSCU7654321"}, headers=employee_headers)
    assert resp.status_code == 409

    listing = client.get("/api/container-statements", headers=employee_headers).json
    assert listing["pagination"]["total"] == 1


class TestDeleteStatement:

    def test_admin_deletes_with_password(self, client, admin_headers):
        statement = create_statement(client, admin_headers)
        url = f"/api/container-statements/{statement['id']}"

        assert client.delete(url, json={"admin_password": "wrong"}, headers=admin_headers).status_code == 403
        assert client.get(url, headers=admin_headers).status_code == 200

        resp = client.delete(url, json={"admin_password": ADMIN_PASSWORD}, headers=admin_headers)
        assert resp.status_code == 200
        assert client.get(url, headers=admin_headers).status_code == 404

        # The container number is free again
        create_statement(client, admin_headers)

    def test_employee_cannot_delete(self, client, employee_headers):
        statement = create_statement(client, employee_headers)
        resp = client.delete(f"/api/container-statements/{statement['id']}", json={}, headers=employee_headers)
        assert resp.status_code == 403

    def test_missing_statement(self, client, admin_headers):
        resp = client.delete("/api/container-statements/9999", json={"admin_password": ADMIN_PASSWORD}, headers=admin_headers)
        assert resp.status_code == 404
