"""
API Tests for the workspace routes: authentication, query parsing,
error mapping and camelCase response shapes.
"""
from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from recon_workspace.application.services.workspace_assembler import MAX_SKIP
from recon_workspace.domain.interfaces import IDocumentStore
from recon_workspace.infrastructure.auth.jwt_handler import create_access_token
from recon_workspace.presentation.dependencies import get_document_store
from recon_workspace.presentation.main import app


@pytest.fixture
def client(store):
    app.dependency_overrides[get_document_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(org_id):
    return {"Authorization": f"Bearer {create_access_token('user-1', org_id)}"}


class TestAuthentication:

    def test_missing_token(self, client):
        resp = client.get("/api/v1/workspace/po")
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "message": "Authentication required"}
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    def test_garbage_token(self, client):
        resp = client.get("/api/v1/workspace/po", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_token_without_organization(self, client):
        token = create_access_token("user-1", "")
        resp = client.get("/api/v1/workspace/invoice", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Organization not found"

    def test_malformed_organization(self, client):
        token = create_access_token("user-1", "acme")
        resp = client.get("/api/v1/workspace/grn", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 400
        assert resp.json()["success"] is False


class TestPOWorkspaceRoute:

    def test_response_shape(self, client, auth_headers, factory):
        factory.po("PO-1", total_qty=100)
        factory.invoice("INV-1", buyer_order_no="PO-1", invoice_qty=100)

        resp = client.get("/api/v1/workspace/po", headers=auth_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        data = body["data"]
        assert set(data) == {"pos", "summary", "totals", "pagination", "filterOptions"}
        row = data["pos"][0]
        assert row["poNumber"] == "PO-1"
        assert row["invoiceStatus"] == "Fully Invoiced"
        assert row["qtyInvoicedPercent"] == "100.0%"
        assert row["grnStatus"] == ["No GRN Yet"]
        assert row["linkedGRNsCount"] == 0
        assert data["summary"]["totalPOs"] == 1
        assert data["summary"]["noGRNYet"] == 1
        assert data["totals"]["avgQtyInvoiced"] == 100.0
        assert data["pagination"] == {"total": 1, "page": 1, "pages": 1, "limit": 100}
        assert "invoiceStatus" in data["filterOptions"]["statuses"]

    def test_json_encoded_filters(self, client, auth_headers, factory):
        factory.po("PO-1", site="WH-01", poDate="2024-03-05")
        factory.po("PO-2", site="WH-02", poDate="2024-03-05")
        factory.po("PO-3", site="WH-01", poDate="2024-05-05")

        resp = client.get(
            "/api/v1/workspace/po",
            headers=auth_headers,
            params={
                "site": json.dumps(["WH-01"]),
                "dateRange": json.dumps({"from": "2024-03-01", "to": "2024-03-31"}),
                "dateType": "poDate",
                "invoiceStatus": json.dumps(["Open"]),
            },
        )

        assert resp.status_code == 200
        assert [r["poNumber"] for r in resp.json()["data"]["pos"]] == ["PO-1"]

    def test_pagination_params_parse_leniently(self, client, auth_headers, factory):
        for n in range(3):
            factory.po(f"PO-{n}")

        resp = client.get("/api/v1/workspace/po", headers=auth_headers, params={"page": "abc", "limit": "2rows"})

        pagination = resp.json()["data"]["pagination"]
        assert pagination == {"total": 3, "page": 1, "pages": 2, "limit": 2}

    def test_out_of_range_page_is_clamped(self, client, auth_headers, factory):
        factory.po("PO-1")

        resp = client.get("/api/v1/workspace/po", headers=auth_headers, params={"page": "99999999999999999999"})

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["pos"] == []
        assert data["pagination"]["page"] == MAX_SKIP // 100 + 1
        assert data["pagination"]["total"] == 1

    def test_article_filter(self, client, auth_headers, factory):
        factory.po("PO-1", items=[{"article": "ART-7", "qty": 10}])
        factory.po("PO-2", items=[{"article": "ART-8", "qty": 10}])

        resp = client.get("/api/v1/workspace/po", headers=auth_headers, params={"article": "ART-7"})

        assert resp.status_code == 200
        assert [r["poNumber"] for r in resp.json()["data"]["pos"]] == ["PO-1"]

    def test_malformed_filter_json(self, client, auth_headers):
        resp = client.get("/api/v1/workspace/po", headers=auth_headers, params={"site": "[WH-01"})
        assert resp.status_code == 400
        assert "site" in resp.json()["message"]

    def test_wrong_filter_shape(self, client, auth_headers):
        resp = client.get("/api/v1/workspace/po", headers=auth_headers, params={"dateRange": json.dumps("2024")})
        assert resp.status_code == 400

    def test_date_type_of_another_workspace(self, client, auth_headers):
        resp = client.get(
            "/api/v1/workspace/po",
            headers=auth_headers,
            params={"dateRange": json.dumps({"from": "2024-01-01"}), "dateType": "grnDate"},
        )
        assert resp.status_code == 400


class TestInvoiceAndGRNRoutes:

    def test_invoice_workspace_keys(self, client, auth_headers, factory):
        factory.invoice("INV-1", buyer_order_no="PO-404", invoice_qty=1)

        data = client.get("/api/v1/workspace/invoice", headers=auth_headers).json()["data"]
        row = data["invoices"][0]
        assert row["poStatus"] == "No PO"
        assert row["linkedPOId"] is None
        assert row["grnStatus"] == ["Missing GRN"]
        assert data["summary"]["noPO"] == 1
        assert data["summary"]["missingGRN"] == 1

    def test_grn_workspace_keys(self, client, auth_headers, factory):
        factory.grn("GRN-1", lines=[(10, 8)])

        data = client.get("/api/v1/workspace/grn", headers=auth_headers).json()["data"]
        row = data["grns"][0]
        assert row["invoiceStatus"] == "Missing Invoice"
        assert row["acceptanceStatus"] == "Partially Accepted"
        assert row["rejectedQty"] == 2.0
        assert row["hasPO"] is False
        assert data["summary"]["totalGRNs"] == 1


class TestDetailRoutes:

    def test_po_details(self, client, auth_headers, factory):
        po = factory.po("PO-1")

        resp = client.get(f"/api/v1/workspace/po/{po['_id']}", headers=auth_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["po"]["poNumber"] == "PO-1"
        assert body["data"]["linkedInvoices"] == []

    def test_malformed_id(self, client, auth_headers):
        resp = client.get("/api/v1/workspace/invoice/not-an-id", headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "message": "Invalid document id"}

    @pytest.mark.parametrize("path, label", [
        ("po", "Purchase Order"),
        ("invoice", "Invoice"),
        ("grn", "GRN"),
    ])
    def test_not_found(self, client, auth_headers, factory, path, label):
        resp = client.get(f"/api/v1/workspace/{path}/{factory.next_id()}", headers=auth_headers)
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "message": f"{label} not found"}

    def test_detail_requires_auth(self, client, factory):
        po = factory.po("PO-1")
        assert client.get(f"/api/v1/workspace/po/{po['_id']}").status_code == 401


class TestStoreFailure:

    def test_internal_errors_are_not_leaked(self, auth_headers):
        store = AsyncMock(spec=IDocumentStore)
        store.find.side_effect = ConnectionError("connection refused: mongodb://10.0.0.5:27017")
        store.count.return_value = 0
        app.dependency_overrides[get_document_store] = lambda: store
        try:
            resp = TestClient(app, raise_server_exceptions=False).get(
                "/api/v1/workspace/po", headers=auth_headers
            )
        finally:
            app.dependency_overrides.clear()

        assert resp.status_code == 500
        assert resp.json() == {"success": False, "message": "Internal server error"}
        assert "10.0.0.5" not in resp.text


class TestHealth:

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_readiness_with_memory_store(self, client):
        resp = client.get("/health/ready")
        assert resp.status_code == 200
        assert resp.json()["checks"] == {"document_store": "ok"}

    def test_security_headers(self, client):
        resp = client.get("/health")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert "X-Request-ID" in resp.headers
