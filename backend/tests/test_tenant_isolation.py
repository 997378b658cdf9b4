# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that cross-tenant access is denied for core resources.

These tests create two tenants, give tenant A a small catalog, then verify:
1. Tenant B cannot read or write tenant A's rows through the services
2. A foreign id behaves exactly like a missing one (404, not 403)
3. Listings and reports only ever contain the caller's rows
"""

import pytest

from stockworks.errors import NotFoundError, ValidationError
from stockworks.services import (
    materials_service,
    party_service,
    production_service,
    products_service,
    reporting_service,
    sales_service,
)
from stockworks.services.tenant_service import create_tenant, resolve_api_key


def _headers(api_key):
    return {"Authorization": f"Bearer {api_key}"}


class TestTenantServiceHelpers:
    """Test tenant_service helper functions."""

    def test_codes_are_normalized_and_unique(self, db_session, tenant_a):
        assert tenant_a.code == "ACME"
        with pytest.raises(ValidationError):
            create_tenant(name="Another Acme", code=" acme ")

    def test_api_key_resolves_to_its_tenant(self, db_session, tenant_with_key):
        tenant, api_key = tenant_with_key
        assert resolve_api_key(api_key).id == tenant.id
        assert resolve_api_key("") is None

    def test_inactive_tenant_key_rejected(self, db_session, tenant_with_key):
        tenant, api_key = tenant_with_key
        tenant.is_active = False
        db_session.commit()
        assert resolve_api_key(api_key) is None


class TestServiceIsolation:
    """Tenant B asking for tenant A's ids gets NotFoundError everywhere."""

    def test_materials(self, db_session, tenant_a, tenant_b, flour):
        with pytest.raises(NotFoundError):
            materials_service.get_material(tenant_id=tenant_b.id, material_id=flour.id)
        with pytest.raises(NotFoundError):
            materials_service.receive_material(tenant_id=tenant_b.id, material_id=flour.id, quantity=5)
        with pytest.raises(NotFoundError):
            materials_service.delete_material(tenant_id=tenant_b.id, material_id=flour.id)
        assert materials_service.list_materials(tenant_id=tenant_b.id) == []

    def test_products_and_recipes(self, db_session, tenant_a, tenant_b, bread, flour):
        with pytest.raises(NotFoundError):
            products_service.get_bom(tenant_id=tenant_b.id, product_id=bread.id)
        with pytest.raises(NotFoundError):
            products_service.update_product(tenant_id=tenant_b.id, product_id=bread.id, payload={"size": "S"})

    def test_recipe_cannot_use_foreign_material(self, db_session, tenant_a, tenant_b, flour):
        own = products_service.create_product(tenant_id=tenant_b.id, payload={"name": "Pie", "size": "One"})
        with pytest.raises(NotFoundError):
            products_service.save_bom(tenant_id=tenant_b.id, product_id=own.id, items=[
                {"material_id": flour.id, "quantity_per_unit": 1},
            ])

    def test_production_and_sales(self, db_session, tenant_a, tenant_b, stocked_bread):
        with pytest.raises(NotFoundError):
            production_service.record_production(tenant_id=tenant_b.id, product_id=stocked_bread.id, quantity=1)
        with pytest.raises(NotFoundError):
            sales_service.record_sale(
                tenant_id=tenant_b.id, product_id=stocked_bread.id, quantity=1,
                customer_name="Thief", unit_price=1,
            )
        assert production_service.list_production_records(tenant_id=tenant_b.id) == []

    def test_sale_cannot_bill_foreign_customer(self, db_session, tenant_a, tenant_b, customer):
        product = products_service.create_product(tenant_id=tenant_b.id, payload={
            "name": "Pie", "size": "One", "current_stock": 5,
        })
        with pytest.raises(NotFoundError):
            sales_service.record_sale(
                tenant_id=tenant_b.id, product_id=product.id, quantity=1,
                customer_name="Cafe Noor", customer_id=customer.id, unit_price=1, amount_paid=0,
            )

    def test_reports_only_count_own_rows(self, db_session, tenant_a, tenant_b, stocked_bread):
        value = reporting_service.inventory_valuation(tenant_id=tenant_b.id)
        assert value["total_value"] == 0.0
        alerts = reporting_service.low_stock_alerts(tenant_id=tenant_b.id)
        assert alerts["count"] == 0

    def test_party_lists(self, db_session, tenant_a, tenant_b, customer, supplier):
        assert party_service.list_customers(tenant_id=tenant_b.id) == []
        assert party_service.list_suppliers(tenant_id=tenant_b.id) == []


class TestApiIsolation:
    """Foreign ids over HTTP look missing."""

    def test_foreign_material_is_404(self, client, db_session, flour):
        _, key_b = create_tenant(name="Gamma Foods", code="gamma")
        resp = client.get(f"/api/materials/{flour.id}", headers=_headers(key_b))
        assert resp.status_code == 404

        resp = client.delete(f"/api/materials/{flour.id}", headers=_headers(key_b))
        assert resp.status_code == 404

    def test_lists_are_scoped(self, client, db_session, api_headers, flour):
        _, key_b = create_tenant(name="Gamma Foods", code="gamma")
        assert client.get("/api/materials", headers=api_headers).get_json()["count"] == 1
        assert client.get("/api/materials", headers=_headers(key_b)).get_json()["count"] == 0

    def test_foreign_customer_payment_is_404(self, client, db_session, customer):
        _, key_b = create_tenant(name="Gamma Foods", code="gamma")
        resp = client.post(f"/api/customers/{customer.id}/payments", json={"amount": 10}, headers=_headers(key_b))
        assert resp.status_code == 404
