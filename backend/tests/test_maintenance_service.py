# Overview: Pytest coverage for the password-gated tenant data reset.

import logging

from stockworks.models import (
    Customer,
    Product,
    ProductionRecord,
    RawMaterial,
    SaleRecord,
    StockMovement,
    Tenant,
)
from stockworks.services import maintenance_service, sales_service


class TestResetAllData:
    """Tests for reset_all_data."""

    def test_wrong_password_deletes_nothing(self, db_session, tenant_a, flour, caplog):
        with caplog.at_level(logging.WARNING):
            result = maintenance_service.reset_all_data(tenant_id=tenant_a.id, password="nope")

        assert result.success is False
        assert result.message == "Invalid password"
        assert db_session.query(RawMaterial).count() == 1
        assert "invalid password" in caplog.text

    def test_empty_password(self, db_session, tenant_a):
        result = maintenance_service.reset_all_data(tenant_id=tenant_a.id, password="   ")
        assert result.success is False
        assert result.message == "Invalid password"

    def test_tenant_without_reset_password(self, db_session, tenant_b):
        result = maintenance_service.reset_all_data(tenant_id=tenant_b.id, password="anything")
        assert result.success is False
        assert result.message == "No reset password has been configured for this account"

    def test_reset_wipes_tenant_data_only(
        self, db_session, tenant_a, tenant_b, stocked_bread, customer,
    ):
        sales_service.record_sale(
            tenant_id=tenant_a.id, product_id=stocked_bread.id, quantity=2,
            customer_name="Cafe Noor", customer_id=customer.id, unit_price=10, amount_paid=0,
        )
        other = Customer(tenant_id=tenant_b.id, name="Elsewhere", current_balance=0)
        db_session.add(other)
        db_session.commit()

        result = maintenance_service.reset_all_data(
            tenant_id=tenant_a.id, password="  correct horse battery ",
        )

        assert result.success is True
        assert result.message == "All data has been deleted"
        assert result.deleted["sales_records"] == 1
        assert result.deleted["production_records"] == 1
        assert result.deleted["customer_transactions"] == 1

        db_session.expire_all()
        for model in (RawMaterial, Product, ProductionRecord, SaleRecord, StockMovement):
            assert db_session.query(model).filter_by(tenant_id=tenant_a.id).count() == 0
        assert db_session.query(Customer).filter_by(tenant_id=tenant_a.id).count() == 0
        # tenant kept, other tenants untouched
        assert db_session.get(Tenant, tenant_a.id) is not None
        assert db_session.query(Customer).filter_by(tenant_id=tenant_b.id).count() == 1

    def test_result_to_dict(self):
        result = maintenance_service.ResetResult(False, "Invalid password")
        assert result.to_dict() == {"success": False, "message": "Invalid password", "deleted": {}}
