# Overview: Pytest coverage for period summary, low-stock alerts and valuation.

import pytest

from stockworks.errors import ValidationError
from stockworks.services import materials_service, production_service, reporting_service, sales_service


class TestPeriodSummary:
    def test_totals_inside_range(self, db_session, tenant_a, bread):
        production_service.record_production(
            tenant_id=tenant_a.id, product_id=bread.id, quantity=10, production_date="2026-05-02T06:00:00Z",
        )
        # outside the range
        production_service.record_production(
            tenant_id=tenant_a.id, product_id=bread.id, quantity=10, production_date="2026-04-30T06:00:00Z",
        )
        sales_service.record_sale(
            tenant_id=tenant_a.id, product_id=bread.id, quantity=4, customer_name="Walk-in",
            unit_price=10, sale_date="2026-05-10T12:00:00Z",
        )
        sales_service.record_sale(
            tenant_id=tenant_a.id, product_id=bread.id, quantity=2, customer_name="Walk-in",
            unit_price=10, amount_paid=5, sale_date="2026-05-31T23:30:00Z",
        )

        summary = reporting_service.period_summary(tenant_id=tenant_a.id, start="2026-05-01", end="2026-05-31")

        assert summary["sales_count"] == 2
        assert summary["total_sales"] == 60.0
        assert summary["amount_collected"] == 45.0
        assert summary["outstanding"] == 15.0
        assert summary["production_runs"] == 1
        # 5 kg flour at 2 + 1 kg sugar at 4
        assert summary["total_production_cost"] == 14.0
        assert summary["gross_profit"] == 46.0
        assert summary["currency"] == "SAR"
        assert summary["start"] == "2026-05-01T00:00:00Z"

    def test_empty_period(self, db_session, tenant_a):
        summary = reporting_service.period_summary(tenant_id=tenant_a.id, start="2020-01-01", end="2020-01-31")
        assert summary["sales_count"] == 0
        assert summary["total_sales"] == 0.0
        assert summary["gross_profit"] == 0.0

    @pytest.mark.parametrize("start,end", [
        (None, "2026-01-31"),
        ("2026-02-01", "2026-01-01"),
        ("yesterday", "2026-01-01"),
    ])
    def test_bad_ranges(self, db_session, tenant_a, start, end):
        with pytest.raises(ValidationError):
            reporting_service.period_summary(tenant_id=tenant_a.id, start=start, end=end)


class TestLowStock:
    def test_product_without_stock_is_low(self, db_session, tenant_a, bread):
        alerts = reporting_service.low_stock_alerts(tenant_id=tenant_a.id)
        assert [p["name"] for p in alerts["products"]] == ["Bread"]
        assert alerts["materials"] == []
        assert alerts["count"] == 1

    def test_threshold_is_inclusive(self, db_session, tenant_a, stocked_bread, flour):
        materials_service.update_material(
            tenant_id=tenant_a.id, material_id=flour.id, payload={"min_threshold": 90},
        )
        alerts = reporting_service.low_stock_alerts(tenant_id=tenant_a.id)
        assert [m["name"] for m in alerts["materials"]] == ["Flour"]
        assert alerts["products"] == []


class TestValuation:
    def test_inventory_value(self, db_session, tenant_a, stocked_bread):
        value = reporting_service.inventory_valuation(tenant_id=tenant_a.id)
        # flour 90 * 2 + sugar 48 * 4
        assert value["materials_value"] == 372.0
        # bread 20 * 1.4
        assert value["products_value"] == 28.0
        assert value["total_value"] == 400.0

    def test_recipe_cost_report(self, db_session, tenant_a, bread):
        report = reporting_service.recipe_cost(tenant_id=tenant_a.id, product_id=bread.id)
        assert report == {"product_id": bread.id, "currency": "SAR", "unit_cost": 1.4}
