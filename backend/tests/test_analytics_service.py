# Overview: Pytest coverage for customer purchase analytics and its two backends.

from datetime import datetime

import pytest

from stockworks.errors import NotFoundError, ValidationError
from stockworks.services import analytics_service, products_service, sales_service
from stockworks.services.analytics_service import compute_customer_analytics, round_half_up


AS_OF = "2026-02-15T00:00:00Z"


@pytest.fixture
def sell(tenant_a, customer):
    """Record a sale to the customer fixture on a given date."""
    def _sell(product, when, *, quantity=1, unit_price=10, amount_paid=None):
        return sales_service.record_sale(
            tenant_id=tenant_a.id,
            product_id=product.id,
            quantity=quantity,
            customer_name="Cafe Noor",
            customer_id=customer.id,
            unit_price=unit_price,
            amount_paid=amount_paid,
            sale_date=when,
        )
    return _sell


@pytest.fixture
def shelf(tenant_a):
    """Products with plenty of opening stock, created on demand."""
    def _make(name):
        return products_service.create_product(tenant_id=tenant_a.id, payload={
            "name": name, "size": "Regular", "selling_price": 10, "current_stock": 100,
        })
    return _make


class TestRoundHalfUp:
    @pytest.mark.parametrize("value,expected", [(10.5, 11), (10.49, 10), (2.5, 3), (0.0, 0)])
    def test_rounding(self, value, expected):
        assert round_half_up(value) == expected


class TestCustomerWithoutSales:
    @pytest.mark.parametrize("backend", ["history", "aggregate"])
    def test_zeroed_result(self, db_session, tenant_a, customer, backend):
        result = compute_customer_analytics(
            tenant_id=tenant_a.id, customer_id=customer.id, as_of=AS_OF, backend=backend,
        )
        assert result.total_purchases == 0
        assert result.total_amount == 0.0
        assert result.most_purchased_products == []
        assert [b.purchases for b in result.weekly_purchase_pattern] == [0] * 7
        assert [b.percentage for b in result.weekly_purchase_pattern] == [0.0] * 7
        assert len(result.monthly_trend) == 12
        assert result.predicted_next_purchase.predicted_date is None
        assert result.predicted_next_purchase.confidence == 0.0
        assert result.payment_behavior.preferred_payment_method is None
        assert result.payment_behavior.average_payment_delay_days is None


class TestPrediction:
    def test_regular_orders_give_full_confidence(self, db_session, tenant_a, customer, stocked_bread, sell):
        # Sunday, Wednesday, Saturday, Tuesday: one order every 10 days
        for when in ("2026-01-04T10:00:00Z", "2026-01-14T10:00:00Z",
                     "2026-01-24T10:00:00Z", "2026-02-03T10:00:00Z"):
            sell(stocked_bread, when)

        result = compute_customer_analytics(tenant_id=tenant_a.id, customer_id=customer.id, as_of=AS_OF)
        prediction = result.predicted_next_purchase

        assert prediction.avg_days_between_orders == 10.0
        assert prediction.confidence == 100.0
        assert prediction.predicted_date == datetime(2026, 2, 13, 10, 0, 0)
        assert prediction.recommended_products == ["Bread"]

        by_day = {b.day_name: b for b in result.weekly_purchase_pattern}
        assert by_day["Sunday"].day == 0
        for name in ("Sunday", "Wednesday", "Saturday", "Tuesday"):
            assert by_day[name].purchases == 1
            assert by_day[name].percentage == 25.0
        assert by_day["Monday"].purchases == 0

    def test_irregular_orders_clamp_to_zero(self, db_session, tenant_a, customer, stocked_bread, sell):
        # gaps of 1 and 20 days: mean 10.5, population variance 90.25
        for when in ("2026-01-01T08:00:00Z", "2026-01-02T08:00:00Z", "2026-01-22T08:00:00Z"):
            sell(stocked_bread, when)

        prediction = compute_customer_analytics(
            tenant_id=tenant_a.id, customer_id=customer.id, as_of=AS_OF,
        ).predicted_next_purchase

        assert prediction.avg_days_between_orders == 10.5
        assert prediction.confidence == 0.0
        assert prediction.predicted_date == datetime(2026, 2, 2, 8, 0, 0)

    def test_single_sale_has_no_prediction(self, db_session, tenant_a, customer, stocked_bread, sell):
        sell(stocked_bread, "2026-01-10T08:00:00Z")
        prediction = compute_customer_analytics(
            tenant_id=tenant_a.id, customer_id=customer.id, as_of=AS_OF,
        ).predicted_next_purchase
        assert prediction.predicted_date is None
        assert prediction.avg_days_between_orders is None

    def test_same_day_orders_have_zero_confidence(self, db_session, tenant_a, customer, stocked_bread, sell):
        sell(stocked_bread, "2026-01-10T08:00:00Z")
        sell(stocked_bread, "2026-01-10T08:00:00Z")
        prediction = compute_customer_analytics(
            tenant_id=tenant_a.id, customer_id=customer.id, as_of=AS_OF,
        ).predicted_next_purchase
        assert prediction.confidence == 0.0
        assert prediction.predicted_date == datetime(2026, 1, 10, 8, 0, 0)


class TestProductsAndTrend:
    def test_top_five_by_quantity_with_id_tiebreak(self, db_session, tenant_a, customer, shelf, sell):
        products = [shelf(name) for name in ("A", "B", "C", "D", "E", "F")]
        # F sells most, A..E one unit each: ties fall back to creation order
        sell(products[5], "2026-01-05T09:00:00Z", quantity=5)
        for product in products[:5]:
            sell(product, "2026-01-06T09:00:00Z", quantity=1)

        result = compute_customer_analytics(tenant_id=tenant_a.id, customer_id=customer.id, as_of=AS_OF)
        top = result.most_purchased_products

        assert [p.product_name for p in top] == ["F", "A", "B", "C", "D"]
        assert top[0].total_quantity == 5.0
        assert top[0].percentage == 50.0
        assert top[1].percentage == 10.0
        assert result.predicted_next_purchase.recommended_products == ["F", "A", "B"]

    def test_monthly_trend_window(self, db_session, tenant_a, customer, stocked_bread, sell):
        sell(stocked_bread, "2026-01-04T10:00:00Z", quantity=2)
        sell(stocked_bread, "2026-01-20T10:00:00Z", quantity=1)
        sell(stocked_bread, "2026-02-03T10:00:00Z", quantity=3)
        # outside the window, still part of the totals
        sell(stocked_bread, "2024-12-01T10:00:00Z", quantity=1)

        result = compute_customer_analytics(tenant_id=tenant_a.id, customer_id=customer.id, as_of=AS_OF)
        trend = result.monthly_trend

        assert [m.month for m in trend][0] == "2025-03"
        assert trend[-1].month == "2026-02"
        assert trend[-1].purchases == 1
        assert trend[-1].quantity == 3.0
        assert trend[-2].month == "2026-01"
        assert trend[-2].purchases == 2
        assert trend[-2].amount == 30.0
        assert sum(m.purchases for m in trend) == 3
        assert result.total_purchases == 4
        assert result.total_amount == 70.0


class TestPaymentBehavior:
    def test_mix_of_methods(self, db_session, tenant_a, customer, stocked_bread, sell):
        sell(stocked_bread, "2026-01-01T08:00:00Z")
        sell(stocked_bread, "2026-01-02T08:00:00Z")
        sell(stocked_bread, "2026-01-03T08:00:00Z", amount_paid=0)
        sell(stocked_bread, "2026-01-04T08:00:00Z", quantity=2, amount_paid=5)

        behavior = compute_customer_analytics(
            tenant_id=tenant_a.id, customer_id=customer.id, as_of=AS_OF,
        ).payment_behavior

        assert behavior.cash_sales_percentage == 50.0
        # credit plus mixed
        assert behavior.credit_sales_percentage == 50.0
        assert behavior.preferred_payment_method == "cash"

    def test_tie_prefers_cash(self, db_session, tenant_a, customer, stocked_bread, sell):
        sell(stocked_bread, "2026-01-01T08:00:00Z", amount_paid=0)
        sell(stocked_bread, "2026-01-02T08:00:00Z")
        behavior = compute_customer_analytics(
            tenant_id=tenant_a.id, customer_id=customer.id, as_of=AS_OF,
        ).payment_behavior
        assert behavior.preferred_payment_method == "cash"


class TestBackends:
    def test_backends_agree(self, db_session, tenant_a, customer, stocked_bread, shelf, sell):
        cake = shelf("Cake")
        sell(stocked_bread, "2025-11-30T18:00:00Z", quantity=2)
        sell(cake, "2025-12-09T07:30:00Z", quantity=4, unit_price=12)
        sell(stocked_bread, "2026-01-15T12:00:00Z", quantity=1, amount_paid=0)
        sell(cake, "2026-02-01T09:00:00Z", quantity=2, unit_price=12, amount_paid=10)

        history = compute_customer_analytics(
            tenant_id=tenant_a.id, customer_id=customer.id, as_of=AS_OF, backend="history",
        )
        aggregate = compute_customer_analytics(
            tenant_id=tenant_a.id, customer_id=customer.id, as_of=AS_OF, backend="aggregate",
        )
        assert history.to_dict() == aggregate.to_dict()
        assert history.to_dict()["predicted_next_purchase"]["predicted_date"].endswith("Z")

    def test_unknown_backend(self, db_session, tenant_a, customer):
        with pytest.raises(ValidationError):
            compute_customer_analytics(tenant_id=tenant_a.id, customer_id=customer.id, backend="magic")

    def test_backends_registered(self):
        assert set(analytics_service.BACKENDS) == {"history", "aggregate"}


class TestScoping:
    def test_other_tenant_customer(self, db_session, tenant_a, tenant_b, customer):
        with pytest.raises(NotFoundError):
            compute_customer_analytics(tenant_id=tenant_b.id, customer_id=customer.id)
