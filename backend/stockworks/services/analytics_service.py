# Overview: Read-only customer purchase analytics over sales history.

"""
Customer Analytics

The numbers are computed in two steps:
1. A backend reads the customer's sales and returns plain facts (per-product
   totals, weekday and month counts, sale dates, payment method counts).
2. compute_customer_analytics turns the facts into percentages, the monthly
   trend and the next-purchase prediction.

Two backends implement step 1:
- "history": loads the sale rows and folds them in Python
- "aggregate": lets the database GROUP BY
Both feed the same formulas, so they must agree on every field.

Prediction:
- needs at least 2 sales
- gaps = days between consecutive sales (chronological)
- predicted_date = last sale + round_half_up(mean(gaps)) days
- confidence = clamp(0, 100, 100 - pvariance(gaps) / mean(gaps) * 50),
  0 when the mean gap is 0
"""

from __future__ import annotations

import math
import statistics
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import Integer, cast, func

from ..extensions import db
from ..errors import ValidationError
from ..models import Customer, Product, SaleRecord
from ..validation import PAYMENT_METHODS
from stockworks.time_utils import coerce_datetime, month_key, shift_month, to_utc_z
from .tenant_service import get_owned


WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
TOP_PRODUCTS = 5
RECOMMENDED_PRODUCTS = 3
TREND_MONTHS = 12


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _pct(part, whole) -> float:
    if not whole:
        return 0.0
    return round(float(part) / float(whole) * 100, 2)


def _weekday_index(dt: datetime) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (dt.weekday() + 1) % 7


@dataclass
class ProductShare:
    product_id: int
    product_name: str
    product_name_ar: str | None
    total_quantity: float
    total_amount: float
    purchase_count: int
    percentage: float


@dataclass
class WeekdayBucket:
    day: int
    day_name: str
    purchases: int
    percentage: float


@dataclass
class MonthBucket:
    month: str
    purchases: int
    quantity: float
    amount: float


@dataclass
class PurchasePrediction:
    predicted_date: datetime | None = None
    confidence: float = 0.0
    avg_days_between_orders: float | None = None
    recommended_products: list[str] = field(default_factory=list)


@dataclass
class PaymentBehavior:
    cash_sales_percentage: float = 0.0
    credit_sales_percentage: float = 0.0
    preferred_payment_method: str | None = None
    average_payment_delay_days: float | None = None


@dataclass
class CustomerAnalytics:
    customer_id: int
    total_purchases: int = 0
    total_amount: float = 0.0
    most_purchased_products: list[ProductShare] = field(default_factory=list)
    weekly_purchase_pattern: list[WeekdayBucket] = field(default_factory=list)
    monthly_trend: list[MonthBucket] = field(default_factory=list)
    predicted_next_purchase: PurchasePrediction = field(default_factory=PurchasePrediction)
    payment_behavior: PaymentBehavior = field(default_factory=PaymentBehavior)

    def to_dict(self) -> dict:
        data = asdict(self)
        prediction = data["predicted_next_purchase"]
        prediction["predicted_date"] = to_utc_z(prediction["predicted_date"])
        return data


@dataclass
class SalesFacts:
    """What a backend extracts from one customer's sales."""
    total_purchases: int
    total_amount: Decimal
    # product_id -> (name, name_ar, quantity, amount, count)
    products: dict[int, tuple]
    weekday_counts: dict[int, int]
    # "YYYY-MM" -> (count, quantity, amount)
    months: dict[str, tuple]
    sale_dates: list[datetime]
    method_counts: dict[str, int]


class SalesHistoryBackend:
    """Folds raw sale rows in Python."""
    name = "history"

    def collect(self, tenant_id: int, customer_id: int) -> SalesFacts:
        rows = db.session.query(SaleRecord, Product).join(
            Product, Product.id == SaleRecord.product_id
        ).filter(
            SaleRecord.tenant_id == tenant_id,
            SaleRecord.customer_id == customer_id,
        ).order_by(SaleRecord.sale_date.asc(), SaleRecord.id.asc()).all()

        total_amount = Decimal("0")
        products: dict[int, list] = {}
        weekday_counts: dict[int, int] = {}
        months: dict[str, list] = {}
        method_counts: dict[str, int] = {}

        for sale, product in rows:
            qty = Decimal(str(sale.quantity))
            amount = Decimal(str(sale.total_amount))
            total_amount += amount

            entry = products.setdefault(product.id, [product.name, product.name_ar, Decimal("0"), Decimal("0"), 0])
            entry[2] += qty
            entry[3] += amount
            entry[4] += 1

            day = _weekday_index(sale.sale_date)
            weekday_counts[day] = weekday_counts.get(day, 0) + 1

            bucket = months.setdefault(month_key(sale.sale_date), [0, Decimal("0"), Decimal("0")])
            bucket[0] += 1
            bucket[1] += qty
            bucket[2] += amount

            method_counts[sale.payment_method] = method_counts.get(sale.payment_method, 0) + 1

        return SalesFacts(
            total_purchases=len(rows),
            total_amount=total_amount,
            products={pid: tuple(v) for pid, v in products.items()},
            weekday_counts=weekday_counts,
            months={k: tuple(v) for k, v in months.items()},
            sale_dates=[sale.sale_date for sale, _ in rows],
            method_counts=method_counts,
        )


class AggregateQueryBackend:
    """Lets the database do the grouping."""
    name = "aggregate"

    @staticmethod
    def _weekday_expr(column):
        if db.engine.dialect.name == "sqlite":
            return cast(func.strftime("%w", column), Integer)
        return cast(func.extract("dow", column), Integer)

    @staticmethod
    def _month_expr(column):
        if db.engine.dialect.name == "sqlite":
            return func.strftime("%Y-%m", column)
        return func.to_char(column, "YYYY-MM")

    def collect(self, tenant_id: int, customer_id: int) -> SalesFacts:
        scope = (
            SaleRecord.tenant_id == tenant_id,
            SaleRecord.customer_id == customer_id,
        )

        count, total = db.session.query(
            func.count(SaleRecord.id),
            func.coalesce(func.sum(SaleRecord.total_amount), 0),
        ).filter(*scope).one()

        product_rows = db.session.query(
            Product.id,
            Product.name,
            Product.name_ar,
            func.sum(SaleRecord.quantity),
            func.sum(SaleRecord.total_amount),
            func.count(SaleRecord.id),
        ).join(Product, Product.id == SaleRecord.product_id).filter(*scope).group_by(
            Product.id, Product.name, Product.name_ar
        ).all()

        weekday = self._weekday_expr(SaleRecord.sale_date)
        weekday_rows = db.session.query(weekday, func.count(SaleRecord.id)).filter(
            *scope
        ).group_by(weekday).all()

        month = self._month_expr(SaleRecord.sale_date)
        month_rows = db.session.query(
            month,
            func.count(SaleRecord.id),
            func.sum(SaleRecord.quantity),
            func.sum(SaleRecord.total_amount),
        ).filter(*scope).group_by(month).all()

        method_rows = db.session.query(
            SaleRecord.payment_method, func.count(SaleRecord.id)
        ).filter(*scope).group_by(SaleRecord.payment_method).all()

        dates = [
            d for (d,) in db.session.query(SaleRecord.sale_date).filter(*scope).order_by(
                SaleRecord.sale_date.asc(), SaleRecord.id.asc()
            ).all()
        ]

        return SalesFacts(
            total_purchases=int(count),
            total_amount=Decimal(str(total)),
            products={
                pid: (name, name_ar, Decimal(str(qty)), Decimal(str(amount)), int(n))
                for pid, name, name_ar, qty, amount, n in product_rows
            },
            weekday_counts={int(day): int(n) for day, n in weekday_rows},
            months={
                key: (int(n), Decimal(str(qty)), Decimal(str(amount)))
                for key, n, qty, amount in month_rows
            },
            sale_dates=dates,
            method_counts={m: int(n) for m, n in method_rows},
        )


BACKENDS = {
    SalesHistoryBackend.name: SalesHistoryBackend(),
    AggregateQueryBackend.name: AggregateQueryBackend(),
}


def _top_products(facts: SalesFacts) -> list[ProductShare]:
    total_qty = sum((v[2] for v in facts.products.values()), Decimal("0"))
    ranked = sorted(facts.products.items(), key=lambda kv: (-kv[1][2], kv[0]))
    return [
        ProductShare(
            product_id=pid,
            product_name=name,
            product_name_ar=name_ar,
            total_quantity=float(qty),
            total_amount=float(amount),
            purchase_count=count,
            percentage=_pct(qty, total_qty),
        )
        for pid, (name, name_ar, qty, amount, count) in ranked[:TOP_PRODUCTS]
    ]


def _weekly_pattern(facts: SalesFacts) -> list[WeekdayBucket]:
    return [
        WeekdayBucket(
            day=day,
            day_name=WEEKDAY_NAMES[day],
            purchases=facts.weekday_counts.get(day, 0),
            percentage=_pct(facts.weekday_counts.get(day, 0), facts.total_purchases),
        )
        for day in range(7)
    ]


def _monthly_trend(facts: SalesFacts, as_of: datetime) -> list[MonthBucket]:
    trend = []
    for offset in range(TREND_MONTHS - 1, -1, -1):
        year, month = shift_month(as_of.year, as_of.month, -offset)
        key = f"{year:04d}-{month:02d}"
        count, qty, amount = facts.months.get(key, (0, Decimal("0"), Decimal("0")))
        trend.append(MonthBucket(month=key, purchases=count, quantity=float(qty), amount=float(amount)))
    return trend


def _prediction(facts: SalesFacts, top: list[ProductShare]) -> PurchasePrediction:
    dates = sorted(facts.sale_dates)
    if len(dates) < 2:
        return PurchasePrediction()

    gaps = [(b - a).total_seconds() / 86400 for a, b in zip(dates, dates[1:])]
    avg = statistics.fmean(gaps)
    if avg > 0:
        variance = statistics.pvariance(gaps)
        confidence = max(0.0, min(100.0, 100 - (variance / avg) * 50))
    else:
        confidence = 0.0

    return PurchasePrediction(
        predicted_date=dates[-1] + timedelta(days=round_half_up(avg)),
        confidence=round(confidence, 2),
        avg_days_between_orders=round(avg, 2),
        recommended_products=[p.product_name for p in top[:RECOMMENDED_PRODUCTS]],
    )


def _payment_behavior(facts: SalesFacts) -> PaymentBehavior:
    if facts.total_purchases == 0:
        return PaymentBehavior()

    counts = facts.method_counts
    credit_like = counts.get("credit", 0) + counts.get("mixed", 0)
    order = {m: i for i, m in enumerate(PAYMENT_METHODS)}
    preferred = min(counts, key=lambda m: (-counts[m], order.get(m, len(order)), m))

    return PaymentBehavior(
        cash_sales_percentage=_pct(counts.get("cash", 0), facts.total_purchases),
        credit_sales_percentage=_pct(credit_like, facts.total_purchases),
        preferred_payment_method=preferred,
        # TODO: derive from payment transactions once payments are matched to sales
        average_payment_delay_days=None,
    )


def compute_customer_analytics(
    *,
    tenant_id: int,
    customer_id: int,
    as_of=None,
    backend: str = "history",
) -> CustomerAnalytics:
    """
    Purchase analytics for one customer.

    as_of anchors the 12-month trend window (defaults to now). A customer
    without sales gets a zeroed result, never an error.
    """
    if backend not in BACKENDS:
        raise ValidationError(
            f"backend must be one of: {', '.join(sorted(BACKENDS))}",
            details={"backend": backend},
        )
    try:
        as_of = coerce_datetime(as_of)
    except ValueError:
        raise ValidationError("as_of must be an ISO-8601 datetime")

    get_owned(Customer, customer_id, tenant_id, label="Customer")
    facts = BACKENDS[backend].collect(tenant_id, customer_id)

    top = _top_products(facts)
    return CustomerAnalytics(
        customer_id=customer_id,
        total_purchases=facts.total_purchases,
        total_amount=float(facts.total_amount),
        most_purchased_products=top,
        weekly_purchase_pattern=_weekly_pattern(facts),
        monthly_trend=_monthly_trend(facts, as_of),
        predicted_next_purchase=_prediction(facts, top),
        payment_behavior=_payment_behavior(facts),
    )
