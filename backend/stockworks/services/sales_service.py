# Overview: Service-layer operations for sales and their customer credit.

"""
Sales Service

WHY: A sale moves three things at once: product stock, the sale document and,
when not fully paid, the customer's ledger. All three are written in one unit
of work so a failure on any of them leaves no trace.

Payment terms are derived, not trusted:
- unpaid when nothing was paid (always booked as credit)
- paid when amount_paid covers total_amount
- partial otherwise
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..extensions import db
from ..errors import InsufficientStockError, ValidationError
from ..models import Customer, Product, SaleRecord
from ..validation import (
    PAYMENT_METHODS,
    optional_text,
    require_non_negative,
    require_positive,
)
from stockworks.time_utils import coerce_datetime, resolve_range
from .concurrency import atomic, run_with_retry
from .ledger_service import append_stock_movement, ITEM_PRODUCT
from .party_service import (
    append_customer_transaction,
    create_customer_inline,
    remove_customer_transactions_for_reference,
)
from .tenant_service import get_owned, scoped_query


REFERENCE_TYPE = "sale_record"

DEFAULT_METHOD_BY_STATUS = {
    "paid": "cash",
    "partial": "mixed",
    "unpaid": "credit",
}


@dataclass(frozen=True)
class PaymentTerms:
    total_amount: Decimal
    amount_paid: Decimal
    payment_status: str
    payment_method: str

    @property
    def amount_due(self) -> Decimal:
        due = self.total_amount - self.amount_paid
        return due if due > 0 else Decimal("0")


def derive_payment_terms(
    *,
    quantity: Decimal,
    unit_price: Decimal,
    shipping_cost: Decimal | None = None,
    amount_paid: Decimal | None = None,
    payment_method: str | None = None,
) -> PaymentTerms:
    """
    total = quantity * unit_price + shipping; paid defaults to total.

    A method outside cash/credit/mixed is replaced by the status default,
    and an unpaid sale is credit whatever was asked for.
    """
    total = quantity * unit_price + (shipping_cost or Decimal("0"))
    paid = total if amount_paid is None else amount_paid

    if paid == 0:
        status = "unpaid"
    elif paid >= total:
        status = "paid"
    else:
        status = "partial"

    method = (payment_method or "").strip().lower()
    if status == "unpaid" or method not in PAYMENT_METHODS:
        method = DEFAULT_METHOD_BY_STATUS[status]

    return PaymentTerms(
        total_amount=total,
        amount_paid=paid,
        payment_status=status,
        payment_method=method,
    )


def record_sale(
    *,
    tenant_id: int,
    product_id: int,
    quantity,
    customer_name: str | None,
    unit_price,
    sale_date=None,
    customer_id: int | None = None,
    amount_paid=None,
    payment_method: str | None = None,
    notes: str | None = None,
    shipping_cost=None,
    create_customer: bool = False,
) -> SaleRecord:
    """
    Record a sale of quantity units of a product.

    Raises InsufficientStockError (nothing written) when stock is short.
    With create_customer=True and no customer_id, a customer named
    customer_name is created in the same transaction.
    """
    quantity = require_positive(quantity, "quantity")
    unit_price = require_non_negative(unit_price, "unit_price")
    shipping_cost = require_non_negative(shipping_cost, "shipping_cost", allow_none=True)
    amount_paid = require_non_negative(amount_paid, "amount_paid", allow_none=True)
    try:
        sold_at = coerce_datetime(sale_date)
    except ValueError:
        raise ValidationError("sale_date must be an ISO-8601 datetime")

    terms = derive_payment_terms(
        quantity=quantity,
        unit_price=unit_price,
        shipping_cost=shipping_cost,
        amount_paid=amount_paid,
        payment_method=payment_method,
    )
    name = optional_text(customer_name)

    def _op():
        with atomic():
            product = get_owned(Product, product_id, tenant_id, lock=True, label="Product")
            available = Decimal(str(product.current_stock or 0))
            if available < quantity:
                raise InsufficientStockError(product.name, available, quantity)

            customer = None
            if customer_id is not None:
                customer = get_owned(Customer, customer_id, tenant_id, lock=True, label="Customer")
            elif create_customer:
                if not name:
                    raise ValidationError("customer_name is required to create a customer")
                customer = create_customer_inline(tenant_id=tenant_id, name=name)

            sale_customer_name = name or (customer.name if customer else None)
            if not sale_customer_name:
                raise ValidationError("customer_name cannot be blank")

            sale = SaleRecord(
                tenant_id=tenant_id,
                product_id=product.id,
                customer_id=customer.id if customer else None,
                customer_name=sale_customer_name,
                quantity=quantity,
                sale_price=unit_price,
                shipping_cost=shipping_cost or Decimal("0"),
                total_amount=terms.total_amount,
                amount_paid=terms.amount_paid,
                payment_method=terms.payment_method,
                payment_status=terms.payment_status,
                sale_date=sold_at,
                notes=optional_text(notes),
            )
            db.session.add(sale)
            db.session.flush()

            product.current_stock = available - quantity
            append_stock_movement(
                tenant_id=tenant_id,
                item_type=ITEM_PRODUCT,
                item_id=product.id,
                movement_type="sale",
                quantity_delta=-quantity,
                reference_type=REFERENCE_TYPE,
                reference_id=sale.id,
                occurred_at=sold_at,
            )

            if customer is not None and terms.amount_due > 0:
                append_customer_transaction(
                    customer,
                    transaction_type="sale",
                    amount=terms.amount_due,
                    description=(
                        f"Credit Sale - {sale_customer_name} ({quantity} x {unit_price}) "
                        f"- Unpaid: {terms.amount_due}"
                    ),
                    reference_id=sale.id,
                    transaction_date=sold_at,
                )
            return sale
    return run_with_retry(_op)


def delete_sale_record(*, tenant_id: int, sale_id: int) -> None:
    """Delete a sale: drop its customer credit (reversing the balance) and restore product stock."""
    def _op():
        with atomic():
            sale = get_owned(SaleRecord, sale_id, tenant_id, lock=True, label="Sale record")
            product = get_owned(Product, sale.product_id, tenant_id, lock=True, label="Product")

            remove_customer_transactions_for_reference(tenant_id=tenant_id, reference_id=sale.id)

            quantity = Decimal(str(sale.quantity))
            product.current_stock = Decimal(str(product.current_stock or 0)) + quantity
            append_stock_movement(
                tenant_id=tenant_id,
                item_type=ITEM_PRODUCT,
                item_id=product.id,
                movement_type="sale_reversal",
                quantity_delta=quantity,
                reference_type=REFERENCE_TYPE,
                reference_id=sale.id,
            )

            db.session.delete(sale)
    return run_with_retry(_op)


def get_sale(*, tenant_id: int, sale_id: int) -> SaleRecord:
    return get_owned(SaleRecord, sale_id, tenant_id, label="Sale record")


def list_sales(*, tenant_id: int, start=None, end=None, customer_id: int | None = None) -> list[SaleRecord]:
    try:
        start_dt, end_dt = resolve_range(start, end)
    except ValueError:
        raise ValidationError("start and end must be ISO-8601 dates")

    q = scoped_query(SaleRecord, tenant_id)
    if start_dt is not None:
        q = q.filter(SaleRecord.sale_date >= start_dt)
    if end_dt is not None:
        q = q.filter(SaleRecord.sale_date <= end_dt)
    if customer_id is not None:
        q = q.filter(SaleRecord.customer_id == customer_id)
    return q.order_by(SaleRecord.sale_date.desc(), SaleRecord.id.desc()).all()
