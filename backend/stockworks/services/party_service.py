# Overview: Service-layer operations for customers, suppliers and their ledgers.

"""
Party Ledger Service

Customers and suppliers share one model: a denormalized current_balance
backed by an append-only transaction log.

BALANCE STRATEGY (single, uniform):
- Authoritative: balance = SUM(charges) - SUM(payments) over the log,
  where the charge type is "sale" for customers and "purchase" for suppliers.
- Every log append applies the signed amount to current_balance in the same
  DB transaction (_append_transaction). Every log removal applies the
  inverse (_remove_transactions). Nothing else writes current_balance.
- compute_*_balance recomputes from the log; rebuild_balances repairs drift.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..errors import ValidationError
from ..models import (
    Customer,
    Supplier,
    CustomerTransaction,
    SupplierTransaction,
    SaleRecord,
    RawMaterial,
    MaterialReceipt,
)
from ..validation import require_positive, require_text, optional_text
from stockworks.time_utils import coerce_datetime
from .concurrency import atomic, run_with_retry
from .tenant_service import get_owned, scoped_query


PAYMENT = "payment"
PARTY_FIELDS = {"name", "phone", "email", "address", "notes"}


@dataclass(frozen=True)
class _PartyLedger:
    label: str
    model: type
    transaction_model: type
    owner_field: str
    charge_type: str
    payment_description: str


CUSTOMERS = _PartyLedger(
    label="Customer",
    model=Customer,
    transaction_model=CustomerTransaction,
    owner_field="customer_id",
    charge_type="sale",
    payment_description="Payment from customer",
)

SUPPLIERS = _PartyLedger(
    label="Supplier",
    model=Supplier,
    transaction_model=SupplierTransaction,
    owner_field="supplier_id",
    charge_type="purchase",
    payment_description="Payment to supplier",
)


def _signed(ledger: _PartyLedger, transaction_type: str, amount: Decimal) -> Decimal:
    if transaction_type == PAYMENT:
        return -amount
    if transaction_type == ledger.charge_type:
        return amount
    raise ValidationError(
        f"transaction_type must be '{ledger.charge_type}' or '{PAYMENT}'"
    )


def _new_party(ledger: _PartyLedger, tenant_id: int, fields: dict):
    party = ledger.model(
        tenant_id=tenant_id,
        name=require_text(fields.get("name"), "name"),
        phone=optional_text(fields.get("phone")),
        email=optional_text(fields.get("email")),
        address=optional_text(fields.get("address")),
        notes=optional_text(fields.get("notes")),
        current_balance=Decimal("0"),
    )
    db.session.add(party)
    db.session.flush()
    return party


def _append_transaction(
    ledger: _PartyLedger,
    party,
    *,
    transaction_type: str,
    amount,
    description: str | None = None,
    reference_id: int | None = None,
    transaction_date: datetime | str | None = None,
):
    """Append one ledger row and apply it to the party balance. Flushes, never commits."""
    amount = require_positive(amount, "amount")
    delta = _signed(ledger, transaction_type, amount)

    tx = ledger.transaction_model(
        tenant_id=party.tenant_id,
        transaction_type=transaction_type,
        amount=amount,
        description=description[:255] if description else None,
        reference_id=reference_id,
        transaction_date=coerce_datetime(transaction_date),
    )
    setattr(tx, ledger.owner_field, party.id)
    party.current_balance = Decimal(str(party.current_balance or 0)) + delta

    db.session.add(tx)
    db.session.flush()
    return tx


def _remove_transactions(ledger: _PartyLedger, transactions) -> int:
    """Delete ledger rows, reversing each one's balance effect. Flushes, never commits."""
    removed = 0
    for tx in transactions:
        party = db.session.get(ledger.model, getattr(tx, ledger.owner_field))
        if party is not None:
            delta = _signed(ledger, tx.transaction_type, Decimal(str(tx.amount)))
            party.current_balance = Decimal(str(party.current_balance or 0)) - delta
        db.session.delete(tx)
        removed += 1
    db.session.flush()
    return removed


def _compute_balance(ledger: _PartyLedger, party_id: int) -> Decimal:
    txm = ledger.transaction_model
    owner_col = getattr(txm, ledger.owner_field)
    rows = db.session.query(
        txm.transaction_type,
        func.coalesce(func.sum(txm.amount), 0),
    ).filter(owner_col == party_id).group_by(txm.transaction_type).all()

    balance = Decimal("0")
    for transaction_type, total in rows:
        balance += _signed(ledger, transaction_type, Decimal(str(total)))
    return balance


def _record_payment(ledger: _PartyLedger, *, tenant_id, party_id, amount, description, transaction_date):
    def _op():
        with atomic():
            party = get_owned(ledger.model, party_id, tenant_id, lock=True, label=ledger.label)
            return _append_transaction(
                ledger,
                party,
                transaction_type=PAYMENT,
                amount=amount,
                description=description or ledger.payment_description,
                transaction_date=transaction_date,
            )
    return run_with_retry(_op)


def _update_party(ledger: _PartyLedger, *, tenant_id, party_id, fields: dict):
    unknown = set(fields) - PARTY_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    def _op():
        with atomic():
            party = get_owned(ledger.model, party_id, tenant_id, lock=True, label=ledger.label)
            for key, value in fields.items():
                if key == "name":
                    party.name = require_text(value, "name")
                else:
                    setattr(party, key, optional_text(value))
            return party
    return run_with_retry(_op)


def _list_transactions(ledger: _PartyLedger, *, tenant_id, party_id):
    get_owned(ledger.model, party_id, tenant_id, label=ledger.label)
    txm = ledger.transaction_model
    return scoped_query(txm, tenant_id).filter(
        getattr(txm, ledger.owner_field) == party_id
    ).order_by(txm.transaction_date.desc(), txm.id.desc()).all()


# Customers

def create_customer(*, tenant_id: int, name: str, **fields) -> Customer:
    with atomic():
        return _new_party(CUSTOMERS, tenant_id, {"name": name, **fields})


def create_customer_inline(*, tenant_id: int, name: str) -> Customer:
    """Customer created on demand during a sale; caller owns the unit of work."""
    return _new_party(CUSTOMERS, tenant_id, {"name": name})


def get_customer(*, tenant_id: int, customer_id: int) -> Customer:
    return get_owned(Customer, customer_id, tenant_id, label="Customer")


def list_customers(*, tenant_id: int) -> list[Customer]:
    return scoped_query(Customer, tenant_id).order_by(Customer.name.asc()).all()


def update_customer(*, tenant_id: int, customer_id: int, fields: dict) -> Customer:
    return _update_party(CUSTOMERS, tenant_id=tenant_id, party_id=customer_id, fields=fields)


def delete_customer(*, tenant_id: int, customer_id: int) -> None:
    """
    Delete a customer and its ledger.

    Sales keep their customer_name and are detached (customer_id = NULL).
    """
    with atomic():
        customer = get_owned(Customer, customer_id, tenant_id, lock=True, label="Customer")
        for tx in list(customer.transactions):
            db.session.delete(tx)
        scoped_query(SaleRecord, tenant_id).filter(
            SaleRecord.customer_id == customer.id
        ).update({SaleRecord.customer_id: None}, synchronize_session="fetch")
        db.session.delete(customer)


def append_customer_transaction(customer: Customer, **kwargs) -> CustomerTransaction:
    return _append_transaction(CUSTOMERS, customer, **kwargs)


def remove_customer_transactions_for_reference(*, tenant_id: int, reference_id: int) -> int:
    """Delete the sale-credit rows linked to one SaleRecord, reversing balances."""
    rows = scoped_query(CustomerTransaction, tenant_id).filter(
        CustomerTransaction.reference_id == reference_id,
        CustomerTransaction.transaction_type == CUSTOMERS.charge_type,
    ).all()
    return _remove_transactions(CUSTOMERS, rows)


def record_customer_payment(
    *,
    tenant_id: int,
    customer_id: int,
    amount,
    description: str | None = None,
    transaction_date=None,
) -> CustomerTransaction:
    """Payment received from a customer; lowers what they owe."""
    return _record_payment(
        CUSTOMERS,
        tenant_id=tenant_id,
        party_id=customer_id,
        amount=amount,
        description=description,
        transaction_date=transaction_date,
    )


def list_customer_transactions(*, tenant_id: int, customer_id: int) -> list[CustomerTransaction]:
    return _list_transactions(CUSTOMERS, tenant_id=tenant_id, party_id=customer_id)


def compute_customer_balance(customer_id: int) -> Decimal:
    return _compute_balance(CUSTOMERS, customer_id)


# Suppliers

def create_supplier(*, tenant_id: int, name: str, **fields) -> Supplier:
    with atomic():
        return _new_party(SUPPLIERS, tenant_id, {"name": name, **fields})


def get_supplier(*, tenant_id: int, supplier_id: int) -> Supplier:
    return get_owned(Supplier, supplier_id, tenant_id, label="Supplier")


def list_suppliers(*, tenant_id: int) -> list[Supplier]:
    return scoped_query(Supplier, tenant_id).order_by(Supplier.name.asc()).all()


def update_supplier(*, tenant_id: int, supplier_id: int, fields: dict) -> Supplier:
    return _update_party(SUPPLIERS, tenant_id=tenant_id, party_id=supplier_id, fields=fields)


def delete_supplier(*, tenant_id: int, supplier_id: int) -> None:
    """
    Delete a supplier and its ledger.

    Materials and receipts that named the supplier are detached.
    """
    with atomic():
        supplier = get_owned(Supplier, supplier_id, tenant_id, lock=True, label="Supplier")
        for tx in list(supplier.transactions):
            db.session.delete(tx)
        scoped_query(RawMaterial, tenant_id).filter(
            RawMaterial.supplier_id == supplier.id
        ).update({RawMaterial.supplier_id: None}, synchronize_session="fetch")
        scoped_query(MaterialReceipt, tenant_id).filter(
            MaterialReceipt.supplier_id == supplier.id
        ).update({MaterialReceipt.supplier_id: None}, synchronize_session="fetch")
        db.session.delete(supplier)


def append_supplier_transaction(supplier: Supplier, **kwargs) -> SupplierTransaction:
    return _append_transaction(SUPPLIERS, supplier, **kwargs)


def record_supplier_payment(
    *,
    tenant_id: int,
    supplier_id: int,
    amount,
    description: str | None = None,
    transaction_date=None,
) -> SupplierTransaction:
    """Payment made to a supplier; lowers what the business owes."""
    return _record_payment(
        SUPPLIERS,
        tenant_id=tenant_id,
        party_id=supplier_id,
        amount=amount,
        description=description,
        transaction_date=transaction_date,
    )


def list_supplier_transactions(*, tenant_id: int, supplier_id: int) -> list[SupplierTransaction]:
    return _list_transactions(SUPPLIERS, tenant_id=tenant_id, party_id=supplier_id)


def compute_supplier_balance(supplier_id: int) -> Decimal:
    return _compute_balance(SUPPLIERS, supplier_id)


def rebuild_balances(tenant_id: int, *, fix: bool = True) -> list[dict]:
    """
    Recompute every customer and supplier balance from its ledger.

    Returns the parties whose stored balance disagreed. With fix=True the
    stored balances are overwritten with the ledger values.
    """
    drift = []
    with atomic():
        for ledger in (CUSTOMERS, SUPPLIERS):
            for party in scoped_query(ledger.model, tenant_id).all():
                expected = _compute_balance(ledger, party.id)
                stored = Decimal(str(party.current_balance or 0))
                if stored.quantize(Decimal("0.0001")) != expected.quantize(Decimal("0.0001")):
                    drift.append({
                        "party_type": ledger.label.lower(),
                        "party_id": party.id,
                        "name": party.name,
                        "stored_balance": float(stored),
                        "ledger_balance": float(expected),
                    })
                    if fix:
                        party.current_balance = expected
    return drift
