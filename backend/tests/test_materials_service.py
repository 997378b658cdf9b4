# Overview: Pytest coverage for raw materials, receipts and landed cost.

from decimal import Decimal

import pytest

from stockworks.errors import NotFoundError, ReferencedEntityError, ValidationError
from stockworks.models import MaterialReceipt, RawMaterial, StockMovement
from stockworks.services import materials_service, party_service
from stockworks.services.ledger_service import ITEM_MATERIAL, stock_from_movements
from stockworks.services.materials_service import resolve_landed_cost


class TestResolveLandedCost:
    """Cost resolution for a receipt."""

    def test_total_and_shipping_give_landed_unit_cost(self):
        """(100 + 20) / 10 = 12 exactly."""
        cost = resolve_landed_cost(
            quantity=Decimal("10"),
            current_cost=Decimal("5"),
            total_cost=Decimal("100"),
            shipping_cost=Decimal("20"),
        )
        assert cost.unit_cost == Decimal("12")
        assert cost.total_cost == Decimal("100")
        assert cost.priced is True

    def test_unit_cost_gives_total_including_shipping(self):
        cost = resolve_landed_cost(
            quantity=Decimal("4"),
            current_cost=Decimal("0"),
            unit_cost=Decimal("3"),
            shipping_cost=Decimal("2"),
        )
        assert cost.unit_cost == Decimal("3")
        assert cost.total_cost == Decimal("14")

    def test_neither_falls_back_to_current_cost(self):
        cost = resolve_landed_cost(quantity=Decimal("5"), current_cost=Decimal("2.5"))
        assert cost.unit_cost == Decimal("2.5")
        assert cost.total_cost == Decimal("12.5")
        assert cost.shipping_cost == Decimal("0")
        assert cost.priced is False


class TestAddMaterial:
    def test_opening_stock_is_recorded_as_movement(self, db_session, tenant_a, flour):
        """Opening stock appears in the stock ledger."""
        assert stock_from_movements(tenant_a.id, ITEM_MATERIAL, flour.id) == Decimal("100")
        movement = db_session.query(StockMovement).filter_by(item_id=flour.id, item_type=ITEM_MATERIAL).one()
        assert movement.movement_type == "opening"

    def test_cost_per_unit_from_total_cost(self, db_session, tenant_a):
        material = materials_service.add_material(tenant_id=tenant_a.id, payload={
            "name": "Butter", "unit": "kg", "current_stock": 8, "total_cost": 40,
        })
        assert Decimal(str(material.cost_per_unit)) == Decimal("5")

    def test_supplier_charged_for_opening_purchase(self, db_session, tenant_a, supplier):
        materials_service.add_material(tenant_id=tenant_a.id, payload={
            "name": "Yeast", "unit": "grams", "current_stock": 500,
            "total_cost": 75, "supplier_id": supplier.id,
        })
        supplier = party_service.get_supplier(tenant_id=tenant_a.id, supplier_id=supplier.id)
        assert Decimal(str(supplier.current_balance)) == Decimal("75")
        txs = party_service.list_supplier_transactions(tenant_id=tenant_a.id, supplier_id=supplier.id)
        assert [t.transaction_type for t in txs] == ["purchase"]

    def test_unknown_unit_rejected(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            materials_service.add_material(tenant_id=tenant_a.id, payload={"name": "Salt", "unit": "tons"})

    def test_negative_stock_rejected(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            materials_service.add_material(tenant_id=tenant_a.id, payload={
                "name": "Salt", "unit": "kg", "current_stock": -1,
            })

    def test_name_required(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            materials_service.add_material(tenant_id=tenant_a.id, payload={"unit": "kg"})


class TestReceiveMaterial:
    def test_receive_with_total_and_shipping(self, db_session, tenant_a, flour, supplier):
        """Stock grows, cost becomes landed unit cost, supplier charged without shipping."""
        material = materials_service.receive_material(
            tenant_id=tenant_a.id,
            material_id=flour.id,
            quantity=10,
            supplier_id=supplier.id,
            total_cost=100,
            shipping_cost=20,
        )

        assert Decimal(str(material.current_stock)) == Decimal("110")
        assert Decimal(str(material.cost_per_unit)) == Decimal("12")
        assert material.supplier_id == supplier.id
        assert material.last_received is not None

        receipt = db_session.query(MaterialReceipt).filter_by(material_id=flour.id).one()
        assert Decimal(str(receipt.unit_cost)) == Decimal("12")
        assert Decimal(str(receipt.shipping_cost)) == Decimal("20")
        assert Decimal(str(receipt.total_cost)) == Decimal("100")

        supplier = party_service.get_supplier(tenant_id=tenant_a.id, supplier_id=supplier.id)
        assert Decimal(str(supplier.current_balance)) == Decimal("80")
        tx = party_service.list_supplier_transactions(tenant_id=tenant_a.id, supplier_id=supplier.id)[0]
        assert tx.reference_id == receipt.id

    def test_receive_without_supplier_writes_no_transaction(self, db_session, tenant_a, flour, check_ledgers):
        materials_service.receive_material(tenant_id=tenant_a.id, material_id=flour.id, quantity=5)
        material = materials_service.get_material(tenant_id=tenant_a.id, material_id=flour.id)
        assert Decimal(str(material.current_stock)) == Decimal("105")
        assert Decimal(str(material.cost_per_unit)) == Decimal("2")
        check_ledgers(tenant_a.id)

    def test_shipping_only_receipt_does_not_charge_supplier(self, db_session, tenant_a, flour, supplier):
        """total - shipping = 0 means nothing is owed for material."""
        materials_service.receive_material(
            tenant_id=tenant_a.id, material_id=flour.id, quantity=1,
            supplier_id=supplier.id, unit_cost=0.0001, total_cost=5, shipping_cost=5,
        )
        assert party_service.list_supplier_transactions(tenant_id=tenant_a.id, supplier_id=supplier.id) == []

    def test_unpriced_receipt_does_not_charge_supplier(self, db_session, tenant_a, flour, supplier):
        """No unit or total cost: the receipt is valued at current cost but nothing is owed."""
        materials_service.receive_material(
            tenant_id=tenant_a.id, material_id=flour.id, quantity=10,
            supplier_id=supplier.id, shipping_cost=5,
        )
        receipt = db_session.query(MaterialReceipt).one()
        assert Decimal(str(receipt.total_cost)) == Decimal("20")
        assert party_service.list_supplier_transactions(tenant_id=tenant_a.id, supplier_id=supplier.id) == []
        db_session.expire_all()
        assert Decimal(str(party_service.get_supplier(tenant_id=tenant_a.id, supplier_id=supplier.id).current_balance)) == 0

    def test_zero_quantity_rejected(self, db_session, tenant_a, flour):
        with pytest.raises(ValidationError):
            materials_service.receive_material(tenant_id=tenant_a.id, material_id=flour.id, quantity=0)

    def test_unknown_material(self, db_session, tenant_a):
        with pytest.raises(NotFoundError):
            materials_service.receive_material(tenant_id=tenant_a.id, material_id=9999, quantity=1)

    def test_stock_equals_initial_plus_received(self, db_session, tenant_a, flour, check_ledgers):
        for qty in (3, 7, 2.5):
            materials_service.receive_material(tenant_id=tenant_a.id, material_id=flour.id, quantity=qty)
        material = materials_service.get_material(tenant_id=tenant_a.id, material_id=flour.id)
        assert Decimal(str(material.current_stock)) == Decimal("112.5")
        check_ledgers(tenant_a.id)


class TestReceiptHistory:
    def test_latest_and_average_unit_cost(self, db_session, tenant_a, flour):
        materials_service.receive_material(tenant_id=tenant_a.id, material_id=flour.id, quantity=10, unit_cost=2)
        materials_service.receive_material(tenant_id=tenant_a.id, material_id=flour.id, quantity=30, unit_cost=4)

        assert materials_service.latest_unit_cost(tenant_id=tenant_a.id, material_id=flour.id) == Decimal("4")
        # (10*2 + 30*4) / 40 = 3.5
        assert materials_service.average_unit_cost(tenant_id=tenant_a.id, material_id=flour.id) == Decimal("3.5")
        assert len(materials_service.list_receipts(tenant_id=tenant_a.id, material_id=flour.id)) == 2

    def test_no_receipts(self, db_session, tenant_a, flour):
        assert materials_service.latest_unit_cost(tenant_id=tenant_a.id, material_id=flour.id) is None
        assert materials_service.average_unit_cost(tenant_id=tenant_a.id, material_id=flour.id) is None


class TestUpdateMaterial:
    def test_stock_change_appends_adjustment(self, db_session, tenant_a, flour, check_ledgers):
        materials_service.update_material(
            tenant_id=tenant_a.id, material_id=flour.id, payload={"current_stock": 80, "min_threshold": 20},
        )
        material = materials_service.get_material(tenant_id=tenant_a.id, material_id=flour.id)
        assert Decimal(str(material.current_stock)) == Decimal("80")
        assert Decimal(str(material.min_threshold)) == Decimal("20")

        adjustment = db_session.query(StockMovement).filter_by(
            item_id=flour.id, movement_type="adjustment"
        ).one()
        assert Decimal(str(adjustment.quantity_delta)) == Decimal("-20")
        check_ledgers(tenant_a.id)

    def test_disallowed_field(self, db_session, tenant_a, flour):
        with pytest.raises(ValidationError):
            materials_service.update_material(
                tenant_id=tenant_a.id, material_id=flour.id, payload={"tenant_id": 99},
            )


class TestDeleteMaterial:
    def test_delete_keeps_receipts(self, db_session, tenant_a, flour, supplier):
        materials_service.receive_material(
            tenant_id=tenant_a.id, material_id=flour.id, quantity=1, supplier_id=supplier.id, unit_cost=3,
        )
        materials_service.delete_material(tenant_id=tenant_a.id, material_id=flour.id)
        db_session.expire_all()
        assert db_session.query(RawMaterial).filter_by(id=flour.id).first() is None

        receipt = db_session.query(MaterialReceipt).one()
        assert receipt.material_id is None
        assert receipt.to_dict()["material_name"] is None
        purchase, = party_service.list_supplier_transactions(tenant_id=tenant_a.id, supplier_id=supplier.id)
        assert purchase.reference_id == receipt.id

    def test_blocked_by_recipe(self, db_session, tenant_a, bread, flour):
        with pytest.raises(ReferencedEntityError) as exc:
            materials_service.delete_material(tenant_id=tenant_a.id, material_id=flour.id)
        assert exc.value.details["relationship"] == "product recipes (BOM)"

    def test_blocked_by_production_history(self, db_session, tenant_a, stocked_bread, flour):
        with pytest.raises(ReferencedEntityError) as exc:
            materials_service.delete_material(tenant_id=tenant_a.id, material_id=flour.id)
        assert exc.value.details["relationship"] == "production records"
