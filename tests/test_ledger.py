from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import select, func

from ebh.core.errors import ValidationError, NotFoundError, DuplicateError
from ebh.models.material import Material
from ebh.models.receipt import Receipt, ReceiptItem
from ebh.schemas.receipt import ReceiptCreate, ReceiptUpdate, TransportRecordCreate
from ebh.services import ledger
from ebh.services.density import record_density_change

NEW_YEAR = date(2024, 1, 1)


async def test_purchase_converts_to_secondary_unit(db, warehouse, material, make_receipt):
    receipt = await make_receipt("purchase", [(material.id, 15, None, 200000)], warehouse_id=warehouse.id)

    assert receipt.receipt_type == "warehouse_import"
    assert receipt.receipt_number.startswith("PN")
    item = receipt.items[0]
    assert item.entered_unit == "primary"
    assert item.quantity_primary == Decimal("15")
    assert item.quantity_secondary == Decimal("10")
    assert item.density_used == Decimal("1.5")
    assert not item.density_fallback
    assert item.total_amount == Decimal("3000000")


async def test_export_converts_to_primary_unit(db, warehouse, material, make_receipt):
    receipt = await make_receipt("export", [(material.id, None, 4, 300000)], warehouse_id=warehouse.id)

    assert receipt.receipt_number.startswith("PX")
    item = receipt.items[0]
    assert item.entered_unit == "secondary"
    assert item.quantity_primary == Decimal("6")
    assert item.quantity_secondary == Decimal("4")
    assert item.total_amount == Decimal("1200000")
    assert item.unit_price_primary == Decimal("200000")


async def test_header_totals_match_items(db, warehouse, material, make_receipt):
    other = Material(code="DA-4X6", name="Đá 4x6", current_density=Decimal("1.6"))
    db.add(other)
    await db.commit()

    receipt = await make_receipt(
        "purchase",
        [(material.id, 12.5, None, 180000), (material.id, None, 3.2, 250000), (other.id, 7, None, 99.99)],
        warehouse_id=warehouse.id,
    )
    assert receipt.total_amount == sum(i.total_amount for i in receipt.items)
    assert receipt.total_quantity_primary == sum(i.quantity_primary for i in receipt.items)
    assert receipt.total_quantity_secondary == sum(i.quantity_secondary for i in receipt.items)
    # no density history for the second material
    assert receipt.items[2].density_fallback
    assert receipt.items[2].density_used == Decimal("1")


async def test_same_day_numbers_are_sequential(db, warehouse, material, make_receipt):
    first = await make_receipt("purchase", [(material.id, 1, None, 0)], NEW_YEAR, warehouse_id=warehouse.id)
    second = await make_receipt("purchase", [(material.id, 1, None, 0)], NEW_YEAR, warehouse_id=warehouse.id)
    assert first.receipt_number == "PN240101001"
    assert second.receipt_number == "PN240101002"

    # deleted receipts keep their number
    await ledger.soft_delete_receipt(db, second.id, "purchase")
    third = await make_receipt("purchase", [(material.id, 1, None, 0)], NEW_YEAR, warehouse_id=warehouse.id)
    assert third.receipt_number == "PN240101003"

    export = await make_receipt("export", [(material.id, 1, None, 0)], NEW_YEAR, warehouse_id=warehouse.id)
    assert export.receipt_number == "PX240101001"


async def test_number_collision_gives_duplicate_error(db, warehouse, material, make_receipt, monkeypatch):
    await make_receipt("purchase", [(material.id, 1, None, 0)], NEW_YEAR, warehouse_id=warehouse.id)

    calls = []

    async def taken_number(session, prefix, receipt_date=None):
        calls.append(prefix)
        return "PN240101001"

    monkeypatch.setattr(ledger, "generate_receipt_number", taken_number)
    with pytest.raises(DuplicateError):
        await make_receipt("purchase", [(material.id, 1, None, 0)], NEW_YEAR, warehouse_id=warehouse.id)

    assert len(calls) == 3
    result = await db.execute(select(func.count(Receipt.id)))
    assert result.scalar() == 1
    result = await db.execute(select(func.count(ReceiptItem.id)))
    assert result.scalar() == 1


async def test_number_collision_retries_with_fresh_number(db, warehouse, material, make_receipt, monkeypatch):
    await make_receipt("purchase", [(material.id, 1, None, 0)], NEW_YEAR, warehouse_id=warehouse.id)

    real = ledger.generate_receipt_number
    numbers = iter(["PN240101001"])

    async def once_stale(session, prefix, receipt_date=None):
        return next(numbers, None) or await real(session, prefix, receipt_date)

    monkeypatch.setattr(ledger, "generate_receipt_number", once_stale)
    receipt = await make_receipt("purchase", [(material.id, 2, None, 0)], NEW_YEAR, warehouse_id=warehouse.id)
    assert receipt.receipt_number == "PN240101002"
    assert len(receipt.items) == 1


async def test_density_change_does_not_touch_posted_items(db, warehouse, material, make_receipt):
    receipt = await make_receipt("purchase", [(material.id, 15, None, 100)], warehouse_id=warehouse.id)

    await record_density_change(db, material, Decimal("2.0"), "Đo lại")
    await db.commit()

    reloaded = await ledger.get_receipt(db, receipt.id)
    assert reloaded.items[0].density_used == Decimal("1.5")
    assert reloaded.items[0].quantity_secondary == Decimal("10")

    later = await make_receipt("purchase", [(material.id, 15, None, 100)], warehouse_id=warehouse.id)
    assert later.items[0].density_used == Decimal("2.0")
    assert later.items[0].quantity_secondary == Decimal("7.5")


async def test_back_dated_receipt_uses_density_of_its_day(db, warehouse, material, make_receipt):
    await record_density_change(db, material, Decimal("2.0"))
    await db.commit()
    # history starts today, so an older date falls back to the earliest entry
    receipt = await make_receipt("purchase", [(material.id, 3, None, 0)], NEW_YEAR, warehouse_id=warehouse.id)
    assert receipt.items[0].density_used == Decimal("1.5")


@pytest.mark.parametrize("items,message", [
    ([], "at least one item"),
    ([{"material_id": 1}], "exactly one"),
    ([{"material_id": 1, "quantity_primary": 1, "quantity_secondary": 1}], "exactly one"),
    ([{"material_id": 1, "quantity_primary": 0}], "greater than 0"),
    ([{"material_id": 1, "quantity_secondary": -2}], "greater than 0"),
])
async def test_invalid_items(db, warehouse, material, items, message):
    data = ReceiptCreate(warehouse_id=warehouse.id, items=items)
    with pytest.raises(ValidationError, match=message):
        await ledger.create_receipt(db, "purchase", data)


async def test_unknown_or_deleted_material(db, warehouse, material):
    data = ReceiptCreate(warehouse_id=warehouse.id, items=[{"material_id": 999, "quantity_primary": 1}])
    with pytest.raises(NotFoundError):
        await ledger.create_receipt(db, "purchase", data)

    material.deleted_at = material.created_at
    await db.commit()
    data = ReceiptCreate(warehouse_id=warehouse.id, items=[{"material_id": material.id, "quantity_primary": 1}])
    with pytest.raises(NotFoundError):
        await ledger.create_receipt(db, "purchase", data)


async def test_counterpart_rules(db, warehouse, project, material):
    item = [{"material_id": material.id, "quantity_primary": 1}]
    with pytest.raises(ValidationError, match="Warehouse is required"):
        await ledger.create_receipt(db, "export", ReceiptCreate(items=item))
    with pytest.raises(NotFoundError):
        await ledger.create_receipt(db, "purchase", ReceiptCreate(warehouse_id=404, items=item))
    with pytest.raises(ValidationError):
        await ledger.create_receipt(db, "export", ReceiptCreate(receipt_type="direct_to_site", warehouse_id=warehouse.id, items=item))

    direct = await ledger.create_receipt(
        db, "purchase", ReceiptCreate(receipt_type="direct_to_site", project_id=project.id, items=item)
    )
    assert direct.receipt_number.startswith("DS")
    assert direct.warehouse_id is None


async def test_update_replaces_items_and_recomputes_totals(db, warehouse, material, make_receipt):
    receipt = await make_receipt(
        "purchase", [(material.id, 10, None, 100), (material.id, 5, None, 100)], warehouse_id=warehouse.id
    )
    assert receipt.total_amount == Decimal("1500")

    updated = await ledger.update_receipt(
        db, receipt.id, "purchase",
        ReceiptUpdate(notes="Sửa phiếu", items=[{"material_id": material.id, "quantity_secondary": 2, "unit_price": 50}]),
    )
    assert updated.notes == "Sửa phiếu"
    assert len(updated.items) == 1
    assert updated.total_amount == Decimal("100")
    assert updated.total_quantity_primary == Decimal("3")
    assert updated.total_quantity_secondary == Decimal("2")

    result = await db.execute(select(func.count(ReceiptItem.id)).where(ReceiptItem.receipt_id == receipt.id))
    assert result.scalar() == 1


async def test_update_header_only_keeps_items(db, warehouse, material, make_receipt):
    receipt = await make_receipt("purchase", [(material.id, 10, None, 100)], warehouse_id=warehouse.id)
    updated = await ledger.update_receipt(db, receipt.id, "purchase", ReceiptUpdate(supplier_name="Mỏ Đồng Nai"))
    assert updated.supplier_name == "Mỏ Đồng Nai"
    assert [i.id for i in updated.items] == [i.id for i in receipt.items]
    assert updated.total_amount == Decimal("1000")


async def test_soft_delete_is_idempotent_and_keeps_receipt_readable(db, warehouse, material, make_receipt):
    receipt = await make_receipt("purchase", [(material.id, 10, None, 100)], warehouse_id=warehouse.id)

    deleted = await ledger.soft_delete_receipt(db, receipt.id, "purchase")
    first_mark = deleted.deleted_at
    assert first_mark is not None
    again = await ledger.soft_delete_receipt(db, receipt.id, "purchase")
    assert again.deleted_at == first_mark

    fetched = await ledger.get_receipt(db, receipt.id, "purchase")
    assert fetched.is_deleted
    assert len(fetched.items) == 1

    listed, total = await ledger.list_receipts(db, "purchase")
    assert total == 0 and listed == []
    listed, total = await ledger.list_receipts(db, "purchase", include_deleted=True)
    assert total == 1

    with pytest.raises(NotFoundError):
        await ledger.update_receipt(db, receipt.id, "purchase", ReceiptUpdate(notes="x"))


async def test_receipt_of_other_kind_not_found(db, warehouse, material, make_receipt):
    receipt = await make_receipt("purchase", [(material.id, 1, None, 0)], warehouse_id=warehouse.id)
    with pytest.raises(NotFoundError):
        await ledger.get_receipt(db, receipt.id, "export")
    with pytest.raises(NotFoundError):
        await ledger.soft_delete_receipt(db, 12345, "purchase")


async def test_list_filters(db, warehouse, material, make_receipt):
    await make_receipt("purchase", [(material.id, 1, None, 0)], NEW_YEAR, warehouse_id=warehouse.id, supplier_name="Mỏ Hóa An")
    await make_receipt("purchase", [(material.id, 1, None, 0)], date(2024, 2, 1), warehouse_id=warehouse.id)

    listed, total = await ledger.list_receipts(db, "purchase", search="Hóa An")
    assert total == 1 and listed[0].receipt_number == "PN240101001"
    listed, total = await ledger.list_receipts(db, "purchase", start_date=date(2024, 1, 15))
    assert total == 1 and listed[0].receipt_number == "PN240201001"
    listed, total = await ledger.list_receipts(db, "purchase", page=2, limit=1)
    assert total == 2 and len(listed) == 1


# ==================== transport records ====================

def test_transport_list_payload_is_normalized():
    base = {"warehouse_id": 1, "items": []}
    assert ReceiptCreate(**base, transport=[]).transport is None
    single = ReceiptCreate(**base, transport=[{"vehicle_plate": "51D-00001", "quantity_primary": 15}])
    assert isinstance(single.transport, TransportRecordCreate)
    assert single.transport.vehicle_plate == "51D-00001"
    assert ReceiptCreate(**base, transport={"quantity_primary": 1}).transport.quantity_primary == 1
    with pytest.raises(SchemaValidationError):
        ReceiptCreate(**base, transport=[{}, {}])


async def test_receipt_with_transport_record(db, warehouse, material, vehicle):
    data = ReceiptCreate(
        warehouse_id=warehouse.id,
        items=[{"material_id": material.id, "quantity_primary": 15, "unit_price": 200000}],
        transport=[{"vehicle_id": vehicle.id, "quantity_primary": 15, "unit_price": 50000, "transport_fee": 20000}],
    )
    receipt = await ledger.create_receipt(db, "purchase", data)

    record = receipt.transport_record
    assert record is not None
    assert record.vehicle_plate == "29C-12345"
    assert record.driver_name == "Nguyễn Văn A"
    assert record.transport_company == "Vận tải Minh Phát"
    assert record.material_id == material.id
    assert record.density == Decimal("1.5")
    assert record.freight_amount == Decimal("750000")
    # logistics only, the items are unchanged
    assert receipt.total_amount == Decimal("3000000")

    records = await ledger.list_transport_records(db, receipt.id, "purchase")
    assert [r.id for r in records] == [record.id]


async def test_second_transport_record_is_duplicate(db, warehouse, material, make_receipt):
    receipt = await make_receipt("export", [(material.id, 6, None, 0)], warehouse_id=warehouse.id)
    assert await ledger.list_transport_records(db, receipt.id, "export") == []

    record = await ledger.add_transport_record(
        db, receipt.id, "export", TransportRecordCreate(vehicle_plate="51D-00001", quantity_primary=6)
    )
    assert record.receipt_id == receipt.id
    with pytest.raises(DuplicateError):
        await ledger.add_transport_record(db, receipt.id, "export", TransportRecordCreate(quantity_primary=1))

    await ledger.delete_transport_record(db, receipt.id, record.id, "export")
    assert await ledger.list_transport_records(db, receipt.id, "export") == []
    with pytest.raises(NotFoundError):
        await ledger.delete_transport_record(db, receipt.id, record.id, "export")


def test_as_list():
    assert ledger.as_list(None) == []
    assert ledger.as_list("x") == ["x"]
    assert ledger.as_list(["x", "y"]) == ["x", "y"]


@pytest.mark.parametrize("field", ["quantity_primary", "quantity_secondary"])
async def test_huge_quantity_is_rejected(db, warehouse, material, field):
    data = ReceiptCreate(warehouse_id=warehouse.id, items=[{"material_id": material.id, field: 1e30}])
    with pytest.raises(ValidationError, match="out of range"):
        await ledger.create_receipt(db, "purchase", data)

    result = await db.execute(select(func.count(Receipt.id)))
    assert result.scalar() == 0


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_quantity_fails_schema(value):
    with pytest.raises(SchemaValidationError):
        ReceiptCreate(warehouse_id=1, items=[{"material_id": 1, "quantity_primary": value}])
