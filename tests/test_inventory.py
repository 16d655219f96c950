from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from ebh.core.errors import ValidationError, NotFoundError
from ebh.models.material import Material, MaterialDensityHistory
from ebh.models.receipt import Receipt
from ebh.models.site import Warehouse
from ebh.schemas.material import InitialStock, MaterialCreate
from ebh.services import ledger
from ebh.services.inventory import current_stock, warehouse_movements, take_snapshot, list_snapshots
from ebh.services.materials import create_material


async def test_purchase_minus_export(db, warehouse, material, make_receipt):
    await make_receipt("purchase", [(material.id, 15, None, 0)], warehouse_id=warehouse.id)
    await make_receipt("export", [(material.id, None, 4, 0)], warehouse_id=warehouse.id)

    rows = await current_stock(db)
    assert len(rows) == 1
    row = rows[0]
    assert (row["warehouse_id"], row["material_id"]) == (warehouse.id, material.id)
    assert row["quantity_primary"] == Decimal("9")
    assert row["quantity_secondary"] == Decimal("6")
    assert row["material_name"] == "Cát vàng"
    assert row["primary_unit"] == "Tấn"
    assert not row["is_negative"]


async def test_negative_stock_is_reported(db, warehouse, material, make_receipt):
    await make_receipt("purchase", [(material.id, 3, None, 0)], warehouse_id=warehouse.id)
    await make_receipt("export", [(material.id, 5, None, 0)], warehouse_id=warehouse.id)

    rows = await current_stock(db)
    assert rows[0]["quantity_primary"] == Decimal("-2")
    assert rows[0]["is_negative"]


async def test_zero_net_positions_are_omitted(db, warehouse, material, make_receipt):
    await make_receipt("purchase", [(material.id, 10, None, 0)], warehouse_id=warehouse.id)
    await make_receipt("export", [(material.id, 10, None, 0)], warehouse_id=warehouse.id)
    assert await current_stock(db) == []


async def test_soft_deleted_receipts_are_excluded(db, warehouse, material, make_receipt):
    purchase = await make_receipt("purchase", [(material.id, 15, None, 0)], warehouse_id=warehouse.id)
    await make_receipt("export", [(material.id, None, 4, 0)], warehouse_id=warehouse.id)

    await ledger.soft_delete_receipt(db, purchase.id, "purchase")

    rows = await current_stock(db)
    assert rows[0]["quantity_primary"] == Decimal("-6")
    assert rows[0]["quantity_secondary"] == Decimal("-4")
    # still readable directly
    assert (await ledger.get_receipt(db, purchase.id)).is_deleted


async def test_direct_to_site_purchases_do_not_count(db, project, material, make_receipt):
    await make_receipt("purchase", [(material.id, 20, None, 0)], receipt_type="direct_to_site", project_id=project.id)
    assert await current_stock(db) == []


async def test_filters_by_warehouse_and_material(db, warehouse, material, make_receipt):
    other = Warehouse(code="KHO-B", name="Kho B")
    db.add(other)
    await db.commit()
    await make_receipt("purchase", [(material.id, 5, None, 0)], warehouse_id=warehouse.id)
    await make_receipt("purchase", [(material.id, 7, None, 0)], warehouse_id=other.id)

    assert len(await current_stock(db)) == 2
    rows = await current_stock(db, warehouse_id=other.id)
    assert [r["quantity_primary"] for r in rows] == [Decimal("7")]
    assert len(await current_stock(db, material_id=material.id)) == 2
    assert await current_stock(db, material_id=999) == []


async def test_update_is_reflected_immediately(db, warehouse, material, make_receipt):
    from ebh.schemas.receipt import ReceiptUpdate

    receipt = await make_receipt("purchase", [(material.id, 15, None, 0)], warehouse_id=warehouse.id)
    await ledger.update_receipt(
        db, receipt.id, "purchase", ReceiptUpdate(items=[{"material_id": material.id, "quantity_primary": 4}])
    )
    rows = await current_stock(db)
    assert rows[0]["quantity_primary"] == Decimal("4")


async def test_warehouse_movements(db, warehouse, material, make_receipt):
    await make_receipt("purchase", [(material.id, 15, None, 0)], warehouse_id=warehouse.id)
    await make_receipt("export", [(material.id, None, 4, 0)], warehouse_id=warehouse.id)

    movements = await warehouse_movements(db, warehouse.id)
    assert len(movements) == 1
    m = movements[0]
    assert m["in_primary"] == Decimal("15")
    assert m["out_primary"] == Decimal("6")
    assert m["stock_primary"] == Decimal("9")
    assert m["stock_secondary"] == Decimal("6")
    assert m["receipt_count"] == 2


async def test_opening_balances_post_warehouse_imports(db, warehouse):
    material = await create_material(db, MaterialCreate(
        code="da-0x4",
        name="Đá 0x4",
        density=1.6,
        initial_stocks=[InitialStock(warehouse_id=warehouse.id, quantity_primary=32, unit_price=150000)],
    ))
    receipts, total = await ledger.list_receipts(db, "purchase")
    assert total == 1
    assert receipts[0].supplier_name == ledger.OPENING_BALANCE_SUPPLIER
    assert receipts[0].receipt_number.startswith("PN")

    rows = await current_stock(db, material_id=material.id)
    assert rows[0]["quantity_primary"] == Decimal("32")
    assert rows[0]["quantity_secondary"] == Decimal("20")


async def test_snapshot_replaces_rows_of_the_day(db, warehouse, material, make_receipt):
    await make_receipt("purchase", [(material.id, 15, None, 0)], warehouse_id=warehouse.id)
    day = date(2024, 3, 1)

    assert await take_snapshot(db, day) == 1
    assert await take_snapshot(db, day) == 1

    snapshots = await list_snapshots(db, day)
    assert len(snapshots) == 1
    assert snapshots[0].quantity_primary == Decimal("15")
    assert snapshots[0].warehouse.name == "Kho A"

    latest = await list_snapshots(db)
    assert [s.id for s in latest] == [s.id for s in snapshots]
    assert await list_snapshots(db, date(2024, 3, 2)) == []


async def test_scheduled_snapshot_uses_its_own_session(monkeypatch, session_factory, db, warehouse, material, make_receipt):
    from ebh.services import scheduler

    await make_receipt("purchase", [(material.id, 15, None, 0)], warehouse_id=warehouse.id)
    monkeypatch.setattr(scheduler, "SessionLocal", session_factory)

    assert await scheduler.take_inventory_snapshot(date(2024, 3, 1)) == 1
    assert len(await list_snapshots(db, date(2024, 3, 1))) == 1


async def test_scheduled_snapshot_failure_is_logged(monkeypatch):
    from ebh.services import scheduler

    async def broken(db, snapshot_date=None):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(scheduler, "take_snapshot", broken)
    assert await scheduler.take_inventory_snapshot() is None


async def test_failed_opening_balance_leaves_no_material(db, warehouse):
    data = MaterialCreate(
        code="ob",
        name="Đá mi",
        initial_stocks=[
            InitialStock(warehouse_id=warehouse.id, quantity_primary=10),
            InitialStock(warehouse_id=warehouse.id, quantity_primary=1e30),
        ],
    )
    with pytest.raises(ValidationError):
        await create_material(db, data)

    for model in (Material, MaterialDensityHistory, Receipt):
        result = await db.execute(select(func.count()).select_from(model))
        assert result.scalar() == 0

    # the code is still free
    data.initial_stocks = [InitialStock(warehouse_id=warehouse.id, quantity_primary=10)]
    material = await create_material(db, data)
    assert material.code == "OB"
    assert (await current_stock(db, material_id=material.id))[0]["quantity_primary"] == Decimal("10")


async def test_opening_balance_in_unknown_warehouse_creates_nothing(db):
    with pytest.raises(NotFoundError):
        await create_material(db, MaterialCreate(
            code="OB2", name="Đá 4x6", initial_stocks=[InitialStock(warehouse_id=999, quantity_primary=1)],
        ))
    result = await db.execute(select(func.count(Material.id)))
    assert result.scalar() == 0
