from datetime import date, timedelta
from decimal import Decimal

import pytest

from ebh.core.errors import ValidationError
from ebh.models.site import Project
from ebh.schemas.receipt import TransportRecordCreate
from ebh.services import ledger
from ebh.services.reports import daily_series, project_profit, dashboard_snapshot, transport_report, profit_margin


async def test_daily_series_is_dense(db, warehouse, material, make_receipt):
    start = date(2024, 1, 1)
    await make_receipt("purchase", [(material.id, 10, None, 10)], start, warehouse_id=warehouse.id)
    await make_receipt("export", [(material.id, 5, None, 30)], start + timedelta(days=2), warehouse_id=warehouse.id)

    series = await daily_series(db, start, start + timedelta(days=3))
    assert [p["date"] for p in series] == [start + timedelta(days=i) for i in range(4)]
    assert [p["label"] for p in series] == ["01/01", "02/01", "03/01", "04/01"]
    assert [p["cost"] for p in series] == [Decimal("100"), 0, 0, 0]
    assert [p["revenue"] for p in series] == [0, 0, Decimal("150"), 0]
    assert [p["profit"] for p in series] == [Decimal("-100"), 0, Decimal("150"), 0]


async def test_daily_series_skips_deleted(db, warehouse, material, make_receipt):
    day = date(2024, 1, 1)
    receipt = await make_receipt("export", [(material.id, 5, None, 30)], day, warehouse_id=warehouse.id)
    await ledger.soft_delete_receipt(db, receipt.id, "export")
    series = await daily_series(db, day, day)
    assert series[0]["revenue"] == 0


async def test_daily_series_rejects_reversed_range(db):
    with pytest.raises(ValidationError):
        await daily_series(db, date(2024, 1, 2), date(2024, 1, 1))


def test_profit_margin():
    assert profit_margin(Decimal("50"), Decimal("150")) == Decimal("33.33")
    assert profit_margin(Decimal("-100"), Decimal("0")) == 0


async def test_project_profit(db, warehouse, project, material, make_receipt):
    idle = Project(code="CT-02", name="Công trình 02", status="planning")
    db.add(idle)
    await db.commit()

    await make_receipt("purchase", [(material.id, 10, None, 10)], warehouse_id=warehouse.id, project_id=project.id)
    await make_receipt("export", [(material.id, 5, None, 30)], warehouse_id=warehouse.id, project_id=project.id)
    await make_receipt("purchase", [(material.id, 2, None, 10)], warehouse_id=warehouse.id, project_id=idle.id)
    # no project: not part of the report
    await make_receipt("export", [(material.id, 1, None, 1000)], warehouse_id=warehouse.id)

    report = await project_profit(db)
    by_code = {p["project_code"]: p for p in report["projects"]}

    active = by_code["CT-01"]
    assert active["total_purchase"] == Decimal("100")
    assert active["total_export"] == Decimal("150")
    assert active["profit"] == Decimal("50")
    assert active["profit_margin"] == Decimal("33.33")
    assert (active["purchase_count"], active["export_count"]) == (1, 1)

    planned = by_code["CT-02"]
    assert planned["profit"] == Decimal("-20")
    assert planned["profit_margin"] == 0

    totals = report["totals"]
    assert totals["total_purchase"] == Decimal("120")
    assert totals["total_export"] == Decimal("150")
    assert totals["profit"] == Decimal("30")
    assert totals["profit_margin"] == Decimal("20.00")

    only = await project_profit(db, project_id=idle.id)
    assert [p["project_code"] for p in only["projects"]] == ["CT-02"]


async def test_dashboard_shape(db, warehouse, project, material, make_receipt):
    today = date.today()
    await make_receipt("purchase", [(material.id, 15, None, 10)], today, warehouse_id=warehouse.id)
    await make_receipt("export", [(material.id, None, 4, 30)], today, warehouse_id=warehouse.id, project_id=project.id)

    snapshot = await dashboard_snapshot(db, today)

    assert snapshot["counts"]["materials_total"] == 1
    assert snapshot["counts"]["warehouses_active"] == 1
    assert snapshot["counts"]["projects_active"] == 1

    purchases = snapshot["today"]["purchases"]
    assert purchases["count"] == 1
    assert purchases["quantity_primary"] == Decimal("15")
    assert purchases["quantity_secondary"] == Decimal("10")
    exports = snapshot["today"]["exports"]
    assert exports["quantity_primary"] == Decimal("6")
    assert exports["amount"] == Decimal("120")

    assert snapshot["month"]["revenue"] == Decimal("120")
    assert snapshot["month"]["cost"] == Decimal("150")
    assert snapshot["month"]["profit"] == Decimal("-30")

    assert len(snapshot["chart"]) == 7
    assert snapshot["chart"][-1]["date"] == today

    assert len(snapshot["recent_purchases"]) == 1
    assert snapshot["recent_purchases"][0]["material_summary"] == "Cát vàng"
    assert snapshot["recent_exports"][0]["counterpart"] == "Công trình 01"


async def test_recent_receipts_are_limited(db, warehouse, material, make_receipt):
    for _ in range(7):
        await make_receipt("purchase", [(material.id, 1, None, 1)], warehouse_id=warehouse.id)
    snapshot = await dashboard_snapshot(db)
    numbers = [r["receipt_number"] for r in snapshot["recent_purchases"]]
    assert len(numbers) == 5
    assert numbers == sorted(numbers, reverse=True)


async def test_transport_report_groups_by_vehicle(db, warehouse, material, vehicle, make_receipt):
    day = date(2024, 1, 1)
    first = await make_receipt("purchase", [(material.id, 15, None, 0)], day, warehouse_id=warehouse.id)
    second = await make_receipt("purchase", [(material.id, 9, None, 0)], day, warehouse_id=warehouse.id)
    third = await make_receipt("export", [(material.id, 3, None, 0)], day, warehouse_id=warehouse.id)

    await ledger.add_transport_record(db, first.id, "purchase", TransportRecordCreate(
        vehicle_id=vehicle.id, quantity_primary=15, unit_price=10000, transport_fee=5000))
    await ledger.add_transport_record(db, second.id, "purchase", TransportRecordCreate(
        vehicle_id=vehicle.id, quantity_primary=9, unit_price=10000))
    await ledger.add_transport_record(db, third.id, "export", TransportRecordCreate(
        vehicle_plate="51D-00001", quantity_primary=3, unit_price=20000))
    await ledger.soft_delete_receipt(db, third.id, "export")

    report = await transport_report(db, day, day)
    assert len(report["records"]) == 2
    assert len(report["vehicles"]) == 1
    summary = report["vehicles"][0]
    assert summary["vehicle_plate"] == "29C-12345"
    assert summary["trips"] == 2
    assert summary["quantity_primary"] == Decimal("24")
    assert summary["quantity_secondary"] == Decimal("16")
    assert summary["freight_amount"] == Decimal("240000")
    assert summary["transport_fee"] == Decimal("5000")
    assert report["totals"]["trips"] == 2

    with pytest.raises(ValidationError):
        await transport_report(db, day, day - timedelta(days=1))


async def test_daily_series_span_is_capped(db):
    start = date(2024, 1, 1)
    assert len(await daily_series(db, start, start + timedelta(days=365))) == 366
    with pytest.raises(ValidationError, match="at most 366"):
        await daily_series(db, start, start + timedelta(days=366))
    with pytest.raises(ValidationError):
        await daily_series(db, date(1, 1, 1), start)
