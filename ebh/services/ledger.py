"""
Receipt ledger

Purchases and exports share one header table and one item table. Every item
carries the density that was in effect on the receipt date; it is copied at
write time and never recomputed, so density changes do not touch posted
receipts. Header totals are cached sums of the items and are recomputed on
every write.

Header, items and the optional transport record are committed in one
transaction. A receipt-number collision rolls the whole attempt back and the
receipt is rebuilt with a fresh number.
"""

import logging
from datetime import date, datetime
from typing import Any, List, Optional, Tuple

from sqlalchemy import select, func, and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ebh.core.config import settings
from ebh.core.errors import ValidationError, NotFoundError, DuplicateError, PersistenceError
from ebh.models.material import Material
from ebh.models.receipt import Receipt, ReceiptItem, PURCHASE_TYPES, EXPORT_TYPES
from ebh.models.site import Warehouse, Project
from ebh.models.transport import TransportRecord
from ebh.models.vehicle import Vehicle, TransportUnit
from ebh.schemas.receipt import ReceiptCreate, ReceiptUpdate, ReceiptItemCreate, TransportRecordCreate
from ebh.services.conversion import (
    round_quantity, round_money, round_density, line_total, convert_entered_quantity,
)
from ebh.services.density import density_at
from ebh.services.numbering import generate_receipt_number, prefix_for
from ebh.services.records import get_active

logger = logging.getLogger(__name__)

OPENING_BALANCE_SUPPLIER = "Tồn đầu kỳ"

# header columns copied straight from the request
HEADER_FIELDS = (
    "warehouse_id",
    "project_id",
    "vehicle_id",
    "supplier_name",
    "supplier_phone",
    "quarry_name",
    "destination_site",
    "invoice_number",
    "customer_name",
    "customer_phone",
    "destination",
    "notes",
)

# receipt types that move stock in or out of a warehouse
WAREHOUSE_TYPES = ("warehouse_import", "export")


def as_list(value: Any) -> list:
    """None / single object / list -> list"""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def receipt_load_options() -> tuple:
    return (
        selectinload(Receipt.items).selectinload(ReceiptItem.material),
        selectinload(Receipt.transport_record).selectinload(TransportRecord.vehicle),
        selectinload(Receipt.transport_record).selectinload(TransportRecord.transport_unit),
        selectinload(Receipt.transport_record).selectinload(TransportRecord.material),
        selectinload(Receipt.warehouse),
        selectinload(Receipt.project),
        selectinload(Receipt.vehicle),
    )


async def load_receipt(db: AsyncSession, receipt_id: int) -> Optional[Receipt]:
    """Receipt with items, materials, transport record and counterparts"""
    result = await db.execute(
        select(Receipt)
        .options(*receipt_load_options())
        .where(Receipt.id == receipt_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def load_transport_record(db: AsyncSession, record_id: int) -> Optional[TransportRecord]:
    result = await db.execute(
        select(TransportRecord)
        .options(
            selectinload(TransportRecord.vehicle),
            selectinload(TransportRecord.transport_unit),
            selectinload(TransportRecord.material),
        )
        .where(TransportRecord.id == record_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


# ==================== validation ====================

def resolve_receipt_type(kind: str, receipt_type: Optional[str]) -> str:
    if kind == "purchase":
        receipt_type = receipt_type or "warehouse_import"
        allowed = PURCHASE_TYPES
    elif kind == "export":
        receipt_type = receipt_type or "export"
        allowed = EXPORT_TYPES
    else:
        raise ValidationError(f"Unknown receipt kind: {kind}")
    if receipt_type not in allowed:
        raise ValidationError(f"Receipt type '{receipt_type}' is not valid for {kind} receipts, expected one of {', '.join(allowed)}")
    return receipt_type


async def check_counterparts(
    db: AsyncSession,
    receipt_type: str,
    warehouse_id: Optional[int],
    project_id: Optional[int],
    vehicle_id: Optional[int],
) -> None:
    if receipt_type in WAREHOUSE_TYPES:
        if not warehouse_id:
            raise ValidationError("Warehouse is required")
        await get_active(db, Warehouse, warehouse_id, "Warehouse")
    elif warehouse_id:
        raise ValidationError("Direct-to-site purchases do not go through a warehouse")
    if project_id:
        await get_active(db, Project, project_id, "Project")
    if vehicle_id:
        await get_active(db, Vehicle, vehicle_id, "Vehicle")


def entered_quantity(item_in: ReceiptItemCreate, index: int) -> Tuple[str, Any]:
    """(entered_unit, quantity) of an item; exactly one quantity must be given"""
    qp, qs = item_in.quantity_primary, item_in.quantity_secondary
    if (qp is None) == (qs is None):
        raise ValidationError(f"Item {index}: give exactly one of quantity_primary or quantity_secondary")
    entered_unit = "primary" if qp is not None else "secondary"
    quantity = round_quantity(qp if qp is not None else qs)
    if quantity <= 0:
        raise ValidationError(f"Item {index}: quantity must be greater than 0")
    return entered_unit, quantity


async def build_items(db: AsyncSession, receipt_date: date, items_in: List[ReceiptItemCreate]) -> List[ReceiptItem]:
    """Items with both quantities and the density of receipt_date frozen in"""
    if not items_in:
        raise ValidationError("A receipt needs at least one item")

    items = []
    for index, item_in in enumerate(items_in, start=1):
        entered_unit, quantity = entered_quantity(item_in, index)
        material = await get_active(db, Material, item_in.material_id, "Material")
        lookup = await density_at(db, material.id, receipt_date)
        quantity_primary, quantity_secondary = convert_entered_quantity(quantity, entered_unit, lookup.density)
        unit_price = round_money(item_in.unit_price)

        items.append(ReceiptItem(
            material_id=material.id,
            material=material,
            entered_unit=entered_unit,
            quantity_primary=quantity_primary,
            quantity_secondary=quantity_secondary,
            density_used=lookup.density,
            density_fallback=lookup.fallback,
            unit_price=unit_price,
            total_amount=line_total(quantity, unit_price),
            notes=item_in.notes,
        ))
    return items


async def build_transport_record(
    db: AsyncSession,
    receipt: Receipt,
    data: TransportRecordCreate,
    actor: Optional[str] = None,
) -> TransportRecord:
    """Transport record with vehicle, company and density filled from their sources"""
    vehicle = await get_active(db, Vehicle, data.vehicle_id, "Vehicle") if data.vehicle_id else None
    transport_unit_id = data.transport_unit_id or (vehicle.transport_unit_id if vehicle else None)
    transport_unit = (
        await get_active(db, TransportUnit, transport_unit_id, "Transport unit") if transport_unit_id else None
    )

    material_id = data.material_id
    if material_id:
        await get_active(db, Material, material_id, "Material")
    elif receipt.items:
        material_id = receipt.items[0].material_id

    if data.density is not None:
        density = round_density(data.density)
    elif material_id:
        density = (await density_at(db, material_id, receipt.receipt_date)).density
    else:
        density = round_density(1)

    return TransportRecord(
        vehicle_id=vehicle.id if vehicle else None,
        transport_unit_id=transport_unit.id if transport_unit else None,
        material_id=material_id,
        transport_date=data.transport_date or receipt.receipt_date,
        transport_company=data.transport_company or (transport_unit.name if transport_unit else None),
        vehicle_plate=data.vehicle_plate or (vehicle.plate_number if vehicle else None),
        ticket_number=data.ticket_number,
        driver_name=data.driver_name or (vehicle.driver_name if vehicle else None),
        quantity_primary=round_quantity(data.quantity_primary),
        density=density,
        unit_price=round_money(data.unit_price),
        transport_fee=round_money(data.transport_fee),
        origin=data.origin,
        destination=data.destination,
        notes=data.notes,
        created_by=actor,
    )


def is_number_collision(exc: IntegrityError) -> bool:
    return "receipt_number" in str(exc.orig)


# ==================== receipts ====================

async def stage_receipt(
    db: AsyncSession,
    kind: str,
    data: ReceiptCreate,
    actor: Optional[str] = None,
) -> Receipt:
    """Build, number and flush a receipt in the caller's transaction"""
    receipt_type = resolve_receipt_type(kind, data.receipt_type)
    receipt_date = data.receipt_date or date.today()

    await check_counterparts(db, receipt_type, data.warehouse_id, data.project_id, data.vehicle_id)
    items = await build_items(db, receipt_date, data.items)

    receipt = Receipt(
        kind=kind,
        receipt_type=receipt_type,
        receipt_date=receipt_date,
        created_by=actor,
        **{field: getattr(data, field) for field in HEADER_FIELDS},
    )
    receipt.items = items
    receipt.recalculate_totals()
    if data.transport is not None:
        receipt.transport_record = await build_transport_record(db, receipt, data.transport, actor)

    receipt.receipt_number = await generate_receipt_number(db, prefix_for(receipt_type), receipt_date)
    db.add(receipt)
    await db.flush()
    return receipt


async def create_receipt(
    db: AsyncSession,
    kind: str,
    data: ReceiptCreate,
    actor: Optional[str] = None,
) -> Receipt:
    """Create a purchase or export receipt and return it fully loaded"""
    receipt_type = resolve_receipt_type(kind, data.receipt_type)
    receipt_date = data.receipt_date or date.today()
    stem = f"{prefix_for(receipt_type)}{receipt_date.strftime('%y%m%d')}"
    attempts = max(1, settings.RECEIPT_NUMBER_MAX_ATTEMPTS)

    for attempt in range(1, attempts + 1):
        try:
            receipt = await stage_receipt(db, kind, data, actor)
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if not is_number_collision(e):
                logger.error(f"Saving {kind} receipt {stem}xxx failed: {e.orig}")
                raise PersistenceError(f"Could not save receipt: {e.orig}") from e
            logger.warning(f"Receipt number {stem}xxx already taken, retrying ({attempt}/{attempts})")
            continue

        logger.info(
            f"✅ Created {kind} receipt {receipt.receipt_number}: "
            f"{len(receipt.items)} items, {receipt.total_quantity_primary} t, total {receipt.total_amount}"
        )
        return await load_receipt(db, receipt.id)

    raise DuplicateError(f"Receipt number {stem}xxx already exists, please retry")


async def get_receipt(db: AsyncSession, receipt_id: int, kind: Optional[str] = None) -> Receipt:
    """Receipt by id, soft-deleted ones included"""
    receipt = await load_receipt(db, receipt_id)
    if receipt is None or (kind and receipt.kind != kind):
        raise NotFoundError(f"Receipt {receipt_id} not found")
    return receipt


async def update_receipt(
    db: AsyncSession,
    receipt_id: int,
    kind: str,
    data: ReceiptUpdate,
) -> Receipt:
    """
    Update header fields in place. When items are given they replace all
    existing items (using the density of the possibly new receipt date) and
    the totals are recomputed from scratch.
    """
    receipt = await get_receipt(db, receipt_id, kind)
    if receipt.is_deleted:
        raise NotFoundError(f"Receipt {receipt_id} not found")

    updates = data.model_dump(exclude_unset=True, exclude={"items"})
    receipt_type = resolve_receipt_type(kind, updates.pop("receipt_type", None) or receipt.receipt_type)
    receipt_date = updates.pop("receipt_date", None) or receipt.receipt_date

    await check_counterparts(
        db,
        receipt_type,
        updates.get("warehouse_id", receipt.warehouse_id),
        updates.get("project_id", receipt.project_id),
        updates.get("vehicle_id", receipt.vehicle_id),
    )
    new_items = await build_items(db, receipt_date, data.items) if data.items is not None else None

    for field, value in updates.items():
        setattr(receipt, field, value)
    receipt.receipt_type = receipt_type
    receipt.receipt_date = receipt_date

    if new_items is not None:
        receipt.items.clear()
        receipt.items.extend(new_items)
    receipt.recalculate_totals()
    receipt.updated_at = datetime.now()

    await db.commit()
    logger.info(f"✏️ Updated receipt {receipt.receipt_number}" + (f", {len(new_items)} items replaced" if new_items else ""))
    return await load_receipt(db, receipt.id)


async def soft_delete_receipt(db: AsyncSession, receipt_id: int, kind: str) -> Receipt:
    """Mark a receipt deleted; deleting it again is a no-op"""
    receipt = await get_receipt(db, receipt_id, kind)
    if receipt.deleted_at is None:
        receipt.deleted_at = datetime.now()
        await db.commit()
        logger.info(f"🗑️ Deleted receipt {receipt.receipt_number}")
    return receipt


async def list_receipts(
    db: AsyncSession,
    kind: str,
    *,
    receipt_type: Optional[str] = None,
    warehouse_id: Optional[int] = None,
    project_id: Optional[int] = None,
    vehicle_id: Optional[int] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    include_deleted: bool = False,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Receipt], int]:
    """(receipts of the page, total matching)"""
    conditions = [Receipt.kind == kind]
    if not include_deleted:
        conditions.append(Receipt.deleted_at.is_(None))
    if receipt_type:
        conditions.append(Receipt.receipt_type == receipt_type)
    if warehouse_id:
        conditions.append(Receipt.warehouse_id == warehouse_id)
    if project_id:
        conditions.append(Receipt.project_id == project_id)
    if vehicle_id:
        conditions.append(Receipt.vehicle_id == vehicle_id)
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(
            Receipt.receipt_number.ilike(pattern),
            Receipt.supplier_name.ilike(pattern),
            Receipt.customer_name.ilike(pattern),
            Receipt.notes.ilike(pattern),
        ))
    if start_date:
        conditions.append(Receipt.receipt_date >= start_date)
    if end_date:
        conditions.append(Receipt.receipt_date <= end_date)

    total_result = await db.execute(select(func.count(Receipt.id)).where(and_(*conditions)))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Receipt)
        .options(*receipt_load_options())
        .where(and_(*conditions))
        .order_by(Receipt.receipt_date.desc(), Receipt.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().unique().all()), total


# ==================== transport records ====================

async def add_transport_record(
    db: AsyncSession,
    receipt_id: int,
    kind: str,
    data: TransportRecordCreate,
    actor: Optional[str] = None,
) -> TransportRecord:
    """Attach the transport record of a receipt; a second one is a DuplicateError"""
    receipt = await get_receipt(db, receipt_id, kind)
    if receipt.is_deleted:
        raise NotFoundError(f"Receipt {receipt_id} not found")
    if receipt.transport_record is not None:
        raise DuplicateError(f"Receipt {receipt.receipt_number} already has a transport record")

    record = await build_transport_record(db, receipt, data, actor)
    record.receipt_id = receipt.id
    db.add(record)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateError(f"Receipt {receipt.receipt_number} already has a transport record")

    logger.info(f"🚚 Transport record added to {receipt.receipt_number} ({record.vehicle_plate or '-'})")
    return await load_transport_record(db, record.id)


async def list_transport_records(db: AsyncSession, receipt_id: int, kind: str) -> List[TransportRecord]:
    receipt = await get_receipt(db, receipt_id, kind)
    return as_list(receipt.transport_record)


async def delete_transport_record(db: AsyncSession, receipt_id: int, transport_id: int, kind: str) -> None:
    await get_receipt(db, receipt_id, kind)
    result = await db.execute(
        select(TransportRecord).where(
            TransportRecord.id == transport_id,
            TransportRecord.receipt_id == receipt_id,
        )
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFoundError(f"Transport record {transport_id} not found")
    await db.delete(record)
    await db.commit()
    logger.info(f"🗑️ Transport record {transport_id} removed from receipt {receipt_id}")


# ==================== opening balances ====================

async def post_opening_balances(
    db: AsyncSession,
    material: Material,
    initial_stocks: list,
    actor: Optional[str] = None,
) -> List[Receipt]:
    """
    One warehouse import per warehouse for the stock a new material starts
    with. Receipts are staged in the caller's transaction; the caller commits.
    """
    receipts = []
    for stock in initial_stocks:
        if stock.quantity_primary:
            item = ReceiptItemCreate(
                material_id=material.id, quantity_primary=stock.quantity_primary, unit_price=stock.unit_price,
            )
        elif stock.quantity_secondary:
            item = ReceiptItemCreate(
                material_id=material.id, quantity_secondary=stock.quantity_secondary, unit_price=stock.unit_price,
            )
        else:
            continue
        data = ReceiptCreate(
            receipt_type="warehouse_import",
            warehouse_id=stock.warehouse_id,
            supplier_name=OPENING_BALANCE_SUPPLIER,
            notes=f"{OPENING_BALANCE_SUPPLIER} - {material.name}",
            items=[item],
        )
        receipts.append(await stage_receipt(db, "purchase", data, actor))
    return receipts
