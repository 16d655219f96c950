"""
Receipt response builders
"""

from ebh.models.receipt import Receipt, ReceiptItem
from ebh.models.transport import TransportRecord
from ebh.schemas.receipt import ReceiptResponse, ReceiptItemResponse, TransportRecordResponse
from ebh.services.conversion import to_secondary

KIND_LABELS = {
    "purchase": "Purchase",
    "export": "Export",
}


def build_item_response(item: ReceiptItem) -> ReceiptItemResponse:
    material = item.material
    return ReceiptItemResponse(
        id=item.id,
        receipt_id=item.receipt_id,
        material_id=item.material_id,
        material_code=material.code if material else "",
        material_name=material.name if material else "",
        primary_unit=material.primary_unit if material else "",
        secondary_unit=material.secondary_unit if material else "",
        entered_unit=item.entered_unit,
        quantity_primary=float(item.quantity_primary),
        quantity_secondary=float(item.quantity_secondary),
        density_used=float(item.density_used),
        density_fallback=bool(item.density_fallback),
        unit_price=float(item.unit_price),
        unit_price_primary=float(item.unit_price_primary),
        unit_price_secondary=float(item.unit_price_secondary),
        total_amount=float(item.total_amount),
        notes=item.notes)


def build_transport_response(record: TransportRecord) -> TransportRecordResponse:
    return TransportRecordResponse(
        id=record.id,
        receipt_id=record.receipt_id,
        vehicle_id=record.vehicle_id,
        transport_unit_id=record.transport_unit_id,
        material_id=record.material_id,
        transport_date=record.transport_date,
        transport_company=record.transport_company,
        vehicle_plate=record.vehicle_plate,
        ticket_number=record.ticket_number,
        driver_name=record.driver_name,
        quantity_primary=float(record.quantity_primary or 0),
        quantity_secondary=float(to_secondary(record.quantity_primary, record.density)),
        density=float(record.density),
        unit_price=float(record.unit_price or 0),
        transport_fee=float(record.transport_fee or 0),
        freight_amount=float(record.freight_amount),
        origin=record.origin,
        destination=record.destination,
        notes=record.notes,
        vehicle_display=record.vehicle.display_name if record.vehicle else (record.vehicle_plate or ""),
        transport_unit_name=record.transport_unit.name if record.transport_unit else "",
        material_name=record.material.name if record.material else "",
        created_by=record.created_by,
        created_at=record.created_at)


def build_receipt_response(receipt: Receipt, include_items: bool = True) -> ReceiptResponse:
    resp = ReceiptResponse(
        id=receipt.id,
        receipt_number=receipt.receipt_number,
        kind=receipt.kind,
        receipt_type=receipt.receipt_type,
        type_display=receipt.type_display,
        receipt_date=receipt.receipt_date,
        warehouse_id=receipt.warehouse_id,
        warehouse_name=receipt.warehouse.name if receipt.warehouse else "",
        project_id=receipt.project_id,
        project_name=receipt.project.name if receipt.project else "",
        vehicle_id=receipt.vehicle_id,
        vehicle_plate=receipt.vehicle.plate_number if receipt.vehicle else "",
        supplier_name=receipt.supplier_name,
        supplier_phone=receipt.supplier_phone,
        quarry_name=receipt.quarry_name,
        destination_site=receipt.destination_site,
        invoice_number=receipt.invoice_number,
        customer_name=receipt.customer_name,
        customer_phone=receipt.customer_phone,
        destination=receipt.destination,
        notes=receipt.notes,
        total_amount=float(receipt.total_amount or 0),
        total_quantity_primary=float(receipt.total_quantity_primary or 0),
        total_quantity_secondary=float(receipt.total_quantity_secondary or 0),
        material_summary=receipt.material_summary,
        created_by=receipt.created_by,
        created_at=receipt.created_at,
        updated_at=receipt.updated_at,
        deleted_at=receipt.deleted_at,
        is_deleted=receipt.is_deleted)

    if include_items:
        resp.items = [build_item_response(item) for item in receipt.items]
    if receipt.transport_record is not None:
        resp.transport = build_transport_response(receipt.transport_record)
    return resp
