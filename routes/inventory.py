from flask import Blueprint, request, jsonify

from services import inventory_service
from utils.audit import log_event
from utils.request_body import json_body
from utils.serialize import money, iso

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/restaurant/inventory")


def _item_json(i):
    return {
        "id": i.id,
        "item_name": i.item_name,
        "quantity": money(i.quantity),
        "unit": i.unit,
        "threshold": money(i.threshold),
        "status": i.status,
        "last_restocked": iso(i.last_restocked),
        "created_at": iso(i.created_at),
        "updated_at": iso(i.updated_at),
    }


@inventory_bp.get("")
def list_inventory():
    rows = inventory_service.list_items(status=request.args.get("status"), search=request.args.get("search"))
    return jsonify(success=True, count=len(rows), data=[_item_json(i) for i in rows]), 200


@inventory_bp.get("/status/low")
def low_stock():
    critical = request.args.get("critical", "").lower() == "true"
    limit = request.args.get("limit", type=int)
    rows = inventory_service.low_stock_items(critical_only=critical, limit=limit)
    return jsonify(success=True, count=len(rows), data=[_item_json(i) for i in rows]), 200


@inventory_bp.get("/stats")
def stats():
    return jsonify(success=True, stats=inventory_service.inventory_stats()), 200


@inventory_bp.get("/<int:item_id>")
def get_item(item_id: int):
    return jsonify(success=True, data=_item_json(inventory_service.get_item(item_id))), 200


@inventory_bp.post("")
def create_item():
    data = json_body()
    item = inventory_service.create_item(
        data.get("item_name"), data.get("quantity"), data.get("unit"), data.get("threshold")
    )
    log_event("INVENTORY_CREATE", entity="inventory", entity_id=item.id, metadata={"item_name": item.item_name})
    return jsonify(success=True, message="Inventory item created successfully", data=_item_json(item)), 201


@inventory_bp.put("/<int:item_id>")
def update_item(item_id: int):
    data = json_body()
    item = inventory_service.update_item(item_id, data)
    log_event("INVENTORY_UPDATE", entity="inventory", entity_id=item.id)
    return jsonify(success=True, message="Inventory item updated successfully", data=_item_json(item)), 200


@inventory_bp.patch("/<int:item_id>/quantity")
def adjust_quantity(item_id: int):
    data = json_body()
    result = inventory_service.adjust_quantity(item_id, data.get("quantity"), data.get("operation") or "set")

    log_event("INVENTORY_ADJUST", entity="inventory", entity_id=item_id, metadata={
        "operation": result["operation"],
        "previous_quantity": str(result["previous_quantity"]),
        "new_quantity": str(result["new_quantity"]),
    })
    return jsonify(
        success=True,
        message="Inventory quantity updated successfully",
        operation=result["operation"],
        previousQuantity=money(result["previous_quantity"]),
        newQuantity=money(result["new_quantity"]),
        newStatus=result["new_status"],
        data=_item_json(result["item"]),
    ), 200


@inventory_bp.delete("/<int:item_id>")
def delete_item(item_id: int):
    inventory_service.delete_item(item_id)
    log_event("INVENTORY_DELETE", entity="inventory", entity_id=item_id)
    return jsonify(success=True, message="Inventory item deleted successfully", deleted_id=item_id), 200
