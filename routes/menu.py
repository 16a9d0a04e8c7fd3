from flask import Blueprint, jsonify

from models import db
from models.menu_item import MenuItem
from services.errors import ValidationError, NotFoundError
from services.booking_service import to_int
from utils.audit import log_event
from utils.request_body import json_body, text_field, amount_field
from utils.serialize import money, iso

menu_bp = Blueprint("menu", __name__, url_prefix="/api/restaurant/menu")

REQUIRED = ("name", "price", "category")


def _menu_json(m):
    return {
        "id": m.id,
        "name": m.name,
        "category": m.category,
        "price": money(m.price),
        "available": m.available,
        "prep_time": m.prep_time,
        "description": m.description,
        "image_url": m.image_url,
        "created_at": iso(m.created_at),
    }


def _get_menu_item(item_id: int) -> MenuItem:
    item = MenuItem.query.get(item_id)
    if not item:
        raise NotFoundError("Menu item not found")
    return item


def _available(data: dict) -> bool:
    if not isinstance(data.get("available"), bool):
        raise ValidationError("available must be true or false")
    return data["available"]


def _apply(item: MenuItem, data: dict):
    for field in ("name", "category"):
        if field in data:
            value = text_field(data, field)
            if not value:
                raise ValidationError(f"{field} cannot be empty")
            setattr(item, field, value)
    if "price" in data:
        item.price = amount_field(data, "price")
    if "available" in data:
        item.available = _available(data)
    if "prep_time" in data:
        item.prep_time = to_int(data["prep_time"], "prep_time", default=15)
    for field in ("description", "image_url"):
        if field in data:
            setattr(item, field, text_field(data, field))


@menu_bp.get("")
def list_menu():
    items = MenuItem.query.order_by(MenuItem.category, MenuItem.name).all()
    return jsonify(success=True, count=len(items), data=[_menu_json(m) for m in items]), 200


@menu_bp.get("/categories")
def categories():
    rows = db.session.query(MenuItem.category).distinct().order_by(MenuItem.category).all()
    return jsonify(success=True, data=[r[0] for r in rows]), 200


@menu_bp.get("/category/<category>")
def menu_by_category(category: str):
    # guests only see what the kitchen can serve right now
    items = (MenuItem.query
             .filter_by(category=category, available=True)
             .order_by(MenuItem.name)
             .all())
    return jsonify(success=True, count=len(items), data=[_menu_json(m) for m in items]), 200


@menu_bp.get("/<int:item_id>")
def get_menu_item(item_id: int):
    return jsonify(success=True, data=_menu_json(_get_menu_item(item_id))), 200


@menu_bp.post("")
def create_menu_item():
    data = json_body()
    if any(data.get(field) in (None, "") for field in REQUIRED):
        raise ValidationError("Name, price, and category are required")

    item = MenuItem(available=True, prep_time=15)
    _apply(item, data)
    db.session.add(item)
    db.session.commit()

    log_event("MENU_CREATE", entity="menu_item", entity_id=item.id, metadata={"name": item.name})
    return jsonify(success=True, message="Menu item created successfully", data=_menu_json(item)), 201


@menu_bp.put("/<int:item_id>")
def update_menu_item(item_id: int):
    item = _get_menu_item(item_id)
    _apply(item, json_body())
    db.session.commit()

    log_event("MENU_UPDATE", entity="menu_item", entity_id=item.id)
    return jsonify(success=True, message="Menu item updated successfully", data=_menu_json(item)), 200


@menu_bp.patch("/<int:item_id>/availability")
def set_availability(item_id: int):
    item = _get_menu_item(item_id)
    item.available = _available(json_body())
    db.session.commit()

    log_event("MENU_AVAILABILITY", entity="menu_item", entity_id=item.id, metadata={"available": item.available})
    return jsonify(success=True, message="Menu item availability updated successfully",
                   data=_menu_json(item)), 200


@menu_bp.delete("/<int:item_id>")
def delete_menu_item(item_id: int):
    item = _get_menu_item(item_id)
    db.session.delete(item)
    db.session.commit()

    log_event("MENU_DELETE", entity="menu_item", entity_id=item_id)
    return jsonify(success=True, message="Menu item deleted successfully", deleted_id=item_id), 200
