from flask import Blueprint, request, jsonify

from models import db
from models.bookable_item import BookableItem
from services.errors import ValidationError, NotFoundError
from services.booking_service import to_int
from services.inventory_service import to_decimal
from utils.audit import log_event
from utils.request_body import json_body, text_field
from utils.serialize import money, iso

rooms_bp = Blueprint("rooms", __name__, url_prefix="/api/rooms")

CATEGORIES = {"Room", "Cottage", "Event", "Food"}
TEXT_FIELDS = ("category_type", "room_number", "description")


def _room_json(r):
    return {
        "id": r.id,
        "category": r.category,
        "category_type": r.category_type,
        "room_number": r.room_number,
        "name": r.name,
        "description": r.description,
        "max_guests": r.max_guests,
        "price": money(r.price),
        "per_night": r.per_night,
        "is_active": r.is_active,
        "created_at": iso(r.created_at),
    }


def _get_room(room_id: int) -> BookableItem:
    room = BookableItem.query.get(room_id)
    if not room:
        raise NotFoundError("Room not found")
    return room


def _apply(room: BookableItem, data: dict):
    if "category" in data:
        if not isinstance(data["category"], str) or data["category"] not in CATEGORIES:
            raise ValidationError(f"category must be one of: {', '.join(sorted(CATEGORIES))}")
        room.category = data["category"]
    if "name" in data:
        name = text_field(data, "name")
        if not name:
            raise ValidationError("name cannot be empty")
        room.name = name
    if "price" in data:
        price = to_decimal(data["price"], "price")
        if price < 0:
            raise ValidationError("price cannot be negative")
        room.price = price
    if "max_guests" in data:
        room.max_guests = to_int(data["max_guests"], "max_guests", minimum=1)
    if "perNight" in data or "per_night" in data:
        room.per_night = bool(data.get("perNight", data.get("per_night")))
    for field in TEXT_FIELDS:
        if field in data:
            setattr(room, field, text_field(data, field))


@rooms_bp.get("")
def list_rooms():
    q = BookableItem.query
    category = request.args.get("category")
    if category:
        q = q.filter_by(category=category)
    if request.args.get("include_inactive", "").lower() != "true":
        q = q.filter_by(is_active=True)
    rooms = q.order_by(BookableItem.created_at.desc(), BookableItem.id.desc()).all()
    return jsonify(success=True, count=len(rooms), data=[_room_json(r) for r in rooms]), 200


@rooms_bp.get("/<int:room_id>")
def get_room(room_id: int):
    return jsonify(success=True, data=_room_json(_get_room(room_id))), 200


@rooms_bp.post("")
def create_room():
    data = json_body()
    if not text_field(data, "name") or data.get("price") is None:
        raise ValidationError("name and price are required")

    room = BookableItem(category=data.get("category") or "Room")
    _apply(room, {"category": room.category, **data})
    db.session.add(room)
    db.session.commit()

    log_event("ROOM_CREATE", entity="room", entity_id=room.id)
    return jsonify(success=True, data=_room_json(room)), 201


@rooms_bp.put("/<int:room_id>")
def update_room(room_id: int):
    room = _get_room(room_id)
    _apply(room, json_body())
    db.session.commit()

    log_event("ROOM_UPDATE", entity="room", entity_id=room.id)
    return jsonify(success=True, data=_room_json(room)), 200


@rooms_bp.delete("/<int:room_id>")
def deactivate_room(room_id: int):
    # rooms are referenced by past bookings, so they are retired instead of deleted
    room = _get_room(room_id)
    room.is_active = False
    db.session.commit()

    log_event("ROOM_DEACTIVATE", entity="room", entity_id=room_id)
    return jsonify(success=True, message="Room deactivated"), 200
