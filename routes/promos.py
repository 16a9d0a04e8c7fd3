import logging

from flask import Blueprint, jsonify
from sqlalchemy.exc import IntegrityError

from models import db
from models.promo import Promo
from services.errors import ValidationError, NotFoundError, ConflictError
from services.booking_service import parse_date, to_int
from utils.audit import log_event
from utils.request_body import json_body, text_field, amount_field
from utils.serialize import money, iso

logger = logging.getLogger(__name__)

promos_bp = Blueprint("promos", __name__, url_prefix="/api/promos")

TYPES = ("percentage", "fixed")


def _promo_json(p):
    return {
        "id": p.id,
        "code": p.code,
        "type": p.type,
        "value": money(p.value),
        "description": p.description,
        "startDate": iso(p.start_date),
        "endDate": iso(p.end_date),
        "usageLimit": p.usage_limit,
        "created_at": iso(p.created_at),
    }


def _get_promo(promo_id: int) -> Promo:
    promo = Promo.query.get(promo_id)
    if not promo:
        raise NotFoundError("Promo not found")
    return promo


def _optional_date(data: dict, key: str):
    if data.get(key) in (None, ""):
        return None
    return parse_date(data[key], key)


def _apply(promo: Promo, data: dict):
    if "code" in data:
        code = text_field(data, "code")
        if not code:
            raise ValidationError("code cannot be empty")
        promo.code = code.upper()
    if "type" in data:
        if data["type"] not in TYPES:
            raise ValidationError(f"type must be one of: {', '.join(TYPES)}")
        promo.type = data["type"]
    if "value" in data:
        promo.value = amount_field(data, "value")
    if "description" in data:
        promo.description = text_field(data, "description")
    if "startDate" in data:
        promo.start_date = _optional_date(data, "startDate")
    if "endDate" in data:
        promo.end_date = _optional_date(data, "endDate")
    if "usageLimit" in data:
        promo.usage_limit = to_int(data["usageLimit"], "usageLimit", minimum=1)

    if promo.type == "percentage" and promo.value is not None and promo.value > 100:
        raise ValidationError("A percentage promo cannot exceed 100")
    if promo.start_date and promo.end_date and promo.end_date < promo.start_date:
        raise ValidationError("endDate cannot be before startDate")


def _commit():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Promo code already exists")


@promos_bp.get("")
def list_promos():
    promos = Promo.query.order_by(Promo.created_at.desc(), Promo.id.desc()).all()
    return jsonify(success=True, count=len(promos), data=[_promo_json(p) for p in promos]), 200


@promos_bp.post("")
def create_promo():
    data = json_body()
    if not text_field(data, "code") or data.get("type") is None or data.get("value") is None:
        raise ValidationError("code, type and value are required")

    promo = Promo()
    _apply(promo, data)
    db.session.add(promo)
    _commit()

    logger.info("Promo %s created", promo.code)
    log_event("PROMO_CREATE", entity="promo", entity_id=promo.id, metadata={"code": promo.code})
    return jsonify(success=True, data=_promo_json(promo)), 201


@promos_bp.put("/<int:promo_id>")
def update_promo(promo_id: int):
    promo = _get_promo(promo_id)
    _apply(promo, json_body())
    _commit()

    log_event("PROMO_UPDATE", entity="promo", entity_id=promo.id)
    return jsonify(success=True, data=_promo_json(promo)), 200


@promos_bp.delete("/<int:promo_id>")
def delete_promo(promo_id: int):
    promo = _get_promo(promo_id)
    db.session.delete(promo)
    db.session.commit()

    log_event("PROMO_DELETE", entity="promo", entity_id=promo_id)
    return jsonify(success=True, deleted_id=promo_id), 200
