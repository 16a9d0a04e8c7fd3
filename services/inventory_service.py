"""Restaurant supply stock: CRUD plus the add/remove/set quantity machine.

Status (good/low/critical) is derived from quantity and threshold on every
read, see ``models.inventory.stock_status``; nothing here ever writes it.
"""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.inventory import InventoryItem, stock_status
from services.errors import ValidationError, NotFoundError, ConflictError, TransientStoreError

logger = logging.getLogger(__name__)

OPERATIONS = ("add", "remove", "set")
STATUSES = ("good", "low", "critical")

# matches Numeric(12, 3) on inventory.quantity and inventory.threshold
QUANTITY_PLACES = Decimal("0.001")
QUANTITY_MAX = Decimal("999999999.999")
LOW_STOCK_MAX = 500


def to_decimal(value, field: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{field} must be a number")
    return number


def to_quantity(value, field: str) -> Decimal:
    """Parse a stock amount that the quantity columns store without rounding."""
    number = to_decimal(value, field)
    if abs(number) > QUANTITY_MAX:
        raise ValidationError(f"{field} must be at most {QUANTITY_MAX}")
    if number != number.quantize(QUANTITY_PLACES):
        raise ValidationError(f"{field} allows at most 3 decimal places")
    return number.quantize(QUANTITY_PLACES)


def get_item(item_id: int) -> InventoryItem:
    item = InventoryItem.query.get(item_id)
    if not item:
        raise NotFoundError("Inventory item not found")
    return item


def _commit(conflict_message="Item already exists"):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(conflict_message)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Inventory write failed")
        raise TransientStoreError("Database error", details=str(exc))


def create_item(item_name, quantity, unit, threshold) -> InventoryItem:
    item_name = (item_name or "").strip() if isinstance(item_name, str) else ""
    unit = (unit or "").strip() if isinstance(unit, str) else ""
    if not item_name or quantity is None or not unit or threshold is None:
        raise ValidationError("item_name, quantity, unit, and threshold are required")

    qty = to_quantity(quantity, "quantity")
    thr = to_quantity(threshold, "threshold")
    if qty < 0:
        raise ValidationError("quantity cannot be negative")
    if thr <= 0:
        raise ValidationError("threshold must be greater than 0")

    item = InventoryItem(item_name=item_name, quantity=qty, unit=unit, threshold=thr,
                         last_restocked=datetime.utcnow())
    db.session.add(item)
    _commit("An inventory item with this name already exists")
    logger.info("Inventory item %s created (%s %s)", item.item_name, qty, unit)
    return item


def update_item(item_id: int, fields: dict) -> InventoryItem:
    item = get_item(item_id)

    name = fields.get("item_name")
    unit = fields.get("unit")
    qty = to_quantity(fields["quantity"], "quantity") if fields.get("quantity") is not None else item.quantity
    thr = to_quantity(fields["threshold"], "threshold") if fields.get("threshold") is not None else item.threshold

    if qty < 0:
        raise ValidationError("quantity cannot be negative")
    if thr <= 0:
        raise ValidationError("threshold must be greater than 0")

    if isinstance(name, str) and name.strip():
        item.item_name = name.strip()
    if isinstance(unit, str) and unit.strip():
        item.unit = unit.strip()
    item.quantity = qty
    item.threshold = thr
    item.updated_at = datetime.utcnow()

    _commit("An inventory item with this name already exists")
    return item


def delete_item(item_id: int) -> None:
    item = get_item(item_id)
    db.session.delete(item)
    _commit()
    logger.info("Inventory item %s deleted", item_id)


def adjust_quantity(item_id: int, amount, operation: str = "set") -> dict:
    """Apply add/remove/set to an item's stock.

    ``remove`` clamps at zero unless INVENTORY_STRICT_REMOVE is on, in which
    case removing more than is in stock is rejected. Every adjustment stamps
    ``updated_at``; only ``add`` counts as a restock.
    """
    amount = to_quantity(amount, "Quantity")
    if operation not in OPERATIONS:
        raise ValidationError(f"Invalid operation. Must be one of: {', '.join(OPERATIONS)}")
    if amount < 0:
        raise ValidationError("Quantity cannot be negative")

    item = get_item(item_id)
    current = Decimal(item.quantity)

    if operation == "add":
        new_quantity = current + amount
        if new_quantity > QUANTITY_MAX:
            raise ValidationError(f"Quantity would exceed {QUANTITY_MAX} {item.unit}")
    elif operation == "remove":
        if amount > current and current_app.config.get("INVENTORY_STRICT_REMOVE"):
            raise ValidationError(f"Cannot remove {amount} {item.unit}, only {current} in stock")
        if amount > current:
            logger.warning("Removal of %s from %s clamped at zero (had %s)", amount, item.item_name, current)
        new_quantity = max(Decimal(0), current - amount)
    else:
        new_quantity = amount

    now = datetime.utcnow()
    item.quantity = new_quantity
    item.updated_at = now
    if operation == "add":
        item.last_restocked = now

    _commit()

    new_status = stock_status(new_quantity, item.threshold)
    logger.info("Inventory %s %s %s: %s -> %s (%s)", item.item_name, operation, amount, current, new_quantity, new_status)
    return {
        "item": item,
        "operation": operation,
        "previous_quantity": current,
        "new_quantity": new_quantity,
        "new_status": new_status,
    }


def list_items(status=None, search=None):
    q = InventoryItem.query
    if status:
        if status not in STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(STATUSES)}")
        q = q.filter(InventoryItem.status == status)
    if search:
        q = q.filter(InventoryItem.item_name.ilike(f"%{search}%"))
    return q.order_by(InventoryItem.item_name.asc()).all()


def low_stock_items(critical_only=False, limit=None):
    wanted = ["critical"] if critical_only else ["low", "critical"]
    q = (
        InventoryItem.query
        .filter(InventoryItem.status.in_(wanted))
        .order_by(
            db.case((InventoryItem.status == "critical", 1), else_=2),
            InventoryItem.quantity.asc(),
        )
    )
    if limit is not None:
        q = q.limit(max(1, min(limit, LOW_STOCK_MAX)))
    return q.all()


def inventory_stats() -> dict:
    items = InventoryItem.query.all()
    counts = {s: 0 for s in STATUSES}
    for item in items:
        counts[item.status] += 1
    return {
        "total_items": len(items),
        "good_status": counts["good"],
        "low_status": counts["low"],
        "critical_status": counts["critical"],
        "total_unique_units": len({i.unit for i in items}),
    }
