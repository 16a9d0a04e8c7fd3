import logging

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.user import User
from models.customer import Customer
from security.password import hash_password
from security.password_policy import validate_password
from services.errors import ValidationError, ConflictError, NotFoundError
from utils.audit import log_event
from utils.request_body import json_body, text_field
from utils.serialize import iso

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, url_prefix="/api/users")

ROLES = ("customer", "admin")


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _user_json(u):
    return {
        "id": u.id,
        "email": u.email,
        "first_name": u.first_name,
        "last_name": u.last_name,
        "phone": u.phone,
        "role": u.role,
        "customer_id": u.customer.id if u.customer else None,
        "created_at": iso(u.created_at),
    }


@users_bp.post("")
def create_user():
    """Create an account together with its customer record (one transaction)."""
    data = json_body()
    email = (text_field(data, "email") or "").lower()
    password = data.get("password") or ""
    role = data.get("role") or "customer"

    if not _is_valid_email(email):
        raise ValidationError("Invalid email")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    valid, errors = validate_password(password)
    if not valid:
        raise ValidationError("Password does not meet policy", details=errors)
    if User.query.filter_by(email=email).first():
        raise ConflictError("Email already registered")

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=text_field(data, "firstName"),
        last_name=text_field(data, "lastName"),
        phone=text_field(data, "phone"),
        role=role,
    )
    try:
        db.session.add(user)
        db.session.flush()
        db.session.add(Customer(
            user_id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=user.phone,
            country=current_app.config.get("DEFAULT_COUNTRY"),
        ))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email already registered")

    logger.info("User %s created with role %s", user.id, role)
    log_event("USER_CREATE", user_id=user.id, entity="user", entity_id=user.id)
    return jsonify(success=True, data=_user_json(user)), 201


@users_bp.get("")
def list_users():
    q = User.query
    role = request.args.get("role")
    if role:
        q = q.filter_by(role=role)
    users = q.order_by(User.created_at.desc(), User.id.desc()).all()
    return jsonify(success=True, count=len(users), data=[_user_json(u) for u in users]), 200


@users_bp.get("/<int:user_id>")
def get_user(user_id: int):
    user = User.query.get(user_id)
    if not user:
        raise NotFoundError("User not found")
    return jsonify(success=True, data=_user_json(user)), 200
