from urllib.parse import unquote

from flask import Blueprint, jsonify

from models.customer import Customer
from services.errors import ValidationError

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("/check-email/<path:email>")
def check_email(email: str):
    email = unquote(email or "").strip().lower()
    if not email:
        raise ValidationError("Email is required")

    customer = (
        Customer.query
        .filter_by(email=email)
        .order_by(Customer.updated_at.desc())
        .first()
    )
    if not customer:
        return jsonify(success=True, exists=False, customer=None), 200

    return jsonify(
        success=True,
        exists=True,
        customer={
            "id": customer.id,
            "firstName": customer.first_name,
            "lastName": customer.last_name,
            "email": customer.email,
        },
    ), 200
