"""Thin HTTP clients for the PayMongo and Xendit checkout APIs."""
import logging

import requests
from flask import current_app

from services.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

# our payment method names -> PayMongo payment_method_types
PAYMONGO_METHODS = {
    "gcash": "gcash",
    "paymaya": "paymaya",
    "bank": "billease",
    "card": "card",
}
PAYMONGO_DEFAULT_METHODS = ["gcash", "paymaya", "card", "grab_pay"]

# gateway status -> payments.status
PAYMONGO_STATUS_MAP = {"paid": "paid", "unpaid": "pending"}
XENDIT_STATUS_MAP = {"PAID": "paid", "SETTLED": "paid", "PENDING": "pending", "EXPIRED": "failed"}


def to_minor_units(amount) -> int:
    return int(round(float(amount) * 100))


class _GatewayClient:
    provider = None

    def __init__(self, secret_key, base_url, timeout=15):
        if not secret_key:
            raise UpstreamServiceError("Payment service not configured. Please contact administrator.")
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _auth(self):
        return (self.secret_key, "")

    def _request(self, method: str, url: str, payload=None) -> dict:
        try:
            resp = requests.request(method, url, json=payload, auth=self._auth(), timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("%s request to %s failed: %s", self.provider, url, exc)
            raise UpstreamServiceError(f"{self.provider} is unreachable", details=str(exc))

        try:
            data = resp.json()
        except ValueError:
            data = {"raw": resp.text[:500]}

        if not resp.ok:
            logger.error("%s API error %s: %s", self.provider, resp.status_code, data)
            raise UpstreamServiceError(self._error_message(data), details=data)
        return data

    def _error_message(self, data) -> str:
        return f"{self.provider} request failed"


class PayMongoClient(_GatewayClient):
    provider = "PAYMONGO"

    @classmethod
    def from_config(cls):
        cfg = current_app.config
        return cls(cfg.get("PAYMONGO_SECRET_KEY"), cfg.get("PAYMONGO_API_URL"), cfg.get("PAYMENT_HTTP_TIMEOUT", 15))

    def _error_message(self, data) -> str:
        errors = data.get("errors") if isinstance(data, dict) else None
        if errors and isinstance(errors, list) and isinstance(errors[0], dict):
            return errors[0].get("detail") or "Failed to create payment link"
        return "PayMongo request failed"

    def create_link(self, amount, description: str, remarks: str, payment_method=None) -> dict:
        method = PAYMONGO_METHODS.get(payment_method)
        body = {
            "data": {
                "attributes": {
                    "amount": to_minor_units(amount),
                    "description": description,
                    "remarks": remarks,
                    "payment_method_types": [method] if method else list(PAYMONGO_DEFAULT_METHODS),
                }
            }
        }
        data = self._request("POST", f"{self.base_url}/links", body)
        attrs = data["data"]["attributes"]
        return {
            "id": data["data"]["id"],
            "checkout_url": attrs.get("checkout_url"),
            "reference_number": attrs.get("reference_number"),
            "status": attrs.get("status"),
        }

    def get_link(self, link_id: str) -> dict:
        data = self._request("GET", f"{self.base_url}/links/{link_id}")
        attrs = data["data"]["attributes"]
        return {
            "id": data["data"]["id"],
            "status": attrs.get("status"),
            "amount": attrs.get("amount", 0) / 100,
            "reference_number": attrs.get("reference_number"),
            "remarks": attrs.get("remarks"),
            "payments": attrs.get("payments", []),
        }


class XenditClient(_GatewayClient):
    provider = "XENDIT"

    @classmethod
    def from_config(cls):
        cfg = current_app.config
        return cls(cfg.get("XENDIT_SECRET_KEY"), cfg.get("XENDIT_API_URL"), cfg.get("PAYMENT_HTTP_TIMEOUT", 15))

    def _error_message(self, data) -> str:
        if isinstance(data, dict) and data.get("message"):
            return data["message"]
        return "Failed to create payment"

    def create_invoice(self, external_id: str, amount, payer_email: str, customer_name: str,
                       description=None, currency="PHP") -> dict:
        frontend = current_app.config.get("FRONTEND_URL", "http://localhost:5173").rstrip("/")
        body = {
            "external_id": external_id,
            "amount": float(amount),
            "payer_email": payer_email,
            "description": description or f"Booking Payment - {external_id}",
            "customer": {"given_names": customer_name, "email": payer_email},
            "currency": currency,
            "success_redirect_url": f"{frontend}/booking?bookingId={external_id}&status=success",
            "failure_redirect_url": f"{frontend}/booking-confirmation?status=failed",
        }
        data = self._request("POST", self.base_url, body)
        return {
            "id": data.get("id"),
            "invoice_url": data.get("invoice_url"),
            "external_id": data.get("external_id"),
            "status": data.get("status"),
            "amount": data.get("amount"),
            "expiry_date": data.get("expiry_date"),
        }

    def get_invoice(self, invoice_id: str) -> dict:
        data = self._request("GET", f"{self.base_url}/{invoice_id}")
        return {
            "id": data.get("id"),
            "status": data.get("status"),
            "paid_at": data.get("paid_at"),
            "amount": data.get("amount"),
            "external_id": data.get("external_id"),
        }
