from routes.health import health_bp
from routes.bookings import bookings_bp
from routes.inventory import inventory_bp
from routes.rooms import rooms_bp
from routes.payments import payments_bp
from routes.webhooks import webhooks_bp
from routes.customers import customers_bp
from routes.users import users_bp
from routes.audit_logs import audit_bp
from routes.menu import menu_bp
from routes.promos import promos_bp

__all__ = [
    "health_bp",
    "bookings_bp",
    "inventory_bp",
    "rooms_bp",
    "payments_bp",
    "webhooks_bp",
    "customers_bp",
    "users_bp",
    "audit_bp",
    "menu_bp",
    "promos_bp",
]
