from .db import db
from .user import User
from .customer import Customer
from .bookable_item import BookableItem
from .booking import Booking, BookingItem, OccupiedDate, BookingLog
from .payment import Payment
from .inventory import InventoryItem
from .audit_log import AuditLog
from .menu_item import MenuItem
from .promo import Promo
