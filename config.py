import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as reservision.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "reservision.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Booking references look like BK2026021500042 (prefix, date, booking id)
    BOOKING_REFERENCE_PREFIX = os.getenv("BOOKING_REFERENCE_PREFIX", "BK")
    PAYMENT_REFERENCE_PREFIX = os.getenv("PAYMENT_REFERENCE_PREFIX", "PAY")
    DEFAULT_COUNTRY = os.getenv("DEFAULT_COUNTRY", "Philippines")
    DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "PHP")
    BOOKINGS_LIST_MAX = 500

    # Inventory: reject over-removal instead of clamping at zero
    INVENTORY_STRICT_REMOVE = os.getenv("INVENTORY_STRICT_REMOVE", "false").lower() == "true"

    # PayMongo
    PAYMONGO_SECRET_KEY = os.getenv("PAYMONGO_SECRET_KEY")
    PAYMONGO_API_URL = os.getenv("PAYMONGO_API_URL", "https://api.paymongo.com/v1")

    # Xendit
    XENDIT_SECRET_KEY = os.getenv("XENDIT_SECRET_KEY")
    XENDIT_API_URL = os.getenv("XENDIT_API_URL", "https://api.xendit.co/v2/invoices")
    XENDIT_WEBHOOK_TOKEN = os.getenv("XENDIT_WEBHOOK_TOKEN")

    PAYMENT_HTTP_TIMEOUT = int(os.getenv("PAYMENT_HTTP_TIMEOUT", "15"))

    # Where gateways send the guest back after checkout
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # Email (SMTP, works with Brevo / Resend SMTP relays)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE")

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Basic app settings
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SMTP_HOST = None
    LOG_FILE = None
    PAYMONGO_SECRET_KEY = "sk_test_paymongo"
    XENDIT_SECRET_KEY = "xnd_development_test"
    XENDIT_WEBHOOK_TOKEN = "test-callback-token"
    BCRYPT_ROUNDS = 4
