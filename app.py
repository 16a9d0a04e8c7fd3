import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from config import Config
from routes import (
    health_bp, bookings_bp, inventory_bp, rooms_bp, payments_bp,
    webhooks_bp, customers_bp, users_bp, audit_bp, menu_bp, promos_bp,
)

from models import db
from flask_migrate import Migrate
from services.errors import ServiceError
from utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    setup_logging(app)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(bookings_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(rooms_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(webhooks_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(audit_bp)
    app.register_blueprint(menu_bp)
    app.register_blueprint(promos_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    register_error_handlers(app)

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        # API only, nothing to load
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def _service_error(err):
        db.session.rollback()
        if err.status_code >= 500:
            logger.error("%s: %s", type(err).__name__, err.message)
        body = {"success": False, "error": err.message}
        if err.details is not None:
            body["details"] = err.details
        return jsonify(body), err.status_code

    @app.errorhandler(HTTPException)
    def _http_error(err):
        return jsonify(success=False, error=err.description), err.code

    @app.errorhandler(Exception)
    def _unhandled(err):
        db.session.rollback()
        logger.exception("Unhandled error")
        return jsonify(success=False, error="Internal server error"), 500


#-------------------------
import click
from models.user import User


def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to admin by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        if user.role != "admin":
            user.role = "admin"
            db.session.commit()

        click.echo(f"{user.email} promoted to admin")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002, debug=app.config.get("DEBUG", False))
