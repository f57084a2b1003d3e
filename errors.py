"""Error kinds raised by the billing services and their JSON rendering."""
import logging

from flask import jsonify, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from models import db

logger = logging.getLogger(__name__)


class BillingError(Exception):
    status_code = 500

    def __init__(self, message, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self):
        payload = {"error": self.message}
        payload.update(self.context)
        return payload


class NotFound(BillingError):
    status_code = 404


class Conflict(BillingError):
    status_code = 409


class ValidationError(BillingError):
    status_code = 400

    def __init__(self, message, field=None):
        if field:
            super().__init__(message, field=field)
        else:
            super().__init__(message)
        self.field = field


class InsufficientStock(BillingError):
    status_code = 400

    def __init__(self, product_name, available, requested):
        super().__init__(
            f"Insufficient stock for {product_name}. "
            f"Available: {available}, Requested: {requested}",
            product=product_name,
            available=available,
            requested=requested,
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


def register_error_handlers(app):
    @app.errorhandler(BillingError)
    def handle_billing_error(exc):
        logger.warning("%s %s rejected: %s", request.method, request.path, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(exc):
        db.session.rollback()
        logger.warning("Integrity error on %s %s: %s", request.method, request.path, exc.orig)
        return jsonify({"error": "Record conflicts with existing data"}), Conflict.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        db.session.rollback()
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500
