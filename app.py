import logging

from flask import Flask, jsonify

from config import Config
from errors import register_error_handlers

# Models
from models import db, Customer, Product, Bill, BillItem, BillSequence  # noqa: F401

# Blueprints
from routes import billing, customers
from routes.product import bp as product_bp
from routes.dashboard import dashboard_bp

logger = logging.getLogger(__name__)


# ==========================
# App Initialization
# ==========================
def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # ==========================
    # Extensions
    # ==========================
    db.init_app(app)

    # ==========================
    # Blueprints Registration
    # ==========================
    app.register_blueprint(customers.bp)
    app.register_blueprint(product_bp)
    app.register_blueprint(billing.bp)
    app.register_blueprint(dashboard_bp)

    register_error_handlers(app)

    @app.route("/")
    def index():
        return jsonify({"message": "Billing backend running"})

    with app.app_context():
        db.create_all()
        logger.info("Database ready: %s", db.engine.url.render_as_string(hide_password=True))

    return app


# ==========================
# Run App
# ==========================
if __name__ == "__main__":
    create_app().run(debug=False)
