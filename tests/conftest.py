from decimal import Decimal

import pytest
from sqlalchemy.pool import StaticPool

from app import create_app
from models import db, Customer, Product
from validation import parse_bill


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "SQLALCHEMY_ENGINE_OPTIONS": {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        },
        "LOG_LEVEL": "WARNING",
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield
        db.session.remove()


@pytest.fixture
def customer(ctx):
    c = Customer(
        name="Ravi Kumar",
        aadhar_no="123456789012",
        phone_no="9876543210",
        address="12 MG Road, Coimbatore",
    )
    db.session.add(c)
    db.session.commit()
    return c


@pytest.fixture
def drill(ctx):
    p = Product(name="Impact Drill", price=Decimal("100.00"), category="power-tool", stock=10)
    db.session.add(p)
    db.session.commit()
    return p


@pytest.fixture
def blade(ctx):
    p = Product(name="Cutting Blade", price=Decimal("250.00"), category="accessory", stock=5)
    db.session.add(p)
    db.session.commit()
    return p


def bill_data(customer_id, items, **overrides):
    """Raw JSON body for a bill; items are (product_id, quantity, price) tuples."""
    data = {
        "customer": customer_id,
        "billType": "NON-GST",
        "billCategory": "Sales",
        "items": [
            {"product": pid, "stock": qty, "price": price}
            for pid, qty, price in items
        ],
        "paymentStatus": "Unpaid",
        "paymentMethod": "Cash",
    }
    data.update(overrides)
    return data


def bill_payload(customer_id, items, **overrides):
    return parse_bill(bill_data(customer_id, items, **overrides))


def stock_of(product_id):
    return db.session.get(Product, product_id, populate_existing=True).stock
