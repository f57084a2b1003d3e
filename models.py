import uuid
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

PRODUCT_CATEGORIES = ("power-tool", "accessory", "spare-part", "other")
BILL_TYPES = ("GST", "NON-GST")
BILL_CATEGORIES = ("Sales", "Service", "Repair")
PAYMENT_STATUSES = ("Paid", "Unpaid", "Partial")
PAYMENT_METHODS = ("Cash", "Card", "UPI", "Other")


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id():
    return uuid.uuid4().hex


def _money(value):
    return float(value) if value is not None else 0.0


def _iso(value):
    return value.isoformat() if value else None


# ==========================
# Customer Model
# ==========================
class Customer(db.Model):
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(100), nullable=False)
    aadhar_no = db.Column(db.String(12), unique=True, nullable=False, index=True)
    phone_no = db.Column(db.String(10), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self, fields=None):
        data = {
            "id": self.id,
            "name": self.name,
            "aadharNo": self.aadhar_no,
            "phoneNo": self.phone_no,
            "address": self.address,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
        if fields is None:
            return data
        return {k: data[k] for k in ("id",) + tuple(fields)}

    def __repr__(self):
        return f"<Customer {self.name}>"


# ==========================
# Product Model
# ==========================
class Product(db.Model):
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(100), nullable=False, index=True)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    category = db.Column(db.String(20), nullable=False, default="power-tool")
    stock = db.Column(db.Integer, nullable=False, default=0)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "price": _money(self.price),
            "category": self.category,
            "stock": int(self.stock or 0),
            "description": self.description,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Product {self.name}>"


# ==========================
# Bill Model
# ==========================
class Bill(db.Model):
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    bill_number = db.Column(db.String(20), unique=True, nullable=False, index=True)

    # No foreign key: deleting a customer leaves its bills in place
    customer_id = db.Column(db.String(32), nullable=False, index=True)

    bill_type = db.Column(db.String(10), nullable=False)
    bill_category = db.Column(db.String(10), nullable=False)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    gst_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    gst_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    payment_status = db.Column(db.String(10), nullable=False, default="Unpaid")
    payment_method = db.Column(db.String(10), nullable=False, default="Cash")
    paid_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    balance_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship(
        "Customer",
        primaryjoin="foreign(Bill.customer_id) == Customer.id",
        viewonly=True,
    )
    items = db.relationship(
        "BillItem",
        order_by="BillItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dict(self, customer_fields=None):
        data = {
            "id": self.id,
            "billNumber": self.bill_number,
            "customer": self.customer_id,
            "customerId": self.customer_id,
            "billType": self.bill_type,
            "billCategory": self.bill_category,
            "items": [item.to_dict() for item in self.items],
            "subtotal": _money(self.subtotal),
            "gstPercentage": _money(self.gst_percentage),
            "gstAmount": _money(self.gst_amount),
            "total": _money(self.total),
            "paymentStatus": self.payment_status,
            "paymentMethod": self.payment_method,
            "paidAmount": _money(self.paid_amount),
            "balanceAmount": _money(self.balance_amount),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
        if customer_fields is not None:
            customer = self.customer
            data["customer"] = customer.to_dict(customer_fields) if customer else None
        return data

    def __repr__(self):
        return f"<Bill {self.bill_number}>"


# ==========================
# Bill Item Model
# ==========================
class BillItem(db.Model):
    id = db.Column(db.Integer, primary_key=True)

    bill_id = db.Column(
        db.String(32),
        db.ForeignKey("bill.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = db.Column(db.Integer, nullable=False, default=0)

    # Products may be deleted later; the name is kept on the line
    product_id = db.Column(db.String(32), nullable=False, index=True)
    product_name = db.Column(db.String(100), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)

    def to_dict(self):
        return {
            "product": self.product_id,
            "productName": self.product_name,
            "stock": self.quantity,
            "quantity": self.quantity,
            "price": _money(self.price),
            "amount": _money(self.amount),
        }

    def __repr__(self):
        return f"<BillItem bill={self.bill_id} product={self.product_id}>"


# ==========================
# Bill Number Sequence
# ==========================
class BillSequence(db.Model):
    # period key, e.g. "2610" for October 2026
    period = db.Column(db.String(4), primary_key=True)
    last_value = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<BillSequence {self.period}={self.last_value}>"
