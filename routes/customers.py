import logging

from flask import Blueprint, jsonify, request
from sqlalchemy import or_

from errors import Conflict, NotFound
from models import db, Customer
from validation import parse_customer

logger = logging.getLogger(__name__)

bp = Blueprint("customers", __name__, url_prefix="/customers")


def _get_customer(customer_id):
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFound("Customer not found", customer=customer_id)
    return customer


def _ensure_unique_aadhar(aadhar_no, exclude_id=None):
    query = Customer.query.filter(Customer.aadhar_no == aadhar_no)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first() is not None:
        raise Conflict("Customer with this Aadhar number already exists", field="aadharNo")


# ========================
# API: LIST / SEARCH CUSTOMERS
# ========================
@bp.route("", methods=["GET"])
def list_customers():
    q = request.args.get("q", "").strip()

    query = Customer.query
    if q:
        q_like = f"%{q}%"
        query = query.filter(
            or_(
                Customer.name.ilike(q_like),
                Customer.phone_no.like(q_like),
                Customer.aadhar_no.like(q_like),
            )
        )

    customers = query.order_by(Customer.created_at.desc()).all()
    return jsonify([c.to_dict() for c in customers])


# ========================
# API: ADD CUSTOMER
# ========================
@bp.route("", methods=["POST"])
def create_customer():
    payload = parse_customer(request.get_json(silent=True))
    _ensure_unique_aadhar(payload.aadhar_no)

    customer = Customer(**payload.as_columns())
    db.session.add(customer)
    db.session.commit()

    logger.info("Customer %s created", customer.id)
    return jsonify(customer.to_dict()), 201


# ========================
# API: CUSTOMER DETAILS
# ========================
@bp.route("/<customer_id>", methods=["GET"])
def get_customer(customer_id):
    return jsonify(_get_customer(customer_id).to_dict())


# Supplied fields are merged onto the stored record
@bp.route("/<customer_id>", methods=["PUT"])
def update_customer(customer_id):
    customer = _get_customer(customer_id)
    payload = parse_customer(request.get_json(silent=True), partial=True)
    if payload.aadhar_no is not None:
        _ensure_unique_aadhar(payload.aadhar_no, exclude_id=customer.id)

    for column, value in payload.as_columns().items():
        setattr(customer, column, value)
    db.session.commit()

    return jsonify(customer.to_dict())


# Bills that reference the customer are left untouched
@bp.route("/<customer_id>", methods=["DELETE"])
def delete_customer(customer_id):
    customer = _get_customer(customer_id)

    db.session.delete(customer)
    db.session.commit()

    logger.info("Customer %s deleted", customer_id)
    return jsonify({"message": "Customer deleted successfully"})
