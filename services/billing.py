"""Bill lifecycle: totals, bill numbering and product stock movements.

Create, update and delete each run as one transaction under a process-wide
lock. Stock is validated for the whole bill before any of it moves, and every
decrement is conditional on ``stock >= requested`` so a product can never go
negative. Any failure rolls the session back, leaving stock and bills as they
were before the call.
"""
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import update

from errors import InsufficientStock, NotFound, ValidationError
from models import Bill, BillItem, BillSequence, Customer, Product, db, utcnow
from validation import MAX_AMOUNT, BillLine, quantize

logger = logging.getLogger(__name__)

_lifecycle_lock = threading.RLock()

HUNDRED = Decimal("100")


# ---------------------------------------------------
# Pure computation
# ---------------------------------------------------
@dataclass
class BillTotals:
    subtotal: Decimal
    gst_amount: Decimal
    total: Decimal
    paid_amount: Decimal
    balance_amount: Decimal


def line_amount(line):
    return quantize(line.price * line.quantity)


def compute_totals(lines, bill_type, gst_percentage, payment_status, paid_amount=Decimal("0")):
    subtotal = quantize(sum((line_amount(line) for line in lines), Decimal("0")))
    if bill_type == "GST":
        gst_amount = quantize(subtotal * Decimal(gst_percentage) / HUNDRED)
    else:
        gst_amount = quantize(0)
    total = subtotal + gst_amount
    if total >= MAX_AMOUNT:
        raise ValidationError(f"Bill total must be less than {MAX_AMOUNT:,}", field="items")

    if payment_status == "Paid":
        paid = total
    elif payment_status == "Unpaid":
        paid = quantize(0)
    else:
        paid = quantize(paid_amount)
        if paid <= 0:
            raise ValidationError(
                "Paid amount must be greater than 0 for partial payment",
                field="paidAmount",
            )
        if paid >= total:
            raise ValidationError(
                "For partial payment, paid amount must be less than the total amount",
                field="paidAmount",
            )

    return BillTotals(
        subtotal=subtotal,
        gst_amount=gst_amount,
        total=total,
        paid_amount=paid,
        balance_amount=total - paid,
    )


def merge_lines(lines):
    """Fold repeated lines for the same product at the same price into one."""
    merged = OrderedDict()
    for line in lines:
        key = (line.product_id, line.price)
        if key in merged:
            merged[key].quantity += line.quantity
        else:
            merged[key] = BillLine(
                product_id=line.product_id,
                quantity=line.quantity,
                price=line.price,
                product_name=line.product_name,
            )
    return list(merged.values())


def format_bill_number(bill_type, when, sequence):
    prefix = "GST" if bill_type == "GST" else "NON"
    return f"{prefix}{when:%y%m}-{sequence:04d}"


def _demand(lines):
    demand = OrderedDict()
    for line in lines:
        demand[line.product_id] = demand.get(line.product_id, 0) + line.quantity
    return demand


# ---------------------------------------------------
# Store helpers (run inside the lifecycle transaction)
# ---------------------------------------------------
def _period_bounds(when):
    start = datetime(when.year, when.month, 1)
    if when.month == 12:
        end = datetime(when.year + 1, 1, 1)
    else:
        end = datetime(when.year, when.month + 1, 1)
    return start, end


def next_bill_number(bill_type, when):
    period = f"{when:%y%m}"
    seq = (
        BillSequence.query
        .filter_by(period=period)
        .with_for_update()
        .first()
    )
    if seq is None:
        # seed from bills already issued this month
        start, end = _period_bounds(when)
        issued = Bill.query.filter(Bill.created_at >= start, Bill.created_at < end).count()
        seq = BillSequence(period=period, last_value=issued)
        db.session.add(seq)

    seq.last_value += 1
    db.session.flush()
    return format_bill_number(bill_type, when, seq.last_value)


def _require_customer(customer_id):
    if db.session.get(Customer, customer_id) is None:
        raise NotFound(f"Customer not found: {customer_id}", customer=customer_id)


def _load_products(lines):
    ids = list(OrderedDict.fromkeys(line.product_id for line in lines))
    products = {
        p.id: p
        for p in Product.query.filter(Product.id.in_(ids)).populate_existing().all()
    }
    for line in lines:
        if line.product_id not in products:
            label = line.product_name or line.product_id
            raise NotFound(f"Product not found: {label}", product=line.product_id)
    return products


def _resolve_lines(lines, products):
    """Snapshot names and fill missing prices from the current catalogue."""
    resolved = []
    for line in lines:
        product = products[line.product_id]
        price = line.price if line.price is not None else quantize(product.price)
        resolved.append(BillLine(
            product_id=line.product_id,
            quantity=line.quantity,
            price=price,
            product_name=product.name,
        ))
    return merge_lines(resolved)


def _check_availability(lines, products):
    for product_id, requested in _demand(lines).items():
        product = products[product_id]
        if product.stock < requested:
            raise InsufficientStock(product.name, product.stock, requested)


def _take_stock(lines):
    for product_id, requested in _demand(lines).items():
        result = db.session.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= requested)
            .values(stock=Product.stock - requested)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            product = db.session.get(Product, product_id, populate_existing=True)
            raise InsufficientStock(product.name, product.stock, requested)


def _return_stock(items):
    returned = OrderedDict()
    for item in items:
        returned[item.product_id] = returned.get(item.product_id, 0) + item.quantity

    for product_id, quantity in returned.items():
        result = db.session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "Product %s no longer exists; %s unit(s) not restored",
                product_id, quantity,
            )


def _build_items(lines):
    return [
        BillItem(
            position=position,
            product_id=line.product_id,
            product_name=line.product_name,
            quantity=line.quantity,
            price=line.price,
            amount=line_amount(line),
        )
        for position, line in enumerate(lines)
    ]


def _apply_payload(bill, payload, lines, totals):
    bill.customer_id = payload.customer_id
    bill.bill_type = payload.bill_type
    bill.bill_category = payload.bill_category
    bill.gst_percentage = payload.gst_percentage if payload.bill_type == "GST" else Decimal("0")
    bill.payment_status = payload.payment_status
    bill.payment_method = payload.payment_method
    bill.subtotal = totals.subtotal
    bill.gst_amount = totals.gst_amount
    bill.total = totals.total
    bill.paid_amount = totals.paid_amount
    bill.balance_amount = totals.balance_amount
    bill.items = _build_items(lines)


def _get_bill(bill_id):
    bill = db.session.get(Bill, bill_id)
    if bill is None:
        raise NotFound("Bill not found", bill=bill_id)
    return bill


# ---------------------------------------------------
# Lifecycle operations
# ---------------------------------------------------
def create_bill(payload, now=None):
    """Issue a new bill and take its items out of stock."""
    now = now or utcnow()
    with _lifecycle_lock:
        try:
            _require_customer(payload.customer_id)
            products = _load_products(payload.items)
            lines = _resolve_lines(payload.items, products)
            _check_availability(lines, products)
            totals = compute_totals(
                lines,
                payload.bill_type,
                payload.gst_percentage,
                payload.payment_status,
                payload.paid_amount,
            )

            _take_stock(lines)

            bill = Bill(
                bill_number=next_bill_number(payload.bill_type, now),
                created_at=now,
                updated_at=now,
            )
            _apply_payload(bill, payload, lines, totals)
            db.session.add(bill)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    logger.info("Bill %s created: total=%s items=%d", bill.bill_number, bill.total, len(lines))
    return bill


def update_bill(bill_id, payload):
    """Replace a bill's contents: return the old items, then take the new ones."""
    with _lifecycle_lock:
        try:
            bill = _get_bill(bill_id)
            # a bill may keep a customer that has since been deleted
            if payload.customer_id != bill.customer_id:
                _require_customer(payload.customer_id)

            _return_stock(bill.items)

            products = _load_products(payload.items)
            lines = _resolve_lines(payload.items, products)
            _check_availability(lines, products)
            totals = compute_totals(
                lines,
                payload.bill_type,
                payload.gst_percentage,
                payload.payment_status,
                payload.paid_amount,
            )

            _take_stock(lines)
            _apply_payload(bill, payload, lines, totals)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    logger.info("Bill %s updated: total=%s items=%d", bill.bill_number, bill.total, len(lines))
    return bill


def delete_bill(bill_id):
    """Remove a bill and put its items back into stock."""
    with _lifecycle_lock:
        try:
            bill = _get_bill(bill_id)
            bill_number = bill.bill_number
            _return_stock(bill.items)
            db.session.delete(bill)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    logger.info("Bill %s deleted", bill_number)
    return bill_number
