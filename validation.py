"""Parse raw request JSON into checked payloads.

Every public ``parse_*`` function either returns a payload whose values are
already coerced (strings stripped, money as ``Decimal``, counts as ``int``)
or raises :class:`errors.ValidationError` naming the offending field.
"""
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, time, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional

from errors import ValidationError
from models import (
    BILL_CATEGORIES,
    BILL_TYPES,
    PAYMENT_METHODS,
    PAYMENT_STATUSES,
    PRODUCT_CATEGORIES,
)

AADHAR_REGEX = re.compile(r"^\d{12}$")
PHONE_REGEX = re.compile(r"^\d{10}$")

TWO_PLACES = Decimal("0.01")

# Numeric(12, 2) columns hold at most 9,999,999,999.99
MAX_AMOUNT = Decimal("10") ** 10
MAX_COUNT = 10 ** 9


def quantize(value):
    try:
        return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError("Amount is out of range")


# ---------- Field helpers ----------
def _text(data, key, required=True):
    value = data.get(key)
    if value is None or str(value).strip() == "":
        if required:
            raise ValidationError(f"{key} is required", field=key)
        return None
    return str(value).strip()


def to_decimal(value, key):
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number", field=key)
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{key} must be a number", field=key)
    if not number.is_finite():
        raise ValidationError(f"{key} must be a number", field=key)
    return number


def to_int(value, key):
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a whole number", field=key)
    number = to_decimal(value, key)
    if number != number.to_integral_value():
        raise ValidationError(f"{key} must be a whole number", field=key)
    if abs(number) > MAX_COUNT:
        raise ValidationError(f"{key} must not exceed {MAX_COUNT:,}", field=key)
    return int(number)


def to_money(value, key, field_name=None):
    """Coerce a non-negative amount that fits a money column, rounded to paise."""
    field_name = field_name or key
    number = to_decimal(value, key)
    if number < 0:
        raise ValidationError(f"{key} cannot be negative", field=field_name)
    if number >= MAX_AMOUNT:
        raise ValidationError(f"{key} must be less than {MAX_AMOUNT:,}", field=field_name)
    return quantize(number)


def _choice(value, key, choices):
    if value not in choices:
        raise ValidationError(
            f"{key} must be one of: {', '.join(choices)}", field=key
        )
    return value


def _reference(value, key):
    if isinstance(value, dict):
        value = value.get("id") or value.get("_id")
    if value is None or str(value).strip() == "":
        raise ValidationError(f"{key} is required", field=key)
    return str(value).strip()


def _require_object(data):
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


# ==========================
# Customer
# ==========================
@dataclass
class CustomerPayload:
    name: Optional[str] = None
    aadhar_no: Optional[str] = None
    phone_no: Optional[str] = None
    address: Optional[str] = None

    def as_columns(self):
        return {k: v for k, v in asdict(self).items() if v is not None}


def parse_customer(data, partial=False):
    data = _require_object(data)
    payload = CustomerPayload()

    if not partial or "name" in data:
        payload.name = _text(data, "name")
    if not partial or "address" in data:
        payload.address = _text(data, "address")
    if not partial or "aadharNo" in data:
        aadhar = _text(data, "aadharNo")
        if not AADHAR_REGEX.match(aadhar):
            raise ValidationError("aadharNo must be exactly 12 digits", field="aadharNo")
        payload.aadhar_no = aadhar
    if not partial or "phoneNo" in data:
        phone = _text(data, "phoneNo")
        if not PHONE_REGEX.match(phone):
            raise ValidationError("phoneNo must be exactly 10 digits", field="phoneNo")
        payload.phone_no = phone

    return payload


# ==========================
# Product
# ==========================
@dataclass
class ProductPayload:
    name: Optional[str] = None
    price: Optional[Decimal] = None
    category: Optional[str] = None
    stock: Optional[int] = None
    description: Optional[str] = None

    def as_columns(self):
        return {k: v for k, v in asdict(self).items() if v is not None}


def parse_product(data, partial=False):
    data = _require_object(data)
    payload = ProductPayload()

    if not partial or "name" in data:
        payload.name = _text(data, "name")

    if not partial or "price" in data:
        if data.get("price") in (None, ""):
            raise ValidationError("price is required", field="price")
        payload.price = to_money(data["price"], "price")

    if "stock" in data and data["stock"] not in (None, ""):
        stock = to_int(data["stock"], "stock")
        if stock < 0:
            raise ValidationError("stock cannot be negative", field="stock")
        payload.stock = stock
    elif not partial:
        payload.stock = 0

    if "category" in data and data["category"] not in (None, ""):
        payload.category = _choice(data["category"], "category", PRODUCT_CATEGORIES)
    elif not partial:
        payload.category = "power-tool"

    if "description" in data:
        payload.description = str(data.get("description") or "").strip()

    return payload


# ==========================
# Bill
# ==========================
@dataclass
class BillLine:
    product_id: str
    quantity: int
    price: Optional[Decimal] = None
    product_name: Optional[str] = None


@dataclass
class BillPayload:
    customer_id: str
    bill_type: str
    bill_category: str
    items: List[BillLine] = field(default_factory=list)
    gst_percentage: Decimal = Decimal("0")
    payment_status: str = "Unpaid"
    payment_method: str = "Cash"
    paid_amount: Decimal = Decimal("0")


def _parse_line(raw, index):
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{index}] must be an object", field="items")

    product_id = _reference(raw.get("product"), f"items[{index}].product")

    # The composing screen sends the consumed quantity as "stock"
    raw_qty = raw.get("quantity", raw.get("stock"))
    if raw_qty in (None, ""):
        raise ValidationError(f"items[{index}].quantity is required", field="items")
    quantity = to_int(raw_qty, f"items[{index}].quantity")
    if quantity < 1:
        raise ValidationError(f"items[{index}].quantity must be at least 1", field="items")

    price = None
    if raw.get("price") not in (None, ""):
        price = to_money(raw["price"], f"items[{index}].price", field_name="items")

    name = raw.get("productName")
    return BillLine(
        product_id=product_id,
        quantity=quantity,
        price=price,
        product_name=str(name).strip() if name else None,
    )


def parse_bill(data, default_gst_percentage=0):
    data = _require_object(data)

    customer_id = _reference(data.get("customer"), "customer")
    bill_type = _choice(data.get("billType"), "billType", BILL_TYPES)
    bill_category = _choice(data.get("billCategory"), "billCategory", BILL_CATEGORIES)
    payment_status = _choice(
        data.get("paymentStatus") or "Unpaid", "paymentStatus", PAYMENT_STATUSES
    )
    payment_method = _choice(
        data.get("paymentMethod") or "Cash", "paymentMethod", PAYMENT_METHODS
    )

    raw_items = data.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("At least one item is required", field="items")
    items = [_parse_line(raw, i) for i, raw in enumerate(raw_items)]

    gst_percentage = Decimal("0")
    if bill_type == "GST":
        raw_gst = data.get("gstPercentage")
        if raw_gst in (None, ""):
            gst_percentage = Decimal(str(default_gst_percentage))
        else:
            gst_percentage = to_decimal(raw_gst, "gstPercentage")
        if gst_percentage < 0 or gst_percentage > 100:
            raise ValidationError("gstPercentage must be between 0 and 100", field="gstPercentage")
        # stored as Numeric(5, 2); totals must use the stored rate
        gst_percentage = quantize(gst_percentage)

    paid_amount = Decimal("0")
    if payment_status == "Partial":
        raw_paid = data.get("paidAmount")
        if raw_paid in (None, ""):
            raise ValidationError("paidAmount is required for partial payment", field="paidAmount")
        paid_amount = to_money(raw_paid, "paidAmount")

    return BillPayload(
        customer_id=customer_id,
        bill_type=bill_type,
        bill_category=bill_category,
        items=items,
        gst_percentage=gst_percentage,
        payment_status=payment_status,
        payment_method=payment_method,
        paid_amount=paid_amount,
    )


# ==========================
# Filters
# ==========================
def parse_datetime(value, key, end_of_day=False):
    """Parse an ISO date or datetime into naive UTC.

    A bare date used as the end of a range covers that whole day.
    """
    if value in (None, ""):
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 date", field=key)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    if end_of_day and len(text) == 10:
        parsed = datetime.combine(parsed.date(), time.max)
    return parsed


def parse_bill_filters(args):
    bill_type = args.get("billType") or None
    bill_category = args.get("billCategory") or None
    if bill_type is not None:
        _choice(bill_type, "billType", BILL_TYPES)
    if bill_category is not None:
        _choice(bill_category, "billCategory", BILL_CATEGORIES)

    start = parse_datetime(args.get("startDate"), "startDate")
    end = parse_datetime(args.get("endDate"), "endDate", end_of_day=True)
    if start and end and start > end:
        raise ValidationError("startDate must not be after endDate", field="startDate")

    return {
        "bill_type": bill_type,
        "bill_category": bill_category,
        "start": start,
        "end": end,
    }
