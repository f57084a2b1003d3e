"""Read side: bill lookups, filtered listings and dashboard aggregates."""
from datetime import datetime, time, timedelta
from decimal import Decimal

from errors import NotFound, ValidationError
from models import BILL_CATEGORIES, BILL_TYPES, Bill, Product, db, utcnow

LIST_CUSTOMER_FIELDS = ("name", "phoneNo")
DETAIL_CUSTOMER_FIELDS = ("name", "aadharNo", "address", "phoneNo")

DASHBOARD_RANGES = ("today", "week", "month")


def get_bill(bill_id):
    bill = db.session.get(Bill, bill_id)
    if bill is None:
        raise NotFound("Bill not found", bill=bill_id)
    return bill


def list_bills(bill_type=None, bill_category=None, start=None, end=None):
    """Bills matching every given filter, newest first. Date bounds are inclusive."""
    query = Bill.query
    if bill_type:
        query = query.filter(Bill.bill_type == bill_type)
    if bill_category:
        query = query.filter(Bill.bill_category == bill_category)
    if start is not None:
        query = query.filter(Bill.created_at >= start)
    if end is not None:
        query = query.filter(Bill.created_at <= end)
    return query.order_by(Bill.created_at.desc(), Bill.bill_number.desc()).all()


def dashboard_window(range_name, now=None):
    now = now or utcnow()
    if range_name == "today":
        start = datetime.combine(now.date(), time.min)
    elif range_name == "week":
        start = now - timedelta(days=7)
    elif range_name == "month":
        start = now - timedelta(days=30)
    else:
        raise ValidationError(
            f"range must be one of: {', '.join(DASHBOARD_RANGES)}", field="range"
        )
    return start, now


def summarize_bills(bills, recent_limit=5):
    """Counts and revenue over an already fetched, newest-first list of bills."""
    by_category = {category: 0 for category in BILL_CATEGORIES}
    by_type = {bill_type: 0 for bill_type in BILL_TYPES}
    revenue = Decimal("0")

    for bill in bills:
        by_category[bill.bill_category] = by_category.get(bill.bill_category, 0) + 1
        by_type[bill.bill_type] = by_type.get(bill.bill_type, 0) + 1
        revenue += bill.total or 0

    return {
        "totalBills": len(bills),
        "byCategory": by_category,
        "byType": by_type,
        "totalRevenue": float(revenue),
        "recentBills": bills[:recent_limit],
    }


def low_stock_products(threshold):
    return (
        Product.query
        .filter(Product.stock <= threshold)
        .order_by(Product.stock.asc(), Product.name)
        .all()
    )


def dashboard_stats(range_name="week", now=None, recent_limit=5, low_stock_threshold=5):
    start, end = dashboard_window(range_name, now)
    bills = list_bills(start=start, end=end)

    stats = summarize_bills(bills, recent_limit=recent_limit)
    stats["range"] = range_name
    stats["startDate"] = start.isoformat()
    stats["endDate"] = end.isoformat()
    stats["lowStock"] = low_stock_products(low_stock_threshold)
    return stats
