from datetime import datetime
from decimal import Decimal

import pytest

from conftest import bill_payload
from errors import NotFound, ValidationError
from services import billing, queries


@pytest.fixture
def history(customer, drill, blade):
    """Four bills spread over October 2026."""
    specs = [
        (datetime(2026, 10, 1, 9, 0), {"billCategory": "Sales"}, [(drill.id, 1, "100")]),
        (datetime(2026, 10, 10, 9, 0), {"billCategory": "Service", "billType": "GST", "gstPercentage": 10}, [(drill.id, 2, "100")]),
        (datetime(2026, 10, 15, 18, 30), {"billCategory": "Repair"}, [(blade.id, 1, "250")]),
        (datetime(2026, 10, 17, 8, 0), {"billCategory": "Sales", "billType": "GST", "gstPercentage": 18}, [(blade.id, 2, "250")]),
    ]
    return [
        billing.create_bill(bill_payload(customer.id, items, **extra), now=when)
        for when, extra, items in specs
    ]


def test_list_bills_newest_first(history):
    bills = queries.list_bills()
    assert [b.bill_number for b in bills] == [
        "GST2610-0004", "NON2610-0003", "GST2610-0002", "NON2610-0001",
    ]


def test_list_bills_date_range_is_inclusive(history):
    bills = queries.list_bills(
        start=datetime(2026, 10, 10, 9, 0),
        end=datetime(2026, 10, 15, 18, 30),
    )
    assert [b.bill_number for b in bills] == ["NON2610-0003", "GST2610-0002"]


def test_list_bills_by_type_and_category(history):
    assert [b.bill_number for b in queries.list_bills(bill_type="GST")] == [
        "GST2610-0004", "GST2610-0002",
    ]
    assert [b.bill_number for b in queries.list_bills(bill_category="Sales", bill_type="NON-GST")] == [
        "NON2610-0001",
    ]


def test_list_resolves_customer_fields(history, customer):
    data = queries.list_bills()[0].to_dict(customer_fields=queries.LIST_CUSTOMER_FIELDS)
    assert data["customer"] == {"id": customer.id, "name": "Ravi Kumar", "phoneNo": "9876543210"}


def test_get_bill_not_found(ctx):
    with pytest.raises(NotFound):
        queries.get_bill("missing")


def test_dashboard_week(history):
    stats = queries.dashboard_stats("week", now=datetime(2026, 10, 17, 12, 0))

    # window starts 2026-10-10 12:00, so the 10th-at-9 bill is out
    assert stats["totalBills"] == 2
    assert stats["byCategory"] == {"Sales": 1, "Service": 0, "Repair": 1}
    assert stats["byType"] == {"GST": 1, "NON-GST": 1}
    assert stats["totalRevenue"] == float(Decimal("250.00") + Decimal("590.00"))
    assert [b.bill_number for b in stats["recentBills"]] == ["GST2610-0004", "NON2610-0003"]


def test_dashboard_month_partitions_sum_to_total(history):
    stats = queries.dashboard_stats("month", now=datetime(2026, 10, 17, 12, 0))

    assert stats["totalBills"] == 4
    assert sum(stats["byCategory"].values()) == 4
    assert sum(stats["byType"].values()) == 4
    assert stats["totalRevenue"] == pytest.approx(sum(float(b.total) for b in history))


def test_dashboard_today_starts_at_midnight(history):
    stats = queries.dashboard_stats("today", now=datetime(2026, 10, 17, 12, 0))
    assert stats["totalBills"] == 1
    assert stats["startDate"] == "2026-10-17T00:00:00"


def test_dashboard_recent_limit(history):
    stats = queries.dashboard_stats("month", now=datetime(2026, 10, 17, 12, 0), recent_limit=3)
    assert len(stats["recentBills"]) == 3


def test_dashboard_low_stock(history, drill, blade):
    # drill: 10 - 3 = 7, blade: 5 - 3 = 2
    stats = queries.dashboard_stats("week", now=datetime(2026, 10, 17, 12, 0), low_stock_threshold=5)
    assert [p.name for p in stats["lowStock"]] == ["Cutting Blade"]


def test_dashboard_rejects_unknown_range(ctx):
    with pytest.raises(ValidationError):
        queries.dashboard_stats("year")


def test_summarize_empty():
    stats = queries.summarize_bills([])
    assert stats["totalBills"] == 0
    assert stats["totalRevenue"] == 0
    assert stats["recentBills"] == []
