from flask import Blueprint, current_app, jsonify, request

from services.queries import LIST_CUSTOMER_FIELDS, dashboard_stats

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/dashboard")


# -------- Dashboard Stats API --------
@dashboard_bp.route("/stats")
def stats():
    range_name = request.args.get("range", "week")

    result = dashboard_stats(
        range_name,
        recent_limit=current_app.config["RECENT_BILLS_LIMIT"],
        low_stock_threshold=current_app.config["LOW_STOCK_THRESHOLD"],
    )
    result["recentBills"] = [
        b.to_dict(customer_fields=LIST_CUSTOMER_FIELDS) for b in result["recentBills"]
    ]
    result["lowStock"] = [
        {"id": p.id, "name": p.name, "stock": p.stock} for p in result["lowStock"]
    ]
    return jsonify(result)
