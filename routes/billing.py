# routes/billing.py
from flask import Blueprint, current_app, jsonify, request, send_file

from services import billing, queries
from services.invoice_pdf import build_invoice_pdf
from validation import parse_bill, parse_bill_filters

bp = Blueprint("billing", __name__, url_prefix="/bills")


def _payload():
    return parse_bill(
        request.get_json(silent=True),
        default_gst_percentage=current_app.config["DEFAULT_GST_PERCENTAGE"],
    )


# ---------------- List bills ----------------
@bp.route("", methods=["GET"])
def list_bills():
    filters = parse_bill_filters(request.args)
    bills = queries.list_bills(**filters)
    return jsonify([b.to_dict(customer_fields=queries.LIST_CUSTOMER_FIELDS) for b in bills])


# ---------------- Create bill ----------------
@bp.route("", methods=["POST"])
def create_bill():
    bill = billing.create_bill(_payload())
    return jsonify(bill.to_dict(customer_fields=queries.DETAIL_CUSTOMER_FIELDS)), 201


# ---------------- View / edit / delete ----------------
@bp.route("/<bill_id>", methods=["GET"])
def get_bill(bill_id):
    bill = queries.get_bill(bill_id)
    return jsonify(bill.to_dict(customer_fields=queries.DETAIL_CUSTOMER_FIELDS))


@bp.route("/<bill_id>", methods=["PUT"])
def update_bill(bill_id):
    bill = billing.update_bill(bill_id, _payload())
    return jsonify(bill.to_dict(customer_fields=queries.DETAIL_CUSTOMER_FIELDS))


@bp.route("/<bill_id>", methods=["DELETE"])
def delete_bill(bill_id):
    bill_number = billing.delete_bill(bill_id)
    return jsonify({"message": "Bill deleted successfully", "billNumber": bill_number})


# ---------------- Invoice PDF ----------------
@bp.route("/<bill_id>/pdf", methods=["GET"])
def invoice_pdf(bill_id):
    bill = queries.get_bill(bill_id)
    buffer = build_invoice_pdf(bill)
    return send_file(
        buffer,
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"invoice_{bill.bill_number}.pdf",
    )
