import io
import logging

import openpyxl
from flask import Blueprint, jsonify, request, send_file
from sqlalchemy import func

from errors import NotFound, ValidationError
from models import db, Product, PRODUCT_CATEGORIES
from validation import parse_product

logger = logging.getLogger(__name__)

bp = Blueprint("product", __name__, url_prefix="/products")

SORT_COLUMNS = {
    "name": Product.name,
    "price": Product.price,
    "stock": Product.stock,
}

IMPORT_COLUMNS = {
    "name": ["name", "product", "product name", "item"],
    "price": ["price", "rate", "amount"],
    "stock": ["stock", "qty", "quantity"],
    "category": ["category"],
    "description": ["description", "details"],
}


# ---------- Helpers ----------
def _get_product(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found", product=product_id)
    return product


# ---------- APIs ----------
@bp.route("", methods=["GET"])
def list_products():
    q = request.args.get("q", "").strip()
    sort = request.args.get("sort", "name")

    query = Product.query
    if q:
        query = query.filter(Product.name.ilike(f"%{q}%"))

    desc = False
    if sort.startswith("-"):
        desc = True
        sort = sort[1:]

    order_col = SORT_COLUMNS.get(sort, Product.name)
    if desc:
        order_col = order_col.desc()

    products = query.order_by(order_col).all()
    return jsonify([p.to_dict() for p in products])


@bp.route("", methods=["POST"])
def create_product():
    payload = parse_product(request.get_json(silent=True))

    product = Product(**payload.as_columns())
    db.session.add(product)
    db.session.commit()

    logger.info("Product %s created with stock %d", product.id, product.stock)
    return jsonify(product.to_dict()), 201


@bp.route("/<product_id>", methods=["GET"])
def get_product(product_id):
    return jsonify(_get_product(product_id).to_dict())


@bp.route("/<product_id>", methods=["PUT"])
def update_product(product_id):
    product = _get_product(product_id)
    payload = parse_product(request.get_json(silent=True), partial=True)

    for column, value in payload.as_columns().items():
        setattr(product, column, value)
    db.session.commit()

    return jsonify(product.to_dict())


# Bills keep the product name on each line, so nothing cascades
@bp.route("/<product_id>", methods=["DELETE"])
def delete_product(product_id):
    product = _get_product(product_id)

    db.session.delete(product)
    db.session.commit()

    logger.info("Product %s deleted", product_id)
    return jsonify({"message": "Product deleted successfully"})


# ---------- Excel import ----------
def _find_columns(headers):
    columns = {}
    for key, names in IMPORT_COLUMNS.items():
        for name in names:
            if name in headers:
                columns[key] = headers.index(name)
                break
    return columns


def _row_to_fields(row, columns):
    fields = {}
    for key, index in columns.items():
        value = row[index] if index < len(row) else None
        if value is None or str(value).strip() == "":
            continue
        fields[key] = value.strip() if isinstance(value, str) else value
    if "category" in fields:
        fields["category"] = str(fields["category"]).lower().replace(" ", "-")
    return fields


@bp.route("/import", methods=["POST"])
def import_products():
    if "file" not in request.files:
        raise ValidationError("No file uploaded", field="file")

    file = request.files["file"]
    if not (file.filename or "").lower().endswith(".xlsx"):
        raise ValidationError("Only .xlsx files supported", field="file")

    try:
        workbook = openpyxl.load_workbook(io.BytesIO(file.read()), read_only=True)
    except Exception:
        logger.warning("Unreadable product import file %s", file.filename)
        raise ValidationError("File is not a readable Excel workbook", field="file")

    try:
        rows = list(workbook.active.iter_rows(values_only=True))
    finally:
        workbook.close()
    if not rows:
        raise ValidationError("Excel file is empty", field="file")

    headers = [str(h).strip().lower() if h is not None else "" for h in rows[0]]
    columns = _find_columns(headers)
    if "name" not in columns:
        raise ValidationError("Product name column not found", field="file")

    added = 0
    updated = 0
    errors = []

    for line_no, row in enumerate(rows[1:], start=2):
        fields = _row_to_fields(row, columns)
        if "name" not in fields:
            continue

        name = str(fields["name"])
        existing = Product.query.filter(func.lower(Product.name) == name.lower()).first()
        if existing:
            fields.pop("name")
        try:
            payload = parse_product(fields, partial=existing is not None)
        except ValidationError as exc:
            errors.append({"row": line_no, "error": exc.message})
            continue

        if existing:
            for column, value in payload.as_columns().items():
                setattr(existing, column, value)
            updated += 1
        else:
            db.session.add(Product(**payload.as_columns()))
            added += 1

    db.session.commit()
    logger.info("Product import: %d added, %d updated, %d skipped", added, updated, len(errors))

    return jsonify({
        "message": "Import complete",
        "added": added,
        "updated": updated,
        "errors": errors,
    })


@bp.route("/template", methods=["GET"])
def download_template():
    workbook = openpyxl.Workbook()
    sheet = workbook.active

    sheet.append(["name", "category", "price", "stock", "description"])
    sheet.append(["Sample Drill", PRODUCT_CATEGORIES[0], 2499, 10, "13mm impact drill"])

    buffer = io.BytesIO()
    workbook.save(buffer)
    buffer.seek(0)

    return send_file(
        buffer,
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name="product_import_template.xlsx",
    )
