from decimal import Decimal, ROUND_HALF_UP
from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas

SHOP_TITLE = "Tax Invoice"


def format_currency(amount):
    """Rupee amount with Indian digit grouping, e.g. Rs. 1,23,456.78"""
    value = Decimal(str(amount or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    whole, fraction = f"{abs(value):.2f}".split(".")

    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])

    return f"{sign}Rs. {whole}.{fraction}"


def build_invoice_pdf(bill):
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    # Title
    title = SHOP_TITLE if bill.bill_type == "GST" else "Invoice"
    c.setFont("Helvetica-Bold", 18)
    c.drawCentredString(width / 2, height - inch, title)

    # Bill meta
    customer = bill.customer
    c.setFont("Helvetica", 11)
    y = height - 1.5 * inch
    meta = [
        f"Bill No: {bill.bill_number}",
        f"Date: {bill.created_at.strftime('%d-%m-%Y %H:%M')}",
        f"Category: {bill.bill_category}",
        f"Customer: {customer.name if customer else 'Unknown customer'}",
    ]
    if customer:
        meta.append(f"Phone: {customer.phone_no}")
        meta.append(f"Address: {customer.address}")
    for line in meta:
        c.drawString(inch, y, line)
        y -= 0.25 * inch

    # Table header
    y -= 0.15 * inch
    c.setFont("Helvetica-Bold", 10)
    c.drawString(inch, y, "Item")
    c.drawRightString(width - 3.2 * inch, y, "Qty")
    c.drawRightString(width - 2.2 * inch, y, "Price")
    c.drawRightString(width - inch, y, "Amount")
    y -= 0.18 * inch
    c.line(inch, y, width - inch, y)
    y -= 0.22 * inch

    c.setFont("Helvetica", 10)
    for item in bill.items:
        c.drawString(inch, y, item.product_name[:40])
        c.drawRightString(width - 3.2 * inch, y, str(item.quantity))
        c.drawRightString(width - 2.2 * inch, y, format_currency(item.price))
        c.drawRightString(width - inch, y, format_currency(item.amount))
        y -= 0.25 * inch
        if y < 2 * inch:
            c.showPage()
            c.setFont("Helvetica", 10)
            y = height - inch

    y -= 0.05 * inch
    c.line(inch, y, width - inch, y)
    y -= 0.25 * inch

    totals = [("Subtotal:", bill.subtotal)]
    if bill.bill_type == "GST":
        totals.append((f"GST ({float(bill.gst_percentage):g}%):", bill.gst_amount))
    for label, amount in totals:
        c.drawString(width - 3.5 * inch, y, label)
        c.drawRightString(width - inch, y, format_currency(amount))
        y -= 0.22 * inch

    c.setFont("Helvetica-Bold", 12)
    c.drawString(width - 3.5 * inch, y, "Total:")
    c.drawRightString(width - inch, y, format_currency(bill.total))
    y -= 0.3 * inch

    c.setFont("Helvetica", 10)
    c.drawString(width - 3.5 * inch, y, f"Paid ({bill.payment_method}):")
    c.drawRightString(width - inch, y, format_currency(bill.paid_amount))
    y -= 0.22 * inch
    c.drawString(width - 3.5 * inch, y, f"Balance ({bill.payment_status}):")
    c.drawRightString(width - inch, y, format_currency(bill.balance_amount))

    c.showPage()
    c.save()
    buffer.seek(0)
    return buffer
