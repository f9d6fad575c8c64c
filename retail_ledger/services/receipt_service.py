"""
Sale receipt PDF generation.
Builds a small receipt from a committed sale, writes it under RECEIPTS_DIR
and returns the public URL it is served from.
"""
import logging
from decimal import Decimal
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A5
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from retail_ledger.config import settings
from retail_ledger.models import Sale

logger = logging.getLogger(__name__)


def build_receipt_pdf(
    organization_name: str,
    sale_number: str,
    sale_date_str: str,
    location_name: Optional[str] = None,
    customer_name: Optional[str] = None,
    payment_method: Optional[str] = None,
    items: Optional[List[Dict[str, Any]]] = None,
    subtotal: Decimal = Decimal("0"),
    discount_amount: Decimal = Decimal("0"),
    tax_amount: Decimal = Decimal("0"),
    final_amount: Decimal = Decimal("0"),
) -> bytes:
    """Build an A5 receipt. Returns PDF bytes."""
    items = items or []
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A5,
        leftMargin=10 * mm,
        rightMargin=10 * mm,
        topMargin=10 * mm,
        bottomMargin=10 * mm,
    )
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        name="ReceiptTitle",
        parent=styles["Heading1"],
        fontSize=13,
        alignment=1,
        spaceAfter=4,
    )
    detail_style = ParagraphStyle(
        name="Detail",
        parent=styles["Normal"],
        fontSize=9,
        spaceAfter=1,
    )
    flow = [
        Paragraph(organization_name or "-", title_style),
        Paragraph(f"Receipt {sale_number}", detail_style),
        Paragraph(f"Date: {sale_date_str}", detail_style),
    ]
    if location_name:
        flow.append(Paragraph(f"Location: {location_name}", detail_style))
    if customer_name:
        flow.append(Paragraph(f"Customer: {customer_name}", detail_style))
    if payment_method:
        flow.append(Paragraph(f"Payment: {payment_method}", detail_style))
    flow.append(Spacer(1, 4 * mm))

    data = [["Item", "Qty", "Price", "Total"]]
    for row in items:
        data.append([
            row.get("name") or "-",
            f"{row.get('quantity', 0):,.2f}",
            f"{row.get('unit_price', 0):,.2f}",
            f"{row.get('total', 0):,.2f}",
        ])
    t_items = Table(data, colWidths=[55 * mm, 20 * mm, 25 * mm, 25 * mm], repeatRows=1)
    t_items.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#E8E8E8")),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("LINEBELOW", (0, 0), (-1, 0), 0.5, colors.grey),
    ]))
    flow.append(t_items)
    flow.append(Spacer(1, 3 * mm))
    flow.append(Paragraph(f"Subtotal: {subtotal:,.2f}", detail_style))
    if discount_amount:
        flow.append(Paragraph(f"Discount: -{discount_amount:,.2f}", detail_style))
    flow.append(Paragraph(f"Tax: {tax_amount:,.2f}", detail_style))
    flow.append(Paragraph(f"<b>Total: {final_amount:,.2f}</b>", detail_style))

    doc.build(flow)
    return buf.getvalue()


class ReceiptService:

    @staticmethod
    def receipt_path(sale: Sale) -> Path:
        return Path(settings.RECEIPTS_DIR) / str(sale.organization_id) / f"{sale.sale_number}.pdf"

    @staticmethod
    def receipt_url(sale: Sale) -> str:
        base = settings.APP_PUBLIC_URL.rstrip("/")
        return f"{base}{settings.RECEIPTS_URL_PATH}/{sale.organization_id}/{sale.sale_number}.pdf"

    @staticmethod
    def generate(sale: Sale, organization_name: str = "") -> str:
        """Render and store the receipt for a committed sale; returns its URL. Raises on I/O errors."""
        items = [
            {
                "name": item.variant.name if item.variant is not None else str(item.variant_id),
                "quantity": Decimal(item.quantity),
                "unit_price": Decimal(item.unit_price),
                "total": Decimal(item.total_amount),
            }
            for item in sale.items
        ]
        sale_date = sale.sale_date or sale.created_at
        pdf = build_receipt_pdf(
            organization_name=organization_name,
            sale_number=sale.sale_number,
            sale_date_str=sale_date.strftime("%Y-%m-%d %H:%M") if sale_date else "",
            location_name=sale.location.name if sale.location is not None else None,
            customer_name=sale.customer.name if sale.customer is not None else None,
            payment_method=sale.payment_method,
            items=items,
            subtotal=Decimal(sale.subtotal),
            discount_amount=Decimal(sale.discount_amount or 0),
            tax_amount=Decimal(sale.tax_amount or 0),
            final_amount=Decimal(sale.final_amount),
        )
        path = ReceiptService.receipt_path(sale)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(pdf)
        logger.info("Receipt for sale %s written to %s", sale.sale_number, path)
        return ReceiptService.receipt_url(sale)
