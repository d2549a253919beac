"""
Sales report: one row per order item, filtered by order date, order status
and payment method, plus the spreadsheet export of exactly those rows.
"""
import io
import logging
from datetime import datetime, time, timedelta

import pandas as pd
from openpyxl.utils import get_column_letter

import repositories
from errors import ValidationError
from labels import payment_label, report_status_label
from models import utcnow

logger = logging.getLogger(__name__)

SHEET_NAME = "Relatório de Vendas"
TOP_PRODUCTS = 5
MIN_COLUMN_WIDTH = 15

EXPORT_COLUMNS = [
    "ID do Pedido",
    "Data da Venda",
    "Hora da Venda",
    "Produto",
    "Categoria",
    "Cliente",
    "Telefone",
    "Quantidade",
    "Preço Unitário",
    "Valor Total",
    "Método de Pagamento",
    "Status do Pedido",
]


def default_period(today=None):
    today = today or utcnow().date()
    return today.replace(day=1), today


def parse_day(value, fallback):
    if not value:
        return fallback
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Data inválida: {value}")


def period_bounds(start, end):
    """``[start T00:00:00, day after end T00:00:00)``, so the whole last day counts."""
    return (
        datetime.combine(start, time(0, 0, 0)),
        datetime.combine(end + timedelta(days=1), time(0, 0, 0)),
    )


def build_rows(items):
    rows = []
    for item in items:
        order = item.order
        product = item.product
        rows.append({
            "id": item.id,
            "order_id": order.id,
            "product_name": product.name,
            "customer_name": order.customer_name,
            "customer_phone": order.customer_phone,
            "quantity": item.quantity,
            "unit_price": item.price,
            "total_price": round(item.price * item.quantity, 2),
            "payment_method": order.payment_method,
            "order_status": order.status,
            "sale_date": order.created_at,
            "category_name": product.category_name,
        })
    return rows


def fetch_rows(start, end):
    lo, hi = period_bounds(start, end)
    return build_rows(repositories.sale_items_between(lo, hi))


def filter_rows(rows, status="", payment=""):
    return [
        r for r in rows
        if (not status or r["order_status"] == status)
        and (not payment or r["payment_method"] == payment)
    ]


def summarize(rows):
    total_sales = round(sum(r["total_price"] for r in rows), 2)
    total_orders = len({r["order_id"] for r in rows})

    products = {}
    for r in rows:
        entry = products.setdefault(r["product_name"], {
            "name": r["product_name"], "quantity": 0, "revenue": 0.0,
        })
        entry["quantity"] += r["quantity"]
        entry["revenue"] = round(entry["revenue"] + r["total_price"], 2)

    payments = {}
    for r in rows:
        entry = payments.setdefault(r["payment_method"], {
            "method": r["payment_method"],
            "label": payment_label(r["payment_method"]),
            "count": 0,
            "total": 0.0,
        })
        entry["count"] += 1
        entry["total"] = round(entry["total"] + r["total_price"], 2)

    top = sorted(products.values(), key=lambda p: p["revenue"], reverse=True)[:TOP_PRODUCTS]

    return {
        "total_sales": total_sales,
        "total_orders": total_orders,
        "total_products": sum(r["quantity"] for r in rows),
        "avg_order_value": round(total_sales / total_orders, 2) if total_orders else 0.0,
        "top_products": top,
        "payment_breakdown": list(payments.values()),
    }


def export_row(r):
    return {
        "ID do Pedido": r["order_id"][-6:],
        "Data da Venda": r["sale_date"].strftime("%d/%m/%Y"),
        "Hora da Venda": r["sale_date"].strftime("%H:%M:%S"),
        "Produto": r["product_name"],
        "Categoria": r["category_name"] or "Sem categoria",
        "Cliente": r["customer_name"],
        "Telefone": r["customer_phone"] or "Não informado",
        "Quantidade": r["quantity"],
        "Preço Unitário": f"R$ {r['unit_price']:.2f}",
        "Valor Total": f"R$ {r['total_price']:.2f}",
        "Método de Pagamento": payment_label(r["payment_method"]),
        "Status do Pedido": report_status_label(r["order_status"]),
    }


def export_filename(start, end):
    return f"relatorio-vendas-{start.isoformat()}-{end.isoformat()}.xlsx"


def export_to_excel(rows):
    """Write ``rows`` to an .xlsx workbook and return it as a BytesIO."""
    df = pd.DataFrame([export_row(r) for r in rows], columns=EXPORT_COLUMNS)

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        sheet = writer.sheets[SHEET_NAME]
        for idx, column in enumerate(EXPORT_COLUMNS, start=1):
            sheet.column_dimensions[get_column_letter(idx)].width = max(len(column), MIN_COLUMN_WIDTH)

    buffer.seek(0)
    logger.info(f"Exported {len(rows)} sale rows to spreadsheet")
    return buffer
