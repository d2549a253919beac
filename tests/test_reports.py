from datetime import date, datetime

import pytest

import reports
from errors import ValidationError
from extensions import db


def row(order_id="order-000001", product="Pod", qty=1, price=10.0, payment="pix", status="delivered",
        category="Pods", phone="11"):
    return {
        "id": f"{order_id}-{product}",
        "order_id": order_id,
        "product_name": product,
        "customer_name": "Maria",
        "customer_phone": phone,
        "quantity": qty,
        "unit_price": price,
        "total_price": round(price * qty, 2),
        "payment_method": payment,
        "order_status": status,
        "sale_date": datetime(2024, 3, 10, 14, 30, 5),
        "category_name": category,
    }


def test_default_period_starts_on_first_of_month():
    assert reports.default_period(date(2024, 3, 17)) == (date(2024, 3, 1), date(2024, 3, 17))


def test_period_bounds_cover_the_whole_last_day():
    start, end = reports.period_bounds(date(2024, 3, 1), date(2024, 3, 2))
    assert start == datetime(2024, 3, 1, 0, 0, 0)
    assert end == datetime(2024, 3, 3, 0, 0, 0)


def test_fetch_rows_includes_orders_in_the_last_second(place_order):
    late = place_order(name="Tarde")
    late.created_at = datetime(2024, 3, 2, 23, 59, 59, 700000)
    next_day = place_order(name="Amanhã")
    next_day.created_at = datetime(2024, 3, 3, 0, 0, 0)
    db.session.commit()

    rows = reports.fetch_rows(date(2024, 3, 1), date(2024, 3, 2))

    assert {r["customer_name"] for r in rows} == {"Tarde"}
    assert len(rows) == 2


def test_parse_day():
    assert reports.parse_day("2024-03-05", None) == date(2024, 3, 5)
    assert reports.parse_day("", date(2024, 1, 1)) == date(2024, 1, 1)
    with pytest.raises(ValidationError):
        reports.parse_day("05/03/2024", None)


def test_filter_rows():
    rows = [row(payment="pix"), row(payment="dinheiro", status="cancelled")]
    assert len(reports.filter_rows(rows)) == 2
    assert len(reports.filter_rows(rows, payment="pix")) == 1
    assert len(reports.filter_rows(rows, status="cancelled")) == 1
    assert reports.filter_rows(rows, status="cancelled", payment="pix") == []


def test_summarize():
    rows = [
        row("o1", "Pod", 2, 10.0),
        row("o1", "Essência", 1, 5.5),
        row("o2", "Pod", 1, 10.0, payment="dinheiro"),
    ]
    summary = reports.summarize(rows)

    assert summary["total_sales"] == 35.5
    assert summary["total_orders"] == 2
    assert summary["total_products"] == 4
    assert summary["avg_order_value"] == 17.75
    assert summary["top_products"][0] == {"name": "Pod", "quantity": 3, "revenue": 30.0}
    labels = {p["label"]: p["count"] for p in summary["payment_breakdown"]}
    assert labels == {"PIX": 2, "Dinheiro": 1}


def test_summarize_empty():
    summary = reports.summarize([])
    assert summary["total_sales"] == 0
    assert summary["avg_order_value"] == 0.0


def test_export_row_formats_values():
    exported = reports.export_row(row(category=None, phone=None, payment="cartao_credito"))
    assert exported["ID do Pedido"] == "000001"
    assert exported["Data da Venda"] == "10/03/2024"
    assert exported["Hora da Venda"] == "14:30:05"
    assert exported["Categoria"] == "Sem categoria"
    assert exported["Telefone"] == "Não informado"
    assert exported["Preço Unitário"] == "R$ 10.00"
    assert exported["Método de Pagamento"] == "Cartão de Crédito"
    assert exported["Status do Pedido"] == "Entregue"


def test_export_filename():
    assert reports.export_filename(date(2024, 3, 1), date(2024, 3, 31)) == \
        "relatorio-vendas-2024-03-01-2024-03-31.xlsx"
