from types import SimpleNamespace

import pytest

import cart
from errors import StockError


def product(pid="p1", price=10.0, stock=3, name="Pod"):
    return SimpleNamespace(id=pid, price=price, stock=stock, name=name)


def test_add_rejects_product_without_stock():
    items = {}
    with pytest.raises(StockError):
        cart.add_to_cart(items, product(stock=0))
    assert items == {}


def test_add_rejects_when_cart_already_holds_all_stock():
    p = product(stock=2)
    items = {}
    assert cart.add_to_cart(items, p) == 1
    assert cart.add_to_cart(items, p) == 2

    with pytest.raises(StockError) as exc:
        cart.add_to_cart(items, p)
    assert "Apenas 2 unidades" in exc.value.message
    assert items[p.id]["qty"] == 2


def test_update_quantity_to_zero_removes_line():
    p = product()
    items = {p.id: {"qty": 2, "notes": "gelado"}}
    cart.update_quantity(items, p.id, 0)
    assert items == {}


def test_update_quantity_above_stock_is_rejected():
    p = product(stock=3)
    items = {p.id: {"qty": 1, "notes": ""}}
    with pytest.raises(StockError):
        cart.update_quantity(items, p.id, 4, p)
    assert items[p.id]["qty"] == 1


def test_cart_lines_drop_unknown_products():
    p = product()
    items = {p.id: {"qty": 2, "notes": " sem gelo "}, "gone": {"qty": 1, "notes": ""}}
    cart.update_notes(items, p.id, " sem gelo ")

    lines = cart.cart_lines(items, [p])
    assert len(lines) == 1
    assert lines[0]["line_total"] == 20.0
    assert lines[0]["notes"] == "sem gelo"
    assert cart.total_items(items) == 3


def test_compute_totals_with_discount():
    subtotal, discount, total = cart.compute_totals([(10.0, 2), (5.5, 1)], 10)
    assert subtotal == 25.5
    assert discount == pytest.approx(2.55)
    assert total == pytest.approx(22.95)


def test_compute_totals_without_discount():
    assert cart.compute_totals([(10.0, 2), (5.5, 1)]) == (25.5, 0.0, 25.5)


def test_check_stock_names_the_product():
    lines = [{"product": product(name="Essência", stock=1), "qty": 2}]
    with pytest.raises(StockError) as exc:
        cart.check_stock(lines)
    assert "Essência" in exc.value.message


def test_format_address():
    assert cart.format_address("Rua A", "10", "Centro", "Sorriso - MT", "perto da praça") == \
        "Rua A, 10, Centro, Sorriso - MT, (Ref: perto da praça)"
    assert cart.format_address("", "", "", "Sorriso - MT") == "Sorriso - MT"
