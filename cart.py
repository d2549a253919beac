"""
Session cart for the public storefront.

The cart lives in the Flask session as ``{product_id: {"qty": n, "notes": str}}``.
Stock checks run against the product rows passed in by the caller; nothing
here reserves or decrements stock.
"""
from errors import StockError

SESSION_KEY = "cart"
COUPON_KEY = "coupon"


def load_cart(session):
    v = session.get(SESSION_KEY)
    return v if isinstance(v, dict) else {}


def save_cart(session, cart):
    session[SESSION_KEY] = cart
    session.modified = True


def clear_cart(session):
    session.pop(SESSION_KEY, None)
    session.pop(COUPON_KEY, None)


def stock_message(product):
    return f"Estoque insuficiente! Apenas {product.stock} unidades disponíveis."


def add_to_cart(cart, product):
    """Add one unit of ``product``; returns the new quantity in the cart."""
    line = cart.get(product.id)
    current = line["qty"] if line else 0

    if current >= product.stock:
        raise StockError(stock_message(product))

    if line:
        line["qty"] = current + 1
    else:
        cart[product.id] = {"qty": 1, "notes": ""}
    return cart[product.id]["qty"]


def update_quantity(cart, product_id, quantity, product=None):
    if quantity <= 0:
        cart.pop(product_id, None)
        return 0

    if product is not None and quantity > product.stock:
        raise StockError(stock_message(product))

    if product_id in cart:
        cart[product_id]["qty"] = quantity
    return quantity


def update_notes(cart, product_id, notes):
    if product_id in cart:
        cart[product_id]["notes"] = (notes or "").strip()


def cart_lines(cart, products):
    """Join the session cart with product rows; unknown products are dropped."""
    by_id = {p.id: p for p in products}
    lines = []
    for product_id, entry in cart.items():
        product = by_id.get(product_id)
        if product is None:
            continue
        qty = int(entry.get("qty", 1) or 1)
        lines.append({
            "product": product,
            "qty": qty,
            "notes": entry.get("notes") or "",
            "line_total": round(product.price * qty, 2),
        })
    return lines


def total_items(cart):
    return sum(int(entry.get("qty", 0) or 0) for entry in cart.values())


def compute_totals(prices_and_quantities, discount_percent=0):
    """Returns ``(subtotal, discount, total)`` rounded to cents."""
    subtotal = 0.0
    for price, qty in prices_and_quantities:
        subtotal += float(price) * int(qty)

    discount = subtotal * (float(discount_percent or 0) / 100)
    return round(subtotal, 2), round(discount, 2), round(subtotal - discount, 2)


def check_stock(lines):
    for line in lines:
        product = line["product"]
        if line["qty"] > product.stock:
            raise StockError(
                f"Estoque insuficiente para {product.name}. "
                f"Apenas {product.stock} unidades disponíveis."
            )


def format_address(street="", number="", neighborhood="", city="", reference=""):
    parts = [p.strip() for p in (street, number, neighborhood, city) if p and p.strip()]
    if reference and reference.strip():
        parts.append(f"(Ref: {reference.strip()})")
    return ", ".join(parts)
