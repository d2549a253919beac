import logging

from flask import (
    Blueprint, render_template, redirect, request, flash, url_for,
    jsonify, session, current_app,
)

import cart as cart_store
import repositories
import wheel
from decorators import json_error
from errors import BackOfficeError, ValidationError, StockError
from labels import PAYMENT_METHODS

logger = logging.getLogger(__name__)

bp = Blueprint('storefront', __name__)


def client_ip():
    route = request.access_route
    return (route[0] if route else request.remote_addr) or "unknown"


def _cart():
    return cart_store.load_cart(session)


def _coupon():
    return session.get(cart_store.COUPON_KEY) or {}


def cart_view():
    """Cart lines joined with current product rows, plus totals."""
    cart = _cart()
    lines = cart_store.cart_lines(cart, repositories.get_products(cart.keys()))
    coupon = _coupon()
    subtotal, discount, total = cart_store.compute_totals(
        ((line["product"].price, line["qty"]) for line in lines),
        coupon.get("discount", 0)
    )
    return {
        "lines": lines,
        "subtotal": subtotal,
        "discount": discount,
        "total": total,
        "coupon": coupon,
        "items": cart_store.total_items(cart),
    }


# ---------------- MENU ---------------- #

@bp.route('/')
@bp.route('/menu')
def menu():
    search = request.args.get('search', '').strip()
    selected_category = request.args.get('category', '')

    try:
        products = repositories.list_products(active_only=True)
        categories = repositories.list_categories()
        establishment = repositories.get_establishment()
    except BackOfficeError as e:
        flash(e.message, "error")
        products, categories, establishment = [], [], None

    filtered = [
        p for p in products
        if search.lower() in p.name.lower()
        and (not selected_category or p.category_id == selected_category)
    ]

    return render_template(
        'menu.html',
        products=filtered,
        categories=categories,
        establishment=establishment,
        search=search,
        selected_category=selected_category,
        cart=cart_view(),
        default_city=current_app.config['DEFAULT_CITY'],
        banners=current_app.config['BANNER_IMAGES'],
        banner_rotate_ms=current_app.config['BANNER_ROTATE_MS'],
    )

# ---------------- CART ---------------- #

def _add(product_id):
    product = repositories.get_product(product_id)
    if not product.active:
        raise StockError("Produto indisponível")
    cart = _cart()
    qty = cart_store.add_to_cart(cart, product)
    cart_store.save_cart(session, cart)
    return product, qty


@bp.route('/cart/add/<product_id>', methods=['POST'])
def add(product_id):
    try:
        product, _ = _add(product_id)
        flash(f"{product.name} adicionado ao carrinho!", "success")
    except BackOfficeError as e:
        flash(e.message, "error")
    return redirect(request.referrer or url_for('storefront.menu'))


@bp.route('/api/cart/add/<product_id>', methods=['POST'])
def api_add_to_cart(product_id):
    try:
        product, qty = _add(product_id)
    except BackOfficeError as e:
        return json_error(e.message, e.status_code)
    return jsonify({
        "success": True,
        "quantity": qty,
        "cart_count": cart_store.total_items(_cart()),
        "message": f"{product.name} adicionado ao carrinho!",
    })


@bp.route('/cart/update/<product_id>', methods=['POST'])
def update(product_id):
    quantity = request.form.get('quantity', type=int)
    if quantity is None:
        flash("Quantidade inválida", "error")
        return redirect(url_for('storefront.menu', cart=1))

    cart = _cart()
    try:
        product = repositories.get_product(product_id) if quantity > 0 else None
        cart_store.update_quantity(cart, product_id, quantity, product)
        cart_store.save_cart(session, cart)
    except BackOfficeError as e:
        flash(e.message, "error")
    return redirect(url_for('storefront.menu', cart=1))


@bp.route('/cart/notes/<product_id>', methods=['POST'])
def notes(product_id):
    cart = _cart()
    cart_store.update_notes(cart, product_id, request.form.get('notes', ''))
    cart_store.save_cart(session, cart)
    return redirect(url_for('storefront.menu', cart=1))


@bp.route('/cart/remove/<product_id>', methods=['POST'])
def remove(product_id):
    cart = _cart()
    cart_store.update_quantity(cart, product_id, 0)
    cart_store.save_cart(session, cart)
    return redirect(url_for('storefront.menu', cart=1))


@bp.route('/coupon', methods=['POST'])
def apply_coupon():
    code = request.form.get('coupon_code', '').strip().upper()
    discount = wheel.coupon_discount(code)

    if discount is None:
        flash("Cupom inválido", "error")
    else:
        session[cart_store.COUPON_KEY] = {"code": code, "discount": discount}
        flash(f"Cupom {code} aplicado! {discount}% de desconto", "success")
    return redirect(url_for('storefront.menu', cart=1))

# ---------------- CHECKOUT ---------------- #

def submit_order(form, cart, coupon):
    name = form.get('name', '').strip()
    phone = form.get('phone', '').strip()
    if not name or not phone:
        raise ValidationError("Por favor, preencha seu nome e telefone")
    if not cart:
        raise ValidationError("Seu carrinho está vazio")

    payment_method = form.get('payment_method', 'dinheiro')
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError("Forma de pagamento inválida")

    products = repositories.get_products(cart.keys())
    known = {p.id for p in products if p.active}
    for product_id in cart:
        if product_id not in known:
            raise StockError("Um dos produtos do carrinho não está mais disponível")

    lines = cart_store.cart_lines(cart, products)
    cart_store.check_stock(lines)

    address = cart_store.format_address(
        form.get('street', ''),
        form.get('number', ''),
        form.get('neighborhood', ''),
        form.get('city', '') or current_app.config['DEFAULT_CITY'],
        form.get('reference', ''),
    )

    return repositories.create_order(
        customer_name=name,
        customer_phone=phone,
        payment_method=payment_method,
        lines=lines,
        delivery_address=address,
        discount_percent=coupon.get("discount", 0),
        coupon_code=coupon.get("code"),
    )


@bp.route('/checkout', methods=['POST'])
def checkout():
    try:
        order = submit_order(request.form, _cart(), _coupon())
    except BackOfficeError as e:
        flash(f"Erro ao enviar pedido: {e.message}", "error")
        return redirect(url_for('storefront.menu', cart=1))

    cart_store.clear_cart(session)
    logger.info(f"Order {order.id} placed by {order.customer_name}")
    flash("Pedido enviado com sucesso!", "success")
    return redirect(url_for('tracking.track', order_id=order.id))


@bp.route('/track', methods=['POST'])
def track_by_phone():
    phone = request.form.get('phone', '').strip()
    if not phone:
        flash("Por favor, digite seu número de telefone", "error")
        return redirect(url_for('storefront.menu'))

    order = repositories.find_latest_order_by_phone(phone)
    if order is None:
        flash("Nenhum pedido encontrado com este telefone", "error")
        return redirect(url_for('storefront.menu'))

    flash(f"Abrindo acompanhamento do pedido #{order.short_id}", "success")
    return redirect(url_for('tracking.track', order_id=order.id))

# ---------------- LUCKY WHEEL ---------------- #

@bp.route('/api/wheel/eligibility')
def wheel_eligibility():
    try:
        eligible = wheel.check_eligibility(client_ip())
    except BackOfficeError as e:
        return json_error("Erro ao verificar elegibilidade", e.status_code)
    return jsonify({
        "success": True,
        "eligible": eligible,
        "segments": wheel.WHEEL_SEGMENTS,
    })


@bp.route('/api/wheel/spin', methods=['POST'])
def wheel_spin():
    data = request.get_json(silent=True) or {}
    try:
        current_rotation = float(data.get('rotation', 0) or 0)
    except (TypeError, ValueError):
        current_rotation = 0.0

    try:
        result = wheel.spin(client_ip(), current_rotation)
    except BackOfficeError as e:
        return json_error(e.message, e.status_code)

    # the prize goes straight onto the cart
    session[cart_store.COUPON_KEY] = {
        "code": result["coupon_code"],
        "discount": result["discount"],
    }
    return jsonify({"success": True, **result})
