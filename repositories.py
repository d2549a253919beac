"""
Data access for every table the app touches.

Routes never talk to ``db.session`` directly: each write goes through
``commit()``, which rolls back and raises ``DataAccessError`` on failure so
the caller can surface a message. There are no retries.
"""
import logging

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload, joinedload

from extensions import db
from models import (
    Establishment, Category, Product, Order, OrderItem, OrderStatusHistory,
    DeliveryDriver, Delivery, WheelSpin, WhatsAppSettings, User, utcnow, new_id,
)
from labels import ORDER_STATUSES, DELIVERY_STATUSES
from cart import compute_totals
from errors import DataAccessError, NotFound, InvalidStatus, ValidationError

logger = logging.getLogger(__name__)


def commit(action):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to {action}: {str(e)}")
        raise DataAccessError(f"Erro ao {action}") from e


def _get_or_raise(model, object_id, message):
    obj = db.session.get(model, object_id) if object_id else None
    if obj is None:
        raise NotFound(message)
    return obj


# ---------------- ESTABLISHMENT ---------------- #

def get_establishment():
    return Establishment.query.order_by(Establishment.created_at.asc()).first()


def require_establishment():
    establishment = get_establishment()
    if establishment is None:
        raise NotFound("Nenhum estabelecimento encontrado")
    return establishment


def update_establishment(establishment, data):
    for field in ("name", "phone", "address", "theme_color", "logo_url"):
        if field in data:
            setattr(establishment, field, data[field])
    commit("salvar estabelecimento")
    return establishment


# ---------------- CATEGORIES ---------------- #

def list_categories():
    return Category.query.order_by(Category.name.asc()).all()


def get_category(category_id):
    return _get_or_raise(Category, category_id, "Categoria não encontrada")


def save_category(name, description=None, category=None):
    if not name or not name.strip():
        raise ValidationError("Nome da categoria é obrigatório")

    if category is None:
        category = Category(establishment_id=require_establishment().id)
        db.session.add(category)

    category.name = name.strip()
    category.description = (description or "").strip() or None
    commit("salvar categoria")
    return category


def delete_category(category_id):
    category = get_category(category_id)
    db.session.delete(category)
    commit("excluir categoria")


def product_counts_by_category():
    rows = (
        db.session.query(Product.category_id, db.func.count(Product.id))
        .group_by(Product.category_id)
        .all()
    )
    return {category_id: count for category_id, count in rows}


# ---------------- PRODUCTS ---------------- #

def list_products(active_only=False, newest_first=False):
    query = Product.query.options(joinedload(Product.category))
    if active_only:
        query = query.filter(Product.active.is_(True))
    if newest_first:
        query = query.order_by(Product.created_at.desc())
    else:
        query = query.order_by(Product.name.asc())
    return query.all()


def get_product(product_id):
    return _get_or_raise(Product, product_id, "Produto não encontrado")


def get_products(product_ids):
    if not product_ids:
        return []
    return Product.query.filter(Product.id.in_(list(product_ids))).all()


def save_product(data, product=None):
    """``data`` holds already-parsed values (see admin_catalog.parse_product_form)."""
    if product is None:
        product = Product(establishment_id=require_establishment().id)
        db.session.add(product)

    for field in ("name", "description", "price", "cost", "stock",
                  "category_id", "image_url", "active"):
        if field in data:
            setattr(product, field, data[field])

    commit("salvar produto")
    return product


def delete_product(product_id):
    """Deletes the row and returns the image URL it pointed at (if any)."""
    product = get_product(product_id)
    image_url = product.image_url
    db.session.delete(product)
    commit("excluir produto")
    return image_url


# ---------------- ORDERS ---------------- #

def _orders_with_items():
    return Order.query.options(
        selectinload(Order.items).joinedload(OrderItem.product),
        selectinload(Order.status_history),
    )


def create_order(customer_name, customer_phone, payment_method, lines,
                 delivery_address=None, discount_percent=0, coupon_code=None):
    """
    Insert an order and its items in one transaction.

    ``lines`` is a list of dicts with ``product``, ``qty`` and ``notes``; the
    product price is copied onto each item.
    """
    if not lines:
        raise ValidationError("Seu carrinho está vazio")

    establishment = require_establishment()
    _, _, total = compute_totals(
        ((line["product"].price, line["qty"]) for line in lines),
        discount_percent
    )

    order = Order(
        id=new_id(),
        customer_name=customer_name,
        customer_phone=customer_phone or None,
        delivery_address=delivery_address or None,
        total=total,
        payment_method=payment_method,
        status="pending",
        coupon_code=coupon_code,
        discount_percent=discount_percent or 0,
        establishment_id=establishment.id,
    )
    for line in lines:
        order.items.append(OrderItem(
            product_id=line["product"].id,
            quantity=line["qty"],
            price=line["product"].price,
            notes=line.get("notes") or None,
        ))
    order.status_history.append(OrderStatusHistory(status="pending"))

    db.session.add(order)
    commit("enviar pedido")
    return order


def create_sample_order():
    """Item-less order used from the dashboard to try out the tracking page."""
    order = Order(
        id=new_id(),
        customer_name="Cliente Teste",
        customer_phone="(11) 99999-9999",
        total=25.50,
        payment_method="dinheiro",
        delivery_address="Rua Teste, 123 - Centro",
        status="pending",
        establishment_id=require_establishment().id,
    )
    order.status_history.append(OrderStatusHistory(status="pending"))
    db.session.add(order)
    commit("criar pedido teste")
    return order


def get_order(order_id):
    order = _orders_with_items().filter(Order.id == order_id).first()
    if order is None:
        raise NotFound("Pedido não encontrado")
    return order


def list_orders(search="", status="", limit=None):
    query = _orders_with_items()

    search = (search or "").strip()
    if search:
        term = f"%{search}%"
        query = query.filter(or_(
            Order.customer_name.ilike(term),
            Order.id.ilike(term),
        ))
    if status:
        query = query.filter(Order.status == status)

    query = query.order_by(Order.created_at.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def find_latest_order_by_phone(phone):
    phone = (phone or "").strip()
    if not phone:
        return None
    return (
        Order.query
        .filter(Order.customer_phone == phone)
        .order_by(Order.created_at.desc())
        .first()
    )


def set_order_status(order_id, status):
    """Any status may follow any other; only the value itself is checked."""
    if status not in ORDER_STATUSES:
        raise InvalidStatus(f"Status inválido: {status}")

    order = _get_or_raise(Order, order_id, "Pedido não encontrado")
    order.status = status
    order.updated_at = utcnow()
    db.session.add(OrderStatusHistory(order_id=order.id, status=status))
    commit("atualizar status")
    return order


def sale_items_between(start, end):
    """Order items whose order falls in ``[start, end)``, newest order first."""
    return (
        OrderItem.query
        .join(Order, OrderItem.order_id == Order.id)
        .join(Product, OrderItem.product_id == Product.id)
        .options(
            joinedload(OrderItem.order),
            joinedload(OrderItem.product).joinedload(Product.category),
        )
        .filter(Order.created_at >= start, Order.created_at < end)
        .order_by(Order.created_at.desc())
        .all()
    )


# ---------------- DRIVERS & DELIVERIES ---------------- #

def list_drivers():
    return DeliveryDriver.query.order_by(DeliveryDriver.created_at.desc()).all()


def get_driver(driver_id):
    return _get_or_raise(DeliveryDriver, driver_id, "Entregador não encontrado")


def save_driver(data, driver=None):
    if driver is None:
        driver = DeliveryDriver()
        db.session.add(driver)

    for field in ("name", "phone", "vehicle_type", "license_plate",
                  "commission_rate", "active"):
        if field in data:
            setattr(driver, field, data[field])
    commit("salvar entregador")
    return driver


def delete_driver(driver_id):
    driver = get_driver(driver_id)
    db.session.delete(driver)
    commit("excluir entregador")


def list_deliveries():
    return (
        Delivery.query
        .options(joinedload(Delivery.order), joinedload(Delivery.driver))
        .order_by(Delivery.created_at.desc())
        .all()
    )


def assign_delivery(order_id, driver_id, delivery_fee=0.0, notes=None):
    order = _get_or_raise(Order, order_id, "Pedido não encontrado")
    driver = get_driver(driver_id)

    fee = float(delivery_fee or 0)
    delivery = Delivery(
        order_id=order.id,
        driver_id=driver.id,
        delivery_fee=fee,
        driver_commission=round(fee * float(driver.commission_rate or 0), 2),
        status="assigned",
        notes=notes or None,
    )
    db.session.add(delivery)
    commit("designar entrega")
    return delivery


def set_delivery_status(delivery_id, status):
    if status not in DELIVERY_STATUSES:
        raise InvalidStatus(f"Status inválido: {status}")

    delivery = _get_or_raise(Delivery, delivery_id, "Entrega não encontrada")
    delivery.status = status
    if status == "picked_up" and delivery.pickup_time is None:
        delivery.pickup_time = utcnow()
    elif status == "delivered" and delivery.delivery_time is None:
        delivery.delivery_time = utcnow()
    commit("atualizar entrega")
    return delivery


# ---------------- WHEEL SPINS ---------------- #

def count_spins(user_ip, start, end):
    return (
        WheelSpin.query
        .filter(
            WheelSpin.user_ip == user_ip,
            WheelSpin.created_at >= start,
            WheelSpin.created_at < end,
        )
        .count()
    )


def record_spin(user_ip, winning_segment, discount_value, coupon_code, created_at=None):
    spin = WheelSpin(
        user_ip=user_ip,
        winning_segment=winning_segment,
        discount_value=discount_value,
        coupon_code=coupon_code,
        created_at=created_at or utcnow(),
    )
    db.session.add(spin)
    commit("processar o giro")
    return spin


def find_spin_by_coupon(code):
    code = (code or "").strip().upper()
    if not code:
        return None
    return WheelSpin.query.filter_by(coupon_code=code).first()


# ---------------- WHATSAPP ---------------- #

def get_whatsapp_settings():
    establishment = require_establishment()
    settings = WhatsAppSettings.query.filter_by(establishment_id=establishment.id).first()
    if settings is None:
        settings = WhatsAppSettings(establishment_id=establishment.id)
        db.session.add(settings)
        commit("carregar configurações do WhatsApp")
    return settings


def save_whatsapp_settings(settings, data):
    for field in ("business_phone", "business_name", "auto_reply_enabled",
                  "auto_reply_message", "connected"):
        if field in data:
            setattr(settings, field, data[field])
    commit("salvar configurações do WhatsApp")
    return settings


# ---------------- USERS ---------------- #

def find_user_by_email(email):
    return User.query.filter_by(email=(email or "").strip().lower()).first()


def create_user(email, name, password_hash, role="admin"):
    establishment = get_establishment()
    user = User(
        email=email.strip().lower(),
        name=name.strip(),
        password_hash=password_hash,
        role=role,
        establishment_id=establishment.id if establishment else None,
    )
    db.session.add(user)
    commit("criar conta")
    return user
