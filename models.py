import uuid
from datetime import datetime, timezone

from extensions import db
from flask_login import UserMixin


def new_id():
    return str(uuid.uuid4())


def utcnow():
    # naive UTC, the way every timestamp column is stored
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Establishment(db.Model):
    __tablename__ = "establishments"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False)
    logo_url = db.Column(db.String(500))
    phone = db.Column(db.String(30), nullable=False, default="")
    address = db.Column(db.String(255), nullable=False, default="")
    theme_color = db.Column(db.String(20), default="#DC2626")

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(20), default="admin")
    # admin | manager | staff

    establishment_id = db.Column(db.String(36), db.ForeignKey('establishments.id'))
    establishment = db.relationship('Establishment')

    created_at = db.Column(db.DateTime, default=utcnow)


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    establishment_id = db.Column(db.String(36), db.ForeignKey('establishments.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    # no cascade: deleting a category leaves products pointing at it
    products = db.relationship(
        'Product', back_populates='category', passive_deletes='all'
    )


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Float, nullable=False)
    cost = db.Column(db.Float)
    stock = db.Column(db.Integer, nullable=False, default=0)
    image_url = db.Column(db.String(500))

    category_id = db.Column(db.String(36), db.ForeignKey('categories.id'))
    establishment_id = db.Column(db.String(36), db.ForeignKey('establishments.id'), nullable=False)
    active = db.Column(db.Boolean, default=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    category = db.relationship('Category', back_populates='products')

    @property
    def category_name(self):
        return self.category.name if self.category else None


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    customer_name = db.Column(db.String(120), nullable=False)
    customer_phone = db.Column(db.String(30))
    total = db.Column(db.Float, nullable=False)

    status = db.Column(db.String(20), default="pending")
    # pending | confirmed | preparing | ready | delivered | cancelled
    payment_method = db.Column(db.String(20), nullable=False)
    delivery_address = db.Column(db.Text)

    coupon_code = db.Column(db.String(20))
    discount_percent = db.Column(db.Float, default=0)

    establishment_id = db.Column(db.String(36), db.ForeignKey('establishments.id'), nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow)

    items = db.relationship(
        'OrderItem', backref='order', cascade="all, delete-orphan"
    )
    status_history = db.relationship(
        'OrderStatusHistory', backref='order', cascade="all, delete-orphan",
        order_by='[OrderStatusHistory.changed_at, OrderStatusHistory.id]'
    )

    @property
    def short_id(self):
        return self.id[-6:]


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    order_id = db.Column(db.String(36), db.ForeignKey('orders.id'), nullable=False)
    product_id = db.Column(db.String(36), db.ForeignKey('products.id'), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Float, nullable=False)  # price at order time
    notes = db.Column(db.Text)

    product = db.relationship('Product')

    @property
    def line_total(self):
        return round(self.price * self.quantity, 2)

    @property
    def product_name(self):
        return self.product.name if self.product else "Produto removido"


class OrderStatusHistory(db.Model):
    __tablename__ = "order_status_history"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(36), db.ForeignKey('orders.id'), nullable=False)
    status = db.Column(db.String(20))
    changed_at = db.Column(db.DateTime, default=utcnow)


class DeliveryDriver(db.Model):
    __tablename__ = "delivery_drivers"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(30), nullable=False)
    vehicle_type = db.Column(db.String(20), default="moto")
    license_plate = db.Column(db.String(20))
    commission_rate = db.Column(db.Float, default=0.10)
    active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    deliveries = db.relationship('Delivery', backref='driver')


class Delivery(db.Model):
    __tablename__ = "deliveries"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    order_id = db.Column(db.String(36), db.ForeignKey('orders.id'), nullable=False)
    driver_id = db.Column(db.String(36), db.ForeignKey('delivery_drivers.id'), nullable=False)

    pickup_time = db.Column(db.DateTime)
    delivery_time = db.Column(db.DateTime)
    delivery_fee = db.Column(db.Float, default=0)
    driver_commission = db.Column(db.Float, default=0)

    status = db.Column(db.String(20), default="assigned")
    # assigned | picked_up | delivered | cancelled
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)

    order = db.relationship('Order')


class WheelSpin(db.Model):
    __tablename__ = "wheel_spins"

    id = db.Column(db.Integer, primary_key=True)
    user_ip = db.Column(db.String(64), index=True, nullable=False)
    winning_segment = db.Column(db.String(50))
    discount_value = db.Column(db.Integer, nullable=False)
    coupon_code = db.Column(db.String(20), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)


class WhatsAppSettings(db.Model):
    __tablename__ = "whatsapp_settings"

    id = db.Column(db.Integer, primary_key=True)
    establishment_id = db.Column(db.String(36), db.ForeignKey('establishments.id'), nullable=False)
    business_phone = db.Column(db.String(30), default="")
    business_name = db.Column(db.String(120), default="Bigode System")
    auto_reply_enabled = db.Column(db.Boolean, default=True)
    auto_reply_message = db.Column(
        db.Text,
        default="Olá! Obrigado por entrar em contato. Em breve retornaremos sua mensagem."
    )
    connected = db.Column(db.Boolean, default=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
