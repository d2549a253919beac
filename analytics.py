"""
Aggregations over already-fetched rows for the dashboard, customers,
kanban and delivery screens.
"""
from datetime import timedelta

from labels import payment_label
from models import utcnow

LOW_STOCK_THRESHOLD = 10
INACTIVE_AFTER_DAYS = 30
VIP_MIN_SPENT = 200
VIP_MIN_ORDERS = 10
URGENT_AFTER_MINUTES = 30

# Python weekday() -> short pt-BR label, charted Sunday first
WEEKDAY_LABELS = ["Seg", "Ter", "Qua", "Qui", "Sex", "Sáb", "Dom"]
CHART_WEEK = ["Dom", "Seg", "Ter", "Qua", "Qui", "Sex", "Sáb"]


# ---------------- DASHBOARD ---------------- #

def dashboard_stats(orders, products, categories):
    delivered = [o for o in orders if o.status == "delivered"]

    inventory_revenue = sum(p.price * p.stock for p in products)
    inventory_cost = sum((p.cost or 0) * p.stock for p in products)
    margin = 0.0
    if inventory_revenue > 0:
        margin = (inventory_revenue - inventory_cost) / inventory_revenue * 100

    return {
        "total_sales": round(sum(o.total for o in delivered), 2),
        "total_orders": len(orders),
        "total_products": len(products),
        "low_stock_products": len([p for p in products if p.stock < LOW_STOCK_THRESHOLD]),
        "total_categories": len(categories),
        "profit_margin": round(margin, 1),
    }


def sales_by_weekday(orders, now=None, days=7):
    """Delivered sales of the last ``days`` days, one bucket per weekday."""
    now = now or utcnow()
    since = now - timedelta(days=days)

    totals = {label: 0.0 for label in CHART_WEEK}
    for order in orders:
        if order.status != "delivered" or order.created_at < since:
            continue
        label = WEEKDAY_LABELS[order.created_at.weekday()]
        totals[label] += order.total

    return [{"name": label, "vendas": round(totals[label], 2)} for label in CHART_WEEK]


def payment_breakdown(orders):
    """Count and total per payment method for delivered orders."""
    acc = {}
    for order in orders:
        if order.status != "delivered":
            continue
        entry = acc.setdefault(order.payment_method, {
            "method": order.payment_method,
            "name": payment_label(order.payment_method),
            "value": 0,
            "total": 0.0,
        })
        entry["value"] += 1
        entry["total"] = round(entry["total"] + order.total, 2)
    return list(acc.values())


# ---------------- PRODUCTS ---------------- #

def stock_status(stock):
    if stock == 0:
        return {"label": "Sem estoque", "level": "out"}
    if stock < LOW_STOCK_THRESHOLD:
        return {"label": "Estoque baixo", "level": "low"}
    return {"label": "Em estoque", "level": "ok"}


def profit_margin(price, cost):
    if not cost or not price:
        return 0.0
    return round((price - cost) / price * 100, 1)


def product_stats(products):
    return {
        "total": len(products),
        "active": len([p for p in products if p.active]),
        "low_stock": len([p for p in products if p.stock < LOW_STOCK_THRESHOLD]),
        "inventory_value": round(sum(p.price * p.stock for p in products), 2),
    }


# ---------------- KANBAN ---------------- #

def minutes_since(created_at, now=None):
    now = now or utcnow()
    return int((now - created_at).total_seconds() // 60)


def time_since_label(created_at, now=None):
    minutes = minutes_since(created_at, now)
    if minutes < 60:
        return f"{minutes}min atrás"
    return f"{minutes // 60}h atrás"


def is_urgent(order, now=None):
    if order.status in ("delivered", "cancelled"):
        return False
    return minutes_since(order.created_at, now) > URGENT_AFTER_MINUTES


def group_by_status(orders, statuses):
    board = {status: [] for status in statuses}
    for order in orders:
        if order.status in board:
            board[order.status].append(order)
    return board


# ---------------- CUSTOMERS ---------------- #

def customer_key(name, phone):
    return f"{name}-{phone or 'no-phone'}"


def build_customers(orders, now=None):
    """Group orders by (name, phone); richest customers first."""
    now = now or utcnow()
    customers = {}

    for order in orders:
        key = customer_key(order.customer_name, order.customer_phone)
        customer = customers.setdefault(key, {
            "key": key,
            "customer_name": order.customer_name,
            "customer_phone": order.customer_phone,
            "total_orders": 0,
            "total_spent": 0.0,
            "first_order_date": None,
            "last_order_date": None,
            "orders": [],
        })
        customer["orders"].append(order)
        customer["total_orders"] += 1
        customer["total_spent"] += order.total

        if customer["last_order_date"] is None or order.created_at > customer["last_order_date"]:
            customer["last_order_date"] = order.created_at
        if customer["first_order_date"] is None or order.created_at < customer["first_order_date"]:
            customer["first_order_date"] = order.created_at

    result = []
    for customer in customers.values():
        customer["total_spent"] = round(customer["total_spent"], 2)
        customer["avg_order_value"] = round(customer["total_spent"] / customer["total_orders"], 2)
        customer["days_since_last_order"] = (now - customer["last_order_date"]).days
        customer["orders"].sort(key=lambda o: o.created_at, reverse=True)
        customer["type"] = customer_type(customer)
        result.append(customer)

    result.sort(key=lambda c: c["total_spent"], reverse=True)
    return result


def is_inactive(customer):
    days = customer.get("days_since_last_order")
    return bool(days and days > INACTIVE_AFTER_DAYS)


def is_vip(customer):
    return customer["total_spent"] > VIP_MIN_SPENT or customer["total_orders"] > VIP_MIN_ORDERS


def customer_type(customer):
    if is_inactive(customer):
        return {"type": "inactive", "label": "Inativo"}
    if is_vip(customer):
        return {"type": "vip", "label": "VIP"}
    return {"type": "regular", "label": "Regular"}


def filter_customers(customers, search="", filter_type="all"):
    search = (search or "").strip().lower()
    result = []
    for customer in customers:
        if search:
            name_hit = search in customer["customer_name"].lower()
            phone_hit = bool(customer["customer_phone"]) and search in customer["customer_phone"]
            if not (name_hit or phone_hit):
                continue
        if filter_type == "inactive" and not is_inactive(customer):
            continue
        if filter_type == "vip" and not is_vip(customer):
            continue
        result.append(customer)
    return result


def customer_stats(customers):
    total = len(customers)
    avg = sum(c["avg_order_value"] for c in customers) / total if total else 0
    return {
        "total_customers": total,
        "inactive_customers": len([c for c in customers if is_inactive(c)]),
        "vip_customers": len([c for c in customers if is_vip(c)]),
        "avg_order_value": round(avg, 2),
    }


# ---------------- DELIVERIES ---------------- #

def driver_stats(driver_id, deliveries):
    done = [d for d in deliveries if d.driver_id == driver_id and d.status == "delivered"]
    return {
        "total_deliveries": len(done),
        "total_earnings": round(sum(d.driver_commission or 0 for d in done), 2),
    }


def delivery_totals(drivers, deliveries):
    done = [d for d in deliveries if d.status == "delivered"]
    return {
        "total_drivers": len(drivers),
        "active_drivers": len([d for d in drivers if d.active]),
        "total_deliveries": len(done),
        "total_commissions": round(sum(d.driver_commission or 0 for d in done), 2),
    }
