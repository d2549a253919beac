"""
Closed enumerations used across the app and their display labels.
"""

# ---------------- ORDER STATUS ---------------- #

ORDER_STATUSES = (
    "pending",
    "confirmed",
    "preparing",
    "ready",
    "delivered",
    "cancelled",
)

# admin tables / dropdowns
ORDER_STATUS_LABELS = {
    "pending": "Aguardando",
    "confirmed": "Confirmado",
    "preparing": "Preparando",
    "ready": "Pronto",
    "delivered": "Entregue",
    "cancelled": "Cancelado",
}

# sales report / spreadsheet
REPORT_STATUS_LABELS = {
    "pending": "Pendente",
    "confirmed": "Confirmado",
    "preparing": "Preparando",
    "ready": "Pronto",
    "delivered": "Entregue",
    "cancelled": "Cancelado",
}

KANBAN_COLUMNS = [
    {"status": "pending", "title": "Novos Pedidos", "color": "yellow"},
    {"status": "confirmed", "title": "Confirmados", "color": "blue"},
    {"status": "preparing", "title": "Em Preparo", "color": "orange"},
    {"status": "ready", "title": "Prontos", "color": "green"},
    {"status": "delivered", "title": "Entregues", "color": "gray"},
    {"status": "cancelled", "title": "Cancelados", "color": "red"},
]

# customer tracking page, cancelled is not a step
TRACKING_STEPS = [
    {
        "key": "pending",
        "title": "Pedido Recebido",
        "description": "Seu pedido foi recebido e está sendo processado",
        "eta": "5-10 minutos para confirmação",
    },
    {
        "key": "confirmed",
        "title": "Pedido Confirmado",
        "description": "Seu pedido foi confirmado e será preparado em breve",
        "eta": "5 minutos para iniciar preparo",
    },
    {
        "key": "preparing",
        "title": "Em Preparo",
        "description": "Estamos preparando seu pedido com muito carinho",
        "eta": "estamos separando o produto de seu pedido",
    },
    {
        "key": "ready",
        "title": "Pronto para Entrega",
        "description": "Seu pedido está pronto e será enviado em breve",
        "eta": "seu pedido está pronto e em rota de entrega",
    },
    {
        "key": "delivered",
        "title": "Entregue",
        "description": "Seu pedido foi entregue com sucesso!",
        "eta": "Pedido entregue!",
    },
]

# ---------------- PAYMENT ---------------- #

PAYMENT_METHODS = ("dinheiro", "cartao_debito", "cartao_credito", "pix")

PAYMENT_LABELS = {
    "dinheiro": "Dinheiro",
    "cartao_debito": "Cartão de Débito",
    "cartao_credito": "Cartão de Crédito",
    "pix": "PIX",
}

# ---------------- DELIVERY ---------------- #

DELIVERY_STATUSES = ("assigned", "picked_up", "delivered", "cancelled")

DELIVERY_STATUS_LABELS = {
    "assigned": "Designado",
    "picked_up": "Coletado",
    "delivered": "Entregue",
    "cancelled": "Cancelado",
}

VEHICLE_TYPES = {
    "moto": "Moto",
    "carro": "Carro",
    "bicicleta": "Bicicleta",
    "a_pe": "A pé",
}


def order_status_label(status):
    return ORDER_STATUS_LABELS.get(status, status)


def report_status_label(status):
    return REPORT_STATUS_LABELS.get(status, status)


def payment_label(method):
    """Unknown codes are shown as stored."""
    return PAYMENT_LABELS.get(method, method)


def tracking_step_index(status):
    """Position of ``status`` in the tracking progress bar, -1 if it has none."""
    for i, step in enumerate(TRACKING_STEPS):
        if step["key"] == status:
            return i
    return -1
