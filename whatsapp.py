"""
``wa.me`` deep links with pre-filled text. There is no API integration.
"""
import re
from urllib.parse import quote

from labels import order_status_label

WA_BASE = "https://wa.me/"
WHATSAPP_WEB = "https://web.whatsapp.com"


def digits(phone):
    return re.sub(r"\D", "", phone or "")


def wa_link(number, text=None):
    url = WA_BASE + digits(number)
    if text:
        url += "?text=" + quote(text, safe="")
    return url


def customer_link(phone, text, country_code="55"):
    """Link to a customer number stored without country code; None without a phone."""
    number = digits(phone)
    if not number:
        return None
    return wa_link(country_code + number, text)


def order_status_message(order):
    return (
        f"Olá {order.customer_name}! Seu pedido #{order.short_id} está "
        f"{order_status_label(order.status).lower()}. Total: R$ {order.total:.2f}"
    )


def tracking_inquiry_message(order):
    return f"Olá! Gostaria de saber sobre meu pedido #{order.short_id}. Obrigado!"


def win_back_message(customer_name):
    return (
        f"Olá {customer_name}! Sentimos sua falta! Que tal fazer um novo pedido? "
        f"Temos novidades deliciosas esperando por você! 😋"
    )
