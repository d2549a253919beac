import io

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from labels import payment_label, order_status_label


def order_receipt_pdf(order, establishment=None):
    """Printable order slip for the kitchen / delivery; returns a BytesIO."""
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    y = height - 50

    # Title
    pdf.setFont("Helvetica-Bold", 18)
    title = establishment.name if establishment else "Pedido"
    pdf.drawString(50, y, title)
    y -= 30

    # Order info
    pdf.setFont("Helvetica", 12)
    pdf.drawString(50, y, f"Pedido #{order.short_id}")
    pdf.drawString(300, y, order.created_at.strftime("%d/%m/%Y %H:%M"))
    y -= 20
    pdf.drawString(50, y, f"Cliente: {order.customer_name}")
    y -= 20
    pdf.drawString(50, y, f"Telefone: {order.customer_phone or 'Não informado'}")
    y -= 20
    pdf.drawString(50, y, f"Endereço: {order.delivery_address or 'Retirada no local'}")
    y -= 20
    pdf.drawString(50, y, f"Pagamento: {payment_label(order.payment_method)}")
    pdf.drawString(300, y, f"Status: {order_status_label(order.status)}")
    y -= 30

    # Table header
    pdf.setFont("Helvetica-Bold", 12)
    pdf.drawString(50, y, "Item")
    pdf.drawString(300, y, "Qtd")
    pdf.drawString(350, y, "Preço")
    pdf.drawString(440, y, "Total")
    y -= 20

    pdf.setFont("Helvetica", 11)

    subtotal = 0
    for item in order.items:
        subtotal += item.line_total

        pdf.drawString(50, y, item.product_name[:40])
        pdf.drawString(300, y, str(item.quantity))
        pdf.drawString(350, y, f"R$ {item.price:.2f}")
        pdf.drawString(440, y, f"R$ {item.line_total:.2f}")
        y -= 16

        if item.notes:
            pdf.setFont("Helvetica-Oblique", 10)
            pdf.drawString(60, y, f"Obs: {item.notes[:70]}")
            pdf.setFont("Helvetica", 11)
            y -= 16

        if y < 100:
            pdf.showPage()
            y = height - 50

    y -= 20
    pdf.setFont("Helvetica-Bold", 12)
    pdf.drawString(330, y, "Subtotal:")
    pdf.drawString(440, y, f"R$ {subtotal:.2f}")
    if order.discount_percent:
        y -= 20
        pdf.drawString(330, y, f"Desconto ({order.discount_percent:g}%):")
        pdf.drawString(440, y, f"- R$ {subtotal - order.total:.2f}")
    y -= 20
    pdf.drawString(330, y, "Total:")
    pdf.drawString(440, y, f"R$ {order.total:.2f}")

    pdf.showPage()
    pdf.save()
    buffer.seek(0)
    return buffer
