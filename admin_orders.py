import logging

from flask import (
    Blueprint, render_template, redirect, request, flash, url_for, jsonify,
    send_file, current_app, Response, abort,
)
from flask_login import login_required

import analytics
import repositories
from decorators import admin_required, json_error
from errors import BackOfficeError, NotFound, ValidationError
from invoices import order_receipt_pdf
from labels import (
    KANBAN_COLUMNS, ORDER_STATUS_LABELS, DELIVERY_STATUSES,
    DELIVERY_STATUS_LABELS, VEHICLE_TYPES,
)
from models import utcnow
from realtime import event_stream, ORDERS_TOPIC
from tracking import order_payload
from whatsapp import customer_link, order_status_message

logger = logging.getLogger(__name__)

bp = Blueprint('admin_orders', __name__, url_prefix='/admin')


def status_whatsapp_url(order):
    return customer_link(
        order.customer_phone,
        order_status_message(order),
        current_app.config['WHATSAPP_COUNTRY_CODE'],
    )

# ---------------- ORDERS ---------------- #

@bp.route('/orders')
@login_required
@admin_required
def orders():
    search = request.args.get('search', '').strip()
    status = request.args.get('status', '')

    try:
        items = repositories.list_orders(search=search, status=status)
    except BackOfficeError as e:
        flash("Erro ao carregar pedidos", "error")
        logger.error(e.message)
        items = []

    return render_template(
        'admin/orders.html',
        orders=items,
        search=search,
        status_filter=status,
    )


@bp.route('/orders/<order_id>')
@login_required
@admin_required
def order_detail(order_id):
    try:
        order = repositories.get_order(order_id)
    except NotFound:
        abort(404)

    return render_template(
        'admin/order_detail.html',
        order=order,
        whatsapp_url=status_whatsapp_url(order),
    )


@bp.route('/orders/<order_id>/status', methods=['POST'])
@login_required
@admin_required
def update_order_status(order_id):
    try:
        repositories.set_order_status(order_id, request.form.get('status', ''))
    except BackOfficeError as e:
        flash(f"Erro ao atualizar status: {e.message}", "error")
    else:
        flash("Status do pedido atualizado!", "success")
    return redirect(request.referrer or url_for('admin_orders.orders'))


@bp.route('/orders/<order_id>/whatsapp')
@login_required
@admin_required
def order_whatsapp(order_id):
    try:
        order = repositories.get_order(order_id)
    except NotFound:
        abort(404)

    url = status_whatsapp_url(order)
    if url is None:
        flash("Cliente não possui telefone cadastrado", "error")
        return redirect(request.referrer or url_for('admin_orders.orders'))
    return redirect(url)


@bp.route('/orders/<order_id>/receipt')
@login_required
@admin_required
def order_receipt(order_id):
    try:
        order = repositories.get_order(order_id)
    except NotFound:
        abort(404)

    buffer = order_receipt_pdf(order, repositories.get_establishment())
    return send_file(
        buffer,
        as_attachment=False,
        download_name=f"pedido-{order.short_id}.pdf",
        mimetype="application/pdf"
    )


@bp.route('/orders/test', methods=['POST'])
@login_required
@admin_required
def create_test_order():
    try:
        order = repositories.create_sample_order()
    except BackOfficeError as e:
        flash(f"Erro ao criar pedido teste: {e.message}", "error")
        return redirect(url_for('admin_insights.dashboard'))

    flash(f"Pedido teste criado! ID: {order.short_id}", "success")
    return redirect(url_for('tracking.track', order_id=order.id))

# ---------------- ORDER API ---------------- #

@bp.route('/api/orders')
@login_required
@admin_required
def api_orders():
    try:
        items = repositories.list_orders()
    except BackOfficeError as e:
        return json_error("Erro ao carregar pedidos", e.status_code)
    return jsonify({"success": True, "orders": [order_payload(o) for o in items]})


@bp.route('/api/orders/<order_id>/status', methods=['POST'])
@login_required
@admin_required
def api_update_order_status(order_id):
    data = request.get_json(silent=True) or {}
    try:
        order = repositories.set_order_status(order_id, data.get('status', ''))
    except BackOfficeError as e:
        return json_error(e.message, e.status_code)
    return jsonify({
        "success": True,
        "status": order.status,
        "updated_at": order.updated_at.isoformat(),
        "message": "Status do pedido atualizado!",
    })


@bp.route('/api/orders/stream')
@login_required
@admin_required
def orders_stream():
    heartbeat = current_app.config['SSE_HEARTBEAT_SECONDS']
    return Response(
        event_stream(ORDERS_TOPIC, heartbeat),
        mimetype='text/event-stream',
        headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'},
    )

# ---------------- KANBAN ---------------- #

def board_columns(orders, now=None):
    board = analytics.group_by_status(orders, [c["status"] for c in KANBAN_COLUMNS])
    columns = []
    for column in KANBAN_COLUMNS:
        cards = [{
            "order": o,
            "time_since": analytics.time_since_label(o.created_at, now),
            "urgent": analytics.is_urgent(o, now),
        } for o in board[column["status"]]]
        columns.append(dict(column, cards=cards, count=len(cards)))
    return columns


@bp.route('/kanban')
@login_required
@admin_required
def kanban():
    try:
        items = repositories.list_orders()
    except BackOfficeError:
        flash("Erro ao carregar pedidos", "error")
        items = []

    return render_template(
        'admin/kanban.html',
        columns=board_columns(items, utcnow()),
        status_labels=ORDER_STATUS_LABELS,
    )


@bp.route('/kanban/board')
@login_required
@admin_required
def kanban_board():
    """Board fragment re-fetched by the page on every change notification."""
    try:
        items = repositories.list_orders()
    except BackOfficeError as e:
        return json_error("Erro ao carregar pedidos", e.status_code)
    return render_template('admin/_kanban_board.html', columns=board_columns(items, utcnow()))

# ---------------- DELIVERIES ---------------- #

def parse_driver_form(form):
    name = form.get('name', '').strip()
    phone = form.get('phone', '').strip()
    if not name or not phone:
        raise ValidationError("Nome e telefone são obrigatórios")

    vehicle_type = form.get('vehicle_type', 'moto')
    if vehicle_type not in VEHICLE_TYPES:
        raise ValidationError("Tipo de veículo inválido")

    try:
        rate = float((form.get('commission_rate') or '0.10').replace(",", "."))
    except ValueError:
        raise ValidationError("Comissão inválida")
    if not 0 <= rate <= 1:
        raise ValidationError("Comissão deve estar entre 0 e 1")

    return {
        "name": name,
        "phone": phone,
        "vehicle_type": vehicle_type,
        "license_plate": form.get('license_plate', '').strip() or None,
        "commission_rate": rate,
        "active": 'active' in form,
    }


@bp.route('/deliveries')
@login_required
@admin_required
def deliveries():
    tab = request.args.get('tab', 'drivers')
    search = request.args.get('search', '').strip().lower()

    try:
        drivers = repositories.list_drivers()
        all_deliveries = repositories.list_deliveries()
        open_orders = [o for o in repositories.list_orders() if o.status not in ("delivered", "cancelled")]
        editing = repositories.get_driver(request.args['edit']) if request.args.get('edit') else None
    except BackOfficeError as e:
        flash(e.message, "error")
        drivers, all_deliveries, open_orders, editing = [], [], [], None

    shown_drivers = [
        d for d in drivers
        if not search or search in d.name.lower() or search in d.phone
    ]
    shown_deliveries = [
        d for d in all_deliveries
        if not search
        or (d.order and search in d.order.customer_name.lower())
        or (d.driver and search in d.driver.name.lower())
    ]

    return render_template(
        'admin/deliveries.html',
        tab=tab,
        search=search,
        drivers=[{"driver": d, "stats": analytics.driver_stats(d.id, all_deliveries)} for d in shown_drivers],
        all_drivers=drivers,
        deliveries=shown_deliveries,
        open_orders=open_orders,
        totals=analytics.delivery_totals(drivers, all_deliveries),
        editing=editing,
        vehicle_types=VEHICLE_TYPES,
        delivery_statuses=DELIVERY_STATUSES,
        delivery_labels=DELIVERY_STATUS_LABELS,
    )


@bp.route('/drivers', methods=['POST'])
@bp.route('/drivers/<driver_id>', methods=['POST'])
@login_required
@admin_required
def save_driver(driver_id=None):
    try:
        driver = repositories.get_driver(driver_id) if driver_id else None
        repositories.save_driver(parse_driver_form(request.form), driver)
    except BackOfficeError as e:
        flash(e.message, "error")
    else:
        flash("Entregador atualizado com sucesso!" if driver_id else "Entregador cadastrado com sucesso!", "success")
    return redirect(url_for('admin_orders.deliveries'))


@bp.route('/drivers/<driver_id>/delete', methods=['POST'])
@login_required
@admin_required
def delete_driver(driver_id):
    try:
        repositories.delete_driver(driver_id)
    except BackOfficeError:
        flash("Erro ao excluir entregador", "error")
    else:
        flash("Entregador excluído com sucesso!", "success")
    return redirect(url_for('admin_orders.deliveries'))


@bp.route('/deliveries/assign', methods=['POST'])
@login_required
@admin_required
def assign_delivery():
    try:
        fee = float((request.form.get('delivery_fee') or '0').replace(",", "."))
    except ValueError:
        flash("Taxa de entrega inválida", "error")
        return redirect(url_for('admin_orders.deliveries', tab='deliveries'))

    try:
        repositories.assign_delivery(
            request.form.get('order_id'),
            request.form.get('driver_id'),
            fee,
            request.form.get('notes', '').strip(),
        )
    except BackOfficeError as e:
        flash(e.message, "error")
    else:
        flash("Entrega designada com sucesso!", "success")
    return redirect(url_for('admin_orders.deliveries', tab='deliveries'))


@bp.route('/deliveries/<delivery_id>/status', methods=['POST'])
@login_required
@admin_required
def update_delivery_status(delivery_id):
    try:
        repositories.set_delivery_status(delivery_id, request.form.get('status', ''))
    except BackOfficeError as e:
        flash(e.message, "error")
    else:
        flash("Entrega atualizada!", "success")
    return redirect(url_for('admin_orders.deliveries', tab='deliveries'))
