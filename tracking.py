from flask import (
    Blueprint, render_template, jsonify, current_app, Response, abort,
)

import repositories
from decorators import json_error
from errors import NotFound, BackOfficeError
from labels import TRACKING_STEPS, tracking_step_index, order_status_label
from realtime import event_stream, order_topic
from whatsapp import wa_link, tracking_inquiry_message

bp = Blueprint('tracking', __name__)


def step_times(order):
    """First time each status was reached, from the status history."""
    reached = {}
    for entry in order.status_history:
        reached.setdefault(entry.status, entry.changed_at)
    return reached


def order_payload(order):
    return {
        "id": order.id,
        "short_id": order.short_id,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "total": order.total,
        "status": order.status,
        "status_label": order_status_label(order.status),
        "step_index": tracking_step_index(order.status),
        "payment_method": order.payment_method,
        "delivery_address": order.delivery_address,
        "created_at": order.created_at.isoformat(),
        "updated_at": order.updated_at.isoformat() if order.updated_at else None,
        "items": [
            {
                "product_id": item.product_id,
                "name": item.product_name,
                "quantity": item.quantity,
                "price": item.price,
                "notes": item.notes,
            }
            for item in order.items
        ],
    }


@bp.route('/acompanhar/<order_id>')
def track(order_id):
    try:
        order = repositories.get_order(order_id)
    except NotFound:
        return render_template('order_not_found.html'), 404

    step = tracking_step_index(order.status)
    eta = TRACKING_STEPS[step]["eta"] if step >= 0 else ""
    inquiry = wa_link(current_app.config['WHATSAPP_NUMBER'], tracking_inquiry_message(order))

    return render_template(
        'tracking.html',
        order=order,
        steps=TRACKING_STEPS,
        current_step=step,
        eta=eta,
        reached=step_times(order),
        whatsapp_url=inquiry,
    )


@bp.route('/api/orders/<order_id>')
def api_order(order_id):
    try:
        order = repositories.get_order(order_id)
    except BackOfficeError as e:
        return json_error(e.message, e.status_code)
    return jsonify({"success": True, "order": order_payload(order)})


@bp.route('/api/orders/<order_id>/stream')
def order_stream(order_id):
    try:
        repositories.get_order(order_id)
    except NotFound:
        abort(404)

    heartbeat = current_app.config['SSE_HEARTBEAT_SECONDS']
    return Response(
        event_stream(order_topic(order_id), heartbeat),
        mimetype='text/event-stream',
        headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'},
    )
