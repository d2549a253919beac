import logging

from flask import (
    Blueprint, render_template, redirect, request, flash, url_for,
    send_file, current_app,
)
from flask_login import login_required

import analytics
import reports
import repositories
from decorators import admin_required
from errors import BackOfficeError, ValidationError
from models import utcnow
from whatsapp import customer_link, win_back_message, WHATSAPP_WEB

logger = logging.getLogger(__name__)

bp = Blueprint('admin_insights', __name__, url_prefix='/admin')

RECENT_ORDERS = 5

# ---------------- DASHBOARD ---------------- #

@bp.route('/dashboard')
@login_required
@admin_required
def dashboard():
    try:
        orders = repositories.list_orders()
        products = repositories.list_products()
        categories = repositories.list_categories()
    except BackOfficeError as e:
        flash(e.message, "error")
        orders, products, categories = [], [], []

    now = utcnow()
    return render_template(
        'admin/dashboard.html',
        stats=analytics.dashboard_stats(orders, products, categories),
        recent_orders=orders[:RECENT_ORDERS],
        weekly_sales=analytics.sales_by_weekday(orders, now),
        payments=analytics.payment_breakdown(orders),
    )

# ---------------- CUSTOMERS ---------------- #

@bp.route('/users')
@login_required
@admin_required
def users():
    search = request.args.get('search', '').strip()
    filter_type = request.args.get('filter', 'all')

    try:
        orders = repositories.list_orders()
    except BackOfficeError as e:
        flash(e.message, "error")
        orders = []

    customers = analytics.build_customers(orders, utcnow())
    shown = analytics.filter_customers(customers, search, filter_type)
    country_code = current_app.config['WHATSAPP_COUNTRY_CODE']
    for customer in shown:
        customer["whatsapp_url"] = customer_link(
            customer["customer_phone"],
            win_back_message(customer["customer_name"]),
            country_code,
        )

    return render_template(
        'admin/users.html',
        customers=shown,
        stats=analytics.customer_stats(customers),
        search=search,
        filter_type=filter_type,
    )

# ---------------- REPORTS ---------------- #

def report_filters(args):
    default_start, default_end = reports.default_period()
    start = reports.parse_day(args.get('start'), default_start)
    end = reports.parse_day(args.get('end'), default_end)
    if start > end:
        raise ValidationError("A data inicial deve ser anterior à data final")
    return start, end, args.get('status', ''), args.get('payment', '')


@bp.route('/reports', endpoint='reports')
@login_required
@admin_required
def reports_page():
    try:
        start, end, status, payment = report_filters(request.args)
        rows = reports.filter_rows(reports.fetch_rows(start, end), status, payment)
    except BackOfficeError as e:
        flash(e.message, "error")
        start, end = reports.default_period()
        status, payment, rows = '', '', []

    return render_template(
        'admin/reports.html',
        rows=rows,
        summary=reports.summarize(rows),
        start=start,
        end=end,
        status_filter=status,
        payment_filter=payment,
    )


@bp.route('/reports/export')
@login_required
@admin_required
def export_report():
    try:
        start, end, status, payment = report_filters(request.args)
        rows = reports.filter_rows(reports.fetch_rows(start, end), status, payment)
    except BackOfficeError as e:
        flash(e.message, "error")
        return redirect(url_for('admin_insights.reports', **request.args))

    if not rows:
        flash("Nenhum dado para exportar", "error")
        return redirect(url_for('admin_insights.reports', **request.args))

    return send_file(
        reports.export_to_excel(rows),
        as_attachment=True,
        download_name=reports.export_filename(start, end),
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )

# ---------------- WHATSAPP ---------------- #

@bp.route('/whatsapp', methods=['GET', 'POST'])
@login_required
@admin_required
def whatsapp():
    try:
        settings = repositories.get_whatsapp_settings()
    except BackOfficeError as e:
        flash(e.message, "error")
        return redirect(url_for('admin_insights.dashboard'))

    if request.method == 'POST':
        action = request.form.get('action', 'save')
        data = {}
        if action in ('save', 'connect'):
            data = {
                "business_phone": request.form.get('business_phone', '').strip(),
                "business_name": request.form.get('business_name', '').strip() or settings.business_name,
                "auto_reply_enabled": 'auto_reply_enabled' in request.form,
                "auto_reply_message": request.form.get('auto_reply_message', '').strip(),
            }

        if action == 'connect':
            if not data["business_phone"]:
                flash("Digite o número do WhatsApp Business", "error")
                return redirect(url_for('admin_insights.whatsapp'))
            data["connected"] = True
            message = "WhatsApp conectado com sucesso!"
        elif action == 'disconnect':
            data["connected"] = False
            message = "WhatsApp desconectado"
        else:
            message = "Configurações salvas com sucesso!"

        try:
            repositories.save_whatsapp_settings(settings, data)
        except BackOfficeError as e:
            flash(e.message, "error")
        else:
            flash(message, "success")
        return redirect(url_for('admin_insights.whatsapp'))

    try:
        orders = repositories.list_orders(limit=20)
    except BackOfficeError:
        orders = []

    country_code = current_app.config['WHATSAPP_COUNTRY_CODE']
    recent = []
    for customer in analytics.build_customers(orders)[:10]:
        customer["whatsapp_url"] = customer_link(
            customer["customer_phone"], f"Olá {customer['customer_name']}!", country_code
        )
        recent.append(customer)

    return render_template(
        'admin/whatsapp.html',
        settings=settings,
        customers=recent,
        whatsapp_web=WHATSAPP_WEB,
    )

# ---------------- SETTINGS ---------------- #

@bp.route('/settings', methods=['GET', 'POST'])
@login_required
@admin_required
def settings():
    try:
        establishment = repositories.require_establishment()
    except BackOfficeError as e:
        flash(e.message, "error")
        return redirect(url_for('admin_insights.dashboard'))

    if request.method == 'POST':
        name = request.form.get('name', '').strip()
        if not name:
            flash("Nome do estabelecimento é obrigatório", "error")
            return redirect(url_for('admin_insights.settings'))

        try:
            repositories.update_establishment(establishment, {
                "name": name,
                "phone": request.form.get('phone', '').strip(),
                "address": request.form.get('address', '').strip(),
                "theme_color": request.form.get('theme_color', '').strip() or establishment.theme_color,
                "logo_url": request.form.get('logo_url', '').strip() or None,
            })
        except BackOfficeError as e:
            flash(e.message, "error")
        else:
            flash("Configurações salvas com sucesso!", "success")
        return redirect(url_for('admin_insights.settings'))

    return render_template('admin/settings.html', establishment=establishment)
