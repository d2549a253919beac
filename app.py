from flask import Flask, render_template, send_from_directory, redirect, url_for, request, session
from sqlalchemy.exc import SQLAlchemyError
import logging

from config import Config, setup_logging
from extensions import db, login_manager
from models import User
from labels import (
    ORDER_STATUSES, ORDER_STATUS_LABELS, PAYMENT_METHODS, PAYMENT_LABELS,
    payment_label, order_status_label,
)
import cart as cart_store
import realtime  # registers the orders change hooks  # noqa: F401

logger = logging.getLogger(__name__)

# ---------------- APP CONFIG ---------------- #

setup_logging()

app = Flask(__name__)
app.config.from_object(Config)

db.init_app(app)
login_manager.init_app(app)
login_manager.login_view = 'auth.login'
login_manager.login_message = "Faça login para acessar o painel."
login_manager.login_message_category = "error"

# ---------------- LOGIN ---------------- #

@login_manager.user_loader
def load_user(user_id):
    try:
        return db.session.get(User, user_id)
    except SQLAlchemyError as e:
        logger.error(f"Failed to load user {user_id}: {str(e)}")
        return None

# ---------------- CONTEXT ---------------- #

@app.context_processor
def inject_globals():
    return dict(
        cart_count=cart_store.total_items(cart_store.load_cart(session)),
        order_statuses=ORDER_STATUSES,
        status_labels=ORDER_STATUS_LABELS,
        payment_methods=PAYMENT_METHODS,
        payment_labels=PAYMENT_LABELS,
    )


@app.template_filter('brl')
def brl(value):
    """12.5 -> 'R$ 12,50'"""
    value = float(value or 0)
    text = f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"R$ {text}"


@app.template_filter('date_br')
def date_br(value):
    return value.strftime("%d/%m/%Y") if value else ""


@app.template_filter('time_br')
def time_br(value):
    return value.strftime("%H:%M") if value else ""


app.jinja_env.filters['payment_label'] = payment_label
app.jinja_env.filters['status_label'] = order_status_label

# ---------------- BLUEPRINTS ---------------- #

from auth import bp as auth_bp  # noqa: E402
from storefront import bp as storefront_bp  # noqa: E402
from tracking import bp as tracking_bp  # noqa: E402
from admin_catalog import bp as admin_catalog_bp  # noqa: E402
from admin_orders import bp as admin_orders_bp  # noqa: E402
from admin_insights import bp as admin_insights_bp  # noqa: E402

app.register_blueprint(auth_bp)
app.register_blueprint(storefront_bp)
app.register_blueprint(tracking_bp)
app.register_blueprint(admin_catalog_bp)
app.register_blueprint(admin_orders_bp)
app.register_blueprint(admin_insights_bp)

# ---------------- FILES ---------------- #

@app.route('/uploads/<path:filename>')
def uploaded_file(filename):
    return send_from_directory(app.config['UPLOAD_FOLDER'], filename)

# ---------------- ERRORS ---------------- #

@app.errorhandler(401)
def unauthorized(e):
    return redirect(url_for('auth.login', next=request.path))


@app.errorhandler(404)
def not_found(e):
    return render_template('404.html'), 404


# ---------------- RUN ---------------- #

if __name__ == '__main__':
    with app.app_context():
        db.create_all()
    app.run(debug=True, threaded=True)
