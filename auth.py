import logging

from flask import Blueprint, render_template, redirect, request, flash, url_for
from flask_login import login_user, logout_user, login_required, current_user
from werkzeug.security import generate_password_hash, check_password_hash

import repositories
from errors import BackOfficeError

logger = logging.getLogger(__name__)

bp = Blueprint('auth', __name__)

MIN_PASSWORD_LENGTH = 6


def sign_in(email, password):
    """Returns the user when the credentials match, otherwise None."""
    user = repositories.find_user_by_email(email)
    if user and check_password_hash(user.password_hash, password or ""):
        login_user(user)
        logger.info(f"User {user.email} signed in")
        return user
    return None


def sign_up(email, password, name):
    email = (email or "").strip().lower()
    name = (name or "").strip()

    if not email or not name:
        raise BackOfficeError("Nome e email são obrigatórios")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise BackOfficeError(f"A senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres")
    if repositories.find_user_by_email(email):
        raise BackOfficeError("Este email já está cadastrado")

    user = repositories.create_user(email, name, generate_password_hash(password))
    login_user(user)
    logger.info(f"User {user.email} signed up")
    return user


def sign_out():
    logout_user()


# ---------------- ROUTES ---------------- #

@bp.route('/admin/login', methods=['GET', 'POST'])
def login():
    if current_user.is_authenticated:
        return redirect(url_for('admin_insights.dashboard'))

    mode = request.values.get('mode', 'signin')

    if request.method == 'POST':
        email = request.form.get('email', '')
        password = request.form.get('password', '')

        if mode == 'signup':
            try:
                sign_up(email, password, request.form.get('name', ''))
            except BackOfficeError as e:
                flash(e.message, "error")
                return render_template('login.html', mode=mode, email=email)
            flash("Conta criada com sucesso!", "success")
            return redirect(url_for('admin_insights.dashboard'))

        if sign_in(email, password):
            flash("Login realizado com sucesso!", "success")
            next_url = request.args.get('next')
            if next_url and next_url.startswith('/admin'):
                return redirect(next_url)
            return redirect(url_for('admin_insights.dashboard'))

        flash("Email ou senha inválidos", "error")

    return render_template('login.html', mode=mode, email=request.form.get('email', ''))


@bp.route('/admin/logout')
@login_required
def logout():
    sign_out()
    flash("Você saiu do painel.", "success")
    return redirect(url_for('auth.login'))


# old paths from before the admin area moved under /admin
LEGACY_PATHS = {
    'login': 'auth.login',
    'dashboard': 'admin_insights.dashboard',
    'products': 'admin_catalog.products',
    'categories': 'admin_catalog.categories',
    'orders': 'admin_orders.orders',
    'kanban': 'admin_orders.kanban',
    'whatsapp': 'admin_insights.whatsapp',
    'deliveries': 'admin_orders.deliveries',
    'users': 'admin_insights.users',
    'reports': 'admin_insights.reports',
    'settings': 'admin_insights.settings',
}


@bp.route('/<any(' + ', '.join(sorted(LEGACY_PATHS)) + '):page>')
def legacy_redirect(page):
    return redirect(url_for(LEGACY_PATHS[page]), code=301)
