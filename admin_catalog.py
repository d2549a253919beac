import logging

from flask import Blueprint, render_template, redirect, request, flash, url_for, abort
from flask_login import login_required

import analytics
import repositories
import storage
from decorators import admin_required
from errors import BackOfficeError, ValidationError, NotFound

logger = logging.getLogger(__name__)

bp = Blueprint('admin_catalog', __name__, url_prefix='/admin')


def _to_float(value, field, required=True):
    value = (value or "").strip().replace(",", ".")
    if not value:
        if required:
            raise ValidationError(f"{field} é obrigatório")
        return None
    try:
        number = float(value)
    except ValueError:
        raise ValidationError(f"{field} inválido")
    if number < 0:
        raise ValidationError(f"{field} não pode ser negativo")
    return number


def parse_product_form(form):
    name = form.get('name', '').strip()
    if not name:
        raise ValidationError("Nome do produto é obrigatório")

    stock = form.get('stock', '').strip()
    try:
        stock = int(stock)
    except ValueError:
        raise ValidationError("Estoque inválido")
    if stock < 0:
        raise ValidationError("Estoque não pode ser negativo")

    category_id = form.get('category_id') or None
    if category_id:
        repositories.get_category(category_id)

    return {
        "name": name,
        "description": form.get('description', '').strip() or None,
        "price": _to_float(form.get('price'), "Preço"),
        "cost": _to_float(form.get('cost'), "Custo", required=False),
        "stock": stock,
        "category_id": category_id,
        "active": 'active' in form,
    }

# ---------------- PRODUCTS ---------------- #

@bp.route('/products')
@login_required
@admin_required
def products():
    search = request.args.get('search', '').strip()
    try:
        items = repositories.list_products(newest_first=True)
        categories = repositories.list_categories()
    except BackOfficeError as e:
        flash(e.message, "error")
        items, categories = [], []

    shown = [p for p in items if search.lower() in p.name.lower()]
    rows = [{
        "product": p,
        "stock_status": analytics.stock_status(p.stock),
        "margin": analytics.profit_margin(p.price, p.cost),
    } for p in shown]

    return render_template(
        'admin/products.html',
        rows=rows,
        categories=categories,
        stats=analytics.product_stats(items),
        search=search,
    )


@bp.route('/products/new', methods=['GET', 'POST'])
@bp.route('/products/<product_id>/edit', methods=['GET', 'POST'])
@login_required
@admin_required
def product_form(product_id=None):
    try:
        product = repositories.get_product(product_id) if product_id else None
    except NotFound:
        abort(404)

    if request.method == 'POST':
        old_url = product.image_url if product else None
        new_url = None
        try:
            data = parse_product_form(request.form)

            upload = request.files.get('image')
            if upload and upload.filename:
                new_url = storage.save_image(upload)
                data["image_url"] = new_url
            elif 'remove_image' in request.form:
                data["image_url"] = None

            repositories.save_product(data, product)
        except BackOfficeError as e:
            # the row still points at the old image
            storage.delete_image_quietly(new_url)
            flash(e.message, "error")
            return render_template(
                'admin/product_form.html',
                product=product,
                form=request.form,
                categories=repositories.list_categories(),
            )

        if old_url and "image_url" in data and data["image_url"] != old_url:
            storage.delete_image_quietly(old_url)

        flash("Produto atualizado com sucesso!" if product else "Produto criado com sucesso!", "success")
        return redirect(url_for('admin_catalog.products'))

    return render_template(
        'admin/product_form.html',
        product=product,
        form={},
        categories=repositories.list_categories(),
    )


@bp.route('/products/<product_id>/delete', methods=['POST'])
@login_required
@admin_required
def delete_product(product_id):
    try:
        image_url = repositories.delete_product(product_id)
    except BackOfficeError as e:
        logger.error(f"Could not delete product {product_id}: {e.message}")
        flash("Erro ao excluir produto", "error")
        return redirect(url_for('admin_catalog.products'))

    # Don't fail the whole operation if image deletion fails
    storage.delete_image_quietly(image_url)

    flash("Produto excluído com sucesso!", "success")
    return redirect(url_for('admin_catalog.products'))

# ---------------- CATEGORIES ---------------- #

@bp.route('/categories', methods=['GET', 'POST'])
@login_required
@admin_required
def categories():
    if request.method == 'POST':
        category_id = request.form.get('category_id')
        try:
            category = repositories.get_category(category_id) if category_id else None
            repositories.save_category(
                request.form.get('name', ''),
                request.form.get('description', ''),
                category,
            )
        except BackOfficeError as e:
            flash(e.message, "error")
        else:
            flash("Categoria atualizada com sucesso!" if category_id else "Categoria criada com sucesso!", "success")
        return redirect(url_for('admin_catalog.categories'))

    editing = None
    edit_id = request.args.get('edit')
    try:
        items = repositories.list_categories()
        counts = repositories.product_counts_by_category()
        if edit_id:
            editing = repositories.get_category(edit_id)
    except BackOfficeError as e:
        flash(e.message, "error")
        items, counts = [], {}

    return render_template(
        'admin/categories.html',
        categories=items,
        counts=counts,
        editing=editing,
    )


@bp.route('/categories/<category_id>/delete', methods=['POST'])
@login_required
@admin_required
def delete_category(category_id):
    try:
        repositories.delete_category(category_id)
    except BackOfficeError as e:
        logger.error(f"Could not delete category {category_id}: {e.message}")
        flash("Erro ao excluir categoria", "error")
    else:
        flash("Categoria excluída com sucesso!", "success")
    return redirect(url_for('admin_catalog.categories'))
