import os
import tempfile

# must be set before the app module reads its configuration
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["UPLOAD_FOLDER"] = tempfile.mkdtemp(prefix="bigode-uploads-")
os.environ["SECRET_KEY"] = "test-secret"

import pytest
from werkzeug.security import generate_password_hash

from app import app as flask_app
from extensions import db
from models import Establishment, Category, Product, User

ADMIN_EMAIL = "admin@bigode.test"
ADMIN_PASSWORD = "segredo123"


@pytest.fixture
def app():
    flask_app.config.update(TESTING=True)
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def establishment(app):
    est = Establishment(name="Bigode Tabacaria", phone="(66) 3333-4444", address="Rua Central, 10")
    db.session.add(est)
    db.session.commit()
    return est


@pytest.fixture
def category(establishment):
    cat = Category(name="Pods", establishment_id=establishment.id)
    db.session.add(cat)
    db.session.commit()
    return cat


@pytest.fixture
def products(establishment, category):
    """``pod`` 10.00 (stock 5), ``essence`` 5.50 (stock 3), ``sold_out`` (stock 0)."""
    pod = Product(name="Pod Menta", price=10.00, cost=6.00, stock=5,
                  category_id=category.id, establishment_id=establishment.id)
    essence = Product(name="Essência Uva", price=5.50, cost=2.00, stock=3,
                      category_id=category.id, establishment_id=establishment.id)
    sold_out = Product(name="Pod Esgotado", price=30.00, stock=0,
                       establishment_id=establishment.id)
    db.session.add_all([pod, essence, sold_out])
    db.session.commit()
    return {"pod": pod, "essence": essence, "sold_out": sold_out}


@pytest.fixture
def admin_user(establishment):
    user = User(
        email=ADMIN_EMAIL,
        name="Admin",
        password_hash=generate_password_hash(ADMIN_PASSWORD),
        role="admin",
        establishment_id=establishment.id,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def admin_client(client, admin_user):
    resp = client.post("/admin/login", data={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 302
    return client


@pytest.fixture
def place_order(products):
    """Creates an order straight through the data layer."""
    import repositories

    def _place(lines=None, payment_method="dinheiro", name="Maria", phone="(66) 99999-1111"):
        if lines is None:
            lines = [(products["pod"], 2), (products["essence"], 1)]
        return repositories.create_order(
            customer_name=name,
            customer_phone=phone,
            payment_method=payment_method,
            lines=[{"product": p, "qty": q, "notes": ""} for p, q in lines],
            delivery_address="Rua A, 1, Centro, Sorriso - MT",
        )
    return _place
