import os

from werkzeug.security import generate_password_hash

from app import app
from extensions import db
from models import Establishment, Category, User

with app.app_context():
    db.create_all()
    print("✅ Tables created")

    establishment = Establishment.query.first()
    if establishment is None:
        establishment = Establishment(
            name=os.getenv("ESTABLISHMENT_NAME", "Bigode System"),
            phone=os.getenv("ESTABLISHMENT_PHONE", ""),
            address=os.getenv("ESTABLISHMENT_ADDRESS", app.config["DEFAULT_CITY"]),
        )
        db.session.add(establishment)
        db.session.commit()
        print(f"✅ Establishment '{establishment.name}' created")

    if Category.query.count() == 0:
        for name in ("Pods", "Essências", "Acessórios"):
            db.session.add(Category(name=name, establishment_id=establishment.id))
        db.session.commit()
        print("✅ Default categories created")

    email = os.getenv("ADMIN_EMAIL", "admin@bigode.local").strip().lower()
    if User.query.filter_by(email=email).first() is None:
        db.session.add(User(
            email=email,
            name=os.getenv("ADMIN_NAME", "Administrador"),
            password_hash=generate_password_hash(os.getenv("ADMIN_PASSWORD", "admin123")),
            role="admin",
            establishment_id=establishment.id,
        ))
        db.session.commit()
        print(f"✅ Admin account {email} created")
