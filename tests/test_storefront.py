from extensions import db
from models import Order


def test_menu_lists_active_products(client, products):
    products["essence"].active = False
    db.session.commit()

    resp = client.get("/")
    body = resp.get_data(as_text=True)
    assert resp.status_code == 200
    assert "Pod Menta" in body
    assert "Essência Uva" not in body


def test_menu_rotating_banner(client, app, products, monkeypatch):
    monkeypatch.setitem(app.config, "BANNER_IMAGES", ["/static/a.jpg", "/static/b.jpg"])
    monkeypatch.setitem(app.config, "BANNER_ROTATE_MS", 4000)

    body = client.get("/").get_data(as_text=True)
    assert 'data-interval="4000"' in body
    assert 'src="/static/a.jpg"' in body
    assert 'src="/static/b.jpg" alt="" hidden' in body
    assert 'data-slide="1"' in body

    monkeypatch.setitem(app.config, "BANNER_IMAGES", [])
    assert 'id="banner"' not in client.get("/").get_data(as_text=True)


def test_menu_search_and_category(client, products, category):
    body = client.get("/menu", query_string={"search": "menta"}).get_data(as_text=True)
    assert "Pod Menta" in body
    assert "Pod Esgotado" not in body

    body = client.get("/menu", query_string={"category": category.id}).get_data(as_text=True)
    assert "Pod Esgotado" not in body
    assert "Essência Uva" in body


def test_cannot_add_sold_out_product(client, products):
    resp = client.post(f"/api/cart/add/{products['sold_out'].id}")
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False
    assert "Estoque insuficiente" in resp.get_json()["error"]


def test_cannot_add_beyond_stock(client, products):
    essence = products["essence"]
    for expected in (1, 2, 3):
        resp = client.post(f"/api/cart/add/{essence.id}")
        assert resp.get_json()["quantity"] == expected

    resp = client.post(f"/api/cart/add/{essence.id}")
    assert resp.status_code == 400
    with client.session_transaction() as sess:
        assert sess["cart"][essence.id]["qty"] == 3


def test_update_and_remove_cart_line(client, products):
    pod = products["pod"]
    client.post(f"/cart/add/{pod.id}")

    client.post(f"/cart/update/{pod.id}", data={"quantity": "4"})
    with client.session_transaction() as sess:
        assert sess["cart"][pod.id]["qty"] == 4

    client.post(f"/cart/update/{pod.id}", data={"quantity": "9"})
    with client.session_transaction() as sess:
        assert sess["cart"][pod.id]["qty"] == 4

    client.post(f"/cart/remove/{pod.id}")
    with client.session_transaction() as sess:
        assert pod.id not in sess["cart"]


def test_checkout_creates_order_and_clears_cart(client, products):
    pod, essence = products["pod"], products["essence"]
    client.post(f"/api/cart/add/{pod.id}")
    client.post(f"/api/cart/add/{pod.id}")
    client.post(f"/api/cart/add/{essence.id}")
    client.post(f"/cart/notes/{pod.id}", data={"notes": "sem gelo"})

    resp = client.post("/checkout", data={
        "name": "Maria",
        "phone": "(66) 99999-1111",
        "street": "Rua A",
        "number": "10",
        "neighborhood": "Centro",
        "city": "",
        "reference": "",
        "payment_method": "pix",
    })

    assert resp.status_code == 302
    order = Order.query.one()
    assert resp.headers["Location"].endswith(f"/acompanhar/{order.id}")
    assert order.total == 25.50
    assert order.payment_method == "pix"
    assert order.delivery_address == "Rua A, 10, Centro, Sorriso - MT"
    assert {i.notes for i in order.items} == {"sem gelo", None}

    with client.session_transaction() as sess:
        assert "cart" not in sess


def test_checkout_requires_name_and_phone(client, products):
    client.post(f"/api/cart/add/{products['pod'].id}")
    resp = client.post("/checkout", data={"name": "", "phone": "", "payment_method": "pix"})
    assert resp.status_code == 302
    assert "cart=1" in resp.headers["Location"]
    assert Order.query.count() == 0


def test_checkout_with_empty_cart(client, products):
    client.post("/checkout", data={"name": "Maria", "phone": "1", "payment_method": "pix"})
    assert Order.query.count() == 0


def test_wheel_coupon_discounts_checkout(client, products):
    client.post("/api/wheel/spin", json={})
    client.post(f"/api/cart/add/{products['pod'].id}")
    client.post("/checkout", data={"name": "Ana", "phone": "2", "payment_method": "dinheiro"})

    order = Order.query.one()
    assert order.discount_percent == 5
    assert order.total == 9.5


def test_invalid_coupon(client, products):
    resp = client.post("/coupon", data={"coupon_code": "NOPE"}, follow_redirects=True)
    assert "Cupom inválido" in resp.get_data(as_text=True)


def test_track_by_phone(client, place_order):
    order = place_order(phone="(66) 98888-7777")

    resp = client.post("/track", data={"phone": "(66) 98888-7777"})
    assert resp.headers["Location"].endswith(f"/acompanhar/{order.id}")

    resp = client.post("/track", data={"phone": "000"}, follow_redirects=True)
    assert "Nenhum pedido encontrado com este telefone" in resp.get_data(as_text=True)


def test_tracking_page(client, place_order):
    order = place_order()
    body = client.get(f"/acompanhar/{order.id}").get_data(as_text=True)
    assert f"#{order.short_id}" in body
    assert "Pedido Recebido" in body
    assert "5-10 minutos para confirmação" in body
    assert "wa.me/5511999999999" in body


def test_tracking_unknown_order(client, establishment):
    resp = client.get("/acompanhar/nao-existe")
    assert resp.status_code == 404
    assert "Pedido não encontrado" in resp.get_data(as_text=True)


def test_order_json(client, place_order):
    order = place_order()
    data = client.get(f"/api/orders/{order.id}").get_json()
    assert data["order"]["total"] == 25.50
    assert data["order"]["status_label"] == "Aguardando"
    assert data["order"]["step_index"] == 0
    assert len(data["order"]["items"]) == 2

    assert client.get("/api/orders/nao-existe").status_code == 404
