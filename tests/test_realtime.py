import json

import pytest

import repositories
from realtime import (
    ChangeBroker, broker, event_stream, format_sse, order_topic, ORDERS_TOPIC,
)


@pytest.fixture
def orders_feed():
    q = broker.subscribe(ORDERS_TOPIC)
    yield q
    broker.unsubscribe(ORDERS_TOPIC, q)


def drain(q):
    items = []
    while not q.empty():
        items.append(q.get_nowait())
    return items


def test_insert_is_published_after_commit(orders_feed, place_order):
    order = place_order()

    changes = drain(orders_feed)
    assert {"event": "INSERT", "table": "orders", "id": order.id, "status": "pending"} in changes


def test_status_update_reaches_order_topic(orders_feed, place_order):
    order = place_order()
    drain(orders_feed)

    single = broker.subscribe(order_topic(order.id))
    try:
        repositories.set_order_status(order.id, "preparing")
        change = single.get_nowait()
    finally:
        broker.unsubscribe(order_topic(order.id), single)

    assert change["event"] == "UPDATE"
    assert change["status"] == "preparing"
    assert any(c["id"] == order.id for c in drain(orders_feed))


def test_rolled_back_changes_are_not_published(orders_feed, place_order):
    from extensions import db

    order = place_order()
    drain(orders_feed)

    order.status = "ready"
    db.session.flush()
    db.session.rollback()

    assert drain(orders_feed) == []


def test_broker_fan_out_and_unsubscribe():
    b = ChangeBroker()
    first = b.subscribe("orders")
    second = b.subscribe("orders")
    b.publish("orders", {"id": "1"})

    assert first.get_nowait() == {"id": "1"}
    assert second.get_nowait() == {"id": "1"}

    b.unsubscribe("orders", first)
    b.unsubscribe("orders", second)
    assert b.subscriber_count("orders") == 0


def test_full_queue_drops_changes():
    b = ChangeBroker(max_queue=1)
    q = b.subscribe("orders")
    b.publish("orders", {"n": 1})
    b.publish("orders", {"n": 2})
    assert q.qsize() == 1


def test_format_sse():
    assert format_sse({"a": 1}) == 'data: {"a": 1}\n\n'
    assert format_sse({"a": 1}, "change") == 'event: change\ndata: {"a": 1}\n\n'


def test_event_stream_heartbeat_and_change():
    b = ChangeBroker()
    stream = event_stream("orders", heartbeat=0.01, change_broker=b)

    assert next(stream) == "retry: 3000\n\n"
    assert b.subscriber_count("orders") == 1
    assert next(stream) == ": keep-alive\n\n"

    b.publish("orders", {"id": "abc"})
    message = next(stream)
    assert message.startswith("event: change\n")
    assert json.loads(message.split("data: ", 1)[1]) == {"id": "abc"}

    stream.close()
    assert b.subscriber_count("orders") == 0
