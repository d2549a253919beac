"""
Change notification for the ``orders`` table.

Committed inserts, updates and deletes of ``Order`` rows are published on the
``orders`` topic and on ``orders:<id>``. Pages subscribe through a
Server-Sent Events stream and simply re-fetch when anything arrives; there
is no merge with pending local edits.
"""
import json
import logging
import queue
import threading

from sqlalchemy import event
from sqlalchemy.orm import Session

from models import Order

logger = logging.getLogger(__name__)

ORDERS_TOPIC = "orders"
_PENDING_KEY = "pending_order_changes"


def order_topic(order_id):
    return f"{ORDERS_TOPIC}:{order_id}"


class ChangeBroker:
    """Fan-out of change payloads to per-subscriber queues."""

    def __init__(self, max_queue=100):
        self._lock = threading.Lock()
        self._subscribers = {}
        self._max_queue = max_queue

    def subscribe(self, topic):
        q = queue.Queue(maxsize=self._max_queue)
        with self._lock:
            self._subscribers.setdefault(topic, set()).add(q)
        return q

    def unsubscribe(self, topic, q):
        with self._lock:
            subscribers = self._subscribers.get(topic)
            if subscribers is None:
                return
            subscribers.discard(q)
            if not subscribers:
                del self._subscribers[topic]

    def subscriber_count(self, topic):
        with self._lock:
            return len(self._subscribers.get(topic, ()))

    def publish(self, topic, payload):
        with self._lock:
            targets = list(self._subscribers.get(topic, ()))

        for q in targets:
            try:
                q.put_nowait(payload)
            except queue.Full:
                # a slow reader only needs to know something changed
                logger.warning(f"Dropping change for slow subscriber on {topic}")


broker = ChangeBroker()


# ---------------- SQLALCHEMY HOOKS ---------------- #

@event.listens_for(Session, "after_flush")
def _collect_order_changes(session, flush_context):
    pending = session.info.setdefault(_PENDING_KEY, [])
    for kind, objects in (("INSERT", session.new),
                          ("UPDATE", session.dirty),
                          ("DELETE", session.deleted)):
        for obj in objects:
            if isinstance(obj, Order):
                if kind == "UPDATE" and not session.is_modified(obj):
                    continue
                pending.append({
                    "event": kind,
                    "table": "orders",
                    "id": obj.id,
                    "status": obj.status,
                })


@event.listens_for(Session, "after_commit")
def _publish_order_changes(session):
    pending = session.info.pop(_PENDING_KEY, [])
    for change in pending:
        broker.publish(ORDERS_TOPIC, change)
        broker.publish(order_topic(change["id"]), change)


@event.listens_for(Session, "after_soft_rollback")
def _discard_order_changes(session, previous_transaction):
    session.info.pop(_PENDING_KEY, None)


# ---------------- SSE ---------------- #

def format_sse(data, event_name=None):
    msg = f"data: {json.dumps(data)}\n\n"
    if event_name:
        msg = f"event: {event_name}\n{msg}"
    return msg


def event_stream(topic, heartbeat=15.0, change_broker=None):
    """Generator for a streamed response; unsubscribes when the client goes away."""
    change_broker = change_broker or broker
    q = change_broker.subscribe(topic)
    logger.debug(f"SSE subscriber joined {topic}")
    try:
        yield "retry: 3000\n\n"
        while True:
            try:
                payload = q.get(timeout=heartbeat)
            except queue.Empty:
                yield ": keep-alive\n\n"
                continue
            yield format_sse(payload, event_name="change")
    finally:
        change_broker.unsubscribe(topic, q)
        logger.debug(f"SSE subscriber left {topic}")
