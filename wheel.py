"""
Lucky wheel promotion: one spin per IP address per calendar day.

The prize is fixed (segment 0, 5% off); the rotation returned to the browser
only drives the animation.
"""
import random
import string
import logging
from datetime import datetime, time, timedelta

import repositories
from errors import SpinNotAllowed
from models import utcnow

logger = logging.getLogger(__name__)

WHEEL_SEGMENTS = [
    {"id": 1, "label": "5% OFF", "color": "#DC2626", "value": 5, "type": "discount"},
    {"id": 2, "label": "Pod gratuito", "color": "#7C2D12", "value": 0, "type": "product"},
    {"id": 3, "label": "10% OFF", "color": "#991B1B", "value": 10, "type": "discount"},
    {"id": 4, "label": "20% OFF", "color": "#B91C1C", "value": 0, "type": "product"},
    {"id": 5, "label": "25% OFF", "color": "#DC2626", "value": 15, "type": "discount"},
    {"id": 6, "label": "Entrega gratuita", "color": "#7C2D12", "value": 0, "type": "product"},
    {"id": 7, "label": "30% OFF", "color": "#991B1B", "value": 20, "type": "discount"},
    {"id": 8, "label": "50% OFF", "color": "#B91C1C", "value": 0, "type": "product"},
]

WINNING_INDEX = 0
COUPON_PREFIX = "BIGODE"
COUPON_CHARS = string.ascii_uppercase + string.digits


def day_bounds(now=None):
    """Start of the current UTC-naive date and start of the next one."""
    start = datetime.combine((now or utcnow()).date(), time(0, 0, 0))
    return start, start + timedelta(days=1)


def check_eligibility(user_ip, now=None):
    start, end = day_bounds(now)
    return repositories.count_spins(user_ip, start, end) == 0


def generate_coupon_code(rng=random):
    return COUPON_PREFIX + "".join(rng.choice(COUPON_CHARS) for _ in range(4))


def spin_rotation(current_rotation=0.0, segment_index=WINNING_INDEX, rng=random):
    """Final CSS rotation (degrees) that lands the pointer on ``segment_index``."""
    segment_angle = 360 / len(WHEEL_SEGMENTS)
    segment_center = segment_index * segment_angle + segment_angle / 2

    clockwise = rng.random() > 0.5
    full_rotations = 8 + rng.random() * 4

    # pointer sits at 0 degrees
    target_angle = 360 - segment_center
    final_target = target_angle + (rng.random() - 0.5) * 30

    if clockwise:
        total = current_rotation + full_rotations * 360 + final_target
    else:
        total = current_rotation - full_rotations * 360 - final_target

    while total < 0:
        total += 360
    return total


def spin(user_ip, current_rotation=0.0, rng=random, now=None):
    if not check_eligibility(user_ip, now):
        raise SpinNotAllowed("Você já girou a roleta hoje. Volte amanhã!")

    segment = WHEEL_SEGMENTS[WINNING_INDEX]
    coupon_code = generate_coupon_code(rng)
    rotation = spin_rotation(current_rotation, WINNING_INDEX, rng)

    repositories.record_spin(
        user_ip=user_ip,
        winning_segment=segment["label"],
        discount_value=segment["value"],
        coupon_code=coupon_code,
        created_at=now,
    )
    logger.info(f"Wheel spin for {user_ip}: {segment['label']} ({coupon_code})")

    return {
        "segment_index": WINNING_INDEX,
        "segment": segment["label"],
        "discount": segment["value"],
        "coupon_code": coupon_code,
        "rotation": rotation,
    }


def coupon_discount(code):
    """Discount percent granted by a wheel coupon, or None when unknown."""
    found = repositories.find_spin_by_coupon(code)
    return found.discount_value if found else None
