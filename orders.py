"""
Order lifecycle.

Orders are created straight into ``confirmed`` from a submitted cart, with the
meal name, unit price and image copied into the order so later catalog edits
never change a placed order. Two independent time rules apply to a new order,
both measured from ``created_at`` on the server clock:

* the admin visibility delay: staff only see an order once it is older than
  the delay, until then it is only counted in ``pending_count``;
* the cancel window: the owner may cancel a confirmed order while it is no
  older than the window.

The two happen to share a default value but are configured separately.
"""
import logging
from collections import Counter
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from config import Config
from errors import AuthorizationError, InvalidState, NotFound, ValidationError, WindowExpired
from models import (
    Meal, Order, User, id_in_range, utcnow,
    ADMIN_SETTABLE_STATUSES, PAYMENT_METHODS,
    STATUS_CANCELLED, STATUS_COMPLETED, STATUS_CONFIRMED, STATUS_PENDING,
)

logger = logging.getLogger(__name__)

ADMIN_VISIBILITY_DELAY = timedelta(seconds=Config.ORDER_ADMIN_VISIBILITY_DELAY_SECONDS)
CANCEL_WINDOW = timedelta(seconds=Config.ORDER_CANCEL_WINDOW_SECONDS)

# statuses an admin can ever see; legacy "pending" rows are left out
ADMIN_VISIBLE_STATUSES = (STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED)

POPULAR_ITEMS_LIMIT = 5


def _get_order(s: Session, order_id: int) -> Order:
    order = s.get(Order, order_id) if id_in_range(order_id) else None
    if not order:
        raise NotFound("Order not found")
    return order


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() + "Z" if dt else None


def order_to_dict(order: Order) -> dict:
    return {
        "id": order.id,
        "items": order.items,
        "totalPrice": float(order.total_price),
        "pickupTime": order.pickup_time.strftime("%H:%M"),
        "paymentMethod": order.payment_method,
        "status": order.status,
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
    }


def admin_order_to_dict(order: Order) -> dict:
    out = order_to_dict(order)
    out["userId"] = order.user_id
    out["userName"] = order.user.name if order.user else "Unknown"
    return out


def status_to_dict(order: Order) -> dict:
    return {"id": order.id, "status": order.status}


# -----------------------
# Creation
# -----------------------
def create_order(
    s: Session,
    user: User,
    items: Iterable[Tuple[int, int]],
    pickup_time: time,
    payment_method: str,
    now: Optional[datetime] = None,
) -> Order:
    """
    Prices a cart and stores it as a confirmed order.

    ``items`` is a sequence of ``(meal_id, quantity)`` pairs. Every meal is
    read once, its current name, price and image are copied into the order
    lines, and ``total_price`` is fixed here for good.
    """
    items = list(items)
    if not items:
        raise ValidationError(errors={"items": ["The items field is required."]})
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(errors={"paymentMethod": ["The selected payment method is invalid."]})

    now = now or utcnow()
    lines = []
    total = Decimal("0")

    for meal_id, quantity in items:
        if quantity < 1:
            raise ValidationError(errors={"quantity": ["The quantity must be at least 1."]})

        meal = s.get(Meal, meal_id) if id_in_range(meal_id) else None
        if not meal:
            raise NotFound(f"Meal {meal_id} not found")

        price = Decimal(str(meal.price))
        total += price * quantity
        lines.append({
            "mealId": meal.id,
            "mealName": meal.name,
            "quantity": quantity,
            "price": float(price),
            "imageUrl": meal.image_url,
        })

    order = Order(
        user_id=user.id,
        items=lines,
        total_price=total,
        pickup_time=pickup_time,
        payment_method=payment_method,
        status=STATUS_CONFIRMED,
        created_at=now,
        updated_at=now,
    )
    s.add(order)
    s.flush()

    logger.info("order %s created by user %s, total %s", order.id, user.id, total)
    return order


# -----------------------
# Queries
# -----------------------
def list_orders(s: Session, user: User) -> List[Order]:
    # owners see their orders right away, no delay
    return (
        s.query(Order)
        .filter(Order.user_id == user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def list_for_admin(
    s: Session,
    now: Optional[datetime] = None,
    delay: timedelta = ADMIN_VISIBILITY_DELAY,
) -> Tuple[List[Order], int]:
    """
    Returns ``(orders, pending_count)``.

    Visibility depends only on the age of the order, so an order cancelled
    inside the delay still stays hidden until the delay has passed.
    """
    cutoff = (now or utcnow()) - delay

    orders = (
        s.query(Order)
        .options(joinedload(Order.user))
        .filter(Order.status.in_(ADMIN_VISIBLE_STATUSES))
        .filter(Order.created_at <= cutoff)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )

    pending_count = (
        s.query(Order)
        .filter(Order.status == STATUS_CONFIRMED)
        .filter(Order.created_at > cutoff)
        .count()
    )

    return orders, pending_count


def order_statistics(orders: Iterable[Order]) -> dict:
    orders = list(orders)
    by_status = Counter(o.status for o in orders)

    live = [o for o in orders if o.status != STATUS_CANCELLED]
    revenue = sum((Decimal(str(o.total_price)) for o in live), Decimal("0"))

    item_counts: Counter = Counter()
    for o in live:
        for line in o.items or []:
            item_counts[line.get("mealName")] += int(line.get("quantity", 0))

    return {
        "totalOrders": len(orders),
        "confirmedOrders": by_status[STATUS_CONFIRMED],
        "completedOrders": by_status[STATUS_COMPLETED],
        "cancelledOrders": by_status[STATUS_CANCELLED],
        "pendingOrders": by_status[STATUS_PENDING],
        "totalRevenue": float(revenue),
        "popularItems": [
            {"name": name, "count": count}
            for name, count in item_counts.most_common(POPULAR_ITEMS_LIMIT)
        ],
    }


# -----------------------
# Transitions
# -----------------------
def update_status(s: Session, order_id: int, status: str, now: Optional[datetime] = None) -> Order:
    """
    Admin status change. Any of confirmed/completed/cancelled may be set from
    any current status, including reviving a cancelled order.
    """
    if status not in ADMIN_SETTABLE_STATUSES:
        raise ValidationError(errors={"status": ["The selected status is invalid."]})

    order = _get_order(s, order_id)
    previous = order.status
    order.status = status
    order.updated_at = now or utcnow()
    s.flush()

    logger.info("order %s status %s -> %s", order.id, previous, status)
    return order


def cancel_order(
    s: Session,
    order_id: int,
    user: User,
    now: Optional[datetime] = None,
    window: timedelta = CANCEL_WINDOW,
) -> Order:
    """
    Owner cancellation. Checked in order: ownership, then status, then age.
    An order exactly ``window`` old can still be cancelled.
    """
    order = _get_order(s, order_id)
    now = now or utcnow()

    if order.user_id != user.id:
        raise AuthorizationError()

    if order.status != STATUS_CONFIRMED:
        raise InvalidState()

    if now - order.created_at > window:
        minutes = int(window.total_seconds() // 60)
        raise WindowExpired(f"Order can only be cancelled within {minutes} minutes of creation")

    order.status = STATUS_CANCELLED
    order.updated_at = now
    s.flush()

    logger.info("order %s cancelled by owner %s", order.id, user.id)
    return order


def delete_order(s: Session, order_id: int, user: User) -> None:
    """Hard delete by the owner or an admin, in any status and at any age."""
    order = _get_order(s, order_id)

    if order.user_id != user.id and not user.is_admin:
        raise AuthorizationError()

    s.delete(order)
    s.flush()

    logger.info("order %s deleted by user %s", order_id, user.id)
