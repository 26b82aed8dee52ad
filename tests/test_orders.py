from datetime import time, timedelta
from decimal import Decimal

import pytest

import orders
from conftest import ago
from errors import AuthorizationError, InvalidState, NotFound, ValidationError, WindowExpired
from models import Order, utcnow, STATUS_CANCELLED, STATUS_COMPLETED, STATUS_CONFIRMED, STATUS_PENDING

LUNCH = time(13, 0)


def place(s, user, meals, created_at=None, lines=None):
    curry, burger = meals
    order = orders.create_order(
        s, user, lines or [(curry.id, 2), (burger.id, 1)], LUNCH, "cash", now=created_at,
    )
    s.commit()
    return order


# -----------------------
# Creation
# -----------------------
def test_create_order_snapshots_prices(session, user, meals):
    order = place(session, user, meals)

    assert order.status == STATUS_CONFIRMED
    assert order.total_price == Decimal("34.97")
    assert [line["mealName"] for line in order.items] == ["Spicy Thai Curry Tofu", "Classic Burger"]
    assert order.items[0] == {
        "mealId": meals[0].id,
        "mealName": "Spicy Thai Curry Tofu",
        "quantity": 2,
        "price": 10.99,
        "imageUrl": None,
    }
    assert sum(Decimal(str(l["price"])) * l["quantity"] for l in order.items) == order.total_price


def test_price_change_does_not_touch_placed_order(session, user, meals):
    order = place(session, user, meals)
    meals[0].price = Decimal("99.00")
    meals[0].name = "Renamed"
    session.commit()

    session.expire_all()
    stored = session.get(Order, order.id)
    assert stored.total_price == Decimal("34.97")
    assert stored.items[0]["price"] == 10.99
    assert stored.items[0]["mealName"] == "Spicy Thai Curry Tofu"


def test_deleting_meal_keeps_order_lines(session, user, meals):
    order = place(session, user, meals)
    session.delete(meals[1])
    session.commit()

    session.expire_all()
    stored = session.get(Order, order.id)
    assert len(stored.items) == 2
    assert stored.total_price == Decimal("34.97")


def test_unknown_meal_is_not_found(session, user, meals):
    with pytest.raises(NotFound):
        orders.create_order(session, user, [(meals[0].id, 1), (9999, 1)], LUNCH, "card")
    session.rollback()
    assert session.query(Order).count() == 0


def test_empty_cart_rejected(session, user):
    with pytest.raises(ValidationError):
        orders.create_order(session, user, [], LUNCH, "cash")


def test_bad_payment_method_rejected(session, user, meals):
    with pytest.raises(ValidationError) as exc:
        orders.create_order(session, user, [(meals[0].id, 1)], LUNCH, "crypto")
    assert "paymentMethod" in exc.value.errors


def test_zero_quantity_rejected(session, user, meals):
    with pytest.raises(ValidationError):
        orders.create_order(session, user, [(meals[0].id, 0)], LUNCH, "cash")


def test_same_cart_twice_gives_two_orders(session, user, meals):
    first = place(session, user, meals)
    second = place(session, user, meals)
    assert first.id != second.id


# -----------------------
# Listing
# -----------------------
def test_owner_sees_own_orders_immediately_newest_first(session, user, other_user, meals):
    older = place(session, user, meals, created_at=ago(600))
    newer = place(session, user, meals)
    place(session, other_user, meals)

    rows = orders.list_orders(session, user)
    assert [o.id for o in rows] == [newer.id, older.id]


def test_admin_visibility_delay(session, user, meals):
    created = utcnow()
    order = place(session, user, meals, created_at=created)

    rows, pending = orders.list_for_admin(session, now=created + timedelta(seconds=90))
    assert order.id not in [o.id for o in rows]
    assert pending == 1

    rows, pending = orders.list_for_admin(session, now=created + timedelta(seconds=130))
    assert [o.id for o in rows] == [order.id]
    assert pending == 0


def test_cancelled_inside_delay_stays_hidden(session, user, meals):
    created = utcnow()
    order = place(session, user, meals, created_at=created)
    orders.cancel_order(session, order.id, user, now=created + timedelta(seconds=30))
    session.commit()

    rows, pending = orders.list_for_admin(session, now=created + timedelta(seconds=60))
    assert rows == []
    # only confirmed orders count as incoming
    assert pending == 0

    rows, _ = orders.list_for_admin(session, now=created + timedelta(seconds=121))
    assert [o.status for o in rows] == [STATUS_CANCELLED]


def test_pending_plus_visible_confirmed_equals_all_confirmed(session, user, meals):
    now = utcnow()
    for age in (10, 60, 119, 120, 121, 500):
        place(session, user, meals, created_at=now - timedelta(seconds=age))
    done = place(session, user, meals, created_at=now - timedelta(seconds=300))
    orders.update_status(session, done.id, STATUS_COMPLETED)
    session.commit()

    rows, pending = orders.list_for_admin(session, now=now)
    visible_confirmed = sum(1 for o in rows if o.status == STATUS_CONFIRMED)
    total_confirmed = session.query(Order).filter_by(status=STATUS_CONFIRMED).count()

    assert pending == 3
    assert visible_confirmed + pending == total_confirmed
    assert all(now - o.created_at >= timedelta(seconds=120) for o in rows)


def test_admin_list_skips_legacy_pending(session, user, meals):
    order = place(session, user, meals, created_at=ago(600))
    order.status = STATUS_PENDING
    session.commit()

    rows, pending = orders.list_for_admin(session)
    assert rows == []
    assert pending == 0


def test_custom_delay(session, user, meals):
    created = utcnow()
    place(session, user, meals, created_at=created)
    rows, _ = orders.list_for_admin(session, now=created + timedelta(seconds=40), delay=timedelta(seconds=30))
    assert len(rows) == 1


# -----------------------
# Cancel
# -----------------------
def test_owner_cancels_within_window(session, user, meals):
    created = utcnow()
    order = place(session, user, meals, created_at=created)

    cancelled = orders.cancel_order(session, order.id, user, now=created + timedelta(seconds=60))
    assert cancelled.status == STATUS_CANCELLED
    assert orders.status_to_dict(cancelled) == {"id": order.id, "status": "cancelled"}


def test_cancel_at_exact_window_edge(session, user, meals):
    created = utcnow()
    order = place(session, user, meals, created_at=created)
    orders.cancel_order(session, order.id, user, now=created + timedelta(seconds=120))
    assert order.status == STATUS_CANCELLED


def test_cancel_after_window_expires(session, user, meals):
    created = utcnow()
    order = place(session, user, meals, created_at=created)

    with pytest.raises(WindowExpired):
        orders.cancel_order(session, order.id, user, now=created + timedelta(seconds=150))
    assert order.status == STATUS_CONFIRMED


def test_cancel_by_stranger_is_forbidden_even_in_window(session, user, other_user, meals):
    created = utcnow()
    order = place(session, user, meals, created_at=created)

    with pytest.raises(AuthorizationError):
        orders.cancel_order(session, order.id, other_user, now=created + timedelta(seconds=5))


def test_cancel_checks_ownership_before_state_and_window(session, user, other_user, meals):
    created = ago(3600)
    order = place(session, user, meals, created_at=created)
    orders.update_status(session, order.id, STATUS_COMPLETED)

    with pytest.raises(AuthorizationError):
        orders.cancel_order(session, order.id, other_user)


def test_cancel_checks_state_before_window(session, user, meals):
    order = place(session, user, meals, created_at=ago(3600))
    orders.update_status(session, order.id, STATUS_COMPLETED)

    with pytest.raises(InvalidState):
        orders.cancel_order(session, order.id, user)


def test_cancel_twice_is_invalid_state(session, user, meals):
    order = place(session, user, meals)
    orders.cancel_order(session, order.id, user)
    with pytest.raises(InvalidState):
        orders.cancel_order(session, order.id, user)


def test_cancel_unknown_order(session, user):
    with pytest.raises(NotFound):
        orders.cancel_order(session, 12345, user)


def test_out_of_range_ids_are_not_found(session, user, meals):
    with pytest.raises(NotFound):
        orders.create_order(session, user, [(10**20, 1)], LUNCH, "cash")
    with pytest.raises(NotFound):
        orders.cancel_order(session, 0, user)
    with pytest.raises(NotFound):
        orders.update_status(session, 2**63, STATUS_COMPLETED)


# -----------------------
# Admin status / delete
# -----------------------
@pytest.mark.parametrize("target", [STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED])
def test_update_status_is_permissive(session, user, meals, target):
    order = place(session, user, meals)
    orders.update_status(session, order.id, STATUS_CANCELLED)

    # no transition matrix: a cancelled order can be set to anything, even revived
    updated = orders.update_status(session, order.id, target)
    assert updated.status == target


def test_update_status_rejects_pending_and_junk(session, user, meals):
    order = place(session, user, meals)
    for bad in (STATUS_PENDING, "shipped", ""):
        with pytest.raises(ValidationError):
            orders.update_status(session, order.id, bad)


def test_update_status_touches_updated_at(session, user, meals):
    created = ago(600)
    order = place(session, user, meals, created_at=created)
    orders.update_status(session, order.id, STATUS_COMPLETED)
    assert order.updated_at > created
    assert order.created_at == created


def test_delete_by_owner_in_any_state(session, user, meals):
    order = place(session, user, meals, created_at=ago(86400))
    orders.update_status(session, order.id, STATUS_COMPLETED)
    orders.delete_order(session, order.id, user)
    session.commit()
    assert session.get(Order, order.id) is None


def test_delete_by_admin(session, user, admin, meals):
    order = place(session, user, meals)
    orders.delete_order(session, order.id, admin)
    session.commit()
    assert session.query(Order).count() == 0


def test_delete_by_stranger_forbidden(session, user, other_user, meals):
    order = place(session, user, meals)
    with pytest.raises(AuthorizationError):
        orders.delete_order(session, order.id, other_user)


# -----------------------
# Statistics
# -----------------------
def test_order_statistics(session, user, meals):
    curry, burger = meals
    a = place(session, user, meals, lines=[(curry.id, 3)])
    b = place(session, user, meals, lines=[(burger.id, 1), (curry.id, 1)])
    c = place(session, user, meals, lines=[(burger.id, 5)])
    orders.update_status(session, b.id, STATUS_COMPLETED)
    orders.update_status(session, c.id, STATUS_CANCELLED)

    stats = orders.order_statistics([a, b, c])

    assert stats["totalOrders"] == 3
    assert stats["confirmedOrders"] == 1
    assert stats["completedOrders"] == 1
    assert stats["cancelledOrders"] == 1
    assert stats["pendingOrders"] == 0
    assert stats["totalRevenue"] == pytest.approx(32.97 + 23.98)
    assert stats["popularItems"][0] == {"name": "Spicy Thai Curry Tofu", "count": 4}
    assert {"name": "Classic Burger", "count": 1} in stats["popularItems"]


def test_default_windows():
    assert orders.ADMIN_VISIBILITY_DELAY == timedelta(seconds=120)
    assert orders.CANCEL_WINDOW == timedelta(seconds=120)
