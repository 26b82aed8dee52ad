from datetime import timedelta

from flask import Blueprint, current_app, g, jsonify, request

import accounts
import catalog
import orders
from auth import token_required, admin_required
from firestore_db import (
    record_order_event, ORDER_CREATED, ORDER_CANCELLED, ORDER_STATUS_CHANGED, ORDER_DELETED,
)
from schemas import MealCreate, MealUpdate, OrderCreate, OrderStatusUpdate, RoleUpdate
from sql_db import SessionLocal

api = Blueprint("api", __name__, url_prefix="/api")


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _visibility_delay() -> timedelta:
    return timedelta(seconds=current_app.config["ORDER_ADMIN_VISIBILITY_DELAY_SECONDS"])


def _cancel_window() -> timedelta:
    return timedelta(seconds=current_app.config["ORDER_CANCEL_WINDOW_SECONDS"])


# -----------------------
# Meals
# -----------------------
@api.get("/meals")
def list_meals():
    with SessionLocal() as s:
        meals = catalog.list_meals(s)
        return jsonify({"success": True, "meals": [catalog.meal_to_dict(m) for m in meals]})


@api.get("/meals/categories")
def meal_categories():
    return jsonify({"success": True, "categories": catalog.CATEGORIES})


@api.get("/meals/<int:meal_id>")
def get_meal(meal_id: int):
    with SessionLocal() as s:
        meal = catalog.get_meal(s, meal_id)
        return jsonify({"success": True, "meal": catalog.meal_to_dict(meal)})


@api.post("/meals")
@token_required
@admin_required
def create_meal():
    data = MealCreate.model_validate(_body())

    with SessionLocal() as s:
        meal = catalog.create_meal(s, data)
        s.commit()
        out = catalog.meal_to_dict(meal)

    return jsonify({"success": True, "message": "Meal created successfully", "meal": out}), 201


@api.put("/meals/<int:meal_id>")
@token_required
@admin_required
def update_meal(meal_id: int):
    data = MealUpdate.model_validate(_body())

    with SessionLocal() as s:
        meal = catalog.update_meal(s, meal_id, data)
        s.commit()
        out = catalog.meal_to_dict(meal)

    return jsonify({"success": True, "message": "Meal updated successfully", "meal": out})


@api.delete("/meals/<int:meal_id>")
@token_required
@admin_required
def delete_meal(meal_id: int):
    with SessionLocal() as s:
        catalog.delete_meal(s, meal_id)
        s.commit()

    return jsonify({"success": True, "message": "Meal deleted successfully"})


# -----------------------
# Orders (owner)
# -----------------------
@api.get("/orders")
@token_required
def list_orders():
    with SessionLocal() as s:
        rows = orders.list_orders(s, g.user)
        return jsonify({"success": True, "orders": [orders.order_to_dict(o) for o in rows]})


@api.post("/orders")
@token_required
def create_order():
    data = OrderCreate.model_validate(_body())

    with SessionLocal() as s:
        order = orders.create_order(
            s,
            g.user,
            [(line.meal_id, line.quantity) for line in data.items],
            data.pickup_time,
            data.payment_method,
        )
        s.commit()
        out = orders.order_to_dict(order)

    record_order_event(out["id"], g.user.email, ORDER_CREATED, {"totalPrice": out["totalPrice"]})
    return jsonify({"success": True, "message": "Order confirmed successfully", "order": out}), 201


@api.put("/orders/<int:order_id>/cancel")
@token_required
def cancel_order(order_id: int):
    with SessionLocal() as s:
        order = orders.cancel_order(s, order_id, g.user, window=_cancel_window())
        s.commit()
        out = orders.status_to_dict(order)

    record_order_event(order_id, g.user.email, ORDER_CANCELLED)
    return jsonify({"success": True, "message": "Order cancelled successfully", "order": out})


@api.delete("/orders/<int:order_id>")
@token_required
def delete_order(order_id: int):
    with SessionLocal() as s:
        orders.delete_order(s, order_id, g.user)
        s.commit()

    record_order_event(order_id, g.user.email, ORDER_DELETED)
    return jsonify({"success": True, "message": "Order deleted"})


# -----------------------
# Admin: orders
# -----------------------
@api.get("/admin/orders")
@token_required
@admin_required
def admin_orders():
    with SessionLocal() as s:
        rows, pending_count = orders.list_for_admin(s, delay=_visibility_delay())
        return jsonify({
            "success": True,
            "pendingCount": pending_count,
            "orders": [orders.admin_order_to_dict(o) for o in rows],
        })


@api.get("/admin/orders/statistics")
@token_required
@admin_required
def admin_order_statistics():
    with SessionLocal() as s:
        rows, pending_count = orders.list_for_admin(s, delay=_visibility_delay())
        stats = orders.order_statistics(rows)

    stats["incomingOrders"] = pending_count
    return jsonify({"success": True, "statistics": stats})


@api.put("/admin/orders/<int:order_id>/status")
@token_required
@admin_required
def admin_update_status(order_id: int):
    data = OrderStatusUpdate.model_validate(_body())

    with SessionLocal() as s:
        order = orders.update_status(s, order_id, data.status)
        s.commit()
        out = orders.status_to_dict(order)

    record_order_event(order_id, g.user.email, ORDER_STATUS_CHANGED, {"status": out["status"]})
    return jsonify({"success": True, "message": "Order status updated", "order": out})


# -----------------------
# Admin: users
# -----------------------
@api.get("/admin/users")
@token_required
@admin_required
def admin_users():
    with SessionLocal() as s:
        users = accounts.list_users(s)
        return jsonify({"success": True, "users": [accounts.user_to_dict(u, with_role=True) for u in users]})


@api.put("/admin/users/<int:user_id>/role")
@token_required
@admin_required
def admin_update_role(user_id: int):
    data = RoleUpdate.model_validate(_body())

    with SessionLocal() as s:
        user = accounts.update_role(s, user_id, data.role)
        s.commit()
        out = accounts.user_to_dict(user, with_role=True)

    return jsonify({"success": True, "message": "User role updated successfully", "user": out})
