import logging

from flask import Blueprint, g, jsonify, request

import accounts
from auth import token_required
from errors import MailDeliveryError
from schemas import (
    LoginRequest, RegisterRequest, SendCodeRequest, VerifyCodeRequest, ResetPasswordRequest,
)
from sql_db import SessionLocal

logger = logging.getLogger(__name__)

auth_api = Blueprint("auth_api", __name__, url_prefix="/api")


def _body() -> dict:
    return request.get_json(silent=True) or {}


# -----------------------
# Register / login
# -----------------------
@auth_api.post("/register")
def register():
    data = RegisterRequest.model_validate(_body())

    with SessionLocal() as s:
        user, token = accounts.register(s, data.name, data.email, data.password)
        s.commit()

    return jsonify({
        "success": True,
        "message": "Registration successful",
        "user": accounts.user_to_dict(user),
        "token": token,
        "token_type": "Bearer",
    }), 201


@auth_api.post("/login")
def login():
    data = LoginRequest.model_validate(_body())

    with SessionLocal() as s:
        user, token = accounts.login(s, data.email, data.password)
        s.commit()

    return jsonify({
        "success": True,
        "message": "Login successful",
        "user": accounts.user_to_dict(user),
        "token": token,
        "token_type": "Bearer",
    })


@auth_api.post("/logout")
@token_required
def logout():
    with SessionLocal() as s:
        accounts.logout(s, g.api_token.id)
        s.commit()
    return jsonify({"success": True, "message": "Logged out successfully"})


@auth_api.post("/logout-all")
@token_required
def logout_all():
    with SessionLocal() as s:
        accounts.logout_all(s, g.user.id)
        s.commit()
    return jsonify({"success": True, "message": "Logged out from all devices successfully"})


@auth_api.get("/user")
@token_required
def current_user():
    return jsonify({"success": True, "user": accounts.user_to_dict(g.user, with_role=True)})


# -----------------------
# Password reset
# -----------------------
@auth_api.post("/password/send-code")
def send_reset_code():
    data = SendCodeRequest.model_validate(_body())

    with SessionLocal() as s:
        try:
            accounts.send_reset_code(s, data.email)
        except MailDeliveryError as e:
            s.rollback()
            logger.error("failed to send password reset email: %s", e)
            raise MailDeliveryError()
        s.commit()

    return jsonify({
        "success": True,
        "message": "If an account with this email exists, a code has been sent.",
    })


@auth_api.post("/password/verify-code")
def verify_reset_code():
    data = VerifyCodeRequest.model_validate(_body())

    with SessionLocal() as s:
        try:
            accounts.check_reset_code(s, data.email, data.code)
        finally:
            # keeps the removal of an expired token
            s.commit()

    return jsonify({"success": True, "message": "Code verified"})


@auth_api.post("/password/reset")
def reset_password():
    data = ResetPasswordRequest.model_validate(_body())

    with SessionLocal() as s:
        try:
            accounts.reset_password(s, data.email, data.code, data.password)
        finally:
            s.commit()

    return jsonify({"success": True, "message": "Password changed successfully"})
