import hashlib
import secrets
from functools import wraps

from flask import g, request
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash, check_password_hash

from errors import AuthenticationError, AuthorizationError
from models import ApiToken, User, utcnow
from sql_db import SessionLocal


def hash_password(pw: str) -> str:
    return generate_password_hash(pw)


def verify_password(pw: str, pw_hash: str) -> bool:
    return check_password_hash(pw_hash, pw)


def _digest(plain: str) -> str:
    return hashlib.sha256(plain.encode("utf-8")).hexdigest()


def issue_token(s: Session, user: User, name: str = "API Token") -> str:
    """
    Creates a new bearer token for the user and returns the plain value.
    Older tokens stay valid, a user can be logged in on several devices.
    """
    plain = secrets.token_urlsafe(40)
    s.add(ApiToken(user_id=user.id, name=name, token_hash=_digest(plain)))
    return plain


def resolve_token(s: Session, plain: str) -> ApiToken | None:
    if not plain:
        return None
    token = s.query(ApiToken).filter_by(token_hash=_digest(plain)).first()
    if token:
        token.last_used_at = utcnow()
    return token


def _bearer_from_request() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return value.strip()


def token_required(fn):
    """Resolves the bearer token and exposes ``g.user`` / ``g.api_token``."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        with SessionLocal() as s:
            token = resolve_token(s, _bearer_from_request())
            if not token:
                raise AuthenticationError()
            user = token.user
            s.commit()

        g.user = user
        g.api_token = token
        return fn(*args, **kwargs)
    return wrapper


def admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user = g.get("user")
        if user is None:
            raise AuthenticationError()
        if not user.is_admin:
            raise AuthorizationError("Admin access required.")
        return fn(*args, **kwargs)
    return wrapper
