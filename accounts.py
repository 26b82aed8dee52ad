"""
Registration, login and the three-step password reset.

Reset codes are 6 random digits, stored hashed with one live row per email
and deleted once used or found expired.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

import mailer
from auth import hash_password, verify_password, issue_token
from config import Config
from errors import AuthenticationError, InvalidResetCode, NotFound, ValidationError
from models import ApiToken, PasswordResetToken, User, id_in_range, utcnow, ROLES, ROLE_USER

logger = logging.getLogger(__name__)

RESET_CODE_TTL = timedelta(minutes=Config.RESET_CODE_TTL_MINUTES)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def user_to_dict(user: User, with_role: bool = False) -> dict:
    out = {"id": user.id, "name": user.name, "email": user.email}
    if with_role:
        out["role"] = user.role
        out["created_at"] = user.created_at.isoformat() + "Z"
    return out


# -----------------------
# Register / login / logout
# -----------------------
def register(s: Session, name: str, email: str, password: str) -> Tuple[User, str]:
    email = normalize_email(email)
    if s.query(User).filter_by(email=email).first():
        raise ValidationError(errors={"email": ["The email has already been taken."]})

    user = User(name=name.strip(), email=email, password_hash=hash_password(password), role=ROLE_USER)
    s.add(user)
    s.flush()

    token = issue_token(s, user)
    logger.info("user %s registered", user.id)
    return user, token


def login(s: Session, email: str, password: str) -> Tuple[User, str]:
    user = s.query(User).filter_by(email=normalize_email(email)).first()

    # same answer for an unknown email and a wrong password
    if not user or not verify_password(password, user.password_hash):
        logger.info("failed login attempt")
        raise AuthenticationError("The provided credentials do not match our records.")

    return user, issue_token(s, user)


def logout(s: Session, token_id: int) -> None:
    s.query(ApiToken).filter_by(id=token_id).delete()


def logout_all(s: Session, user_id: int) -> int:
    return s.query(ApiToken).filter_by(user_id=user_id).delete()


# -----------------------
# Admin: users
# -----------------------
def list_users(s: Session) -> List[User]:
    return s.query(User).order_by(User.id).all()


def update_role(s: Session, user_id: int, role: str) -> User:
    if role not in ROLES:
        raise ValidationError(errors={"role": ["The selected role is invalid."]})

    user = s.get(User, user_id) if id_in_range(user_id) else None
    if not user:
        raise NotFound("User not found")

    user.role = role
    s.flush()
    return user


# -----------------------
# Password reset
# -----------------------
def generate_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def create_reset_code(s: Session, email: str, now: Optional[datetime] = None, ttl: timedelta = RESET_CODE_TTL) -> Optional[str]:
    """
    Replaces any reset token for the email with a fresh one and returns the
    plain code, or None when no account uses that email.
    """
    email = normalize_email(email)
    if not s.query(User).filter_by(email=email).first():
        return None

    now = now or utcnow()
    code = generate_code()

    s.query(PasswordResetToken).filter_by(email=email).delete()
    s.add(PasswordResetToken(
        email=email,
        token=hash_password(code),
        expires_at=now + ttl,
        created_at=now,
    ))
    s.flush()
    return code


def send_reset_code(s: Session, email: str, now: Optional[datetime] = None) -> None:
    """
    Step 1. Unknown emails are ignored silently so the answer never tells
    whether an account exists. Mail errors propagate as MailDeliveryError.
    """
    code = create_reset_code(s, email, now=now)
    if code is None:
        return

    ttl_minutes = int(RESET_CODE_TTL.total_seconds() // 60)
    mailer.send_reset_code(normalize_email(email), code, ttl_minutes)


def check_reset_code(s: Session, email: str, code: str, now: Optional[datetime] = None) -> PasswordResetToken:
    """
    Step 2. Raises InvalidResetCode when there is no token, when it has
    expired (the token is removed) or when the code does not match.
    """
    email = normalize_email(email)
    row = s.query(PasswordResetToken).filter_by(email=email).first()
    if not row:
        raise InvalidResetCode()

    if row.expires_at < (now or utcnow()):
        s.delete(row)
        s.flush()
        raise InvalidResetCode("The code has expired. Please request a new one.")

    if not verify_password(code, row.token):
        raise InvalidResetCode("Invalid code")

    return row


def reset_password(s: Session, email: str, code: str, new_password: str, now: Optional[datetime] = None) -> User:
    """
    Step 3. Sets the new password, consumes the reset token and revokes
    every bearer token of the user.
    """
    row = check_reset_code(s, email, code, now=now)

    user = s.query(User).filter_by(email=normalize_email(email)).first()
    if not user:
        raise NotFound("User not found")

    user.password_hash = hash_password(new_password)
    s.delete(row)
    revoked = logout_all(s, user.id)
    s.flush()

    logger.info("password reset for user %s, %s tokens revoked", user.id, revoked)
    return user
