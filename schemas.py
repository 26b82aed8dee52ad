"""
Request schemas for the JSON API.

Each model validates one request body before it reaches a service function.
Order bodies are camelCase (what the browser cart sends), meal and account
bodies use the column names.
"""
import re
from datetime import datetime, time
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from config import Config
from models import MAX_ID


MealCategory = Literal["set", "main", "salad", "soup", "dessert", "drink", "extra"]
MEAL_CATEGORIES = get_args(MealCategory)

PICKUP_TIME_RE = re.compile(r"^\d{2}:\d{2}$")

# fits the Numeric(10, 2) price column
MAX_PRICE = Decimal("99999999.99")
CENT = Decimal("0.01")


def _check_password(value: str) -> str:
    if len(value) < Config.PASSWORD_MIN_LENGTH:
        raise ValueError(f"The password must be at least {Config.PASSWORD_MIN_LENGTH} characters.")
    return value


def _check_confirmation(value: str, info) -> str:
    # "password" is missing from info.data when it failed its own validation
    if "password" in info.data and value != info.data["password"]:
        raise ValueError("The password field confirmation does not match.")
    return value


def _to_cents(value: Optional[Decimal]) -> Optional[Decimal]:
    # prices are kept in cents, 1.005 is stored as 1.01
    if value is None:
        return None
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# ---------- Meals ----------
class MealCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, le=MAX_PRICE)
    image_url: Optional[str] = None
    category: MealCategory
    is_vegetarian: bool = False
    is_spicy: bool = False
    is_available: bool = False

    @field_validator("price")
    @classmethod
    def round_price(cls, v):
        return _to_cents(v)


class MealUpdate(BaseModel):
    """Partial update; only fields present in the body are applied."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, le=MAX_PRICE)
    image_url: Optional[str] = None
    category: Optional[MealCategory] = None
    is_vegetarian: Optional[bool] = None
    is_spicy: Optional[bool] = None
    is_available: Optional[bool] = None

    # validators only run for fields present in the body, so an explicit null is rejected
    @field_validator("name", "price", "category", "is_vegetarian", "is_spicy", "is_available")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"The {info.field_name} field is required.")
        return v

    @field_validator("price")
    @classmethod
    def round_price(cls, v):
        return _to_cents(v)


# ---------- Orders ----------
class CartLineIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    meal_id: int = Field(..., alias="mealId", ge=1, le=MAX_ID)
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[CartLineIn] = Field(..., min_length=1)
    pickup_time: time = Field(..., alias="pickupTime")
    payment_method: Literal["cash", "card"] = Field(..., alias="paymentMethod")

    @field_validator("pickup_time", mode="before")
    @classmethod
    def parse_pickup_time(cls, v):
        if isinstance(v, time):
            return v
        if not isinstance(v, str) or not PICKUP_TIME_RE.match(v):
            raise ValueError("The pickup time must match the format HH:MM.")
        try:
            return datetime.strptime(v, "%H:%M").time()
        except ValueError:
            raise ValueError("The pickup time must match the format HH:MM.")


class OrderStatusUpdate(BaseModel):
    status: Literal["confirmed", "completed", "cancelled"]


# ---------- Accounts ----------
class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str
    password_confirmation: str

    @field_validator("password")
    @classmethod
    def password_policy(cls, v):
        return _check_password(v)

    @field_validator("password_confirmation")
    @classmethod
    def passwords_match(cls, v, info):
        return _check_confirmation(v, info)


class SendCodeRequest(BaseModel):
    email: EmailStr


class VerifyCodeRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6)


class ResetPasswordRequest(VerifyCodeRequest):
    password: str
    password_confirmation: str

    @field_validator("password")
    @classmethod
    def password_policy(cls, v):
        return _check_password(v)

    @field_validator("password_confirmation")
    @classmethod
    def passwords_match(cls, v, info):
        return _check_confirmation(v, info)


class RoleUpdate(BaseModel):
    role: Literal["user", "admin"]
