from sqlalchemy.orm import Session

from errors import NotFound
from models import Meal, id_in_range, utcnow
from schemas import MealCreate, MealUpdate


# display labels shown by the menu filters
CATEGORIES = {
    "set": "Set",
    "main": "Main dishes",
    "salad": "Salads",
    "soup": "Soup / Samsa",
    "dessert": "Desserts",
    "drink": "Drinks",
    "extra": "Extras",
}


def meal_to_dict(meal: Meal) -> dict:
    return {
        "id": meal.id,
        "name": meal.name,
        "description": meal.description,
        "price": float(meal.price),
        "image_url": meal.image_url,
        "category": meal.category,
        "category_name": CATEGORIES.get(meal.category, meal.category),
        "is_vegetarian": meal.is_vegetarian,
        "is_spicy": meal.is_spicy,
        "is_available": meal.is_available,
        "created_at": meal.created_at.isoformat() + "Z",
        "updated_at": meal.updated_at.isoformat() + "Z",
    }


def list_meals(s: Session) -> list[Meal]:
    # unavailable meals are included, the client decides how to show them
    return s.query(Meal).order_by(Meal.created_at.desc(), Meal.id.desc()).all()


def get_meal(s: Session, meal_id: int) -> Meal:
    meal = s.get(Meal, meal_id) if id_in_range(meal_id) else None
    if not meal:
        raise NotFound("Meal not found")
    return meal


def create_meal(s: Session, data: MealCreate) -> Meal:
    meal = Meal(**data.model_dump())
    s.add(meal)
    s.flush()
    return meal


def update_meal(s: Session, meal_id: int, data: MealUpdate) -> Meal:
    meal = get_meal(s, meal_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(meal, field, value)
    meal.updated_at = utcnow()
    s.flush()
    return meal


def delete_meal(s: Session, meal_id: int) -> None:
    # orders keep their own copy of name/price/image, nothing to check here
    meal = get_meal(s, meal_id)
    s.delete(meal)
    s.flush()
