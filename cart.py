"""
Client-side cart.

The cart belongs to the client, the server only ever sees it once, as the
body of ``POST /api/orders``. Views that need to follow it subscribe to its
change stream instead of re-reading storage on a timer.
"""
import json
import logging
from dataclasses import asdict, dataclass, replace
from decimal import Decimal
from typing import Callable, Dict, List, Tuple

logger = logging.getLogger(__name__)

Listener = Callable[[Tuple["CartLine", ...]], None]


@dataclass(frozen=True)
class CartLine:
    meal_id: int
    meal_name: str
    price: Decimal
    image_url: str | None
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class Cart:
    def __init__(self, lines: List[CartLine] | None = None):
        self._lines: List[CartLine] = list(lines or [])
        self._listeners: List[Listener] = []

    # ---------- change stream ----------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers a listener and returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        snapshot = self.lines
        for listener in list(self._listeners):
            listener(snapshot)

    # ---------- reads ----------
    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def count(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def total(self) -> Decimal:
        return sum((line.line_total for line in self._lines), Decimal("0"))

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def _index(self, meal_id: int) -> int:
        for i, line in enumerate(self._lines):
            if line.meal_id == int(meal_id):
                return i
        return -1

    # ---------- writes ----------
    def add(self, meal: Dict, quantity: int = 1) -> None:
        """Adds a meal as returned by ``GET /api/meals``, merging with an existing line."""
        if quantity < 1:
            raise ValueError("quantity must be at least 1")

        i = self._index(meal["id"])
        if i >= 0:
            line = self._lines[i]
            self._lines[i] = replace(line, quantity=line.quantity + quantity)
        else:
            self._lines.append(CartLine(
                meal_id=int(meal["id"]),
                meal_name=meal["name"],
                price=Decimal(str(meal["price"])),
                image_url=meal.get("image_url"),
                quantity=quantity,
            ))
        self._publish()

    def update(self, meal_id: int, quantity: int) -> None:
        """Sets a line's quantity; zero or less removes the line."""
        i = self._index(meal_id)
        if i < 0:
            return

        if quantity <= 0:
            del self._lines[i]
        elif self._lines[i].quantity == quantity:
            return
        else:
            self._lines[i] = replace(self._lines[i], quantity=quantity)
        self._publish()

    def remove(self, meal_id: int) -> None:
        i = self._index(meal_id)
        if i < 0:
            return
        del self._lines[i]
        self._publish()

    def clear(self) -> None:
        if not self._lines:
            return
        self._lines = []
        self._publish()

    # ---------- submission ----------
    def to_order_items(self) -> List[Dict]:
        return [{"mealId": line.meal_id, "quantity": line.quantity} for line in self._lines]

    # ---------- persistence ----------
    def save(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            # prices are written as strings so they load back exactly
            json.dump([{**asdict(line), "price": str(line.price)} for line in self._lines], f)

    @classmethod
    def load(cls, path: str) -> "Cart":
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            return cls()
        except json.JSONDecodeError as e:
            # a corrupt file starts an empty cart, same as a fresh client
            logger.warning("ignoring unreadable cart file %s: %s", path, e)
            return cls()

        return cls([CartLine(**{**line, "price": Decimal(str(line["price"]))}) for line in raw])
