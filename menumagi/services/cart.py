"""
Session Cart

A customer's cart maps menu item id to a snapshot of the item
(name, price, image) plus a quantity. It lives in the signed session
cookie and is never persisted server-side; checkout copies the lines
into order items.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, MutableMapping, Optional

from menumagi.services.gst import to_decimal

SESSION_KEY = "cart"


class CartError(Exception):
    """Raised for cart operations that cannot be applied."""


@dataclass
class CartLine:
    menu_item_id: str
    owner_id: str
    name: str
    price: Decimal
    quantity: int = 1
    image_url: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "menu_item_id": self.menu_item_id,
            "owner_id": self.owner_id,
            "name": self.name,
            "price": str(self.price),
            "quantity": self.quantity,
            "image_url": self.image_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartLine":
        return cls(
            menu_item_id=data["menu_item_id"],
            owner_id=data["owner_id"],
            name=data["name"],
            price=to_decimal(data["price"]),
            quantity=int(data["quantity"]),
            image_url=data.get("image_url"),
        )


class Cart:
    """Ordered mapping of menu item id to cart line."""

    def __init__(self, lines: Optional[list[CartLine]] = None):
        self._lines: dict[str, CartLine] = {}
        for line in lines or []:
            self._lines[line.menu_item_id] = line

    # ------------------------------------------------------------------
    # Session round trip
    # ------------------------------------------------------------------

    @classmethod
    def from_session(cls, session: MutableMapping[str, Any]) -> "Cart":
        return cls([CartLine.from_dict(raw) for raw in session.get(SESSION_KEY, [])])

    def save(self, session: MutableMapping[str, Any]) -> None:
        if self._lines:
            session[SESSION_KEY] = [line.to_dict() for line in self._lines.values()]
        else:
            session.pop(SESSION_KEY, None)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(
        self,
        menu_item_id: str,
        owner_id: str,
        name: str,
        price: Any,
        image_url: Optional[str] = None,
        quantity: int = 1,
    ) -> CartLine:
        """Insert a new line or bump the quantity of an existing one."""
        if quantity < 1:
            raise CartError("Quantity must be at least 1")
        if self.owner_id is not None and owner_id != self.owner_id:
            raise CartError("Cart already holds items from another restaurant")

        line = self._lines.get(menu_item_id)
        if line is None:
            line = CartLine(
                menu_item_id=menu_item_id,
                owner_id=owner_id,
                name=name,
                price=to_decimal(price),
                quantity=quantity,
                image_url=image_url,
            )
            self._lines[menu_item_id] = line
        else:
            line.quantity += quantity
        return line

    def remove(self, menu_item_id: str) -> Optional[CartLine]:
        """
        Decrement a line by one; the line is deleted when it would drop
        below quantity 1. Returns the remaining line, or None.
        """
        line = self._lines.get(menu_item_id)
        if line is None:
            raise CartError("Item is not in the cart")
        if line.quantity <= 1:
            del self._lines[menu_item_id]
            return None
        line.quantity -= 1
        return line

    def set_quantity(self, menu_item_id: str, quantity: int) -> Optional[CartLine]:
        line = self._lines.get(menu_item_id)
        if line is None:
            raise CartError("Item is not in the cart")
        if quantity < 1:
            del self._lines[menu_item_id]
            return None
        line.quantity = quantity
        return line

    def clear(self) -> None:
        self._lines.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def owner_id(self) -> Optional[str]:
        for line in self._lines.values():
            return line.owner_id
        return None

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    @property
    def subtotal(self) -> Decimal:
        return sum((line.subtotal for line in self._lines.values()), Decimal("0"))

    def is_empty(self) -> bool:
        return not self._lines

    def __contains__(self, menu_item_id: object) -> bool:
        return menu_item_id in self._lines

    def __len__(self) -> int:
        return len(self._lines)
