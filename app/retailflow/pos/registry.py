from __future__ import annotations

import threading
from collections.abc import Iterable
from decimal import Decimal

from app.retailflow.core.error_catalog import AppError, ErrorCatalog
from app.retailflow.pos.cart import CachedProduct, CartSession
from app.retailflow.services.rbac import is_admin


class CartRegistry:
    """Open carts for one application instance, keyed by cart id."""

    def __init__(self) -> None:
        self._carts: dict[str, CartSession] = {}
        self._lock = threading.RLock()

    def open(self, *, owner_id: str, tax_rate: Decimal, products: Iterable[CachedProduct]) -> CartSession:
        cart = CartSession(owner_id=owner_id, tax_rate=tax_rate, products=products)
        with self._lock:
            self._carts[cart.cart_id] = cart
        return cart

    def get_for_user(self, cart_id: str, *, user_id: str, role: str | None) -> CartSession:
        with self._lock:
            cart = self._carts.get(cart_id)
        # Carts owned by someone else are reported as missing to workers.
        if cart is None or (cart.owner_id != user_id and not is_admin(role)):
            raise AppError(ErrorCatalog.CART_NOT_FOUND, details={"cart_id": cart_id})
        return cart

    def list_for_owner(self, owner_id: str) -> list[CartSession]:
        with self._lock:
            return [cart for cart in self._carts.values() if cart.owner_id == owner_id]

    def discard(self, cart_id: str) -> None:
        with self._lock:
            self._carts.pop(cart_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._carts)
