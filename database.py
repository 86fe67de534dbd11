"""
In-memory database for the Innova store.

One Database instance owns every collection. Handlers reach it through
the get_db dependency, so each application (and each test) gets its own.
All mutations go through the instance lock; reads hand out copies.
"""

import itertools
import math
import threading
from typing import Any, Dict, Iterable, List, Optional

from fastapi import Request

from schemas import (
    CartItem,
    Category,
    Order,
    OrderItem,
    Product,
    Review,
    Role,
    User,
)


class NotFoundError(LookupError):
    pass


class DuplicateError(ValueError):
    pass


SAMPLE_CATEGORIES = [
    {"id": 1, "name": "Periféricos"},
    {"id": 2, "name": "Monitores"},
    {"id": 3, "name": "Ropa"},
]

SAMPLE_PRODUCTS = [
    {"id": "p1", "name": "Audifonos inalambricos Logitech G733", "price": 59990, "description": "Audífonos RGB, cómodos."},
    {"id": "p2", "name": "Kumara K552", "price": 36990, "description": "Teclado mecánico resistente."},
    {"id": "p3", "name": "Razer Viper V3", "price": 99990, "description": "Mouse con sensor de alta precisión."},
    {"id": "p4", "name": 'Monitor 144Hz 24"', "price": 94990, "description": "Monitor FullHD 144Hz con Freesync"},
]


def coerce_number(value: Any) -> float:
    """Best-effort numeric conversion; anything unusable becomes 0."""
    if isinstance(value, bool) or value is None:
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return number


class Database:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._products: List[Product] = []
        self._categories: List[Category] = []
        self._users: List[User] = []
        self._carts: Dict[int, List[CartItem]] = {}
        self._orders: List[Order] = []
        self._reviews: List[Review] = []

        self._product_seq = itertools.count(1)
        self._user_seq = itertools.count(1)
        self._order_seq = itertools.count(1)
        self._review_seq = itertools.count(1)

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def seed_catalog(
        self,
        products: Iterable[Dict[str, Any]] = SAMPLE_PRODUCTS,
        categories: Iterable[Dict[str, Any]] = SAMPLE_CATEGORIES,
    ) -> None:
        with self._lock:
            if not self._categories:
                self._categories = [Category(**c) for c in categories]
            if not self._products:
                self._products = [Product(**p) for p in products]
                # keep generated ids ahead of the seeded p<n> ids
                self._product_seq = itertools.count(len(self._products) + 1)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def list_products(self) -> List[Product]:
        with self._lock:
            return [p.model_copy() for p in self._products]

    def get_product(self, product_id: str) -> Product:
        with self._lock:
            return self._find_product(product_id).model_copy()

    def add_product(self, fields: Dict[str, Any]) -> Product:
        fields = dict(fields)
        with self._lock:
            requested = fields.pop("id", None)
            if requested:
                if self._has_product(requested):
                    raise DuplicateError(f"Product {requested} already exists")
                product_id = requested
            else:
                product_id = self._next_product_id()
            product = Product(id=product_id, **fields)
            self._products.append(product)
            return product.model_copy()

    def update_product(self, product_id: str, changes: Dict[str, Any]) -> Product:
        with self._lock:
            current = self._find_product(product_id)
            changes = {k: v for k, v in changes.items() if k != "id"}
            updated = current.model_copy(update=changes)
            self._products = [updated if p.id == product_id else p for p in self._products]
            return updated.model_copy()

    def delete_product(self, product_id: str) -> bool:
        """Remove a product and every review attached to it."""
        with self._lock:
            before = len(self._products)
            self._products = [p for p in self._products if p.id != product_id]
            self._reviews = [r for r in self._reviews if r.product_id != product_id]
            return len(self._products) != before

    def _find_product(self, product_id: str) -> Product:
        for product in self._products:
            if product.id == product_id:
                return product
        raise NotFoundError(f"Product {product_id} not found")

    def _has_product(self, product_id: str) -> bool:
        return any(p.id == product_id for p in self._products)

    def _next_product_id(self) -> str:
        while True:
            candidate = f"p{next(self._product_seq)}"
            if not self._has_product(candidate):
                return candidate

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def list_categories(self) -> List[Category]:
        with self._lock:
            return [c.model_copy() for c in self._categories]

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def add_user(
        self,
        email: str,
        password_hash: str,
        name: Optional[str] = None,
        address: str = "",
        role: Role = Role.USER,
    ) -> User:
        with self._lock:
            if any(u.email == email for u in self._users):
                raise DuplicateError(f"User {email} already exists")
            user = User(
                id=next(self._user_seq),
                name=name,
                email=email,
                password_hash=password_hash,
                address=address,
                role=role,
            )
            self._users.append(user)
            return user.model_copy()

    def get_user(self, user_id: int) -> User:
        with self._lock:
            for user in self._users:
                if user.id == user_id:
                    return user.model_copy()
        raise NotFoundError(f"User {user_id} not found")

    def find_user_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            for user in self._users:
                if user.email == email:
                    return user.model_copy()
        return None

    def count_users(self) -> int:
        with self._lock:
            return len(self._users)

    def has_admin(self) -> bool:
        with self._lock:
            return any(u.role is Role.ADMIN for u in self._users)

    # ------------------------------------------------------------------
    # Carts
    # ------------------------------------------------------------------

    def get_cart(self, user_id: int) -> List[CartItem]:
        with self._lock:
            return [i.model_copy() for i in self._carts.get(user_id, [])]

    def add_to_cart(self, user_id: int, product_id: str, quantity: int) -> List[CartItem]:
        with self._lock:
            items = self._carts.setdefault(user_id, [])
            for item in items:
                if item.product_id == product_id:
                    item.quantity += quantity
                    break
            else:
                items.append(CartItem(product_id=product_id, quantity=quantity))
            return [i.model_copy() for i in items]

    def remove_from_cart(self, user_id: int, product_id: str) -> List[CartItem]:
        with self._lock:
            if user_id not in self._carts:
                raise NotFoundError(f"No cart for user {user_id}")
            items = [i for i in self._carts[user_id] if i.product_id != product_id]
            self._carts[user_id] = items
            return [i.model_copy() for i in items]

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def create_order(
        self,
        user_id: int,
        lines: Optional[List[Dict[str, Any]]],
        address: str = "",
        payment_method: str = "cash",
    ) -> Order:
        """Snapshot prices, append the order and empty the owner's cart.

        ``lines`` is a list of {product_id, quantity}; None means "use the
        cart". An empty list of lines raises ValueError.
        """
        with self._lock:
            if lines is None:
                lines = [{"product_id": i.product_id, "quantity": i.quantity} for i in self._carts.get(user_id, [])]
            if not lines:
                raise ValueError("Order has no items")

            items = []
            for line in lines:
                product = next((p for p in self._products if p.id == line["product_id"]), None)
                price = int(coerce_number(product.price)) if product is not None else 0
                quantity = int(coerce_number(line["quantity"]))
                items.append(OrderItem(product_id=line["product_id"], quantity=quantity, price=price))

            order = Order(
                id=next(self._order_seq),
                user_id=user_id,
                items=items,
                total=sum(i.quantity * i.price for i in items),
                address=address,
                payment_method=payment_method,
            )
            self._orders.append(order)
            self._carts[user_id] = []
            return order.model_copy(deep=True)

    def list_orders(self, user_id: Optional[int] = None) -> List[Order]:
        with self._lock:
            return [
                o.model_copy(deep=True)
                for o in self._orders
                if user_id is None or o.user_id == user_id
            ]

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    def add_review(self, product_id: str, user_id: int, rating: Any, comment: Optional[str] = None) -> Review:
        with self._lock:
            number = coerce_number(rating)
            review = Review(
                id=next(self._review_seq),
                product_id=product_id,
                user_id=user_id,
                rating=number,
                comment=comment or "",
            )
            self._reviews.append(review)
            return review.model_copy()

    def list_reviews(self, product_id: Optional[str] = None) -> List[Review]:
        with self._lock:
            return [
                r.model_copy()
                for r in self._reviews
                if product_id is None or r.product_id == product_id
            ]


def get_db(request: Request) -> Database:
    return request.app.state.db
