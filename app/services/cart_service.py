import logging
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.attributes import flag_modified
from sqlmodel import Session, select

from app.config import settings
from app.constants.order_status import CART_SIZES
from app.database import commit_or_fail
from app.models.cart import Cart
from app.models.product import Product
from app.models.user import User
from app.utils.errors import InternalError, InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_SIZE = "M"


def find_cart(session: Session, user_id: int) -> Optional[Cart]:
    return session.exec(select(Cart).where(Cart.user_id == user_id)).first()


def _get_cart_or_404(session: Session, user: User) -> Cart:
    cart = find_cart(session, user.id)
    if not cart:
        raise NotFoundError("Cart not found")
    return cart


def _create_cart(session: Session, user: User) -> Cart:
    cart = Cart(user_id=user.id, items=[])
    session.add(cart)
    try:
        session.commit()
    except IntegrityError:
        # a concurrent first add created the cart; use theirs
        session.rollback()
        logger.info(f"Cart for user {user.id} was created concurrently, reusing it")
        cart = find_cart(session, user.id)
        if cart is None:
            logger.error(f"Cart for user {user.id} conflicted on insert but is missing")
            raise InternalError()
        return cart
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Database error while trying to create cart for user {user.id}")
        raise InternalError()

    session.refresh(cart)
    return cart


def _save_items(session: Session, cart: Cart, items: List[dict], action: str):
    cart.items = items
    flag_modified(cart, "items")
    cart.version += 1
    cart.updated_at = datetime.utcnow()
    session.add(cart)
    commit_or_fail(session, action)
    session.refresh(cart)


def _find_line(cart: Cart, item_id: str) -> int:
    for index, line in enumerate(cart.items):
        if line.get("id") == item_id:
            return index
    raise NotFoundError("Cart item not found")


def serialize_cart(session: Session, cart: Optional[Cart], user_id: int) -> dict:
    """Cart as shown to the buyer, with every line resolved against the catalog."""
    if cart is None:
        return {
            "id": None,
            "user_id": user_id,
            "items": [],
            "summary": {"item_count": 0, "subtotal": 0},
        }

    product_ids = [line["product_id"] for line in cart.items]
    products = {}
    if product_ids:
        products = {
            p.id: p
            for p in session.exec(select(Product).where(Product.id.in_(product_ids))).all()
        }

    items = []
    subtotal = 0
    for line in cart.items:
        product = products.get(line["product_id"])
        line_total = line["price"] * line["quantity"]
        subtotal += line_total
        items.append({
            "id": line["id"],
            "product_id": line["product_id"],
            "name": line.get("name") or (product.name if product else None),
            "price": line["price"],
            "quantity": line["quantity"],
            "size": line.get("size") or DEFAULT_SIZE,
            "image": (product.primary_image if product else None) or settings.placeholder_image,
            "available": product is not None,
            "line_total": line_total,
        })

    return {
        "id": cart.id,
        "user_id": cart.user_id,
        "items": items,
        "summary": {
            "item_count": sum(i["quantity"] for i in items),
            "subtotal": subtotal,
        },
        "updated_at": cart.updated_at,
    }


def add_item(
    session: Session,
    user: User,
    product_id: int,
    quantity: int = 1,
    size: Optional[str] = None,
) -> Cart:
    if size is None:
        size = DEFAULT_SIZE
    if size not in CART_SIZES:
        raise InvalidInputError("Invalid size. Must be S, M, L, XL, or XXL")

    if quantity is None or quantity < 1:
        raise InvalidInputError("Quantity must be at least 1")

    product = session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")

    cart = find_cart(session, user.id)
    if cart is None:
        cart = _create_cart(session, user)

    items = [dict(line) for line in cart.items]
    existing = next((line for line in items if line["product_id"] == product.id), None)

    if existing:
        existing["quantity"] += quantity
    else:
        items.append({
            "id": uuid4().hex,
            "product_id": product.id,
            "name": product.name,
            "price": product.price,
            "quantity": quantity,
            "image": product.primary_image or settings.placeholder_image,
            "size": size,
        })

    _save_items(session, cart, items, "add item to cart")
    logger.info(f"User {user.id} added product {product.id} x{quantity} to cart")
    return cart


def get_cart(session: Session, user: User) -> dict:
    return serialize_cart(session, find_cart(session, user.id), user.id)


def update_item_quantity(session: Session, user: User, item_id: str, quantity: int) -> Cart:
    cart = _get_cart_or_404(session, user)
    index = _find_line(cart, item_id)

    items = [dict(line) for line in cart.items]
    items[index]["quantity"] = max(1, quantity)

    _save_items(session, cart, items, "update cart item")
    return cart


def remove_item(session: Session, user: User, item_id: str) -> Cart:
    cart = _get_cart_or_404(session, user)
    index = _find_line(cart, item_id)

    items = [dict(line) for i, line in enumerate(cart.items) if i != index]

    _save_items(session, cart, items, "remove cart item")
    return cart


def clear_cart(session: Session, user: User) -> Cart:
    cart = _get_cart_or_404(session, user)
    _save_items(session, cart, [], "clear cart")
    return cart
