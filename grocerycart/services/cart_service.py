import logging
from typing import List

from sqlalchemy import delete
from sqlmodel import Session, select

from grocerycart.errors import InvalidCartQuantity, ProductUnavailable
from grocerycart.models.cart import CartItem, MAX_CART_QUANTITY
from grocerycart.models.product import Product

logger = logging.getLogger(__name__)


def _check_quantity(quantity: int):
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidCartQuantity(quantity, MAX_CART_QUANTITY)
    if quantity < 1 or quantity > MAX_CART_QUANTITY:
        raise InvalidCartQuantity(quantity, MAX_CART_QUANTITY)


def _get_item(session: Session, user_id: int, product_id: int):
    return session.exec(
        select(CartItem).where(
            CartItem.user_id == user_id,
            CartItem.product_id == product_id,
        )
    ).first()


def add_to_cart(session: Session, user_id: int, product_id: int, quantity: int = 1) -> CartItem:
    _check_quantity(quantity)
    if not session.get(Product, product_id):
        raise ProductUnavailable(product_id)

    item = _get_item(session, user_id, product_id)
    if item:
        # Increase quantity
        _check_quantity(item.quantity + quantity)
        item.quantity += quantity
    else:
        item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)

    session.add(item)
    session.commit()
    session.refresh(item)
    return item


def set_cart_quantity(session: Session, user_id: int, product_id: int, quantity: int) -> CartItem:
    _check_quantity(quantity)
    item = _get_item(session, user_id, product_id)
    if not item:
        return add_to_cart(session, user_id, product_id, quantity)

    item.quantity = quantity
    session.add(item)
    session.commit()
    session.refresh(item)
    return item


def remove_from_cart(session: Session, user_id: int, product_id: int) -> bool:
    item = _get_item(session, user_id, product_id)
    if not item:
        return False
    session.delete(item)
    session.commit()
    return True


def get_cart(session: Session, user_id: int) -> List[tuple]:
    return session.exec(
        select(CartItem, Product)
        .join(Product, CartItem.product_id == Product.id)
        .where(CartItem.user_id == user_id)
        .order_by(CartItem.id)
    ).all()


def clear_cart(session: Session, user_id: int) -> int:
    """Empty a user's cart inside the caller's transaction."""
    result = session.exec(delete(CartItem).where(CartItem.user_id == user_id))
    logger.info(f"Cart cleared for user {user_id}")
    return result.rowcount
