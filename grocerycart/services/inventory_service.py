import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import case, update
from sqlmodel import Session

from grocerycart.errors import InsufficientStock, InvalidStockUpdate, ProductUnavailable
from grocerycart.models.product import Product

logger = logging.getLogger(__name__)


class StockSignalKind(str, Enum):
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


@dataclass(frozen=True)
class StockSignal:
    kind: StockSignalKind
    product_id: int
    product_name: str
    stock: int
    threshold: int


def _stock_values(delta):
    new_stock = Product.stock + delta
    return {
        "stock": new_stock,
        "in_stock": case((new_stock > 0, True), else_=False),
    }


def decrement(session: Session, product_id: int, quantity: int) -> Optional[StockSignal]:
    """Atomically take ``quantity`` units of a product.

    The check and the subtraction are one conditional UPDATE, so two
    concurrent orders can never both take the last unit. Runs inside the
    caller's transaction; nothing is committed here.
    """
    _check_quantity(quantity)
    result = session.exec(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(**_stock_values(-quantity))
        .execution_options(synchronize_session=False)
    )

    product = session.get(Product, product_id, populate_existing=True)

    if result.rowcount == 0:
        if product is None:
            raise ProductUnavailable(product_id)
        logger.info(
            f"Stock decrement refused for product {product_id}: "
            f"available {product.stock}, requested {quantity}"
        )
        raise InsufficientStock(product_id, product.name, product.stock, quantity)

    logger.info(f"Product {product_id} stock -{quantity} -> {product.stock}")
    return _signal_for(product, previous_stock=product.stock + quantity)


def increment(session: Session, product_id: int, quantity: int) -> None:
    """Return ``quantity`` units to stock. Never fails."""
    _check_quantity(quantity)
    result = session.exec(
        update(Product)
        .where(Product.id == product_id)
        .values(**_stock_values(quantity))
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        logger.warning(f"Restock skipped, product {product_id} no longer exists")
        return

    product = session.get(Product, product_id, populate_existing=True)
    logger.info(f"Product {product_id} stock +{quantity} -> {product.stock}")


def set_stock(
    session: Session,
    product_id: int,
    stock: Optional[int] = None,
    in_stock: Optional[bool] = None,
) -> Optional[StockSignal]:
    """Seller stock correction: set an absolute count, or mark a product sold out.

    ``in_stock=False`` without a count zeroes the stock. The flag always
    follows the count, so marking a product available needs a count.
    """
    if stock is None:
        if in_stock is not False:
            raise InvalidStockUpdate()
        stock = 0
    if isinstance(stock, bool) or stock < 0:
        raise InvalidStockUpdate()

    product = session.get(Product, product_id, populate_existing=True)
    if product is None:
        raise ProductUnavailable(product_id)
    previous_stock = product.stock

    session.exec(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=stock, in_stock=stock > 0)
        .execution_options(synchronize_session=False)
    )

    product = session.get(Product, product_id, populate_existing=True)
    logger.info(f"Product {product_id} stock set {previous_stock} -> {product.stock}")
    return _signal_for(product, previous_stock=previous_stock)


def _check_quantity(quantity: int) -> None:
    if quantity < 1:
        raise ValueError(f"Stock adjustments must be positive, got {quantity}")


def _signal_for(product: Product, previous_stock: int) -> Optional[StockSignal]:
    if product.stock == 0 < previous_stock:
        kind = StockSignalKind.OUT_OF_STOCK
    elif product.stock <= product.low_stock_threshold < previous_stock:
        kind = StockSignalKind.LOW_STOCK
    else:
        return None

    return StockSignal(
        kind=kind,
        product_id=product.id,
        product_name=product.name,
        stock=product.stock,
        threshold=product.low_stock_threshold,
    )
