from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Sequence

from sqlmodel import Session

from grocerycart.errors import InsufficientStock, ProductUnavailable
from grocerycart.models.product import Product


@dataclass(frozen=True)
class LineItem:
    product_id: int
    quantity: int


@dataclass
class PricedLine:
    product_id: int
    product_name: str
    unit_price: int
    quantity: int

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


@dataclass
class PricedCart:
    lines: List[PricedLine] = field(default_factory=list)
    subtotal: int = 0
    tax: int = 0
    total: int = 0


def compute_tax(subtotal: int, tax_rate: float) -> int:
    """Tax in whole units, rounded half up."""
    raw = Decimal(subtotal) * Decimal(str(tax_rate))
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def price_items(session: Session, items: Sequence[LineItem], tax_rate: float) -> PricedCart:
    """Price a cart from current catalog data.

    The stock check here is a pre-flight for a fast error; the inventory
    ledger checks again when stock is actually taken.
    """
    requested = defaultdict(int)
    for item in items:
        requested[item.product_id] += item.quantity

    cart = PricedCart()
    products = {}

    for item in items:
        product = products.get(item.product_id)
        if product is None:
            product = session.get(Product, item.product_id)
            if not product:
                raise ProductUnavailable(item.product_id)
            if not product.in_stock:
                raise ProductUnavailable(product.id, product.name)
            if product.stock < requested[product.id]:
                raise InsufficientStock(
                    product.id, product.name, product.stock, requested[product.id]
                )
            products[product.id] = product

        cart.lines.append(
            PricedLine(
                product_id=product.id,
                product_name=product.name,
                unit_price=product.offer_price,
                quantity=item.quantity,
            )
        )

    cart.subtotal = sum(line.line_total for line in cart.lines)
    cart.tax = compute_tax(cart.subtotal, tax_rate)
    cart.total = cart.subtotal + cart.tax
    return cart
