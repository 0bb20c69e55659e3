from pydantic import BaseModel
from typing import List


class CartAddRequest(BaseModel):
    product_id: int
    quantity: int = 1


class CartUpdateRequest(BaseModel):
    quantity: int


class CartLine(BaseModel):
    product_id: int
    name: str
    offer_price: int
    quantity: int
    in_stock: bool
    line_total: int


class CartOut(BaseModel):
    items: List[CartLine]
    subtotal: int
