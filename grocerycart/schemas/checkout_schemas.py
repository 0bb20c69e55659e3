# grocerycart/schemas/checkout_schemas.py
from pydantic import BaseModel
from typing import List, Optional, Union

from grocerycart.schemas.address_schemas import AddressCreate


class LineItemIn(BaseModel):
    product: Optional[int] = None
    quantity: Optional[int] = None


class GuestDetails(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class PlaceOrderRequest(BaseModel):
    items: List[LineItemIn] = []
    # Saved address id, or a full address for a new one
    address: Union[int, AddressCreate, None] = None
    guest_details: Optional[GuestDetails] = None


class PlaceOrderResponse(BaseModel):
    success: bool = True
    message: str
    order_id: int
    payment_method: str
    amount: int
    url: Optional[str] = None
