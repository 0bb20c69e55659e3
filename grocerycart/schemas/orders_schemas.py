from datetime import datetime
from pydantic import BaseModel
from typing import List, Optional

from grocerycart.constants.order_status import OrderStatus


class ShippingDetails(BaseModel):
    shipping_tracking_number: Optional[str] = None
    shipping_carrier: Optional[str] = None
    shipping_tracking_url: Optional[str] = None


class StatusUpdateRequest(ShippingDetails):
    status: OrderStatus


class CancelOrderRequest(BaseModel):
    guest_email: Optional[str] = None


class OrderItemOut(BaseModel):
    product_id: int
    name: str
    price: int
    quantity: int
    line_total: int


class TimelineEntry(BaseModel):
    event_type: str
    label: str
    created_at: datetime
    created_by: str


class OrderOut(BaseModel):
    order_id: int
    status: OrderStatus
    payment_method: str
    is_paid: bool
    subtotal: int
    tax: int
    amount: int
    created_at: datetime
    items: List[OrderItemOut]


class TrackingDetails(OrderOut, ShippingDetails):
    customer_name: str
    last_updated: datetime
    shipping_address: Optional[dict] = None
    timeline: List[TimelineEntry] = []
