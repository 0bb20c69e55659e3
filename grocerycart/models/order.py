from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from datetime import datetime

from grocerycart.constants.order_status import OrderStatus, PaymentMethod
from grocerycart.models.order_item import OrderItem
from grocerycart.models.address import Address
from grocerycart.models.user import User

class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)

    # Guest contact, set when user_id is None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None

    address_id: int = Field(foreign_key="address.id")

    subtotal: int = Field(ge=0)
    tax: int = Field(ge=0)
    amount: int = Field(ge=0)

    payment_method: PaymentMethod
    is_paid: bool = Field(default=False)
    status: OrderStatus = Field(default=OrderStatus.PLACED, index=True)

    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None

    shipping_tracking_number: Optional[str] = None
    shipping_carrier: Optional[str] = None
    shipping_tracking_url: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    user: Optional["User"] = Relationship()
    address: Optional["Address"] = Relationship()
    items: List["OrderItem"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "OrderItem.id"},
    )

    @property
    def is_guest(self) -> bool:
        return self.user_id is None
