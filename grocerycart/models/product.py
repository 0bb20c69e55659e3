from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class Product(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    category: Optional[str] = None
    description: Optional[str] = None

    # Prices are whole currency units
    price: int
    offer_price: int

    # Written only through the inventory ledger
    stock: int = Field(default=0, ge=0)
    in_stock: bool = Field(default=False)
    low_stock_threshold: int = Field(default=5)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
