from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

class Address(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    # None for guest checkout addresses
    user_id: Optional[int] = Field(default=None, foreign_key="user.id")
    first_name: str
    last_name: str
    email: Optional[str] = None
    street: str
    city: str
    state: str
    zipcode: str
    country: str
    phone: str
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def formatted(self) -> str:
        return (
            f"{self.street}, {self.city}, {self.state} - {self.zipcode}, "
            f"{self.country} | Phone: {self.phone}"
        )
