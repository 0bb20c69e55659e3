from pydantic import BaseModel
from typing import Optional

# Fields are optional so the resolver can name the first missing one.
class AddressCreate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None

