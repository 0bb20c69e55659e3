import logging
from typing import Optional, Union

from sqlmodel import Session

from grocerycart.errors import AddressNotFound, InvalidAddress
from grocerycart.models.address import Address
from grocerycart.models.user import User
from grocerycart.schemas.address_schemas import AddressCreate

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = [
    "first_name", "last_name", "email", "street", "city",
    "state", "zipcode", "country", "phone",
]


def resolve_address(
    session: Session,
    address_input: Union[int, AddressCreate, None],
    user: Optional[User] = None,
) -> Address:
    """Return the address an order ships to.

    A reference must point at an existing address saved by the caller, so
    guests always submit inline values. An inline value is validated and
    added to the session, owned by the user or unowned for guests; it
    becomes durable when the caller commits.
    """
    if isinstance(address_input, bool):
        raise InvalidAddress("address")

    if isinstance(address_input, int):
        address = session.get(Address, address_input)
        if not address:
            raise AddressNotFound(address_input)
        if user is None or address.user_id != user.id:
            raise AddressNotFound(address_input)
        return address

    if isinstance(address_input, AddressCreate):
        missing = _first_missing_field(address_input, guest=user is None)
        if missing:
            raise InvalidAddress(missing)

        address = Address(
            user_id=user.id if user else None,
            **address_input.model_dump(),
        )
        session.add(address)
        session.flush()
        logger.info(f"Address {address.id} created for {'user ' + str(user.id) if user else 'guest'}")
        return address

    raise InvalidAddress("address")


def _first_missing_field(data: AddressCreate, guest: bool) -> Optional[str]:
    for field in REQUIRED_FIELDS:
        if field == "email" and not guest:
            continue
        value = getattr(data, field)
        if value is None or not str(value).strip():
            return field
    return None
