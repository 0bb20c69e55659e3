"""Domain errors raised by the order, payment and inventory services.

Every error carries an HTTP status code and a short machine readable kind;
``grocerycart.main`` turns them into JSON responses.
"""

from typing import Optional


class GroceryCartError(Exception):
    """Base exception for all grocerycart errors."""

    status_code = 500
    kind = "internal_error"

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        data = {"success": False, "error": self.kind, "message": self.message}
        if self.field:
            data["field"] = self.field
        return data


# ---------- validation: bad input, rejected before any write ----------

class ValidationError(GroceryCartError):
    status_code = 400
    kind = "validation_error"


class EmptyCart(ValidationError):
    kind = "empty_cart"

    def __init__(self):
        super().__init__("Missing or invalid order items.")


class InvalidLineItem(ValidationError):
    kind = "invalid_line_item"

    def __init__(self, index: int):
        self.index = index
        super().__init__(
            f"Item {index} must have a valid product ID and a positive quantity.",
            field="items",
        )


class MissingGuestDetails(ValidationError):
    kind = "missing_guest_details"

    def __init__(self, field: str):
        super().__init__(
            f"Guest details (name, email, phone) are required for guest orders. Missing: {field}",
            field=field,
        )


class InvalidAddress(ValidationError):
    kind = "invalid_address"

    def __init__(self, field: str):
        super().__init__(f"Missing address field: {field}", field=field)


class InvalidPaymentMethod(ValidationError):
    kind = "invalid_payment_method"

    def __init__(self, method):
        super().__init__(f"Unsupported payment method: {method}", field="payment_method")


class InvalidCartQuantity(ValidationError):
    kind = "invalid_cart_quantity"

    def __init__(self, quantity, maximum: int):
        super().__init__(
            f"Quantity must be between 1 and {maximum}, got {quantity}",
            field="quantity",
        )


class InvalidStockUpdate(ValidationError):
    kind = "invalid_stock_update"

    def __init__(self):
        super().__init__(
            "No valid stock or in-stock status provided for update.",
            field="stock",
        )


class MissingMetadata(ValidationError):
    kind = "missing_metadata"

    def __init__(self):
        super().__init__("Payment event is missing order metadata.")


# ---------- conflicts: rejected, no partial state ----------

class ConflictError(GroceryCartError):
    status_code = 409
    kind = "conflict"


class InsufficientStock(ConflictError):
    kind = "insufficient_stock"

    def __init__(self, product_id: int, name: str, available: int, requested: int):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {name}. Available: {available}, Requested: {requested}"
        )


class ProductUnavailable(ConflictError):
    kind = "product_unavailable"

    def __init__(self, product_id: int, name: Optional[str] = None):
        self.product_id = product_id
        if name:
            message = f"{name} is currently not available."
        else:
            message = f"Product not found: {product_id}"
        super().__init__(message)


class AddressNotFound(ConflictError):
    status_code = 404
    kind = "address_not_found"

    def __init__(self, address_id: int):
        self.address_id = address_id
        super().__init__("Selected address not found.")


class OrderNotFound(ConflictError):
    status_code = 404
    kind = "order_not_found"

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class AlreadyCancelled(ConflictError):
    kind = "already_cancelled"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order #{order_id} is already cancelled.")


class InvalidTransition(ConflictError):
    kind = "invalid_transition"

    def __init__(self, current, new):
        self.current = current
        self.new = new
        super().__init__(f"Invalid status change from {_label(current)} -> {_label(new)}")


class OrderConflict(ConflictError):
    kind = "order_conflict"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order #{order_id} was modified concurrently. Please retry.")


class GuestOnlinePaymentDisabled(ConflictError):
    kind = "guest_online_payment_disabled"

    def __init__(self):
        super().__init__("Online payment is not available for guest checkout.")


class PermissionDenied(GroceryCartError):
    status_code = 403
    kind = "permission_denied"


# ---------- external collaborators ----------

class ExternalError(GroceryCartError):
    status_code = 502
    kind = "external_error"


class PaymentGatewayError(ExternalError):
    kind = "payment_gateway_error"


class InvalidSignature(ExternalError):
    status_code = 400
    kind = "invalid_signature"

    def __init__(self):
        super().__init__("Invalid signature")


class TransientError(GroceryCartError):
    """Notification delivery failure. Logged and retried, never surfaced."""


def _label(status) -> str:
    return getattr(status, "value", status)
