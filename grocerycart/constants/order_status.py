from enum import Enum


class OrderStatus(str, Enum):
    PENDING_PAYMENT = "Pending Payment"
    PLACED = "Order Placed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentMethod(str, Enum):
    COD = "COD"
    ONLINE = "Online"


# Pending Payment -> Processing is applied by the payment webhook only.
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING_PAYMENT: [OrderStatus.CANCELLED],
    OrderStatus.PLACED: [OrderStatus.PROCESSING, OrderStatus.CANCELLED],
    OrderStatus.PROCESSING: [OrderStatus.SHIPPED, OrderStatus.CANCELLED],
    OrderStatus.SHIPPED: [OrderStatus.DELIVERED],
    OrderStatus.DELIVERED: [],
    OrderStatus.CANCELLED: [],
}

# Statuses whose orders hold decremented stock.
STOCK_COMMITTED_STATUSES = (OrderStatus.PLACED, OrderStatus.PROCESSING)
