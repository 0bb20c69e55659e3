from enum import Enum


class NotificationEvent(str, Enum):
    ORDER_PLACED = "order_placed"
    PAYMENT_SUCCESS = "payment_success"
    STATUS_CHANGED = "status_changed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"
