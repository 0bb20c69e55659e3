from grocerycart.notifications.events import NotificationEvent
from grocerycart.notifications.channels import Channel

# Only the payment confirmation is retried; everything else is one attempt.
PAYMENT_CONFIRMATION_ATTEMPTS = 3

NOTIFICATION_RULES = {

    NotificationEvent.ORDER_PLACED: {
        Channel.EMAIL_CUSTOMER: True,
        Channel.EMAIL_SELLER: True,
        "max_attempts": 1,
    },

    NotificationEvent.PAYMENT_SUCCESS: {
        Channel.EMAIL_CUSTOMER: True,
        "max_attempts": PAYMENT_CONFIRMATION_ATTEMPTS,
    },

    NotificationEvent.STATUS_CHANGED: {
        Channel.EMAIL_CUSTOMER: True,
        "max_attempts": 1,
    },

    NotificationEvent.SHIPPED: {
        Channel.EMAIL_CUSTOMER: True,
        "max_attempts": 1,
    },

    NotificationEvent.DELIVERED: {
        Channel.EMAIL_CUSTOMER: True,
        "max_attempts": 1,
    },

    NotificationEvent.CANCELLED: {
        Channel.EMAIL_CUSTOMER: True,
        Channel.EMAIL_SELLER: True,
        "max_attempts": 1,
    },

    NotificationEvent.LOW_STOCK: {
        Channel.EMAIL_SELLER: True,
        "max_attempts": 1,
    },

    NotificationEvent.OUT_OF_STOCK: {
        Channel.EMAIL_SELLER: True,
        "max_attempts": 1,
    },

}
