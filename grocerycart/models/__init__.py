from grocerycart.models.user import User
from grocerycart.models.product import Product
from grocerycart.models.address import Address
from grocerycart.models.cart import CartItem
from grocerycart.models.order import Order
from grocerycart.models.order_item import OrderItem
from grocerycart.models.order_event import OrderEvent

# add ALL models here
