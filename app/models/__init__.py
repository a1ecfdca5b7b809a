from app.models.user import User
from app.models.product import Product
from app.models.cart import Cart
from app.models.order import Order
from app.models.order_event import OrderEvent
from app.models.payment_proof import PaymentProof
from app.models.delivery_cost import DeliveryCost

# add ALL models here
