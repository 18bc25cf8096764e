from app.models.database import Base, get_db
from app.models.user import User
from app.models.order import Order, OrderStatus
from app.models.payment_confirmation import PaymentConfirmation
from app.models.friend_request import FriendRequest, Friendship

__all__ = [
    "Base",
    "get_db",
    "User",
    "Order",
    "OrderStatus",
    "PaymentConfirmation",
    "FriendRequest",
    "Friendship",
]
