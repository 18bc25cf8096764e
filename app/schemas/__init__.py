from app.schemas.payments import (
    CompletePaymentRequest,
    CompletePaymentResponse,
    InitializePaymentRequest,
    InitializePaymentResponse,
    OrderResponse,
    OrderStatusResponse,
    PaymentMethodsResponse,
)
from app.schemas.relations import (
    FriendRequestListResponse,
    HandleFriendRequestRequest,
    HandleFriendRequestResponse,
    SendFriendRequestRequest,
    SendFriendRequestResponse,
)

__all__ = [
    "InitializePaymentRequest",
    "InitializePaymentResponse",
    "CompletePaymentRequest",
    "CompletePaymentResponse",
    "OrderResponse",
    "OrderStatusResponse",
    "PaymentMethodsResponse",
    "FriendRequestListResponse",
    "HandleFriendRequestRequest",
    "HandleFriendRequestResponse",
    "SendFriendRequestRequest",
    "SendFriendRequestResponse",
]
