from inkgenius.models.user import User
from inkgenius.models.user_credits import CreditOperationType, CreditTransaction, UserCredits
from inkgenius.models.payment import Payment, PaymentStatus
from inkgenius.models.webhook_event import WebhookEvent
from inkgenius.models.subscriber import Subscriber

__all__ = [
    "User",
    "UserCredits",
    "CreditTransaction",
    "CreditOperationType",
    "Payment",
    "PaymentStatus",
    "WebhookEvent",
    "Subscriber",
]
