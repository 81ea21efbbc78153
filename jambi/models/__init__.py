# jambi/models/__init__.py
from .admin_model import AdminUser
from .merchant_model import Merchant, ApiKey, Webhook, WebhookLog
from .payment_model import Payment, PaymentStatus, PaymentMethod, PaymentSource
from .submission_model import SystemRequest, SubmissionStatus

__all__ = [
    "AdminUser", "Merchant", "ApiKey", "Webhook", "WebhookLog",
    "Payment", "PaymentStatus", "PaymentMethod", "PaymentSource",
    "SystemRequest", "SubmissionStatus",
]
