from .analytics_service import NegotiationAnalyticsService
from .cart_service import CartValidationService
from .discount_service import DiscountCredentialService
from .fraud_service import FraudDetectionService
from .session_service import NegotiationSessionService
from .webhook_service import WebhookReconciler

__all__ = [
    "NegotiationAnalyticsService",
    "CartValidationService",
    "DiscountCredentialService",
    "FraudDetectionService",
    "NegotiationSessionService",
    "WebhookReconciler",
]
