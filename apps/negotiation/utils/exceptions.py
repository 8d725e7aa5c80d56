class NegotiationError(Exception):
    """Base exception for negotiation and discount-credential errors."""

    code = "NegotiationError"
    default_message = "Negotiation request could not be processed"

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_dict(self):
        error = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error


class InvalidInput(NegotiationError):
    code = "InvalidInput"
    default_message = "Invalid input"


class InvalidToken(NegotiationError):
    code = "InvalidToken"
    default_message = "Invalid or expired discount token"


class AlreadyApplied(NegotiationError):
    code = "AlreadyApplied"
    default_message = "Discount already applied"


class Expired(NegotiationError):
    code = "Expired"
    default_message = "Discount has expired"


class SkuMismatch(NegotiationError):
    code = "SkuMismatch"
    default_message = "Negotiated product not in cart"


class PriceMismatch(NegotiationError):
    code = "PriceMismatch"
    default_message = "Cart price does not match the negotiated price"


class UnsupportedPlatform(NegotiationError):
    code = "UnsupportedPlatform"
    default_message = "Unsupported commerce platform"


class SignatureInvalid(NegotiationError):
    code = "SignatureInvalid"
    default_message = "Invalid webhook signature"


class SessionNotFound(NegotiationError):
    code = "SessionNotFound"
    default_message = "Negotiation session not found"


class SessionClosed(NegotiationError):
    code = "SessionClosed"
    default_message = "Negotiation has ended"


class SessionConflict(NegotiationError):
    code = "SessionConflict"
    default_message = "Negotiation was updated by another request, please retry"


class DuplicateOffer(NegotiationError):
    code = "DuplicateOffer"
    default_message = "You already offered this price"


class NegotiationBlocked(NegotiationError):
    code = "NegotiationBlocked"
    default_message = "Negotiation blocked due to suspicious activity"
