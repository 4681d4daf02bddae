"""
Payment request failures.

Every stage raises one of these to terminate the request; the handler turns
it into the single response the caller receives. `body` is either a plain
message string or a dict of flags the client switches on.
"""
from __future__ import annotations

from typing import Any


class PaymentRequestError(Exception):
    status_code = 500

    def __init__(self, body: str | dict[str, Any]):
        self.body = body
        super().__init__(body if isinstance(body, str) else ", ".join(body))


class BadRequestError(PaymentRequestError):
    status_code = 400


class RequestValidationError(BadRequestError):
    def __init__(self, details: list[dict[str, Any]]):
        super().__init__({"error": "Validation failed", "details": details})


class InvalidBidTypeError(BadRequestError):
    def __init__(self, bid_type: Any):
        super().__init__(f"Unsupported bid type: {bid_type}")


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class AuthError(PaymentRequestError):
    status_code = 401


class MissingTokenError(AuthError):
    def __init__(self):
        super().__init__("No user token provided!")


class InvalidTokenError(AuthError):
    def __init__(self):
        super().__init__("Invalid user token.")


class MissingIdentityClaimError(AuthError):
    status_code = 400

    def __init__(self):
        super().__init__("User token has no identity claim.")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigError(PaymentRequestError):
    def __init__(self, what: str):
        super().__init__(f"ERROR decrypting {what}.")


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

class NotFoundError(PaymentRequestError):
    status_code = 400


class UserNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("No user found during payment.")


class AuctionNotFoundError(NotFoundError):
    def __init__(self, auction_id: str):
        super().__init__(f"No auction found with id {auction_id}.")


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class PersistenceError(PaymentRequestError):
    status_code = 500


class UserLookupError(PersistenceError):
    def __init__(self):
        super().__init__("ERROR retrieving user information during payment.")


class AuctionLookupError(PersistenceError):
    def __init__(self, auction_id: str):
        super().__init__(f"ERROR finding auction by id {auction_id}")


class AuctionUpdateError(PersistenceError):
    def __init__(self, user_id: str, amount: int):
        super().__init__(f"ERROR setting highest bid [userId:{user_id}, amount:{amount}]")


class PaymentRecordError(PersistenceError):
    def __init__(self):
        super().__init__("ERROR saving payment submission.")


class PaymentMethodSaveError(PersistenceError):
    def __init__(self):
        super().__init__({"isErrorSavingNewCard": True})


class PermissionUpdateError(PersistenceError):
    def __init__(self):
        super().__init__("ERROR updating user's permissions to view bids.")


# ---------------------------------------------------------------------------
# Payment processor
# ---------------------------------------------------------------------------

class ProcessorError(PaymentRequestError):
    status_code = 500


class CardDeclinedError(ProcessorError):
    status_code = 400

    def __init__(self):
        super().__init__({"isCardDeclined": True})


class RateLimitedError(ProcessorError):
    def __init__(self):
        super().__init__({"isRateLimitTooHigh": True})


class UnknownProcessorError(ProcessorError):
    def __init__(self):
        super().__init__({"isUnknownError": True})
