"""
Ambr Payment Schemas
====================
Pydantic models for the inbound payment request and for the records the
payment service reads and writes.

Wire format (request/response bodies) is camelCase because that is what the
mobile client sends; storage attributes are snake_case. Request models accept
the camelCase aliases, storage models are built from DynamoDB items directly.

Money is an integer in the processor's smallest currency unit (cents), never
a float.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Domain enums
# ---------------------------------------------------------------------------

class BidType(str, Enum):
    BID = "bid"
    DONATION = "donation"


class SubmissionStatus(str, Enum):
    PENDING = "pending"


# ---------------------------------------------------------------------------
# Inbound request
# ---------------------------------------------------------------------------

class PaymentMethodDetails(BaseModel):
    """Card details as tokenized by the client-side Stripe SDK."""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    token_id: str = Field(alias="tokenId", min_length=1)
    last_four_digits: str | None = Field(default=None, alias="lastFourDigits")
    card_brand: str | None = Field(default=None, alias="cardBrand")


class PaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_token: str = Field(alias="userToken", min_length=1)
    is_new_payment_method: bool = Field(default=False, alias="isNewPaymentMethod")
    payment_method: PaymentMethodDetails = Field(alias="paymentMethod")
    bid_type: BidType = Field(alias="bidType")
    auction_id: str = Field(alias="auctionId", min_length=1)
    # strict: JSON true or "100" must not pass as an amount
    payment_amount: int = Field(alias="paymentAmount", gt=0, strict=True)


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------

class SavedPaymentMethod(BaseModel):
    # older user records hold last_four_digits as a number
    model_config = ConfigDict(coerce_numbers_to_str=True)

    token_id: str
    last_four_digits: str | None = None
    card_brand: str | None = None


class BidViewPermission(BaseModel):
    """expiry=None means the permission never expires (donations)."""
    auction_id: str
    expiry: datetime | None = None

    def to_item(self) -> dict[str, Any]:
        return {
            "auction_id": self.auction_id,
            "expiry": self.expiry.isoformat() if self.expiry else None,
        }


class User(BaseModel):
    user_id: str
    email: str
    payment_methods: list[SavedPaymentMethod] = Field(default_factory=list)
    bid_view_permissions: list[BidViewPermission] = Field(default_factory=list)


class HighestBid(BaseModel):
    user_id: str
    amount: int


class Auction(BaseModel):
    auction_id: str
    highest_bid: HighestBid | None = None


class PaymentSubmission(BaseModel):
    payment_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    stripe_customer_id: str
    bid_type: BidType
    auction_id: str
    amount: int
    status: SubmissionStatus = SubmissionStatus.PENDING
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_item(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Stage results
# ---------------------------------------------------------------------------

class BidEvaluation(BaseModel):
    is_new_highest: bool
    effective_highest_amount: int


class PermissionResult(BaseModel):
    effective_highest_amount: int
    is_highest: bool
    expires: bool

    def to_response_body(self) -> dict[str, Any]:
        return {
            "highestBidAmount": self.effective_highest_amount,
            "isHighestBid": self.is_highest,
            "isPermissionExpires": self.expires,
        }
