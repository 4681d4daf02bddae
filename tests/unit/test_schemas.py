"""
Unit tests for request and record schemas.
"""
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from shared.schemas import BidType, BidViewPermission, PaymentRequest, PaymentSubmission, User


def _payload(**overrides):
    payload = {
        "userToken": "token",
        "isNewPaymentMethod": True,
        "paymentMethod": {"tokenId": "tok_visa", "lastFourDigits": "4242", "cardBrand": "Visa"},
        "bidType": "donation",
        "auctionId": "a-1",
        "paymentAmount": 1500,
    }
    payload.update(overrides)
    return payload


def test_request_reads_camel_case_wire_names():
    request = PaymentRequest.model_validate(_payload())
    assert request.bid_type is BidType.DONATION
    assert request.payment_method.last_four_digits == "4242"
    assert request.payment_amount == 1500


def test_is_new_payment_method_defaults_to_false():
    payload = _payload()
    del payload["isNewPaymentMethod"]
    assert PaymentRequest.model_validate(payload).is_new_payment_method is False


@pytest.mark.parametrize("amount", [0, -5, 10.5, "lots", "100", True])
def test_payment_amount_must_be_positive_whole_cents(amount):
    with pytest.raises(ValidationError):
        PaymentRequest.model_validate(_payload(paymentAmount=amount))


def test_bid_type_is_restricted():
    with pytest.raises(ValidationError):
        PaymentRequest.model_validate(_payload(bidType="raffle"))


def test_submission_defaults_to_pending_and_serializes_for_dynamodb():
    item = PaymentSubmission(
        user_id="u-1", stripe_customer_id="cus_1", bid_type=BidType.BID, auction_id="a-1", amount=100,
    ).to_item()
    assert item["status"] == "pending"
    assert item["bid_type"] == "bid"
    assert isinstance(item["created_at"], str)
    assert item["payment_id"]


def test_permission_item_keeps_null_expiry():
    assert BidViewPermission(auction_id="a-1").to_item() == {"auction_id": "a-1", "expiry": None}
    expiry = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert BidViewPermission(auction_id="a-1", expiry=expiry).to_item()["expiry"] == "2024-01-01T00:00:00+00:00"


def test_user_without_lists_gets_empty_ones():
    user = User.model_validate({"user_id": "u-1", "email": "u@example.com"})
    assert user.payment_methods == []
    assert user.bid_view_permissions == []


def test_numeric_last_four_digits_are_kept_as_text():
    payload = _payload(paymentMethod={"tokenId": "tok_visa", "lastFourDigits": 4242})
    assert PaymentRequest.model_validate(payload).payment_method.last_four_digits == "4242"
