"""
Payment Service Lambda Handler
================================
Accepts a bid or donation payment from the app and answers with:
  - whether it is now the highest bid on the auction
  - the auction's highest bid amount
  - whether the user's permission to view bids expires

Stages run strictly in order; the first failure ends the request:
  connect → authenticate → validate body → find user → payment method
  → record payment → evaluate highest bid → grant bid view permission

Each stage raises a PaymentRequestError subclass on failure; this module is
the only place those are turned into a response, so every invocation returns
exactly one.
"""
from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from aws_xray_sdk.core import patch_all, xray_recorder
from pydantic import ValidationError

from shared.logger import bind_context, clear_context, get_logger
from shared.schemas import PaymentRequest, PermissionResult

from .auctions import AuctionArbiter
from .context import ServiceContext
from .errors import (
    BadRequestError,
    InvalidTokenError,
    MissingTokenError,
    PaymentRequestError,
    RequestValidationError,
)
from .identity import IdentityVerifier
from .ledger import BidLedger
from .payment_methods import PaymentMethodManager
from .permissions import PermissionGrantor
from .responses import build_response
from .users import UserRepository

# Patch boto3 clients for X-Ray distributed tracing
patch_all()

logger = get_logger(__name__)

AMOUNT_MESSAGE = "paymentAmount must be a positive whole number of cents"

# Built on the first invocation, reused for the life of the container
_service: ServiceContext | None = None


def get_service_context() -> ServiceContext:
    global _service
    if _service is None:
        _service = ServiceContext()
    return _service


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def handler(event: dict, context) -> dict:
    clear_context()
    bind_context(aws_request_id=getattr(context, "aws_request_id", None))
    return process_payment_request(event, get_service_context())


def process_payment_request(event: dict, service: ServiceContext) -> dict:
    try:
        result = _process(event, service)
    except PaymentRequestError as e:
        log = logger.error if e.status_code >= 500 else logger.warning
        log(
            "Payment request failed",
            extra={"error_type": type(e).__name__, "status_code": e.status_code},
        )
        return build_response(e.status_code, e.body)
    except Exception:
        logger.exception("Unhandled exception in payment_service handler")
        return build_response(500, {"error": "Internal server error"})

    return build_response(200, result.to_response_body())


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def _process(event: dict, service: ServiceContext) -> PermissionResult:
    with xray_recorder.in_subsegment("connect_database"):
        service.connect()

    payload = _parse_body(event)
    logger.info("Payment request received", extra={"fields": sorted(payload)})

    token = payload.get("userToken")
    if not token:
        raise MissingTokenError()
    if not isinstance(token, str):
        raise InvalidTokenError()

    with xray_recorder.in_subsegment("verify_identity"):
        email = IdentityVerifier(service.signing_key()).verify(token)

    request = _validate(payload)

    users = UserRepository(service.users_table, service.users_email_index)
    with xray_recorder.in_subsegment("find_user"):
        user = users.find_by_email(email)
    bind_context(user_id=user.user_id, auction_id=request.auction_id)

    with xray_recorder.in_subsegment("resolve_payment_method"):
        customer_id = PaymentMethodManager(users, service.processor).resolve_customer_id(user, request)

    with xray_recorder.in_subsegment("record_payment"):
        BidLedger(service.payments_table).record(
            user_id=user.user_id,
            customer_id=customer_id,
            bid_type=request.bid_type,
            auction_id=request.auction_id,
            amount=request.payment_amount,
        )

    with xray_recorder.in_subsegment("evaluate_highest_bid"):
        evaluation = AuctionArbiter(service.auctions_table).evaluate(
            request.auction_id, request.payment_amount, user.user_id,
        )

    with xray_recorder.in_subsegment("grant_bid_view_permission"):
        return PermissionGrantor(users).grant(
            user,
            request.auction_id,
            request.bid_type,
            evaluation.effective_highest_amount,
            evaluation.is_new_highest,
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_body(event: dict) -> dict[str, Any]:
    """
    Direct invocations pass the payment request as the event itself; API
    Gateway proxy events carry it as a JSON string in "body".
    """
    if "body" not in event:
        return event

    body = event["body"]
    if body is None:
        return {}
    if isinstance(body, dict):
        return body

    try:
        if event.get("isBase64Encoded"):
            body = base64.b64decode(body).decode("utf-8")
        payload = json.loads(body)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise BadRequestError("Request body is not valid JSON.") from e

    if not isinstance(payload, dict):
        raise BadRequestError("Request body must be a JSON object.")
    return payload


def _validate(payload: dict[str, Any]) -> PaymentRequest:
    try:
        return PaymentRequest.model_validate(payload)
    except ValidationError as e:
        # "input" can echo the whole payload, token included
        details = [
            {k: v for k, v in err.items() if k != "input"}
            for err in e.errors(include_url=False)
        ]
        for detail in details:
            if detail["loc"][:1] == ("paymentAmount",):
                detail["msg"] = AMOUNT_MESSAGE
        raise RequestValidationError(details) from e
