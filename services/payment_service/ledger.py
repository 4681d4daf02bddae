"""Payment submission ledger: one pending record per accepted request."""
from __future__ import annotations

from botocore.exceptions import ClientError

from shared.logger import get_logger
from shared.schemas import BidType, PaymentSubmission

from .errors import PaymentRecordError

logger = get_logger(__name__)


class BidLedger:
    def __init__(self, table):
        self._table = table

    def record(
        self,
        user_id: str,
        customer_id: str,
        bid_type: BidType,
        auction_id: str,
        amount: int,
    ) -> PaymentSubmission:
        submission = PaymentSubmission(
            user_id=user_id,
            stripe_customer_id=customer_id,
            bid_type=bid_type,
            auction_id=auction_id,
            amount=amount,
        )
        try:
            self._table.put_item(
                Item=submission.to_item(),
                ConditionExpression="attribute_not_exists(payment_id)",
            )
        except ClientError as e:
            logger.error(
                "ERROR saving payment submission",
                extra={"user_id": user_id, "auction_id": auction_id, "error": str(e)},
            )
            raise PaymentRecordError() from e

        logger.info(
            "Payment submission recorded",
            extra={
                "payment_id": submission.payment_id,
                "user_id": user_id,
                "auction_id": auction_id,
                "amount": amount,
                "bid_type": submission.bid_type.value,
            },
        )
        return submission
