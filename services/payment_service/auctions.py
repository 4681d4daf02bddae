"""
Auction Arbiter
===============
Decides whether a submitted amount is the auction's new highest bid and, if
so, records it.

Ties favour the earlier bidder: only a strictly greater amount wins.

Why a conditional update instead of read-then-write:
  Two bids on the same auction can both read highest_bid=100 and both decide
  they won with 120 and 150. Whichever write lands last "wins", even if it is
  the smaller one. The write therefore carries the comparison itself:
    SET highest_bid = :bid WHERE highest_bid.amount < :amount
  DynamoDB evaluates that atomically per item, so highest_bid.amount can only
  ever increase. A bid that loses the race on the condition re-reads the
  auction and reports the amount that beat it.
"""
from __future__ import annotations

from botocore.exceptions import ClientError

from shared.dynamodb import decimal_to_python, is_conditional_check_failure
from shared.logger import get_logger
from shared.schemas import Auction, BidEvaluation

from .errors import AuctionLookupError, AuctionNotFoundError, AuctionUpdateError

logger = get_logger(__name__)

_SET_IF_HIGHER = (
    "attribute_exists(auction_id) AND ("
    "attribute_not_exists(#hb) OR attribute_type(#hb, :null_type) OR #hb.#amt < :amount"
    ")"
)


class AuctionArbiter:
    def __init__(self, table):
        self._table = table

    def evaluate(self, auction_id: str, candidate_amount: int, candidate_user_id: str) -> BidEvaluation:
        auction = self._get(auction_id)
        if auction is None:
            logger.info("Bid on unknown auction", extra={"auction_id": auction_id})
            raise AuctionNotFoundError(auction_id)

        current = auction.highest_bid
        if current is not None and candidate_amount <= current.amount:
            logger.info(
                "Bid is not the highest",
                extra={"auction_id": auction_id, "amount": candidate_amount, "highest": current.amount},
            )
            return BidEvaluation(is_new_highest=False, effective_highest_amount=current.amount)

        return self._set_highest_bid(auction_id, candidate_amount, candidate_user_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _get(self, auction_id: str, consistent: bool = False) -> Auction | None:
        try:
            resp = self._table.get_item(Key={"auction_id": auction_id}, ConsistentRead=consistent)
        except ClientError as e:
            logger.error("ERROR finding auction", extra={"auction_id": auction_id, "error": str(e)})
            raise AuctionLookupError(auction_id) from e
        item = resp.get("Item")
        return Auction.model_validate(decimal_to_python(item)) if item else None

    def _set_highest_bid(self, auction_id: str, amount: int, user_id: str) -> BidEvaluation:
        try:
            self._table.update_item(
                Key={"auction_id": auction_id},
                UpdateExpression="SET #hb = :bid",
                ConditionExpression=_SET_IF_HIGHER,
                ExpressionAttributeNames={"#hb": "highest_bid", "#amt": "amount"},
                ExpressionAttributeValues={
                    ":bid": {"user_id": user_id, "amount": amount},
                    ":amount": amount,
                    ":null_type": "NULL",
                },
            )
        except ClientError as e:
            if not is_conditional_check_failure(e):
                logger.error(
                    "ERROR setting highest bid",
                    extra={"auction_id": auction_id, "user_id": user_id, "amount": amount, "error": str(e)},
                )
                raise AuctionUpdateError(user_id, amount) from e
            return self._resolve_lost_race(auction_id, amount, user_id)

        logger.info(
            "New highest bid",
            extra={"auction_id": auction_id, "user_id": user_id, "amount": amount},
        )
        return BidEvaluation(is_new_highest=True, effective_highest_amount=amount)

    def _resolve_lost_race(self, auction_id: str, amount: int, user_id: str) -> BidEvaluation:
        """The conditional write was rejected: either a concurrent bid beat us or the auction vanished."""
        auction = self._get(auction_id, consistent=True)
        if auction is None or auction.highest_bid is None or auction.highest_bid.amount < amount:
            logger.error(
                "Highest bid update matched no auction",
                extra={"auction_id": auction_id, "user_id": user_id, "amount": amount},
            )
            raise AuctionUpdateError(user_id, amount)

        logger.info(
            "Concurrent bid won the race",
            extra={"auction_id": auction_id, "amount": amount, "highest": auction.highest_bid.amount},
        )
        return BidEvaluation(is_new_highest=False, effective_highest_amount=auction.highest_bid.amount)
