"""
Permission Grantor
==================
After paying, a user may look at the bids on that auction:
  bid      → for PERMISSION_TTL from now
  donation → forever (expiry = None)

A user holds at most one permission per auction. A new grant replaces the
old entry outright rather than merging into it, so a donor who later bids
ends up with the bid's expiring permission.

Expiry is advisory: whatever serves the bid details checks it.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

from botocore.exceptions import ClientError

from shared.logger import get_logger
from shared.schemas import BidType, BidViewPermission, PermissionResult, User

from .errors import InvalidBidTypeError, PermissionUpdateError
from .users import UserNotUpdatedError, UserRepository

logger = get_logger(__name__)

PERMISSION_TTL = timedelta(minutes=5)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PermissionGrantor:
    def __init__(self, users: UserRepository, now: Callable[[], datetime] = _utcnow):
        self._users = users
        self._now = now

    def build_permission(self, auction_id: str, bid_type: BidType | str) -> BidViewPermission:
        try:
            bid_type = BidType(bid_type)
        except ValueError:
            raise InvalidBidTypeError(bid_type) from None

        if bid_type is BidType.BID:
            return BidViewPermission(auction_id=auction_id, expiry=self._now() + PERMISSION_TTL)
        return BidViewPermission(auction_id=auction_id, expiry=None)

    def grant(
        self,
        user: User,
        auction_id: str,
        bid_type: BidType | str,
        highest_amount: int,
        is_highest: bool,
    ) -> PermissionResult:
        permission = self.build_permission(auction_id, bid_type)

        permissions = [p for p in user.bid_view_permissions if p.auction_id != auction_id]
        permissions.append(permission)

        try:
            self._users.replace_bid_view_permissions(user.user_id, permissions)
        except UserNotUpdatedError:
            # Payment is already recorded; the caller still gets its answer
            logger.error(
                "ERROR finding user to give bid permissions",
                extra={"user_id": user.user_id, "auction_id": auction_id},
            )
        except ClientError as e:
            logger.error(
                "ERROR updating user bid view permissions",
                extra={"user_id": user.user_id, "auction_id": auction_id, "error": str(e)},
            )
            raise PermissionUpdateError() from e
        else:
            user.bid_view_permissions = permissions
            logger.info(
                "Bid view permission granted",
                extra={
                    "user_id": user.user_id,
                    "auction_id": auction_id,
                    "expiry": permission.expiry.isoformat() if permission.expiry else None,
                },
            )

        return PermissionResult(
            effective_highest_amount=highest_amount,
            is_highest=is_highest,
            expires=permission.expiry is not None,
        )
