"""
Payment Method Manager
======================
Turns the request's payment method into the Stripe customer id the ledger
records.

New card:  create a Stripe customer from the card token, then save
           {token_id: customer id, last four, brand} on the user.
Known card: the client already sends the saved customer id as tokenId.

Partial failure: if Stripe creates the customer but saving it on the user
fails, the customer is NOT deleted. The orphaned id is logged so it can be
cleaned up by hand.
"""
from __future__ import annotations

from typing import Callable

from botocore.exceptions import ClientError

from shared.logger import get_logger
from shared.schemas import PaymentRequest, SavedPaymentMethod, User

from .errors import PaymentMethodSaveError
from .processor import StripeProcessor
from .users import UserNotUpdatedError, UserRepository

logger = get_logger(__name__)


class PaymentMethodManager:
    """
    Parameters
    ----------
    users:     repository used to persist the new payment method
    processor: zero-arg callable returning the Stripe adapter; only invoked
               when a customer has to be created, so the Stripe key is not
               decrypted for saved cards
    """

    def __init__(self, users: UserRepository, processor: Callable[[], StripeProcessor]):
        self._users = users
        self._processor = processor

    def resolve_customer_id(self, user: User, request: PaymentRequest) -> str:
        if not request.is_new_payment_method:
            return request.payment_method.token_id
        return self._save_new_payment_method(user, request)

    def _save_new_payment_method(self, user: User, request: PaymentRequest) -> str:
        details = request.payment_method
        customer_id = self._processor().create_customer(source=details.token_id, email=user.email)

        new_method = SavedPaymentMethod(
            token_id=customer_id,
            last_four_digits=details.last_four_digits,
            card_brand=details.card_brand,
        )
        try:
            self._users.append_payment_method(user.user_id, new_method)
        except (ClientError, UserNotUpdatedError) as e:
            logger.error(
                "Stripe customer created but not saved on user",
                extra={"user_id": user.user_id, "orphaned_customer_id": customer_id, "error": str(e)},
            )
            raise PaymentMethodSaveError() from e

        user.payment_methods.append(new_method)
        logger.info(
            "New payment method saved",
            extra={"user_id": user.user_id, "card_brand": details.card_brand},
        )
        return customer_id
