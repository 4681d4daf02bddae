"""
Stripe adapter.

Only customer creation is used: the card token collected by the client is
attached to a new Stripe customer, and the customer id is what the ledger
stores. Charging happens later, outside this function.

Stripe errors are classified into the three outcomes the client handles:
declined card, rate limiting, anything else.
"""
from __future__ import annotations

import stripe

from shared.logger import get_logger

from .errors import CardDeclinedError, RateLimitedError, UnknownProcessorError

logger = get_logger(__name__)


class StripeProcessor:
    def __init__(self, api_key: str):
        self._api_key = api_key

    def create_customer(self, source: str, email: str) -> str:
        """Create a customer from a card token and return its id."""
        try:
            customer = stripe.Customer.create(
                api_key=self._api_key,
                source=source,
                email=email,
            )
        except stripe.CardError as e:
            logger.info("Card declined by Stripe", extra={"stripe_code": e.code})
            raise CardDeclinedError() from e
        except stripe.RateLimitError as e:
            logger.warning("Stripe rate limit hit: %s", e)
            raise RateLimitedError() from e
        except stripe.StripeError as e:
            logger.error("Stripe API error: %s", e)
            raise UnknownProcessorError() from e

        return customer["id"]
