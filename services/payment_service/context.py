"""
Service Context
===============
Everything that outlives a single invocation: the secrets cache, the
DynamoDB resource and its table handles. Built once per Lambda container on
the first request and handed to every request by reference; never refreshed.

Tests build their own ServiceContext around moto or MagicMock doubles instead
of patching module globals.
"""
from __future__ import annotations

import os
from typing import Callable

from shared.dynamodb import get_resource, get_table
from shared.logger import get_logger
from shared.secrets import SecretDecryptionError, SecretsResolver

from .errors import ConfigError
from .processor import StripeProcessor

logger = get_logger(__name__)

DATABASE_ENDPOINT_ENV = "DATABASE_ENDPOINT_URL"
SIGNING_KEY_ENV = "JWT_SECRET_KEY"
PROCESSOR_KEY_ENV = "STRIPE_SECRET_KEY"


class ServiceContext:
    def __init__(
        self,
        secrets: SecretsResolver | None = None,
        dynamodb=None,
        processor_factory: Callable[[str], StripeProcessor] = StripeProcessor,
    ):
        self.secrets = secrets or SecretsResolver()
        self._dynamodb = dynamodb
        self._processor_factory = processor_factory
        self._processor: StripeProcessor | None = None

        # Read env at construction so monkeypatched table names take effect in tests
        self.users_table_name = os.environ.get("USERS_TABLE", "ambr-users")
        self.users_email_index = os.environ.get("USERS_EMAIL_INDEX", "email-index")
        self.auctions_table_name = os.environ.get("AUCTIONS_TABLE", "ambr-auctions")
        self.payments_table_name = os.environ.get("PAYMENTS_TABLE", "ambr-payments")

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    def connect(self):
        """Return the DynamoDB resource, creating it on first use."""
        if self._dynamodb is None:
            try:
                endpoint_url = self.secrets.resolve_optional(DATABASE_ENDPOINT_ENV)
            except SecretDecryptionError as e:
                raise ConfigError("database connection string") from e
            logger.info("Connecting to database", extra={"custom_endpoint": bool(endpoint_url)})
            self._dynamodb = get_resource(endpoint_url)
        return self._dynamodb

    @property
    def users_table(self):
        return get_table(self.users_table_name, self.connect())

    @property
    def auctions_table(self):
        return get_table(self.auctions_table_name, self.connect())

    @property
    def payments_table(self):
        return get_table(self.payments_table_name, self.connect())

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def signing_key(self) -> str:
        try:
            return self.secrets.resolve(SIGNING_KEY_ENV)
        except SecretDecryptionError as e:
            raise ConfigError("user token key") from e

    def processor(self) -> StripeProcessor:
        if self._processor is None:
            try:
                api_key = self.secrets.resolve(PROCESSOR_KEY_ENV)
            except SecretDecryptionError as e:
                raise ConfigError("payment processor key") from e
            self._processor = self._processor_factory(api_key)
        return self._processor
