"""
Secrets Resolver
================
Configuration values (signing key, Stripe key, database endpoint) are stored
in the Lambda environment as base64 KMS ciphertext. Each one is decrypted on
first use and the plaintext is cached for the life of the process, so a warm
container pays the KMS round trip once per value.

There is no expiry or rotation handling: rotating a key means redeploying
(or waiting for the container to be recycled).
"""
from __future__ import annotations

import base64
import binascii
import os
from typing import Mapping

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from shared.logger import get_logger

logger = get_logger(__name__)


class SecretDecryptionError(Exception):
    """Raised when a configured ciphertext cannot be turned into plaintext."""

    def __init__(self, name: str, reason: str):
        self.name = name
        super().__init__(f"Cannot resolve secret {name!r}: {reason}")


class SecretsResolver:
    """
    KMS-backed resolver with a process-lifetime plaintext cache.

    Parameters
    ----------
    kms_client: boto3 KMS client; created lazily when omitted
    environ:    mapping to read ciphertexts from (defaults to os.environ)
    """

    def __init__(self, kms_client=None, environ: Mapping[str, str] | None = None):
        self._kms = kms_client
        self._environ = environ if environ is not None else os.environ
        self._cache: dict[str, str] = {}

    def resolve(self, name: str) -> str:
        """Return the plaintext for env var `name`. Raises SecretDecryptionError."""
        if name in self._cache:
            return self._cache[name]

        ciphertext = self._environ.get(name)
        if not ciphertext:
            raise SecretDecryptionError(name, "environment variable is not set")

        plaintext = self._decrypt(name, ciphertext)
        self._cache[name] = plaintext
        return plaintext

    def resolve_optional(self, name: str) -> str | None:
        """Like resolve(), but an unset variable yields None instead of an error."""
        if name not in self._cache and not self._environ.get(name):
            return None
        return self.resolve(name)

    def _decrypt(self, name: str, ciphertext: str) -> str:
        try:
            blob = base64.b64decode(ciphertext, validate=True)
        except (binascii.Error, ValueError) as e:
            raise SecretDecryptionError(name, "value is not valid base64") from e

        try:
            resp = self._client().decrypt(CiphertextBlob=blob)
        except (ClientError, BotoCoreError) as e:
            logger.error("KMS decrypt failed", extra={"secret_name": name, "error": str(e)})
            raise SecretDecryptionError(name, "KMS decrypt failed") from e

        logger.info("Secret decrypted and cached", extra={"secret_name": name})
        return resp["Plaintext"].decode("utf-8")

    def _client(self):
        if self._kms is None:
            self._kms = boto3.client("kms")
        return self._kms
