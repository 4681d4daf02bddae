"""Bearer token verification."""
from __future__ import annotations

import jwt

from shared.logger import get_logger

from .errors import InvalidTokenError, MissingIdentityClaimError

logger = get_logger(__name__)

ALGORITHM = "HS256"
IDENTITY_CLAIM = "id"


class IdentityVerifier:
    def __init__(self, signing_key: str):
        self._signing_key = signing_key

    def verify(self, token: str) -> str:
        """
        Verify the token's signature and registered claims (exp, nbf) and
        return the identity claim, which holds the user's email address.
        """
        try:
            claims = jwt.decode(token, self._signing_key, algorithms=[ALGORITHM])
        except jwt.InvalidTokenError as e:
            logger.warning("User token rejected: %s", e)
            raise InvalidTokenError() from e

        identity = claims.get(IDENTITY_CLAIM)
        if not identity or not isinstance(identity, str):
            logger.warning("User token carries no identity claim")
            raise MissingIdentityClaimError()
        return identity
