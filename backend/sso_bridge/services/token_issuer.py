"""Session token signing for verified SSO claims."""

import logging
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from authlib.jose import JoseError, jwt

from sso_bridge.exceptions import SigningError

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

# Fields that only exist to route the handshake and never reach the token
TRANSPORT_FIELDS = frozenset({"nonce", "return_sso_url"})


def strip_transport_fields(claims: Mapping[str, Any]) -> dict[str, Any]:
    """Return a new mapping without ``nonce`` and ``return_sso_url``."""
    return {key: value for key, value in claims.items() if key not in TRANSPORT_FIELDS}


class TokenIssuer:
    """Mint and verify HS256 JWTs carrying the provider's identity claims."""

    def __init__(self, secret: str, expires_in_seconds: int | None = None):
        if not secret:
            raise SigningError("Token signing secret is not configured")
        self._secret = secret
        self.expires_in_seconds = expires_in_seconds

    def issue(self, claims: Mapping[str, Any]) -> str:
        """Sign the claims (minus transport-only fields) into a JWT.

        No ``exp`` claim is added unless an expiry was configured.
        """
        to_encode = strip_transport_fields(claims)
        if self.expires_in_seconds:
            now = datetime.now(UTC)
            to_encode.update(
                {
                    "iat": int(now.timestamp()),
                    "exp": int((now + timedelta(seconds=self.expires_in_seconds)).timestamp()),
                }
            )

        header = {"alg": JWT_ALGORITHM}
        try:
            # Provider claims are arbitrary; authlib's sensitive-claim check would
            # refuse names like "token" or card-number-shaped values
            encoded = jwt.encode(header, to_encode, self._secret, check=False)
        except JoseError as e:
            logger.error(f"Failed to sign session token: {e}")
            raise SigningError(f"Could not sign session token: {e}") from e
        return encoded.decode("utf-8") if isinstance(encoded, bytes) else encoded

    def decode(self, token: str) -> dict[str, Any]:
        """Verify a token's signature (and expiry, when present) and return its claims.

        Raises:
            SigningError: If the token is malformed, forged, or expired
        """
        try:
            claims = jwt.decode(token, self._secret)
            claims.validate()
        except JoseError as e:
            logger.warning(f"Session token verification failed: {e}")
            raise SigningError(f"Invalid session token: {e}") from e
        except ValueError as e:
            raise SigningError(f"Malformed session token: {e}") from e
        return dict(claims)
