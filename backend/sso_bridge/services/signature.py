"""HMAC signing and payload encoding for the DiscourseConnect protocol.

A payload is a query string (``nonce=...&return_sso_url=...``) that travels
base64-encoded in the ``sso`` parameter. The ``sig`` parameter is the
lowercase hex HMAC-SHA256 of that base64 text, keyed by the secret shared
with the identity provider.
"""

import base64
import binascii
import hashlib
import hmac
import logging
from collections.abc import Iterable, Mapping
from urllib.parse import parse_qsl, urlencode

from sso_bridge.exceptions import MalformedPayloadError, SigningError

logger = logging.getLogger(__name__)


class SignatureCodec:
    """Stateless signer/verifier for sso payloads."""

    def __init__(self, secret: str):
        if not secret:
            raise SigningError("SSO provider secret is not configured")
        self._key = secret.encode("utf-8")

    @staticmethod
    def encode_payload(claims: Mapping[str, str] | Iterable[tuple[str, str]]) -> str:
        """Serialize claims as a query string and base64-encode it."""
        pairs = list(claims.items()) if isinstance(claims, Mapping) else list(claims)
        query = urlencode(pairs)
        return base64.b64encode(query.encode("ascii")).decode("ascii")

    @staticmethod
    def decode_payload(payload: str) -> dict[str, str]:
        """Decode a base64 sso payload into a claims mapping.

        Later keys win on duplicates, as with ordinary query-string parsing.
        An empty payload decodes to an empty mapping. Empty fields (a trailing
        or doubled ``&``) are skipped and a field without ``=`` has a blank value.

        Raises:
            MalformedPayloadError: If the payload is not valid base64, not
                ASCII, or carries percent-escapes that are not valid UTF-8
        """
        # Providers may wrap long base64 output across lines
        compact = "".join((payload or "").split())
        try:
            raw = base64.b64decode(compact, validate=True)
            query = raw.decode("ascii")
            pairs = parse_qsl(query, keep_blank_values=True, errors="strict")
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Could not decode sso payload: {e}")
            raise MalformedPayloadError(str(e)) from e

        return dict(pairs)

    def sign(self, payload: str) -> str:
        """Return the lowercase hex HMAC-SHA256 of the base64 payload."""
        digest = hmac.new(self._key, payload.encode("utf-8"), hashlib.sha256)
        return digest.hexdigest().lower()

    def verify(self, payload: str | None, signature: str | None) -> bool:
        """Check a candidate signature against a freshly computed one.

        Comparison is case-insensitive and constant-time.
        """
        if not payload or not signature:
            return False
        expected = self.sign(payload).encode("ascii")
        candidate = signature.strip().lower().encode("utf-8")
        return hmac.compare_digest(expected, candidate)
