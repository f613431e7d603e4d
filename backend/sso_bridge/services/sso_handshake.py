"""DiscourseConnect handshake orchestration.

A request without ``sso``/``sig`` is sent to the provider with a freshly
issued nonce; a request carrying them is verified and exchanged for a
session token:

    START -> AWAITING_PROVIDER_REDIRECT
    START -> VERIFYING_PAYLOAD -> ISSUED | REJECTED

The signature is always verified before the payload nonce is looked up or
consumed, so forged payloads never touch the nonce store.
"""

import logging
from enum import Enum
from urllib.parse import quote

from fastapi import Request

from sso_bridge.exceptions import (
    HandshakeRejected,
    InvalidOrExpiredNonceError,
    InvalidSignatureError,
)
from sso_bridge.services.nonce_store import NonceStore
from sso_bridge.services.signature import SignatureCodec
from sso_bridge.services.token_issuer import TokenIssuer, strip_transport_fields
from sso_bridge.utils.log_redaction import sanitize_for_log

logger = logging.getLogger(__name__)

PROVIDER_SSO_PATH = "/session/sso_provider"


class HandshakeState(Enum):
    """States of a single handshake request."""

    START = "start"
    AWAITING_PROVIDER_REDIRECT = "awaiting_provider_redirect"
    VERIFYING_PAYLOAD = "verifying_payload"
    ISSUED = "issued"
    REJECTED = "rejected"


def callback_url_for(request: Request, trust_proxy_headers: bool = False) -> str:
    """Rebuild the URL the caller used to reach us (scheme, host, path, query).

    X-Forwarded-Proto/X-Forwarded-Host are only honoured when
    ``trust_proxy_headers`` is set; otherwise the Host header is used.
    """
    url = request.url
    scheme, host = url.scheme, url.netloc
    if trust_proxy_headers:
        scheme = request.headers.get("x-forwarded-proto") or scheme
        host = request.headers.get("x-forwarded-host") or host
        # Proxies may send a comma-separated chain; the first entry is the client-facing one
        scheme = scheme.split(",")[0].strip()
        host = host.split(",")[0].strip()

    callback = f"{scheme}://{host}{url.path}"
    if url.query:
        callback = f"{callback}?{url.query}"
    return callback


class SsoHandshake:
    """Run both phases of the signed-payload SSO protocol."""

    def __init__(
        self,
        nonce_store: NonceStore,
        codec: SignatureCodec,
        token_issuer: TokenIssuer,
        provider_root_url: str,
    ):
        self.nonce_store = nonce_store
        self.codec = codec
        self.token_issuer = token_issuer
        self.provider_root_url = provider_root_url.rstrip("/")

    async def build_redirect(self, callback_url: str) -> str:
        """Issue a nonce and build the signed provider login URL.

        Args:
            callback_url: Where the provider should send the user back to

        Returns:
            ``{provider}/session/sso_provider?sso=<base64>&sig=<hex>``

        Raises:
            RandomSourceError: If nonce generation fails
            StoreUnavailableError: If the nonce could not be saved
        """
        nonce = await self.nonce_store.issue()
        payload = self.codec.encode_payload({"nonce": nonce, "return_sso_url": callback_url})
        signature = self.codec.sign(payload)

        redirect_url = (
            f"{self.provider_root_url}{PROVIDER_SSO_PATH}"
            f"?sso={quote(payload, safe='')}&sig={signature}"
        )
        logger.info(
            "Redirecting to provider login (state: %s, nonce: %s...)",
            HandshakeState.AWAITING_PROVIDER_REDIRECT.value,
            sanitize_for_log(nonce[:8]),
        )
        return redirect_url

    async def verify_and_issue(self, sso: str, sig: str) -> str:
        """Verify a signed provider payload and exchange it for a session token.

        Returns:
            Signed session token

        Raises:
            InvalidSignatureError: If the signature does not match the payload
            MalformedPayloadError: If the verified payload cannot be decoded
            InvalidOrExpiredNonceError: If the nonce is unknown, expired, or used
            StoreUnavailableError: If the nonce store cannot be reached
        """
        logger.debug("SSO handshake %s", HandshakeState.VERIFYING_PAYLOAD.value)
        try:
            if not self.codec.verify(sso, sig):
                raise InvalidSignatureError()

            claims = self.codec.decode_payload(sso)
            nonce = claims.get("nonce")

            if not await self.nonce_store.is_valid(nonce):
                raise InvalidOrExpiredNonceError()

            # A concurrent request may have consumed the nonce since the check
            if not await self.nonce_store.consume(nonce):
                raise InvalidOrExpiredNonceError("Nonce was consumed by a concurrent request")
        except HandshakeRejected as e:
            logger.warning(
                "SSO handshake %s: %s", HandshakeState.REJECTED.value, sanitize_for_log(str(e))
            )
            raise

        token = self.token_issuer.issue(strip_transport_fields(claims))
        logger.info(
            "SSO handshake %s for nonce %s...",
            HandshakeState.ISSUED.value,
            sanitize_for_log(nonce[:8]),
        )
        return token
