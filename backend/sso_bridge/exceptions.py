"""Error taxonomy for the SSO handshake."""


class SsoBridgeError(Exception):
    """Base class for all SSO bridge errors."""

    pass


class RandomSourceError(SsoBridgeError):
    """The cryptographic entropy source failed; no nonce was issued."""

    pass


class StoreUnavailableError(SsoBridgeError):
    """The nonce store could not be reached or returned an error."""

    pass


class SigningError(SsoBridgeError):
    """A signing secret is missing, or a session token failed verification."""

    pass


class HandshakeRejected(SsoBridgeError):
    """An inbound SSO payload was rejected.

    Rejections are terminal for the request and reported to the caller as a
    structured error body. ``message`` is the user-facing text.
    """

    reason = "rejected"
    message = "Invalid sso request"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.message)
        self.detail = detail


class MalformedPayloadError(HandshakeRejected):
    """The sso payload could not be base64-decoded or parsed as a query string."""

    reason = "malformed_payload"
    message = "Invalid sso payload"


class InvalidSignatureError(HandshakeRejected):
    """The recomputed HMAC did not match the supplied signature."""

    reason = "invalid_signature"
    message = "Invalid sso signature"


class InvalidOrExpiredNonceError(HandshakeRejected):
    """The payload nonce was never issued, has expired, or was already consumed."""

    reason = "invalid_or_expired_nonce"
    message = "Invalid or expired nonce"
