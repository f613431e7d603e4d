"""Service layer for the SSO bridge."""

from sso_bridge.services.nonce_store import NonceStore
from sso_bridge.services.signature import SignatureCodec
from sso_bridge.services.sso_handshake import SsoHandshake
from sso_bridge.services.token_issuer import TokenIssuer

__all__ = ["NonceStore", "SignatureCodec", "TokenIssuer", "SsoHandshake"]
