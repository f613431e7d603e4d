"""Request-scoped access to the components built by ``create_app``."""

from fastapi import Request

from sso_bridge.config import Settings
from sso_bridge.services.nonce_store import NonceStore
from sso_bridge.services.sso_handshake import SsoHandshake


def get_handshake(request: Request) -> SsoHandshake:
    """Return the handshake wired up for this application instance."""
    return request.app.state.handshake


def get_nonce_store(request: Request) -> NonceStore:
    return request.app.state.handshake.nonce_store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
