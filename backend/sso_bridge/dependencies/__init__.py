"""Dependencies for FastAPI endpoints."""

from sso_bridge.dependencies.handshake import get_app_settings, get_handshake, get_nonce_store

__all__ = ["get_handshake", "get_nonce_store", "get_app_settings"]
