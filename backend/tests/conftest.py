"""Pytest configuration and shared fixtures."""

import base64
import hashlib
import hmac
import sys
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str in sys.path:
    sys.path.remove(project_root_str)
sys.path.insert(0, project_root_str)

# ruff: noqa: E402 - Imports must come after sys.path setup
from sso_bridge.config import Settings
from sso_bridge.main import create_app
from sso_bridge.services.nonce_store import NonceStore
from sso_bridge.services.signature import SignatureCodec
from sso_bridge.services.sso_handshake import SsoHandshake
from sso_bridge.services.token_issuer import TokenIssuer

SSO_PROVIDER_SECRET = "provider-shared-secret"
TOKEN_SECRET = "session-token-secret"
DISCOURSE_ROOT_URL = "https://forum.example.com"


class FakeRedis:
    """In-memory stand-in for the subset of redis.asyncio.Redis the nonce store uses.

    Time is driven by ``advance()`` so TTL expiry can be tested without sleeping.
    """

    def __init__(self):
        self.now = 0.0
        self.closed = False
        self._data: dict[str, str] = {}
        self._expires_at: dict[str, float] = {}

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _expire(self, key: str) -> None:
        expires_at = self._expires_at.get(key)
        if expires_at is not None and self.now >= expires_at:
            self._data.pop(key, None)
            self._expires_at.pop(key, None)

    def ttl(self, key: str) -> float | None:
        self._expire(key)
        if key not in self._data:
            return None
        expires_at = self._expires_at.get(key)
        return None if expires_at is None else expires_at - self.now

    def keys(self) -> list[str]:
        for key in list(self._data):
            self._expire(key)
        return list(self._data)

    async def set(self, name: str, value: str, ex: int | None = None) -> bool:
        self._data[name] = value
        if ex is not None:
            self._expires_at[name] = self.now + ex
        else:
            self._expires_at.pop(name, None)
        return True

    async def exists(self, *names: str) -> int:
        count = 0
        for name in names:
            self._expire(name)
            if name in self._data:
                count += 1
        return count

    async def delete(self, *names: str) -> int:
        count = 0
        for name in names:
            self._expire(name)
            if name in self._data:
                del self._data[name]
                self._expires_at.pop(name, None)
                count += 1
        return count

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True


def sign(payload: str, secret: str = SSO_PROVIDER_SECRET) -> str:
    """Sign a base64 payload the way the identity provider does."""
    return hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()


def encode(query: str) -> str:
    """Base64-encode a raw query string the way the identity provider does."""
    return base64.b64encode(query.encode()).decode()


@pytest.fixture
def make_sso():
    """Factory fixture producing a provider-signed (sso, sig) pair.

    Usage:
        sso, sig = make_sso(f"nonce={nonce}&username=alice")
        sso, sig = make_sso("nonce=abc", secret="wrong-secret")
    """

    def _make_sso(query: str, secret: str = SSO_PROVIDER_SECRET) -> tuple[str, str]:
        payload = encode(query)
        return payload, sign(payload, secret)

    return _make_sso


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the process environment and any .env file."""
    return Settings(
        _env_file=None,
        token_secret=TOKEN_SECRET,
        sso_provider_secret=SSO_PROVIDER_SECRET,
        discourse_root_url=DISCOURSE_ROOT_URL,
        nonce_expires_in_seconds=600,
        nonce_key_prefix="",
        token_expires_in_seconds=None,
        strict_error_status=False,
        trust_proxy_headers=False,
        rate_limit_enabled=False,
        cors_origins="[]",
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def nonce_store(fake_redis: FakeRedis) -> NonceStore:
    return NonceStore(fake_redis, ttl_seconds=600)


@pytest.fixture
def codec() -> SignatureCodec:
    return SignatureCodec(SSO_PROVIDER_SECRET)


@pytest.fixture
def token_issuer() -> TokenIssuer:
    return TokenIssuer(TOKEN_SECRET)


@pytest.fixture
def handshake(nonce_store, codec, token_issuer) -> SsoHandshake:
    return SsoHandshake(nonce_store, codec, token_issuer, DISCOURSE_ROOT_URL)


@pytest.fixture
def make_app(fake_redis: FakeRedis, settings: Settings):
    """Factory fixture building an app against the fake store.

    Usage:
        app = make_app(strict_error_status=True)
    """

    def _make_app(**overrides):
        app_settings = settings.model_copy(update=overrides) if overrides else settings
        return create_app(app_settings, redis_client=fake_redis)

    return _make_app


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
async def client(app):
    """Create test client; redirects are not followed so they can be inspected."""
    test_client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    try:
        yield test_client
    finally:
        await test_client.aclose()
