"""Single-use nonce registry backed by Redis key expiry.

Nonces are stored as empty-string values with a per-key TTL, so expiry is
handled entirely by Redis and there is no cleanup job. Each operation is a
single Redis command; Redis per-key atomicity is the only concurrency
boundary.
"""

import logging
import secrets

from redis.asyncio import Redis
from redis.exceptions import RedisError

from sso_bridge.exceptions import RandomSourceError, StoreUnavailableError
from sso_bridge.utils.log_redaction import sanitize_for_log

logger = logging.getLogger(__name__)

NONCE_BYTES = 16  # 128 bits -> 32 hex characters


def generate_nonce() -> str:
    """Generate a hex nonce from the operating system's CSPRNG.

    Raises:
        RandomSourceError: If the entropy source is unavailable
    """
    try:
        return secrets.token_bytes(NONCE_BYTES).hex()
    except (OSError, NotImplementedError) as e:
        logger.error(f"Error trying to generate nonce: {e}")
        raise RandomSourceError(f"Entropy source unavailable: {e}") from e


class NonceStore:
    """Issue, check, and consume nonces in a shared Redis instance."""

    def __init__(self, client: Redis, ttl_seconds: int, key_prefix: str = ""):
        if ttl_seconds <= 0:
            raise ValueError("Nonce TTL must be positive")
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix

    def _key(self, nonce: str) -> str:
        return f"{self.key_prefix}{nonce}"

    async def issue(self) -> str:
        """Create a nonce and persist it with the configured TTL.

        Returns:
            The new nonce value

        Raises:
            RandomSourceError: If nonce generation fails
            StoreUnavailableError: If the nonce could not be saved
        """
        nonce = generate_nonce()
        try:
            await self.client.set(self._key(nonce), "", ex=self.ttl_seconds)
        except RedisError as e:
            logger.error(f"Redis error saving nonce: {e}")
            raise StoreUnavailableError(f"Could not save nonce: {e}") from e

        logger.debug("Issued nonce %s...", sanitize_for_log(nonce[:8]))
        return nonce

    async def is_valid(self, nonce: str | None) -> bool:
        """Return True if the nonce exists (issued, unexpired, not consumed)."""
        if not nonce:
            return False
        try:
            return await self.client.exists(self._key(nonce)) == 1
        except RedisError as e:
            logger.error(f"Redis error checking nonce: {e}")
            raise StoreUnavailableError(f"Could not check nonce: {e}") from e

    async def consume(self, nonce: str | None) -> bool:
        """Delete the nonce.

        Deleting an absent nonce is not an error. The return value reports
        whether this call removed the key, which makes it the single source
        of truth when two verifications race on the same nonce.
        """
        if not nonce:
            return False
        try:
            deleted = await self.client.delete(self._key(nonce))
        except RedisError as e:
            logger.error(f"Redis error deleting nonce: {e}")
            raise StoreUnavailableError(f"Could not delete nonce: {e}") from e

        if deleted:
            logger.debug("Consumed nonce %s...", sanitize_for_log(nonce[:8]))
        return deleted == 1

    async def ping(self) -> bool:
        """Check that Redis is reachable."""
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False
