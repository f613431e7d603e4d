"""Redis connection management for the nonce store."""

import logging

from redis.asyncio import Redis

from sso_bridge.config import Settings

logger = logging.getLogger(__name__)


def create_redis_client(settings: Settings) -> Redis:
    """Create the long-lived Redis client shared by all requests.

    The client connects lazily on its first command, so construction never
    blocks or fails on an unreachable server.
    """
    client = Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
        socket_connect_timeout=5.0,
        socket_timeout=5.0,
    )
    logger.info(f"Redis client configured for {settings.redis_host}:{settings.redis_port}")
    return client
