"""SSO bridge FastAPI application."""

import json
import logging
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from sso_bridge.api import sso
from sso_bridge.config import Settings
from sso_bridge.dependencies import get_nonce_store
from sso_bridge.exceptions import RandomSourceError, StoreUnavailableError
from sso_bridge.schemas.sso import HealthResponse
from sso_bridge.services.nonce_store import NonceStore
from sso_bridge.services.signature import SignatureCodec
from sso_bridge.services.sso_handshake import SsoHandshake
from sso_bridge.services.token_issuer import TokenIssuer
from sso_bridge.store import create_redis_client

logger = logging.getLogger(__name__)


# Filter to exclude health check endpoints from access logs
class EndpointFilter(logging.Filter):
    """Filter to exclude specific endpoints from Granian access logs."""

    def __init__(self, excluded_paths: list[str]) -> None:
        super().__init__()
        self.excluded_paths = excluded_paths

    def filter(self, record: logging.LogRecord) -> bool:
        """Return False if the log record is for an excluded endpoint."""
        message = record.getMessage()
        return not any(path in message for path in self.excluded_paths)


def configure_logging(settings: Settings) -> None:
    """Configure root logging once per process."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    access_logger = logging.getLogger("granian.access")
    if not any(isinstance(f, EndpointFilter) for f in access_logger.filters):
        access_logger.addFilter(EndpointFilter(["/health"]))


def build_handshake(settings: Settings, redis_client: Redis) -> SsoHandshake:
    """Wire the handshake components from settings.

    Raises:
        SigningError: If TOKEN_SECRET or SSO_PROVIDER_SECRET is missing
    """
    nonce_store = NonceStore(
        redis_client,
        ttl_seconds=settings.nonce_expires_in_seconds,
        key_prefix=settings.nonce_key_prefix,
    )
    codec = SignatureCodec(settings.sso_provider_secret)
    token_issuer = TokenIssuer(
        settings.token_secret,
        expires_in_seconds=settings.token_expires_in_seconds,
    )
    return SsoHandshake(nonce_store, codec, token_issuer, settings.discourse_root_url)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings: Settings = app.state.settings

    # Startup
    logger.info(f"Starting {settings.app_name}...")
    if await app.state.handshake.nonce_store.ping():
        logger.info("Nonce store reachable")
    else:
        # Requests will fail with 503 until Redis comes back
        logger.error(
            f"Nonce store unreachable at {settings.redis_host}:{settings.redis_port}"
        )
    logger.info(f"SSO bridge listening on port {settings.port}")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    await app.state.redis.aclose()
    logger.info("Redis connection closed")


# Read version from installed package metadata
try:
    _APP_VERSION = pkg_version("discourse-sso-bridge")
except Exception:
    _APP_VERSION = "0.0.0"


def create_app(settings: Settings | None = None, redis_client: Redis | None = None) -> FastAPI:
    """Build the application with explicitly constructed dependencies.

    Args:
        settings: Settings to use (loaded from the environment when omitted)
        redis_client: Nonce store client (built from settings when omitted)

    Raises:
        SigningError: If a signing secret is missing
    """
    settings = settings or Settings()
    configure_logging(settings)

    redis_client = redis_client if redis_client is not None else create_redis_client(settings)
    handshake = build_handshake(settings, redis_client)

    app = FastAPI(
        title=settings.app_name,
        description="Exchange DiscourseConnect logins for signed session tokens",
        version=_APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.redis = redis_client
    app.state.handshake = handshake

    # Rate limiter setup; nonce issuance writes to Redis on every unauthenticated hit
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.rate_limit_enabled,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_middleware(SlowAPIMiddleware)

    try:
        cors_origins = json.loads(settings.cors_origins)
    except json.JSONDecodeError:
        logger.warning("CORS_ORIGINS is not valid JSON, disabling CORS")
        cors_origins = []

    if cors_origins:
        logger.info(f"CORS allowed origins: {cors_origins}")
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["GET"],
            allow_headers=["*"],
            max_age=600,
        )

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        logger.error(f"Nonce store unavailable: {exc}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": "Nonce store unavailable"},
        )

    @app.exception_handler(RandomSourceError)
    async def random_source_handler(request: Request, exc: RandomSourceError):
        logger.error(f"Nonce generation failed: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Unable to generate nonce"},
        )

    @app.get("/health", response_model=HealthResponse)
    @limiter.exempt
    async def health_check(nonce_store: NonceStore = Depends(get_nonce_store)):
        """Health check endpoint."""
        store_ok = await nonce_store.ping()
        return {
            "status": "healthy" if store_ok else "degraded",
            "service": settings.app_name,
            "store": "ok" if store_ok else "unavailable",
        }

    app.include_router(sso.router, tags=["SSO"])

    return app
