"""Response schemas for the SSO endpoint."""

from pydantic import BaseModel


class TokenResponse(BaseModel):
    """Successful handshake: the signed session token."""

    token: str


class ErrorResponse(BaseModel):
    """Rejected handshake or server-side failure."""

    error: str


class HealthResponse(BaseModel):
    """Service health, including nonce store reachability."""

    status: str
    service: str
    store: str
