"""DiscourseConnect SSO endpoint."""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from sso_bridge.config import Settings
from sso_bridge.dependencies import get_app_settings, get_handshake
from sso_bridge.exceptions import (
    HandshakeRejected,
    InvalidOrExpiredNonceError,
    InvalidSignatureError,
    MalformedPayloadError,
)
from sso_bridge.schemas.sso import ErrorResponse, TokenResponse
from sso_bridge.services.sso_handshake import SsoHandshake, callback_url_for
from sso_bridge.utils.log_redaction import redact_url

logger = logging.getLogger(__name__)

router = APIRouter()

# Used only when STRICT_ERROR_STATUS is enabled; otherwise rejections return 200
REJECTION_STATUS_CODES = {
    MalformedPayloadError: status.HTTP_400_BAD_REQUEST,
    InvalidSignatureError: status.HTTP_403_FORBIDDEN,
    InvalidOrExpiredNonceError: status.HTTP_401_UNAUTHORIZED,
}


@router.get(
    "/session/sso",
    response_model=None,
    responses={
        200: {"model": TokenResponse},
        302: {"description": "Redirect to the identity provider login"},
    },
)
async def session_sso(
    request: Request,
    sso: str | None = None,
    sig: str | None = None,
    handshake: SsoHandshake = Depends(get_handshake),
    settings: Settings = Depends(get_app_settings),
):
    """Start or finish a DiscourseConnect login.

    Without ``sso``/``sig`` the caller is redirected to the provider with a
    signed nonce. With both, the payload is verified and exchanged for a
    session token.
    """
    if sso and sig:
        try:
            token = await handshake.verify_and_issue(sso, sig)
        except HandshakeRejected as e:
            status_code = status.HTTP_200_OK
            if settings.strict_error_status:
                status_code = REJECTION_STATUS_CODES.get(type(e), status.HTTP_400_BAD_REQUEST)
            return JSONResponse(
                status_code=status_code,
                content=ErrorResponse(error=e.message).model_dump(),
            )

        return TokenResponse(token=token)

    callback_url = callback_url_for(request, trust_proxy_headers=settings.trust_proxy_headers)
    redirect_url = await handshake.build_redirect(callback_url)
    logger.debug(f"Redirect URL: {redact_url(redirect_url)}")

    return RedirectResponse(url=redirect_url, status_code=status.HTTP_302_FOUND)
