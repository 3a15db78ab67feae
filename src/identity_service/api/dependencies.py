"""Request dependencies shared by the route modules"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, Response

from identity_service.config.settings import Settings
from identity_service.core.gateway import AuthGateway
from identity_service.domain.models import AuthOutcome, GatewayResult, ResponseKind


def get_gateway(request: Request) -> AuthGateway:
    """AuthGateway built at startup"""
    return request.app.state.gateway


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def extract_session_token(
    request: Request,
    authorization: Optional[str] = Header(None, alias="Authorization"),
    settings: Settings = Depends(get_app_settings),
) -> Optional[str]:
    """Session token from the session cookie, or a Bearer header as fallback"""
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token

    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        return token or None

    return None


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(key=settings.session_cookie_name, httponly=True, samesite="lax")


def raise_for_outcome(result: GatewayResult, correlation_id: str) -> None:
    """Translate a non-OK gateway outcome into an HTTP error

    retry_form     -> 400 / 401 / 409 (caller may resubmit the form)
    redirect_login -> 401 pointing at the login endpoint
    hard_failure   -> 503
    """
    if result.ok:
        return

    kind = result.response_kind
    description = result.error.message if result.error else result.outcome.value

    if kind is ResponseKind.HARD_FAILURE:
        raise HTTPException(
            status_code=503,
            detail={
                "error": "auth_unavailable",
                "error_description": "Authentication is temporarily unavailable. Please try again later.",
                "correlation_id": correlation_id,
            },
        )

    if kind is ResponseKind.REDIRECT_LOGIN:
        raise HTTPException(
            status_code=401,
            detail={
                "error": "unauthenticated",
                "error_description": "Authentication required. Please log in to access this resource.",
                "correlation_id": correlation_id,
            },
            headers={"WWW-Authenticate": "Session", "Location": "/api/v1/auth/login"},
        )

    if result.outcome is AuthOutcome.LOGIN_FAILED:
        # Do not reveal whether the username exists
        raise HTTPException(
            status_code=401,
            detail={
                "error": "login_failed",
                "error_description": "Invalid username or password",
                "correlation_id": correlation_id,
            },
        )

    status_code = 409 if result.error_code == "duplicate_key" else 400
    raise HTTPException(
        status_code=status_code,
        detail={
            "error": result.error_code or result.outcome.value,
            "error_description": description,
            "correlation_id": correlation_id,
        },
    )
