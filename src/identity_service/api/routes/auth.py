"""Authentication Routes

Purpose: FastAPI routes that hand already-parsed input to the AuthGateway

Key Endpoints:
- POST /auth/register: Create a local identity and start a session
- POST /auth/login: Username/password login
- GET /auth/{provider}/login: Provider authorization URL
- POST /auth/{provider}/callback: Complete a provider login
- POST /auth/logout: Invalidate the session
- GET /auth/me: Current identity profile
- GET /auth/health: Authentication system health
"""

import logging
import secrets
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from identity_service.api.dependencies import (
    clear_session_cookie,
    extract_session_token,
    get_app_settings,
    get_gateway,
    raise_for_outcome,
    set_session_cookie,
)
from identity_service.config.settings import Settings
from identity_service.core.gateway import AuthGateway
from identity_service.domain.errors import AuthFailureError, AuthUnavailableError
from identity_service.domain.models import (
    AuthorizationUrlResponse,
    CredentialsRequest,
    GatewayResult,
    Identity,
    IdentityProfile,
    LogoutResponse,
    ProviderAssertion,
    ProviderCallbackRequest,
    SessionResponse,
    to_json_compatible,
)

# Initialize router and logger
router = APIRouter(prefix="/api/v1/auth", tags=["authentication"])
logger = logging.getLogger(__name__)


def _session_response(
    result: GatewayResult, response: Response, settings: Settings, correlation_id: str
) -> SessionResponse:
    set_session_cookie(response, result.token, settings)
    response.headers["X-Correlation-Id"] = correlation_id
    return SessionResponse(
        expires_in=settings.session_ttl_seconds,
        user=IdentityProfile.from_identity(result.identity),
    )


@router.post("/register", response_model=SessionResponse, status_code=201)
async def register(
    request: CredentialsRequest,
    response: Response,
    gateway: AuthGateway = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings),
) -> SessionResponse:
    """Registration endpoint

    Creates a local identity and logs it in.
    """
    correlation_id = str(uuid.uuid4())

    result = await gateway.register(request.username, request.password)
    raise_for_outcome(result, correlation_id)

    logger.info(
        f"Registration successful for identity {result.identity.id} (correlation: {correlation_id})"
    )
    return _session_response(result, response, settings, correlation_id)


@router.post("/login", response_model=SessionResponse, status_code=200)
async def login(
    request: CredentialsRequest,
    response: Response,
    gateway: AuthGateway = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings),
    current_token: Optional[str] = Depends(extract_session_token),
) -> SessionResponse:
    """Username/password login endpoint"""
    correlation_id = str(uuid.uuid4())

    result = await gateway.login(request.username, request.password, current_token=current_token)
    if not result.ok:
        logger.warning(
            f"Login failed: {result.error_code}",
            extra={"username": request.username, "correlation_id": correlation_id},
        )
    raise_for_outcome(result, correlation_id)

    logger.info(f"Login successful for identity {result.identity.id} (correlation: {correlation_id})")
    return _session_response(result, response, settings, correlation_id)


@router.get("/{provider}/login", response_model=AuthorizationUrlResponse)
async def provider_login(
    provider: str,
    gateway: AuthGateway = Depends(get_gateway),
) -> AuthorizationUrlResponse:
    """Start a provider login

    Returns the URL the browser should be sent to. The state value must be
    checked by the handshake collaborator when the provider redirects back.
    """
    state = secrets.token_urlsafe(16)
    try:
        url = gateway.authorization_url(provider, state)
    except AuthFailureError as e:
        raise HTTPException(status_code=404, detail={"error": e.code, "error_description": e.message})
    except AuthUnavailableError as e:
        raise HTTPException(status_code=503, detail={"error": e.code, "error_description": e.message})

    return AuthorizationUrlResponse(provider=provider, authorization_url=url, state=state)


@router.post("/{provider}/callback", response_model=SessionResponse, status_code=200)
async def provider_callback(
    provider: str,
    request: ProviderCallbackRequest,
    response: Response,
    gateway: AuthGateway = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings),
    current_token: Optional[str] = Depends(extract_session_token),
) -> SessionResponse:
    """Complete a provider login

    Called by the handshake collaborator with the provider-verified subject id.
    Visiting again with the same subject resolves to the same identity.
    """
    correlation_id = str(uuid.uuid4())

    assertion = ProviderAssertion(
        provider=provider, external_id=request.external_id, profile=request.profile
    )
    result = await gateway.provider_callback(provider, assertion, current_token=current_token)
    raise_for_outcome(result, correlation_id)

    logger.info(
        f"{provider} login successful for identity {result.identity.id} "
        f"(correlation: {correlation_id})"
    )
    return _session_response(result, response, settings, correlation_id)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    response: Response,
    gateway: AuthGateway = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings),
    token: Optional[str] = Depends(extract_session_token),
) -> LogoutResponse:
    """Logout current session

    Succeeds even when no session is present.
    """
    correlation_id = str(uuid.uuid4())

    result = await gateway.logout(token)
    raise_for_outcome(result, correlation_id)

    clear_session_cookie(response, settings)
    logger.info(f"Logout processed (correlation: {correlation_id})")
    return LogoutResponse()


@router.get("/me", response_model=IdentityProfile)
async def get_current_identity(
    gateway: AuthGateway = Depends(get_gateway),
    token: Optional[str] = Depends(extract_session_token),
) -> IdentityProfile:
    """Get current identity profile"""
    correlation_id = str(uuid.uuid4())

    async def profile(identity: Identity) -> IdentityProfile:
        return IdentityProfile.from_identity(identity)

    result = await gateway.protected_access(token, profile)
    raise_for_outcome(result, correlation_id)
    return result.payload


@router.get("/health")
async def auth_health_check(request: Request):
    """Authentication system health check

    Returns the status of authentication services.
    """
    gateway: AuthGateway = request.app.state.gateway
    redis_client = getattr(request.app.state, "redis", None)

    redis_healthy = await redis_client.health_check() if redis_client else None
    try:
        identity_count = await gateway.store.count()
        store_status = "healthy"
    except AuthUnavailableError as e:
        logger.error(f"Auth health check failed: {e}")
        identity_count = None
        store_status = "unhealthy"

    healthy = store_status == "healthy" and redis_healthy is not False
    return {
        "status": "healthy" if healthy else "degraded",
        "timestamp": to_json_compatible(datetime.now(timezone.utc)),
        "services": {
            "redis": "not_configured" if redis_healthy is None else ("healthy" if redis_healthy else "unhealthy"),
            "credential_store": store_status,
            "strategies": gateway.registry.names(),
        },
        "identity_count": identity_count,
    }
