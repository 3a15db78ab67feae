"""Protected resource routes

The secret note is the per-identity state that only an authenticated
session may read or change.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends

from identity_service.api.dependencies import (
    extract_session_token,
    get_gateway,
    raise_for_outcome,
)
from identity_service.core.gateway import AuthGateway
from identity_service.domain.models import (
    Identity,
    IdentityProfile,
    SecretNoteRequest,
    SecretResponse,
)

router = APIRouter(prefix="/secrets", tags=["secrets"])
logger = logging.getLogger(__name__)


@router.get("", response_model=SecretResponse)
async def read_secret(
    gateway: AuthGateway = Depends(get_gateway),
    token: Optional[str] = Depends(extract_session_token),
) -> SecretResponse:
    """Secret note of the current identity"""
    correlation_id = str(uuid.uuid4())

    async def show(identity: Identity) -> SecretResponse:
        return SecretResponse(
            user=IdentityProfile.from_identity(identity), secret=identity.secret_note
        )

    result = await gateway.protected_access(token, show)
    raise_for_outcome(result, correlation_id)
    return result.payload


@router.post("", response_model=SecretResponse)
async def submit_secret(
    request: SecretNoteRequest,
    gateway: AuthGateway = Depends(get_gateway),
    token: Optional[str] = Depends(extract_session_token),
) -> SecretResponse:
    """Attach a secret note to the current identity"""
    correlation_id = str(uuid.uuid4())

    result = await gateway.submit_secret(token, request.secret)
    raise_for_outcome(result, correlation_id)

    logger.debug(f"Secret submitted (correlation: {correlation_id})")
    return SecretResponse(
        user=IdentityProfile.from_identity(result.identity), secret=result.identity.secret_note
    )
