"""
FastAPI dependencies for authentication.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from tripboard.app_services import AppServices
from tripboard.auth.providers import TokenVerificationError
from tripboard.auth.service import ResolvedUser, identity_resolver
from tripboard.domain.errors import AuthenticationError
from tripboard.infrastructure.database import get_db
from tripboard.infrastructure.uploads import UploadStore

logger = logging.getLogger(__name__)

# Missing credentials are reported with our own error envelope
optional_bearer = HTTPBearer(auto_error=False)


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_upload_store(services: AppServices = Depends(get_services)) -> UploadStore:
    return services.upload_store


async def get_auth_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer),
    services: AppServices = Depends(get_services),
) -> Dict[str, Any]:
    """
    Verified claims of the bearer token. Raises 401 if absent or invalid.
    """
    token = credentials.credentials.strip() if credentials else ""
    if not token:
        raise AuthenticationError("Missing bearer token.")

    try:
        return await services.token_verifier.verify_token(token)
    except TokenVerificationError as e:
        logger.debug(f"Rejected access token: {e}")
        raise AuthenticationError()


async def get_current_user(
    claims: Dict[str, Any] = Depends(get_auth_claims),
    db: AsyncSession = Depends(get_db),
) -> ResolvedUser:
    """
    Resolve (and upsert) the caller's user row.

    Use this for endpoints that take no display name from the client.
    """
    return await identity_resolver.resolve(db, claims)
