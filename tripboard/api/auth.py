"""
Session bootstrap endpoint.
The client signs in with the identity provider and calls this with the
resulting access token to create or refresh its local user.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tripboard.application.feed import feed_aggregator
from tripboard.auth.dependencies import get_auth_claims
from tripboard.auth.service import identity_resolver
from tripboard.domain.schemas import SessionRequest, SessionResponse
from tripboard.infrastructure.database import get_db


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/session",
    response_model=SessionResponse,
    summary="Start a session",
    description="Resolve the caller from their access token and list their active trips."
)
async def start_session(
    request: Optional[SessionRequest] = None,
    claims: Dict[str, Any] = Depends(get_auth_claims),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """
    Create or update the caller's user row.

    - A displayName in the body wins over the stored and token names
    - Email-shaped names are ignored
    """
    preferred = request.display_name if request else None
    user = await identity_resolver.resolve(db, claims, preferred)
    trips = await feed_aggregator.list_user_trips(db, user.user_id)
    return SessionResponse(
        user_id=user.user_id,
        display_name=user.display_name,
        email=user.email,
        trips=trips,
    )
