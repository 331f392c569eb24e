"""
Trip API endpoints.
All endpoints require authentication (Bearer token).
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from tripboard.application.feed import feed_aggregator
from tripboard.application.membership import membership_guard
from tripboard.application.normalizers import parse_uuid
from tripboard.application.post_validator import PostFields
from tripboard.application.posts import post_service
from tripboard.application.trips import trip_service
from tripboard.auth.dependencies import get_auth_claims, get_current_user, get_upload_store
from tripboard.auth.service import ResolvedUser, identity_resolver
from tripboard.domain.schemas import (
    JoinTripRequest,
    PostEnvelope,
    SuccessResponse,
    TripCreateRequest,
    TripEnvelope,
    TripListResponse,
    TripWithUserResponse,
)
from tripboard.infrastructure.database import get_db
from tripboard.infrastructure.uploads import UploadStore


router = APIRouter(prefix="/trips", tags=["trips"])


@router.get(
    "",
    response_model=TripListResponse,
    summary="List my trips",
    description="Active trips the caller belongs to, most recently updated first."
)
async def list_trips(
    db: AsyncSession = Depends(get_db),
    user: ResolvedUser = Depends(get_current_user),
) -> TripListResponse:
    trips = await feed_aggregator.list_user_trips(db, user.user_id)
    return TripListResponse(trips=trips)


@router.post(
    "",
    response_model=TripWithUserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a trip",
    description="Create a trip with a fresh join code; the caller becomes its owner."
)
async def create_trip(
    request: TripCreateRequest,
    claims: Dict[str, Any] = Depends(get_auth_claims),
    db: AsyncSession = Depends(get_db),
) -> TripWithUserResponse:
    """
    Create a trip.

    - Generates day rows 1..dayCount, dated from startDate when given
    - Retries join code generation on collision
    """
    user = await identity_resolver.resolve(db, claims, request.display_name)
    trip_id = await trip_service.create_trip(db, user.user_id, request)
    trip = await feed_aggregator.load_trip(db, trip_id, user.user_id)
    return TripWithUserResponse(trip=trip, user_id=user.user_id)


@router.post(
    "/join",
    response_model=TripWithUserResponse,
    summary="Join a trip",
    description="Join (or rejoin) a trip using its 8-character join code."
)
async def join_trip(
    request: JoinTripRequest,
    claims: Dict[str, Any] = Depends(get_auth_claims),
    db: AsyncSession = Depends(get_db),
) -> TripWithUserResponse:
    user = await identity_resolver.resolve(db, claims, request.display_name)
    trip_id = await trip_service.join_trip(db, user.user_id, request.join_code)
    trip = await feed_aggregator.load_trip(db, trip_id, user.user_id)
    return TripWithUserResponse(trip=trip, user_id=user.user_id)


@router.get(
    "/{trip_id}",
    response_model=TripEnvelope,
    summary="Get trip feed",
    description="Full nested trip view. Members only."
)
async def get_trip(
    trip_id: str,
    db: AsyncSession = Depends(get_db),
    user: ResolvedUser = Depends(get_current_user),
) -> TripEnvelope:
    trip_uuid = parse_uuid(trip_id, "Trip not found.")
    await trip_service.require_active_trip(db, trip_uuid)
    await membership_guard.require_member(db, trip_uuid, user.user_id)
    trip = await feed_aggregator.load_trip(db, trip_uuid, user.user_id)
    return TripEnvelope(trip=trip)


@router.delete(
    "/{trip_id}",
    response_model=SuccessResponse,
    summary="Delete a trip",
    description="Archive the trip and deactivate all memberships. Owner only."
)
async def delete_trip(
    trip_id: str,
    db: AsyncSession = Depends(get_db),
    user: ResolvedUser = Depends(get_current_user),
) -> SuccessResponse:
    await trip_service.archive_trip(db, parse_uuid(trip_id, "Trip not found."), user.user_id)
    return SuccessResponse(success=True)


@router.post(
    "/{trip_id}/posts",
    response_model=PostEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create a post",
    description="Multipart form: post fields plus up to 6 images under 'images'."
)
async def create_post(
    trip_id: str,
    post_type: Optional[str] = Form(default=None, alias="postType"),
    day_number: Optional[str] = Form(default=None, alias="dayNumber"),
    title: Optional[str] = Form(default=None),
    body: Optional[str] = Form(default=None),
    event_name: Optional[str] = Form(default=None, alias="eventName"),
    from_time: Optional[str] = Form(default=None, alias="fromTime"),
    to_time: Optional[str] = Form(default=None, alias="toTime"),
    location_name: Optional[str] = Form(default=None, alias="locationName"),
    latitude: Optional[str] = Form(default=None),
    longitude: Optional[str] = Form(default=None),
    crawl_locations: Optional[str] = Form(default=None, alias="crawlLocations"),
    display_name: Optional[str] = Form(default=None, alias="displayName"),
    images: Optional[List[UploadFile]] = File(default=None),
    claims: Dict[str, Any] = Depends(get_auth_claims),
    db: AsyncSession = Depends(get_db),
    store: UploadStore = Depends(get_upload_store),
) -> PostEnvelope:
    """
    Create a SUGGESTION, EVENT or CRAWL post.

    - crawlLocations is a JSON array of {locationName, latitude, longitude}
    - Images are written only after membership and validation pass
    """
    user = await identity_resolver.resolve(db, claims, display_name)
    fields = PostFields(
        post_type=post_type,
        day_number=day_number,
        title=title,
        body=body,
        event_name=event_name,
        from_time=from_time,
        to_time=to_time,
        location_name=location_name,
        latitude=latitude,
        longitude=longitude,
        crawl_locations=crawl_locations,
    )
    post = await post_service.create_post(db, store, user.user_id, trip_id, fields, images or [])
    return PostEnvelope(post=post)
