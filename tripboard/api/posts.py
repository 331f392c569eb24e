"""
Post API endpoints: deletion, comments, votes, images, challenges and
crawl stops. All endpoints require authentication (Bearer token).
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from tripboard.application.posts import post_service
from tripboard.auth.dependencies import get_auth_claims, get_current_user, get_upload_store
from tripboard.auth.service import ResolvedUser, identity_resolver
from tripboard.domain.schemas import (
    ChallengeCreateRequest,
    ChallengeEnvelope,
    CommentCreateRequest,
    CommentEnvelope,
    CrawlLocationChallengeCreateRequest,
    CrawlLocationChallengeEnvelope,
    CrawlReorderRequest,
    PostEnvelope,
    SuccessResponse,
    VoteSummary,
)
from tripboard.infrastructure.database import get_db
from tripboard.infrastructure.uploads import UploadStore


router = APIRouter(prefix="/posts", tags=["posts"])


@router.delete(
    "/{post_id}",
    response_model=SuccessResponse,
    summary="Delete a post",
    description="Soft-delete a post. Allowed for its author and the trip owner."
)
async def delete_post(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    user: ResolvedUser = Depends(get_current_user),
) -> SuccessResponse:
    await post_service.delete_post(db, post_id, user.user_id)
    return SuccessResponse(success=True)


# --- Comments ---

@router.post(
    "/{post_id}/comments",
    response_model=CommentEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a post",
)
async def add_comment(
    post_id: str,
    request: CommentCreateRequest,
    claims: Dict[str, Any] = Depends(get_auth_claims),
    db: AsyncSession = Depends(get_db),
) -> CommentEnvelope:
    user = await identity_resolver.resolve(db, claims, request.display_name)
    comment = await post_service.add_comment(db, post_id, user.user_id, request.comment_body)
    return CommentEnvelope(comment=comment)


@router.delete(
    "/{post_id}/comments/{comment_id}",
    response_model=SuccessResponse,
    summary="Delete a comment",
    description="Soft-delete a comment. Allowed for its author and the trip owner."
)
async def delete_comment(
    post_id: str,
    comment_id: str,
    db: AsyncSession = Depends(get_db),
    user: ResolvedUser = Depends(get_current_user),
) -> SuccessResponse:
    await post_service.delete_comment(db, post_id, comment_id, user.user_id)
    return SuccessResponse(success=True)


# --- Votes ---

@router.post(
    "/{post_id}/votes",
    response_model=VoteSummary,
    summary="Upvote a post",
    description="Idempotent: voting twice keeps a single vote."
)
async def vote(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    user: ResolvedUser = Depends(get_current_user),
) -> VoteSummary:
    return await post_service.vote(db, post_id, user.user_id)


# --- Images ---

@router.post(
    "/{post_id}/images",
    response_model=PostEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Attach images to a post",
)
async def add_images(
    post_id: str,
    images: List[UploadFile] = File(default=[]),
    db: AsyncSession = Depends(get_db),
    user: ResolvedUser = Depends(get_current_user),
    store: UploadStore = Depends(get_upload_store),
) -> PostEnvelope:
    post = await post_service.add_images(db, store, post_id, user.user_id, images)
    return PostEnvelope(post=post)


# --- Challenges ---

@router.post(
    "/{post_id}/challenges",
    response_model=ChallengeEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Add a challenge to a post",
    description="Up to 3 per post. A tagged user must be an active trip member."
)
async def add_challenge(
    post_id: str,
    request: ChallengeCreateRequest,
    claims: Dict[str, Any] = Depends(get_auth_claims),
    db: AsyncSession = Depends(get_db),
) -> ChallengeEnvelope:
    user = await identity_resolver.resolve(db, claims, request.display_name)
    challenge = await post_service.add_challenge(
        db, post_id, user.user_id, request.challenge_text, request.tagged_user_id
    )
    return ChallengeEnvelope(challenge=challenge)


@router.patch(
    "/{post_id}/challenges/{challenge_id}/toggle",
    response_model=ChallengeEnvelope,
    summary="Toggle challenge completion",
)
async def toggle_challenge(
    post_id: str,
    challenge_id: str,
    db: AsyncSession = Depends(get_db),
    user: ResolvedUser = Depends(get_current_user),
) -> ChallengeEnvelope:
    challenge = await post_service.toggle_challenge(db, post_id, challenge_id, user.user_id)
    return ChallengeEnvelope(challenge=challenge)


@router.delete(
    "/{post_id}/challenges/{challenge_id}",
    response_model=SuccessResponse,
    summary="Delete a challenge",
    description="Only the challenge author can delete it."
)
async def delete_challenge(
    post_id: str,
    challenge_id: str,
    db: AsyncSession = Depends(get_db),
    user: ResolvedUser = Depends(get_current_user),
) -> SuccessResponse:
    await post_service.delete_challenge(db, post_id, challenge_id, user.user_id)
    return SuccessResponse(success=True)


# --- Crawl stops ---

@router.patch(
    "/{post_id}/crawl-locations/reorder",
    response_model=PostEnvelope,
    summary="Reorder crawl stops",
    description="orderedLocationIds must list every stop of the crawl exactly once."
)
async def reorder_crawl_locations(
    post_id: str,
    request: CrawlReorderRequest,
    db: AsyncSession = Depends(get_db),
    user: ResolvedUser = Depends(get_current_user),
) -> PostEnvelope:
    post = await post_service.reorder_crawl_locations(db, post_id, user.user_id, request.ordered_location_ids)
    return PostEnvelope(post=post)


@router.patch(
    "/{post_id}/crawl-locations/{location_id}/toggle",
    response_model=PostEnvelope,
    summary="Toggle crawl stop completion",
)
async def toggle_crawl_location(
    post_id: str,
    location_id: str,
    db: AsyncSession = Depends(get_db),
    user: ResolvedUser = Depends(get_current_user),
) -> PostEnvelope:
    post = await post_service.toggle_crawl_location(db, post_id, location_id, user.user_id)
    return PostEnvelope(post=post)


@router.post(
    "/{post_id}/crawl-locations/{location_id}/images",
    response_model=PostEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Attach images to a crawl stop",
)
async def add_crawl_location_images(
    post_id: str,
    location_id: str,
    images: List[UploadFile] = File(default=[]),
    db: AsyncSession = Depends(get_db),
    user: ResolvedUser = Depends(get_current_user),
    store: UploadStore = Depends(get_upload_store),
) -> PostEnvelope:
    post = await post_service.add_crawl_location_images(db, store, post_id, location_id, user.user_id, images)
    return PostEnvelope(post=post)


@router.post(
    "/{post_id}/crawl-locations/{location_id}/challenges",
    response_model=CrawlLocationChallengeEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Add a challenge to a crawl stop",
)
async def add_crawl_location_challenge(
    post_id: str,
    location_id: str,
    request: CrawlLocationChallengeCreateRequest,
    claims: Dict[str, Any] = Depends(get_auth_claims),
    db: AsyncSession = Depends(get_db),
) -> CrawlLocationChallengeEnvelope:
    user = await identity_resolver.resolve(db, claims, request.display_name)
    challenge = await post_service.add_crawl_location_challenge(
        db, post_id, location_id, user.user_id, request.challenge_text
    )
    return CrawlLocationChallengeEnvelope(challenge=challenge)


@router.patch(
    "/{post_id}/crawl-locations/{location_id}/challenges/{challenge_id}/toggle",
    response_model=CrawlLocationChallengeEnvelope,
    summary="Toggle crawl stop challenge completion",
)
async def toggle_crawl_location_challenge(
    post_id: str,
    location_id: str,
    challenge_id: str,
    db: AsyncSession = Depends(get_db),
    user: ResolvedUser = Depends(get_current_user),
) -> CrawlLocationChallengeEnvelope:
    challenge = await post_service.toggle_crawl_location_challenge(
        db, post_id, location_id, challenge_id, user.user_id
    )
    return CrawlLocationChallengeEnvelope(challenge=challenge)


@router.delete(
    "/{post_id}/crawl-locations/{location_id}/challenges/{challenge_id}",
    response_model=SuccessResponse,
    summary="Delete a crawl stop challenge",
    description="Only the challenge author can delete it."
)
async def delete_crawl_location_challenge(
    post_id: str,
    location_id: str,
    challenge_id: str,
    db: AsyncSession = Depends(get_db),
    user: ResolvedUser = Depends(get_current_user),
) -> SuccessResponse:
    await post_service.delete_crawl_location_challenge(db, post_id, location_id, challenge_id, user.user_id)
    return SuccessResponse(success=True)
