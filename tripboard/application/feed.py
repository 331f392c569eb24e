"""
Feed aggregator.
Builds the read-only nested view of a trip: header, days, members and the
post feed with comments, votes, images, challenges and crawl stops.
"""
import logging
from datetime import timedelta
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tripboard.auth.service import DEFAULT_DISPLAY_NAME
from tripboard.domain.errors import NotFoundError
from tripboard.domain.schemas import (
    ChallengeResponse,
    CommentResponse,
    CrawlLocationChallengeResponse,
    CrawlLocationResponse,
    MemberResponse,
    PostResponse,
    TripDayResponse,
    TripResponse,
    TripSummary,
    VoteSummary,
)
from tripboard.infrastructure.models import (
    CrawlLocationChallengeModel,
    CrawlLocationModel,
    FeedCommentModel,
    FeedPostChallengeModel,
    FeedPostModel,
    PostVoteModel,
    TripMemberModel,
    TripModel,
)

logger = logging.getLogger(__name__)


def _name_of(user) -> str:
    name = (user.display_name or "").strip() if user is not None else ""
    return name or DEFAULT_DISPLAY_NAME


def _optional_name_of(user) -> Optional[str]:
    name = (user.display_name or "").strip() if user is not None else ""
    return name or None


def _format_time(value) -> Optional[str]:
    return value.strftime("%H:%M") if value is not None else None


def post_loader_options() -> list:
    """Eager loads for everything a PostResponse needs."""
    crawl_locations = selectinload(FeedPostModel.crawl_locations)
    challenges = selectinload(FeedPostModel.challenges)
    return [
        selectinload(FeedPostModel.author),
        selectinload(FeedPostModel.comments).selectinload(FeedCommentModel.author),
        selectinload(FeedPostModel.votes).selectinload(PostVoteModel.user),
        selectinload(FeedPostModel.images),
        challenges.selectinload(FeedPostChallengeModel.author),
        challenges.selectinload(FeedPostChallengeModel.tagged_user),
        challenges.selectinload(FeedPostChallengeModel.completed_by_user),
        crawl_locations.selectinload(CrawlLocationModel.images),
        crawl_locations.selectinload(CrawlLocationModel.challenges).selectinload(CrawlLocationChallengeModel.author),
        crawl_locations.selectinload(CrawlLocationModel.challenges).selectinload(
            CrawlLocationChallengeModel.completed_by_user
        ),
    ]


def build_vote_summary(votes: Iterable[PostVoteModel], user_id: Optional[UUID]) -> VoteSummary:
    """
    Roll up votes (already in creation order).
    Voter names are de-duplicated, keeping first appearance.
    """
    names: List[str] = []
    count = 0
    has_voted = False
    for vote in votes:
        count += 1
        name = _name_of(vote.user)
        if name not in names:
            names.append(name)
        if user_id is not None and vote.user_id == user_id:
            has_voted = True
    return VoteSummary(vote_count=count, has_voted=has_voted, voter_display_names=names)


def map_comment(comment: FeedCommentModel) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        author_user_id=comment.author_user_id,
        author_name=_name_of(comment.author),
        comment_body=comment.comment_body,
        created_at=comment.created_at,
    )


def map_challenge(challenge: FeedPostChallengeModel) -> ChallengeResponse:
    return ChallengeResponse(
        id=challenge.id,
        author_user_id=challenge.author_user_id,
        author_name=_name_of(challenge.author),
        challenge_text=challenge.challenge_text,
        tagged_user_id=challenge.tagged_user_id,
        tagged_display_name=_optional_name_of(challenge.tagged_user),
        is_completed=challenge.is_completed,
        completed_by_user_id=challenge.completed_by_user_id,
        completed_by_display_name=_optional_name_of(challenge.completed_by_user),
        created_at=challenge.created_at,
    )


def map_crawl_location_challenge(challenge: CrawlLocationChallengeModel) -> CrawlLocationChallengeResponse:
    return CrawlLocationChallengeResponse(
        id=challenge.id,
        author_user_id=challenge.author_user_id,
        author_name=_name_of(challenge.author),
        challenge_text=challenge.challenge_text,
        is_completed=challenge.is_completed,
        completed_by_user_id=challenge.completed_by_user_id,
        completed_by_display_name=_optional_name_of(challenge.completed_by_user),
        created_at=challenge.created_at,
    )


def map_crawl_location(location: CrawlLocationModel) -> CrawlLocationResponse:
    return CrawlLocationResponse(
        id=location.id,
        sort_order=location.sort_order,
        location_name=location.location_name,
        latitude=location.latitude,
        longitude=location.longitude,
        is_completed=location.is_completed,
        images=[image.image_url for image in location.images],
        challenges=[map_crawl_location_challenge(c) for c in location.challenges],
    )


def map_post(post: FeedPostModel, user_id: Optional[UUID]) -> PostResponse:
    votes = build_vote_summary(post.votes, user_id)
    return PostResponse(
        id=post.id,
        day_number=post.day_number,
        post_type=post.post_type,
        title=post.title,
        body=post.body,
        event_name=post.event_name,
        from_time=_format_time(post.from_time),
        to_time=_format_time(post.to_time),
        location_name=post.location_name,
        latitude=post.latitude,
        longitude=post.longitude,
        author_user_id=post.author_user_id,
        author_name=_name_of(post.author),
        created_at=post.created_at,
        updated_at=post.updated_at,
        comments=[map_comment(c) for c in post.comments if not c.is_deleted],
        vote_count=votes.vote_count,
        has_voted=votes.has_voted,
        voter_display_names=votes.voter_display_names,
        images=[image.image_url for image in post.images],
        challenges=[map_challenge(c) for c in post.challenges],
        crawl_locations=[map_crawl_location(location) for location in post.crawl_locations],
    )


def map_trip_summary(trip: TripModel) -> TripSummary:
    return TripSummary(
        id=trip.id,
        join_code=trip.join_code,
        trip_name=trip.trip_name,
        destination_name=trip.destination_name,
        start_date=trip.start_date,
        day_count=trip.day_count,
        updated_at=trip.updated_at,
    )


class FeedAggregator:
    """Assembles trip and post views; never writes."""

    @staticmethod
    def _days_for(trip: TripModel) -> List[TripDayResponse]:
        if trip.days:
            return [
                TripDayResponse(
                    day_number=day.day_number,
                    label=day.label or f"Day {day.day_number}",
                    trip_date=day.trip_date,
                )
                for day in trip.days
            ]

        # Trips created before day rows existed
        return [
            TripDayResponse(
                day_number=number,
                label=f"Day {number}",
                trip_date=trip.start_date + timedelta(days=number - 1) if trip.start_date else None,
            )
            for number in range(1, trip.day_count + 1)
        ]

    async def load_trip(self, db: AsyncSession, trip_id: UUID, user_id: Optional[UUID]) -> TripResponse:
        """
        Load the full nested view of a non-archived trip.

        Raises:
            NotFoundError: If the trip does not exist or is archived
        """
        result = await db.execute(
            select(TripModel)
            .where(TripModel.id == trip_id, TripModel.is_archived.is_(False))
            .options(selectinload(TripModel.days))
            .execution_options(populate_existing=True)
        )
        trip = result.scalar_one_or_none()
        if trip is None:
            raise NotFoundError("Trip not found.")

        members_result = await db.execute(
            select(TripMemberModel)
            .where(TripMemberModel.trip_id == trip_id, TripMemberModel.is_active.is_(True))
            .options(selectinload(TripMemberModel.user))
            .execution_options(populate_existing=True)
        )
        members = [
            MemberResponse(user_id=member.user_id, display_name=_name_of(member.user))
            for member in members_result.scalars().all()
        ]
        members.sort(key=lambda m: m.display_name.casefold())

        posts_result = await db.execute(
            select(FeedPostModel)
            .where(FeedPostModel.trip_id == trip_id, FeedPostModel.is_deleted.is_(False))
            .order_by(FeedPostModel.created_at.desc())
            .options(*post_loader_options())
            .execution_options(populate_existing=True)
        )
        posts = [map_post(post, user_id) for post in posts_result.scalars().all()]

        return TripResponse(
            id=trip.id,
            join_code=trip.join_code,
            trip_name=trip.trip_name,
            destination_name=trip.destination_name,
            start_date=trip.start_date,
            day_count=trip.day_count,
            created_at=trip.created_at,
            days=self._days_for(trip),
            members=members,
            posts=posts,
        )

    async def load_post(self, db: AsyncSession, post_id: UUID, user_id: Optional[UUID]) -> PostResponse:
        result = await db.execute(
            select(FeedPostModel)
            .where(FeedPostModel.id == post_id, FeedPostModel.is_deleted.is_(False))
            .options(*post_loader_options())
            .execution_options(populate_existing=True)
        )
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError("Post not found.")
        return map_post(post, user_id)

    async def list_user_trips(self, db: AsyncSession, user_id: UUID) -> List[TripSummary]:
        """Non-archived trips the user actively belongs to, most recently updated first."""
        result = await db.execute(
            select(TripModel)
            .join(TripMemberModel, TripMemberModel.trip_id == TripModel.id)
            .where(
                TripMemberModel.user_id == user_id,
                TripMemberModel.is_active.is_(True),
                TripModel.is_archived.is_(False),
            )
            .order_by(TripModel.updated_at.desc())
        )
        return [map_trip_summary(trip) for trip in result.scalars().all()]


# Global aggregator instance
feed_aggregator = FeedAggregator()
