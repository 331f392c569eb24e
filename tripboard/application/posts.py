"""
Post service.
Everything that writes to a trip's feed: posts, comments, votes, images,
challenges and crawl stops. Every operation checks existence, then
membership, then validates before writing; every write is one transaction.
"""
import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tripboard.application.feed import (
    FeedAggregator,
    build_vote_summary,
    feed_aggregator,
    map_challenge,
    map_comment,
    map_crawl_location_challenge,
)
from tripboard.application.membership import MembershipGuard, membership_guard
from tripboard.application.normalizers import (
    normalize_challenge_text,
    normalize_comment_body,
    parse_uuid,
    trimmed,
)
from tripboard.application.post_validator import PostFields, PostValidator, post_validator
from tripboard.config import settings
from tripboard.domain.errors import AuthorizationError, NotFoundError, ValidationError
from tripboard.domain.models import CrawlDraft, EventDraft, PostType
from tripboard.domain.schemas import (
    ChallengeResponse,
    CommentResponse,
    CrawlLocationChallengeResponse,
    PostResponse,
    VoteSummary,
)
from tripboard.infrastructure.models import (
    CrawlLocationChallengeModel,
    CrawlLocationImageModel,
    CrawlLocationModel,
    FeedCommentModel,
    FeedPostChallengeModel,
    FeedPostImageModel,
    FeedPostModel,
    PostVoteModel,
    TripDayModel,
)
from tripboard.infrastructure.uploads import StoredUpload, UploadStore

logger = logging.getLogger(__name__)


class PostService:
    """Feed write operations."""

    def __init__(
        self,
        validator: PostValidator = post_validator,
        guard: MembershipGuard = membership_guard,
        feed: FeedAggregator = feed_aggregator,
        max_post_images: int = settings.max_post_images,
        max_crawl_location_images: int = settings.max_crawl_location_images,
        max_challenges_per_post: int = settings.max_challenges_per_post,
        max_challenges_per_crawl_location: int = settings.max_challenges_per_crawl_location,
    ):
        self.validator = validator
        self.guard = guard
        self.feed = feed
        self.max_post_images = max_post_images
        self.max_crawl_location_images = max_crawl_location_images
        self.max_challenges_per_post = max_challenges_per_post
        self.max_challenges_per_crawl_location = max_challenges_per_crawl_location

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @staticmethod
    async def _get_post(db: AsyncSession, post_id: UUID, message: str = "Post not found.") -> FeedPostModel:
        result = await db.execute(
            select(FeedPostModel).where(FeedPostModel.id == post_id, FeedPostModel.is_deleted.is_(False))
        )
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError(message)
        return post

    @staticmethod
    async def _get_crawl_location(
        db: AsyncSession,
        post_id: UUID,
        location_id: UUID,
    ) -> Tuple[CrawlLocationModel, FeedPostModel]:
        result = await db.execute(
            select(CrawlLocationModel, FeedPostModel)
            .join(FeedPostModel, FeedPostModel.id == CrawlLocationModel.feed_post_id)
            .where(
                CrawlLocationModel.id == location_id,
                CrawlLocationModel.feed_post_id == post_id,
                FeedPostModel.is_deleted.is_(False),
                FeedPostModel.post_type == PostType.CRAWL,
            )
        )
        row = result.first()
        if row is None:
            raise NotFoundError("Crawl location not found.")
        return row[0], row[1]

    @staticmethod
    async def _touch_post(db: AsyncSession, post_id: UUID) -> None:
        await db.execute(
            update(FeedPostModel).where(FeedPostModel.id == post_id).values(updated_at=datetime.utcnow())
        )

    @staticmethod
    async def _count(db: AsyncSession, column, value) -> int:
        result = await db.execute(select(func.count()).select_from(column.class_).where(column == value))
        return result.scalar_one()

    def _check_image_count(self, files: Sequence[UploadFile], required: bool) -> None:
        if required and not files:
            raise ValidationError("Select at least one image to upload.")
        if len(files) > self.max_post_images:
            raise ValidationError(f"You can upload up to {self.max_post_images} images per post.")

    @staticmethod
    async def _load_challenge(db: AsyncSession, challenge_id: UUID) -> ChallengeResponse:
        result = await db.execute(
            select(FeedPostChallengeModel)
            .where(FeedPostChallengeModel.id == challenge_id)
            .options(
                selectinload(FeedPostChallengeModel.author),
                selectinload(FeedPostChallengeModel.tagged_user),
                selectinload(FeedPostChallengeModel.completed_by_user),
            )
            .execution_options(populate_existing=True)
        )
        return map_challenge(result.scalar_one())

    @staticmethod
    async def _load_crawl_location_challenge(db: AsyncSession, challenge_id: UUID) -> CrawlLocationChallengeResponse:
        result = await db.execute(
            select(CrawlLocationChallengeModel)
            .where(CrawlLocationChallengeModel.id == challenge_id)
            .options(
                selectinload(CrawlLocationChallengeModel.author),
                selectinload(CrawlLocationChallengeModel.completed_by_user),
            )
            .execution_options(populate_existing=True)
        )
        return map_crawl_location_challenge(result.scalar_one())

    async def _write_with_uploads(self, db: AsyncSession, store: UploadStore, stored: List[StoredUpload], write):
        """Run write() and commit; written files are removed if anything fails."""
        try:
            result = await write()
            await db.commit()
            return result
        except Exception:
            await db.rollback()
            store.cleanup(stored)
            raise

    # -------------------------------------------------------------------------
    # Posts
    # -------------------------------------------------------------------------

    async def create_post(
        self,
        db: AsyncSession,
        store: UploadStore,
        user_id: UUID,
        raw_trip_id: str,
        fields: PostFields,
        files: Sequence[UploadFile] = (),
    ) -> PostResponse:
        """
        Create a post of any type with optional images.

        Raises:
            AuthorizationError: If the caller is not an active member
            ValidationError: If the submission breaks a post-type rule
            NotFoundError: If the selected day does not exist in the trip
        """
        trip_id = parse_uuid(raw_trip_id, "Trip not found.")
        await self.guard.require_member(db, trip_id, user_id, "Join this trip before posting.")

        self._check_image_count(files, required=False)
        draft = self.validator.validate(fields, image_count=len(files))

        if draft.day_number is not None:
            result = await db.execute(
                select(TripDayModel.id).where(
                    TripDayModel.trip_id == trip_id,
                    TripDayModel.day_number == draft.day_number,
                )
            )
            if result.scalar_one_or_none() is None:
                raise NotFoundError("Selected day not found in trip.")

        stored = await store.save(files)

        async def write() -> UUID:
            location = draft.location
            coordinates = location.coordinates if location is not None else None
            post = FeedPostModel(
                trip_id=trip_id,
                day_number=draft.day_number,
                author_user_id=user_id,
                post_type=draft.post_type,
                title=draft.title,
                body=draft.body,
                event_name=draft.event_name if isinstance(draft, EventDraft) else None,
                from_time=draft.window.start if draft.window is not None else None,
                to_time=draft.window.end if draft.window is not None else None,
                location_name=location.location_name if location is not None else None,
                latitude=coordinates.latitude if coordinates is not None else None,
                longitude=coordinates.longitude if coordinates is not None else None,
            )
            db.add(post)
            await db.flush()

            if isinstance(draft, CrawlDraft):
                db.add_all(
                    CrawlLocationModel(
                        feed_post_id=post.id,
                        sort_order=stop.sort_order,
                        location_name=stop.location_name,
                        latitude=stop.coordinates.latitude if stop.coordinates else None,
                        longitude=stop.coordinates.longitude if stop.coordinates else None,
                    )
                    for stop in draft.stops
                )
            db.add_all(
                FeedPostImageModel(feed_post_id=post.id, image_url=item.url, sort_order=index)
                for index, item in enumerate(stored)
            )
            return post.id

        post_id = await self._write_with_uploads(db, store, stored, write)
        logger.info(f"User {user_id} created {draft.post_type.value} post {post_id} in trip {trip_id}")
        return await self.feed.load_post(db, post_id, user_id)

    async def delete_post(self, db: AsyncSession, raw_post_id: str, user_id: UUID) -> None:
        """Soft-delete a post. Allowed for its author and the trip owner."""
        post_id = parse_uuid(raw_post_id, "Post not found.")
        post = await self._get_post(db, post_id)
        await self.guard.require_member(db, post.trip_id, user_id, "You are not allowed to delete this post.")

        allowed = post.author_user_id == user_id or await self.guard.is_owner(db, post.trip_id, user_id)
        if not allowed:
            raise AuthorizationError("You are not allowed to delete this post.")

        post.is_deleted = True
        post.updated_at = datetime.utcnow()
        await db.commit()
        logger.info(f"Post {post_id} deleted by user {user_id}")

    async def add_images(
        self,
        db: AsyncSession,
        store: UploadStore,
        raw_post_id: str,
        user_id: UUID,
        files: Sequence[UploadFile],
    ) -> PostResponse:
        """Append images to a post, bounded by the per-post total."""
        self._check_image_count(files, required=True)
        post_id = parse_uuid(raw_post_id, "Post not found.")
        post = await self._get_post(db, post_id)
        await self.guard.require_member(db, post.trip_id, user_id, "Join this trip before uploading images.")

        stored = await store.save(files)

        async def write() -> None:
            existing = await self._count(db, FeedPostImageModel.feed_post_id, post_id)
            if existing + len(stored) > self.max_post_images:
                raise ValidationError(f"Each post can include up to {self.max_post_images} images total.")
            db.add_all(
                FeedPostImageModel(feed_post_id=post_id, image_url=item.url, sort_order=existing + index)
                for index, item in enumerate(stored)
            )
            await self._touch_post(db, post_id)

        await self._write_with_uploads(db, store, stored, write)
        return await self.feed.load_post(db, post_id, user_id)

    # -------------------------------------------------------------------------
    # Comments
    # -------------------------------------------------------------------------

    async def add_comment(
        self,
        db: AsyncSession,
        raw_post_id: str,
        user_id: UUID,
        raw_body: Optional[str],
    ) -> CommentResponse:
        comment_body = normalize_comment_body(raw_body)
        post_id = parse_uuid(raw_post_id, "Post not found.")
        post = await self._get_post(db, post_id)
        await self.guard.require_member(db, post.trip_id, user_id, "Join this trip before commenting.")

        comment = FeedCommentModel(feed_post_id=post_id, author_user_id=user_id, comment_body=comment_body)
        db.add(comment)
        await db.commit()

        result = await db.execute(
            select(FeedCommentModel)
            .where(FeedCommentModel.id == comment.id)
            .options(selectinload(FeedCommentModel.author))
        )
        return map_comment(result.scalar_one())

    async def delete_comment(self, db: AsyncSession, raw_post_id: str, raw_comment_id: str, user_id: UUID) -> None:
        """Soft-delete a comment. Allowed for its author and the trip owner."""
        post_id = parse_uuid(raw_post_id, "Comment not found.")
        comment_id = parse_uuid(raw_comment_id, "Comment not found.")

        result = await db.execute(
            select(FeedCommentModel, FeedPostModel.trip_id)
            .join(FeedPostModel, FeedPostModel.id == FeedCommentModel.feed_post_id)
            .where(
                FeedCommentModel.id == comment_id,
                FeedCommentModel.feed_post_id == post_id,
                FeedCommentModel.is_deleted.is_(False),
                FeedPostModel.is_deleted.is_(False),
            )
        )
        row = result.first()
        if row is None:
            raise NotFoundError("Comment not found.")
        comment, trip_id = row
        await self.guard.require_member(db, trip_id, user_id, "You are not allowed to delete this comment.")

        allowed = comment.author_user_id == user_id or await self.guard.is_owner(db, trip_id, user_id)
        if not allowed:
            raise AuthorizationError("You are not allowed to delete this comment.")

        comment.is_deleted = True
        comment.updated_at = datetime.utcnow()
        await db.commit()

    # -------------------------------------------------------------------------
    # Votes
    # -------------------------------------------------------------------------

    async def vote(self, db: AsyncSession, raw_post_id: str, user_id: UUID) -> VoteSummary:
        """
        Upvote a post. Voting again is a no-op.

        Returns:
            The post's vote rollup as seen by the caller
        """
        post_id = parse_uuid(raw_post_id, "Post not found.")
        post = await self._get_post(db, post_id)
        await self.guard.require_member(db, post.trip_id, user_id, "Join this trip before voting.")

        existing = await db.get(PostVoteModel, (post_id, user_id))
        if existing is None:
            try:
                async with db.begin_nested():
                    db.add(PostVoteModel(feed_post_id=post_id, user_id=user_id, created_at=datetime.utcnow()))
            except IntegrityError:
                # Concurrent duplicate vote; the row already exists
                logger.debug(f"Vote by {user_id} on post {post_id} already recorded")
        await db.commit()

        result = await db.execute(
            select(PostVoteModel)
            .where(PostVoteModel.feed_post_id == post_id)
            .order_by(PostVoteModel.created_at)
            .options(selectinload(PostVoteModel.user))
            .execution_options(populate_existing=True)
        )
        return build_vote_summary(result.scalars().all(), user_id)

    # -------------------------------------------------------------------------
    # Post challenges
    # -------------------------------------------------------------------------

    async def add_challenge(
        self,
        db: AsyncSession,
        raw_post_id: str,
        user_id: UUID,
        raw_text: Optional[str],
        raw_tagged_user_id: Optional[str] = None,
    ) -> ChallengeResponse:
        challenge_text = normalize_challenge_text(raw_text)
        post_id = parse_uuid(raw_post_id, "Post not found.")
        post = await self._get_post(db, post_id)
        await self.guard.require_member(db, post.trip_id, user_id, "Join this trip before adding challenges.")

        tagged_user_id = None
        tagged = trimmed(raw_tagged_user_id)
        if tagged:
            try:
                tagged_user_id = parse_uuid(tagged, "Tagged user not found.")
            except NotFoundError:
                raise ValidationError("Tagged user must be an active member of the trip.")
            if not await self.guard.is_member(db, post.trip_id, tagged_user_id):
                raise ValidationError("Tagged user must be an active member of the trip.")

        count = await self._count(db, FeedPostChallengeModel.feed_post_id, post_id)
        if count >= self.max_challenges_per_post:
            raise ValidationError(f"Each post can only have {self.max_challenges_per_post} challenges.")

        challenge = FeedPostChallengeModel(
            feed_post_id=post_id,
            author_user_id=user_id,
            tagged_user_id=tagged_user_id,
            challenge_text=challenge_text,
        )
        db.add(challenge)
        await db.commit()
        return await self._load_challenge(db, challenge.id)

    async def _get_post_challenge(
        self,
        db: AsyncSession,
        raw_post_id: str,
        raw_challenge_id: str,
    ) -> Tuple[FeedPostChallengeModel, FeedPostModel]:
        post_id = parse_uuid(raw_post_id, "Challenge not found.")
        challenge_id = parse_uuid(raw_challenge_id, "Challenge not found.")
        result = await db.execute(
            select(FeedPostChallengeModel, FeedPostModel)
            .join(FeedPostModel, FeedPostModel.id == FeedPostChallengeModel.feed_post_id)
            .where(
                FeedPostChallengeModel.id == challenge_id,
                FeedPostChallengeModel.feed_post_id == post_id,
                FeedPostModel.is_deleted.is_(False),
            )
        )
        row = result.first()
        if row is None:
            raise NotFoundError("Challenge not found.")
        return row[0], row[1]

    async def toggle_challenge(
        self,
        db: AsyncSession,
        raw_post_id: str,
        raw_challenge_id: str,
        user_id: UUID,
    ) -> ChallengeResponse:
        """Flip completion; the completer is recorded when completing."""
        challenge, post = await self._get_post_challenge(db, raw_post_id, raw_challenge_id)
        await self.guard.require_member(db, post.trip_id, user_id, "Join this trip before updating challenges.")

        completed = not challenge.is_completed
        challenge.is_completed = completed
        challenge.completed_by_user_id = user_id if completed else None
        challenge.updated_at = datetime.utcnow()
        await self._touch_post(db, post.id)
        await db.commit()
        return await self._load_challenge(db, challenge.id)

    async def delete_challenge(
        self,
        db: AsyncSession,
        raw_post_id: str,
        raw_challenge_id: str,
        user_id: UUID,
    ) -> None:
        challenge, post = await self._get_post_challenge(db, raw_post_id, raw_challenge_id)
        await self.guard.require_member(db, post.trip_id, user_id, "Join this trip before updating challenges.")
        if challenge.author_user_id != user_id:
            raise AuthorizationError("Only the challenge author can delete this challenge.")

        await db.delete(challenge)
        await db.commit()

    # -------------------------------------------------------------------------
    # Crawl stops
    # -------------------------------------------------------------------------

    async def reorder_crawl_locations(
        self,
        db: AsyncSession,
        raw_post_id: str,
        user_id: UUID,
        ordered_location_ids: Optional[List[str]],
    ) -> PostResponse:
        """
        Rewrite stop order. The new order must list every stop exactly once.
        """
        if ordered_location_ids is None:
            raise ValidationError("orderedLocationIds must be an array.")
        ordered = [trimmed(entry).lower() for entry in ordered_location_ids]
        ordered = [entry for entry in ordered if entry]

        post_id = parse_uuid(raw_post_id, "Crawl post not found.")
        post = await self._get_post(db, post_id, "Crawl post not found.")
        if post.post_type != PostType.CRAWL:
            raise NotFoundError("Crawl post not found.")
        await self.guard.require_member(db, post.trip_id, user_id, "Join this trip before updating crawl locations.")

        result = await db.execute(
            select(CrawlLocationModel)
            .where(CrawlLocationModel.feed_post_id == post_id)
            .order_by(CrawlLocationModel.sort_order, CrawlLocationModel.created_at)
        )
        locations = {str(location.id): location for location in result.scalars().all()}

        if not locations:
            raise ValidationError("This crawl post has no locations to reorder.")
        if len(ordered) != len(locations):
            raise ValidationError("orderedLocationIds must include all crawl locations exactly once.")
        if sorted(ordered) != sorted(locations):
            raise ValidationError("orderedLocationIds contains unknown crawl location ids.")

        now = datetime.utcnow()
        for index, location_id in enumerate(ordered):
            location = locations[location_id]
            location.sort_order = index
            location.updated_at = now
        await self._touch_post(db, post_id)
        await db.commit()

        return await self.feed.load_post(db, post_id, user_id)

    async def toggle_crawl_location(
        self,
        db: AsyncSession,
        raw_post_id: str,
        raw_location_id: str,
        user_id: UUID,
    ) -> PostResponse:
        post_id = parse_uuid(raw_post_id, "Crawl location not found.")
        location_id = parse_uuid(raw_location_id, "Crawl location not found.")
        location, post = await self._get_crawl_location(db, post_id, location_id)
        await self.guard.require_member(db, post.trip_id, user_id, "Join this trip before updating crawl locations.")

        location.is_completed = not location.is_completed
        location.updated_at = datetime.utcnow()
        await self._touch_post(db, post_id)
        await db.commit()

        return await self.feed.load_post(db, post_id, user_id)

    async def add_crawl_location_images(
        self,
        db: AsyncSession,
        store: UploadStore,
        raw_post_id: str,
        raw_location_id: str,
        user_id: UUID,
        files: Sequence[UploadFile],
    ) -> PostResponse:
        self._check_image_count(files, required=True)
        post_id = parse_uuid(raw_post_id, "Crawl location not found.")
        location_id = parse_uuid(raw_location_id, "Crawl location not found.")
        _, post = await self._get_crawl_location(db, post_id, location_id)
        await self.guard.require_member(
            db, post.trip_id, user_id, "Join this trip before uploading crawl location images."
        )

        stored = await store.save(files)

        async def write() -> None:
            existing = await self._count(db, CrawlLocationImageModel.crawl_location_id, location_id)
            if existing + len(stored) > self.max_crawl_location_images:
                raise ValidationError(
                    f"Each crawl location can include up to {self.max_crawl_location_images} images total."
                )
            db.add_all(
                CrawlLocationImageModel(crawl_location_id=location_id, image_url=item.url, sort_order=existing + index)
                for index, item in enumerate(stored)
            )
            await self._touch_post(db, post_id)

        await self._write_with_uploads(db, store, stored, write)
        return await self.feed.load_post(db, post_id, user_id)

    async def add_crawl_location_challenge(
        self,
        db: AsyncSession,
        raw_post_id: str,
        raw_location_id: str,
        user_id: UUID,
        raw_text: Optional[str],
    ) -> CrawlLocationChallengeResponse:
        challenge_text = normalize_challenge_text(raw_text)
        post_id = parse_uuid(raw_post_id, "Crawl location not found.")
        location_id = parse_uuid(raw_location_id, "Crawl location not found.")
        _, post = await self._get_crawl_location(db, post_id, location_id)
        await self.guard.require_member(
            db, post.trip_id, user_id, "Join this trip before adding crawl location challenges."
        )

        count = await self._count(db, CrawlLocationChallengeModel.crawl_location_id, location_id)
        if count >= self.max_challenges_per_crawl_location:
            raise ValidationError(
                f"Each crawl location can only have {self.max_challenges_per_crawl_location} challenges."
            )

        challenge = CrawlLocationChallengeModel(
            crawl_location_id=location_id,
            author_user_id=user_id,
            challenge_text=challenge_text,
        )
        db.add(challenge)
        await self._touch_post(db, post_id)
        await db.commit()
        return await self._load_crawl_location_challenge(db, challenge.id)

    async def _get_crawl_location_challenge(
        self,
        db: AsyncSession,
        raw_post_id: str,
        raw_location_id: str,
        raw_challenge_id: str,
    ) -> Tuple[CrawlLocationChallengeModel, FeedPostModel]:
        message = "Crawl location challenge not found."
        post_id = parse_uuid(raw_post_id, message)
        location_id = parse_uuid(raw_location_id, message)
        challenge_id = parse_uuid(raw_challenge_id, message)

        result = await db.execute(
            select(CrawlLocationChallengeModel, FeedPostModel)
            .join(CrawlLocationModel, CrawlLocationModel.id == CrawlLocationChallengeModel.crawl_location_id)
            .join(FeedPostModel, FeedPostModel.id == CrawlLocationModel.feed_post_id)
            .where(
                CrawlLocationChallengeModel.id == challenge_id,
                CrawlLocationChallengeModel.crawl_location_id == location_id,
                CrawlLocationModel.feed_post_id == post_id,
                FeedPostModel.is_deleted.is_(False),
                FeedPostModel.post_type == PostType.CRAWL,
            )
        )
        row = result.first()
        if row is None:
            raise NotFoundError(message)
        return row[0], row[1]

    async def toggle_crawl_location_challenge(
        self,
        db: AsyncSession,
        raw_post_id: str,
        raw_location_id: str,
        raw_challenge_id: str,
        user_id: UUID,
    ) -> CrawlLocationChallengeResponse:
        challenge, post = await self._get_crawl_location_challenge(db, raw_post_id, raw_location_id, raw_challenge_id)
        await self.guard.require_member(
            db, post.trip_id, user_id, "Join this trip before updating crawl location challenges."
        )

        completed = not challenge.is_completed
        challenge.is_completed = completed
        challenge.completed_by_user_id = user_id if completed else None
        challenge.updated_at = datetime.utcnow()
        await self._touch_post(db, post.id)
        await db.commit()
        return await self._load_crawl_location_challenge(db, challenge.id)

    async def delete_crawl_location_challenge(
        self,
        db: AsyncSession,
        raw_post_id: str,
        raw_location_id: str,
        raw_challenge_id: str,
        user_id: UUID,
    ) -> None:
        challenge, post = await self._get_crawl_location_challenge(db, raw_post_id, raw_location_id, raw_challenge_id)
        await self.guard.require_member(
            db, post.trip_id, user_id, "Join this trip before updating crawl location challenges."
        )
        if challenge.author_user_id != user_id:
            raise AuthorizationError("Only the challenge author can delete this challenge.")

        await db.delete(challenge)
        await self._touch_post(db, post.id)
        await db.commit()


# Global service instance
post_service = PostService()
