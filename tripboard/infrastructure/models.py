"""
SQLAlchemy ORM models for database tables.
These are separate from domain models to maintain clean architecture.

Post-type rules that can be expressed declaratively (event fields, coordinate
ranges, challenge completion state) are enforced again here as CHECK
constraints so no writer can bypass them.
"""
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from tripboard.infrastructure.database import Base
from tripboard.infrastructure.db_types import GUID
from tripboard.domain.models import MemberRole, PostType


COORDINATES_CHECK = (
    "(latitude IS NULL AND longitude IS NULL) "
    "OR (latitude BETWEEN -90 AND 90 AND longitude BETWEEN -180 AND 180)"
)
COMPLETION_STATE_CHECK = (
    "(is_completed AND completed_by_user_id IS NOT NULL) "
    "OR (NOT is_completed AND completed_by_user_id IS NULL)"
)


class TripModel(Base):
    """Database model for a trip."""
    __tablename__ = "trips"

    __table_args__ = (
        UniqueConstraint("join_code", name="uq_trips_join_code"),
        CheckConstraint("day_count BETWEEN 1 AND 60", name="ck_trips_day_count"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    join_code = Column(String(8), nullable=False)
    trip_name = Column(String(120), nullable=False)
    destination_name = Column(String(200), nullable=False)
    start_date = Column(Date, nullable=True)
    day_count = Column(Integer, nullable=False)
    created_by_user_id = Column(GUID(), ForeignKey("users.id"), nullable=False)
    is_archived = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    days = relationship(
        "TripDayModel",
        order_by="TripDayModel.day_number",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    members = relationship(
        "TripMemberModel",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class TripMemberModel(Base):
    """Membership of a user in a trip."""
    __tablename__ = "trip_members"

    __table_args__ = (
        Index("ix_trip_members_user_id", "user_id"),
    )

    trip_id = Column(GUID(), ForeignKey("trips.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(GUID(), ForeignKey("users.id"), primary_key=True)
    member_role = Column(SQLEnum(MemberRole, name="member_role"), nullable=False, default=MemberRole.MEMBER)
    is_active = Column(Boolean, nullable=False, default=True)
    joined_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    user = relationship("UserModel")


class TripDayModel(Base):
    """A numbered day of a trip."""
    __tablename__ = "trip_days"

    __table_args__ = (
        UniqueConstraint("trip_id", "day_number", name="uq_trip_days_trip_id_day_number"),
        CheckConstraint("day_number BETWEEN 1 AND 60", name="ck_trip_days_day_number"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    trip_id = Column(GUID(), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False)
    day_number = Column(Integer, nullable=False)
    trip_date = Column(Date, nullable=True)
    label = Column(String(80), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class FeedPostModel(Base):
    """A post in a trip's feed (suggestion, event or crawl)."""
    __tablename__ = "feed_posts"

    __table_args__ = (
        # A post's day must belong to the post's own trip
        ForeignKeyConstraint(
            ["trip_id", "day_number"],
            ["trip_days.trip_id", "trip_days.day_number"],
            name="fk_feed_posts_trip_day",
        ),
        CheckConstraint(
            "post_type <> 'EVENT' OR ("
            "event_name IS NOT NULL AND from_time IS NOT NULL AND to_time IS NOT NULL "
            "AND to_time > from_time AND day_number IS NOT NULL)",
            name="ck_feed_posts_event_fields",
        ),
        CheckConstraint(COORDINATES_CHECK, name="ck_feed_posts_coordinates"),
        Index("ix_feed_posts_trip_id_created_at", "trip_id", "created_at"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    trip_id = Column(GUID(), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False)
    day_number = Column(Integer, nullable=True)
    author_user_id = Column(GUID(), ForeignKey("users.id"), nullable=False)
    post_type = Column(SQLEnum(PostType, name="post_type"), nullable=False)

    title = Column(String(200), nullable=True)
    body = Column(Text, nullable=True)
    event_name = Column(String(200), nullable=True)
    from_time = Column(Time, nullable=True)
    to_time = Column(Time, nullable=True)
    location_name = Column(String(200), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = relationship("UserModel")
    comments = relationship(
        "FeedCommentModel",
        order_by="FeedCommentModel.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    votes = relationship(
        "PostVoteModel",
        order_by="PostVoteModel.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    images = relationship(
        "FeedPostImageModel",
        order_by="(FeedPostImageModel.sort_order, FeedPostImageModel.created_at)",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    challenges = relationship(
        "FeedPostChallengeModel",
        order_by="FeedPostChallengeModel.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    crawl_locations = relationship(
        "CrawlLocationModel",
        order_by="(CrawlLocationModel.sort_order, CrawlLocationModel.created_at)",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class FeedCommentModel(Base):
    """A comment on a post."""
    __tablename__ = "feed_comments"

    __table_args__ = (
        CheckConstraint("trim(comment_body) <> ''", name="ck_feed_comments_body_not_blank"),
        Index("ix_feed_comments_feed_post_id_created_at", "feed_post_id", "created_at"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    feed_post_id = Column(GUID(), ForeignKey("feed_posts.id", ondelete="CASCADE"), nullable=False)
    author_user_id = Column(GUID(), ForeignKey("users.id"), nullable=False)
    comment_body = Column(String(2000), nullable=False)

    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = relationship("UserModel")


class PostVoteModel(Base):
    """An upvote; at most one per user per post."""
    __tablename__ = "post_votes"

    __table_args__ = (
        Index("ix_post_votes_user_id", "user_id"),
    )

    feed_post_id = Column(GUID(), ForeignKey("feed_posts.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(GUID(), ForeignKey("users.id"), primary_key=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    user = relationship("UserModel")


class FeedPostImageModel(Base):
    """An image attached to a post."""
    __tablename__ = "feed_post_images"

    __table_args__ = (
        CheckConstraint("sort_order >= 0", name="ck_feed_post_images_sort_order"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    feed_post_id = Column(GUID(), ForeignKey("feed_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String(500), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class FeedPostChallengeModel(Base):
    """A checklist item attached to a post."""
    __tablename__ = "feed_post_challenges"

    __table_args__ = (
        CheckConstraint("trim(challenge_text) <> ''", name="ck_feed_post_challenges_text_not_blank"),
        CheckConstraint(COMPLETION_STATE_CHECK, name="ck_feed_post_challenges_completion_state"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    feed_post_id = Column(GUID(), ForeignKey("feed_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    author_user_id = Column(GUID(), ForeignKey("users.id"), nullable=False)
    tagged_user_id = Column(GUID(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    challenge_text = Column(String(500), nullable=False)
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_by_user_id = Column(GUID(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = relationship("UserModel", foreign_keys=[author_user_id])
    tagged_user = relationship("UserModel", foreign_keys=[tagged_user_id])
    completed_by_user = relationship("UserModel", foreign_keys=[completed_by_user_id])


class CrawlLocationModel(Base):
    """An ordered stop of a crawl post."""
    __tablename__ = "feed_post_crawl_locations"

    __table_args__ = (
        CheckConstraint("sort_order >= 0", name="ck_feed_post_crawl_locations_sort_order"),
        CheckConstraint("trim(location_name) <> ''", name="ck_feed_post_crawl_locations_name_not_blank"),
        CheckConstraint(COORDINATES_CHECK, name="ck_feed_post_crawl_locations_coordinates"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    feed_post_id = Column(GUID(), ForeignKey("feed_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    sort_order = Column(Integer, nullable=False, default=0)
    location_name = Column(String(200), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    is_completed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    post = relationship("FeedPostModel", back_populates="crawl_locations")
    images = relationship(
        "CrawlLocationImageModel",
        order_by="(CrawlLocationImageModel.sort_order, CrawlLocationImageModel.created_at)",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    challenges = relationship(
        "CrawlLocationChallengeModel",
        order_by="CrawlLocationChallengeModel.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class CrawlLocationImageModel(Base):
    """An image attached to a crawl stop."""
    __tablename__ = "feed_post_crawl_location_images"

    __table_args__ = (
        CheckConstraint("sort_order >= 0", name="ck_feed_post_crawl_location_images_sort_order"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    crawl_location_id = Column(
        GUID(),
        ForeignKey("feed_post_crawl_locations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    image_url = Column(String(500), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class CrawlLocationChallengeModel(Base):
    """A checklist item attached to a crawl stop."""
    __tablename__ = "feed_post_crawl_location_challenges"

    __table_args__ = (
        CheckConstraint("trim(challenge_text) <> ''", name="ck_feed_post_crawl_location_challenges_text_not_blank"),
        CheckConstraint(COMPLETION_STATE_CHECK, name="ck_feed_post_crawl_location_challenges_completion_state"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    crawl_location_id = Column(
        GUID(),
        ForeignKey("feed_post_crawl_locations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_user_id = Column(GUID(), ForeignKey("users.id"), nullable=False)
    challenge_text = Column(String(500), nullable=False)
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_by_user_id = Column(GUID(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = relationship("UserModel", foreign_keys=[author_user_id])
    completed_by_user = relationship("UserModel", foreign_keys=[completed_by_user_id])
