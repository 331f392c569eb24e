"""
Trip service.
Creates trips (with join code, owner membership and day rows in one
transaction), joins them by code, and archives them.
"""
import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tripboard.application.join_codes import JoinCodeIssuer
from tripboard.application.membership import MembershipGuard, membership_guard
from tripboard.application.normalizers import (
    normalize_day_count,
    normalize_destination,
    normalize_join_code,
    normalize_start_date,
    normalize_trip_name,
)
from tripboard.config import settings
from tripboard.domain.errors import JoinCodeCollision, NotFoundError
from tripboard.domain.models import MemberRole
from tripboard.domain.schemas import TripCreateRequest
from tripboard.infrastructure.models import TripDayModel, TripMemberModel, TripModel

logger = logging.getLogger(__name__)


def is_join_code_violation(error: IntegrityError) -> bool:
    """True when a unique violation came from the trips.join_code constraint."""
    message = str(error.orig if error.orig is not None else error).lower()
    return "join_code" in message or "uq_trips_join_code" in message


def day_rows(trip_id: UUID, day_count: int, start_date: Optional[date]) -> list[TripDayModel]:
    """Day rows 1..day_count, dated from start_date when known."""
    return [
        TripDayModel(
            trip_id=trip_id,
            day_number=number,
            trip_date=start_date + timedelta(days=number - 1) if start_date else None,
            label=f"Day {number}",
        )
        for number in range(1, day_count + 1)
    ]


class TripService:
    """Trip lifecycle operations."""

    def __init__(
        self,
        issuer: Optional[JoinCodeIssuer] = None,
        guard: MembershipGuard = membership_guard,
    ):
        self.issuer = issuer or JoinCodeIssuer(max_attempts=settings.join_code_max_attempts)
        self.guard = guard

    async def create_trip(self, db: AsyncSession, user_id: UUID, request: TripCreateRequest) -> UUID:
        """
        Validate the request and create the trip.

        The trip, its OWNER membership and its day rows are committed
        together; a join code collision rolls everything back and retries
        with a fresh code.

        Returns:
            Id of the new trip
        """
        trip_name = normalize_trip_name(request.trip_name)
        destination_name = normalize_destination(request.destination_name)
        start_date = normalize_start_date(request.start_date)
        day_count = normalize_day_count(request.day_count)

        async def persist(join_code: str) -> UUID:
            trip_id = uuid.uuid4()
            now = datetime.utcnow()
            try:
                db.add(
                    TripModel(
                        id=trip_id,
                        join_code=join_code,
                        trip_name=trip_name,
                        destination_name=destination_name,
                        start_date=start_date,
                        day_count=day_count,
                        created_by_user_id=user_id,
                        created_at=now,
                        updated_at=now,
                    )
                )
                await db.flush()
                db.add(
                    TripMemberModel(
                        trip_id=trip_id,
                        user_id=user_id,
                        member_role=MemberRole.OWNER,
                        is_active=True,
                        joined_at=now,
                    )
                )
                db.add_all(day_rows(trip_id, day_count, start_date))
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                if is_join_code_violation(e):
                    raise JoinCodeCollision()
                raise
            return trip_id

        trip_id = await self.issuer.issue(persist)
        logger.info(f"Created trip {trip_id} ({day_count} days) for user {user_id}")
        return trip_id

    async def join_trip(self, db: AsyncSession, user_id: UUID, raw_join_code: Optional[str]) -> UUID:
        """
        Join (or rejoin) the trip behind a join code.

        Raises:
            ValidationError: If the code is malformed
            NotFoundError: If no active trip uses the code
        """
        join_code = normalize_join_code(raw_join_code)

        result = await db.execute(
            select(TripModel.id).where(
                TripModel.join_code == join_code,
                TripModel.is_archived.is_(False),
            )
        )
        trip_id = result.scalar_one_or_none()
        if trip_id is None:
            raise NotFoundError("No trip found for that join code.")

        await self.guard.ensure_member(db, trip_id, user_id, MemberRole.MEMBER)
        await db.commit()

        logger.info(f"User {user_id} joined trip {trip_id}")
        return trip_id

    async def require_active_trip(self, db: AsyncSession, trip_id: UUID) -> None:
        result = await db.execute(
            select(TripModel.id).where(TripModel.id == trip_id, TripModel.is_archived.is_(False))
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Trip not found.")

    async def archive_trip(self, db: AsyncSession, trip_id: UUID, user_id: UUID) -> None:
        """
        Soft-delete a trip and deactivate every membership.

        Raises:
            NotFoundError: If the trip is absent or already archived
            AuthorizationError: If the caller is not the trip owner
        """
        await self.require_active_trip(db, trip_id)
        await self.guard.require_owner(db, trip_id, user_id, "Only trip owners can delete trips.")

        result = await db.execute(
            update(TripModel)
            .where(TripModel.id == trip_id, TripModel.is_archived.is_(False))
            .values(is_archived=True, updated_at=datetime.utcnow())
        )
        if result.rowcount == 0:
            # Archived concurrently
            await db.rollback()
            raise NotFoundError("Trip not found.")

        await db.execute(
            update(TripMemberModel)
            .where(TripMemberModel.trip_id == trip_id)
            .values(is_active=False)
        )
        await db.commit()
        logger.info(f"Archived trip {trip_id} by owner {user_id}")


# Global service instance
trip_service = TripService()
