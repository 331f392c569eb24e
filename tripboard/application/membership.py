"""
Membership guard.
Answers membership and ownership questions used to authorize every
trip-scoped operation.
"""
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tripboard.domain.errors import AuthorizationError
from tripboard.domain.models import MemberRole
from tripboard.infrastructure.models import TripMemberModel

logger = logging.getLogger(__name__)


class MembershipGuard:
    """Reads and writes trip_members rows."""

    @staticmethod
    async def is_member(db: AsyncSession, trip_id: UUID, user_id: UUID) -> bool:
        result = await db.execute(
            select(TripMemberModel.trip_id).where(
                TripMemberModel.trip_id == trip_id,
                TripMemberModel.user_id == user_id,
                TripMemberModel.is_active.is_(True),
            )
        )
        return result.first() is not None

    @staticmethod
    async def is_owner(db: AsyncSession, trip_id: UUID, user_id: UUID) -> bool:
        result = await db.execute(
            select(TripMemberModel.trip_id).where(
                TripMemberModel.trip_id == trip_id,
                TripMemberModel.user_id == user_id,
                TripMemberModel.member_role == MemberRole.OWNER,
                TripMemberModel.is_active.is_(True),
            )
        )
        return result.first() is not None

    async def require_member(
        self,
        db: AsyncSession,
        trip_id: UUID,
        user_id: UUID,
        message: str = "You are not a member of this trip.",
    ) -> None:
        if not await self.is_member(db, trip_id, user_id):
            raise AuthorizationError(message)

    async def require_owner(
        self,
        db: AsyncSession,
        trip_id: UUID,
        user_id: UUID,
        message: str = "Only trip owners can do that.",
    ) -> None:
        if not await self.is_owner(db, trip_id, user_id):
            raise AuthorizationError(message)

    @staticmethod
    async def ensure_member(
        db: AsyncSession,
        trip_id: UUID,
        user_id: UUID,
        role: MemberRole = MemberRole.MEMBER,
    ) -> TripMemberModel:
        """
        Add the user to the trip, or reactivate their existing row.
        An existing row keeps its role. Does not commit.
        """
        member = await db.get(TripMemberModel, (trip_id, user_id))
        if member is not None:
            if not member.is_active:
                logger.info(f"Reactivating membership of user {user_id} in trip {trip_id}")
            member.is_active = True
            await db.flush()
            return member

        member = TripMemberModel(
            trip_id=trip_id,
            user_id=user_id,
            member_role=role,
            is_active=True,
            joined_at=datetime.utcnow(),
        )
        try:
            async with db.begin_nested():
                db.add(member)
        except IntegrityError:
            # Concurrent join inserted the row first
            logger.debug(f"Membership of user {user_id} in trip {trip_id} already recorded")
            member = await db.get(TripMemberModel, (trip_id, user_id), populate_existing=True)
            member.is_active = True
            await db.flush()
        return member


# Global guard instance
membership_guard = MembershipGuard()
