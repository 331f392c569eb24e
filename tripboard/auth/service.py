"""
Identity resolution - maps verified token claims onto a local user row.
"""
import hashlib
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tripboard.auth.config import auth_settings
from tripboard.auth.models import UserModel
from tripboard.domain.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_NAME = "Traveler"
MAX_DISPLAY_NAME_LENGTH = 120
MAX_EMAIL_LENGTH = 255

_EMAIL_LIKE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def derive_user_id(subject: str, namespace: Optional[str] = None) -> UUID:
    """
    Deterministic user id for a provider subject.

    SHA-1 of "<namespace>:<subject>", first 16 bytes, with version 5 and
    RFC 4122 variant bits applied.
    """
    namespace = namespace or auth_settings.auth_subject_namespace
    digest = hashlib.sha1(f"{namespace}:{subject}".encode("utf-8")).digest()
    return uuid.UUID(bytes=digest[:16], version=5)


def claim_string(claims: Mapping[str, Any], key: str) -> str:
    value = claims.get(key) if claims else None
    return value.strip() if isinstance(value, str) else ""


def is_email_like(value: Optional[str]) -> bool:
    trimmed = (value or "").strip()
    return bool(trimmed) and bool(_EMAIL_LIKE.match(trimmed))


def normalize_display_name(value: Optional[str]) -> str:
    """
    Usable display name or an empty string.
    Blank and email-shaped values are rejected so addresses never leak
    into member lists.
    """
    trimmed = (value or "").strip()
    if not trimmed or is_email_like(trimmed):
        return ""
    return trimmed[:MAX_DISPLAY_NAME_LENGTH]


def normalize_email(value: Optional[str]) -> Optional[str]:
    trimmed = (value or "").strip().lower()
    if not trimmed:
        return None
    if len(trimmed) > MAX_EMAIL_LENGTH:
        raise ValidationError("Email is too long.")
    return trimmed


@dataclass(frozen=True)
class ResolvedUser:
    """Outcome of resolving the caller's identity."""
    user_id: UUID
    display_name: str
    email: Optional[str]
    subject: str


class IdentityResolver:
    """Creates or refreshes the user row behind an authenticated request."""

    def __init__(self, namespace: Optional[str] = None):
        self.namespace = namespace

    @staticmethod
    def _pick_existing(
        candidates: Sequence[UserModel],
        user_id: UUID,
        email: Optional[str],
    ) -> Optional[UserModel]:
        # Email wins so identity survives a provider change that keeps the address
        if email:
            for candidate in candidates:
                if normalize_email(candidate.email) == email:
                    return candidate
        for candidate in candidates:
            if candidate.id == user_id:
                return candidate
        return candidates[0] if candidates else None

    async def resolve(
        self,
        db: AsyncSession,
        claims: Mapping[str, Any],
        preferred_display_name: Optional[str] = None,
    ) -> ResolvedUser:
        """
        Resolve the caller and upsert their user row.

        Args:
            db: Database session
            claims: Verified access token claims
            preferred_display_name: Name supplied by the client, if any

        Returns:
            ResolvedUser with the effective id, name and email

        Raises:
            ValidationError: If the subject claim is missing or the email is too long
        """
        subject = claim_string(claims, "sub")
        if not subject:
            raise ValidationError("Auth subject is required.")

        token_email = normalize_email(claim_string(claims, "email"))
        token_name = claim_string(claims, "name") or claim_string(claims, "nickname")
        user_id = derive_user_id(subject, self.namespace)

        condition = UserModel.id == user_id
        if token_email:
            condition = or_(condition, UserModel.email == token_email)
        result = await db.execute(select(UserModel).where(condition))
        existing = self._pick_existing(result.scalars().all(), user_id, token_email)

        existing_name = ""
        existing_email = None
        if existing is not None:
            user_id = existing.id
            existing_name = normalize_display_name(existing.display_name)
            existing_email = normalize_email(existing.email)

        display_name = (
            normalize_display_name(preferred_display_name)
            or existing_name
            or normalize_display_name(token_name)
            or DEFAULT_DISPLAY_NAME
        )
        email = token_email or existing_email

        await self._upsert(db, existing, user_id, display_name, email)
        await db.commit()

        return ResolvedUser(user_id=user_id, display_name=display_name, email=email, subject=subject)

    async def _upsert(
        self,
        db: AsyncSession,
        existing: Optional[UserModel],
        user_id: UUID,
        display_name: str,
        email: Optional[str],
    ) -> None:
        now = datetime.utcnow()

        if existing is not None:
            existing.display_name = display_name
            existing.last_seen_at = now
            if email:
                existing.email = email
            await db.flush()
            return

        try:
            async with db.begin_nested():
                db.add(UserModel(id=user_id, display_name=display_name, email=email, last_seen_at=now))
        except IntegrityError:
            # A concurrent request created the same user first
            logger.info(f"User {user_id} was created concurrently; updating instead")
            user = await db.get(UserModel, user_id)
            if user is None:
                raise
            user.display_name = display_name
            user.last_seen_at = now
            if email:
                user.email = email
            await db.flush()


# Global resolver instance
identity_resolver = IdentityResolver()
