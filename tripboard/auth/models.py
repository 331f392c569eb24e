"""
SQLAlchemy ORM model for user accounts.
"""
from sqlalchemy import Column, String, DateTime, Index, text
from datetime import datetime
import uuid

from tripboard.infrastructure.database import Base
from tripboard.infrastructure.db_types import GUID


class UserModel(Base):
    """
    User account model.
    The id is derived from the identity provider subject, so the same
    subject always maps to the same row.
    """
    __tablename__ = "users"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    display_name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=True)  # May be null when the provider hides it

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_seen_at = Column(DateTime, nullable=True)

    # Email is unique only when present
    __table_args__ = (
        Index(
            "ux_users_email_not_null",
            "email",
            unique=True,
            postgresql_where=text("email IS NOT NULL"),
            sqlite_where=text("email IS NOT NULL"),
        ),
    )
