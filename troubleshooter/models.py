# troubleshooter/models.py
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from troubleshooter.db import Base, DocumentType


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserDocument(Base):
    """
    One document per authenticated user, keyed by the identity provider's uid.

    `data` holds the whole user record: completion flags, step payloads,
    the `assessmentCompleted` override and the `subscription` sub-record.
    """
    __tablename__ = "user_documents"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    data: Mapped[dict] = mapped_column(DocumentType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


class SubscriptionOwner(Base):
    """
    Maps a payment-provider subscription id back to the user who bought it,
    so later subscription events can find the right document.
    """
    __tablename__ = "subscription_owners"

    subscription_id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("user_documents.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
