"""
Profile document model. Skills, social links and experience entries are
embedded in the row as JSON (JSONB on PostgreSQL), not separate tables.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devconnector.database.connection import Base

# JSONB where available, plain JSON elsewhere (SQLite in tests)
EmbeddedJSON = JSON().with_variant(JSONB(), "postgresql")

PROFILE_FIELDS = ("handle", "company", "website", "location", "bio", "status", "githubusername")
SOCIAL_FIELDS = ("youtube", "twitter", "facebook", "instagram", "linkedin")
EXPERIENCE_FIELDS = ("title", "company", "location", "from", "to", "current", "description")


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # unique: at most one profile per user
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    handle: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    website: Mapped[str | None] = mapped_column(String(500), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(255), nullable=False)
    githubusername: Mapped[str | None] = mapped_column(String(255), nullable=True)

    skills: Mapped[list] = mapped_column(EmbeddedJSON, default=list, nullable=False)
    # {youtube, twitter, facebook, instagram, linkedin}, each optional
    social: Mapped[dict] = mapped_column(EmbeddedJSON, default=dict, nullable=False)
    # Newest first: [{id, title, company, location, from, to, current, description}]
    experience: Mapped[list] = mapped_column(EmbeddedJSON, default=list, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = relationship("User", lazy="selectin")
