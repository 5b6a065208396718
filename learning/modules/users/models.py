from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, TIMESTAMP
from learning.core.base import Base, TimestampedMixin

class MaterializedUser(Base, TimestampedMixin):
    """Local copy of a user profile owned by the users service."""
    __tablename__ = "materialized_users"

    username: Mapped[str] = mapped_column(String(128), unique=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    profile_picture: Mapped[str | None] = mapped_column(String(512), nullable=True)
    plan: Mapped[str] = mapped_column(String(16), default="BASIC")
    # last time the users service sent this profile; older than a day is stale
    insert_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
