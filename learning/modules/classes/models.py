from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Index
from learning.core.base import Base, TimestampedMixin

class Class(Base, TimestampedMixin):
    """A video lesson of a course."""
    __tablename__ = "classes"

    title: Mapped[str] = mapped_column(String(140))
    description: Mapped[str] = mapped_column(String(520))
    order: Mapped[int] = mapped_column(Integer)  # position of the class within its course
    # Storage key of the video; "dummy" while the upload is in flight.
    file: Mapped[str] = mapped_column(String(512))
    course_id: Mapped[str] = mapped_column(String(64))
    creator: Mapped[str] = mapped_column(String(128))

    __table_args__ = (
        Index("ix_classes_course_id", "course_id"),
        Index("ix_classes_creator", "creator"),
    )
