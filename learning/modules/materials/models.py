import uuid
from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Numeric, ForeignKey, Index
from learning.core.base import Base, TimestampedMixin

class Material(Base, TimestampedMixin):
    __tablename__ = "materials"

    title: Mapped[str] = mapped_column(String(140))
    description: Mapped[str] = mapped_column(String(520))
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    currency: Mapped[str] = mapped_column(String(3))  # EUR | USD
    type: Mapped[str] = mapped_column(String(32))  # book | article | presentation | exercises
    # Storage key of the document; "dummy" while the upload is in flight.
    file: Mapped[str] = mapped_column(String(512))
    author: Mapped[str] = mapped_column(String(128))

    __table_args__ = (Index("ix_materials_author", "author"),)

class MaterialPurchaser(Base):
    __tablename__ = "material_purchasers"

    material_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("materials.id", ondelete="CASCADE"), primary_key=True)
    username: Mapped[str] = mapped_column(String(128), primary_key=True)

    __table_args__ = (Index("ix_material_purchasers_username", "username"),)

class MaterialCourse(Base):
    __tablename__ = "material_courses"

    material_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("materials.id", ondelete="CASCADE"), primary_key=True)
    course_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    __table_args__ = (Index("ix_material_courses_course_id", "course_id"),)
