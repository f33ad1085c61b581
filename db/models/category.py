"""
db/models/category.py

Category model — global dictionary of clinic specializations.
"""

import uuid

from sqlalchemy import Index, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class Category(Base):
    """
    One specialization keyed by ``(code, name)``.

    The same numeric code may appear with different names; those are distinct
    categories. Rows are shared across all reports and never updated.
    """

    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    code: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("code", "name", name="uq_categories_code_name"),
        Index("ix_categories_code", "code"),
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} code={self.code} name={self.name!r}>"
