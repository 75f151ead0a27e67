"""
SQLAlchemy 2.x ORM models for the Quotes API.

Models use the Mapped[] type annotation syntax and mapped_column.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class Quotee(TimestampMixin, Base):
    """A person a quote is attributed to."""

    __tablename__ = "quotees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    quotes: Mapped[list[Quote]] = relationship("Quote", back_populates="quotee")

    def __repr__(self) -> str:
        return f"<Quotee(id={self.id}, name={self.name})>"


class Category(TimestampMixin, Base):
    """A topic quotes are filed under."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    quotes: Mapped[list[Quote]] = relationship("Quote", back_populates="category")

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name})>"


class Quote(TimestampMixin, Base):
    """
    A quote with its attribution and category.

    keywords holds space-separated search terms matched by the
    ?keywords= filter.
    """

    __tablename__ = "quotes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quote_content: Mapped[str] = mapped_column(Text, nullable=False)
    quotee_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("quotees.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    category_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    keywords: Mapped[str | None] = mapped_column(Text, nullable=True)

    quotee: Mapped[Quotee] = relationship("Quotee", back_populates="quotes")
    category: Mapped[Category] = relationship("Category", back_populates="quotes")

    def __repr__(self) -> str:
        return f"<Quote(id={self.id}, quotee_id={self.quotee_id}, category_id={self.category_id})>"
