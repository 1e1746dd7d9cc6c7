"""Question and answer ORM models.

An answer is keyed 1:1 by its question.  A question without an answer row
is a draft; the ``draft`` status is never stored.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from proposal_review.database import Base

__all__ = ["Question", "Answer"]


class Question(Base):
    __tablename__ = "proposal_questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    proposal_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    # user, ai, template
    source: Mapped[str] = mapped_column(Text, nullable=False, server_default="user")
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=True
    )


class Answer(Base):
    __tablename__ = "proposal_answers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("proposal_questions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    proposal_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    # submitted, approved, rejected
    status: Mapped[str] = mapped_column(Text, nullable=False, server_default="submitted")
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    # Optimistic concurrency token, bumped on every write
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")

    reviewed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # UPDATEs match on the version read earlier in the request, so a row
    # changed by a concurrent transaction raises StaleDataError on flush.
    # The services assign the new version themselves.
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}
