"""Answer suggestion ORM model.

A suggestion moves ``pending`` -> ``accepted`` | ``rejected`` exactly once.
Applying an accepted suggestion to its answer is a separate, recorded step
(``applied_at`` / ``applied_version``).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from proposal_review.database import Base

__all__ = ["AnswerSuggestion"]


class AnswerSuggestion(Base):
    __tablename__ = "answer_suggestions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    proposal_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    answer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("proposal_answers.id", ondelete="CASCADE"),
        nullable=False,
    )
    proposed_by: Mapped[int] = mapped_column(Integer, nullable=False)
    proposed_by_name: Mapped[str] = mapped_column(Text, nullable=False)
    suggested_text: Mapped[str] = mapped_column(Text, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, server_default="pending")

    resolved_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    applied_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    applied_version: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=True
    )
