"""Storage-agnostic record store.

Services receive a :class:`RecordStore` and never touch a session or a
global list directly, so the same logic runs against PostgreSQL in
production and against :class:`InMemoryStore` in tests or local runs.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from proposal_review.models.db import (
    Answer,
    AnswerComment,
    AnswerSuggestion,
    Collaboration,
    Notification,
    Proposal,
    ProposalChatMessage,
    Question,
    User,
)
from proposal_review.store.base import Repository
from proposal_review.store.memory_store import InMemoryRepository
from proposal_review.store.sqlalchemy_store import SqlAlchemyRepository

__all__ = [
    "RecordStore",
    "SqlAlchemyStore",
    "InMemoryStore",
    "Repository",
]


class RecordStore:
    """One repository per entity touched by the review workflow."""

    users: Repository[User]
    proposals: Repository[Proposal]
    collaborations: Repository[Collaboration]
    questions: Repository[Question]
    answers: Repository[Answer]
    comments: Repository[AnswerComment]
    suggestions: Repository[AnswerSuggestion]
    notifications: Repository[Notification]
    chat_messages: Repository[ProposalChatMessage]

    _MODELS = {
        "users": User,
        "proposals": Proposal,
        "collaborations": Collaboration,
        "questions": Question,
        "answers": Answer,
        "comments": AnswerComment,
        "suggestions": AnswerSuggestion,
        "notifications": Notification,
        "chat_messages": ProposalChatMessage,
    }


class SqlAlchemyStore(RecordStore):
    """Record store bound to a single request's ``AsyncSession``."""

    def __init__(self, session: AsyncSession):
        self.session = session
        for name, model in self._MODELS.items():
            setattr(self, name, SqlAlchemyRepository(session, model))


class InMemoryStore(RecordStore):
    """Process-local record store with auto-incrementing ids."""

    def __init__(self):
        for name, model in self._MODELS.items():
            setattr(self, name, InMemoryRepository(model))
