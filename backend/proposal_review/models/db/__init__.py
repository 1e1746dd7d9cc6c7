"""SQLAlchemy 2.0 ORM models for the proposal review engine.

Import all models here so ``Base.metadata`` knows every table::

    from proposal_review.models.db import Base  # noqa: F401

Every model must be imported at module level to register with the
``DeclarativeBase`` metadata.  Alembic's ``env.py`` relies on this.
"""

from proposal_review.database import Base  # noqa: F401

from proposal_review.models.db.user import User  # noqa: F401
from proposal_review.models.db.proposal import Collaboration, Proposal  # noqa: F401
from proposal_review.models.db.question import Answer, Question  # noqa: F401
from proposal_review.models.db.comment import AnswerComment  # noqa: F401
from proposal_review.models.db.suggestion import AnswerSuggestion  # noqa: F401
from proposal_review.models.db.notification import Notification  # noqa: F401
from proposal_review.models.db.chat import ProposalChatMessage  # noqa: F401

__all__ = [
    "Base",
    "User",
    "Proposal",
    "Collaboration",
    "Question",
    "Answer",
    "AnswerComment",
    "AnswerSuggestion",
    "Notification",
    "ProposalChatMessage",
]
