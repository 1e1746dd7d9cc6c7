"""Business logic for proposal questions and the answer review workflow.

Answer lifecycle::

    (no row) "draft" --save--> submitted --approve--> approved
                                   |  \\--reject----> rejected
                                   |
    locked is an orthogonal flag on any saved answer; while set, saving,
    approving and rejecting are refused.

Every write bumps ``Answer.version``.  Callers that pass the version they
last saw get a ``ConflictError`` instead of silently overwriting a
concurrent edit.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from proposal_review.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from proposal_review.models.db.question import Answer, Question
from proposal_review.services.access_control import Caller, require_access
from proposal_review.store import RecordStore

logger = logging.getLogger(__name__)

ANSWER_DRAFT = "draft"
ANSWER_SUBMITTED = "submitted"
ANSWER_APPROVED = "approved"
ANSWER_REJECTED = "rejected"

TARGET_APPROVED = "approved"
TARGET_REJECTED = "rejected"
TARGET_LOCKED = "locked"
TARGET_UNLOCKED = "unlocked"
STATUS_TARGETS = (TARGET_APPROVED, TARGET_REJECTED, TARGET_LOCKED, TARGET_UNLOCKED)

QUESTION_SOURCES = ("user", "ai", "template")


@dataclass
class AnswerWrite:
    """One item of a (bulk) answer save."""

    question_id: int
    text: str
    expected_version: Optional[int] = None


@dataclass
class ReviewItem:
    """A question with the effective review state of its answer."""

    question: Question
    answer: Optional[Answer]

    @property
    def status(self) -> str:
        return self.answer.status if self.answer is not None else ANSWER_DRAFT

    @property
    def locked(self) -> bool:
        return bool(self.answer is not None and self.answer.locked)


@dataclass
class ReviewOverview:
    items: list[ReviewItem]
    counts: dict[str, int] = field(default_factory=dict)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReviewService:
    """Service layer for questions, answers and review transitions."""

    # ------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------

    @staticmethod
    async def list_questions(
        store: RecordStore, proposal_id: int, caller: Caller
    ) -> list[Question]:
        await require_access(store, proposal_id, caller, "can_view")
        return await store.questions.list(
            order_by=("display_order", "id"), proposal_id=proposal_id
        )

    @staticmethod
    async def create_question(
        store: RecordStore,
        proposal_id: int,
        text: str,
        caller: Caller,
        display_order: Optional[int] = None,
        source: str = "user",
    ) -> Question:
        """Add a question to a proposal.

        Raises:
            ValidationError: If the text is blank or the source is unknown.
        """
        await require_access(store, proposal_id, caller, "can_edit")

        text = (text or "").strip()
        if not text:
            raise ValidationError("Question text is required")
        if source not in QUESTION_SOURCES:
            raise ValidationError(
                f"Invalid source '{source}'. Must be one of: {', '.join(QUESTION_SOURCES)}"
            )

        if display_order is None:
            display_order = len(await store.questions.list(proposal_id=proposal_id))

        return await store.questions.create(
            Question(
                proposal_id=proposal_id,
                text=text,
                display_order=display_order,
                source=source,
            )
        )

    @staticmethod
    async def update_question(
        store: RecordStore,
        proposal_id: int,
        question_id: int,
        caller: Caller,
        text: Optional[str] = None,
        display_order: Optional[int] = None,
    ) -> Question:
        await require_access(store, proposal_id, caller, "can_edit")
        question = await ReviewService._get_question(store, proposal_id, question_id)

        changes = {}
        if text is not None:
            text = text.strip()
            if not text:
                raise ValidationError("Question text is required")
            changes["text"] = text
        if display_order is not None:
            changes["display_order"] = display_order
        if not changes:
            return question
        return await store.questions.update(question, **changes)

    @staticmethod
    async def delete_question(
        store: RecordStore, proposal_id: int, question_id: int, caller: Caller
    ) -> None:
        """Delete a question together with its answer and the answer's discussion."""
        await require_access(store, proposal_id, caller, "can_edit")
        question = await ReviewService._get_question(store, proposal_id, question_id)

        answer = await store.answers.first(question_id=question.id)
        if answer is not None:
            for suggestion in await store.suggestions.list(answer_id=answer.id):
                await store.suggestions.delete(suggestion)
            # Replies first so no row is left pointing at a deleted parent
            comments = await store.comments.list(answer_id=answer.id)
            for comment in sorted(comments, key=lambda c: c.parent_id is None):
                await store.comments.delete(comment)
            await store.answers.delete(answer)

        await store.questions.delete(question)
        logger.info("Deleted question %s on proposal %s", question_id, proposal_id)

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    @staticmethod
    async def list_answers(
        store: RecordStore, proposal_id: int, caller: Caller
    ) -> list[Answer]:
        await require_access(store, proposal_id, caller, "can_view")
        return await store.answers.list(proposal_id=proposal_id)

    @staticmethod
    async def save_answer(
        store: RecordStore,
        proposal_id: int,
        question_id: int,
        text: str,
        caller: Caller,
        expected_version: Optional[int] = None,
    ) -> tuple[Answer, bool]:
        """Create or update the answer for *question_id*.

        Returns:
            ``(answer, created)``.

        Raises:
            ValidationError: If the question is not part of the proposal.
            InvalidStateError: If the answer is locked.
            ConflictError: If *expected_version* is stale.
        """
        await require_access(store, proposal_id, caller, "can_edit")
        question = await ReviewService._get_question_for_write(
            store, proposal_id, question_id
        )
        answer = await store.answers.first(question_id=question.id)
        ReviewService._check_writable(answer, expected_version)
        return await ReviewService._write_answer(store, question, answer, text)

    @staticmethod
    async def bulk_save_answers(
        store: RecordStore,
        proposal_id: int,
        items: Iterable[AnswerWrite],
        caller: Caller,
    ) -> list[Answer]:
        """Save several answers at once.

        Every item is validated before anything is written, so one bad
        question id, locked answer or stale version leaves all answers
        untouched.
        """
        await require_access(store, proposal_id, caller, "can_edit")
        items = list(items)

        seen: set[int] = set()
        planned: list[tuple[Question, Optional[Answer], str]] = []
        for item in items:
            if item.question_id in seen:
                raise ValidationError(
                    f"Duplicate questionId {item.question_id} in bulk save"
                )
            seen.add(item.question_id)
            question = await ReviewService._get_question_for_write(
                store, proposal_id, item.question_id
            )
            answer = await store.answers.first(question_id=question.id)
            ReviewService._check_writable(answer, item.expected_version)
            planned.append((question, answer, item.text))

        saved = []
        for question, answer, text in planned:
            result, _ = await ReviewService._write_answer(store, question, answer, text)
            saved.append(result)
        return saved

    # ------------------------------------------------------------------
    # Review transitions
    # ------------------------------------------------------------------

    @staticmethod
    async def set_answer_status(
        store: RecordStore,
        proposal_id: int,
        answer_id: int,
        target: str,
        caller: Caller,
    ) -> Answer:
        """Apply a review transition to a saved answer addressed by id."""
        ReviewService._check_target(target)
        await require_access(store, proposal_id, caller, "can_review")
        answer = await ReviewService._get_answer(store, proposal_id, answer_id)
        return await ReviewService._transition(store, answer, target, caller)

    @staticmethod
    async def set_question_status(
        store: RecordStore,
        proposal_id: int,
        question_id: int,
        target: str,
        caller: Caller,
    ) -> Answer:
        """Apply a review transition to the answer of *question_id*.

        Raises:
            InvalidStateError: If the question has no saved answer yet.
        """
        ReviewService._check_target(target)
        await require_access(store, proposal_id, caller, "can_review")
        question = await ReviewService._get_question(store, proposal_id, question_id)
        answer = await store.answers.first(question_id=question.id)
        if answer is None:
            raise InvalidStateError(
                "This question has no saved answer yet; save an answer before reviewing it"
            )
        return await ReviewService._transition(store, answer, target, caller)

    @staticmethod
    async def approve_answer(store, proposal_id, question_id, caller) -> Answer:
        return await ReviewService.set_question_status(
            store, proposal_id, question_id, TARGET_APPROVED, caller
        )

    @staticmethod
    async def reject_answer(store, proposal_id, question_id, caller) -> Answer:
        return await ReviewService.set_question_status(
            store, proposal_id, question_id, TARGET_REJECTED, caller
        )

    @staticmethod
    async def lock_answer(store, proposal_id, question_id, caller) -> Answer:
        return await ReviewService.set_question_status(
            store, proposal_id, question_id, TARGET_LOCKED, caller
        )

    @staticmethod
    async def unlock_answer(store, proposal_id, question_id, caller) -> Answer:
        return await ReviewService.set_question_status(
            store, proposal_id, question_id, TARGET_UNLOCKED, caller
        )

    @staticmethod
    async def review_overview(
        store: RecordStore, proposal_id: int, caller: Caller
    ) -> ReviewOverview:
        """Every question with its effective status, plus per-status counts."""
        await require_access(store, proposal_id, caller, "can_view")
        questions = await store.questions.list(
            order_by=("display_order", "id"), proposal_id=proposal_id
        )
        answers = {
            answer.question_id: answer
            for answer in await store.answers.list(proposal_id=proposal_id)
        }
        items = [ReviewItem(question=q, answer=answers.get(q.id)) for q in questions]

        counts = Counter(item.status for item in items)
        summary = {
            status: counts.get(status, 0)
            for status in (ANSWER_DRAFT, ANSWER_SUBMITTED, ANSWER_APPROVED, ANSWER_REJECTED)
        }
        summary[TARGET_LOCKED] = sum(1 for item in items if item.locked)
        summary["total"] = len(items)
        return ReviewOverview(items=items, counts=summary)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _check_target(target: str) -> None:
        if target not in STATUS_TARGETS:
            raise ValidationError(
                f"Invalid status '{target}'. Must be one of: {', '.join(STATUS_TARGETS)}"
            )

    @staticmethod
    def _check_writable(answer: Optional[Answer], expected_version: Optional[int]) -> None:
        if answer is not None and answer.locked:
            raise InvalidStateError("Answer is locked; unlock it before editing")
        current = answer.version if answer is not None else 0
        if expected_version is not None and expected_version != current:
            raise ConflictError(
                f"Answer was modified concurrently (expected version "
                f"{expected_version}, current version {current})",
                current_version=current,
            )

    @staticmethod
    async def _write_answer(
        store: RecordStore,
        question: Question,
        answer: Optional[Answer],
        text: str,
    ) -> tuple[Answer, bool]:
        if answer is None:
            created = await store.answers.create(
                Answer(
                    question_id=question.id,
                    proposal_id=question.proposal_id,
                    text=text,
                    status=ANSWER_SUBMITTED,
                    locked=False,
                    version=1,
                )
            )
            logger.info("Answer %s created for question %s", created.id, question.id)
            return created, True

        updated = await store.answers.update(
            answer, text=text, version=answer.version + 1
        )
        return updated, False

    @staticmethod
    async def _transition(
        store: RecordStore, answer: Answer, target: str, caller: Caller
    ) -> Answer:
        if target in (TARGET_APPROVED, TARGET_REJECTED):
            if answer.locked:
                raise InvalidStateError(
                    f"Answer is locked; unlock it before marking it {target}"
                )
            changes = {
                "status": target,
                "reviewed_by": caller.user_id,
                "reviewed_at": _utcnow(),
            }
        else:
            locked = target == TARGET_LOCKED
            if answer.locked == locked:
                return answer
            changes = {"locked": locked}

        updated = await store.answers.update(
            answer, version=answer.version + 1, **changes
        )
        logger.info(
            "Answer %s -> %s by user %s (version %s)",
            answer.id,
            target,
            caller.user_id,
            updated.version,
        )
        return updated

    @staticmethod
    async def _get_question(
        store: RecordStore, proposal_id: int, question_id: int
    ) -> Question:
        question = await store.questions.get(question_id)
        if question is None or question.proposal_id != proposal_id:
            raise NotFoundError("Question not found")
        return question

    @staticmethod
    async def _get_question_for_write(
        store: RecordStore, proposal_id: int, question_id: int
    ) -> Question:
        # An unknown question on an answer write is a malformed request
        question = await store.questions.get(question_id)
        if question is None or question.proposal_id != proposal_id:
            raise ValidationError("Valid questionId required")
        return question

    @staticmethod
    async def _get_answer(
        store: RecordStore, proposal_id: int, answer_id: int
    ) -> Answer:
        answer = await store.answers.get(answer_id)
        if answer is None or answer.proposal_id != proposal_id:
            raise NotFoundError("Answer not found")
        return answer
