"""Business logic for suggested answer edits.

A suggestion is proposed by anyone who may comment, resolved once by the
proposal owner, and only changes the answer text when the owner applies it
as a separate step.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from proposal_review.exceptions import InvalidStateError, NotFoundError, ValidationError
from proposal_review.models.db.question import Answer
from proposal_review.models.db.suggestion import AnswerSuggestion
from proposal_review.services import notification_service
from proposal_review.services.access_control import (
    Caller,
    require_access,
    require_owner,
)
from proposal_review.services.comment_service import (
    get_answer_on_proposal,
    require_author,
    resolve_display_name,
)
from proposal_review.services.review_service import ReviewService
from proposal_review.store import RecordStore

logger = logging.getLogger(__name__)

SUGGESTION_PENDING = "pending"
SUGGESTION_ACCEPTED = "accepted"
SUGGESTION_REJECTED = "rejected"
SUGGESTION_STATUSES = (SUGGESTION_PENDING, SUGGESTION_ACCEPTED, SUGGESTION_REJECTED)
RESOLUTION_STATUSES = (SUGGESTION_ACCEPTED, SUGGESTION_REJECTED)

_RESOLUTION_TYPES = {
    SUGGESTION_ACCEPTED: notification_service.TYPE_SUGGESTION_ACCEPTED,
    SUGGESTION_REJECTED: notification_service.TYPE_SUGGESTION_REJECTED,
}


class SuggestionService:
    """Service layer for the propose / resolve / apply protocol."""

    @staticmethod
    async def propose_suggestion(
        store: RecordStore,
        proposal_id: int,
        answer_id: int,
        suggested_text: str,
        caller: Caller,
        note: Optional[str] = None,
    ) -> AnswerSuggestion:
        """Record a pending suggestion and notify the proposal owner.

        Needs ``can_comment`` only; a commenter may suggest text they
        cannot write themselves.
        """
        access = await require_access(store, proposal_id, caller, "can_comment")
        proposer_id = require_author(caller)
        await get_answer_on_proposal(store, proposal_id, answer_id)

        if not (suggested_text or "").strip():
            raise ValidationError("Suggested text is required")

        proposer_name = await resolve_display_name(store, caller)
        suggestion = await store.suggestions.create(
            AnswerSuggestion(
                proposal_id=proposal_id,
                answer_id=answer_id,
                proposed_by=proposer_id,
                proposed_by_name=proposer_name,
                suggested_text=suggested_text,
                note=(note or "").strip() or None,
                status=SUGGESTION_PENDING,
            )
        )
        logger.info("Suggestion %s proposed on answer %s", suggestion.id, answer_id)

        await notification_service.notify(
            store,
            access.proposal.owner_id,
            "New suggestion on proposal",
            f"{proposer_name} suggested an edit to an answer.",
            notification_service.TYPE_SUGGESTION,
            link=notification_service.proposal_questions_link(proposal_id),
            actor_id=caller.user_id,
        )
        return suggestion

    @staticmethod
    async def list_suggestions(
        store: RecordStore,
        proposal_id: int,
        caller: Caller,
        status: Optional[str] = None,
        answer_id: Optional[int] = None,
    ) -> list[AnswerSuggestion]:
        await require_access(store, proposal_id, caller, "can_view")
        filters = {"proposal_id": proposal_id}
        if status is not None:
            if status not in SUGGESTION_STATUSES:
                raise ValidationError(
                    f"Invalid status '{status}'. Must be one of: {', '.join(SUGGESTION_STATUSES)}"
                )
            filters["status"] = status
        if answer_id is not None:
            filters["answer_id"] = answer_id
        return await store.suggestions.list(order_by=("-created_at", "-id"), **filters)

    @staticmethod
    async def resolve_suggestion(
        store: RecordStore,
        proposal_id: int,
        suggestion_id: int,
        status: str,
        caller: Caller,
    ) -> AnswerSuggestion:
        """Accept or reject a pending suggestion.

        Raises:
            ValidationError: If *status* is not accepted/rejected.
            InvalidStateError: If the suggestion was already resolved.
        """
        if status not in RESOLUTION_STATUSES:
            raise ValidationError("status must be 'accepted' or 'rejected'")

        await require_owner(store, proposal_id, caller)
        suggestion = await SuggestionService._get_suggestion(
            store, proposal_id, suggestion_id
        )
        if suggestion.status != SUGGESTION_PENDING:
            raise InvalidStateError(
                f"Suggestion has already been {suggestion.status}"
            )

        suggestion = await store.suggestions.update(
            suggestion,
            status=status,
            resolved_by=caller.user_id,
            resolved_at=datetime.now(timezone.utc),
        )
        logger.info(
            "Suggestion %s %s by user %s", suggestion_id, status, caller.user_id
        )

        await notification_service.notify(
            store,
            suggestion.proposed_by,
            f"Suggestion {status}",
            f"Your suggested edit was {status}.",
            _RESOLUTION_TYPES[status],
            link=notification_service.proposal_questions_link(proposal_id),
            actor_id=caller.user_id,
        )
        return suggestion

    @staticmethod
    async def apply_suggestion(
        store: RecordStore,
        proposal_id: int,
        suggestion_id: int,
        caller: Caller,
        expected_version: Optional[int] = None,
    ) -> tuple[AnswerSuggestion, Answer]:
        """Write an accepted suggestion's text into its answer.

        The write goes through ``ReviewService.save_answer`` so a locked
        answer or a stale *expected_version* refuses it like any edit.
        """
        await require_owner(store, proposal_id, caller)
        suggestion = await SuggestionService._get_suggestion(
            store, proposal_id, suggestion_id
        )
        if suggestion.status != SUGGESTION_ACCEPTED:
            raise InvalidStateError("Only accepted suggestions can be applied")
        if suggestion.applied_at is not None:
            raise InvalidStateError("Suggestion has already been applied")

        answer = await get_answer_on_proposal(store, proposal_id, suggestion.answer_id)
        answer, _ = await ReviewService.save_answer(
            store,
            proposal_id,
            answer.question_id,
            suggestion.suggested_text,
            caller,
            expected_version=expected_version,
        )
        suggestion = await store.suggestions.update(
            suggestion,
            applied_at=datetime.now(timezone.utc),
            applied_version=answer.version,
        )
        logger.info(
            "Suggestion %s applied to answer %s (version %s)",
            suggestion_id,
            answer.id,
            answer.version,
        )
        return suggestion, answer

    @staticmethod
    async def _get_suggestion(
        store: RecordStore, proposal_id: int, suggestion_id: int
    ) -> AnswerSuggestion:
        suggestion = await store.suggestions.get(suggestion_id)
        if suggestion is None or suggestion.proposal_id != proposal_id:
            raise NotFoundError("Suggestion not found")
        return suggestion
