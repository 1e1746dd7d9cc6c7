"""Threaded discussion on answers, plus the proposal-wide team chat.

Comments are append-only and nest exactly one level: a reply always points
at a root comment on the same answer.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from proposal_review.exceptions import NotFoundError, ValidationError
from proposal_review.models.db.chat import ProposalChatMessage
from proposal_review.models.db.comment import AnswerComment
from proposal_review.models.db.question import Answer, Question
from proposal_review.services import notification_service
from proposal_review.services.access_control import Caller, require_access
from proposal_review.store import RecordStore

logger = logging.getLogger(__name__)

FALLBACK_AUTHOR_NAME = "User"

_THREAD_ORDER = ("created_at", "id")


@dataclass
class CommentThread:
    comment: AnswerComment
    replies: list[AnswerComment] = field(default_factory=list)


@dataclass
class AnswerDiscussion:
    """All threads on one answer, labelled with its question."""

    answer: Answer
    question: Optional[Question]
    threads: list[CommentThread]


async def resolve_display_name(store: RecordStore, caller: Caller) -> str:
    """Name shown next to content the caller authors.

    Prefers the user directory, then the name carried by the caller,
    then a generic label.
    """
    if caller.user_id is not None:
        user = await store.users.get(caller.user_id)
        if user is not None and user.display_name:
            return user.display_name
    return caller.display_name or FALLBACK_AUTHOR_NAME


def require_author(caller: Caller) -> int:
    """Return the user id recorded as author; internal callers cannot author content."""
    if caller.user_id is None:
        raise ValidationError("An authenticated user is required to post content")
    return caller.user_id


async def get_answer_on_proposal(
    store: RecordStore, proposal_id: int, answer_id: int
) -> Answer:
    answer = await store.answers.get(answer_id)
    if answer is None or answer.proposal_id != proposal_id:
        raise NotFoundError("Answer not found")
    return answer


def _thread(comments: list[AnswerComment]) -> list[CommentThread]:
    threads: dict[int, CommentThread] = {}
    for comment in comments:
        if comment.parent_id is None:
            threads[comment.id] = CommentThread(comment=comment)
    for comment in comments:
        if comment.parent_id is not None and comment.parent_id in threads:
            threads[comment.parent_id].replies.append(comment)
    # dicts keep insertion order, and comments arrive oldest first
    return list(threads.values())


async def list_comments(
    store: RecordStore, proposal_id: int, answer_id: int, caller: Caller
) -> list[CommentThread]:
    """Root comments oldest first, each with its replies oldest first."""
    await require_access(store, proposal_id, caller, "can_view")
    await get_answer_on_proposal(store, proposal_id, answer_id)
    comments = await store.comments.list(order_by=_THREAD_ORDER, answer_id=answer_id)
    return _thread(comments)


async def add_comment(
    store: RecordStore,
    proposal_id: int,
    answer_id: int,
    text: str,
    caller: Caller,
    parent_id: Optional[int] = None,
) -> AnswerComment:
    """Post a root comment or a reply and notify the proposal owner.

    Raises:
        ValidationError: Blank text, or a parent that is not a root comment
            on the same answer.
    """
    access = await require_access(store, proposal_id, caller, "can_comment")
    author_id = require_author(caller)
    await get_answer_on_proposal(store, proposal_id, answer_id)

    text = (text or "").strip()
    if not text:
        raise ValidationError("Comment text is required")

    if parent_id is not None:
        parent = await store.comments.get(parent_id)
        if parent is None or parent.answer_id != answer_id:
            raise ValidationError("Parent comment not found on this answer")
        if parent.parent_id is not None:
            raise ValidationError("Replies can only be made to top-level comments")

    author_name = await resolve_display_name(store, caller)
    comment = await store.comments.create(
        AnswerComment(
            proposal_id=proposal_id,
            answer_id=answer_id,
            parent_id=parent_id,
            author_id=author_id,
            author_name=author_name,
            text=text,
        )
    )
    logger.info(
        "Comment %s added on answer %s (reply to %s)", comment.id, answer_id, parent_id
    )

    if parent_id is None:
        title = "New comment on proposal"
        message = f"{author_name} commented on a question."
    else:
        title = "New reply on proposal"
        message = f"{author_name} replied to a comment on a question."
    await notification_service.notify(
        store,
        access.proposal.owner_id,
        title,
        message,
        notification_service.TYPE_COMMENT,
        link=notification_service.proposal_questions_link(proposal_id),
        actor_id=caller.user_id,
    )
    return comment


async def list_proposal_comments(
    store: RecordStore, proposal_id: int, caller: Caller
) -> list[AnswerDiscussion]:
    """Every discussed answer on a proposal, in question order."""
    await require_access(store, proposal_id, caller, "can_view")

    comments = await store.comments.list(order_by=_THREAD_ORDER, proposal_id=proposal_id)
    by_answer: dict[int, list[AnswerComment]] = {}
    for comment in comments:
        by_answer.setdefault(comment.answer_id, []).append(comment)
    if not by_answer:
        return []

    questions = {
        q.id: q for q in await store.questions.list(proposal_id=proposal_id)
    }
    discussions = []
    for answer in await store.answers.list(proposal_id=proposal_id):
        if answer.id not in by_answer:
            continue
        discussions.append(
            AnswerDiscussion(
                answer=answer,
                question=questions.get(answer.question_id),
                threads=_thread(by_answer[answer.id]),
            )
        )

    def question_order(discussion: AnswerDiscussion) -> tuple:
        question = discussion.question
        if question is None:
            return (1, 0, discussion.answer.id)
        return (0, question.display_order or 0, question.id)

    discussions.sort(key=question_order)
    return discussions


# ---------------------------------------------------------------------------
# Proposal chat
# ---------------------------------------------------------------------------


async def list_chat_messages(
    store: RecordStore, proposal_id: int, caller: Caller
) -> list[ProposalChatMessage]:
    """Team chat on a proposal, oldest first."""
    await require_access(store, proposal_id, caller, "can_view")
    return await store.chat_messages.list(order_by=_THREAD_ORDER, proposal_id=proposal_id)


async def post_chat_message(
    store: RecordStore, proposal_id: int, text: str, caller: Caller
) -> ProposalChatMessage:
    """Append a message to the proposal's team chat.

    Chat is not tied to an answer and sends no notifications.
    """
    await require_access(store, proposal_id, caller, "can_comment")
    author_id = require_author(caller)

    text = (text or "").strip()
    if not text:
        raise ValidationError("Message text is required")

    message = await store.chat_messages.create(
        ProposalChatMessage(
            proposal_id=proposal_id,
            author_id=author_id,
            author_name=await resolve_display_name(store, caller),
            text=text,
        )
    )
    logger.info("Chat message %s posted on proposal %s", message.id, proposal_id)
    return message
