"""
Unit Tests for the record store backends.

Usage:
    cd backend && pytest tests/test_store.py -v
"""

import os
import sys
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.orm.exc import StaleDataError

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from proposal_review.exceptions import ConflictError
from proposal_review.models.db import Answer, Notification
from proposal_review.store.sqlalchemy_store import SqlAlchemyRepository

from factories import run


def make_answer(**overrides):
    fields = dict(
        id=7, question_id=3, proposal_id=1, text="Draft", status="submitted",
        locked=False, version=3,
    )
    fields.update(overrides)
    return Answer(**fields)


class TestAnswerVersioning:
    def test_version_column_guards_updates(self):
        mapper = Answer.__mapper__
        assert mapper.version_id_col is not None
        assert mapper.version_id_col.key == "version"
        assert mapper.version_id_col.table is Answer.__table__

    def test_services_assign_versions(self):
        assert Answer.__mapper__.version_id_generator is False


class TestSqlAlchemyRepository:
    def test_lost_race_on_update_is_conflict(self):
        session = AsyncMock()
        session.flush.side_effect = StaleDataError(
            "UPDATE statement on table 'proposal_answers' expected to update 1 row(s); 0 were matched."
        )
        repo = SqlAlchemyRepository(session, Answer)

        with pytest.raises(ConflictError) as exc_info:
            run(repo.update(make_answer(), text="Mine", version=4))

        assert exc_info.value.status_code == 409
        assert isinstance(exc_info.value.__cause__, StaleDataError)
        session.refresh.assert_not_called()

    def test_lost_race_on_delete_is_conflict(self):
        session = AsyncMock()
        session.flush.side_effect = StaleDataError("0 were matched")
        repo = SqlAlchemyRepository(session, Answer)

        with pytest.raises(ConflictError):
            run(repo.delete(make_answer()))

        session.delete.assert_awaited_once()

    def test_update_flushes_and_refreshes(self):
        session = AsyncMock()
        repo = SqlAlchemyRepository(session, Answer)
        answer = make_answer()

        updated = run(repo.update(answer, text="Mine", version=4))

        assert updated is answer
        assert answer.text == "Mine"
        assert answer.version == 4
        session.flush.assert_awaited_once()
        session.refresh.assert_awaited_once_with(answer)

    def test_update_rejects_unknown_field(self):
        repo = SqlAlchemyRepository(AsyncMock(), Answer)
        with pytest.raises(AttributeError):
            run(repo.update(make_answer(), colour="blue"))


class TestInMemoryRepository:
    def test_list_filters_and_orders(self, store):
        for user_id, title in [(1, "a"), (2, "b"), (1, "c")]:
            run(store.notifications.create(
                Notification(user_id=user_id, title=title, message="m", type="info", is_read=False)
            ))

        mine = run(store.notifications.list(order_by=("-id",), user_id=1))
        assert [n.title for n in mine] == ["c", "a"]

    def test_unknown_filter_field(self, store):
        with pytest.raises(AttributeError):
            run(store.notifications.list(colour="blue"))
