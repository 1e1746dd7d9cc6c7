"""
API tests: authentication, error mapping and the main review flows over HTTP.

The record store dependency is overridden with a seeded in-memory store,
and callers authenticate with tokens minted by ``create_access_token``.

Usage:
    cd backend && pytest tests/test_api.py -v
"""

import os
import sys
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from proposal_review.auth import create_access_token
from proposal_review.deps import get_store
from proposal_review.main import app

from factories import (
    ADMIN_ID,
    COMMENTER_ID,
    EDITOR_ID,
    OUTSIDER_ID,
    OWNER_ID,
    REVIEWER_ID,
    VIEWER_ID,
)


def auth(user_id, role=None, name=None):
    return {"Authorization": f"Bearer {create_access_token(user_id, role=role, name=name)}"}


@pytest.fixture
def client(store, seeded):
    async def override_store():
        yield store

    app.dependency_overrides[get_store] = override_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def pid(seeded):
    return seeded.proposal_id


def save(client, pid, question_id, text, user_id=EDITOR_ID, expected_version=None):
    body = {"question_id": question_id, "text": text}
    if expected_version is not None:
        body["expected_version"] = expected_version
    return client.post(f"/api/v1/proposals/{pid}/answers", json=body, headers=auth(user_id))


class TestHealthAndCatalogue:
    def test_health(self, client):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers

    def test_role_catalogue(self, client):
        response = client.get("/api/v1/collaborator-roles")
        assert response.status_code == 200
        roles = {r["role"]: r["capabilities"] for r in response.json()["roles"]}
        assert set(roles) == {"viewer", "commenter", "contributor", "reviewer", "editor"}
        assert roles["reviewer"]["canReview"] is True
        assert roles["commenter"]["canEdit"] is False


class TestAuthentication:
    def test_missing_token(self, client, pid):
        response = client.get(f"/api/v1/proposals/{pid}")
        assert response.status_code == 401

    def test_garbage_token(self, client, pid):
        response = client.get(
            f"/api/v1/proposals/{pid}", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    def test_expired_token(self, client, pid):
        token = create_access_token(OWNER_ID, expires_in=timedelta(seconds=-5))
        response = client.get(
            f"/api/v1/proposals/{pid}", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401


class TestProposalAccess:
    def test_owner_gets_proposal(self, client, pid):
        response = client.get(f"/api/v1/proposals/{pid}", headers=auth(OWNER_ID))
        assert response.status_code == 200
        assert response.json()["title"] == "City Parks RFP"

    def test_not_found_is_distinct_from_forbidden(self, client, pid):
        missing = client.get("/api/v1/proposals/999", headers=auth(OWNER_ID))
        assert missing.status_code == 404
        assert missing.json()["code"] == "NOT_FOUND"

        forbidden = client.get(f"/api/v1/proposals/{pid}", headers=auth(OUTSIDER_ID))
        assert forbidden.status_code == 403
        assert forbidden.json()["code"] == "PERMISSION_DENIED"

    def test_admin_role_claim_grants_access(self, client, pid):
        response = client.get(f"/api/v1/proposals/{pid}", headers=auth(ADMIN_ID, role="admin"))
        assert response.status_code == 200

    def test_viewer_cannot_update(self, client, pid):
        response = client.patch(
            f"/api/v1/proposals/{pid}", json={"title": "Renamed"}, headers=auth(VIEWER_ID)
        )
        assert response.status_code == 403

    def test_create_and_list(self, client):
        created = client.post(
            "/api/v1/proposals", json={"title": "Transit RFP"}, headers=auth(OUTSIDER_ID)
        )
        assert created.status_code == 201
        assert created.json()["owner_id"] == OUTSIDER_ID

        listed = client.get("/api/v1/proposals", headers=auth(OUTSIDER_ID))
        assert [p["title"] for p in listed.json()["proposals"]] == ["Transit RFP"]

    def test_my_collaboration(self, client, pid):
        response = client.get(f"/api/v1/proposals/{pid}/my-collaboration", headers=auth(REVIEWER_ID))
        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "reviewer"
        assert body["capabilities"]["canReview"] is True


class TestCollaborators:
    def test_add_then_duplicate(self, client, pid):
        first = client.post(
            f"/api/v1/proposals/{pid}/collaborations",
            json={"user_id": OUTSIDER_ID, "role": "viewer"},
            headers=auth(OWNER_ID),
        )
        assert first.status_code == 201
        assert first.json()["capabilities"]["canView"] is True

        again = client.post(
            f"/api/v1/proposals/{pid}/collaborations",
            json={"user_id": OUTSIDER_ID, "role": "editor"},
            headers=auth(OWNER_ID),
        )
        assert again.status_code == 400
        assert again.json()["code"] == "VALIDATION_ERROR"


class TestAnswers:
    def test_create_then_update_status_codes(self, client, pid, seeded):
        created = save(client, pid, seeded.q1_id, "First draft")
        assert created.status_code == 201
        assert created.json()["version"] == 1

        updated = save(client, pid, seeded.q1_id, "Second draft")
        assert updated.status_code == 200
        assert updated.json()["version"] == 2

    def test_unknown_question_is_bad_request(self, client, pid):
        response = save(client, pid, 999, "text")
        assert response.status_code == 400

    def test_commenter_cannot_write(self, client, pid, seeded):
        response = save(client, pid, seeded.q1_id, "text", user_id=COMMENTER_ID)
        assert response.status_code == 403

    def test_stale_version_is_conflict(self, client, pid, seeded):
        save(client, pid, seeded.q1_id, "v1")
        save(client, pid, seeded.q1_id, "v2")

        response = save(client, pid, seeded.q1_id, "stale edit", expected_version=1)
        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "CONFLICT"
        assert body["current_version"] == 2

    def test_locked_answer_rejects_edits(self, client, pid, seeded):
        answer = save(client, pid, seeded.q1_id, "Final").json()
        locked = client.patch(
            f"/api/v1/proposals/{pid}/answers/{answer['id']}/status",
            json={"status": "locked"},
            headers=auth(REVIEWER_ID),
        )
        assert locked.status_code == 200
        assert locked.json()["locked"] is True

        response = save(client, pid, seeded.q1_id, "Sneaky edit")
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_STATE"

    def test_approve_by_question_requires_an_answer(self, client, pid, seeded):
        response = client.patch(
            f"/api/v1/proposals/{pid}/questions/{seeded.q2_id}/status",
            json={"status": "approved"},
            headers=auth(REVIEWER_ID),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_STATE"

    def test_unknown_status_target_is_rejected(self, client, pid, seeded):
        answer = save(client, pid, seeded.q1_id, "Final").json()
        response = client.patch(
            f"/api/v1/proposals/{pid}/answers/{answer['id']}/status",
            json={"status": "submitted"},
            headers=auth(REVIEWER_ID),
        )
        assert response.status_code == 422

    def test_bulk_save_and_review_overview(self, client, pid, seeded):
        response = client.post(
            f"/api/v1/proposals/{pid}/answers/bulk",
            json={
                "answers": [
                    {"question_id": seeded.q1_id, "text": "A1"},
                    {"question_id": seeded.q2_id, "text": "A2"},
                ]
            },
            headers=auth(EDITOR_ID),
        )
        assert response.status_code == 200
        assert response.json()["total"] == 2

        overview = client.get(f"/api/v1/proposals/{pid}/review", headers=auth(VIEWER_ID)).json()
        assert [item["status"] for item in overview["items"]] == ["submitted", "submitted"]
        assert overview["counts"]["submitted"] == 2


class TestCommentsAndNotifications:
    def test_comment_flow_reaches_owner_inbox(self, client, pid, seeded):
        answer = save(client, pid, seeded.q1_id, "Our approach").json()

        comment = client.post(
            f"/api/v1/proposals/{pid}/answers/{answer['id']}/comments",
            json={"text": "Please expand."},
            headers=auth(COMMENTER_ID),
        )
        assert comment.status_code == 201
        root_id = comment.json()["id"]

        reply = client.post(
            f"/api/v1/proposals/{pid}/answers/{answer['id']}/comments",
            json={"text": "Will do.", "parent_id": root_id},
            headers=auth(EDITOR_ID),
        )
        assert reply.status_code == 201

        threads = client.get(
            f"/api/v1/proposals/{pid}/answers/{answer['id']}/comments", headers=auth(VIEWER_ID)
        ).json()
        assert threads["total"] == 1
        assert [r["text"] for r in threads["comments"][0]["replies"]] == ["Will do."]

        count = client.get("/api/v1/notifications/unread-count", headers=auth(OWNER_ID))
        assert count.json()["unread_count"] == 2

        inbox = client.get("/api/v1/notifications", headers=auth(OWNER_ID)).json()
        assert {n["type"] for n in inbox["notifications"]} == {"comment"}
        first_id = inbox["notifications"][0]["id"]

        # Another user cannot touch the owner's notifications
        foreign = client.patch(f"/api/v1/notifications/{first_id}/read", headers=auth(VIEWER_ID))
        assert foreign.status_code == 404

        read = client.patch(f"/api/v1/notifications/{first_id}/read", headers=auth(OWNER_ID))
        assert read.json()["is_read"] is True

        read_all = client.patch("/api/v1/notifications/read-all", headers=auth(OWNER_ID))
        assert read_all.json()["updated"] == 1

        dismissed = client.delete("/api/v1/notifications", headers=auth(OWNER_ID))
        assert dismissed.json()["updated"] == 2
        assert client.get("/api/v1/notifications", headers=auth(OWNER_ID)).json()["total"] == 0

    def test_team_chat(self, client, pid):
        posted = client.post(
            f"/api/v1/proposals/{pid}/chat", json={"text": "Draft due Friday"}, headers=auth(OWNER_ID)
        )
        assert posted.status_code == 201
        assert posted.json()["author_name"] == "Olivia Owner"

        denied = client.post(
            f"/api/v1/proposals/{pid}/chat", json={"text": "me too"}, headers=auth(VIEWER_ID)
        )
        assert denied.status_code == 403

        listed = client.get(f"/api/v1/proposals/{pid}/chat", headers=auth(VIEWER_ID)).json()
        assert listed["total"] == 1
        assert listed["messages"][0]["text"] == "Draft due Friday"

    def test_viewer_cannot_comment(self, client, pid, seeded):
        answer = save(client, pid, seeded.q1_id, "Our approach").json()
        response = client.post(
            f"/api/v1/proposals/{pid}/answers/{answer['id']}/comments",
            json={"text": "hi"},
            headers=auth(VIEWER_ID),
        )
        assert response.status_code == 403


class TestSuggestions:
    def test_propose_resolve_apply(self, client, pid, seeded):
        answer = save(client, pid, seeded.q1_id, "Original").json()

        proposed = client.post(
            f"/api/v1/proposals/{pid}/answers/{answer['id']}/suggestions",
            json={"suggested_text": "Improved"},
            headers=auth(COMMENTER_ID),
        )
        assert proposed.status_code == 201
        sid = proposed.json()["id"]

        not_owner = client.patch(
            f"/api/v1/proposals/{pid}/suggestions/{sid}",
            json={"status": "accepted"},
            headers=auth(REVIEWER_ID),
        )
        assert not_owner.status_code == 403

        accepted = client.patch(
            f"/api/v1/proposals/{pid}/suggestions/{sid}",
            json={"status": "accepted"},
            headers=auth(OWNER_ID),
        )
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "accepted"

        again = client.patch(
            f"/api/v1/proposals/{pid}/suggestions/{sid}",
            json={"status": "rejected"},
            headers=auth(OWNER_ID),
        )
        assert again.status_code == 400
        assert again.json()["code"] == "INVALID_STATE"

        applied = client.post(
            f"/api/v1/proposals/{pid}/suggestions/{sid}/apply", headers=auth(OWNER_ID)
        )
        assert applied.status_code == 200
        assert applied.json()["answer"]["text"] == "Improved"
        assert applied.json()["answer"]["version"] == 2

        pending = client.get(
            f"/api/v1/proposals/{pid}/suggestions",
            params={"status": "pending"},
            headers=auth(VIEWER_ID),
        )
        assert pending.json()["total"] == 0
