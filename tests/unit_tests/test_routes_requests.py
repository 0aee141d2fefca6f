"""Tests for the content request endpoints."""

from uuid import uuid4

import pytest

from tests.consts import API_BASE
from tests.fixtures.workflow_fixtures import CLIENT_SCOPE_ID
from tests.fixtures.workflow_fixtures import CLIENT_USER_ID
from tests.fixtures.workflow_fixtures import EDITOR_ID
from tests.fixtures.workflow_fixtures import MANAGER_ID
from tests.fixtures.workflow_fixtures import OTHER_CLIENT_SCOPE_ID
from tests.fixtures.workflow_fixtures import OTHER_EDITOR_ID
from tests.fixtures.workflow_fixtures import auth
from tests.fixtures.workflow_fixtures import make_request_row
from upthrive_api.workflow.enums import RequestStatus
from upthrive_api.workflow.exceptions import UpstreamError

REQUESTS = f"{API_BASE}/requests"


class TestAuthentication:
    """Tests for bearer token handling."""

    def test_missing_token(self, client):
        response = client.get(f"{REQUESTS}/my-requests")

        assert response.status_code == 401
        assert response.json() == {"error": "No token provided", "error_type": "AuthenticationError"}

    @pytest.mark.parametrize(
        "header",
        ["Bearer unknown-token", "Basic client-token", "Bearer "],
        ids=["unknown_token", "wrong_scheme", "empty_token"],
    )
    def test_rejected_credentials(self, client, header):
        response = client.get(f"{REQUESTS}/my-requests", headers={"Authorization": header})

        assert response.status_code == 401

    def test_no_database_configured(self, app):
        """Without overrides the repositories cannot be built."""
        from fastapi.testclient import TestClient

        from tests.fixtures.workflow_fixtures import TOKENS
        from tests.fixtures.workflow_fixtures import FakeIdentityProvider

        app.state.identity_provider = FakeIdentityProvider(TOKENS)
        with TestClient(app) as test_client:
            response = test_client.get(f"{REQUESTS}/my-requests", headers=auth("client-token"))

        assert response.status_code == 503
        assert response.json()["error_type"] == "ServiceUnavailableError"


class TestCreateRequest:
    """Tests for POST /requests."""

    def test_create(self, client, request_store):
        response = client.post(
            REQUESTS,
            data={"message": "Need a launch post", "content_type": "story", "requirements": "vertical"},
            headers=auth("client-token"),
        )

        assert response.status_code == 201
        body = response.json()["request"]
        assert body["status"] == "pending_manager_review"
        assert body["content_type"] == "story"
        assert body["to_user_id"] == str(MANAGER_ID)
        assert body["client_id"] == str(CLIENT_SCOPE_ID)
        assert len(request_store.rows) == 1

    def test_create_with_file_uploads_first(self, client, media_store):
        response = client.post(
            REQUESTS,
            data={"message": "See attached"},
            files={"file": ("brief.png", b"\x89PNG", "image/png")},
            headers=auth("client-token"),
        )

        assert response.status_code == 201
        media_store.upload.assert_awaited_once()
        assert response.json()["request"]["media_urls"] == [media_store.upload.return_value]

    def test_manager_cannot_create_and_nothing_uploaded(self, client, media_store):
        response = client.post(
            REQUESTS,
            data={"message": "x"},
            files={"file": ("brief.png", b"\x89PNG", "image/png")},
            headers=auth("manager-token"),
        )

        assert response.status_code == 403
        media_store.upload.assert_not_awaited()

    def test_invalid_content_type(self, client):
        response = client.post(REQUESTS, data={"message": "x", "content_type": "podcast"}, headers=auth("client-token"))

        assert response.status_code == 400
        assert response.json()["error_type"] == "ValidationError"

    def test_invalid_content_type_nothing_uploaded(self, client, media_store, request_store):
        response = client.post(
            REQUESTS,
            data={"message": "x", "content_type": "podcast"},
            files={"file": ("brief.png", b"\x89PNG", "image/png")},
            headers=auth("client-token"),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid content type 'podcast'. Must be post, reel or story"
        assert media_store.upload.await_count == 0
        assert request_store.rows == {}

    def test_storage_failure_is_bad_gateway(self, client, media_store, request_store):
        media_store.upload.side_effect = UpstreamError("Failed to upload file")

        response = client.post(
            REQUESTS,
            data={"message": "x"},
            files={"file": ("brief.png", b"\x89PNG", "image/png")},
            headers=auth("client-token"),
        )

        assert response.status_code == 502
        assert response.json()["error"] == "Failed to upload file"
        assert request_store.rows == {}


class TestAssignRequest:
    """Tests for PUT /requests/{id}/assign."""

    def test_assign(self, client, request_store):
        row = request_store.seed(make_request_row())

        response = client.put(
            f"{REQUESTS}/{row['id']}/assign",
            json={"editor_id": str(EDITOR_ID)},
            headers=auth("manager-token"),
        )

        assert response.status_code == 200
        body = response.json()["request"]
        assert body["status"] == "assigned_to_editor"
        assert body["to_user_id"] == str(EDITOR_ID)

    def test_unknown_request(self, client):
        response = client.put(
            f"{REQUESTS}/{uuid4()}/assign",
            json={"editor_id": str(EDITOR_ID)},
            headers=auth("manager-token"),
        )

        assert response.status_code == 404
        assert response.json() == {"error": "Request not found", "error_type": "NotFoundError"}

    def test_wrong_status_is_conflict(self, client, request_store):
        row = request_store.seed(make_request_row(RequestStatus.SUBMITTED_FOR_REVIEW))

        response = client.put(
            f"{REQUESTS}/{row['id']}/assign",
            json={"editor_id": str(EDITOR_ID)},
            headers=auth("manager-token"),
        )

        assert response.status_code == 409
        assert response.json()["error_type"] == "InvalidStateError"

    def test_malformed_request_id(self, client):
        response = client.put(
            f"{REQUESTS}/not-a-uuid/assign",
            json={"editor_id": str(EDITOR_ID)},
            headers=auth("manager-token"),
        )

        assert response.status_code == 422


class TestSubmitRequest:
    """Tests for PUT /requests/{id}/submit."""

    def test_submit_with_url(self, client, request_store):
        row = request_store.seed(make_request_row(RequestStatus.ASSIGNED_TO_EDITOR))

        response = client.put(
            f"{REQUESTS}/{row['id']}/submit",
            data={"message": "done", "completed_work_url": "https://cdn.example.com/v1.png"},
            headers=auth("editor-token"),
        )

        assert response.status_code == 200
        body = response.json()["request"]
        assert body["status"] == "submitted_for_review"
        assert body["completed_work_url"] == "https://cdn.example.com/v1.png"
        assert body["to_user_id"] == str(MANAGER_ID)

    def test_uploaded_file_wins_over_url(self, client, request_store, media_store):
        row = request_store.seed(make_request_row(RequestStatus.MANAGER_REJECTED, manager_feedback="redo"))

        response = client.put(
            f"{REQUESTS}/{row['id']}/submit",
            data={"message": "fixed", "completed_work_url": "https://cdn.example.com/old.png"},
            files={"completed_work": ("v2.mp4", b"\x00\x01", "video/mp4")},
            headers=auth("editor-token"),
        )

        assert response.status_code == 200
        body = response.json()["request"]
        assert body["completed_work_url"] == media_store.upload.return_value
        assert body["manager_feedback"] is None
        assert media_store.upload.await_args.kwargs["prefix"] == "completed-work/"

    def test_other_editor_forbidden_before_upload(self, client, request_store, media_store):
        row = request_store.seed(make_request_row(RequestStatus.ASSIGNED_TO_EDITOR))

        response = client.put(
            f"{REQUESTS}/{row['id']}/submit",
            data={"message": "done"},
            files={"completed_work": ("v1.png", b"\x89PNG", "image/png")},
            headers=auth("other-editor-token"),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Request is not assigned to you"
        media_store.upload.assert_not_awaited()

    def test_missing_message(self, client, request_store):
        row = request_store.seed(make_request_row(RequestStatus.ASSIGNED_TO_EDITOR))

        response = client.put(f"{REQUESTS}/{row['id']}/submit", data={"message": "  "}, headers=auth("editor-token"))

        assert response.status_code == 400
        assert response.json()["error"] == "Message is required"

    @pytest.mark.parametrize("message", ["", "   "], ids=["empty", "whitespace"])
    def test_missing_message_nothing_uploaded(self, client, request_store, media_store, message):
        row = request_store.seed(make_request_row(RequestStatus.ASSIGNED_TO_EDITOR))

        response = client.put(
            f"{REQUESTS}/{row['id']}/submit",
            data={"message": message},
            files={"completed_work": ("v1.png", b"\x89PNG", "image/png")},
            headers=auth("editor-token"),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Message is required"
        assert media_store.upload.await_count == 0
        assert request_store.rows[row["id"]]["status"] == RequestStatus.ASSIGNED_TO_EDITOR.value


class TestReviews:
    """Tests for the manager and client review endpoints."""

    def test_manager_reject_requires_feedback(self, client, request_store):
        row = request_store.seed(make_request_row(RequestStatus.SUBMITTED_FOR_REVIEW))

        response = client.put(f"{REQUESTS}/{row['id']}/review", json={"action": "reject"}, headers=auth("manager-token"))

        assert response.status_code == 400
        assert response.json()["error"] == "Feedback is required when rejecting"
        assert request_store.rows[row["id"]]["status"] == "submitted_for_review"

    def test_manager_approve(self, client, request_store):
        row = request_store.seed(make_request_row(RequestStatus.SUBMITTED_FOR_REVIEW))

        response = client.put(f"{REQUESTS}/{row['id']}/review", json={"action": "approve"}, headers=auth("manager-token"))

        assert response.status_code == 200
        assert response.json()["request"]["to_user_id"] == str(CLIENT_USER_ID)

    @pytest.mark.parametrize("action", [None, "maybe"], ids=["missing", "unknown"])
    def test_invalid_action(self, client, request_store, action):
        row = request_store.seed(make_request_row(RequestStatus.SUBMITTED_FOR_REVIEW))

        response = client.put(f"{REQUESTS}/{row['id']}/review", json={"action": action}, headers=auth("manager-token"))

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid action. Must be approve or reject"

    def test_invalid_action_on_unknown_request_is_not_found(self, client):
        response = client.put(f"{REQUESTS}/{uuid4()}/review", json={"action": "maybe"}, headers=auth("manager-token"))

        assert response.status_code == 404

    def test_client_review_other_scope_forbidden(self, client, request_store):
        row = request_store.seed(make_request_row(RequestStatus.MANAGER_APPROVED))

        response = client.put(
            f"{REQUESTS}/{row['id']}/client-review",
            json={"action": "approve"},
            headers=auth("other-client-token"),
        )

        assert response.status_code == 403

    def test_client_review_approve_is_terminal(self, client, request_store):
        row = request_store.seed(make_request_row(RequestStatus.MANAGER_APPROVED))

        response = client.put(
            f"{REQUESTS}/{row['id']}/client-review",
            json={"action": "approve", "feedback": "love it"},
            headers=auth("client-token"),
        )

        assert response.status_code == 200
        body = response.json()["request"]
        assert body["status"] == "client_approved"
        assert body["to_user_id"] is None
        assert body["client_feedback"] == "love it"


class TestListings:
    """Tests for the listing endpoints."""

    @pytest.fixture
    def seeded(self, request_store):
        rows = [
            make_request_row(),
            make_request_row(RequestStatus.ASSIGNED_TO_EDITOR),
            make_request_row(RequestStatus.SUBMITTED_FOR_REVIEW),
            make_request_row(RequestStatus.MANAGER_REJECTED),
            make_request_row(RequestStatus.ASSIGNED_TO_EDITOR, client_id=OTHER_CLIENT_SCOPE_ID),
            make_request_row(RequestStatus.ASSIGNED_TO_EDITOR, assigned_editor_id=OTHER_EDITOR_ID),
        ]
        for row in rows:
            request_store.seed(row)
        return rows

    def test_all_requests_manager_only(self, client, seeded):
        assert client.get(REQUESTS, headers=auth("client-token")).status_code == 403

        response = client.get(REQUESTS, headers=auth("manager-token"))
        assert response.status_code == 200
        assert len(response.json()["requests"]) == len(seeded)

    @pytest.mark.parametrize(
        "token,expected",
        [("client-token", 5), ("other-client-token", 1), ("editor-token", 4), ("manager-token", 6)],
        ids=["client", "other_client", "editor", "manager"],
    )
    def test_my_requests_scoped_by_role(self, client, seeded, token, expected):
        response = client.get(f"{REQUESTS}/my-requests", headers=auth(token))

        assert response.status_code == 200
        assert len(response.json()["requests"]) == expected

    def test_my_tasks_only_open_statuses(self, client, seeded):
        response = client.get(f"{REQUESTS}/my-tasks", headers=auth("editor-token"))

        assert response.status_code == 200
        statuses = {r["status"] for r in response.json()["requests"]}
        assert statuses == {"assigned_to_editor", "manager_rejected"}

    def test_listing_includes_party_names(self, client, request_store):
        request_store.seed(make_request_row(RequestStatus.ASSIGNED_TO_EDITOR))

        response = client.get(f"{REQUESTS}/my-requests", headers=auth("client-token"))

        listed = response.json()["requests"][0]
        assert listed["from_user"] == {"name": "Client One", "email": "c1@example.com"}
        assert listed["to_user"] == {"name": "Editor One", "email": "e1@example.com"}
        assert listed["client_name"] == "Acme Bakery"

    def test_my_tasks_editor_only(self, client):
        assert client.get(f"{REQUESTS}/my-tasks", headers=auth("manager-token")).status_code == 403

    def test_editors(self, client):
        response = client.get(f"{REQUESTS}/editors", headers=auth("manager-token"))

        assert response.status_code == 200
        assert [e["name"] for e in response.json()["editors"]] == ["Editor One", "Editor Two"]


class TestGetRequest:
    """Tests for GET /requests/{id}."""

    def test_client_sees_own(self, client, request_store):
        row = request_store.seed(make_request_row())

        response = client.get(f"{REQUESTS}/{row['id']}", headers=auth("client-token"))

        assert response.status_code == 200
        assert response.json()["request"]["id"] == str(row["id"])

    def test_includes_party_and_client_names(self, client, request_store):
        row = request_store.seed(make_request_row(RequestStatus.SUBMITTED_FOR_REVIEW))

        body = client.get(f"{REQUESTS}/{row['id']}", headers=auth("manager-token")).json()["request"]

        assert body["from_user"]["name"] == "Client One"
        assert body["to_user"]["name"] == "Manager One"
        assert body["assigned_editor"] == {"name": "Editor One", "email": "e1@example.com"}
        assert body["client_name"] == "Acme Bakery"

    def test_unknown_request(self, client):
        response = client.get(f"{REQUESTS}/{uuid4()}", headers=auth("manager-token"))

        assert response.status_code == 404
        assert response.json()["error"] == "Request not found"

    def test_other_client_forbidden(self, client, request_store):
        row = request_store.seed(make_request_row())

        response = client.get(f"{REQUESTS}/{row['id']}", headers=auth("other-client-token"))

        assert response.status_code == 403

    def test_request_id_header_echoed(self, client, request_store):
        row = request_store.seed(make_request_row())

        response = client.get(f"{REQUESTS}/{row['id']}", headers={**auth("editor-token"), "X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"
