# =============================================================================
# tests/test_tasks.py - Task Assignment Tests
# =============================================================================
# This module contains tests for:
# - Coaches creating and assigning tasks
# - Clients listing and completing their tasks
# - Access rules and task deletion
# =============================================================================

from tests.conftest import make_user

API = "/api/v1"


def create_task(app_client, coach, client_id, title="Morning walk", description=None):
    payload = {"title": title}
    if description is not None:
        payload["description"] = description
    return app_client.post(f"{API}/clients/{client_id}/tasks", json=payload, headers=coach["headers"])


# =============================================================================
# Create
# =============================================================================

class TestCreateTask:
    """Test POST /clients/{id}/tasks."""

    def test_creates_pending_assignment(self, app_client, db, coach, client_user):
        response = create_task(app_client, coach, client_user["client"]["id"], "  Morning walk  ", "30 min")
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["completed_at"] is None
        assert body["client_id"] == client_user["client"]["id"]
        assert body["task"]["title"] == "Morning walk"
        assert body["task"]["coach_id"] == coach["profile"]["id"]
        assert len(db.rows("tasks")) == 1

    def test_blank_description_becomes_none(self, app_client, coach, client_user):
        response = create_task(app_client, coach, client_user["client"]["id"], description="   ")
        assert response.json()["task"]["description"] is None

    def test_title_required(self, app_client, coach, client_user):
        assert create_task(app_client, coach, client_user["client"]["id"], title="  ").status_code == 422

    def test_title_too_long(self, app_client, coach, client_user):
        assert create_task(app_client, coach, client_user["client"]["id"], title="x" * 501).status_code == 422

    def test_other_coach_forbidden(self, app_client, other_coach, client_user):
        assert create_task(app_client, other_coach, client_user["client"]["id"]).status_code == 403

    def test_client_cannot_create(self, app_client, client_user):
        assert create_task(app_client, client_user, client_user["client"]["id"]).status_code == 403

    def test_assignment_failure_removes_task(self, app_client, db, coach, client_user):
        db.fail("client_tasks", "insert")
        response = create_task(app_client, coach, client_user["client"]["id"])
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to assign task"
        assert db.rows("tasks") == []


# =============================================================================
# Read and update
# =============================================================================

class TestClientTasks:
    """Test listing and status changes."""

    def test_list_newest_first(self, app_client, coach, client_user):
        client_id = client_user["client"]["id"]
        create_task(app_client, coach, client_id, "First")
        create_task(app_client, coach, client_id, "Second")
        response = app_client.get(f"{API}/clients/{client_id}/tasks", headers=coach["headers"])
        assert response.status_code == 200
        assert [t["task"]["title"] for t in response.json()] == ["Second", "First"]

    def test_client_lists_own_tasks(self, app_client, coach, client_user):
        create_task(app_client, coach, client_user["client"]["id"], "Stretch")
        response = app_client.get(f"{API}/tasks/me", headers=client_user["headers"])
        assert response.status_code == 200
        assert [t["task"]["title"] for t in response.json()] == ["Stretch"]

    def test_other_coach_cannot_list(self, app_client, coach, other_coach, client_user):
        client_id = client_user["client"]["id"]
        response = app_client.get(f"{API}/clients/{client_id}/tasks", headers=other_coach["headers"])
        assert response.status_code == 403

    def test_client_completes_and_reopens(self, app_client, coach, client_user):
        assignment = create_task(app_client, coach, client_user["client"]["id"]).json()
        url = f"{API}/client-tasks/{assignment['id']}"

        done = app_client.patch(url, json={"status": "completed"}, headers=client_user["headers"])
        assert done.status_code == 200
        assert done.json()["status"] == "completed"
        assert done.json()["completed_at"] is not None
        assert done.json()["task"]["title"] == "Morning walk"

        reopened = app_client.patch(url, json={"status": "pending"}, headers=coach["headers"])
        assert reopened.json()["status"] == "pending"
        assert reopened.json()["completed_at"] is None

    def test_invalid_status(self, app_client, coach, client_user):
        assignment = create_task(app_client, coach, client_user["client"]["id"]).json()
        response = app_client.patch(
            f"{API}/client-tasks/{assignment['id']}", json={"status": "archived"}, headers=client_user["headers"]
        )
        assert response.status_code == 422

    def test_other_client_forbidden(self, app_client, db, coach, client_user):
        stranger = make_user(db, "client", "Stranger Danger", "stranger@example.com")
        assignment = create_task(app_client, coach, client_user["client"]["id"]).json()
        response = app_client.patch(
            f"{API}/client-tasks/{assignment['id']}", json={"status": "completed"}, headers=stranger["headers"]
        )
        assert response.status_code == 403

    def test_unknown_assignment(self, app_client, client_user):
        response = app_client.patch(
            f"{API}/client-tasks/missing", json={"status": "completed"}, headers=client_user["headers"]
        )
        assert response.status_code == 404


# =============================================================================
# Delete
# =============================================================================

class TestDeleteTask:
    """Test DELETE /tasks/{id}."""

    def test_removes_task_and_assignments(self, app_client, db, coach, client_user):
        assignment = create_task(app_client, coach, client_user["client"]["id"]).json()
        response = app_client.delete(f"{API}/tasks/{assignment['task_id']}", headers=coach["headers"])
        assert response.status_code == 204
        assert db.rows("tasks") == []
        assert db.rows("client_tasks") == []

    def test_only_owner_can_delete(self, app_client, db, coach, other_coach, client_user):
        assignment = create_task(app_client, coach, client_user["client"]["id"]).json()
        response = app_client.delete(f"{API}/tasks/{assignment['task_id']}", headers=other_coach["headers"])
        assert response.status_code == 403
        assert response.json()["detail"] == "You can only delete your own tasks"
        assert len(db.rows("tasks")) == 1

    def test_unknown_task(self, app_client, coach):
        assert app_client.delete(f"{API}/tasks/missing", headers=coach["headers"]).status_code == 404
