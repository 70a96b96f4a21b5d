# =============================================================================
# tests/test_analytics.py - Page View Analytics Tests
# =============================================================================
# This module contains tests for:
# - Tracking page views, logged in or anonymous
# - Recording time on page from the same session
# - The coach-only usage summary
# =============================================================================

ANALYTICS = "/api/v1/analytics"


def track(app_client, path="/dashboard", session_id="sess-1", headers=None, **extra):
    payload = {"page_path": path, "session_id": session_id}
    payload.update(extra)
    return app_client.post(f"{ANALYTICS}/page-views", json=payload, headers=headers or {})


class TestTrackPageView:
    """Test POST /analytics/page-views."""

    def test_anonymous(self, app_client, db):
        response = track(app_client, user_agent="pytest", page_load_time=120)
        assert response.status_code == 201
        assert response.json()["user_role"] == "anonymous"
        row = db.rows("analytics_events")[0]
        assert row["user_id"] is None
        assert row["event_type"] == "page_view"
        assert "ip" not in row and "ip_address" not in row

    def test_logged_in(self, app_client, db, coach):
        response = track(app_client, headers=coach["headers"])
        assert response.json()["user_role"] == "coach"
        assert db.rows("analytics_events")[0]["user_id"] == coach["profile"]["id"]

    def test_invalid_token_counts_as_anonymous(self, app_client):
        response = track(app_client, headers={"Authorization": "Bearer expired"})
        assert response.status_code == 201
        assert response.json()["user_role"] == "anonymous"

    def test_path_must_be_absolute(self, app_client):
        assert track(app_client, path="dashboard").status_code == 422

    def test_negative_load_time(self, app_client):
        assert track(app_client, page_load_time=-1).status_code == 422


class TestTimeOnPage:
    """Test PATCH /analytics/page-views/{id}."""

    def test_same_session_updates(self, app_client):
        view = track(app_client).json()
        response = app_client.patch(
            f"{ANALYTICS}/page-views/{view['id']}", json={"session_id": "sess-1", "time_on_page": 42}
        )
        assert response.status_code == 200
        assert response.json()["time_on_page"] == 42

    def test_other_session_not_found(self, app_client, db):
        view = track(app_client).json()
        response = app_client.patch(
            f"{ANALYTICS}/page-views/{view['id']}", json={"session_id": "sess-2", "time_on_page": 42}
        )
        assert response.status_code == 404
        assert db.rows("analytics_events")[0].get("time_on_page") is None


class TestSummary:
    """Test GET /analytics/summary."""

    def test_totals_and_top_pages(self, app_client, coach, client_user):
        first = track(app_client, "/dashboard", "a", page_load_time=100).json()
        track(app_client, "/dashboard", "b", headers=coach["headers"], page_load_time=300)
        track(app_client, "/tasks", "b", headers=client_user["headers"])
        app_client.patch(f"{ANALYTICS}/page-views/{first['id']}", json={"session_id": "a", "time_on_page": 30})

        response = app_client.get(f"{ANALYTICS}/summary", headers=coach["headers"])
        assert response.status_code == 200
        body = response.json()
        assert body["total_views"] == 3
        assert body["unique_sessions"] == 2
        assert body["views_by_role"] == {"anonymous": 1, "coach": 1, "client": 1}
        assert body["avg_time_on_page"] == 30.0
        assert body["avg_page_load_time"] == 200.0
        assert [p["page_path"] for p in body["top_pages"]] == ["/dashboard", "/tasks"]
        assert body["top_pages"][0]["views"] == 2

    def test_top_limit(self, app_client, coach):
        for path in ("/a", "/b", "/c"):
            track(app_client, path)
        body = app_client.get(f"{ANALYTICS}/summary?top=2", headers=coach["headers"]).json()
        assert len(body["top_pages"]) == 2

    def test_days_window(self, app_client, coach):
        # stored timestamps are from 2025-01-01
        track(app_client)
        body = app_client.get(f"{ANALYTICS}/summary?days=30", headers=coach["headers"]).json()
        assert body["total_views"] == 0
        assert body["avg_time_on_page"] is None

    def test_coach_only(self, app_client, client_user):
        assert app_client.get(f"{ANALYTICS}/summary", headers=client_user["headers"]).status_code == 403

    def test_days_out_of_range(self, app_client, coach):
        assert app_client.get(f"{ANALYTICS}/summary?days=0", headers=coach["headers"]).status_code == 422
