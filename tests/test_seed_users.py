# =============================================================================
# tests/test_seed_users.py - Demo User Seeding Tests
# =============================================================================

from app.scripts.seed_users import seed_users, DEMO_USERS


class TestSeedUsers:
    """Test the demo user seed script against the in-memory database."""

    def test_creates_users_profiles_and_link(self, db):
        profiles = seed_users(db, "Demo1234")
        assert set(profiles) == {"coach", "client"}
        assert set(db.auth.users) == {u["email"] for u in DEMO_USERS}
        assert len(db.rows("users")) == 2
        link = db.rows("clients")[0]
        assert link["coach_id"] == profiles["coach"]["id"]
        assert link["user_id"] == profiles["client"]["id"]

    def test_is_idempotent(self, db):
        seed_users(db, "Demo1234")
        seed_users(db, "Demo1234")
        assert len(db.auth.users) == 2
        assert len(db.rows("users")) == 2
        assert len(db.rows("clients")) == 1

    def test_relinks_profile_to_auth_user(self, db):
        db.seed("users", auth_user_id="stale", email="coach@example.com", name="Demo Coach", role="coach")
        seed_users(db, "Demo1234")
        coach = [u for u in db.rows("users") if u["email"] == "coach@example.com"][0]
        assert coach["auth_user_id"] == db.auth.users["coach@example.com"].id

    def test_demo_password_can_log_in(self, db):
        seed_users(db, "Demo1234")
        session = db.auth.sign_in_with_password({"email": "client@example.com", "password": "Demo1234"})
        assert session.user.email == "client@example.com"

    def test_finds_existing_user_past_first_page(self, db):
        for n in range(250):
            db.auth.register(f"member{n}@example.com", "Secret123")
        existing = db.auth.register("coach@example.com", "Secret123")

        profiles = seed_users(db, "Demo1234")
        assert profiles["coach"]["auth_user_id"] == existing.id
        assert len(db.auth.users) == 252
