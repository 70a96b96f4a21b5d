"""
Seed Demo Users Script
Creates the demo coach and demo client (auth users + users profiles) and links
the client to the coach. Safe to run repeatedly.

    python -m app.scripts.seed_users

The password comes from SEED_PASSWORD (default Demo1234).
"""

import sys
import os
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.database.supabase_client import get_supabase
from supabase import Client
from typing import Optional
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_USERS = [
    {"email": "coach@example.com", "name": "Demo Coach", "role": "coach"},
    {"email": "client@example.com", "name": "Demo Client", "role": "client"},
]

LIST_USERS_PAGE_SIZE = 100


def find_auth_user_id(supabase: Client, email: str) -> Optional[str]:
    """Look up an existing auth user by email, paging through the admin API"""
    page = 1
    while True:
        users = supabase.auth.admin.list_users(page=page, per_page=LIST_USERS_PAGE_SIZE)
        for user in users:
            if (user.email or "").lower() == email:
                return user.id
        if len(users) < LIST_USERS_PAGE_SIZE:
            return None
        page += 1


def ensure_auth_user(supabase: Client, email: str, password: str) -> str:
    existing_id = find_auth_user_id(supabase, email)
    if existing_id:
        logger.debug(f"Auth user exists: {email}")
        return existing_id
    response = supabase.auth.admin.create_user({
        "email": email,
        "password": password,
        "email_confirm": True,
    })
    logger.info(f"Created auth user: {email}")
    return response.user.id


def ensure_profile(supabase: Client, auth_user_id: str, user: dict) -> dict:
    existing = supabase.table("users")\
        .select("*")\
        .eq("email", user["email"])\
        .limit(1)\
        .execute()

    if existing.data:
        profile = existing.data[0]
        if profile.get("auth_user_id") != auth_user_id:
            supabase.table("users")\
                .update({"auth_user_id": auth_user_id})\
                .eq("id", profile["id"])\
                .execute()
            logger.info(f"Linked profile {profile['id']} to auth user")
        return profile

    result = supabase.table("users").insert({
        "auth_user_id": auth_user_id,
        "email": user["email"],
        "client_identifier": None,
        "name": user["name"],
        "role": user["role"],
        "has_auth_access": True,
    }).execute()
    logger.info(f"Created profile: {user['email']} ({user['role']})")
    return result.data[0]


def ensure_client_link(supabase: Client, coach: dict, client: dict) -> None:
    existing = supabase.table("clients")\
        .select("id")\
        .eq("coach_id", coach["id"])\
        .eq("user_id", client["id"])\
        .limit(1)\
        .execute()
    if existing.data:
        return
    supabase.table("clients").insert({
        "coach_id": coach["id"],
        "user_id": client["id"],
        "name": client["name"],
    }).execute()
    logger.info(f"Linked {client['email']} to coach {coach['email']}")


def seed_users(supabase: Client, password: str) -> dict:
    """Create missing demo users; returns profiles keyed by role"""
    profiles = {}
    for user in DEMO_USERS:
        try:
            auth_user_id = ensure_auth_user(supabase, user["email"], password)
            profiles[user["role"]] = ensure_profile(supabase, auth_user_id, user)
        except Exception as e:
            logger.error(f"Error seeding {user['email']}: {e}")
    if "coach" in profiles and "client" in profiles:
        ensure_client_link(supabase, profiles["coach"], profiles["client"])
    return profiles


def main():
    """Main function to seed the demo users"""
    try:
        supabase = get_supabase()
        password = os.getenv("SEED_PASSWORD", "Demo1234")

        logger.info("Starting demo user seeding...")
        profiles = seed_users(supabase, password)

        logger.info(f"Seeding completed: {len(profiles)} of {len(DEMO_USERS)} users ready")
        for user in DEMO_USERS:
            logger.info(f"  {user['role']}: {user['email']}")

    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
