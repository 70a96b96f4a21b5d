from typing import Optional
from supabase import create_client, acreate_client, Client, AsyncClient, ClientOptions
from app.config import settings


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None
    _async_client: Optional[AsyncClient] = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def create_auth_client(cls) -> Client:
        """Fresh anon-key client that keeps no session between calls."""
        return create_client(
            settings.supabase_url,
            settings.supabase_key,
            options=ClientOptions(persist_session=False, auto_refresh_token=False),
        )

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS. Access rules are enforced in app.core.dependencies."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client or cls.get_client()

    @classmethod
    async def get_async_client(cls) -> AsyncClient:
        """Async client used for realtime channel subscriptions."""
        if cls._async_client is None:
            key = settings.supabase_service_role_key or settings.supabase_key
            cls._async_client = await acreate_client(settings.supabase_url, key)
        return cls._async_client

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None
        cls._async_client = None


def get_supabase() -> Client:
    return SupabaseClient.get_service_client()


def get_auth_supabase() -> Client:
    """Anon-key client for Supabase Auth calls (sign in, sign up, token lookup).

    Signing in stores the session on the client, so each request gets its own.
    """
    return SupabaseClient.create_auth_client()


async def get_async_supabase() -> AsyncClient:
    """Async client for realtime subscriptions (WebSocket routes)."""
    return await SupabaseClient.get_async_client()
