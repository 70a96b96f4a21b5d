from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for creating client logins and server-side writes

    # App
    app_name: str = "coaching-platform-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, applies to every route

    # CSRF
    csrf_token_expiry_seconds: int = 60 * 60
    csrf_cleanup_interval_seconds: int = 5 * 60
    csrf_cookie_name: str = "csrf-session"
    csrf_header_name: str = "x-csrf-token"

    # Auth rate limits (max requests, window in seconds)
    login_max_requests: int = 5
    login_window_seconds: int = 60 * 60
    signup_max_requests: int = 10
    signup_window_seconds: int = 24 * 60 * 60

    # Realtime subscriptions
    realtime_max_retries: int = 5
    realtime_base_delay_seconds: float = 1.0
    realtime_max_delay_seconds: float = 30.0

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",
        extra="ignore"
    )


settings = Settings()
