from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""  # anon/public key, safe to ship to the frontend
    supabase_service_role_key: Optional[str] = None  # Server-side only; bypasses RLS

    # Onboarding
    default_tier_code: str = "intern"
    onboarding_max_attempts: int = 5
    onboarding_backoff_base: float = 0.1  # seconds
    onboarding_backoff_max: float = 2.0  # seconds
    username_suffix_attempts: int = 20
    username_random_attempts: int = 5
    onboarding_webhook_secret: Optional[str] = None

    # Reconciliation
    reconcile_interval_seconds: int = 0  # 0 disables the background sweep
    reconcile_page_size: int = 200

    # Wallet
    wallet_update_attempts: int = 5  # compare-and-set retries on concurrent balance writes

    # Referrals
    frontend_url: str = "http://localhost:3000"  # base of the shareable signup link

    # App
    app_name: str = "rewards-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
