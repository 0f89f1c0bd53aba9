"""Application configuration via environment variables."""

from __future__ import annotations

import logging

from pydantic_settings import BaseSettings

log = logging.getLogger("studio.config")


class Settings(BaseSettings):
    # Studio
    studio_name: str = "Moon Production"
    site_url: str = "http://localhost:8080"
    currency_symbol: str = "₹"

    # Supabase (hosted auth + database)
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_timeout: float = 10.0

    # Booking funnel
    submit_debounce_seconds: float = 1.5
    sign_up_max_retries: int = 2
    sign_up_initial_delay: float = 0.5
    sign_up_backoff_seconds: float = 1.0
    admin_role: str = "admin"

    # Server
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def redirect_url(self) -> str:
        """Where the provider sends users back to after email or OAuth flows."""
        return self.site_url.rstrip("/") + "/"

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []
        _placeholders = {"https://your-project.supabase.co", "your-anon-key"}

        if not self.supabase_url or self.supabase_url in _placeholders:
            raise ValueError(
                "SUPABASE_URL is missing or still a placeholder. "
                "Set it in .env to reach the auth and database service."
            )
        if not self.supabase_anon_key or self.supabase_anon_key in _placeholders:
            raise ValueError(
                "SUPABASE_ANON_KEY is missing or still a placeholder. "
                "Set it in .env to reach the auth and database service."
            )

        if not self.supabase_url.startswith("https://"):
            warnings.append("SUPABASE_URL is not https. Only use this for local development.")

        if self.submit_debounce_seconds <= 0:
            warnings.append("SUBMIT_DEBOUNCE_SECONDS <= 0 disables duplicate-submit protection.")

        if self.debug:
            warnings.append("DEBUG=true. Do not run this configuration in production.")

        return warnings


settings = Settings()
