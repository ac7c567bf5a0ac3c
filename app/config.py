"""AdWizard — Central Configuration via Pydantic Settings."""

import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Facebook Graph API ──
    facebook_app_id: str = ""
    facebook_app_secret: str = ""
    facebook_redirect_uri: str = ""
    facebook_api_version: str = "v18.0"
    facebook_graph_url: str = "https://graph.facebook.com"
    facebook_dialog_url: str = "https://www.facebook.com"
    facebook_oauth_scopes: str = "ads_management,ads_read,business_management"
    oauth_state_ttl_seconds: int = 600

    # ── Remote calls ──
    http_timeout_seconds: float = 30.0
    graph_max_retries: int = 3
    graph_retry_base_delay: float = 2.0  # seconds
    image_probe_timeout_seconds: float = 10.0

    # ── Creatives ──
    storage_public_url: Optional[str] = None  # e.g. https://<project>.supabase.co
    storage_path_marker: str = "/storage/"
    default_landing_url: str = "https://example.com"

    # ── Database ──
    database_url: str = ""

    # ── App ──
    log_level: str = "INFO"

    @property
    def graph_base(self) -> str:
        return f"{self.facebook_graph_url}/{self.facebook_api_version}"

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/adwizard.db"
        return "sqlite:///./adwizard.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
