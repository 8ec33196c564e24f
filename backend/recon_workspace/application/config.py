"""
Reconciliation Workspace Application Configuration
Centralized settings using pydantic-settings.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

DocumentStoreBackend = Literal[
    "mongo",   # Motor against MONGO_URL (default)
    "memory",  # Process-local lists, dev/test only
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_name: str = "Procurement Reconciliation Workspace"
    app_version: str = "1.0.0"
    allowed_origins: list[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"]
    )

    # FastAPI
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # JWT (tokens are issued by the identity service; we only verify)
    secret_key: str = "change-me-in-production-must-be-32-chars-minimum"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60

    # Document store
    document_store_backend: DocumentStoreBackend = "mongo"
    mongo_url: str = "mongodb://localhost:27017/procurement"
    mongo_db: str = "procurement"
    po_collection: str = "purchaseorders"
    invoice_collection: str = "invoices"
    grn_collection: str = "grns"

    # ─── Workspace ───────────────────────────────────────────────────────────
    # Lifecycle status an Invoice/GRN must carry to take part in reconciliation
    approved_status: str = "approved"
    workspace_default_page: int = 1
    workspace_default_limit: int = 100
    # Upper bound on page size; larger requests are clamped
    workspace_max_limit: int = 1000
    # Max documents enriched concurrently per request (bounds store fan-out)
    enrichment_concurrency: int = 16

    @computed_field
    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
