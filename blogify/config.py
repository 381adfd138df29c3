"""Application configuration via environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App
    debug: bool = False
    environment: str = "development"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:12000",
    ]

    # Persistence: "memory" (process-local) or "blob" (Azure Blob Storage)
    storage_backend: str = "memory"

    # Azure Blob Storage
    azure_storage_account: str = "blogifystorage"
    azure_storage_container: str = "blogify"

    # Azure User-Assigned Managed Identity
    managed_identity_client_id: str = ""

    # Bearer tokens
    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expires_days: int = 7
    password_hash_rounds: int = 12

    # Draft/publish store: simulated write latency in seconds
    store_write_delay: float = 0.0

    # Editor autosave timings (seconds)
    editor_title_debounce: float = 1.0
    editor_content_debounce: float = 2.0
    editor_autosave_interval: float = 30.0

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
