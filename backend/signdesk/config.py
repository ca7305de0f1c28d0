from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database (document records)
    database_url: str = "sqlite:///signdesk.db"

    # Storage for signed PDFs
    storage_backend: str = "local"  # "local" or "supabase"
    storage_root: str = "storage"
    public_base_url: str = "http://localhost:5000"

    # Supabase Storage (used when storage_backend == "supabase")
    supabase_url: Optional[str] = None  # e.g., https://xyzcompany.supabase.co
    supabase_service_key: Optional[str] = None
    supabase_bucket: str = "documents"

    # Fonts
    font_dir: str = "fonts"
    font_base_url: Optional[str] = None  # Fetch font files over HTTP instead of font_dir

    # Stamp placement
    # Vertical correction (native units) added to every stamp's baseline.
    stamp_y_offset: float = 0.0
    # Overlay size assumed when the client never reported one for a page
    default_overlay_width: float = 500
    default_overlay_height: float = 600

    # Outbound HTTP (source fetch, font fetch, storage upload)
    http_timeout_seconds: float = 60.0

    # CORS
    frontend_url: str = "http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("storage_backend", mode="before")
    @classmethod
    def normalize_storage_backend(cls, value):
        if isinstance(value, str):
            value = value.strip().lower() or "local"
        if value not in ("local", "supabase"):
            raise ValueError(f"Unsupported storage backend: {value}")
        return value

    @field_validator("default_overlay_width", "default_overlay_height")
    @classmethod
    def positive_overlay_size(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Default overlay dimensions must be positive")
        return value


settings = Settings()
