from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict


# Load .env early for local development
load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True)

    # Supabase (data, storage, auth)
    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_anon_key: str = os.getenv("SUPABASE_ANON_KEY", "")
    supabase_jwt_secret: str = os.getenv("SUPABASE_JWT_SECRET", "")
    supabase_jwt_audience: str = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")

    # Media
    signed_url_ttl_seconds: int = int(os.getenv("SIGNED_URL_TTL_SECONDS", "3600"))
    storage_public_marker: str = os.getenv("STORAGE_PUBLIC_MARKER", "/storage/v1/object/public/")

    # Engagement cache
    enrichment_concurrency: int = int(os.getenv("ENRICHMENT_CONCURRENCY", "8"))

    # Routing (OSRM compatible)
    routing_url: str = os.getenv("ROUTING_URL", "https://router.project-osrm.org/route/v1/driving")
    route_timeout_seconds: float = float(os.getenv("ROUTE_TIMEOUT_SECONDS", "10"))

    # Used when the client cannot share its position
    default_lat: float = float(os.getenv("DEFAULT_LAT", "9.9281"))
    default_lng: float = float(os.getenv("DEFAULT_LNG", "-84.0907"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: str = os.getenv("LOG_DIR", "./logs")


settings = Settings()
