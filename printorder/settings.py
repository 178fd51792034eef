# printorder/settings.py
from __future__ import annotations
from typing import List, Optional
from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict
import json

_DEFAULT_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _parse_cors(v: Optional[str | List[str]]) -> List[str]:
    """
    Accept JSON array (e.g. '["http://localhost:3000"]') or
    comma-separated string ('http://localhost:3000,http://127.0.0.1:3000').
    """
    if v is None:
        return list(_DEFAULT_ORIGINS)
    if isinstance(v, list):
        return v
    s = v.strip()
    if not s:
        return list(_DEFAULT_ORIGINS)
    # try JSON first
    try:
        parsed = json.loads(s)
    except ValueError:
        parsed = None
    if isinstance(parsed, list) and all(isinstance(x, str) for x in parsed):
        return parsed
    # fallback: comma separated
    return [p.strip() for p in s.split(",") if p.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",   # ignore unknown env keys instead of raising
    )

    # --- API ---
    api_host: str = Field(default="127.0.0.1", validation_alias=AliasChoices("API_HOST",))
    api_port: int = Field(default=8000,        validation_alias=AliasChoices("API_PORT",))
    cors_origins_raw: Optional[str | List[str]] = Field(
        default=None, validation_alias=AliasChoices("CORS_ORIGINS",)
    )

    # --- Postgres ---
    database_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("DATABASE_URL",)
    )

    # --- Auth (bearer JWT issued by the account service) ---
    jwt_secret: str = Field(
        default="change-me", validation_alias=AliasChoices("JWT_SECRET",)
    )
    jwt_algorithm: str = Field(
        default="HS256", validation_alias=AliasChoices("JWT_ALGORITHM",)
    )
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7, validation_alias=AliasChoices("ACCESS_TOKEN_EXPIRE_MINUTES",)
    )

    # --- Object storage (S3 compatible, e.g. Cloudflare R2) ---
    storage_endpoint_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("STORAGE_ENDPOINT_URL", "CLOUDFLARE_R2_ENDPOINT"),
    )
    storage_access_key_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("STORAGE_ACCESS_KEY_ID", "CLOUDFLARE_R2_ACCESS_KEY_ID"),
    )
    storage_secret_access_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("STORAGE_SECRET_ACCESS_KEY", "CLOUDFLARE_R2_SECRET_ACCESS_KEY"),
    )
    storage_bucket: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("STORAGE_BUCKET", "CLOUDFLARE_R2_BUCKET_NAME"),
    )
    storage_public_url: str = Field(
        default="",
        validation_alias=AliasChoices("STORAGE_PUBLIC_URL", "CLOUDFLARE_R2_PUBLIC_URL"),
    )
    storage_key_prefix: str = Field(
        default="orders/", validation_alias=AliasChoices("STORAGE_KEY_PREFIX",)
    )

    # --- Upstream calls (storage uploads, bundle fetches) ---
    upstream_timeout_seconds: float = Field(
        default=30.0, validation_alias=AliasChoices("UPSTREAM_TIMEOUT_SECONDS",)
    )

    # --- Orders ---
    # calendar-day filters on the listing are evaluated in this zone
    orders_timezone: str = Field(
        default="UTC", validation_alias=AliasChoices("ORDERS_TIMEZONE",)
    )
    max_item_file_bytes: int = Field(
        default=50 * 1024 * 1024, validation_alias=AliasChoices("MAX_ITEM_FILE_BYTES",)
    )
    max_receipt_file_bytes: int = Field(
        default=10 * 1024 * 1024, validation_alias=AliasChoices("MAX_RECEIPT_FILE_BYTES",)
    )

    @property
    def cors_origins(self) -> List[str]:
        return _parse_cors(self.cors_origins_raw)


# singleton
settings = Settings()
