from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[3]

DEFAULT_HOME_DIR = Path.home() / ".campus-eats"
DEFAULT_DB_PATH = DEFAULT_HOME_DIR / "store.db"
MIN_JWT_SECRET_BYTES = 32


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CAMPUS_EATS_",
        env_file=(BASE_DIR / ".env", BASE_DIR / ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = f"sqlite+aiosqlite:///{DEFAULT_DB_PATH}"
    jwt_secret: str
    jwt_expiration_seconds: int = Field(default=24 * 60 * 60, gt=0)
    staff_registration_key: str
    app_name: str = "Campus Delivery"
    password_reset_ttl_seconds: int = Field(default=15 * 60, gt=0)
    password_min_length: int = Field(default=6, ge=1)
    staff_password_min_length: int = Field(default=8, ge=1)

    @field_validator("database_url")
    @classmethod
    def _expand_database_url(cls, value: str) -> str:
        for prefix in ("sqlite+aiosqlite:///", "sqlite:///"):
            if value.startswith(prefix):
                path = value[len(prefix) :]
                if path.startswith("~"):
                    return f"{prefix}{Path(path).expanduser()}"
        return value

    @field_validator("jwt_secret")
    @classmethod
    def _validate_jwt_secret(cls, value: str) -> str:
        if len(value.encode("utf-8")) < MIN_JWT_SECRET_BYTES:
            raise ValueError(f"jwt_secret must be at least {MIN_JWT_SECRET_BYTES} bytes")
        return value

    @field_validator("staff_registration_key")
    @classmethod
    def _validate_staff_registration_key(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("staff_registration_key must not be blank")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
