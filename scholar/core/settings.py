"""Service settings: environment variables, optional YAML file, pydantic validation."""

from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://serpapi.com/search"
DEFAULT_ENGINE = "google_scholar"


class ScholarSettings(BaseSettings):
    """Provider credential, endpoint and storage location.

    Every field can be set through a ``SCHOLAR_``-prefixed environment
    variable (``SCHOLAR_API_KEY``, ``SCHOLAR_DATABASE_PATH`` ...) or a ``.env``
    file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHOLAR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    engine: str = DEFAULT_ENGINE
    timeout_seconds: float = Field(default=10.0, gt=0)
    database_path: Path = Path("data/scholar.db")
    default_locale: str = "en"
    max_page_size: int = Field(default=20, ge=1, le=100)

    @field_validator("base_url")
    @classmethod
    def valid_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {v!r}")
        return v.rstrip("/")

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


# ── Loaders ──────────────────────────────────────────────────────────


def load_settings(path: str | Path | None = None) -> ScholarSettings:
    """Build settings from the environment, overlaid with an optional YAML file.

    Values present in the YAML file win over environment variables.
    """
    if path is None:
        return ScholarSettings()

    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return ScholarSettings(**raw)


@lru_cache()
def get_settings() -> ScholarSettings:
    return load_settings()
