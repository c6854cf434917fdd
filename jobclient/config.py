# /jobclient/config.py
from __future__ import annotations

import os

from pydantic import BaseModel, field_validator


def _csv(value: str | list[str] | None) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [v.strip() for v in value if v and v.strip()]


class Settings(BaseModel):
    # Storage
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "redis")  # redis | celery
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_PREFIX: str = os.getenv("REDIS_PREFIX", "jobclient")
    CELERY_APP_NAME: str = os.getenv("CELERY_APP_NAME", "jobclient")

    # Client filters, outermost first: "pkg.mod.FilterClass,pkg.mod:factory"
    CLIENT_FILTERS: list[str] = _csv(os.getenv("CLIENT_FILTERS"))

    # HTTP submission API
    API_KEY: str | None = os.getenv("API_KEY")
    API_JOB_TYPES: list[str] = _csv(os.getenv("API_JOB_TYPES"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @field_validator("CLIENT_FILTERS", "API_JOB_TYPES", mode="before")
    @classmethod
    def _split_csv(cls, value: str | list[str] | None) -> list[str]:
        return _csv(value)

    @field_validator("STORAGE_BACKEND")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        value = value.lower()
        if value not in {"redis", "celery"}:
            raise ValueError(f"unknown STORAGE_BACKEND: {value}")
        return value


settings = Settings()
