# /jobclient/registry.py
"""
Process-wide default client.

Nothing is created at import time. Call ``init_default_client()`` once at
startup (optionally with a ready client) and ``shutdown_default_client()``
at teardown; the module-level ``perform_async``/``perform_in`` helpers
delegate to whatever is installed in between.
"""
from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Any

from jobclient.adapters.system.filter_loader import load_filters
from jobclient.adapters.system.logging_cfg import configure_logger
from jobclient.config import Settings, settings
from jobclient.domain.client import JobClient
from jobclient.ports.job_storage import JobStoragePort

LOG = logging.getLogger("registry")

_lock = threading.Lock()
_default: JobClient | None = None


def create_storage(cfg: Settings) -> JobStoragePort:
    if cfg.STORAGE_BACKEND == "celery":
        from jobclient.adapters.system.celery_job_storage import CeleryJobStorage, make_celery_app

        return CeleryJobStorage(make_celery_app(cfg.REDIS_URL, cfg.CELERY_APP_NAME))

    from jobclient.adapters.system.redis_job_storage import RedisJobStorage

    return RedisJobStorage(cfg.REDIS_URL, prefix=cfg.REDIS_PREFIX)


def create_client(cfg: Settings = settings) -> JobClient:
    """Build a client from settings; filters are resolved once, here."""
    return JobClient(create_storage(cfg), load_filters(cfg.CLIENT_FILTERS))


def init_default_client(client: JobClient | None = None) -> JobClient:
    global _default
    with _lock:
        if _default is not None:
            raise RuntimeError("default job client already initialised")
        if client is None:
            configure_logger(settings.LOG_LEVEL)
            client = create_client(settings)
        _default = client
    LOG.info("default client installed", extra={"extra": {"filters": len(client.filters)}})
    return client


def get_default_client() -> JobClient:
    client = _default
    if client is None:
        raise RuntimeError("default job client not initialised; call init_default_client()")
    return client


def shutdown_default_client() -> None:
    global _default
    with _lock:
        client, _default = _default, None
    if client is not None:
        client.close()
        LOG.info("default client closed")


def perform_async(job_type: type, args: Any = None) -> str:
    return get_default_client().perform_async(job_type, args)


def perform_in(interval: timedelta | float, job_type: type, args: Any = None) -> str:
    return get_default_client().perform_in(interval, job_type, args)
