# /jobclient/adapters/filters/logging_filter.py
from __future__ import annotations

import logging
import time

from jobclient.domain.filters import ClientFilterContext

LOG = logging.getLogger("adapter.filters.logging")


class LoggingClientFilter:
    """Logs each submission around the rest of the chain, with timing."""

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    def client_filter(self, context: ClientFilterContext) -> None:
        data = {"job_id": context.job_id, "type": context.job.type}
        LOG.log(self.level, "job.creating", extra={"extra": data})
        started = time.perf_counter()
        try:
            context.proceed()
        except Exception:
            LOG.warning("job.create_failed", extra={"extra": data})
            raise
        elapsed_ms = round((time.perf_counter() - started) * 1000, 3)
        LOG.log(self.level, "job.created", extra={"extra": {**data, "elapsed_ms": elapsed_ms}})
