# /jobclient/ports/job_storage.py
from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Protocol


class JobStoragePort(Protocol):
    def enqueue_job(self, queue: str, job_id: str, job: Mapping[str, str | None]) -> None:
        """Persist the job and push its id onto the named queue."""

    def schedule_job(self, job_id: str, job: Mapping[str, str | None], at: datetime) -> None:
        """Persist the job for delivery at the given UTC instant."""

    def close(self) -> None:
        """Release the underlying connection."""
