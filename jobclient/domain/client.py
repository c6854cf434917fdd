# /jobclient/domain/client.py
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Any

from jobclient.domain.arguments import materialize
from jobclient.domain.dispatch import DispatchGateway
from jobclient.domain.errors import InvalidArgumentError
from jobclient.domain.filters import ChainOutcome, CommitAction, run_filters
from jobclient.domain.job import JobDescriptor, generate_id
from jobclient.ports.client_filter import ClientFilterPort
from jobclient.ports.job_storage import JobStoragePort

LOG = logging.getLogger("domain.client")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_interval(interval: timedelta | float) -> timedelta:
    if isinstance(interval, timedelta):
        value = interval
    elif isinstance(interval, (int, float)) and not isinstance(interval, bool):
        # NaN raises ValueError; inf and huge values raise OverflowError
        try:
            value = timedelta(seconds=interval)
        except (OverflowError, ValueError) as e:
            raise InvalidArgumentError(f"interval must be a finite number of seconds, got {interval!r}") from e
    else:
        raise InvalidArgumentError(f"interval must be a timedelta or seconds, got {type(interval).__name__}")
    if value < timedelta(0):
        raise InvalidArgumentError("interval value can not be negative")
    return value


def _check_type(job_type: Any) -> None:
    if job_type is None:
        raise InvalidArgumentError("job_type is required")
    if not isinstance(job_type, type):
        raise InvalidArgumentError(f"job_type must be a class, got {job_type!r}")


class JobClient:
    """
    Submits jobs to storage through the configured client filters.

    Thread-safe: filter chains of concurrent submissions may overlap, the
    storage writes never do. Closing the client closes the storage.
    """

    def __init__(
        self,
        storage: JobStoragePort,
        filters: Iterable[ClientFilterPort] = (),
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.gateway = DispatchGateway(storage)
        self.filters = tuple(filters)
        self._clock = clock or _utcnow
        self._closed = False

    # --- submission ---

    def perform_async(self, job_type: type, args: Any = None) -> str:
        """Enqueue a job of ``job_type`` on its queue now; returns the job id."""
        self._ensure_open()
        _check_type(job_type)

        job_id = generate_id()
        job = JobDescriptor.build(job_type, materialize(args))
        commit = self.gateway.enqueue_action(job_type, job_id, job)

        self._submit(job_id, job, commit)
        return job_id

    def perform_in(self, interval: timedelta | float, job_type: type, args: Any = None) -> str:
        """Schedule a job to run after ``interval``; zero means now."""
        self._ensure_open()
        _check_type(job_type)
        delay = _as_interval(interval)

        if not delay:
            return self.perform_async(job_type, args)

        try:
            at = self._clock() + delay
        except OverflowError as e:
            raise InvalidArgumentError(f"interval out of range: {delay!r}") from e

        job_id = generate_id()
        job = JobDescriptor.build(job_type, materialize(args))
        commit = self.gateway.schedule_action(job_id, job, at)

        self._submit(job_id, job, commit)
        return job_id

    def _submit(self, job_id: str, job: JobDescriptor, commit: CommitAction) -> None:
        outcome = run_filters(job_id, job, commit, self.filters)
        data = {"job_id": job_id, "type": job.type}
        if outcome is ChainOutcome.COMMITTED:
            LOG.info("job.submitted", extra={"extra": data})
        elif outcome is ChainOutcome.FAILURE_SWALLOWED:
            LOG.error("job.failure_swallowed", extra={"extra": data})
        else:
            LOG.warning("job.short_circuited", extra={"extra": data})

    # --- lifecycle ---

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("client is closed")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.gateway.storage.close()

    def __enter__(self) -> JobClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
