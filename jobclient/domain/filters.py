# /jobclient/domain/filters.py
from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from jobclient.domain.errors import FilterChainError
from jobclient.domain.job import JobDescriptor
from jobclient.ports.client_filter import ClientFilterPort

LOG = logging.getLogger("domain.filters")

CommitAction = Callable[[], None]


class ChainOutcome(enum.Enum):
    COMMITTED = "committed"
    # no filter let the chain reach commit
    SHORT_CIRCUITED = "short_circuited"
    # commit or an inner filter raised and an outer filter swallowed the error
    FAILURE_SWALLOWED = "failure_swallowed"


class _Continuation:
    """
    Wrapper around the next step of the chain. It may be called again after
    a failed attempt (retry), never after a successful one or while running.
    """

    __slots__ = ("_action", "_done", "_running")

    def __init__(self, action: CommitAction) -> None:
        self._action = action
        self._done = False
        self._running = False

    def __call__(self) -> None:
        if self._done:
            raise FilterChainError("filter continuation invoked again after it succeeded")
        if self._running:
            raise FilterChainError("filter continuation invoked while already running")
        self._running = True
        try:
            self._action()
        finally:
            self._running = False
        self._done = True


@dataclass(frozen=True, slots=True)
class ClientFilterContext:
    job_id: str
    job: JobDescriptor
    proceed: Callable[[], None]


def run_filters(
    job_id: str,
    job: JobDescriptor,
    commit: CommitAction,
    filters: Sequence[ClientFilterPort],
) -> ChainOutcome:
    """Run ``commit`` inside the filters. The first filter is the outermost."""
    committed = False
    failed = False

    def tracked_commit() -> None:
        nonlocal committed
        commit()
        committed = True

    def tracked(step: CommitAction) -> CommitAction:
        def run() -> None:
            nonlocal failed
            try:
                step()
            except Exception:
                failed = True
                raise

        return run

    action: CommitAction = tracked_commit
    for entry in reversed(filters):
        action = _wrap(entry, job_id, job, _Continuation(tracked(action)))

    try:
        action()
    except Exception:
        if committed:
            # storage already holds the job; the commit stands
            LOG.error(
                "job.filter_failed_after_commit", extra={"extra": {"job_id": job_id, "type": job.type}}
            )
        raise

    if committed:
        return ChainOutcome.COMMITTED
    if failed:
        return ChainOutcome.FAILURE_SWALLOWED
    return ChainOutcome.SHORT_CIRCUITED


def _wrap(
    entry: ClientFilterPort, job_id: str, job: JobDescriptor, proceed: _Continuation
) -> CommitAction:
    def invoke() -> None:
        entry.client_filter(ClientFilterContext(job_id, job, proceed))

    return invoke
