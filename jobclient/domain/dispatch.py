# /jobclient/domain/dispatch.py
from __future__ import annotations

import logging
import threading
from datetime import datetime

from jobclient.domain.filters import CommitAction
from jobclient.domain.job import JobDescriptor, queue_name
from jobclient.ports.job_storage import JobStoragePort

LOG = logging.getLogger("domain.dispatch")


class DispatchGateway:
    """
    Builds the deferred storage writes for a submission.

    Every write goes through one lock, so storage sees at most one write in
    flight per client. Override ``lock_for`` to shard it (per queue, per
    connection) without touching callers.
    """

    def __init__(self, storage: JobStoragePort) -> None:
        self.storage = storage
        self._lock = threading.Lock()

    def lock_for(self, queue: str | None) -> threading.Lock:
        return self._lock

    def enqueue_action(self, job_type: type, job_id: str, job: JobDescriptor) -> CommitAction:
        queue = queue_name(job_type)

        def commit() -> None:
            with self.lock_for(queue):
                self.storage.enqueue_job(queue, job_id, job)
            LOG.info("job.enqueued", extra={"extra": {"job_id": job_id, "queue": queue}})

        return commit

    def schedule_action(self, job_id: str, job: JobDescriptor, at: datetime) -> CommitAction:
        def commit() -> None:
            with self.lock_for(None):
                self.storage.schedule_job(job_id, job, at)
            LOG.info("job.scheduled", extra={"extra": {"job_id": job_id, "at": at.isoformat()}})

        return commit
