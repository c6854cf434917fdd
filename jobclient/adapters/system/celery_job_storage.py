# /jobclient/adapters/system/celery_job_storage.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from celery import Celery
from celery.exceptions import CeleryError
from kombu.exceptions import OperationalError

from jobclient.config import settings
from jobclient.domain.errors import StorageError
from jobclient.domain.job import ARGS_KEY, TYPE_KEY

LOG = logging.getLogger("adapter.storage.celery")


def make_celery_app(broker_url: str = settings.REDIS_URL, name: str = settings.CELERY_APP_NAME) -> Celery:
    app = Celery(name, broker=broker_url)
    app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        enable_utc=True,
    )
    return app


class CeleryJobStorage:
    """
    Hands jobs to a Celery broker. The task name is the job's ``Type``, the
    task id is the job id, and the serialized arguments travel as the
    ``args`` keyword. Scheduled jobs use ``eta``.
    """

    def __init__(self, celery_app: Celery) -> None:
        self._app = celery_app

    def enqueue_job(self, queue: str, job_id: str, job: Mapping[str, str | None]) -> None:
        self._send(job_id, job, queue=queue)
        LOG.info("celery.enqueue", extra={"extra": {"job_id": job_id, "queue": queue}})

    def schedule_job(self, job_id: str, job: Mapping[str, str | None], at: datetime) -> None:
        self._send(job_id, job, eta=at)
        LOG.info("celery.schedule", extra={"extra": {"job_id": job_id, "eta": at.isoformat()}})

    def _send(self, job_id: str, job: Mapping[str, str | None], **options: Any) -> None:
        try:
            self._app.send_task(
                job[TYPE_KEY],
                task_id=job_id,
                kwargs={"args": job.get(ARGS_KEY)},
                **options,
            )
        except (OperationalError, CeleryError) as e:
            LOG.exception("celery.error", extra={"extra": {"job_id": job_id}})
            raise StorageError(f"broker rejected job {job_id}: {e}") from e

    def close(self) -> None:
        self._app.close()
