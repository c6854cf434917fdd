# /jobclient/adapters/system/redis_job_storage.py
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone

import redis

from jobclient.domain.errors import StorageError

LOG = logging.getLogger("adapter.storage.redis")


class RedisJobStorage:
    """
    Redis layout, every write in one MULTI/EXEC:

        {prefix}:job:{id}        hash of the job descriptor
        {prefix}:queues          set of known queue names
        {prefix}:queue:{name}    list of job ids (LPUSH, workers pop the tail)
        {prefix}:schedule        sorted set of job ids scored by unix time
    """

    def __init__(self, redis_url: str, prefix: str = "jobclient") -> None:
        self._r = redis.Redis.from_url(redis_url, decode_responses=True)
        self._prefix = prefix

    def _key(self, *parts: str) -> str:
        return ":".join((self._prefix, *parts))

    @staticmethod
    def _fields(job: Mapping[str, str | None]) -> dict[str, str]:
        # redis has no null; an absent value is stored as ""
        return {k: "" if v is None else v for k, v in job.items()}

    def enqueue_job(self, queue: str, job_id: str, job: Mapping[str, str | None]) -> None:
        def write(pipe: redis.client.Pipeline) -> None:
            pipe.hset(self._key("job", job_id), mapping=self._fields(job))
            pipe.sadd(self._key("queues"), queue)
            pipe.lpush(self._key("queue", queue), job_id)

        self._try_to_do("enqueue", job_id, write)
        LOG.info("store.enqueue", extra={"extra": {"job_id": job_id, "queue": queue}})

    def schedule_job(self, job_id: str, job: Mapping[str, str | None], at: datetime) -> None:
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        score = at.timestamp()

        def write(pipe: redis.client.Pipeline) -> None:
            pipe.hset(self._key("job", job_id), mapping=self._fields(job))
            pipe.zadd(self._key("schedule"), {job_id: score})

        self._try_to_do("schedule", job_id, write)
        LOG.info("store.schedule", extra={"extra": {"job_id": job_id, "at": score}})

    def _try_to_do(self, op: str, job_id: str, write: Callable[[redis.client.Pipeline], None]) -> None:
        try:
            with self._r.pipeline(transaction=True) as pipe:
                write(pipe)
                pipe.execute()
        except redis.RedisError as e:
            LOG.exception("store.error", extra={"extra": {"op": op, "job_id": job_id}})
            raise StorageError(f"{op} failed for job {job_id}: {e}") from e

    def close(self) -> None:
        self._r.close()
        LOG.info("store.closed", extra={"extra": {"prefix": self._prefix}})
