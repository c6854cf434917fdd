# /jobclient/adapters/api/fastapi_app.py
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel

from jobclient import registry
from jobclient.adapters.system.filter_loader import import_object
from jobclient.adapters.system.logging_cfg import configure_logger
from jobclient.config import settings
from jobclient.domain.client import JobClient
from jobclient.domain.errors import ConversionError, InvalidArgumentError, StorageError
from jobclient.domain.job import type_name

LOG = logging.getLogger("adapter.api")


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_logger(settings.LOG_LEVEL)
    registry.init_default_client()
    try:
        yield
    finally:
        registry.shutdown_default_client()


app = FastAPI(title="job-client", lifespan=lifespan)


class JobRequestModel(BaseModel):
    type: str
    args: Optional[dict[str, Any]] = None
    delay_seconds: Optional[float] = None


@lru_cache(maxsize=1)
def get_job_types() -> dict[str, type]:
    """Job types the API may submit, keyed by configured path and by type name."""
    out: dict[str, type] = {}
    for path in settings.API_JOB_TYPES:
        job_type = import_object(path)
        out[path] = job_type
        out[type_name(job_type)] = job_type
    return out


def get_client() -> JobClient:
    return registry.get_default_client()


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/jobs")
def submit_job(
    payload: JobRequestModel,
    x_api_key: str | None = Header(default=None),
    client: JobClient = Depends(get_client),
    job_types: dict[str, type] = Depends(get_job_types),
) -> dict:
    if settings.API_KEY and x_api_key != settings.API_KEY:
        raise HTTPException(status_code=401, detail="invalid api key")

    job_type = job_types.get(payload.type)
    if job_type is None:
        raise HTTPException(status_code=400, detail=f"unknown job type: {payload.type}")

    try:
        if payload.delay_seconds:
            job_id = client.perform_in(payload.delay_seconds, job_type, payload.args)
            status = "scheduled"
        else:
            job_id = client.perform_async(job_type, payload.args)
            status = "enqueued"
    except (InvalidArgumentError, ConversionError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except StorageError as e:
        LOG.warning("job.storage_unavailable", extra={"extra": {"type": payload.type}})
        raise HTTPException(status_code=503, detail="storage unavailable") from e

    LOG.info("job.accepted", extra={"extra": {"job_id": job_id, "status": status}})
    return {"job_id": job_id, "status": status}
