# /jobclient/domain/job.py
from __future__ import annotations

import re
import uuid
from collections.abc import Iterator, Mapping

from jobclient.domain.errors import InvalidArgumentError

TYPE_KEY = "Type"
ARGS_KEY = "Args"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_QUEUE_NAME = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


def generate_id() -> str:
    return str(uuid.uuid4())


def type_name(job_type: type) -> str:
    """Fully-qualified identifier of a work-item type: ``module.QualName``."""
    return f"{job_type.__module__}.{job_type.__qualname__}"


def queue_name(job_type: type) -> str:
    """
    Queue for a work-item type.

    A non-empty ``queue`` class attribute wins; otherwise the class name is
    kebab-cased and suffixed: ``EmailJob`` -> ``email-job-queue``.
    """
    explicit = getattr(job_type, "queue", None)
    if isinstance(explicit, str) and explicit:
        name = explicit
    else:
        name = _CAMEL_BOUNDARY.sub("-", job_type.__name__).lower() + "-queue"

    if not _QUEUE_NAME.match(name):
        raise InvalidArgumentError(f"invalid queue name {name!r} for {type_name(job_type)}")
    return name


class JobDescriptor(Mapping[str, "str | None"]):
    """Read-only string mapping handed through the filters into storage."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, str | None]) -> None:
        self._data: dict[str, str | None] = dict(data)

    @classmethod
    def build(cls, job_type: type, args_text: str | None) -> JobDescriptor:
        return cls({TYPE_KEY: type_name(job_type), ARGS_KEY: args_text})

    @property
    def type(self) -> str:
        return self._data[TYPE_KEY]  # type: ignore[return-value]

    @property
    def args(self) -> str | None:
        return self._data.get(ARGS_KEY)

    def __getitem__(self, key: str) -> str | None:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"JobDescriptor({self._data!r})"
