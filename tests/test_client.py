# tests/test_client.py
from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timedelta, timezone

import pytest

from jobclient.domain.client import JobClient
from jobclient.domain.errors import ConversionError, InvalidArgumentError, StorageError
from tests.fakes import (
    EmailJob,
    FailingStorage,
    FlakyStorage,
    RaisingFilter,
    RecordingFilter,
    RecordingStorage,
    ReportJob,
    RetryOnceFilter,
    ShortCircuitFilter,
    SwallowingFilter,
)

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture
def client(storage: RecordingStorage) -> JobClient:
    return JobClient(storage, clock=lambda: NOW)


def test_perform_async_enqueues_on_type_queue(client: JobClient, storage: RecordingStorage) -> None:
    job_id = client.perform_async(EmailJob, {"Recipient": "a@x.com"})

    assert len(job_id) == 36
    assert storage.calls == [
        (
            "enqueue",
            "email-job-queue",
            job_id,
            {"Type": "tests.fakes.EmailJob", "Args": '{"recipient":"a@x.com"}'},
        )
    ]
    assert json.loads(storage.calls[0][3]["Args"]) == {"recipient": "a@x.com"}


def test_ids_are_unique(client: JobClient) -> None:
    ids = {client.perform_async(EmailJob) for _ in range(1000)}
    assert len(ids) == 1000


def test_perform_in_schedules(client: JobClient, storage: RecordingStorage) -> None:
    job_id = client.perform_in(timedelta(minutes=10), EmailJob)

    assert storage.calls == [
        ("schedule", job_id, {"Type": "tests.fakes.EmailJob", "Args": None}, NOW + timedelta(minutes=10))
    ]


def test_perform_in_real_clock_tolerance(storage: RecordingStorage) -> None:
    client = JobClient(storage)
    before = datetime.now(timezone.utc)
    client.perform_in(600, EmailJob)
    after = datetime.now(timezone.utc)

    at = storage.calls[0][3]
    assert at.tzinfo is not None
    assert before + timedelta(minutes=10) <= at <= after + timedelta(minutes=10)


def test_zero_interval_is_immediate(client: JobClient, storage: RecordingStorage) -> None:
    job_id = client.perform_in(timedelta(0), ReportJob, {"Month": 5})

    assert storage.calls == [
        ("enqueue", "reports", job_id, {"Type": "tests.fakes.ReportJob", "Args": '{"month":"5"}'})
    ]


@pytest.mark.parametrize("interval", [timedelta(seconds=-1), -0.5])
def test_negative_interval_rejected(client: JobClient, storage: RecordingStorage, interval) -> None:
    with pytest.raises(InvalidArgumentError):
        client.perform_in(interval, EmailJob)
    assert storage.calls == []


@pytest.mark.parametrize("job_type", [None, "EmailJob", EmailJob()])
def test_missing_or_bad_type_rejected(client: JobClient, storage: RecordingStorage, job_type) -> None:
    with pytest.raises(InvalidArgumentError):
        client.perform_async(job_type)
    with pytest.raises(InvalidArgumentError):
        client.perform_in(5, job_type)
    assert storage.calls == []


def test_conversion_failure_never_reaches_storage(storage: RecordingStorage) -> None:
    log: list[str] = []
    client = JobClient(storage, [RecordingFilter("A", log)])
    with pytest.raises(ConversionError, match="Attachment"):
        client.perform_async(EmailJob, {"Attachment": object()})
    assert storage.calls == []
    assert log == []


def test_filters_wrap_storage_write(storage: RecordingStorage) -> None:
    log: list[str] = []

    class CommitMarker:
        def client_filter(self, context):
            context.proceed()
            log.append(f"stored={len(storage.calls)}")

    client = JobClient(storage, [RecordingFilter("A", log), CommitMarker(), RecordingFilter("C", log)])
    client.perform_async(EmailJob)

    assert log == ["A:before", "C:before", "C:after", "stored=1", "A:after"]


def test_short_circuit_returns_id_without_write(storage: RecordingStorage) -> None:
    client = JobClient(storage, [ShortCircuitFilter()])
    job_id = client.perform_async(EmailJob)
    assert len(job_id) == 36
    assert storage.calls == []


def test_filter_failure_propagates(storage: RecordingStorage) -> None:
    client = JobClient(storage, [RaisingFilter(PermissionError("rate limited"))])
    with pytest.raises(PermissionError):
        client.perform_in(30, EmailJob)
    assert storage.calls == []


def test_storage_failure_propagates() -> None:
    client = JobClient(FailingStorage(StorageError("down")))
    with pytest.raises(StorageError, match="down"):
        client.perform_async(EmailJob)


def test_concurrent_writes_are_serialized() -> None:
    storage = RecordingStorage(delay=0.001)
    client = JobClient(storage)
    ids: list[str] = []
    ids_lock = threading.Lock()

    def worker(n: int) -> None:
        for i in range(20):
            if i % 2:
                job_id = client.perform_async(EmailJob, {"Worker": n, "Seq": i})
            else:
                job_id = client.perform_in(60, EmailJob, {"Worker": n, "Seq": i})
            with ids_lock:
                ids.append(job_id)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert storage.overlapped is False
    assert len(storage.calls) == 160
    written = [c[2] if c[0] == "enqueue" else c[1] for c in storage.calls]
    assert sorted(written) == sorted(ids)
    assert len(set(written)) == 160
    for call in storage.calls:
        job = call[3] if call[0] == "enqueue" else call[2]
        args = json.loads(job["Args"])
        assert set(args) == {"worker", "seq"}


def test_close_releases_storage(storage: RecordingStorage) -> None:
    with JobClient(storage) as client:
        client.perform_async(EmailJob)
    assert storage.closed is True
    client.close()
    with pytest.raises(RuntimeError):
        client.perform_async(EmailJob)


@pytest.mark.parametrize(
    "interval",
    [float("nan"), float("inf"), 1e20, 10**30, timedelta.max],
)
def test_out_of_range_interval_rejected(client: JobClient, storage: RecordingStorage, interval) -> None:
    with pytest.raises(InvalidArgumentError):
        client.perform_in(interval, EmailJob)
    assert storage.calls == []


def test_filters_see_the_stored_job_id(storage: RecordingStorage) -> None:
    log: list[str] = []
    first, second = RecordingFilter("A", log), RecordingFilter("B", log)
    client = JobClient(storage, [first, second], clock=lambda: NOW)

    now_id = client.perform_async(EmailJob)
    later_id = client.perform_in(60, EmailJob)

    assert first.seen == second.seen == [now_id, later_id]
    assert storage.calls[0][2] == now_id
    assert storage.calls[1][1] == later_id


def test_retry_filter_recovers_from_storage_failure(caplog) -> None:
    caplog.set_level(logging.INFO, logger="domain.client")
    storage = FlakyStorage(StorageError("blip"))
    job_id = JobClient(storage, [RetryOnceFilter()]).perform_async(EmailJob)

    assert [c[2] for c in storage.calls] == [job_id]
    assert [r.getMessage() for r in caplog.records if r.name == "domain.client"] == ["job.submitted"]


def test_swallowed_storage_failure_is_logged_as_error(caplog) -> None:
    caplog.set_level(logging.INFO, logger="domain.client")
    client = JobClient(FailingStorage(StorageError("down")), [SwallowingFilter()])
    job_id = client.perform_async(EmailJob)

    records = [r for r in caplog.records if r.name == "domain.client"]
    assert [(r.levelname, r.getMessage()) for r in records] == [("ERROR", "job.failure_swallowed")]
    assert records[0].extra["job_id"] == job_id


def test_short_circuit_is_logged_as_warning(storage: RecordingStorage, caplog) -> None:
    caplog.set_level(logging.INFO, logger="domain.client")
    JobClient(storage, [ShortCircuitFilter()]).perform_async(EmailJob)
    records = [r for r in caplog.records if r.name == "domain.client"]
    assert [(r.levelname, r.getMessage()) for r in records] == [("WARNING", "job.short_circuited")]


def test_filter_failure_after_commit_keeps_job_and_logs(storage: RecordingStorage, caplog) -> None:
    caplog.set_level(logging.ERROR, logger="domain.filters")
    client = JobClient(storage, [RaisingFilter(RuntimeError("late"), after=True)])

    with pytest.raises(RuntimeError, match="late"):
        client.perform_async(EmailJob)

    assert len(storage.calls) == 1
    records = [r for r in caplog.records if r.name == "domain.filters"]
    assert [r.getMessage() for r in records] == ["job.filter_failed_after_commit"]
    assert records[0].extra["job_id"] == storage.calls[0][2]
