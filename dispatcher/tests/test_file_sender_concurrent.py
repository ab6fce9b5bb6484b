"""
FileSender concurrent dispatch.

Covers:
- same outcomes as the sequential path for the reference scenarios
- skipped files reported in input order, whatever the completion order
- the worker bound is honoured
- per-file timeouts are treated as stage failures
"""

from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from dateutil.relativedelta import relativedelta

from dispatcher.app.coordinator.file_sender import FileSender
from dispatcher.app.events import DispatchEventType, MemoryEventEmitter
from dispatcher.app.schemas.models import Document, File
from dispatcher.app.services.recognizer import JsonHeaderRecognizer

pytestmark = pytest.mark.anyio


NOW = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)
CERTIFICATE = object()


def _file(name: str) -> File:
    return File(name=name, content=name.encode("utf-8"))


def _recognizer(formats: dict[str, str]) -> Mock:
    recognizer = Mock(spec=["try_recognize"])
    recognizer.try_recognize.side_effect = lambda file: (
        Document(
            name=file.name,
            content=file.content,
            created=NOW,
            format=formats[file.name],
        )
        if file.name in formats
        else None
    )
    return recognizer


def _cryptographer() -> Mock:
    cryptographer = Mock(spec=["sign"])
    cryptographer.sign.side_effect = lambda content, certificate: content
    return cryptographer


def _sender(failing: set[bytes] = frozenset()) -> Mock:
    sender = Mock(spec=["try_send"])
    sender.try_send.side_effect = lambda payload: payload not in failing
    return sender


# ---------------------------------------------------------------------------
# Reference scenarios
# ---------------------------------------------------------------------------

async def test_unsupported_format_is_skipped_and_valid_file_sent():
    file, file2 = _file("someFile"), _file("someFile2")
    file_sender = FileSender(
        _cryptographer(),
        _sender(),
        _recognizer({"someFile": "<html>", "someFile2": "4.0"}),
        clock=lambda: NOW,
    )

    result = await file_sender.send_files_concurrently(
        [file, file2], CERTIFICATE, max_workers=2
    )

    assert result.skipped_files == (file,)


async def test_only_failed_send_is_skipped():
    file, file2 = _file("someFile"), _file("someFile2")
    file_sender = FileSender(
        _cryptographer(),
        _sender(failing={b"someFile2"}),
        _recognizer({"someFile": "4.0", "someFile2": "3.1"}),
        clock=lambda: NOW,
    )

    result = await file_sender.send_files_concurrently(
        [file, file2], CERTIFICATE, max_workers=2
    )

    assert result.skipped_files == (file2,)


async def test_stale_document_is_skipped():
    file = _file("old")
    recognizer = Mock(spec=["try_recognize"])
    recognizer.try_recognize.return_value = Document(
        name="old",
        content=b"old",
        created=NOW - relativedelta(months=1),
        format="4.0",
    )
    sender = _sender()
    file_sender = FileSender(
        _cryptographer(), sender, recognizer, clock=lambda: NOW
    )

    result = await file_sender.send_files_concurrently([file], CERTIFICATE)

    assert result.skipped_files == (file,)
    sender.try_send.assert_not_called()


async def test_far_future_creation_date_does_not_cancel_other_workers():
    far_future = File(
        name="farFuture",
        content=b'{"format": "4.0", "created": "9999-12-15T00:00:00Z"}',
    )
    valid = File(
        name="valid",
        content=b'{"format": "3.1", "created": "2026-10-18T00:00:00Z"}',
    )
    sender = _sender()
    file_sender = FileSender(
        _cryptographer(), sender, JsonHeaderRecognizer(), clock=lambda: NOW
    )

    result = await file_sender.send_files_concurrently(
        [far_future, valid], CERTIFICATE, max_workers=2
    )

    assert result.skipped_files == ()
    assert sender.try_send.call_count == 2


# ---------------------------------------------------------------------------
# Ordering and bounds
# ---------------------------------------------------------------------------

async def test_skipped_files_follow_input_order_not_completion_order():
    names = [f"f{i}" for i in range(8)]
    files = [_file(n) for n in names]

    # Earlier files finish later.
    def sign(content: bytes, certificate: object) -> bytes:
        index = int(content.decode()[1:])
        time.sleep(0.01 * (len(names) - index))
        return content

    cryptographer = Mock(spec=["sign"])
    cryptographer.sign.side_effect = sign

    failing = {b"f1", b"f4", b"f6"}
    file_sender = FileSender(
        cryptographer,
        _sender(failing=failing),
        _recognizer({n: "4.0" for n in names}),
        clock=lambda: NOW,
    )

    result = await file_sender.send_files_concurrently(
        files, CERTIFICATE, max_workers=8
    )

    assert [f.name for f in result.skipped_files] == ["f1", "f4", "f6"]


async def test_no_more_than_max_workers_run_at_once():
    names = [f"f{i}" for i in range(10)]
    lock = threading.Lock()
    active = 0
    peak = 0

    def send(payload: bytes) -> bool:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.02)
        with lock:
            active -= 1
        return True

    sender = Mock(spec=["try_send"])
    sender.try_send.side_effect = send
    file_sender = FileSender(
        _cryptographer(),
        sender,
        _recognizer({n: "4.0" for n in names}),
        clock=lambda: NOW,
    )

    result = await file_sender.send_files_concurrently(
        [_file(n) for n in names], CERTIFICATE, max_workers=3
    )

    assert result.skipped_files == ()
    assert sender.try_send.call_count == 10
    assert 1 <= peak <= 3


async def test_default_worker_bound_comes_from_constructor():
    file_sender = FileSender(
        _cryptographer(),
        _sender(),
        _recognizer({"a": "4.0"}),
        clock=lambda: NOW,
        max_workers=1,
    )

    result = await file_sender.send_files_concurrently(
        [_file("a")], CERTIFICATE
    )

    assert result.skipped_files == ()


# ---------------------------------------------------------------------------
# Timeouts
# ---------------------------------------------------------------------------

async def test_timed_out_file_is_skipped_without_blocking_others():
    release = threading.Event()

    def send(payload: bytes) -> bool:
        if payload == b"slow":
            release.wait(timeout=5)
        return True

    sender = Mock(spec=["try_send"])
    sender.try_send.side_effect = send
    emitter = MemoryEventEmitter()
    file_sender = FileSender(
        _cryptographer(),
        sender,
        _recognizer({"slow": "4.0", "fast": "4.0"}),
        clock=lambda: NOW,
        emitter=emitter,
    )
    slow, fast = _file("slow"), _file("fast")

    try:
        result = await file_sender.send_files_concurrently(
            [slow, fast], CERTIFICATE, max_workers=2, per_file_timeout=0.2
        )
    finally:
        release.set()

    assert result.skipped_files == (slow,)

    skipped = emitter.of_type(DispatchEventType.FILE_SKIPPED)
    assert [e.details for e in skipped] == [
        {"file_name": "slow", "reason": "timed_out"}
    ]


async def test_empty_batch_completes():
    emitter = MemoryEventEmitter()
    file_sender = FileSender(
        _cryptographer(), _sender(), _recognizer({}), emitter=emitter
    )

    result = await file_sender.send_files_concurrently([], CERTIFICATE)

    assert result.skipped_files == ()
    assert [e.event_type for e in emitter.events] == [
        DispatchEventType.BATCH_STARTED,
        DispatchEventType.BATCH_COMPLETED,
    ]
