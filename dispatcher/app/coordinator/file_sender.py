"""
Batch orchestrator: recognize → check format → check freshness → sign → send.

IMPORTANT:
The FileSender holds no batch state. Every file travels through the
stage chain independently and the first failing stage is terminal for
that file only.

Its sole responsibilities are:
- enforcing stage order per file
- isolating per-file failures (nothing escapes a batch call)
- aggregating skipped files in input order
- emitting observational events

Failure reasons are logged and emitted as events, but deliberately not
returned: callers only learn WHICH files were skipped.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Sequence

import anyio
import anyio.to_thread

from dispatcher.app.certificates import CertificateStore
from dispatcher.app.checks.format import is_acceptable_format
from dispatcher.app.checks.freshness import is_fresh
from dispatcher.app.core.config import DispatcherSettings, get_settings
from dispatcher.app.errors import ConfigurationError
from dispatcher.app.events import (
    DispatchEvent,
    DispatchEventEmitter,
    DispatchEventType,
    NullEventEmitter,
)
from dispatcher.app.ports import Cryptographer, Recognizer, Sender
from dispatcher.app.schemas.models import Certificate, File, SendResult
from dispatcher.app.schemas.outcome import FileOutcome, SkipReason

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FileSender:
    """
    Sends a batch of files through the validate → sign → send pipeline.

    Per-file state machine:
        Start → Recognized → FormatOK → Fresh → Signed → Sent
    or Skipped, entered from any stage on failure.
    """

    def __init__(
        self,
        cryptographer: Cryptographer,
        sender: Sender,
        recognizer: Recognizer,
        *,
        clock: Optional[Clock] = None,
        emitter: Optional[DispatchEventEmitter] = None,
        max_workers: int = 4,
        per_file_timeout: Optional[float] = None,
        certificates: Optional[CertificateStore] = None,
    ) -> None:
        self._cryptographer = cryptographer
        self._sender = sender
        self._recognizer = recognizer
        self._clock = clock or utc_now
        self._emitter = emitter or NullEventEmitter()
        self._max_workers = max(1, int(max_workers))
        self._per_file_timeout = per_file_timeout
        self._certificates = certificates

    # ------------------------------------------------------------------
    # Integration constructor (composition root)
    # ------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        settings: Optional[DispatcherSettings] = None,
        *,
        emitter: Optional[DispatchEventEmitter] = None,
    ) -> "FileSender":
        """
        Wire the JSON recognizer, the PKCS#7 cryptographer, the HTTP sender
        and (when a certificate directory is set) the certificate store
        from runtime configuration.
        """
        from dispatcher.app.services.cryptographer import Pkcs7Cryptographer
        from dispatcher.app.services.recognizer import JsonHeaderRecognizer
        from dispatcher.app.services.sender import HttpSender

        settings = settings or get_settings()

        if settings.sender_endpoint is None:
            raise ConfigurationError("DISPATCHER_SENDER_ENDPOINT is not set")
        if settings.signing_key_path is None:
            raise ConfigurationError("DISPATCHER_SIGNING_KEY_PATH is not set")

        password = (
            settings.signing_key_password.get_secret_value()
            if settings.signing_key_password is not None
            else None
        )

        return cls(
            cryptographer=Pkcs7Cryptographer.from_key_file(
                settings.signing_key_path, password=password
            ),
            sender=HttpSender(
                str(settings.sender_endpoint),
                timeout=settings.sender_timeout_seconds,
            ),
            recognizer=JsonHeaderRecognizer(),
            emitter=emitter,
            max_workers=settings.max_workers,
            per_file_timeout=settings.per_file_timeout_seconds,
            certificates=(
                CertificateStore(settings.certificate_dir)
                if settings.certificate_dir is not None
                else None
            ),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve_certificate(self, certificate_id: str) -> Certificate:
        """
        Look up a batch certificate by id in the configured certificate
        directory. Lookups are memoized per id.
        """
        if self._certificates is None:
            raise ConfigurationError("DISPATCHER_CERTIFICATE_DIR is not set")
        return self._certificates.require(certificate_id)

    def send_files(
        self,
        files: Iterable[File],
        certificate: Certificate,
        *,
        batch_id: Optional[str] = None,
    ) -> SendResult:
        """Process `files` one after another, in input order."""
        files = list(files)
        batch_id = batch_id or str(uuid.uuid4())
        now = self._begin(batch_id, files)

        outcomes: List[FileOutcome] = []
        for file in files:
            outcome = self._try_send_file(file, certificate, now)
            self._record(batch_id, outcome)
            outcomes.append(outcome)

        return self._finish(batch_id, outcomes)

    async def send_files_concurrently(
        self,
        files: Iterable[File],
        certificate: Certificate,
        *,
        batch_id: Optional[str] = None,
        max_workers: Optional[int] = None,
        per_file_timeout: Optional[float] = None,
    ) -> SendResult:
        """
        Process up to `max_workers` files at a time in worker threads.

        A file whose chain does not finish within `per_file_timeout`
        seconds is skipped as timed out. Its worker thread is abandoned,
        not interrupted, so a late send may still reach the receiver.
        An abandoned thread also gives its worker slot back while it keeps
        running, so after timeouts more than `max_workers` threads can be
        inside port calls at the same time.

        The skipped collection is returned in input order regardless of
        completion order.
        """
        files = list(files)
        batch_id = batch_id or str(uuid.uuid4())
        workers = max(1, int(max_workers or self._max_workers))
        timeout = (
            per_file_timeout
            if per_file_timeout is not None
            else self._per_file_timeout
        )
        now = self._begin(batch_id, files)

        outcomes: List[Optional[FileOutcome]] = [None] * len(files)
        gate = anyio.Semaphore(workers)
        thread_limiter = anyio.CapacityLimiter(workers)

        async def run_one(index: int, file: File) -> None:
            async with gate:
                outcome: Optional[FileOutcome] = None
                with anyio.move_on_after(timeout):
                    outcome = await anyio.to_thread.run_sync(
                        self._try_send_file,
                        file,
                        certificate,
                        now,
                        abandon_on_cancel=True,
                        limiter=thread_limiter,
                    )

                if outcome is None:
                    logger.warning(
                        "File %s did not finish within %ss", file.name, timeout
                    )
                    outcome = FileOutcome.skipped(file, SkipReason.TIMED_OUT)

                outcomes[index] = outcome
                self._record(batch_id, outcome)

        async with anyio.create_task_group() as tg:
            for index, file in enumerate(files):
                tg.start_soon(run_one, index, file)

        return self._finish(batch_id, [o for o in outcomes if o is not None])

    # ------------------------------------------------------------------
    # Per-file pipeline
    # ------------------------------------------------------------------

    def _try_send_file(
        self, file: File, certificate: Certificate, now: datetime
    ) -> FileOutcome:
        try:
            document = self._recognizer.try_recognize(file)
        except Exception:
            logger.warning(
                "Recognizer raised for file %s", file.name, exc_info=True
            )
            document = None

        if document is None:
            return FileOutcome.skipped(file, SkipReason.RECOGNITION_FAILED)

        if not is_acceptable_format(document):
            return FileOutcome.skipped(file, SkipReason.UNSUPPORTED_FORMAT)

        if not is_fresh(document, now):
            return FileOutcome.skipped(file, SkipReason.STALE)

        try:
            signed_content = self._cryptographer.sign(
                document.content, certificate
            )
        except Exception:
            logger.warning("Signing failed for file %s", file.name, exc_info=True)
            return FileOutcome.skipped(file, SkipReason.SIGNING_FAILED)

        try:
            sent = self._sender.try_send(signed_content)
        except Exception:
            logger.warning("Sender raised for file %s", file.name, exc_info=True)
            sent = False

        if not sent:
            return FileOutcome.skipped(file, SkipReason.TRANSMISSION_FAILED)

        return FileOutcome.sent_ok(file)

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _begin(self, batch_id: str, files: Sequence[File]) -> datetime:
        logger.info("Dispatching batch %s (%d file(s))", batch_id, len(files))
        self._emit(
            batch_id,
            DispatchEventType.BATCH_STARTED,
            {"file_count": len(files)},
        )
        # "now" is fixed for the whole batch; naive clocks are read as UTC.
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now

    def _record(self, batch_id: str, outcome: FileOutcome) -> None:
        if outcome.sent:
            self._emit(
                batch_id,
                DispatchEventType.FILE_SENT,
                {"file_name": outcome.file.name},
            )
            return

        logger.info(
            "Skipped file %s: %s", outcome.file.name, outcome.reason.value
        )
        self._emit(
            batch_id,
            DispatchEventType.FILE_SKIPPED,
            {"file_name": outcome.file.name, "reason": outcome.reason.value},
        )

    def _finish(
        self, batch_id: str, outcomes: Sequence[FileOutcome]
    ) -> SendResult:
        skipped = tuple(o.file for o in outcomes if not o.sent)
        sent_count = len(outcomes) - len(skipped)

        logger.info(
            "Batch %s finished: %d sent, %d skipped",
            batch_id,
            sent_count,
            len(skipped),
        )
        self._emit(
            batch_id,
            DispatchEventType.BATCH_COMPLETED,
            {"sent_count": sent_count, "skipped_count": len(skipped)},
        )
        return SendResult(skipped_files=skipped)

    def _emit(
        self,
        batch_id: str,
        event_type: DispatchEventType,
        details: Optional[dict] = None,
    ) -> None:
        try:
            self._emitter.emit(
                DispatchEvent(
                    batch_id=batch_id,
                    event_type=event_type,
                    details=details,
                )
            )
        except Exception:
            # Observability must never change a batch outcome.
            logger.warning("Event emission failed", exc_info=True)
