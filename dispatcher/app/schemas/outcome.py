from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from dispatcher.app.schemas.models import File


class SkipReason(str, Enum):
    """
    Why a file left the pipeline before being sent.

    Reasons are diagnostic only: they reach logs and events, never the
    SendResult returned to the caller.
    """

    RECOGNITION_FAILED = "recognition_failed"
    UNSUPPORTED_FORMAT = "unsupported_format"
    STALE = "stale"
    SIGNING_FAILED = "signing_failed"
    TRANSMISSION_FAILED = "transmission_failed"
    TIMED_OUT = "timed_out"


class FileOutcome(BaseModel):
    """Terminal state of one file's pipeline run."""

    file: File
    sent: bool
    reason: Optional[SkipReason] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def reason_iff_skipped(self) -> "FileOutcome":
        if self.sent and self.reason is not None:
            raise ValueError("A sent file cannot carry a skip reason")
        if not self.sent and self.reason is None:
            raise ValueError("A skipped file must carry a skip reason")
        return self

    @classmethod
    def sent_ok(cls, file: File) -> "FileOutcome":
        return cls(file=file, sent=True)

    @classmethod
    def skipped(cls, file: File, reason: SkipReason) -> "FileOutcome":
        return cls(file=file, sent=False, reason=reason)
