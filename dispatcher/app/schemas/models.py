"""
Core data model of the dispatcher.

A batch call receives Files and a Certificate and returns a SendResult.
Documents exist only while a single file travels through the pipeline.

All models are immutable. Nothing here is persisted or cached.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Opaque signing credential shared read-only by every file in a batch.
# Concrete cryptographers expect a cryptography.x509.Certificate.
Certificate = Any


class File(BaseModel):
    """An input file: identity plus opaque content bytes."""

    name: str
    content: bytes

    model_config = ConfigDict(frozen=True, extra="forbid")


class Document(BaseModel):
    """
    Structured representation of a recognized file.

    `created` is always timezone-aware. Naive timestamps produced by a
    recognizer are interpreted as UTC so that freshness comparisons never
    mix naive and aware values.
    """

    name: str
    content: bytes
    created: datetime
    format: str = Field(..., description="Declared format version tag")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("created")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class SendResult(BaseModel):
    """
    Outcome of one batch invocation.

    `skipped_files` holds, in input order, every file for which at least
    one pipeline stage failed. Failure reasons are intentionally not part
    of the result.
    """

    skipped_files: Tuple[File, ...] = ()

    model_config = ConfigDict(frozen=True, extra="forbid")
