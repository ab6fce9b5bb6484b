from __future__ import annotations

from typing import Any, Dict, Optional
from enum import Enum
from datetime import datetime, timezone
from uuid import uuid4, UUID

from pydantic import BaseModel, Field, ConfigDict


# ----------------------------------------------------------------------
# Event Types
# ----------------------------------------------------------------------
class DispatchEventType(str, Enum):
    """
    Progression events emitted during one batch dispatch.

    NOTE:
    New entries must preserve observational semantics.
    """

    # ------------------------------------------------------------------
    # Batch Lifecycle
    # ------------------------------------------------------------------
    BATCH_STARTED = "batch_started"
    BATCH_COMPLETED = "batch_completed"

    # ------------------------------------------------------------------
    # Per-file Outcomes
    # ------------------------------------------------------------------
    FILE_SENT = "file_sent"
    FILE_SKIPPED = "file_skipped"


# ----------------------------------------------------------------------
# Event Model
# ----------------------------------------------------------------------
class DispatchEvent(BaseModel):
    """
    An immutable observation of a dispatch transition.

    Events are:
    - strictly observational
    - transport-agnostic
    - the only place where skip reasons are surfaced
    """

    event_id: UUID = Field(default_factory=uuid4)
    batch_id: str = Field(..., description="Identifier of the batch call")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    event_type: DispatchEventType

    # Optional contextual metadata (file_name, reason, counts, etc.)
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
