"""
JSON header recognition.

A recognizable file is a UTF-8 JSON object declaring at least:

    {"format": "4.0", "created": "2026-10-01T09:30:00+00:00", ...}

Additional keys are allowed and ignored. The recognized Document keeps
the file's raw bytes as its content: what gets signed is exactly what
was received.

Recognition never raises. Anything that does not parse is reported as
"not recognized" (None).
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from dispatcher.app.schemas.models import Document, File

logger = logging.getLogger(__name__)


class DocumentHeader(BaseModel):
    """Recognition contract for the JSON header of a file."""

    format: str
    created: datetime

    model_config = ConfigDict(extra="allow", frozen=True)


class JsonHeaderRecognizer:
    def try_recognize(self, file: File) -> Optional[Document]:
        try:
            header = DocumentHeader.model_validate_json(file.content)
        except ValidationError as exc:
            logger.debug(
                "File %s not recognized: %d validation error(s)",
                file.name,
                exc.error_count(),
            )
            return None

        return Document(
            name=file.name,
            content=file.content,
            created=header.created,
            format=header.format,
        )
