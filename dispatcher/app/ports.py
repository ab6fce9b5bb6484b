"""
Capability ports consumed by the FileSender.

Each port exposes exactly one operation. Implementations are injected at
construction time; the orchestrator never issues any other I/O.

Implementations may block on I/O. They must be safe to call from worker
threads when the concurrent dispatch path is used, and must treat the
certificate as read-only.
"""

from __future__ import annotations

from typing import Optional, Protocol

from dispatcher.app.schemas.models import Certificate, Document, File


class Recognizer(Protocol):
    def try_recognize(self, file: File) -> Optional[Document]:
        """Return the structured document for `file`, or None if not recognized."""
        ...


class Cryptographer(Protocol):
    def sign(self, content: bytes, certificate: Certificate) -> bytes:
        """
        Sign `content` under `certificate`.

        Raises:
            SigningError: if signed content cannot be produced.
        """
        ...


class Sender(Protocol):
    def try_send(self, signed_content: bytes) -> bool:
        """Transmit signed content. False means the file was not delivered."""
        ...
