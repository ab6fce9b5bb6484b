from __future__ import annotations

from typing import Protocol

from dispatcher.app.events.models import DispatchEvent


class DispatchEventEmitter(Protocol):
    """
    Interface for broadcasting dispatch observations.

    Implementations must be:
    - non-blocking (or minimally blocking)
    - observational only

    The FileSender guards every emit call, so a failing emitter never
    changes a batch outcome.
    """

    def emit(self, event: DispatchEvent) -> None:
        ...


class NullEventEmitter:
    """
    A safe no-op emitter.

    Used when nobody listens to dispatch progress.
    """

    def emit(self, event: DispatchEvent) -> None:
        return
