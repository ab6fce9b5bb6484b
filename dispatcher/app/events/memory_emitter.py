from __future__ import annotations

import threading
from typing import List, Optional

from dispatcher.app.events.models import DispatchEvent, DispatchEventType
from dispatcher.app.events.emitter import DispatchEventEmitter


class MemoryEventEmitter(DispatchEventEmitter):
    """
    In-memory emitter collecting events in emission order.

    Properties:
    - thread-safe
    - unbounded (intended for tests and short-lived batches)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: List[DispatchEvent] = []

    def emit(self, event: DispatchEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[DispatchEvent]:
        with self._lock:
            return list(self._events)

    def of_type(
        self, event_type: DispatchEventType, batch_id: Optional[str] = None
    ) -> List[DispatchEvent]:
        return [
            e
            for e in self.events
            if e.event_type == event_type
            and (batch_id is None or e.batch_id == batch_id)
        ]
