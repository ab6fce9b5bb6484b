from .models import DispatchEvent, DispatchEventType
from .emitter import DispatchEventEmitter, NullEventEmitter
from .memory_emitter import MemoryEventEmitter

__all__ = [
    "DispatchEvent",
    "DispatchEventType",
    "DispatchEventEmitter",
    "NullEventEmitter",
    "MemoryEventEmitter",
]
