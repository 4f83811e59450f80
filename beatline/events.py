from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional


Handler = Callable[[Any], Optional[bool]]


@dataclass
class EventData:
    source: Any


@dataclass
class ChordEventData(EventData):
    chord: Any = None


@dataclass
class PositionEventData(EventData):
    total_quarter_note: float = 0.0


@dataclass
class MessageEventData(EventData):
    message: Any = None


@dataclass
class Event:
    """Ordered, synchronous list of handlers.

    A handler that returns True consumes the event: handlers registered
    after it are not called for that trigger.
    """

    handlers: List[Handler] = field(default_factory=list)

    def add(self, handler: Handler) -> Handler:
        if handler is None:
            raise ValueError("invalid handler value")
        self.handlers.append(handler)
        return handler

    def remove(self, handler: Handler) -> None:
        self.handlers = [h for h in self.handlers if h is not handler]

    def trigger(self, data: Any) -> bool:
        """Run handlers in order; return True if one of them stopped propagation."""
        for handler in list(self.handlers):
            if handler(data) is True:
                return True
        return False

    def __len__(self) -> int:
        return len(self.handlers)
