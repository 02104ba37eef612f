"""
Interaction telemetry.

Gesture and announcement events are reported to an injected
InteractionLogger. Reporting is fire-and-forget: safe_log() never lets a
sink failure reach the caller.
"""

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


class InteractionEvent(Enum):
    """Interaction event kinds reported by the math core."""
    MATH_MODE_ENTER = "Math Mode Enter"
    MATH_MODE_EXIT = "Math Mode Exit"
    MATH_NAVIGATE = "Math Navigate"
    MATH_READ_FULL = "Math Read Full"
    VO_ACTIVATE = "VO Activate"
    VO_ESCAPE = "VO Escape"
    VO_ANNOUNCEMENT = "VO Announcement"


class InteractionLogger(Protocol):
    def log_interaction(self, event_kind: InteractionEvent, label: str,
                        extra: Optional[Dict[str, Any]] = None) -> None: ...


class NoOpInteractionLogger:
    def log_interaction(self, event_kind: InteractionEvent, label: str,
                        extra: Optional[Dict[str, Any]] = None) -> None:
        pass


class LoggingInteractionLogger:
    """Write interaction events to a standard library logger."""

    def __init__(self, name: str = 'math_access.interactions', level: int = logging.INFO):
        self._logger = logging.getLogger(name)
        self._level = level

    def log_interaction(self, event_kind: InteractionEvent, label: str,
                        extra: Optional[Dict[str, Any]] = None) -> None:
        details = f" {extra}" if extra else ""
        self._logger.log(self._level, f"{event_kind.value}: {label}{details}")


@dataclass
class InteractionLogEntry:
    """A single recorded interaction."""
    timestamp: float
    event: str
    label: str
    extra: Dict[str, Any] = field(default_factory=dict)


class RecordingInteractionLogger:
    """Keep interaction events in memory, e.g. for a study session export."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._start = clock()
        self.entries: List[InteractionLogEntry] = []

    def log_interaction(self, event_kind: InteractionEvent, label: str,
                        extra: Optional[Dict[str, Any]] = None) -> None:
        self.entries.append(InteractionLogEntry(
            timestamp=round(self._clock() - self._start, 3),
            event=event_kind.value,
            label=label,
            extra=dict(extra or {}),
        ))

    def events(self) -> List[str]:
        return [entry.event for entry in self.entries]

    def to_json(self) -> str:
        """Export recorded entries as JSON."""
        return json.dumps([asdict(entry) for entry in self.entries], indent=2, default=str)


def safe_log(sink: InteractionLogger, event_kind: InteractionEvent, label: str,
             extra: Optional[Dict[str, Any]] = None) -> None:
    """Report an interaction without ever failing the caller."""
    try:
        sink.log_interaction(event_kind, label, extra or {})
    except Exception as e:
        logger.debug(f"Interaction logger failed for {event_kind.value}: {e}")
