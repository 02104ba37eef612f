"""
Math Navigation State Machine

Owns the math-mode state of one equation element and turns screen-reader
gestures into state changes, haptic pulses and queued announcements.

States:
    INACTIVE  -- the element reads as a single "Math equation"
    MATH_MODE -- the rotor moves between parts of the equation

All handlers must run on the scheduler's context. Gestures arriving from
another thread go through post(), which marshals them onto it.
"""

import logging
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from .announcements import AnnouncementQueue
from .channels import (
    AccessibilityHost,
    HapticChannel,
    NoOpAccessibilityHost,
    NoOpHapticChannel,
    notify_children_changed,
    pulse,
)
from .config import MathAccessOptions
from .scheduling import Scheduler, TimerHandle, submit
from .segmenter import Part, segment_parts
from .speech import prepare_text_for_reading
from .telemetry import InteractionEvent, InteractionLogger, NoOpInteractionLogger, safe_log

logger = logging.getLogger(__name__)

INACTIVE_LABEL = "Math equation"
INACTIVE_HINT = "Double tap to enter math mode"
MATH_MODE_LABEL = "Math mode"
MATH_MODE_HINT = "Double tap to hear full equation. Two finger scrub to exit."

END_OF_EQUATION = "End of equation"
BEGINNING_OF_EQUATION = "Beginning of equation"
EXITED_MATH_MODE = "Exited math mode"


class NavigationMode(Enum):
    INACTIVE = "inactive"
    MATH_MODE = "mathMode"


class Gesture(Enum):
    ACTIVATE = "activate"
    ROTOR_NEXT = "rotor_next"
    ROTOR_PREVIOUS = "rotor_previous"
    ESCAPE = "escape"


@dataclass
class NavigationState:
    mode: NavigationMode = NavigationMode.INACTIVE
    current_part_index: int = 0
    parts: Tuple[Part, ...] = field(default_factory=tuple)

    @property
    def current_part(self) -> Optional[Part]:
        if 0 <= self.current_part_index < len(self.parts):
            return self.parts[self.current_part_index]
        return None


def mode_entered_instructions(part_count: int) -> str:
    noun = "part" if part_count == 1 else "parts"
    return (f"Math mode. {part_count} {noun}. Swipe up or down to move between parts. "
            f"Double tap to hear full equation. Two finger scrub to exit.")


class MathNavigator:
    """
    Math-mode navigation for one equation.

    Args:
        parts: Navigable parts; an empty sequence is replaced by a single
            placeholder part
        full_text: Spoken text of the whole equation
        queue: Announcement queue owned by the same element
        scheduler: Execution context for delayed host notifications
        haptics: Haptic channel
        host: Accessibility host notified when navigable children change
        element_ref: Opaque reference passed back to the host
        interaction_logger: Telemetry sink
        options: Timing and intensity configuration
    """

    def __init__(self, parts: Sequence[Part], full_text: str,
                 queue: AnnouncementQueue, scheduler: Scheduler,
                 haptics: HapticChannel = None,
                 host: AccessibilityHost = None,
                 element_ref: Any = None,
                 interaction_logger: InteractionLogger = None,
                 options: Optional[MathAccessOptions] = None):
        self.options = options or MathAccessOptions()
        if not parts:
            parts = segment_parts('', self.options.placeholder)
        self.state = NavigationState(parts=tuple(parts))
        self.full_text = full_text
        self.queue = queue
        self.scheduler = scheduler
        self.haptics = haptics or NoOpHapticChannel()
        self.host = host or NoOpAccessibilityHost()
        self.element_ref = element_ref if element_ref is not None else self
        self.interaction_logger = interaction_logger or NoOpInteractionLogger()
        self._timers: List[TimerHandle] = []

    @property
    def mode(self) -> NavigationMode:
        return self.state.mode

    @property
    def current_part_index(self) -> int:
        return self.state.current_part_index

    @property
    def parts(self) -> Tuple[Part, ...]:
        return self.state.parts

    @property
    def accessibility_label(self) -> str:
        if self.state.mode == NavigationMode.INACTIVE:
            return INACTIVE_LABEL
        part = self.state.current_part
        if part is None:
            return MATH_MODE_LABEL
        return f"Part {self.state.current_part_index + 1} of {len(self.state.parts)}: {part.text}"

    @property
    def accessibility_hint(self) -> str:
        if self.state.mode == NavigationMode.INACTIVE:
            return INACTIVE_HINT
        return MATH_MODE_HINT

    def activate(self) -> bool:
        """Primary gesture: enter math mode, or read the full equation."""
        if self.state.mode == NavigationMode.INACTIVE:
            self.state.mode = NavigationMode.MATH_MODE
            self.state.current_part_index = 0
            pulse(self.haptics, self.options.enter_intensity)
            self.queue.enqueue(mode_entered_instructions(len(self.state.parts)))
            self._schedule_children_changed()
            self._log(InteractionEvent.MATH_MODE_ENTER, {'parts': len(self.state.parts)})
            return True

        pulse(self.haptics, self.options.read_intensity)
        self.queue.clear()
        text = prepare_text_for_reading(self.full_text, self.options.placeholder)
        self.queue.enqueue(text or self.options.full_equation_fallback)
        self._log(InteractionEvent.MATH_READ_FULL)
        return True

    def rotor_next(self) -> None:
        self._move(1)

    def rotor_previous(self) -> None:
        self._move(-1)

    def escape(self) -> bool:
        """
        Two-finger scrub.

        Returns:
            True if the gesture exited math mode, False if it was not
            consumed and the host's own navigation should handle it
        """
        if self.state.mode == NavigationMode.INACTIVE:
            return False

        self.state.mode = NavigationMode.INACTIVE
        self.state.current_part_index = 0
        pulse(self.haptics, self.options.exit_intensity)
        self.queue.clear()
        self.queue.enqueue(EXITED_MATH_MODE)
        self._schedule_children_changed()
        self._log(InteractionEvent.MATH_MODE_EXIT)
        return True

    def handle(self, gesture: Gesture) -> Optional[bool]:
        """Dispatch a gesture to its handler."""
        if gesture == Gesture.ACTIVATE:
            return self.activate()
        if gesture == Gesture.ROTOR_NEXT:
            return self.rotor_next()
        if gesture == Gesture.ROTOR_PREVIOUS:
            return self.rotor_previous()
        return self.escape()

    def post(self, gesture: Gesture) -> Future:
        """
        Marshal a gesture from any thread onto the owning context.

        Returns:
            Future resolved with the handler's result once it has run
        """
        return submit(self.scheduler, self.handle, gesture)

    def teardown(self) -> None:
        """Cancel pending timers, drop queued speech and reset to inactive."""
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        self.queue.close()
        self.state.mode = NavigationMode.INACTIVE
        self.state.current_part_index = 0

    def _move(self, step: int) -> None:
        if self.state.mode != NavigationMode.MATH_MODE:
            logger.debug("Rotor gesture ignored outside math mode")
            return

        pulse(self.haptics, self.options.rotor_intensity)
        count = len(self.state.parts)
        target = self.state.current_part_index + step

        if target >= count:
            self.queue.enqueue(END_OF_EQUATION)
        elif target < 0:
            self.queue.enqueue(BEGINNING_OF_EQUATION)
        else:
            self.state.current_part_index = target
            part = self.state.parts[target]
            self.queue.enqueue(f"{part.text}. {target + 1} of {count}")

        self._log(InteractionEvent.MATH_NAVIGATE, {
            'direction': 'next' if step > 0 else 'previous',
            'index': self.state.current_part_index,
        })

    def _schedule_children_changed(self) -> None:
        handle = None

        def notify():
            if handle in self._timers:
                self._timers.remove(handle)
            notify_children_changed(self.host, self.element_ref)

        handle = self.scheduler.call_later(self.options.layout_notify_delay, notify)
        self._timers.append(handle)

    def _log(self, event: InteractionEvent, extra: Optional[dict] = None) -> None:
        safe_log(self.interaction_logger, event, self.accessibility_label, extra)
