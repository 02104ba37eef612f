"""
Collaborator channels

Interfaces for the platform services the core talks to: the accessibility
host (screen reader announcements and focus notifications), a speech
synthesiser and a haptic engine. Each has a no-op default so the core runs
without any platform attached.
"""

import logging
from typing import Any, Protocol

from .telemetry import InteractionEvent, InteractionLogger, NoOpInteractionLogger, safe_log

logger = logging.getLogger(__name__)


class AccessibilityHost(Protocol):
    """Screen-reader facing host that owns the equation's UI element."""

    def is_assistive_technology_active(self) -> bool: ...

    def announce(self, text: str) -> None: ...

    def notify_navigable_children_changed(self, element_ref: Any) -> None: ...


class SpeechSynthesizer(Protocol):
    def speak(self, text: str) -> None: ...

    def stop(self) -> None: ...


class HapticChannel(Protocol):
    is_available: bool

    def pulse(self, intensity: float) -> None: ...


class NoOpAccessibilityHost:
    def is_assistive_technology_active(self) -> bool:
        return False

    def announce(self, text: str) -> None:
        pass

    def notify_navigable_children_changed(self, element_ref: Any) -> None:
        pass


class NoOpSpeechSynthesizer:
    def speak(self, text: str) -> None:
        pass

    def stop(self) -> None:
        pass


class NoOpHapticChannel:
    is_available = False

    def pulse(self, intensity: float) -> None:
        pass


def pulse(haptics: HapticChannel, intensity: float) -> None:
    """
    Fire a haptic pulse if the device supports it.

    Intensity is clamped to 0.0 - 1.0. Failures are logged and dropped.
    """
    if not getattr(haptics, 'is_available', True):
        return
    try:
        haptics.pulse(min(1.0, max(0.0, intensity)))
    except Exception as e:
        logger.warning(f"Haptic pulse failed: {e}")


def notify_children_changed(host: AccessibilityHost, element_ref: Any) -> None:
    """Tell the host the element's navigable children changed."""
    try:
        host.notify_navigable_children_changed(element_ref)
    except Exception as e:
        logger.warning(f"Navigable children notification failed: {e}")


class SpeechRouter:
    """
    Route spoken feedback to the screen reader or the speech synthesiser.

    When an assistive-technology session is active the text is posted as a
    screen-reader announcement (and reported as a VO Announcement event);
    otherwise it is spoken by the synthesiser.
    """

    def __init__(self, host: AccessibilityHost = None,
                 synthesizer: SpeechSynthesizer = None,
                 interaction_logger: InteractionLogger = None):
        self.host = host or NoOpAccessibilityHost()
        self.synthesizer = synthesizer or NoOpSpeechSynthesizer()
        self.interaction_logger = interaction_logger or NoOpInteractionLogger()

    def speak_or_announce(self, text: str) -> None:
        if not text:
            return
        if self.host.is_assistive_technology_active():
            self.host.announce(text)
            safe_log(self.interaction_logger, InteractionEvent.VO_ANNOUNCEMENT, text)
        else:
            self.synthesizer.speak(text)
