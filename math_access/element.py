"""
Equation element

The per-equation owner that a host UI mounts for each math run in a
worksheet. It derives the expression model, spoken text and parts from the
source markup, decides between full math mode and inline speech, and owns
the navigator and announcement queue for as long as it is mounted.
"""

import logging
from concurrent.futures import Future
from dataclasses import dataclass
from typing import List, Optional

from .announcements import AnnouncementQueue
from .channels import (
    AccessibilityHost,
    HapticChannel,
    NoOpAccessibilityHost,
    NoOpHapticChannel,
    SpeechRouter,
    SpeechSynthesizer,
    pulse,
)
from .complexity import is_substantial, mathml_complexity_signal
from .config import MathAccessOptions
from .expression import ParsedExpression, build_expression, extract_alt_text
from .navigation import Gesture, MathNavigator, NavigationMode
from .scheduling import AsyncioScheduler, Scheduler, submit
from .segmenter import Part, segment_clauses, segment_parts
from .speech import Verbosity, render_clauses, speakable
from .telemetry import InteractionEvent, InteractionLogger, NoOpInteractionLogger, safe_log

logger = logging.getLogger(__name__)

INLINE_LABEL = "Equation"
INLINE_HINT = "Double tap to hear the equation."


@dataclass(frozen=True)
class EquationSource:
    """Math markup of one worksheet equation."""
    latex: Optional[str] = None
    mathml: Optional[str] = None
    display_type: Optional[str] = None
    spoken_fallback: Optional[str] = None

    @property
    def is_display(self) -> bool:
        return (self.display_type or '').lower() in ('block', 'display')


@dataclass(frozen=True)
class EquationDescription:
    """Everything derived from an EquationSource. Recomputed, never mutated."""
    expression: ParsedExpression
    spoken_text: str
    brief_text: str
    parts: List[Part]
    substantial: bool


def describe_equation(source: EquationSource,
                      options: Optional[MathAccessOptions] = None) -> EquationDescription:
    """
    Derive the expression model, speech and parts for an equation.

    Args:
        source: Equation markup
        options: Configuration (placeholder text, classifier threshold)

    Returns:
        EquationDescription
    """
    options = options or MathAccessOptions()
    expression = build_expression(source.latex, source.mathml)

    clauses = []
    if not expression.degraded:
        try:
            clauses = render_clauses(expression.root)
        except RecursionError:
            logger.warning("Expression too deeply nested for structural speech")
    if clauses:
        spoken = ', '.join(clause.text for clause in clauses)
        parts = segment_clauses(clauses, options.placeholder)
    else:
        alt_text = extract_alt_text(source.mathml)
        if source.spoken_fallback:
            spoken = source.spoken_fallback
        elif source.latex:
            spoken = speakable(source.latex, Verbosity.BRIEF)
        elif alt_text:
            spoken = speakable(alt_text, Verbosity.BRIEF)
        else:
            spoken = options.placeholder
        parts = segment_parts(spoken, options.placeholder)

    if source.latex:
        brief = speakable(source.latex, Verbosity.BRIEF)
    else:
        brief = spoken

    if source.latex and source.latex.strip():
        substantial = is_substantial(source.latex, threshold=options.substantial_threshold)
    else:
        substantial = is_substantial(
            None, source.mathml,
            mathml_signal=mathml_complexity_signal(source.mathml, options.substantial_threshold),
        )

    return EquationDescription(
        expression=expression,
        spoken_text=spoken,
        brief_text=brief,
        parts=parts,
        substantial=substantial,
    )


def _default_scheduler() -> Scheduler:
    """The running asyncio loop; announcements need a live context to fire."""
    try:
        return AsyncioScheduler()
    except RuntimeError:
        raise ValueError(
            "MathEquationElement needs a scheduler when no asyncio event loop is running"
        ) from None


class MathEquationElement:
    """
    Accessible element for one equation.

    Substantial equations get full math mode through MathNavigator; simple
    ones are spoken inline on activation. Without an explicit scheduler the
    running asyncio event loop is used; with no loop running the constructor
    raises ValueError.

    Example:
        >>> from math_access import ManualScheduler
        >>> element = MathEquationElement(EquationSource(latex='x^2'),
        ...                               scheduler=ManualScheduler())
        >>> element.accessibility_label
        'Equation'
    """

    def __init__(self, source: EquationSource,
                 host: AccessibilityHost = None,
                 synthesizer: SpeechSynthesizer = None,
                 haptics: HapticChannel = None,
                 scheduler: Optional[Scheduler] = None,
                 interaction_logger: InteractionLogger = None,
                 options: Optional[MathAccessOptions] = None):
        self.options = options or MathAccessOptions()
        self.host = host or NoOpAccessibilityHost()
        self.haptics = haptics or NoOpHapticChannel()
        self.scheduler = scheduler if scheduler is not None else _default_scheduler()
        self.interaction_logger = interaction_logger or NoOpInteractionLogger()
        self.router = SpeechRouter(self.host, synthesizer, self.interaction_logger)
        self.mounted = True
        self.source = source
        self.description = describe_equation(source, self.options)
        self.queue = AnnouncementQueue(self.router.speak_or_announce, self.scheduler, self.options)
        self.navigator = self._make_navigator()

    def _make_navigator(self) -> Optional[MathNavigator]:
        if not self.description.substantial:
            return None
        return MathNavigator(
            parts=self.description.parts,
            full_text=self.description.spoken_text,
            queue=self.queue,
            scheduler=self.scheduler,
            haptics=self.haptics,
            host=self.host,
            element_ref=self,
            interaction_logger=self.interaction_logger,
            options=self.options,
        )

    @property
    def substantial(self) -> bool:
        return self.description.substantial

    @property
    def spoken_text(self) -> str:
        return self.description.spoken_text

    @property
    def parts(self) -> List[Part]:
        return self.description.parts

    @property
    def mode(self) -> NavigationMode:
        if self.navigator is None:
            return NavigationMode.INACTIVE
        return self.navigator.mode

    @property
    def accessibility_label(self) -> str:
        if self.navigator is None:
            return INLINE_LABEL
        return self.navigator.accessibility_label

    @property
    def accessibility_hint(self) -> str:
        if self.navigator is None:
            return INLINE_HINT
        return self.navigator.accessibility_hint

    def activate(self) -> bool:
        if not self.mounted:
            return False
        if self.navigator is not None:
            return self.navigator.activate()

        pulse(self.haptics, self.options.enter_intensity)
        self.queue.clear()
        self.queue.enqueue(self.description.brief_text or self.options.full_equation_fallback)
        safe_log(self.interaction_logger, InteractionEvent.VO_ACTIVATE, INLINE_LABEL,
                 {'inline': True})
        return True

    def rotor_next(self) -> None:
        if self.mounted and self.navigator is not None:
            self.navigator.rotor_next()

    def rotor_previous(self) -> None:
        if self.mounted and self.navigator is not None:
            self.navigator.rotor_previous()

    def escape(self) -> bool:
        if not self.mounted or self.navigator is None:
            safe_log(self.interaction_logger, InteractionEvent.VO_ESCAPE,
                     self.accessibility_label, {'consumed': False})
            return False
        return self.navigator.escape()

    def handle(self, gesture: Gesture) -> Optional[bool]:
        if gesture == Gesture.ACTIVATE:
            return self.activate()
        if gesture == Gesture.ROTOR_NEXT:
            return self.rotor_next()
        if gesture == Gesture.ROTOR_PREVIOUS:
            return self.rotor_previous()
        return self.escape()

    def post(self, gesture: Gesture) -> Future:
        """Marshal a gesture from any thread onto the scheduler's context."""
        return submit(self.scheduler, self.handle, gesture)

    def update_source(self, source: EquationSource) -> None:
        """Recompute everything for new markup and return to inactive."""
        if not self.mounted or source == self.source:
            return
        if self.navigator is not None:
            self.navigator.teardown()
        else:
            self.queue.close()
        self.source = source
        self.description = describe_equation(source, self.options)
        self.queue = AnnouncementQueue(self.router.speak_or_announce, self.scheduler, self.options)
        self.navigator = self._make_navigator()
        logger.debug(f"Equation source updated ({len(self.parts)} parts)")

    def unmount(self) -> None:
        """Cancel all timers and clear speech. Gestures become no-ops."""
        if not self.mounted:
            return
        self.mounted = False
        if self.navigator is not None:
            self.navigator.teardown()
        self.queue.close()
