"""
Accessible Math Navigation

Speech and screen-reader navigation for worksheet equations.

Features:
- Expression model built from MathML or LaTeX (via latex2mathml)
- Lexical and structural math-to-speech rendering
- Segmentation of spoken equations into navigable parts
- Math mode: rotor navigation between parts with haptic cues
- Serialized announcement queue that never talks over itself
- Heuristic gate between full math mode and inline speech

Workflow:
1. Wrap an equation's markup in an EquationSource
2. Mount a MathEquationElement with the host's accessibility, speech and
   haptic channels, and a scheduler (or inside a running asyncio loop)
3. Forward screen-reader gestures (activate, rotor, escape) to the element
4. Unmount the element when the equation leaves the screen
"""

from .config import MathAccessOptions

from .expression import (
    Granularity,
    ExpressionNode,
    Text,
    Operator,
    Fraction,
    Root,
    Superscript,
    Subscript,
    Grouping,
    ParsedExpression,
    MathParseError,
    parse_mathml,
    parse_latex,
    build_expression,
    extract_alt_text,
)

from .complexity import (
    is_substantial,
    operator_triggers,
    mathml_complexity_signal,
)

from .speech import (
    Verbosity,
    Clause,
    speakable,
    render_clauses,
    render_expression,
    prepare_text_for_reading,
)

from .segmenter import Part, segment_parts, segment_clauses

from .scheduling import ManualScheduler, AsyncioScheduler, submit

from .channels import (
    AccessibilityHost,
    SpeechSynthesizer,
    HapticChannel,
    NoOpAccessibilityHost,
    NoOpSpeechSynthesizer,
    NoOpHapticChannel,
    SpeechRouter,
)

from .telemetry import (
    InteractionEvent,
    InteractionLogger,
    NoOpInteractionLogger,
    LoggingInteractionLogger,
    RecordingInteractionLogger,
)

from .announcements import Announcement, AnnouncementQueue, read_duration

from .navigation import (
    NavigationMode,
    NavigationState,
    Gesture,
    MathNavigator,
)

from .element import (
    EquationSource,
    EquationDescription,
    MathEquationElement,
    describe_equation,
)

__version__ = '1.0.0'
__all__ = [
    # Configuration
    'MathAccessOptions',
    # Expression model
    'Granularity',
    'ExpressionNode',
    'Text',
    'Operator',
    'Fraction',
    'Root',
    'Superscript',
    'Subscript',
    'Grouping',
    'ParsedExpression',
    'MathParseError',
    'parse_mathml',
    'parse_latex',
    'build_expression',
    'extract_alt_text',
    # Complexity
    'is_substantial',
    'operator_triggers',
    'mathml_complexity_signal',
    # Speech
    'Verbosity',
    'Clause',
    'speakable',
    'render_clauses',
    'render_expression',
    'prepare_text_for_reading',
    # Segmentation
    'Part',
    'segment_parts',
    'segment_clauses',
    # Scheduling
    'ManualScheduler',
    'AsyncioScheduler',
    'submit',
    # Channels
    'AccessibilityHost',
    'SpeechSynthesizer',
    'HapticChannel',
    'NoOpAccessibilityHost',
    'NoOpSpeechSynthesizer',
    'NoOpHapticChannel',
    'SpeechRouter',
    # Telemetry
    'InteractionEvent',
    'InteractionLogger',
    'NoOpInteractionLogger',
    'LoggingInteractionLogger',
    'RecordingInteractionLogger',
    # Announcements
    'Announcement',
    'AnnouncementQueue',
    'read_duration',
    # Navigation
    'NavigationMode',
    'NavigationState',
    'Gesture',
    'MathNavigator',
    # Element
    'EquationSource',
    'EquationDescription',
    'MathEquationElement',
    'describe_equation',
]
