"""Tests for the per-equation element."""

import asyncio
from unittest.mock import Mock

import pytest
from math_access.element import (
    INLINE_HINT,
    INLINE_LABEL,
    EquationSource,
    MathEquationElement,
    describe_equation,
)
from math_access.navigation import Gesture, NavigationMode, mode_entered_instructions
from math_access.scheduling import AsyncioScheduler, ManualScheduler
from math_access.telemetry import RecordingInteractionLogger

FRACTION_PLUS_ROOT_LATEX = '\\frac{1}{2}+\\sqrt{4}'
FRACTION_PLUS_ROOT_MATHML = (
    '<math><mrow><mfrac><mn>1</mn><mn>2</mn></mfrac><mo>+</mo>'
    '<msqrt><mn>4</mn></msqrt></mrow></math>'
)
MALFORMED_MATHML = '<math><mfrac><mn>1</mn></mfrac></math>'


class TestDescribeEquation:
    """Tests for describe_equation."""

    def test_structural_speech_from_latex(self):
        description = describe_equation(EquationSource(latex=FRACTION_PLUS_ROOT_LATEX))

        assert description.substantial
        assert not description.expression.degraded
        assert 'fraction' in description.spoken_text
        assert 'square root of' in description.spoken_text
        assert len(description.parts) > 1
        assert description.brief_text == 'fraction of 1 over 2+square root of 4'

    def test_parts_from_mathml(self):
        """Test each structural clause becomes a navigable part."""
        description = describe_equation(EquationSource(mathml=FRACTION_PLUS_ROOT_MATHML))

        assert [part.text for part in description.parts] == [
            'fraction', '1', 'over', '2', 'end fraction',
            'plus', 'square root of', '4', 'end root',
        ]
        assert description.parts[0].display_text == '1/2'
        assert description.brief_text == description.spoken_text

    def test_mathml_only_uses_structural_signal(self):
        assert describe_equation(EquationSource(mathml=FRACTION_PLUS_ROOT_MATHML)).substantial
        assert not describe_equation(
            EquationSource(mathml='<math><msup><mi>x</mi><mn>2</mn></msup></math>')
        ).substantial

    def test_spoken_fallback_when_degraded(self):
        description = describe_equation(EquationSource(
            mathml=MALFORMED_MATHML, spoken_fallback='one half, approximately',
        ))

        assert description.expression.degraded
        assert description.spoken_text == 'one half, approximately'
        assert [part.text for part in description.parts] == ['one half', 'approximately']

    def test_alttext_when_degraded(self):
        """Test MathML alttext is read when nothing else is available."""
        mathml = '<math alttext="\\frac{1}{2}"><mfrac><mn>1</mn></mfrac></math>'

        description = describe_equation(EquationSource(mathml=mathml))

        assert description.spoken_text == 'fraction of 1 over 2'

    def test_empty_source(self):
        description = describe_equation(EquationSource())

        assert not description.substantial
        assert [part.text for part in description.parts] == ['equation']

    def test_display_type(self):
        assert EquationSource(display_type='block').is_display
        assert not EquationSource(display_type='inline').is_display
        assert not EquationSource().is_display


class TestMathEquationElement:
    """Tests for MathEquationElement."""

    def setup_method(self):
        self.scheduler = ManualScheduler()
        self.host = Mock()
        self.host.is_assistive_technology_active.return_value = True
        self.synthesizer = Mock()
        self.haptics = Mock(is_available=True)
        self.recorder = RecordingInteractionLogger()

    def make_element(self, source):
        return MathEquationElement(
            source,
            host=self.host,
            synthesizer=self.synthesizer,
            haptics=self.haptics,
            scheduler=self.scheduler,
            interaction_logger=self.recorder,
        )

    def test_substantial_equation_gets_math_mode(self):
        element = self.make_element(EquationSource(mathml=FRACTION_PLUS_ROOT_MATHML))

        assert element.substantial
        assert element.accessibility_label == 'Math equation'
        assert element.activate() is True
        assert element.mode == NavigationMode.MATH_MODE
        assert element.accessibility_label == 'Part 1 of 9: fraction'

        self.scheduler.advance(0.2)
        self.host.announce.assert_called_once_with(mode_entered_instructions(9))
        self.host.notify_navigable_children_changed.assert_called_once_with(element)

    def test_rotor_through_element(self):
        element = self.make_element(EquationSource(mathml=FRACTION_PLUS_ROOT_MATHML))
        element.activate()

        element.rotor_next()
        element.rotor_next()
        element.rotor_previous()

        assert element.navigator.current_part_index == 1
        assert element.accessibility_label == 'Part 2 of 9: 1'

    def test_simple_equation_is_spoken_inline(self):
        """Test a single power is read at once without math mode."""
        element = self.make_element(EquationSource(latex='x^2'))

        assert not element.substantial
        assert element.navigator is None
        assert element.accessibility_label == INLINE_LABEL
        assert element.accessibility_hint == INLINE_HINT

        assert element.activate() is True
        self.scheduler.advance(0.2)

        assert element.mode == NavigationMode.INACTIVE
        self.haptics.pulse.assert_called_once_with(1.0)
        self.host.announce.assert_called_once_with('x to the power of 2')
        assert 'VO Activate' in self.recorder.events()

    def test_inline_speech_uses_synthesizer_without_screen_reader(self):
        self.host.is_assistive_technology_active.return_value = False
        element = self.make_element(EquationSource(latex='x^2'))

        element.activate()
        self.scheduler.advance(0.2)

        self.synthesizer.speak.assert_called_once_with('x to the power of 2')
        self.host.announce.assert_not_called()

    def test_inline_escape_not_consumed(self):
        element = self.make_element(EquationSource(latex='x^2'))

        assert element.escape() is False
        assert element.handle(Gesture.ROTOR_NEXT) is None
        assert self.recorder.events() == ['VO Escape']

    def test_update_source_rebuilds(self):
        """Test new markup resets math mode and drops stale speech."""
        element = self.make_element(EquationSource(mathml=FRACTION_PLUS_ROOT_MATHML))
        element.activate()

        element.update_source(EquationSource(latex='x^2'))
        self.scheduler.advance(5)

        assert element.navigator is None
        assert element.mode == NavigationMode.INACTIVE
        assert element.accessibility_label == INLINE_LABEL
        self.host.announce.assert_not_called()
        self.host.notify_navigable_children_changed.assert_not_called()

    def test_update_with_same_source_is_noop(self):
        source = EquationSource(mathml=FRACTION_PLUS_ROOT_MATHML)
        element = self.make_element(source)
        navigator = element.navigator

        element.update_source(EquationSource(mathml=FRACTION_PLUS_ROOT_MATHML))

        assert element.navigator is navigator

    def test_unmount_cancels_and_disables(self):
        element = self.make_element(EquationSource(mathml=FRACTION_PLUS_ROOT_MATHML))
        element.activate()

        element.unmount()
        self.scheduler.advance(5)

        assert element.activate() is False
        element.rotor_next()
        assert element.mode == NavigationMode.INACTIVE
        self.host.announce.assert_not_called()
        self.host.notify_navigable_children_changed.assert_not_called()
        assert self.scheduler.pending_count == 0

    def test_post_gesture(self):
        element = self.make_element(EquationSource(mathml=FRACTION_PLUS_ROOT_MATHML))

        future = element.post(Gesture.ACTIVATE)
        self.scheduler.run_pending()

        assert future.result(timeout=1) is True
        assert element.mode == NavigationMode.MATH_MODE

    def test_update_after_unmount_is_ignored(self):
        """Test an unmounted element stays torn down when its markup changes."""
        element = self.make_element(EquationSource(latex='x^2'))
        element.unmount()

        element.update_source(EquationSource(mathml=FRACTION_PLUS_ROOT_MATHML))
        self.scheduler.advance(5)

        assert element.navigator is None
        assert element.source == EquationSource(latex='x^2')
        assert element.activate() is False
        self.host.announce.assert_not_called()

    def test_deeply_nested_markup(self):
        """Test markup nested past the recursion limit still builds an element."""
        mathml = '<math>' + '<mrow>' * 1200 + '<mi>x</mi>' + '</mrow>' * 1200 + '</math>'

        element = self.make_element(EquationSource(mathml=mathml))

        assert element.description.expression.degraded
        assert [part.text for part in element.parts] == ['equation']
        assert element.activate() is True

    def test_requires_scheduler_without_event_loop(self):
        with pytest.raises(ValueError):
            MathEquationElement(EquationSource(latex='x^2'))

    def test_defaults_to_running_event_loop(self):
        """Test an element built inside a running loop speaks on that loop."""
        async def session():
            element = MathEquationElement(EquationSource(latex='x^2'), host=self.host)
            element.activate()
            await asyncio.sleep(0.3)
            return element

        loop = asyncio.new_event_loop()
        try:
            element = loop.run_until_complete(session())
        finally:
            loop.close()

        assert isinstance(element.scheduler, AsyncioScheduler)
        self.host.announce.assert_called_once_with('x to the power of 2')
