"""
Configuration for the math accessibility core.

All timing constants are in seconds; haptic intensities are in the
0.0 - 1.0 range accepted by the haptic channel.
"""

from dataclasses import dataclass


# =============================================================================
# Defaults
# =============================================================================

PLACEHOLDER_TEXT = "equation"


@dataclass
class MathAccessOptions:
    """Configuration options for equation speech and navigation."""
    # Announcement pacing
    pre_dispatch_delay: float = 0.12
    min_read_duration: float = 0.4
    seconds_per_character: float = 0.04
    # Delay before telling the host that navigable children changed
    layout_notify_delay: float = 0.05
    # Haptic intensities
    enter_intensity: float = 1.0
    read_intensity: float = 0.8
    exit_intensity: float = 0.6
    rotor_intensity: float = 0.3
    # Complexity classifier
    substantial_threshold: int = 2
    # Text used when an equation has nothing speakable
    placeholder: str = PLACEHOLDER_TEXT
    full_equation_fallback: str = "Equation"
