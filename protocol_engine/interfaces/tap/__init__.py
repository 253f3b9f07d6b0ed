"""TAP test interface module."""

from protocol_engine.interfaces.tap.interface import TapInterface, tap_to_result
from protocol_engine.interfaces.tap.parser import (
    AllSkippedPlan,
    TapParseError,
    TapPlan,
    TapSummary,
    parse_tap_lines,
    parse_tap_output,
)

tap_interface = TapInterface()

__all__ = [
    "AllSkippedPlan",
    "TapInterface",
    "TapParseError",
    "TapPlan",
    "TapSummary",
    "parse_tap_lines",
    "parse_tap_output",
    "tap_interface",
    "tap_to_result",
]
