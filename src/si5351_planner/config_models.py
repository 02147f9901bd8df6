# src/si5351_planner/config_models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


Freq = float  # Hz

# Si5351 operating limits
MIN_VCO_FREQ: Freq = 600e6
MAX_VCO_FREQ: Freq = 1000e6
MAX_DENOMINATOR = 1048575
MIN_CLKIN_FREQ: Freq = 10e6
MAX_CLKIN_FREQ: Freq = 100e6

# CLKIN_DIV brings the reference down to what the PLL input accepts
MAX_PLL_INPUT_FREQ: Freq = 40e6
MAX_CLKIN_DIV = 3

# R divider is needed when the output MS alone cannot reach the clock
MIN_R_DIV_FREQ: Freq = 1e6
MAX_R_DIV = 7

CLOCK_TOLERANCE: Freq = 1e-8
MAX_CLOCKS = 3


class RequestError(ValueError):
    """Invalid planning request; raised before any search is attempted."""


class PlanningError(RuntimeError):
    """A condition that aborts the whole planning run."""


@dataclass
class Range:
    """Closed interval [start, stop]."""
    start: float
    stop: float

    def contains(self, f: float) -> bool:
        return self.start <= f <= self.stop

    @property
    def center(self) -> float:
        return 0.5 * (self.start + self.stop)


@dataclass
class SynthLimits:
    """
    Synthesizer limits used by the planner.

    Defaults describe the Si5351; override individual fields with
    dataclasses.replace() when experimenting.
    """
    vco_range: Range = field(default_factory=lambda: Range(MIN_VCO_FREQ, MAX_VCO_FREQ))
    clkin_range: Range = field(default_factory=lambda: Range(MIN_CLKIN_FREQ, MAX_CLKIN_FREQ))
    # fractional feedback MS
    feedback_range: Range = field(default_factory=lambda: Range(15, 90))
    # even integer feedback MS
    feedback_int_range: Range = field(default_factory=lambda: Range(16, 90))
    output_range: Range = field(default_factory=lambda: Range(4, 900))
    max_denominator: int = MAX_DENOMINATOR
    max_pll_input_freq: Freq = MAX_PLL_INPUT_FREQ
    max_clkin_div: int = MAX_CLKIN_DIV
    min_r_div_freq: Freq = MIN_R_DIV_FREQ
    max_r_div: int = MAX_R_DIV
    clock_tolerance: Freq = CLOCK_TOLERANCE
    max_clocks: int = MAX_CLOCKS


@dataclass
class PlanRequest:
    """
    Reference frequency plus the requested output clocks.

    A clock target of 0 means the output is not used.
    """
    reference_freq: Freq
    clocks: List[Freq]

    @property
    def enabled_indices(self) -> List[int]:
        return [i for i, f in enumerate(self.clocks) if f > 0]

    @property
    def anchor_index(self) -> int:
        """Index of the lowest enabled clock; the searches are built around it."""
        enabled = self.enabled_indices
        if not enabled:
            raise RequestError("No enabled output clock in request.")
        return min(enabled, key=lambda i: self.clocks[i])


def validate_request(request: PlanRequest, limits: SynthLimits) -> None:
    """
    Check a request against the synthesizer limits.

    Raises RequestError; nothing downstream is invoked for a bad request.
    """
    if not limits.clkin_range.contains(request.reference_freq):
        raise RequestError(
            f"XTAL reference (CLKIN) {request.reference_freq:,.0f} Hz is out of range "
            f"[{limits.clkin_range.start:,.0f}, {limits.clkin_range.stop:,.0f}]."
        )
    n = len(request.clocks)
    if n == 0:
        raise RequestError("At least one output clock is required.")
    if n > limits.max_clocks:
        raise RequestError(
            f"Too many clocks ({n}) - maximum number of clocks is: {limits.max_clocks}"
        )
    for i, f in enumerate(request.clocks):
        if f < 0:
            raise RequestError(f"Clock {i} frequency must not be negative: {f!r}")
    if not request.enabled_indices:
        raise RequestError("All requested clocks are zero (disabled).")
