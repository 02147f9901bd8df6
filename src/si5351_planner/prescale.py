# src/si5351_planner/prescale.py
from __future__ import annotations

from dataclasses import dataclass
import logging

from .config_models import (
    Freq,
    PlanRequest,
    PlanningError,
    SynthLimits,
    validate_request,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Prescale:
    """
    Power-of-two range reduction applied before the divider search.

    clkin_div and r_div are exponents: the reference is divided by
    2**clkin_div (CLKIN_DIV) and the anchor clock is produced by the output
    MS followed by an R divider of 2**r_div.
    """
    reference_freq: Freq
    reduced_reference: Freq
    clkin_div: int
    anchor_index: int
    anchor_freq: Freq
    reduced_anchor: Freq
    r_div: int

    @property
    def xtal_div(self) -> int:
        return 1 << self.clkin_div

    @property
    def r_div_factor(self) -> int:
        return 1 << self.r_div


def prescale_request(request: PlanRequest, limits: SynthLimits) -> Prescale:
    """
    Validate the request, then pick CLKIN_DIV for the reference and the R
    divider for the anchor (lowest enabled) clock.
    """
    validate_request(request, limits)

    xtal = request.reference_freq
    clkin_div = 0
    while xtal > limits.max_pll_input_freq and clkin_div < limits.max_clkin_div:
        xtal /= 2.0
        clkin_div += 1
    if clkin_div > 0:
        logger.info("Using CLKIN_DIV=%d (reference %.0f Hz -> %.0f Hz)",
                    clkin_div, request.reference_freq, xtal)

    anchor_index = request.anchor_index
    anchor_freq = request.clocks[anchor_index]
    r_clk = anchor_freq
    r_div = 0
    while r_clk < limits.min_r_div_freq and r_div < limits.max_r_div:
        r_clk *= 2.0
        r_div += 1
    if r_clk < limits.min_r_div_freq:
        raise PlanningError(
            f"requested clock is too low: {anchor_freq:,.0f} Hz (clock {anchor_index})"
        )
    if r_div > 0:
        logger.info("Using R divider 2**%d for clock %d", r_div, anchor_index)

    return Prescale(
        reference_freq=request.reference_freq,
        reduced_reference=xtal,
        clkin_div=clkin_div,
        anchor_index=anchor_index,
        anchor_freq=anchor_freq,
        reduced_anchor=r_clk,
        r_div=r_div,
    )
