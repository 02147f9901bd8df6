# src/si5351_planner/planner.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple
import logging

import numpy as np

from .config_models import (
    CLOCK_TOLERANCE,
    Freq,
    PlanRequest,
    PlanningError,
    SynthLimits,
)
from .prescale import Prescale, prescale_request
from .rational import DividerRatio, rational_approximation

logger = logging.getLogger(__name__)


class Strategy(Enum):
    FRACTIONAL_FEEDBACK = 1
    FRACTIONAL_OUTPUT = 2

    @property
    def description(self) -> str:
        if self is Strategy.FRACTIONAL_FEEDBACK:
            return "N-frac for feedback MS and even integer for output MS"
        return "even integer for feedback MS and N-frac for output MS"


class ClockStatus(Enum):
    ACHIEVED = "achieved"
    OUT_OF_RANGE = "out_of_range"
    NOT_COMPUTED = "not_computed"


@dataclass(frozen=True)
class ClockResult:
    """
    Outcome for one requested clock within a candidate plan.

    ratio is the output MS value; for the anchor clock the output is further
    divided by 2**r_div. ratio and achieved are None unless the clock could be
    synthesized from the candidate's VCO frequency.
    """
    index: int
    target: Freq
    status: ClockStatus
    ratio: Optional[DividerRatio] = None
    achieved: Optional[Freq] = None
    r_div: int = 0
    tolerance: Freq = CLOCK_TOLERANCE

    @property
    def error(self) -> Optional[float]:
        if self.achieved is None:
            return None
        return self.achieved - self.target

    @property
    def deviation(self) -> Optional[float]:
        """Error in Hz when it exceeds the tolerance, else None."""
        err = self.error
        if err is None or abs(err) < self.tolerance:
            return None
        return err

    @property
    def is_exact(self) -> bool:
        return self.status is ClockStatus.ACHIEVED and self.deviation is None


@dataclass(frozen=True)
class CandidatePlan:
    """One VCO frequency with its feedback MS and per-clock output settings."""
    strategy: Strategy
    swept_divider: int
    vco_freq: Freq
    feedback: DividerRatio
    clocks: Tuple[ClockResult, ...]
    anchor_index: int

    @property
    def anchor(self) -> ClockResult:
        return self.clocks[self.anchor_index]

    @property
    def dividers(self) -> List[DividerRatio]:
        """Feedback MS followed by the output MS of every synthesized clock."""
        return [self.feedback] + [
            c.ratio for c in self.clocks
            if c.status is ClockStatus.ACHIEVED and c.ratio is not None
        ]

    @property
    def n_unreachable(self) -> int:
        return sum(1 for c in self.clocks if c.status is ClockStatus.OUT_OF_RANGE)

    @property
    def worst_error(self) -> float:
        errors = [abs(c.error) for c in self.clocks if c.error is not None]
        return max(errors) if errors else 0.0

    @property
    def is_exact(self) -> bool:
        return all(
            c.is_exact for c in self.clocks if c.status is not ClockStatus.NOT_COMPUTED
        )


@dataclass(frozen=True)
class SkippedCandidate:
    """A swept divider value that could not produce a usable plan."""
    strategy: Strategy
    swept_divider: int
    vco_freq: Freq
    ratio_value: float
    reason: str


@dataclass
class PlannerResult:
    request: PlanRequest
    prescale: Prescale
    fractional_feedback: List[CandidatePlan]
    fractional_output: List[CandidatePlan]
    skipped: List[SkippedCandidate]

    @property
    def candidates(self) -> List[CandidatePlan]:
        return self.fractional_feedback + self.fractional_output


def _largest_even(x: float) -> int:
    n = int(x)
    return n - n % 2


class Planner:
    """
    Frequency-plan search engine.

    Two strategies are run, each sweeping an even integer divider downwards
    so that the VCO frequency walks from the top of its range to the bottom:

      1. output MS fixed to an even integer, feedback MS fractional;
      2. feedback MS fixed to an even integer, output MS fractional.

    All clocks share the VCO of a candidate; the lowest enabled clock (the
    anchor) determines the sweep, the others are derived from the resulting
    PLL frequency.
    """

    def __init__(
        self,
        request: PlanRequest,
        limits: SynthLimits | None = None,
        prescale: Prescale | None = None,
    ):
        self.request = request
        self.limits = limits or SynthLimits()
        self.prescale = prescale or prescale_request(request, self.limits)
        self.skipped: List[SkippedCandidate] = []

    # Public API --------------------------------------------------------

    def iter_strategy(self, strategy: Strategy) -> Iterator[CandidatePlan]:
        if strategy is Strategy.FRACTIONAL_FEEDBACK:
            return self.iter_fractional_feedback()
        return self.iter_fractional_output()

    def iter_candidates(self) -> Iterator[CandidatePlan]:
        """Strategy 1 candidates, then strategy 2, each by decreasing divider."""
        for strategy in Strategy:
            yield from self.iter_strategy(strategy)

    def iter_fractional_feedback(self) -> Iterator[CandidatePlan]:
        lim = self.limits
        ps = self.prescale
        out_rng = lim.output_range

        output_ms = _largest_even(lim.vco_range.stop / ps.reduced_anchor)
        if output_ms > out_rng.stop:
            output_ms = _largest_even(out_rng.stop)
        if output_ms < out_rng.start:
            raise PlanningError(
                f"invalid output MS: {output_ms} (clock={ps.anchor_freq:,.0f})"
            )

        self._forget_skipped(Strategy.FRACTIONAL_FEEDBACK)
        logger.info("Strategy 1: sweeping output MS down from %d", output_ms)
        n_plans = 0
        for value in self._sweep(output_ms, out_rng.start):
            output_ms = int(value)
            f_vco = ps.reduced_anchor * output_ms
            if f_vco < lim.vco_range.start:
                break

            feedback_ms = f_vco / ps.reduced_reference
            if not lim.feedback_range.contains(feedback_ms):
                logger.warning(
                    "invalid feedback MS: %.4f (xtal=%.0f/%d, output MS=%d, f_VCO=%.0f)",
                    feedback_ms,
                    ps.reference_freq,
                    ps.xtal_div,
                    output_ms,
                    f_vco,
                )
                self.skipped.append(
                    SkippedCandidate(
                        strategy=Strategy.FRACTIONAL_FEEDBACK,
                        swept_divider=output_ms,
                        vco_freq=f_vco,
                        ratio_value=feedback_ms,
                        reason="feedback MS out of range",
                    )
                )
                continue

            feedback = self._approximate(feedback_ms)
            pll_freq = ps.reduced_reference * feedback.value
            anchor = ClockResult(
                index=ps.anchor_index,
                target=ps.anchor_freq,
                status=ClockStatus.ACHIEVED,
                ratio=DividerRatio(output_ms),
                achieved=pll_freq / output_ms / ps.r_div_factor,
                r_div=ps.r_div,
                tolerance=lim.clock_tolerance,
            )
            n_plans += 1
            yield CandidatePlan(
                strategy=Strategy.FRACTIONAL_FEEDBACK,
                swept_divider=output_ms,
                vco_freq=pll_freq,
                feedback=feedback,
                clocks=self._evaluate_clocks(pll_freq, anchor),
                anchor_index=ps.anchor_index,
            )

        logger.info("Strategy 1: %d candidate plans", n_plans)

    def iter_fractional_output(self) -> Iterator[CandidatePlan]:
        lim = self.limits
        ps = self.prescale
        fb_rng = lim.feedback_int_range
        out_rng = lim.output_range

        feedback_ms = _largest_even(lim.vco_range.stop / ps.reduced_reference)
        if feedback_ms < fb_rng.start:
            raise PlanningError(
                f"invalid feedback MS: {feedback_ms} "
                f"(xtal={ps.reference_freq:,.0f}/{ps.xtal_div})"
            )
        if feedback_ms > fb_rng.stop:
            feedback_ms = _largest_even(fb_rng.stop)
            if ps.reduced_reference * feedback_ms < lim.vco_range.start:
                raise PlanningError(
                    f"invalid feedback MS: {feedback_ms} "
                    f"(xtal={ps.reference_freq:,.0f}/{ps.xtal_div})"
                )

        self._forget_skipped(Strategy.FRACTIONAL_OUTPUT)
        logger.info("Strategy 2: sweeping feedback MS down from %d", feedback_ms)
        n_plans = 0
        for value in self._sweep(feedback_ms, fb_rng.start):
            feedback_ms = int(value)
            f_vco = ps.reduced_reference * feedback_ms
            if f_vco < lim.vco_range.start:
                break

            ratio = self._approximate(f_vco / ps.reduced_anchor)
            if not out_rng.contains(ratio.value):
                logger.warning(
                    "invalid output MS: %s (clock=%.0f, f_VCO=%.0f)",
                    ratio,
                    ps.anchor_freq,
                    f_vco,
                )
                self.skipped.append(
                    SkippedCandidate(
                        strategy=Strategy.FRACTIONAL_OUTPUT,
                        swept_divider=feedback_ms,
                        vco_freq=f_vco,
                        ratio_value=ratio.value,
                        reason="output MS out of range",
                    )
                )
                continue

            anchor = ClockResult(
                index=ps.anchor_index,
                target=ps.anchor_freq,
                status=ClockStatus.ACHIEVED,
                ratio=ratio,
                achieved=f_vco / ratio.value / ps.r_div_factor,
                r_div=ps.r_div,
                tolerance=lim.clock_tolerance,
            )
            n_plans += 1
            yield CandidatePlan(
                strategy=Strategy.FRACTIONAL_OUTPUT,
                swept_divider=feedback_ms,
                vco_freq=f_vco,
                feedback=DividerRatio(feedback_ms),
                clocks=self._evaluate_clocks(f_vco, anchor),
                anchor_index=ps.anchor_index,
            )

        logger.info("Strategy 2: %d candidate plans", n_plans)

    def run(self) -> PlannerResult:
        """Run both strategies to completion. Fatal conditions propagate."""
        self.skipped = []
        fractional_feedback = list(self.iter_fractional_feedback())
        fractional_output = list(self.iter_fractional_output())
        return PlannerResult(
            request=self.request,
            prescale=self.prescale,
            fractional_feedback=fractional_feedback,
            fractional_output=fractional_output,
            skipped=list(self.skipped),
        )

    # Internal helpers --------------------------------------------------

    def _forget_skipped(self, strategy: Strategy) -> None:
        """Drop records of an earlier pass over the same strategy."""
        self.skipped = [s for s in self.skipped if s.strategy is not strategy]

    def _approximate(self, value: float) -> DividerRatio:
        return rational_approximation(value, self.limits.max_denominator)

    @staticmethod
    def _sweep(start: int, stop: float) -> np.ndarray:
        """Even divider values from start down to stop (inclusive)."""
        return np.arange(start, int(stop) - 1, -2)

    def _evaluate_clocks(
        self, pll_freq: Freq, anchor: ClockResult
    ) -> Tuple[ClockResult, ...]:
        results: List[ClockResult] = []
        for i, target in enumerate(self.request.clocks):
            if i == anchor.index:
                results.append(anchor)
            else:
                results.append(self._evaluate_clock(pll_freq, i, target))
        return tuple(results)

    def _evaluate_clock(self, pll_freq: Freq, index: int, target: Freq) -> ClockResult:
        tol = self.limits.clock_tolerance
        if target <= 0:
            return ClockResult(index, target, ClockStatus.NOT_COMPUTED, tolerance=tol)

        ratio = self._approximate(pll_freq / target)
        if not self.limits.output_range.contains(ratio.value):
            logger.debug(
                "clock %d: output MS %s out of range at f_VCO=%.0f",
                index,
                ratio,
                pll_freq,
            )
            return ClockResult(index, target, ClockStatus.OUT_OF_RANGE, tolerance=tol)

        return ClockResult(
            index,
            target,
            ClockStatus.ACHIEVED,
            ratio=ratio,
            achieved=pll_freq / ratio.value,
            tolerance=tol,
        )


def rank_candidates(
    plans: Iterable[CandidatePlan],
    limits: SynthLimits | None = None,
) -> List[CandidatePlan]:
    """
    Order candidates best first.

    Preference: every clock synthesized, no reported deviation, smaller worst
    error, more integer dividers (even integers count double), VCO nearer the
    middle of its range. Ties keep the search order.
    """
    vco_mid = (limits or SynthLimits()).vco_range.center

    def key(item: Tuple[int, CandidatePlan]):
        pos, plan = item
        exact = plan.is_exact
        integer_score = sum(
            2 if r.is_even_integer else 1 for r in plan.dividers if r.is_integer
        )
        return (
            plan.n_unreachable,
            not exact,
            0.0 if exact else plan.worst_error,
            -integer_score,
            abs(plan.vco_freq - vco_mid),
            pos,
        )

    return [plan for _, plan in sorted(enumerate(plans), key=key)]
