# src/si5351_planner/__init__.py
"""
Si5351 Frequency Planner.

Searches PLL feedback and output multisynth settings for a clock generator:

    XTAL/CLKIN -> CLKIN_DIV -> PLL (feedback MS, a + b/c) -> VCO
        -> output MS (a + b/c) -> R divider -> CLKn

Divider fractions are found with a continued-fraction best rational
approximation bounded by the multisynth denominator.
"""

from .config_models import (
    PlanRequest,
    PlanningError,
    RequestError,
    SynthLimits,
)

from .rational import (
    DividerRatio,
    rational_approximation,
)

from .planner import (
    CandidatePlan,
    ClockResult,
    ClockStatus,
    Planner,
    PlannerResult,
    Strategy,
    rank_candidates,
)

__all__ = [
    "PlanRequest",
    "PlanningError",
    "RequestError",
    "SynthLimits",
    "DividerRatio",
    "rational_approximation",
    "CandidatePlan",
    "ClockResult",
    "ClockStatus",
    "Planner",
    "PlannerResult",
    "Strategy",
    "rank_candidates",
]
