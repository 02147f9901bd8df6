# src/si5351_planner/outputs.py
from __future__ import annotations

import json
from typing import Iterable, Optional, TextIO

import yaml

from .planner import CandidatePlan, ClockResult, ClockStatus, Planner, Strategy
from .prescale import Prescale
from .rational import DividerRatio

FORMATS = ("text", "json", "yaml")

_SCENARIO_NAMES = {
    Strategy.FRACTIONAL_FEEDBACK: "first scenario",
    Strategy.FRACTIONAL_OUTPUT: "second scenario",
}


def _hz(f: float) -> str:
    return f"{f:,.0f}"


def _kind_tag(ratio: DividerRatio) -> str:
    if ratio.is_integer:
        return f"   -> {ratio.kind}"
    return ""


def ratio_to_record(ratio: Optional[DividerRatio]) -> Optional[dict]:
    if ratio is None:
        return None
    return {
        "a": ratio.a,
        "b": ratio.b,
        "c": ratio.c,
        "value": ratio.value,
        "kind": ratio.kind,
    }


def clock_to_record(clock: ClockResult) -> dict:
    return {
        "index": clock.index,
        "target": clock.target,
        "status": clock.status.value,
        "output_ms": ratio_to_record(clock.ratio),
        "r_div": clock.r_div,
        "achieved": clock.achieved,
        "error": clock.error,
        "deviation": clock.deviation,
    }


def plan_to_record(plan: CandidatePlan, prescale: Prescale) -> dict:
    """
    Plain-dict view of a candidate plan, suitable for JSON / YAML.

    Frequencies are in Hz; divider exponents (clkin_div, r_div) are powers of two.
    """
    return {
        "strategy": plan.strategy.name.lower(),
        "swept_divider": plan.swept_divider,
        "reference_freq": prescale.reference_freq,
        "clkin_div": prescale.clkin_div,
        "vco_freq": plan.vco_freq,
        "feedback_ms": ratio_to_record(plan.feedback),
        "exact": plan.is_exact,
        "clocks": [clock_to_record(c) for c in plan.clocks],
    }


def format_candidate(plan: CandidatePlan, prescale: Prescale) -> str:
    """Human-readable block for one candidate (one line per quantity)."""
    lines = []
    xtal = f"{_hz(prescale.reference_freq)}/{prescale.xtal_div}"
    pll = _hz(plan.vco_freq)
    lines.append(
        f"actual PLL frequency: {xtal} * {plan.feedback} = {pll}{_kind_tag(plan.feedback)}"
    )

    for clock in plan.clocks:
        if clock.status is ClockStatus.NOT_COMPUTED:
            continue
        if clock.status is ClockStatus.OUT_OF_RANGE:
            lines.append(
                f"clock {clock.index}: output MS out of range for this PLL frequency"
            )
            continue

        ratio = clock.ratio
        if clock.index == plan.anchor_index:
            if plan.strategy is Strategy.FRACTIONAL_FEEDBACK:
                divide = f"{ratio.a * (1 << clock.r_div)}"
            else:
                divide = f"{ratio} / {1 << clock.r_div}"
        else:
            divide = f"{ratio}"
        lines.append(
            f"actual clock {clock.index}: {pll} / {divide} = "
            f"{_hz(clock.achieved)}{_kind_tag(ratio)}"
        )
        if clock.deviation is not None:
            lines.append(f"*** clock {clock.index} difference: {clock.deviation:.3g}")

    return "\n".join(lines) + "\n"


def write_plans(
    stream: TextIO,
    plans: Iterable[CandidatePlan],
    prescale: Prescale,
    fmt: str = "text",
) -> int:
    """
    Write candidates as they arrive.

    text -> blank-line separated blocks
    json -> one JSON object per line
    yaml -> one YAML document per candidate
    """
    if fmt not in FORMATS:
        raise ValueError(f"Unknown output format {fmt!r}; expected one of {FORMATS}")

    n = 0
    for plan in plans:
        if fmt == "text":
            stream.write(format_candidate(plan, prescale) + "\n")
        elif fmt == "json":
            stream.write(json.dumps(plan_to_record(plan, prescale)) + "\n")
        else:
            stream.write(
                yaml.safe_dump(
                    plan_to_record(plan, prescale),
                    explicit_start=True,
                    sort_keys=False,
                )
            )
        stream.flush()
        n += 1
    return n


def write_report(stream: TextIO, planner: Planner, fmt: str = "text") -> int:
    """
    Stream both strategies' candidates to stream, strategy 1 first.

    A fatal PlanningError from strategy 2 propagates after strategy 1 output
    has already been written. Returns the number of candidates written.
    """
    if fmt not in FORMATS:
        raise ValueError(f"Unknown output format {fmt!r}; expected one of {FORMATS}")

    prescale = planner.prescale
    if fmt == "text" and prescale.clkin_div > 0:
        stream.write(f"--> CLKIN_DIV={prescale.clkin_div}\n\n")

    n = 0
    for strategy in Strategy:
        if fmt == "text":
            stream.write(f"{_SCENARIO_NAMES[strategy]} - {strategy.description}\n\n")
        n += write_plans(stream, planner.iter_strategy(strategy), prescale, fmt)
        if fmt == "text":
            stream.write("\n")
    return n
