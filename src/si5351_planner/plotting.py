# src/si5351_planner/plotting.py
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt

from .config_models import CLOCK_TOLERANCE
from .planner import CandidatePlan, Strategy

_MARKERS = {
    Strategy.FRACTIONAL_FEEDBACK: "o",
    Strategy.FRACTIONAL_OUTPUT: "s",
}


def plot_plan_errors(
    plans: Sequence[CandidatePlan],
    out_path: Optional[str | Path] = None,
    tolerance: float = CLOCK_TOLERANCE,
) -> None:
    """
    Plot |achieved - target| per clock against VCO frequency, one marker
    style per strategy. Clocks that could not be synthesized are left out.
    """
    plt.figure()
    for strategy in Strategy:
        sel = [p for p in plans if p.strategy is strategy]
        if not sel:
            continue
        vco_mhz = np.array([p.vco_freq for p in sel]) / 1e6
        n_clocks = len(sel[0].clocks)
        for i in range(n_clocks):
            err = np.array(
                [
                    abs(p.clocks[i].error) if p.clocks[i].error is not None else np.nan
                    for p in sel
                ],
                dtype=float,
            )
            if np.all(np.isnan(err)):
                continue
            plt.plot(
                vco_mhz,
                err,
                _MARKERS[strategy],
                linestyle="none",
                label=f"strategy {strategy.value}, clock {i}",
            )

    plt.axhline(tolerance, linestyle="--", color="grey", label="tolerance")
    plt.yscale("symlog", linthresh=tolerance)
    plt.xlabel("VCO frequency (MHz)")
    plt.ylabel("|achieved - target| (Hz)")
    plt.title("Candidate plan errors")
    plt.legend()
    plt.grid(True)
    if out_path:
        out_path = Path(out_path)
        plt.savefig(out_path, dpi=150, bbox_inches="tight")
        plt.close()
    else:
        plt.show()
