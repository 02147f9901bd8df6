# tests/conftest.py
from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import pytest

from si5351_planner.config_models import PlanRequest, SynthLimits


@pytest.fixture
def limits() -> SynthLimits:
    return SynthLimits()


@pytest.fixture
def request_25mhz() -> PlanRequest:
    """
    25 MHz crystal, clock 0 = 4.6875 MHz (exactly 25 MHz * 39.75 / 212),
    clock 1 = 66.672 MHz.

    No CLKIN_DIV and no R divider are needed.
    """
    return PlanRequest(reference_freq=25e6, clocks=[4_687_500.0, 66_672_000.0])


@pytest.fixture
def request_27mhz() -> PlanRequest:
    return PlanRequest(reference_freq=27e6, clocks=[4_687_500.0, 66_672_000.0])
