# tests/test_rational.py
from __future__ import annotations

import math
from fractions import Fraction

import numpy as np
import pytest

from si5351_planner.config_models import MAX_DENOMINATOR
from si5351_planner.rational import DividerRatio, rational_approximation


def _abs_error(ratio: DividerRatio, value: float) -> float:
    return abs(ratio.value - value)


def test_integer_values_are_returned_unchanged():
    assert rational_approximation(24.0, MAX_DENOMINATOR).as_tuple() == (24, 0, 1)
    assert rational_approximation(0.0, MAX_DENOMINATOR).as_tuple() == (0, 0, 1)
    assert rational_approximation(90.0, 1).as_tuple() == (90, 0, 1)


def test_simple_fractions():
    # 993.75 MHz / 25 MHz
    assert rational_approximation(39.75, MAX_DENOMINATOR).as_tuple() == (39, 3, 4)
    # 1000 MHz / 4.6875 MHz
    assert rational_approximation(1e9 / 4_687_500, MAX_DENOMINATOR).as_tuple() == (213, 1, 3)


def test_pi_under_denominator_bounds():
    """Classic best approximations of pi: 311/99 (c <= 100) and 355/113 (c <= 1000)."""
    assert rational_approximation(math.pi, 100).as_tuple() == (3, 14, 99)
    assert rational_approximation(math.pi, 1000).as_tuple() == (3, 16, 113)
    assert rational_approximation(math.pi, 7).as_tuple() == (3, 1, 7)


def test_fraction_rounding_up_is_folded_into_integer_part():
    """
    A fractional part within rounding of 1 is best approximated by 1/1; the
    result must still keep b < c.
    """
    r = rational_approximation(29.999995, MAX_DENOMINATOR)
    assert r.as_tuple() == (30, 0, 1)
    assert r.is_even_integer


def test_invalid_arguments():
    with pytest.raises(ValueError):
        rational_approximation(-1.0, MAX_DENOMINATOR)
    with pytest.raises(ValueError):
        rational_approximation(1.5, 0)


@pytest.mark.parametrize("max_denominator", [1, 2, 10, 1000, MAX_DENOMINATOR])
def test_result_invariants_and_never_worse_than_truncation(max_denominator):
    rng = np.random.default_rng(1234)
    values = list(rng.uniform(0.0, 1000.0, size=200)) + [0.5, 1e-6, 0.999999, 15.0, 899.9]
    for value in values:
        value = float(value)
        r = rational_approximation(value, max_denominator)
        assert 1 <= r.c <= max_denominator
        assert r.b == 0 or 0 < r.b < r.c
        assert r.a >= 0
        trunc_error = value - math.floor(value)
        assert _abs_error(r, value) <= trunc_error + 1e-12


def test_error_is_monotone_in_denominator_bound():
    rng = np.random.default_rng(42)
    bounds = [1, 3, 10, 100, 1000, 10_000, MAX_DENOMINATOR]
    for value in rng.uniform(0.0, 100.0, size=100):
        value = float(value)
        errors = [_abs_error(rational_approximation(value, d), value) for d in bounds]
        for looser, tighter in zip(errors[1:], errors[:-1]):
            assert looser <= tighter + 1e-12


@pytest.mark.parametrize(
    "fraction",
    ["7/3", "22/7", "355/113", "1234/567", "165625/11112", "3/64", "999/1000"],
)
def test_exact_on_rationals_with_small_denominator(fraction):
    f = Fraction(fraction)
    value = f.numerator / f.denominator
    r = rational_approximation(value, MAX_DENOMINATOR)
    assert _abs_error(r, value) < 1e-12
    assert Fraction(r.a) + Fraction(r.b, r.c) == f


def test_divider_ratio_classification():
    assert DividerRatio(40).kind == "even integer"
    assert DividerRatio(39).kind == "integer"
    assert DividerRatio(39, 3, 4).kind == "fractional"
    assert DividerRatio(39, 3, 4).value == pytest.approx(39.75)
    assert str(DividerRatio(39, 3, 4)) == "(39 + 3 / 4)"
    assert str(DividerRatio(212)) == "212"


def test_divider_ratio_rejects_improper_fraction():
    with pytest.raises(ValueError):
        DividerRatio(3, 4, 4)
    with pytest.raises(ValueError):
        DividerRatio(3, 1, 0)
