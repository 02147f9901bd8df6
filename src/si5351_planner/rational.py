# src/si5351_planner/rational.py
"""
Best rational approximation of divider ratios.

A multisynth divider is programmed as a + b/c with c bounded by the chip's
20-bit denominator. The approximation uses the continued-fraction expansion of
the fractional part and also scans the semiconvergents between consecutive
convergents, which are the only other candidates that can be a best
approximation under a denominator bound.

Reference:
  https://en.wikipedia.org/wiki/Continued_fraction#Best_rational_approximations
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

EPSILON = 1e-5
MAX_STEPS = 100


@dataclass(frozen=True)
class DividerRatio:
    """Divider value a + b/c."""
    a: int
    b: int = 0
    c: int = 1

    def __post_init__(self) -> None:
        if self.a < 0 or self.b < 0 or self.c < 1:
            raise ValueError(f"Invalid divider ratio {self.as_tuple()}")
        if self.b != 0 and self.b >= self.c:
            raise ValueError(f"Divider fraction must be proper: {self.b}/{self.c}")

    @property
    def value(self) -> float:
        return self.a + self.b / self.c

    @property
    def is_integer(self) -> bool:
        return self.b == 0

    @property
    def is_even_integer(self) -> bool:
        return self.b == 0 and self.a % 2 == 0

    @property
    def kind(self) -> str:
        if not self.is_integer:
            return "fractional"
        return "even integer" if self.is_even_integer else "integer"

    def as_tuple(self) -> Tuple[int, int, int]:
        return self.a, self.b, self.c

    def __str__(self) -> str:
        if self.is_integer:
            return str(self.a)
        return f"({self.a} + {self.b} / {self.c})"


def rational_approximation(value: float, max_denominator: int) -> DividerRatio:
    """
    Return the best representation value ~= a + b/c with c <= max_denominator.

    The result is never worse than plain truncation to a. Among candidates
    with equal error the first one found is kept; a later candidate replaces
    it only when strictly better.
    """
    if value < 0:
        raise ValueError(f"Cannot approximate a negative value: {value!r}")
    if max_denominator < 1:
        raise ValueError(f"max_denominator must be >= 1, got {max_denominator!r}")

    f0, af = math.modf(value)
    a = int(af)
    b, c = 0, 1
    f = f0
    delta = f0
    # the fractional part has a leading term a_0 = 0
    h = [1, 0]
    k = [0, 1]
    for _ in range(MAX_STEPS):
        if f <= EPSILON:
            break
        f, anf = math.modf(1.0 / f)
        an = int(anf)
        for m in range((an + 1) // 2, an + 1):
            hm = m * h[1] + h[0]
            km = m * k[1] + k[0]
            if km > max_denominator:
                break
            d = abs(hm / km - f0)
            if d < delta:
                delta = d
                b, c = hm, km
        hn = an * h[1] + h[0]
        kn = an * k[1] + k[0]
        h[0], h[1] = h[1], hn
        k[0], k[1] = k[1], kn

    if b == c:
        # fractional part rounded up to a whole unit
        return DividerRatio(a + 1, 0, 1)
    return DividerRatio(a, b, c)
