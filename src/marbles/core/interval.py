"""Parametric intervals for clipping ray intersections.

An Interval is the admissible range of the ray parameter t for a single cast.
Intersection routines accept a hit only when the interval *surrounds* t
(strict inequality on both ends), which keeps secondary rays from re-hitting
the surface they just left.

Example:
    >>> @ti.kernel
    ... def demo() -> ti.i32:
    ...     interval = Interval(min=0.001, max=10.0)
    ...     return surrounds(interval, 5.0)
"""

import taichi as ti

# Default clipping window for every cast. T_MIN keeps scattered rays from
# hitting their own origin surface due to floating-point error.
T_MIN = 0.001
T_MAX = 1e10


@ti.dataclass
class Interval:
    """A range [min, max] of the ray parameter.

    Attributes:
        min: Lower bound of the range.
        max: Upper bound of the range. An interval with min > max is empty.
    """

    min: ti.f32
    max: ti.f32


@ti.func
def make_interval(lo: ti.f32, hi: ti.f32) -> Interval:
    """Create an interval from its bounds."""
    return Interval(min=lo, max=hi)


@ti.func
def size(interval: Interval) -> ti.f32:
    """Return the length max - min of the interval."""
    return interval.max - interval.min


@ti.func
def contains(interval: Interval, x: ti.f32) -> ti.i32:
    """Return 1 if min <= x <= max, else 0."""
    return interval.min <= x and x <= interval.max


@ti.func
def surrounds(interval: Interval, x: ti.f32) -> ti.i32:
    """Return 1 if min < x < max, else 0."""
    return interval.min < x and x < interval.max


@ti.func
def clamp(interval: Interval, x: ti.f32) -> ti.f32:
    """Clamp x into [min, max]."""
    result = x
    if x < interval.min:
        result = interval.min
    elif x > interval.max:
        result = interval.max
    return result


@ti.func
def with_max(interval: Interval, hi: ti.f32) -> Interval:
    """Return a copy of the interval with its upper bound replaced."""
    return Interval(min=interval.min, max=hi)
