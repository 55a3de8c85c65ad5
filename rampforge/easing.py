"""Named time-remapping curves plus cubic-Bezier curves.

Every curve maps normalized progress in [0, 1] to normalized progress.
Registered curves return exactly 0.0 at t=0 and exactly 1.0 at t=1; "back" and
"elastic" variants may overshoot strictly between the endpoints.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Iterator

logger = logging.getLogger(__name__)

EasingFunction = Callable[[float], float]

DEFAULT_EASING = "dramaticSwoop"

# Bezier solver tuning
NEWTON_ITERATIONS = 8
NEWTON_EPSILON = 1e-6
MIN_SLOPE = 1e-6
BISECTION_ITERATIONS = 64


def _exact_bounds(fn: EasingFunction) -> EasingFunction:
    """Pin t=0 -> 0.0 and t=1 -> 1.0 regardless of floating-point residue."""

    def wrapped(t: float) -> float:
        if t == 0.0:
            return 0.0
        if t == 1.0:
            return 1.0
        return fn(t)

    wrapped.__name__ = fn.__name__
    wrapped.__doc__ = fn.__doc__
    return wrapped


# ---------------------------------------------------------------------------
# Base functions
# ---------------------------------------------------------------------------

def linear(t: float) -> float:
    return t


def _power_in(n: int) -> EasingFunction:
    def ease(t: float) -> float:
        return t ** n
    return ease


def _power_out(n: int) -> EasingFunction:
    def ease(t: float) -> float:
        return 1 - (1 - t) ** n
    return ease


def _power_in_out(n: int) -> EasingFunction:
    def ease(t: float) -> float:
        if t < 0.5:
            return 2 ** (n - 1) * t ** n
        return 1 - (-2 * t + 2) ** n / 2
    return ease


ease_in_quad = _power_in(2)
ease_out_quad = _power_out(2)
ease_in_out_quad = _power_in_out(2)
ease_in_cubic = _power_in(3)
ease_out_cubic = _power_out(3)
ease_in_out_cubic = _power_in_out(3)
ease_in_quart = _power_in(4)
ease_out_quart = _power_out(4)
ease_in_out_quart = _power_in_out(4)
ease_in_quint = _power_in(5)
ease_out_quint = _power_out(5)
ease_in_out_quint = _power_in_out(5)


def ease_in_sine(t: float) -> float:
    return 1 - math.cos(t * math.pi / 2)


def ease_out_sine(t: float) -> float:
    return math.sin(t * math.pi / 2)


def ease_in_out_sine(t: float) -> float:
    return -(math.cos(math.pi * t) - 1) / 2


def ease_in_expo(t: float) -> float:
    if t == 0:
        return 0.0
    return 2 ** (10 * t - 10)


def ease_out_expo(t: float) -> float:
    if t == 1:
        return 1.0
    return 1 - 2 ** (-10 * t)


def ease_in_out_expo(t: float) -> float:
    if t == 0:
        return 0.0
    if t == 1:
        return 1.0
    if t < 0.5:
        return 2 ** (20 * t - 10) / 2
    return (2 - 2 ** (-20 * t + 10)) / 2


def ease_in_circ(t: float) -> float:
    return 1 - math.sqrt(1 - t ** 2)


def ease_out_circ(t: float) -> float:
    return math.sqrt(1 - (t - 1) ** 2)


def ease_in_out_circ(t: float) -> float:
    if t < 0.5:
        return (1 - math.sqrt(1 - (2 * t) ** 2)) / 2
    return (math.sqrt(1 - (-2 * t + 2) ** 2) + 1) / 2


_ELASTIC_C4 = (2 * math.pi) / 3
_ELASTIC_C5 = (2 * math.pi) / 4.5


def ease_in_elastic(t: float) -> float:
    if t == 0:
        return 0.0
    if t == 1:
        return 1.0
    return -(2 ** (10 * t - 10)) * math.sin((t * 10 - 10.75) * _ELASTIC_C4)


def ease_out_elastic(t: float) -> float:
    if t == 0:
        return 0.0
    if t == 1:
        return 1.0
    return 2 ** (-10 * t) * math.sin((t * 10 - 0.75) * _ELASTIC_C4) + 1


def ease_in_out_elastic(t: float) -> float:
    if t == 0:
        return 0.0
    if t == 1:
        return 1.0
    if t < 0.5:
        return -(2 ** (20 * t - 10) * math.sin((20 * t - 11.125) * _ELASTIC_C5)) / 2
    return (2 ** (-20 * t + 10) * math.sin((20 * t - 11.125) * _ELASTIC_C5)) / 2 + 1


_BACK_C1 = 1.70158
_BACK_C2 = _BACK_C1 * 1.525
_BACK_C3 = _BACK_C1 + 1


def ease_in_back(t: float) -> float:
    return _BACK_C3 * t ** 3 - _BACK_C1 * t ** 2


def ease_out_back(t: float) -> float:
    return 1 + _BACK_C3 * (t - 1) ** 3 + _BACK_C1 * (t - 1) ** 2


def ease_in_out_back(t: float) -> float:
    if t < 0.5:
        return ((2 * t) ** 2 * ((_BACK_C2 + 1) * 2 * t - _BACK_C2)) / 2
    return ((2 * t - 2) ** 2 * ((_BACK_C2 + 1) * (t * 2 - 2) + _BACK_C2) + 2) / 2


_BOUNCE_N1 = 7.5625
_BOUNCE_D1 = 2.75


def ease_out_bounce(t: float) -> float:
    if t < 1 / _BOUNCE_D1:
        return _BOUNCE_N1 * t * t
    if t < 2 / _BOUNCE_D1:
        t -= 1.5 / _BOUNCE_D1
        return _BOUNCE_N1 * t * t + 0.75
    if t < 2.5 / _BOUNCE_D1:
        t -= 2.25 / _BOUNCE_D1
        return _BOUNCE_N1 * t * t + 0.9375
    t -= 2.625 / _BOUNCE_D1
    return _BOUNCE_N1 * t * t + 0.984375


def ease_in_bounce(t: float) -> float:
    return 1 - ease_out_bounce(1 - t)


def ease_in_out_bounce(t: float) -> float:
    if t < 0.5:
        return (1 - ease_out_bounce(1 - 2 * t)) / 2
    return (1 + ease_out_bounce(2 * t - 1)) / 2


# ---------------------------------------------------------------------------
# Cubic Bezier
# ---------------------------------------------------------------------------

class BezierCurve:
    """CSS-style cubic-Bezier timing curve through (0,0), P1, P2, (1,1).

    Control x-values are clamped to [0, 1] so x(s) stays monotonic and can be
    inverted; y-values are free, which allows overshoot.
    """

    def __init__(self, p1x: float, p1y: float, p2x: float, p2y: float):
        self.p1x = min(max(p1x, 0.0), 1.0)
        self.p1y = p1y
        self.p2x = min(max(p2x, 0.0), 1.0)
        self.p2y = p2y

        # Polynomial coefficients: x(s) = ((ax*s + bx)*s + cx)*s
        self._cx = 3 * self.p1x
        self._bx = 3 * (self.p2x - self.p1x) - self._cx
        self._ax = 1 - self._cx - self._bx
        self._cy = 3 * self.p1y
        self._by = 3 * (self.p2y - self.p1y) - self._cy
        self._ay = 1 - self._cy - self._by

    @property
    def control_points(self) -> tuple[float, float, float, float]:
        return (self.p1x, self.p1y, self.p2x, self.p2y)

    def _sample_x(self, s: float) -> float:
        return ((self._ax * s + self._bx) * s + self._cx) * s

    def _sample_y(self, s: float) -> float:
        return ((self._ay * s + self._by) * s + self._cy) * s

    def _slope_x(self, s: float) -> float:
        return (3 * self._ax * s + 2 * self._bx) * s + self._cx

    def solve_parameter(self, x: float) -> float:
        """Find s in [0, 1] with x(s) == x.

        Newton-Raphson first; bisection when the slope flattens out, the
        estimate leaves [0, 1], or the iteration budget runs out.
        """
        s = x
        for _ in range(NEWTON_ITERATIONS):
            error = self._sample_x(s) - x
            if abs(error) < NEWTON_EPSILON:
                return s
            slope = self._slope_x(s)
            if abs(slope) < MIN_SLOPE:
                break
            s -= error / slope
            if not 0.0 <= s <= 1.0:
                break

        lo, hi = 0.0, 1.0
        s = x
        for _ in range(BISECTION_ITERATIONS):
            current = self._sample_x(s)
            if abs(current - x) < NEWTON_EPSILON:
                break
            if x > current:
                lo = s
            else:
                hi = s
            s = (lo + hi) / 2
        return s

    def __call__(self, t: float) -> float:
        if t <= 0:
            return 0.0
        if t >= 1:
            return 1.0
        return self._sample_y(self.solve_parameter(t))

    def __repr__(self) -> str:
        return "BezierCurve({}, {}, {}, {})".format(*self.control_points)


def make_bezier(p1x: float, p1y: float, p2x: float, p2y: float) -> BezierCurve:
    return BezierCurve(p1x, p1y, p2x, p2y)


def make_hybrid(first: EasingFunction, second: EasingFunction) -> EasingFunction:
    """Run ``first`` over [0, 0.5] and ``second`` over [0.5, 1].

    Each sub-curve's own [0, 1] domain and range are squeezed onto its half, so
    the result still starts at 0, passes through 0.5 and ends at 1.
    """

    def hybrid(t: float) -> float:
        if t < 0.5:
            return first(t * 2) / 2
        return 0.5 + second((t - 0.5) * 2) / 2

    return hybrid


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

BASE_FUNCTIONS: dict[str, EasingFunction] = {
    "linear": linear,
    "easeInQuad": ease_in_quad,
    "easeOutQuad": ease_out_quad,
    "easeInOutQuad": ease_in_out_quad,
    "easeInCubic": ease_in_cubic,
    "easeOutCubic": ease_out_cubic,
    "easeInOutCubic": ease_in_out_cubic,
    "easeInQuart": ease_in_quart,
    "easeOutQuart": ease_out_quart,
    "easeInOutQuart": ease_in_out_quart,
    "easeInQuint": ease_in_quint,
    "easeOutQuint": ease_out_quint,
    "easeInOutQuint": ease_in_out_quint,
    "easeInSine": ease_in_sine,
    "easeOutSine": ease_out_sine,
    "easeInOutSine": ease_in_out_sine,
    "easeInExpo": ease_in_expo,
    "easeOutExpo": ease_out_expo,
    "easeInOutExpo": ease_in_out_expo,
    "easeInCirc": ease_in_circ,
    "easeOutCirc": ease_out_circ,
    "easeInOutCirc": ease_in_out_circ,
    "easeInElastic": ease_in_elastic,
    "easeOutElastic": ease_out_elastic,
    "easeInOutElastic": ease_in_out_elastic,
    "easeInBack": ease_in_back,
    "easeOutBack": ease_out_back,
    "easeInOutBack": ease_in_out_back,
    "easeInBounce": ease_in_bounce,
    "easeOutBounce": ease_out_bounce,
    "easeInOutBounce": ease_in_out_bounce,
}

BEZIER_PRESETS: dict[str, tuple[float, float, float, float]] = {
    # Near-freeze at both ends, whip through the middle
    "dramaticSwoop": (0.85, 0.0, 0.15, 1.0),
    "smoothSwoop": (0.65, 0.0, 0.35, 1.0),
    "gentleSwoop": (0.45, 0.0, 0.55, 1.0),
    "snapSwoop": (0.95, 0.0, 0.05, 1.0),
    "overshootSwoop": (0.75, -0.15, 0.25, 1.15),
    "cssEase": (0.25, 0.1, 0.25, 1.0),
    "cssEaseIn": (0.42, 0.0, 1.0, 1.0),
    "cssEaseOut": (0.0, 0.0, 0.58, 1.0),
    "cssEaseInOut": (0.42, 0.0, 0.58, 1.0),
}

HYBRID_PRESETS: dict[str, tuple[str, str]] = {
    "quartInExpoOut": ("easeInQuart", "easeOutExpo"),
    "expoInQuartOut": ("easeInExpo", "easeOutQuart"),
    "sineInCubicOut": ("easeInSine", "easeOutCubic"),
    "cubicInSineOut": ("easeInCubic", "easeOutSine"),
}


class EasingRegistry(Mapping):
    """Read-only name -> curve lookup across base, Bezier and hybrid tiers."""

    def __init__(
        self,
        base: Mapping[str, EasingFunction],
        bezier: Mapping[str, EasingFunction],
        hybrid: Mapping[str, EasingFunction],
    ):
        self._tiers = MappingProxyType({
            "base": MappingProxyType(dict(base)),
            "bezier": MappingProxyType(dict(bezier)),
            "hybrid": MappingProxyType(dict(hybrid)),
        })
        merged: dict[str, EasingFunction] = {}
        for tier in self._tiers.values():
            merged.update(tier)
        self._curves = MappingProxyType(merged)

    def __getitem__(self, name: str) -> EasingFunction:
        return self._curves[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._curves)

    def __len__(self) -> int:
        return len(self._curves)

    @property
    def tiers(self) -> Mapping[str, Mapping[str, EasingFunction]]:
        return self._tiers

    def names(self) -> dict[str, list[str]]:
        return {tier: list(curves) for tier, curves in self._tiers.items()}

    def resolve(self, name: str) -> EasingFunction:
        """Look up a curve by name, falling back to linear for unknown names."""
        curve = self._curves.get(name)
        if curve is None:
            logger.warning("Unknown easing %r, falling back to linear", name)
            return self._curves.get("linear", linear)
        return curve


def build_registry() -> EasingRegistry:
    base = {name: _exact_bounds(fn) for name, fn in BASE_FUNCTIONS.items()}
    bezier = {name: make_bezier(*points) for name, points in BEZIER_PRESETS.items()}
    hybrid = {
        name: _exact_bounds(make_hybrid(base[first], base[second]))
        for name, (first, second) in HYBRID_PRESETS.items()
    }
    return EasingRegistry(base, bezier, hybrid)


DEFAULT_REGISTRY = build_registry()


def evaluate(
    curve: str | EasingFunction,
    t: float,
    registry: EasingRegistry = DEFAULT_REGISTRY,
) -> float:
    """Evaluate a curve (by name or callable) at progress ``t``.

    NaN is rejected; any other input is clamped to [0, 1] first.
    """
    if math.isnan(t):
        raise ValueError("easing progress must be a number, got NaN")
    t = min(max(t, 0.0), 1.0)
    fn = registry.resolve(curve) if isinstance(curve, str) else curve
    return fn(t)


# ---------------------------------------------------------------------------
# Caller selection
# ---------------------------------------------------------------------------

def parse_bezier(text: str) -> tuple[float, float, float, float]:
    """Parse ``"p1x,p1y,p2x,p2y"`` into four floats."""
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 4:
        raise ValueError(f"Bezier needs 4 comma-separated numbers, got {text!r}")
    try:
        p1x, p1y, p2x, p2y = (float(p) for p in parts)
    except ValueError:
        raise ValueError(f"Bezier control points must be numbers, got {text!r}") from None
    return (p1x, p1y, p2x, p2y)


@dataclass(frozen=True)
class EasingSpec:
    """Easing selection: a registered name, or explicit Bezier control points.

    When ``bezier`` is set it wins over ``name``.
    """

    name: str = DEFAULT_EASING
    bezier: tuple[float, float, float, float] | None = None

    @classmethod
    def from_value(cls, value) -> "EasingSpec":
        """Build from a manifest/API value: a name, a "a,b,c,d" string, or 4 numbers."""
        if isinstance(value, EasingSpec):
            return value
        if isinstance(value, (list, tuple)):
            if len(value) != 4:
                raise ValueError(f"Bezier needs 4 control values, got {len(value)}")
            return cls(bezier=tuple(float(v) for v in value))
        if isinstance(value, str):
            if "," in value:
                return cls(bezier=parse_bezier(value))
            return cls(name=value)
        raise ValueError(f"Unsupported easing value: {value!r}")

    @property
    def label(self) -> str:
        if self.bezier is not None:
            return "bezier({})".format(",".join(f"{v:g}" for v in self.bezier))
        return self.name

    def resolve(self, registry: EasingRegistry = DEFAULT_REGISTRY) -> EasingFunction:
        if self.bezier is not None:
            return make_bezier(*self.bezier)
        return registry.resolve(self.name)
