"""Easing curves — map normalized progress [0, 1] to eased progress [0, 1].

Every curve is pure, monotonic on [0, 1], and pins f(0) = 0, f(1) = 1.
Input outside [0, 1] is clamped before the curve is applied.
"""

from enum import Enum


def linear(p: float) -> float:
    return p


def ease_in_out_quad(p: float) -> float:
    if p < 0.5:
        return 2.0 * p * p
    return 1.0 - (-2.0 * p + 2.0) ** 2 / 2.0


def ease_out_cubic(p: float) -> float:
    return 1.0 - (1.0 - p) ** 3


class Easing(Enum):
    """Easing kind attached to a keyframe."""

    LINEAR = "linear"
    EASE_IN_OUT_QUAD = "ease_in_out_quad"
    EASE_OUT_CUBIC = "ease_out_cubic"

    def apply(self, p: float) -> float:
        """Return eased progress for raw progress p."""
        p = min(1.0, max(0.0, p))
        return _CURVES[self](p)

    @classmethod
    def parse(cls, name: str) -> "Easing":
        """Look up an easing by its manifest name (e.g. 'ease_out_cubic')."""
        try:
            return cls(name)
        except ValueError:
            raise ValueError(
                f"Unknown easing: '{name}'. Valid: {sorted(e.value for e in cls)}"
            ) from None


_CURVES = {
    Easing.LINEAR: linear,
    Easing.EASE_IN_OUT_QUAD: ease_in_out_quad,
    Easing.EASE_OUT_CUBIC: ease_out_cubic,
}
