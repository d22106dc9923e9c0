"""Keyframe tracks and animated transforms.

A Track is a sparse, strictly time-ordered list of keyframes for one
animatable property. Evaluation clamps outside the keyframe span and
interpolates inside it, applying the easing of the keyframe being
approached (the later one of the bracketing pair).

Values only need a "lerp-able" capability: plain numbers lerp
arithmetically, anything with a ``lerp(other, p)`` method (Vec2) lerps
componentwise.
"""

from bisect import bisect_right
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

from .easing import Easing
from .errors import ConstructionError
from .scene import Transform, Vec2


class Lerpable(Protocol):
    def lerp(self, other: Any, p: float) -> Any: ...


T = TypeVar("T")


def lerp(a: float | Lerpable, b: float | Lerpable, p: float):
    """Interpolate between two values of the same lerp-able type."""
    if hasattr(a, "lerp"):
        return a.lerp(b, p)
    return a + (b - a) * p


@dataclass(frozen=True)
class Keyframe(Generic[T]):
    time: float
    value: T
    easing: Easing = Easing.LINEAR


def interpolate(k0: Keyframe, k1: Keyframe, t: float):
    """Value between two adjacent keyframes at time t.

    Uses k1's easing. A zero-length span snaps to k1's value.
    """
    span = k1.time - k0.time
    if span <= 0:
        return k1.value
    p = (t - k0.time) / span
    return lerp(k0.value, k1.value, k1.easing.apply(p))


class Track(Generic[T]):
    """Sparse keyframe sequence for one property.

    Raises:
        ConstructionError: Empty keyframe list, negative time, or times
            that are not strictly increasing.
    """

    def __init__(self, keyframes):
        keyframes = tuple(keyframes)
        if not keyframes:
            raise ConstructionError("track needs at least one keyframe")
        if keyframes[0].time < 0:
            raise ConstructionError(
                f"keyframe time must be >= 0, got {keyframes[0].time}"
            )
        for prev, cur in zip(keyframes, keyframes[1:]):
            if cur.time <= prev.time:
                raise ConstructionError(
                    "keyframe times must be strictly increasing "
                    f"({prev.time} followed by {cur.time})"
                )
        self._keyframes = keyframes
        self._times = tuple(k.time for k in keyframes)

    @classmethod
    def from_constant(cls, value) -> "Track":
        return cls([Keyframe(0.0, value)])

    @property
    def keyframes(self) -> tuple[Keyframe, ...]:
        return self._keyframes

    def evaluate(self, t: float):
        keys = self._keyframes
        if t <= keys[0].time:
            return keys[0].value
        if t >= keys[-1].time:
            return keys[-1].value
        # keys[i].time <= t < keys[i + 1].time
        i = bisect_right(self._times, t) - 1
        return interpolate(keys[i], keys[i + 1], t)

    def __eq__(self, other):
        if not isinstance(other, Track):
            return NotImplemented
        return self._keyframes == other._keyframes

    def __hash__(self):
        return hash(self._keyframes)

    def __repr__(self):
        return f"Track({list(self._keyframes)!r})"


@dataclass(frozen=True)
class AnimatedTransform:
    """Four independently keyed tracks that resolve to a Transform."""

    position: Track
    scale: Track
    rotation: Track
    opacity: Track

    @classmethod
    def constant(cls, transform: Transform | None = None) -> "AnimatedTransform":
        transform = transform or Transform()
        return cls(
            position=Track.from_constant(transform.position),
            scale=Track.from_constant(transform.scale),
            rotation=Track.from_constant(transform.rotation),
            opacity=Track.from_constant(transform.opacity),
        )

    @classmethod
    def build(
        cls,
        position: Track | None = None,
        scale: Track | None = None,
        rotation: Track | None = None,
        opacity: Track | None = None,
    ) -> "AnimatedTransform":
        """Fill unspecified tracks with the identity transform's values."""
        return cls(
            position=position or Track.from_constant(Vec2.ZERO),
            scale=scale or Track.from_constant(Vec2.ONE),
            rotation=rotation or Track.from_constant(0.0),
            opacity=opacity or Track.from_constant(1.0),
        )

    def evaluate(self, t: float) -> Transform:
        return Transform(
            position=self.position.evaluate(t),
            scale=self.scale.evaluate(t),
            rotation=self.rotation.evaluate(t),
            opacity=self.opacity.evaluate(t),
        )
