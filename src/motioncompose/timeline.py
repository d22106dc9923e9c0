"""Timeline — layers of clips sampled into per-frame scene snapshots.

A Timeline is built once (append-only) and then sampled any number of
times. ``sample(t)`` is a pure function of the timeline and t:

  - Layers are drawn in ascending (priority, declaration index) order,
    where priority is the layer's explicit z if set, else its index.
    Equal explicit z values fall back to declaration order.
  - Within a layer, clips keep declaration order, so later clips draw
    over earlier ones.
  - A clip contributes iff start <= t < end. Inactive clips are absent
    from the snapshot, not hidden.
"""

import math
from dataclasses import InitVar, dataclass, field, replace

from .errors import ConstructionError, QueryError
from .scene import DrawableObject, Transform
from .track import AnimatedTransform


def _check_bounds(start: float, end: float, duration: float | None) -> None:
    if duration is not None and duration <= 0:
        raise ConstructionError(f"duration must be > 0, got {duration}")
    if start < 0 or end <= start:
        raise ConstructionError(
            f"clip bounds must satisfy 0 <= start < end (got {start}, {end})"
        )
    if duration is not None and end > duration:
        raise ConstructionError(
            f"clip end ({end}) exceeds timeline duration ({duration})"
        )


@dataclass(frozen=True)
class Clip:
    """An object plus animated transform, active over [start, end).

    Pass the timeline duration to validate eagerly; Timeline.add_layer
    validates again against its own duration.
    """

    start: float
    end: float
    object: DrawableObject
    transform: AnimatedTransform = field(default_factory=AnimatedTransform.constant)
    duration: InitVar[float | None] = None

    def __post_init__(self, duration):
        _check_bounds(self.start, self.end, duration)

    def is_active(self, t: float) -> bool:
        return self.start <= t < self.end

    def validate_against(self, duration: float) -> None:
        _check_bounds(self.start, self.end, duration)


@dataclass
class Layer:
    """Ordered clips sharing one stacking priority."""

    name: str
    z: int | None = None
    clips: list[Clip] = field(default_factory=list)

    def with_z(self, z: int) -> "Layer":
        return replace(self, z=z, clips=list(self.clips))

    def add_clip(self, clip: Clip) -> None:
        self.clips.append(clip)


@dataclass(frozen=True)
class SampledClip:
    object: DrawableObject
    transform: Transform


@dataclass(frozen=True)
class SampledLayer:
    name: str
    clips: tuple[SampledClip, ...]


@dataclass(frozen=True)
class SampledScene:
    """Visible objects at one instant, in draw order (back to front)."""

    layers: tuple[SampledLayer, ...]

    def objects(self) -> list[SampledClip]:
        """Flatten all layers into one back-to-front list."""
        return [clip for layer in self.layers for clip in layer.clips]


def _copy_layer(layer: Layer) -> Layer:
    return replace(layer, clips=list(layer.clips))


class Timeline:
    """Top-level container with a fixed duration and frame rate.

    Raises:
        ConstructionError: duration <= 0 or fps not a positive integer.
    """

    def __init__(self, duration: float, fps: int):
        if duration <= 0:
            raise ConstructionError(f"duration must be > 0, got {duration}")
        if isinstance(fps, bool) or not isinstance(fps, int) or fps <= 0:
            raise ConstructionError(f"fps must be a positive integer, got {fps!r}")
        self.duration = float(duration)
        self.fps = fps
        self._layers: list[Layer] = []

    @property
    def layers(self) -> tuple[Layer, ...]:
        """Copies of the layers in declaration order."""
        return tuple(_copy_layer(layer) for layer in self._layers)

    def add_layer(self, layer: Layer) -> None:
        for i, clip in enumerate(layer.clips):
            try:
                clip.validate_against(self.duration)
            except ConstructionError as e:
                raise ConstructionError(
                    f"layer '{layer.name}' clip {i}: {e.message}"
                ) from None
        # Snapshot: later add_clip calls on the caller's layer don't leak in.
        self._layers.append(_copy_layer(layer))

    def draw_order(self) -> list[Layer]:
        """Copies of the layers sorted by (priority, declaration index)."""
        return [_copy_layer(layer) for layer in self._ordered()]

    def _ordered(self) -> list[Layer]:
        indexed = list(enumerate(self._layers))
        indexed.sort(key=lambda item: (
            item[1].z if item[1].z is not None else item[0],
            item[0],
        ))
        return [layer for _, layer in indexed]

    def sample(self, t: float) -> SampledScene:
        """Resolve the visible scene at time t.

        Raises:
            QueryError: t outside [0, duration].
        """
        if not 0 <= t <= self.duration:
            raise QueryError(
                f"sample time must be within [0, {self.duration}], got {t}"
            )

        layers = []
        for layer in self._ordered():
            clips = tuple(
                SampledClip(clip.object, clip.transform.evaluate(t))
                for clip in layer.clips
                if clip.is_active(t)
            )
            layers.append(SampledLayer(layer.name, clips))
        return SampledScene(tuple(layers))

    def total_frames(self) -> int:
        return math.floor(self.duration * self.fps)

    def frame_times(
        self, start: float = 0.0, end: float | None = None,
    ) -> list[float]:
        """Sample instants for rendering [start, end) at the timeline fps.

        Raises:
            QueryError: unless 0 <= start < end <= duration.
        """
        if end is None:
            end = self.duration
        if start < 0 or end <= start or end > self.duration:
            raise QueryError(
                "render window must satisfy 0 <= start < end <= duration "
                f"(got {start}, {end}, duration {self.duration})"
            )
        frames = math.floor((end - start) * self.fps)
        return [start + i / self.fps for i in range(frames)]
