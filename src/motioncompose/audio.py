"""Audio composition — background track + sparse SFX events to a mix plan.

The mix plan is an engine-agnostic value object:

  - one base stream: the background track at its gain, delayed to its
    window start, looped (or not) and trimmed to cover the window
    clipped to the project duration.
  - one SFX stream per distinct source path: the source split once per
    referencing event, each copy delayed by its trigger time (whole
    milliseconds) and scaled by its gain, copies summed.
  - the base and every SFX stream summed WITHOUT renormalization.
    Simultaneous events may accumulate loudness; this keeps the output
    reproducible regardless of event count.

``build_filter_graph`` turns a plan into an ffmpeg filter_complex for the
encoder module; nothing else here knows about ffmpeg.
"""

import logging
from dataclasses import dataclass
from itertools import groupby
from pathlib import Path

from .errors import ConstructionError

logger = logging.getLogger(__name__)

# Above this many events, mixing gets slow (one split branch per event).
SFX_WARN_THRESHOLD = 100


@dataclass(frozen=True)
class MusicTrack:
    """Background track placed over [start, end) of the output.

    Raises:
        ConstructionError: Bad window or negative gain.
    """

    path: Path
    start: float
    end: float
    looped: bool = True
    gain: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "path", Path(self.path))
        if self.start < 0 or self.end <= self.start:
            raise ConstructionError(
                "music window must satisfy 0 <= start < end "
                f"(got {self.start}, {self.end})"
            )
        if self.gain < 0:
            raise ConstructionError(f"music gain must be >= 0, got {self.gain}")


@dataclass(frozen=True)
class SfxEvent:
    path: Path
    time: float
    gain: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "path", Path(self.path))
        if self.time < 0:
            raise ConstructionError(f"SFX time must be >= 0, got {self.time}")
        if self.gain < 0:
            raise ConstructionError(f"SFX gain must be >= 0, got {self.gain}")


@dataclass(frozen=True)
class BaseStream:
    path: Path
    gain: float
    looped: bool
    delay_ms: int
    length: float


@dataclass(frozen=True)
class DelayedCopy:
    delay_ms: int
    gain: float


@dataclass(frozen=True)
class SfxStream:
    path: Path
    copies: tuple[DelayedCopy, ...]


@dataclass(frozen=True)
class MixPlan:
    duration: float
    base: BaseStream
    sfx_streams: tuple[SfxStream, ...] = ()
    normalize: bool = False

    @property
    def event_count(self) -> int:
        return sum(len(s.copies) for s in self.sfx_streams)

    @property
    def inputs(self) -> list[Path]:
        """Source files in input order: base first, then one per SFX path."""
        return [self.base.path] + [s.path for s in self.sfx_streams]


def to_ms(seconds: float) -> int:
    """Round a time in seconds to whole milliseconds."""
    return int(round(seconds * 1000.0))


def resolve_mix_plan(
    music: MusicTrack,
    events,
    duration: float,
) -> MixPlan:
    """Build the mix plan for one background track and a set of SFX events.

    Events may arrive in any order; the plan is the same for every
    permutation. An empty event set yields the base stream alone.

    Raises:
        ConstructionError: duration <= 0, or music starting at or after
            the project end.
    """
    if duration <= 0:
        raise ConstructionError(f"duration must be > 0, got {duration}")
    if music.start >= duration:
        raise ConstructionError(
            f"music starts at {music.start}s, after the project ends ({duration}s)"
        )

    events = list(events)
    if len(events) > SFX_WARN_THRESHOLD:
        logger.warning("High SFX event count: %d", len(events))

    base = BaseStream(
        path=music.path,
        gain=music.gain,
        looped=music.looped,
        delay_ms=to_ms(music.start),
        length=min(music.end, duration) - music.start,
    )

    ordered = sorted(events, key=lambda e: (str(e.path), to_ms(e.time), e.gain))
    streams = []
    for path_str, group in groupby(ordered, key=lambda e: str(e.path)):
        copies = tuple(DelayedCopy(to_ms(e.time), e.gain) for e in group)
        streams.append(SfxStream(Path(path_str), copies))

    return MixPlan(duration=float(duration), base=base, sfx_streams=tuple(streams))


def _fmt_gain(gain: float) -> str:
    return f"{gain:g}"


def build_filter_graph(plan: MixPlan) -> str:
    """Render a mix plan as an ffmpeg filter_complex string.

    Input 0 is the base track; input k (k >= 1) is plan.sfx_streams[k-1].
    The final stream is labeled [aout].

    Base:  [0:a]atrim,adelay?,volume -> [bg]
    Path:  [k:a]asplit=n -> adelay,volume per copy -> amix -> [sfxK]
    Out:   [bg][sfx1]...[sfxN] amix normalize=0 -> [aout]
    """
    base = plan.base
    parts = []

    base_chain = [f"atrim=duration={base.length:.3f}"]
    if base.delay_ms > 0:
        base_chain.append(f"adelay={base.delay_ms}|{base.delay_ms}")
    base_chain.append(f"volume={_fmt_gain(base.gain)}")

    if not plan.sfx_streams:
        parts.append(f"[0:a]{','.join(base_chain)}[aout]")
        return ";".join(parts)

    parts.append(f"[0:a]{','.join(base_chain)}[bg]")

    mix_labels = ["[bg]"]
    for k, stream in enumerate(plan.sfx_streams, start=1):
        n = len(stream.copies)
        out_label = f"[sfx{k}]"

        if n == 1:
            copy = stream.copies[0]
            parts.append(
                f"[{k}:a]adelay={copy.delay_ms}|{copy.delay_ms},"
                f"volume={_fmt_gain(copy.gain)}{out_label}"
            )
        else:
            split_labels = "".join(f"[s{k}_{j}]" for j in range(n))
            parts.append(f"[{k}:a]asplit={n}{split_labels}")
            delayed = []
            for j, copy in enumerate(stream.copies):
                label = f"[d{k}_{j}]"
                parts.append(
                    f"[s{k}_{j}]adelay={copy.delay_ms}|{copy.delay_ms},"
                    f"volume={_fmt_gain(copy.gain)}{label}"
                )
                delayed.append(label)
            parts.append(f"{''.join(delayed)}amix=inputs={n}:normalize=0{out_label}")

        mix_labels.append(out_label)

    parts.append(
        f"{''.join(mix_labels)}amix=inputs={len(mix_labels)}:normalize=0[aout]"
    )
    return ";".join(parts)
