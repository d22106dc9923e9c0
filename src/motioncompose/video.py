"""Video segment resolution — overlapping clip windows to a flat edit list.

Each VideoClip declares an output-time window [start_time, end_time) and
an optional trim window into its source media. ``resolve_segments``
partitions the covered output time into non-overlapping VideoSegments:

  1. Collect every start/end boundary, sort, drop near-duplicates.
  2. For each adjacent boundary pair (t0, t1), the winner is the
     last-declared clip whose window fully covers [t0, t1).
  3. Spans no clip covers are dropped (a gap, not an error).
  4. Adjacent spans won by the same clip merge into one segment, so the
     result is the minimal partition.

The winner's source offset is trim_start (or 0) plus how far t0 is into
the clip's output window.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from .errors import ConstructionError

logger = logging.getLogger(__name__)

BOUNDARY_EPSILON = 1e-6


@dataclass(frozen=True)
class VideoClip:
    """A source video placed on the output timeline.

    Raises:
        ConstructionError: Bad output window or inconsistent trim window.
    """

    path: Path
    start_time: float
    end_time: float
    trim_start: float | None = None
    trim_end: float | None = None

    def __post_init__(self):
        object.__setattr__(self, "path", Path(self.path))
        if self.start_time < 0 or self.end_time <= self.start_time:
            raise ConstructionError(
                "video clip bounds must satisfy 0 <= start < end "
                f"(got {self.start_time}, {self.end_time})"
            )
        if self.trim_start is not None and self.trim_start < 0:
            raise ConstructionError(f"trim_start must be >= 0, got {self.trim_start}")
        if self.trim_end is not None and self.trim_end <= 0:
            raise ConstructionError(f"trim_end must be > 0, got {self.trim_end}")
        if self.trim_start is not None and self.trim_end is not None:
            if self.trim_end <= self.trim_start:
                raise ConstructionError(
                    f"trim_end ({self.trim_end}) must be > trim_start ({self.trim_start})"
                )
            if self.trim_end - self.trim_start < self.duration:
                raise ConstructionError(
                    f"trim window ({self.trim_end - self.trim_start:.3f}s) is shorter "
                    f"than the clip's output window ({self.duration:.3f}s)"
                )

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class VideoSegment:
    clip_index: int
    timeline_start: float
    timeline_end: float
    source_start: float

    @property
    def duration(self) -> float:
        return self.timeline_end - self.timeline_start

    @property
    def source_end(self) -> float:
        return self.source_start + self.duration


def _boundaries(clips: list[VideoClip]) -> list[float]:
    points = sorted(t for c in clips for t in (c.start_time, c.end_time))
    deduped = []
    for t in points:
        if not deduped or abs(t - deduped[-1]) >= BOUNDARY_EPSILON:
            deduped.append(t)
    return deduped


def _winner(clips: list[VideoClip], t0: float, t1: float) -> int | None:
    """Index of the last-declared clip fully covering [t0, t1)."""
    chosen = None
    for idx, clip in enumerate(clips):
        if (clip.start_time <= t0 + BOUNDARY_EPSILON
                and clip.end_time >= t1 - BOUNDARY_EPSILON):
            chosen = idx
    return chosen


def resolve_segments(clips: list[VideoClip]) -> list[VideoSegment]:
    """Partition the clips' covered output time into VideoSegments.

    Segments come back in ascending time order. Identical input always
    yields identical output.
    """
    clips = list(clips)
    bounds = _boundaries(clips)

    segments: list[VideoSegment] = []
    for t0, t1 in zip(bounds, bounds[1:]):
        idx = _winner(clips, t0, t1)
        if idx is None:
            continue

        prev = segments[-1] if segments else None
        if (prev is not None and prev.clip_index == idx
                and abs(prev.timeline_end - t0) < BOUNDARY_EPSILON):
            segments[-1] = VideoSegment(idx, prev.timeline_start, t1, prev.source_start)
            continue

        clip = clips[idx]
        source_start = (clip.trim_start or 0.0) + (t0 - clip.start_time)
        segments.append(VideoSegment(idx, t0, t1, source_start))

    logger.debug("Resolved %d clips into %d segments", len(clips), len(segments))
    return segments


def find_gaps(
    segments: list[VideoSegment], duration: float | None = None,
) -> list[tuple[float, float]]:
    """Uncovered (start, end) spans between 0 and the end of coverage.

    When duration is given, a tail gap up to duration is reported too.
    Gaps are informational: resolution never fails because of them.
    """
    gaps = []
    cursor = 0.0
    for seg in segments:
        if seg.timeline_start - cursor >= BOUNDARY_EPSILON:
            gaps.append((cursor, seg.timeline_start))
        cursor = max(cursor, seg.timeline_end)
    if duration is not None and duration - cursor >= BOUNDARY_EPSILON:
        gaps.append((cursor, duration))
    return gaps
