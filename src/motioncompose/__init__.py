"""motioncompose — deterministic motion-graphics composition.

Describe a scene as layers of keyframed clips, overlapping video
windows and timed sound events; sample it per frame, resolve the video
edit list and the audio mix plan, then render/encode with ffmpeg.
"""

from .audio import MixPlan, MusicTrack, SfxEvent, build_filter_graph, resolve_mix_plan
from .easing import Easing
from .errors import ConstructionError, EncoderError, MotionComposeError, QueryError
from .scene import (
    Circle, Color, FontFamily, ImageObject, Rect, StyledText, StyleFlags,
    TextObject, TextRun, Transform, Vec2,
)
from .timeline import Clip, Layer, SampledClip, SampledLayer, SampledScene, Timeline
from .track import AnimatedTransform, Keyframe, Track
from .video import VideoClip, VideoSegment, resolve_segments
