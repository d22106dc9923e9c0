"""Scene manifest loader — YAML to timeline, video clips and audio events.

Manifest schema:
  video:
    duration: 12
    fps: 30
    resolution: [800, 600]      # default [800, 600]
    background: "#101014"       # default "#101014"
  paths:
    assets: "/data/assets"
  colors:
    accent: "#e04c77"
  layers:
    - name: background
      z: 0                      # optional explicit priority
      clips:
        - start: 0
          end: 12
          object: {type: rect, width: 760, height: 460, color: "#121216"}
          transform:
            position: [0, 0]          # constant
            opacity:                  # keyframes
              - {time: 0, value: 0}
              - {time: 1, value: 1, easing: ease_out_cubic}
  videos:
    - {path: "${assets}/a.mp4", start: 0, end: 6, trim_start: 1, trim_end: 9}
  audio:
    music: {path: "${assets}/bg.mp3", start: 0, end: 12, looped: true, gain: 0.25}
    sfx:
      - {path: "${assets}/hit.ogg", time: 2.5, gain: 0.7}

Object types: circle (radius, color), rect (width, height, color),
image (path), text (text, font, font_size, spacing, max_width, color,
line_spacing). Text is parsed as markdown runs (**bold**, *italic*,
__underline__).
"""

from pathlib import Path

import yaml

from .audio import MusicTrack, SfxEvent
from .common import parse_hex_color, resolve_color, resolve_path_vars
from .easing import Easing
from .errors import ConstructionError
from .scene import (
    Circle, FontFamily, ImageObject, Rect, StyledText, TextObject, Vec2,
)
from .timeline import Clip, Layer, Timeline
from .track import AnimatedTransform, Keyframe, Track
from .video import VideoClip


DEFAULT_RESOLUTION = (800, 600)
DEFAULT_BACKGROUND = "#101014"

VALID_OBJECT_TYPES = {"circle", "rect", "image", "text"}

VEC2_PROPERTIES = {"position", "scale"}
SCALAR_PROPERTIES = {"rotation", "opacity"}

FONT_STYLES = ("regular", "bold", "italic", "bold_italic")


# ── Manifest loading ──────────────────────────────────────────────


def load_manifest(manifest_path: str | Path) -> dict:
    """Load, validate, and build a scene manifest.

    Processing pipeline:
      1. Parse YAML.
      2. Validate video settings, build the Timeline.
      3. Resolve ${path} variables in layers, videos and audio.
      4. Build layers/clips (objects + keyframe tracks), append in order.
      5. Build video clips and audio (music + sfx events).

    Args:
        manifest_path: Path to the YAML manifest.

    Returns:
        Config dict: video settings, colors, timeline, videos, music, sfx.

    Raises:
        ValueError: Missing/invalid fields (ConstructionError for core
            invariant violations, with layer/clip context).
        FileNotFoundError: Missing manifest file.
    """
    with open(manifest_path) as f:
        raw = yaml.safe_load(f) or {}

    if "video" not in raw:
        raise ValueError("Manifest: missing required 'video' section")
    video = dict(raw["video"])
    for key in ("duration", "fps"):
        if key not in video:
            raise ValueError(f"Manifest: video.{key} is required")
    video["resolution"] = tuple(video.get("resolution", DEFAULT_RESOLUTION))
    if len(video["resolution"]) != 2:
        raise ValueError(
            f"Manifest: video.resolution must be [width, height], got {video['resolution']!r}"
        )
    video["background"] = parse_hex_color(video.get("background", DEFAULT_BACKGROUND))

    colors = {}
    for key, value in (raw.get("colors") or {}).items():
        colors[key] = resolve_color(value, {})

    paths = raw.get("paths") or {}

    try:
        timeline = Timeline(video["duration"], video["fps"])
    except ConstructionError as e:
        raise ConstructionError(f"Manifest video: {e.message}") from None

    for i, layer_raw in enumerate(_resolve_paths(raw.get("layers") or [], paths)):
        timeline.add_layer(_build_layer(layer_raw, i, colors, timeline.duration))

    videos = [
        _build_video_clip(v, i)
        for i, v in enumerate(_resolve_paths(raw.get("videos") or [], paths))
    ]

    audio = _resolve_paths(raw.get("audio") or {}, paths)
    music = _build_music(audio["music"], timeline.duration) if "music" in audio else None
    sfx = [_build_sfx(e, i) for i, e in enumerate(audio.get("sfx") or [])]

    return {
        "video": video,
        "colors": colors,
        "timeline": timeline,
        "videos": videos,
        "music": music,
        "sfx": sfx,
    }


def _resolve_paths(obj, paths: dict):
    """Recursively resolve ${var} in all string values."""
    if isinstance(obj, str):
        return resolve_path_vars(obj, paths)
    elif isinstance(obj, dict):
        return {k: _resolve_paths(v, paths) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_resolve_paths(item, paths) for item in obj]
    return obj


def _require(d: dict, key: str, ctx: str):
    if key not in d:
        raise ValueError(f"{ctx}: missing required field '{key}'")
    return d[key]


# ── Layers and clips ──────────────────────────────────────────────


def _build_layer(raw: dict, index: int, colors: dict, duration: float) -> Layer:
    name = raw.get("name") or f"layer-{index}"
    ctx = f"Layer {index} ({name})"

    z = raw.get("z")
    if z is not None and (isinstance(z, bool) or not isinstance(z, int)):
        raise ValueError(f"{ctx}: z must be an integer, got {z!r}")

    layer = Layer(name, z=z)
    for j, clip_raw in enumerate(raw.get("clips") or []):
        clip_ctx = f"{ctx} clip {j}"
        obj = _build_object(_require(clip_raw, "object", clip_ctx), colors, clip_ctx)
        transform = _build_transform(clip_raw.get("transform") or {}, clip_ctx)
        try:
            clip = Clip(
                float(_require(clip_raw, "start", clip_ctx)),
                float(_require(clip_raw, "end", clip_ctx)),
                obj,
                transform,
                duration=duration,
            )
        except ConstructionError as e:
            raise ConstructionError(f"{clip_ctx}: {e.message}") from None
        layer.add_clip(clip)
    return layer


def _build_object(raw: dict, colors: dict, ctx: str):
    obj_type = raw.get("type")
    if obj_type not in VALID_OBJECT_TYPES:
        raise ValueError(
            f"{ctx}: unknown object type '{obj_type}'. Valid: {sorted(VALID_OBJECT_TYPES)}"
        )

    if obj_type == "circle":
        return Circle(
            radius=float(_require(raw, "radius", ctx)),
            color=resolve_color(raw.get("color", "#FFFFFF"), colors),
        )
    if obj_type == "rect":
        return Rect(
            width=float(_require(raw, "width", ctx)),
            height=float(_require(raw, "height", ctx)),
            color=resolve_color(raw.get("color", "#FFFFFF"), colors),
        )
    if obj_type == "image":
        return ImageObject(Path(_require(raw, "path", ctx)))

    font_raw = raw.get("font") or {}
    unknown = set(font_raw) - set(FONT_STYLES)
    if unknown:
        raise ValueError(f"{ctx}: unknown font style(s) {sorted(unknown)}")
    return TextObject(
        text=StyledText.from_markdown(str(_require(raw, "text", ctx))),
        font=FontFamily(**{k: str(v) for k, v in font_raw.items()}),
        font_size=float(raw.get("font_size", 28.0)),
        spacing=float(raw.get("spacing", 0.0)),
        max_width=float(raw.get("max_width", 0.0)),
        color=resolve_color(raw.get("color", "#FFFFFF"), colors),
        line_spacing=float(raw.get("line_spacing", 6.0)),
    )


def _parse_vec2(value, ctx: str) -> Vec2:
    if isinstance(value, dict):
        return Vec2(float(value.get("x", 0.0)), float(value.get("y", 0.0)))
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return Vec2(float(value[0]), float(value[1]))
    raise ValueError(f"{ctx}: expected [x, y] or {{x, y}}, got {value!r}")


def _build_track(raw, prop: str, ctx: str) -> Track:
    ctx = f"{ctx} {prop}"
    parse = (
        (lambda v: _parse_vec2(v, ctx)) if prop in VEC2_PROPERTIES else float
    )

    # An empty list is an (invalid) keyframe list, not a constant.
    is_keyframe_list = isinstance(raw, list) and (
        len(raw) == 0 or isinstance(raw[0], dict)
    )
    if not is_keyframe_list:
        return Track.from_constant(parse(raw))

    keys = []
    for k in raw:
        keys.append(Keyframe(
            float(_require(k, "time", ctx)),
            parse(_require(k, "value", ctx)),
            Easing.parse(k.get("easing", "linear")),
        ))
    try:
        return Track(keys)
    except ConstructionError as e:
        raise ConstructionError(f"{ctx}: {e.message}") from None


def _build_transform(raw: dict, ctx: str) -> AnimatedTransform:
    unknown = set(raw) - VEC2_PROPERTIES - SCALAR_PROPERTIES
    if unknown:
        raise ValueError(f"{ctx}: unknown transform propert(ies) {sorted(unknown)}")
    tracks = {prop: _build_track(value, prop, ctx) for prop, value in raw.items()}
    return AnimatedTransform.build(**tracks)


# ── Video and audio ───────────────────────────────────────────────


def _build_video_clip(raw: dict, index: int) -> VideoClip:
    ctx = f"Video {index}"
    trim_start = raw.get("trim_start")
    trim_end = raw.get("trim_end")
    try:
        return VideoClip(
            Path(_require(raw, "path", ctx)),
            float(_require(raw, "start", ctx)),
            float(_require(raw, "end", ctx)),
            trim_start=None if trim_start is None else float(trim_start),
            trim_end=None if trim_end is None else float(trim_end),
        )
    except ConstructionError as e:
        raise ConstructionError(f"{ctx}: {e.message}") from None


def _build_music(raw: dict, duration: float) -> MusicTrack:
    try:
        music = MusicTrack(
            Path(_require(raw, "path", "Music")),
            start=float(raw.get("start", 0.0)),
            end=float(raw.get("end", duration)),
            looped=bool(raw.get("looped", True)),
            gain=float(raw.get("gain", 1.0)),
        )
    except ConstructionError as e:
        raise ConstructionError(f"Music: {e.message}") from None
    if music.start >= duration:
        raise ConstructionError(
            f"Music: starts at {music.start}s, after the project ends ({duration}s)"
        )
    return music


def _build_sfx(raw: dict, index: int) -> SfxEvent:
    ctx = f"SFX {index}"
    try:
        return SfxEvent(
            Path(_require(raw, "path", ctx)),
            time=float(_require(raw, "time", ctx)),
            gain=float(raw.get("gain", 1.0)),
        )
    except ConstructionError as e:
        raise ConstructionError(f"{ctx}: {e.message}") from None


# ── Asset checks ──────────────────────────────────────────────────


def collect_asset_paths(config: dict) -> list[Path]:
    """Every file the manifest references, in declaration order, deduplicated."""
    found = []
    for layer in config["timeline"].layers:
        for clip in layer.clips:
            obj = clip.object
            if isinstance(obj, ImageObject):
                found.append(obj.path)
            elif isinstance(obj, TextObject):
                for style in FONT_STYLES:
                    font_path = getattr(obj.font, style)
                    if font_path is not None:
                        found.append(Path(font_path))
    found.extend(v.path for v in config["videos"])
    if config["music"] is not None:
        found.append(config["music"].path)
    found.extend(e.path for e in config["sfx"])
    return list(dict.fromkeys(found))


def validate_paths(config: dict) -> None:
    """Check that all referenced media and font files exist on disk.

    Raises:
        FileNotFoundError: Lists all missing files.
    """
    missing = [p for p in collect_asset_paths(config) if not p.exists()]
    if missing:
        msg = f"Missing {len(missing)} file(s):\n"
        for p in missing:
            msg += f"  - {p}\n"
        raise FileNotFoundError(msg)
