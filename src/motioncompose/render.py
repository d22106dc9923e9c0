"""Frame rendering — sampled scenes to raw RGBA buffers.

The Renderer draws a SampledScene back to front into a width x height
RGBA frame and returns exactly width * height * 4 bytes, top row first.

Coordinates are graph-style: (0, 0) is the frame center and +y points
up. Each object is rendered into its own RGBA patch (Pillow), rotated
clockwise by the transform's rotation in degrees, faded by its opacity,
then alpha-blended onto the frame (numpy).

  - Circle / Rect: centered on the position, scaled per axis.
  - ImageObject: centered on the position, scaled per axis.
  - TextObject: block's top-left at the position, font size scaled by
    scale.y, rotated about the block center.

``render_frames`` maps frame instants to buffers, optionally across a
bounded pool of worker processes, each owning its own Renderer.
"""

import math
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw

from .common import load_font, measure_text
from .scene import Circle, Color, ImageObject, Rect, TextObject, Transform
from .text_layout import layout_text
from .timeline import SampledScene, Timeline


# ── Constants ────────────────────────────────────────────────────

UNDERLINE_OFFSET_FRAC = 0.9      # underline y as fraction of font size
UNDERLINE_WIDTH = 2
TEXT_DESCENT_FRAC = 0.3          # extra patch height below the last line


def graph_to_screen(x: float, y: float, width: int, height: int) -> tuple[float, float]:
    return width / 2.0 + x, height / 2.0 - y


# ── Patch helpers ────────────────────────────────────────────────


def _finish_patch(img: Image.Image, rotation: float, opacity: float) -> np.ndarray:
    """Rotate (clockwise degrees) and fade a patch; return RGBA array."""
    if rotation % 360 != 0:
        # Pillow rotates counter-clockwise.
        img = img.rotate(-rotation, expand=True, resample=Image.BICUBIC)
    patch = np.array(img)
    if opacity < 1.0:
        alpha = patch[:, :, 3].astype(np.float32) * opacity
        patch[:, :, 3] = np.round(alpha).astype(np.uint8)
    return patch


def blend_patch(frame: np.ndarray, patch: np.ndarray, x: int, y: int) -> None:
    """Alpha-blend an RGBA patch onto the frame in place at (x, y).

    The patch may hang off any edge; only the overlapping part is drawn.
    """
    frame_h, frame_w = frame.shape[:2]
    patch_h, patch_w = patch.shape[:2]

    x0, y0 = max(0, x), max(0, y)
    x1, y1 = min(frame_w, x + patch_w), min(frame_h, y + patch_h)
    if x0 >= x1 or y0 >= y1:
        return

    sub = patch[y0 - y:y1 - y, x0 - x:x1 - x]
    alpha = sub[:, :, 3:4].astype(np.float32) / 255.0
    rgb = sub[:, :, :3].astype(np.float32)
    dest = frame[y0:y1, x0:x1, :3].astype(np.float32)
    blended = dest * (1 - alpha) + rgb * alpha
    frame[y0:y1, x0:x1, :3] = blended.astype(np.uint8)


def _blend_centered(frame, patch, cx: float, cy: float) -> None:
    patch_h, patch_w = patch.shape[:2]
    blend_patch(frame, patch, int(round(cx - patch_w / 2)), int(round(cy - patch_h / 2)))


# ── Renderer ─────────────────────────────────────────────────────


class Renderer:
    """Draws sampled scenes into RGBA8 buffers.

    Holds an image cache, so one Renderer must not be shared between
    threads; give each worker its own.
    """

    def __init__(self, width: int, height: int, background: Color = Color.BLACK):
        if width <= 0 or height <= 0:
            raise ValueError(f"Frame size must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.background = background
        self._images: dict[Path, Image.Image] = {}

    def render(self, scene: SampledScene) -> bytes:
        return self.render_array(scene).tobytes()

    def render_array(self, scene: SampledScene) -> np.ndarray:
        """Render to an (height, width, 4) uint8 array."""
        frame = np.empty((self.height, self.width, 4), dtype=np.uint8)
        frame[:, :] = (self.background.r, self.background.g, self.background.b, 255)

        for clip in scene.objects():
            if clip.transform.opacity <= 0:
                continue
            self._draw(frame, clip.object, clip.transform)
        return frame

    def _draw(self, frame, obj, transform: Transform) -> None:
        if isinstance(obj, (Circle, Rect)):
            self._draw_shape(frame, obj, transform)
        elif isinstance(obj, ImageObject):
            self._draw_image(frame, obj, transform)
        elif isinstance(obj, TextObject):
            self._draw_text(frame, obj, transform)
        else:
            raise TypeError(f"Cannot draw object of type {type(obj).__name__}")

    def _draw_shape(self, frame, shape, transform: Transform) -> None:
        sx, sy = abs(transform.scale.x), abs(transform.scale.y)
        if isinstance(shape, Circle):
            patch_w = int(round(2 * shape.radius * sx))
            patch_h = int(round(2 * shape.radius * sy))
        else:
            patch_w = int(round(shape.width * sx))
            patch_h = int(round(shape.height * sy))
        if patch_w <= 0 or patch_h <= 0:
            return

        img = Image.new("RGBA", (patch_w, patch_h), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)
        fill = shape.color.as_tuple()
        if isinstance(shape, Circle):
            draw.ellipse([(0, 0), (patch_w - 1, patch_h - 1)], fill=fill)
        else:
            draw.rectangle([(0, 0), (patch_w - 1, patch_h - 1)], fill=fill)

        patch = _finish_patch(img, transform.rotation, min(1.0, transform.opacity))
        cx, cy = graph_to_screen(
            transform.position.x, transform.position.y, self.width, self.height,
        )
        _blend_centered(frame, patch, cx, cy)

    def _load_image(self, path: Path) -> Image.Image:
        if path not in self._images:
            with Image.open(path) as img:
                self._images[path] = img.convert("RGBA")
        return self._images[path]

    def _draw_image(self, frame, obj: ImageObject, transform: Transform) -> None:
        img = self._load_image(obj.path)
        sx, sy = abs(transform.scale.x), abs(transform.scale.y)
        if (sx, sy) != (1.0, 1.0):
            size = (int(round(img.width * sx)), int(round(img.height * sy)))
            if size[0] <= 0 or size[1] <= 0:
                return
            img = img.resize(size, resample=Image.BILINEAR)

        patch = _finish_patch(img, transform.rotation, min(1.0, transform.opacity))
        cx, cy = graph_to_screen(
            transform.position.x, transform.position.y, self.width, self.height,
        )
        _blend_centered(frame, patch, cx, cy)

    def _draw_text(self, frame, text: TextObject, transform: Transform) -> None:
        font_size = text.font_size * max(transform.scale.y, 0.0)
        if font_size < 1:
            return

        def font_for(style):
            return load_font(text.font.resolve(style), int(round(font_size)))

        def measure(style, s):
            return measure_text(font_for(style), s, text.spacing)

        lines = layout_text(text, measure)
        line_height = font_size + text.line_spacing
        widths = [sum(measure(r.style, r.text) for r in line.runs) for line in lines]
        patch_w = max(1, math.ceil(max(widths, default=0)))
        patch_h = max(1, math.ceil(line_height * len(lines) + font_size * TEXT_DESCENT_FRAC))

        img = Image.new("RGBA", (patch_w, patch_h), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)
        fill = text.color.as_tuple()

        y = 0.0
        for line in lines:
            x = 0.0
            for run in line.runs:
                font = font_for(run.style)
                run_w = self._draw_run(draw, x, y, run.text, font, fill, text.spacing)
                if run.style.underline:
                    uy = y + font_size * UNDERLINE_OFFSET_FRAC
                    draw.line([(x, uy), (x + run_w, uy)], fill=fill, width=UNDERLINE_WIDTH)
                x += run_w
            y += line_height

        patch = _finish_patch(img, transform.rotation, min(1.0, transform.opacity))
        ox, oy = graph_to_screen(
            transform.position.x, transform.position.y, self.width, self.height,
        )
        # Rotation pivots on the block center; unrotated top-left sits at (ox, oy).
        _blend_centered(frame, patch, ox + patch_w / 2, oy + patch_h / 2)

    @staticmethod
    def _draw_run(draw, x, y, s, font, fill, spacing) -> float:
        """Draw one run, honoring per-glyph spacing. Returns its width."""
        if spacing == 0:
            draw.text((x, y), s, font=font, fill=fill)
            return measure_text(font, s)
        cursor = x
        for ch in s:
            draw.text((cursor, y), ch, font=font, fill=fill)
            cursor += font.getlength(ch) + spacing
        return measure_text(font, s, spacing)


# ── Frame pool ───────────────────────────────────────────────────
# Worker-process state: one timeline copy and one Renderer per process,
# set up by the pool initializer.

_worker_state: dict = {}


def _init_worker(timeline, width, height, background):
    _worker_state["timeline"] = timeline
    _worker_state["renderer"] = Renderer(width, height, background)


def _render_in_worker(t: float) -> bytes:
    scene = _worker_state["timeline"].sample(t)
    return _worker_state["renderer"].render(scene)


def render_frames(
    timeline: Timeline,
    width: int,
    height: int,
    background: Color = Color.BLACK,
    start_time: float = 0.0,
    end_time: float | None = None,
    workers: int = 1,
):
    """Render [start_time, end_time) at the timeline fps.

    Returns an iterator of (t, rgba_bytes) in frame order. With
    workers > 1 frames are rendered in a ProcessPoolExecutor; order is
    preserved either way.

    Raises:
        QueryError: Invalid render window (raised immediately).
    """
    times = timeline.frame_times(start_time, end_time)
    if workers <= 1:
        return _render_sequential(timeline, times, width, height, background)
    return _render_parallel(timeline, times, width, height, background, workers)


def _render_sequential(timeline, times, width, height, background):
    renderer = Renderer(width, height, background)
    for t in times:
        yield t, renderer.render(timeline.sample(t))


def _render_parallel(timeline, times, width, height, background, workers):
    chunksize = max(1, len(times) // (workers * 4))
    with ProcessPoolExecutor(
        max_workers=workers,
        initializer=_init_worker,
        initargs=(timeline, width, height, background),
    ) as pool:
        for t, rgba in zip(times, pool.map(_render_in_worker, times, chunksize=chunksize)):
            yield t, rgba
