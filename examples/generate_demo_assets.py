#!/usr/bin/env python3
"""Generate synthetic media for the motioncompose demo manifest.

Creates in examples/demo-assets/:
  - logo.png            badge image for the image clip
  - clip-a.mp4 / clip-b.mp4 / clip-c.mp4
                        solid-color clips with a white "END" frame, so
                        cut points are obvious in the stitched video
  - music.wav           a short two-note loop (looped by the mixer)
  - bounce.wav          a 80ms blip used as the sound effect

Usage:
    python examples/generate_demo_assets.py
    # Then render:
    motioncompose render --manifest examples/demo-scene.yaml \
        --output examples/demo-renders/scene.mp4
    motioncompose stitch --manifest examples/demo-scene.yaml \
        --output examples/demo-renders/base.mp4
"""

from pathlib import Path

import numpy as np
from moviepy import AudioArrayClip, ColorClip, CompositeVideoClip, ImageClip
from PIL import Image, ImageDraw, ImageFont

OUTPUT_DIR = Path(__file__).resolve().parent / "demo-assets"
SIZE = (320, 240)
FPS = 30
SAMPLE_RATE = 44100

CLIPS = [
    ("clip-a", (180, 60, 60), 6.0),   # red
    ("clip-b", (60, 60, 180), 8.0),   # blue
    ("clip-c", (60, 160, 60), 4.0),   # green
]


def _font(size: int):
    try:
        return ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", size
        )
    except OSError:
        return ImageFont.load_default(size=size)


def _make_end_frame(bg_color: tuple[int, int, int]) -> np.ndarray:
    """'END' in white on a dimmed version of the clip color."""
    dim = tuple(max(c // 3, 20) for c in bg_color)
    img = Image.new("RGB", SIZE, dim)
    draw = ImageDraw.Draw(img)
    font = _font(48)
    bbox = draw.textbbox((0, 0), "END", font=font)
    tw, th = bbox[2] - bbox[0], bbox[3] - bbox[1]
    draw.text(((SIZE[0] - tw) / 2, (SIZE[1] - th) / 2), "END", fill=(255, 255, 255), font=font)
    return np.array(img)


def _make_logo(out: Path) -> None:
    img = Image.new("RGBA", (96, 96), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.rounded_rectangle([(0, 0), (95, 95)], radius=18, fill=(90, 170, 240, 255))
    draw.text((48, 48), "mc", fill=(255, 255, 255, 255), font=_font(40), anchor="mm")
    img.save(out)


def _tone(freq: float, duration: float, fade: float = 0.01) -> np.ndarray:
    t = np.arange(int(duration * SAMPLE_RATE)) / SAMPLE_RATE
    wave = 0.4 * np.sin(2 * np.pi * freq * t)
    ramp = min(len(t), int(fade * SAMPLE_RATE))
    if ramp:
        env = np.ones_like(t)
        env[:ramp] = np.linspace(0, 1, ramp)
        env[-ramp:] = np.linspace(1, 0, ramp)
        wave *= env
    return np.column_stack([wave, wave])


def _write_wav(samples: np.ndarray, out: Path) -> None:
    AudioArrayClip(samples, fps=SAMPLE_RATE).write_audiofile(
        str(out), fps=SAMPLE_RATE, codec="pcm_s16le", logger=None,
    )


def main():
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

    logo = OUTPUT_DIR / "logo.png"
    if not logo.exists():
        _make_logo(logo)
        print("  wrote logo.png")

    for name, color, duration in CLIPS:
        out = OUTPUT_DIR / f"{name}.mp4"
        if out.exists():
            print(f"  skip {name} (exists)")
            continue
        body_dur = max(duration - 0.5, 0.5)
        body = ColorClip(size=SIZE, color=color, duration=body_dur)
        end_clip = ImageClip(_make_end_frame(color), duration=0.5).with_start(body_dur)
        final = CompositeVideoClip([body, end_clip], size=SIZE)
        final.write_videofile(str(out), fps=FPS, logger=None)
        print(f"  wrote {name} ({duration}s)")

    music = OUTPUT_DIR / "music.wav"
    if not music.exists():
        _write_wav(np.concatenate([_tone(220.0, 1.0, 0.05), _tone(330.0, 1.0, 0.05)]), music)
        print("  wrote music.wav")

    bounce = OUTPUT_DIR / "bounce.wav"
    if not bounce.exists():
        _write_wav(_tone(880.0, 0.08), bounce)
        print("  wrote bounce.wav")

    print(f"\nDone. Assets in {OUTPUT_DIR}")


if __name__ == "__main__":
    main()
