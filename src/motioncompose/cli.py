"""CLI for timeline rendering.

Reads a YAML scene manifest, validates all asset paths, renders every
frame of the requested window, encodes it to mp4 and, when the manifest
declares audio, mixes the soundtrack and muxes it in.

Pipeline:
  1. Render frames (optionally across worker processes) -> temp video.
  2. Resolve the mix plan, render the full-length wav.
  3. Trim the wav to the rendered window if it is partial.
  4. Mux video + audio ("shortest" policy) into the output.

Usage:
    # Full render
    python -m motioncompose.cli --manifest scene.yaml --output out.mp4

    # Render seconds 4-8 with 4 worker processes
    python -m motioncompose.cli --manifest scene.yaml --output clip.mp4 \
        --start-time 4 --end-time 8 --workers 4

    # Validate only (no rendering)
    python -m motioncompose.cli --manifest scene.yaml --validate
"""

import argparse
import time
from pathlib import Path

from .audio import resolve_mix_plan
from .encoder import FrameEncoder, mux_video_audio, render_audio, trim_audio
from .manifest import load_manifest, validate_paths
from .render import render_frames


def _temp_path(output_path: Path, name: str, suffix: str | None = None) -> Path:
    """Sibling temp file: out.mp4 -> out.<name>.mp4"""
    suffix = suffix if suffix is not None else output_path.suffix
    return output_path.with_name(f"{output_path.stem}.{name}{suffix}")


def render(
    manifest_path: str,
    output_path: str,
    start_time: float = 0.0,
    end_time: float | None = None,
    workers: int = 1,
    keep_temp: bool = False,
) -> None:
    """Load manifest, render [start_time, end_time), write mp4 (+ audio).

    Args:
        manifest_path: Path to YAML scene manifest.
        output_path: Output mp4 path.
        start_time: Window start in seconds.
        end_time: Window end in seconds (default: timeline duration).
        workers: Frame-rendering worker processes (1 = in-process).
        keep_temp: Keep the silent video and wav intermediates.
    """
    config = load_manifest(manifest_path)
    validate_paths(config)

    timeline = config["timeline"]
    width, height = config["video"]["resolution"]
    background = config["video"]["background"]
    if end_time is None:
        end_time = timeline.duration

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    has_audio = config["music"] is not None
    video_out = _temp_path(output, "video") if has_audio else output

    frames = render_frames(
        timeline, width, height, background,
        start_time=start_time, end_time=end_time, workers=workers,
    )

    print(f"Rendering {start_time:.2f}s - {end_time:.2f}s "
          f"at {width}x{height}, {timeline.fps}fps ({workers} worker(s))")
    t0 = time.monotonic()
    with FrameEncoder(width, height, timeline.fps, video_out) as encoder:
        for _, rgba in frames:
            encoder.write_frame(rgba)
    elapsed = time.monotonic() - t0
    print(f"  FRAMES {encoder.frames_written} in {elapsed:.1f}s wall")

    if not has_audio:
        print(f"\nDone: {output}")
        return

    plan = resolve_mix_plan(config["music"], config["sfx"], timeline.duration)
    audio_full = _temp_path(output, "audio_full", ".wav")
    audio_clip = _temp_path(output, "audio_clip", ".wav")
    print(f"  AUDIO  {plan.event_count} sfx event(s) over {len(plan.sfx_streams)} source(s)")
    render_audio(plan, audio_full)

    partial = start_time > 0 or end_time < timeline.duration
    if partial:
        trim_audio(audio_full, start_time, end_time, audio_clip)
    audio_for_mux = audio_clip if partial else audio_full

    print(f"  MUX    {output}")
    mux_video_audio(video_out, audio_for_mux, output)

    if not keep_temp:
        for path in (video_out, audio_full, audio_clip):
            path.unlink(missing_ok=True)
    print(f"\nDone: {output}")


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render a YAML scene manifest to mp4.",
    )
    parser.add_argument(
        "--manifest", required=True,
        help="Path to YAML scene manifest",
    )
    parser.add_argument(
        "--output",
        help="Output mp4 path (required unless --validate)",
    )
    parser.add_argument(
        "--start-time", type=float, default=0.0,
        help="Render window start in seconds (default: 0)",
    )
    parser.add_argument(
        "--end-time", type=float, default=None,
        help="Render window end in seconds (default: timeline duration)",
    )
    parser.add_argument(
        "--workers", type=int, default=1,
        help="Number of frame-rendering worker processes (default: 1)",
    )
    parser.add_argument(
        "--keep-temp", action="store_true",
        help="Keep intermediate video/audio files",
    )
    parser.add_argument(
        "--validate", action="store_true",
        help="Validate manifest only — check paths, don't render",
    )
    args = parser.parse_args(args)

    if args.validate:
        config = load_manifest(args.manifest)
        validate_paths(config)
        timeline = config["timeline"]
        print(f"Manifest valid: {timeline.duration:.2f}s at {timeline.fps}fps, "
              f"{timeline.total_frames()} frames")
        for layer in timeline.draw_order():
            z = f" z={layer.z}" if layer.z is not None else ""
            print(f"  {layer.name}{z}: {len(layer.clips)} clip(s)")
        if config["music"] is not None:
            print(f"  audio: {config['music'].path} + {len(config['sfx'])} sfx event(s)")
        print("All paths verified.")
        return

    if not args.output:
        parser.error("--output is required (unless using --validate)")

    render(
        args.manifest, args.output,
        start_time=args.start_time,
        end_time=args.end_time,
        workers=args.workers,
        keep_temp=args.keep_temp,
    )


if __name__ == "__main__":
    main()
