"""CLI for base video stitching — overlapping clips into one track.

Resolves the manifest's video clips into non-overlapping segments
("last declared wins" on overlaps), then cuts and concatenates them with
native ffmpeg at the manifest's resolution and fps.

Usage:
    python -m motioncompose.stitch_cli --manifest scene.yaml --output base.mp4

    # Print the resolved segments without rendering
    python -m motioncompose.stitch_cli --manifest scene.yaml --dry-run
"""

import argparse
from pathlib import Path

from .encoder import build_base_video
from .manifest import load_manifest, validate_paths
from .video import find_gaps, resolve_segments


def print_segments(config: dict) -> None:
    clips = config["videos"]
    segments = resolve_segments(clips)
    print(f"{len(clips)} clip(s) -> {len(segments)} segment(s)")
    for seg in segments:
        clip = clips[seg.clip_index]
        print(
            f"  {seg.timeline_start:7.3f}s - {seg.timeline_end:7.3f}s  "
            f"[{seg.clip_index}] {clip.path} @ {seg.source_start:.3f}s"
        )
    for gap_start, gap_end in find_gaps(segments, config["timeline"].duration):
        print(f"  {gap_start:7.3f}s - {gap_end:7.3f}s  (gap)")


def stitch(manifest_path: str, output_path: str, keep_temp: bool = False) -> None:
    config = load_manifest(manifest_path)
    validate_paths(config)

    if not config["videos"]:
        print("No video clips to stitch.")
        return

    width, height = config["video"]["resolution"]
    fps = config["timeline"].fps
    output = Path(output_path)
    temp_dir = output.with_name(f"{output.stem}_temp")

    print_segments(config)
    print(f"\nStitching at {width}x{height}, {fps}fps")
    print(f"Writing to: {output}")
    kept = build_base_video(
        config["videos"], width, height, fps, output, temp_dir, keep_temp=keep_temp,
    )
    if kept:
        print(f"Kept {len(kept)} temp file(s) in {temp_dir}/")
    elif temp_dir.exists() and not any(temp_dir.iterdir()):
        temp_dir.rmdir()
    print(f"\nDone: {output}")


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Stitch a manifest's video clips into one base video.",
    )
    parser.add_argument(
        "--manifest", required=True,
        help="Path to YAML scene manifest",
    )
    parser.add_argument(
        "--output",
        help="Output mp4 path (required unless --dry-run)",
    )
    parser.add_argument(
        "--keep-temp", action="store_true",
        help="Keep per-segment and normalized temp files",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Print resolved segments only — don't render",
    )
    args = parser.parse_args(args)

    if args.dry_run:
        print_segments(load_manifest(args.manifest))
        return

    if not args.output:
        parser.error("--output is required (unless using --dry-run)")

    stitch(args.manifest, args.output, keep_temp=args.keep_temp)


if __name__ == "__main__":
    main()
