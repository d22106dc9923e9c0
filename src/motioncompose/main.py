"""Subcommand dispatcher for motioncompose.

Usage:
    motioncompose render   --manifest ... --output ...
    motioncompose stitch   --manifest ... --output ...
"""

import argparse
import logging
import sys


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="motioncompose",
        description="Keyframed motion graphics, video stitching and audio mixing.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Show debug logging (ffmpeg commands, segment counts)",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("render", help="Render a scene manifest to mp4")
    subparsers.add_parser("stitch", help="Stitch overlapping video clips into a base video")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        # No subcommand given: show help and exit with error.
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if parsed.command == "render":
        from .cli import main as render_main
        render_main(remaining)
    elif parsed.command == "stitch":
        from .stitch_cli import main as stitch_main
        stitch_main(remaining)


if __name__ == "__main__":
    main()
