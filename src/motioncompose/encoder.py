"""ffmpeg-backed collaborators — frame encoder, audio mixer, muxer, stitcher.

All steps shell out to the ffmpeg binary bundled with imageio-ffmpeg.
Any non-zero exit surfaces as one EncoderError carrying ffmpeg's stderr.

  - FrameEncoder: raw RGBA frames on stdin -> H.264 mp4.
  - render_audio: a MixPlan -> pcm wav of exactly plan.duration.
  - trim_audio: cut a window out of a rendered wav.
  - mux_video_audio: one video + one audio stream, "-shortest" policy.
  - build_base_video: resolved VideoSegments -> one concatenated mp4.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

import imageio_ffmpeg
from moviepy import VideoFileClip

from .audio import MixPlan, build_filter_graph
from .errors import EncoderError
from .video import VideoClip, find_gaps, resolve_segments

logger = logging.getLogger(__name__)

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()


def _run_ffmpeg(args: list[str], stage: str) -> None:
    cmd = [_FFMPEG, "-y", "-loglevel", "error", *args]
    logger.debug("ffmpeg %s: %s", stage, " ".join(cmd))
    result = subprocess.run(cmd, capture_output=True, text=True)
    if result.returncode != 0:
        raise EncoderError(stage, result.returncode, result.stderr)


def _codec_params(codec: str) -> list[str]:
    if codec == "h264_nvenc":
        return ["-c:v", codec, "-cq", "20", "-pix_fmt", "yuv420p"]
    return ["-c:v", codec, "-crf", "18", "-pix_fmt", "yuv420p"]


# ── Frame encoder ─────────────────────────────────────────────────


class FrameEncoder:
    """Stream fixed-size RGBA8 frames into an encoded video file.

    Usage:
        with FrameEncoder(800, 600, 30, "out.mp4") as enc:
            for t, rgba in render_frames(...):
                enc.write_frame(rgba)

    vflip=True flips rows for bottom-up frame sources.
    """

    def __init__(
        self,
        width: int,
        height: int,
        fps: int,
        output_path: str | Path,
        vflip: bool = False,
        codec: str = "libx264",
    ):
        self.width = width
        self.height = height
        self.frame_size = width * height * 4
        self.frames_written = 0
        self.output_path = Path(output_path)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

        cmd = [
            _FFMPEG, "-y", "-loglevel", "error",
            "-f", "rawvideo", "-pix_fmt", "rgba",
            "-s", f"{width}x{height}",
            "-r", str(fps),
            "-i", "-",
        ]
        if vflip:
            cmd += ["-vf", "vflip"]
        cmd += [*_codec_params(codec), str(self.output_path)]

        self._finished = False
        self._proc = subprocess.Popen(
            cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
        )

    def write_frame(self, frame: bytes) -> None:
        if len(frame) != self.frame_size:
            raise ValueError(
                f"frame size mismatch: got {len(frame)} bytes, expected {self.frame_size}"
            )
        if self._proc.stdin is None or self._proc.stdin.closed:
            raise EncoderError("encode", -1, "encoder stdin already closed")
        try:
            self._proc.stdin.write(frame)
        except BrokenPipeError:
            # ffmpeg died early; finish() reports its stderr.
            self.finish()
            raise
        self.frames_written += 1

    def finish(self) -> None:
        """Close stdin, wait for ffmpeg, raise EncoderError on failure."""
        if self._finished:
            return
        self._finished = True
        _, stderr = self._proc.communicate()
        if self._proc.returncode != 0:
            raise EncoderError(
                "encode", self._proc.returncode,
                stderr.decode(errors="replace") if stderr else "",
            )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.finish()
        elif not self._finished:
            self._finished = True
            self._proc.kill()
            self._proc.communicate()
        return False


# ── Audio ─────────────────────────────────────────────────────────


def render_audio(plan: MixPlan, output_wav: str | Path) -> None:
    """Mix a plan to a pcm_s16le wav of plan.duration seconds."""
    Path(output_wav).parent.mkdir(parents=True, exist_ok=True)

    inputs = []
    if plan.base.looped:
        inputs += ["-stream_loop", "-1"]
    inputs += ["-i", str(plan.base.path)]
    for stream in plan.sfx_streams:
        inputs += ["-i", str(stream.path)]

    _run_ffmpeg([
        *inputs,
        "-filter_complex", build_filter_graph(plan),
        "-map", "[aout]",
        "-t", f"{plan.duration:.3f}",
        "-c:a", "pcm_s16le",
        str(output_wav),
    ], "audio render")


def trim_audio(
    input_wav: str | Path, start_time: float, end_time: float, output_wav: str | Path,
) -> None:
    if end_time <= start_time:
        raise ValueError(f"trim window must satisfy start < end (got {start_time}, {end_time})")
    _run_ffmpeg([
        "-ss", f"{start_time:.3f}",
        "-t", f"{end_time - start_time:.3f}",
        "-i", str(input_wav),
        str(output_wav),
    ], "audio trim")


def mux_video_audio(
    video_path: str | Path, audio_path: str | Path, output_path: str | Path,
) -> None:
    """Combine one video and one audio stream; output ends with the shorter."""
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    _run_ffmpeg([
        "-i", str(video_path),
        "-i", str(audio_path),
        "-c:v", "copy",
        "-c:a", "aac",
        "-shortest",
        str(output_path),
    ], "mux")


# ── Base video stitching ──────────────────────────────────────────


@dataclass(frozen=True)
class VideoMetadata:
    width: int
    height: int
    fps: float
    duration: float


def probe_video(path: str | Path) -> VideoMetadata:
    """Read size, fps and duration with moviepy (no ffprobe needed)."""
    with VideoFileClip(str(path), audio=False) as clip:
        width, height = clip.size
        return VideoMetadata(int(width), int(height), float(clip.fps), float(clip.duration))


def _matches_target(meta: VideoMetadata, width: int, height: int, fps: int) -> bool:
    return meta.width == width and meta.height == height and abs(meta.fps - fps) < 0.01


def normalize_if_needed(
    source: Path, meta: VideoMetadata, width: int, height: int, fps: int, temp_dir: Path,
    prefix: str = "",
) -> Path:
    """Re-encode source to the target size/fps unless it already matches."""
    if _matches_target(meta, width, height, fps):
        return source

    temp_dir.mkdir(parents=True, exist_ok=True)
    output = temp_dir / f"{prefix}{source.stem}_normalized.mp4"
    logger.info("Normalizing %s (%dx%d@%.2f -> %dx%d@%d)",
                source, meta.width, meta.height, meta.fps, width, height, fps)
    _run_ffmpeg([
        "-i", str(source),
        "-vf", f"scale={width}x{height}",
        "-r", str(fps),
        "-an",
        *_codec_params("libx264"),
        str(output),
    ], "normalize")
    return output


def write_concat_list(list_path: Path, segment_paths: list[Path]) -> None:
    with open(list_path, "w") as f:
        for seg in segment_paths:
            f.write(f"file '{seg.resolve()}'\n")


def build_base_video(
    clips: list[VideoClip],
    width: int,
    height: int,
    fps: int,
    output_path: str | Path,
    temp_dir: str | Path,
    keep_temp: bool = False,
) -> list[Path]:
    """Stitch clips into one video following resolve_segments().

    Each segment is cut from its (normalized) source at source_start for
    the segment's duration, re-encoded to the target size and fps, then
    all segments are joined with the concat demuxer. Coverage gaps are
    logged and skipped: the output is the covered segments back to back.

    Returns the list of temp files left behind (empty unless keep_temp).

    Raises:
        ValueError: No clip covers any time span.
        EncoderError: Any ffmpeg step failed.
    """
    segments = resolve_segments(clips)
    if not segments:
        raise ValueError("No video segments to render")
    for gap_start, gap_end in find_gaps(segments):
        logger.warning("No video clip covers %.3fs - %.3fs", gap_start, gap_end)

    output_path = Path(output_path)
    temp_dir = Path(temp_dir)
    temp_dir.mkdir(parents=True, exist_ok=True)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    normalized: dict[int, Path] = {}
    temp_files: list[Path] = []
    segment_paths: list[Path] = []

    for seg_index, segment in enumerate(segments):
        clip = clips[segment.clip_index]
        if segment.clip_index not in normalized:
            meta = probe_video(clip.path)
            source = normalize_if_needed(
                clip.path, meta, width, height, fps, temp_dir,
                prefix=f"clip{segment.clip_index:03d}_",
            )
            normalized[segment.clip_index] = source
            if source != clip.path:
                temp_files.append(source)
        source = normalized[segment.clip_index]

        seg_output = temp_dir / f"segment_{seg_index:03d}.mp4"
        _run_ffmpeg([
            "-ss", f"{segment.source_start:.3f}",
            "-t", f"{segment.duration:.3f}",
            "-i", str(source),
            "-an",
            "-vf", f"scale={width}x{height}",
            "-r", str(fps),
            *_codec_params("libx264"),
            str(seg_output),
        ], "segment cut")
        segment_paths.append(seg_output)

    list_path = temp_dir / "concat_list.txt"
    write_concat_list(list_path, segment_paths)
    _run_ffmpeg([
        "-f", "concat", "-safe", "0",
        "-i", str(list_path),
        "-c", "copy",
        str(output_path),
    ], "concat")

    temp_files = [list_path, *segment_paths, *temp_files]
    if keep_temp:
        return temp_files
    for path in temp_files:
        path.unlink(missing_ok=True)
    return []
