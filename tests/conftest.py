"""Shared test fixtures for motioncompose tests."""

import subprocess

import pytest
import imageio_ffmpeg

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()


def _ffmpeg(*args):
    subprocess.run([_FFMPEG, "-y", *args], check=True, capture_output=True)


@pytest.fixture
def make_video(tmp_path):
    """Factory: solid-color test video (no audio) with the given size/fps/duration."""
    def _make(name="clip.mp4", color="blue", size=(160, 120), fps=10, duration=5):
        out = tmp_path / name
        _ffmpeg(
            "-f", "lavfi",
            "-i", f"color=c={color}:s={size[0]}x{size[1]}:d={duration}:r={fps}",
            "-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p",
            str(out),
        )
        return out
    return _make


@pytest.fixture
def music_wav(tmp_path):
    """A 2-second 220Hz tone, short enough that looping is exercised."""
    out = tmp_path / "music.wav"
    _ffmpeg(
        "-f", "lavfi", "-i", "sine=frequency=220:duration=2:sample_rate=44100",
        "-c:a", "pcm_s16le", str(out),
    )
    return out


@pytest.fixture
def blip_wav(tmp_path):
    """A 0.1-second 880Hz blip used as a sound effect."""
    out = tmp_path / "blip.wav"
    _ffmpeg(
        "-f", "lavfi", "-i", "sine=frequency=880:duration=0.1:sample_rate=44100",
        "-c:a", "pcm_s16le", str(out),
    )
    return out
