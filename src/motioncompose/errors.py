"""Typed failures raised by motioncompose.

Construction and query errors subclass ValueError so callers can catch
them the same way as any other bad-input error. External tool failures
(ffmpeg) are runtime errors carrying the tool's diagnostic text.
"""


class MotionComposeError(ValueError):
    """Base class for invariant violations detected by the core."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class ConstructionError(MotionComposeError):
    """Invalid bounds, rates, keyframe lists or trim windows."""

    kind = "construction"


class QueryError(MotionComposeError):
    """A query outside the valid domain, e.g. sampling past the end."""

    kind = "query"


class EncoderError(RuntimeError):
    """An external ffmpeg step exited with a non-zero status."""

    def __init__(self, stage: str, returncode: int, stderr: str = ""):
        self.stage = stage
        self.returncode = returncode
        self.stderr = stderr.strip()
        msg = f"ffmpeg {stage} failed with status {returncode}"
        if self.stderr:
            msg += f": {self.stderr}"
        super().__init__(msg)
