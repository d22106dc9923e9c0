"""Scene value types and drawable objects.

Vec2, Color and Transform are immutable values. Drawable objects are the
three variants a clip can bind: shapes (Circle, Rect), images and styled
text blocks. None of these know how they are drawn; the renderer does.
"""

from dataclasses import dataclass, field
from pathlib import Path


# ── Value types ───────────────────────────────────────────────────


@dataclass(frozen=True)
class Vec2:
    x: float = 0.0
    y: float = 0.0

    def lerp(self, other: "Vec2", p: float) -> "Vec2":
        """Componentwise linear interpolation toward other."""
        return Vec2(
            self.x + (other.x - self.x) * p,
            self.y + (other.y - self.y) * p,
        )


Vec2.ZERO = Vec2(0.0, 0.0)
Vec2.ONE = Vec2(1.0, 1.0)


@dataclass(frozen=True)
class Color:
    r: int
    g: int
    b: int
    a: int = 255

    @classmethod
    def rgb(cls, r: int, g: int, b: int) -> "Color":
        return cls(r, g, b, 255)

    @classmethod
    def rgba(cls, r: int, g: int, b: int, a: int) -> "Color":
        return cls(r, g, b, a)

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)


Color.WHITE = Color(255, 255, 255, 255)
Color.BLACK = Color(0, 0, 0, 255)


@dataclass(frozen=True)
class Transform:
    """Resolved placement of one object at one instant."""

    position: Vec2 = Vec2.ZERO
    scale: Vec2 = Vec2.ONE
    rotation: float = 0.0
    opacity: float = 1.0


# ── Shapes and images ─────────────────────────────────────────────


@dataclass(frozen=True)
class Circle:
    radius: float
    color: Color


@dataclass(frozen=True)
class Rect:
    width: float
    height: float
    color: Color


@dataclass(frozen=True)
class ImageObject:
    path: Path

    def __post_init__(self):
        object.__setattr__(self, "path", Path(self.path))


# ── Styled text ───────────────────────────────────────────────────


@dataclass(frozen=True)
class StyleFlags:
    bold: bool = False
    italic: bool = False
    underline: bool = False


StyleFlags.PLAIN = StyleFlags()


@dataclass(frozen=True)
class TextRun:
    text: str
    style: StyleFlags = StyleFlags.PLAIN


@dataclass(frozen=True)
class StyledText:
    runs: tuple[TextRun, ...] = ()

    @classmethod
    def from_markdown(cls, source: str) -> "StyledText":
        """Split a tiny markdown subset into styled runs.

        ``**`` toggles bold, ``__`` toggles underline and a single ``*``
        toggles italic. Markers are consumed; every toggle closes the
        current run. Empty runs are never emitted.
        """
        runs = []
        buffer = []
        bold = italic = underline = False

        def flush():
            if buffer:
                runs.append(TextRun("".join(buffer), StyleFlags(bold, italic, underline)))
                buffer.clear()

        i = 0
        while i < len(source):
            pair = source[i:i + 2]
            if pair == "**":
                flush()
                bold = not bold
                i += 2
            elif pair == "__":
                flush()
                underline = not underline
                i += 2
            elif source[i] == "*":
                flush()
                italic = not italic
                i += 1
            else:
                buffer.append(source[i])
                i += 1

        flush()
        return cls(tuple(runs))

    @property
    def plain_text(self) -> str:
        return "".join(run.text for run in self.runs)


@dataclass(frozen=True)
class FontFamily:
    """Font files per style. None means the renderer's default font."""

    regular: str | None = None
    bold: str | None = None
    italic: str | None = None
    bold_italic: str | None = None

    def resolve(self, style: StyleFlags) -> str | None:
        if style.bold and style.italic and self.bold_italic is not None:
            return self.bold_italic
        if style.bold and self.bold is not None:
            return self.bold
        if style.italic and self.italic is not None:
            return self.italic
        return self.regular


@dataclass(frozen=True)
class TextObject:
    text: StyledText
    font: FontFamily = field(default_factory=FontFamily)
    font_size: float = 28.0
    spacing: float = 0.0
    max_width: float = 0.0  # <= 0 disables wrapping
    color: Color = Color.WHITE
    line_spacing: float = 6.0


# Any object a clip can bind.
DrawableObject = Circle | Rect | ImageObject | TextObject
