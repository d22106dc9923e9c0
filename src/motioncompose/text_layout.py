"""Line layout for styled text blocks.

Wraps a TextObject's runs into lines no wider than max_width, given a
measure function (style, text) -> pixel width. The metrics provider is
injected so layout stays independent of any particular font backend.

Rules:
  - Explicit newlines always break.
  - Tokens are maximal runs of whitespace or non-whitespace.
  - A token that overflows starts a new line; whitespace tokens are
    dropped at the start of a wrapped line.
  - A token wider than max_width on an empty line breaks per character.
  - Adjacent pieces with the same style merge into one run.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass, field

from .scene import StyleFlags, TextObject, TextRun

Measure = Callable[[StyleFlags, str], float]


@dataclass
class Line:
    runs: list[TextRun] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(r.text for r in self.runs)


def split_tokens(text: str) -> list[str]:
    """Split into maximal whitespace / non-whitespace tokens."""
    tokens = []
    buf = ""
    last_space = None
    for ch in text:
        is_space = ch.isspace()
        if last_space is None or last_space == is_space:
            buf += ch
        else:
            tokens.append(buf)
            buf = ch
        last_space = is_space
    if buf:
        tokens.append(buf)
    return tokens


def _push(runs: list[TextRun], style: StyleFlags, text: str) -> None:
    if not text:
        return
    if runs and runs[-1].style == style:
        runs[-1] = TextRun(runs[-1].text + text, style)
    else:
        runs.append(TextRun(text, style))


def layout_text(text: TextObject, measure: Measure) -> list[Line]:
    max_width = text.max_width if text.max_width > 0 else math.inf
    lines = []
    current = Line()
    line_width = 0.0

    for run in text.text.runs:
        for part_idx, part in enumerate(run.text.split("\n")):
            if part_idx > 0:
                lines.append(current)
                current = Line()
                line_width = 0.0

            for token in split_tokens(part):
                token_width = measure(run.style, token)

                if line_width > 0 and line_width + token_width > max_width:
                    lines.append(current)
                    current = Line()
                    line_width = 0.0
                    if token.isspace():
                        continue

                if token_width > max_width and not token.isspace():
                    # Over-long word: break it per character.
                    for ch in token:
                        w = measure(run.style, ch)
                        if line_width > 0 and line_width + w > max_width:
                            lines.append(current)
                            current = Line()
                            line_width = 0.0
                        _push(current.runs, run.style, ch)
                        line_width += w
                    continue

                _push(current.runs, run.style, token)
                line_width += token_width

    lines.append(current)
    return lines
