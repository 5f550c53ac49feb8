"""Split text into plain-text and math segments.

Segments partition the source: joining every segment's ``raw`` text gives
back the original string, as long as every open marker found has a matching
close. When a close marker is missing, segmentation stops at the unmatched
open marker and the remainder of the text is not emitted. Callers that need
to report unclosed delimiters must use the direct validator
(``texspan.validation.validate_direct``), which detects them.

Segment Types:
Segment
├── PlainText   text outside any delimiter
└── MathSpan    delimited math, with the content sent to the engine

Thread Safety:
All segments are frozen (immutable). Segmentation is a pure function.

"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TypeAlias

from texspan.delimiters import ClosePolicy, DelimiterSpec, DelimiterTable
from texspan.scanner import find_matching_close


@dataclass(frozen=True, slots=True)
class PlainText:
    """Text outside any math delimiter."""

    content: str

    @property
    def raw(self) -> str:
        """Original source text of this segment."""
        return self.content


@dataclass(frozen=True, slots=True)
class MathSpan:
    """A delimited math span.

    Attributes:
        content: Text submitted to the rendering engine. For ``\\begin{...}``
            environments this is the whole raw span, since the environment
            name is part of the grammar being checked.
        raw: Content with its original delimiters, for error display
        display: Render in display mode
        delimiter: The delimiter that produced this span
    """

    content: str
    raw: str
    display: bool
    delimiter: DelimiterSpec

    @property
    def self_terminating(self) -> bool:
        """True for markers with no close (``\\item``); nothing to validate."""
        return self.delimiter.policy is ClosePolicy.SELF_TERMINATING


Segment: TypeAlias = PlainText | MathSpan


def iter_segments(text: str, table: DelimiterTable) -> Iterator[Segment]:
    """Lazily segment text.

    Args:
        text: Source text
        table: Delimiter table (first match wins)

    Yields:
        Segments in source order
    """
    position = 0
    length = len(text)

    while position < length:
        index = table.search(text, position)
        if index is None:
            break
        if index > position:
            yield PlainText(text[position:index])

        spec = table.match_at(text, index)
        if spec is None:
            # Unreachable: search() only reports registered open markers
            yield PlainText(text[index : index + 1])
            position = index + 1
            continue

        content_start = index + len(spec.open)
        if spec.policy is ClosePolicy.SELF_TERMINATING:
            yield MathSpan(content="", raw=spec.open, display=spec.display, delimiter=spec)
            position = content_start
            continue

        close_index = find_matching_close(spec.close, text, content_start)
        if close_index is None:
            # Remainder is dropped; see module docstring.
            return

        end = close_index + len(spec.close)
        raw = text[index:end]
        content = raw if spec.is_environment else text[content_start:close_index]
        yield MathSpan(content=content, raw=raw, display=spec.display, delimiter=spec)
        position = end

    if position < length:
        yield PlainText(text[position:])


def segment(text: str, table: DelimiterTable) -> list[Segment]:
    """Segment text into an ordered list of PlainText and MathSpan.

    Example:
        >>> from texspan.delimiters import create_default_table
        >>> [type(s).__name__ for s in segment("a \\\\(x\\\\) b", create_default_table())]
        ['PlainText', 'MathSpan', 'PlainText']
    """
    return list(iter_segments(text, table))


def reconstruct(segments: list[Segment]) -> str:
    """Join segments back into source text."""
    return "".join(seg.raw for seg in segments)


__all__ = [
    "MathSpan",
    "PlainText",
    "Segment",
    "iter_segments",
    "reconstruct",
    "segment",
]
