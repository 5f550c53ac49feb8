"""Source location tracking for error messages.

Provides SourceLocation for mapping a string index in the original text to
a 1-indexed line and column.

Thread Safety:
SourceLocation is frozen (immutable) and safe to share across threads.

"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """Line/column position of an index in source text.

    All positions are 1-indexed (lineno and col_offset start at 1). A
    location with ``lineno == 0`` is unknown (the index lies past the text).

    Attributes:
        lineno: Line number (1-indexed)
        col_offset: Column (1-indexed)
        offset: Absolute index into the source text
        source_file: Source file path (optional)

    Examples:
        >>> SourceLocation.from_offset("ab\\ncd", 4)
        SourceLocation(lineno=2, col_offset=2, offset=4, source_file=None)
    """

    lineno: int
    col_offset: int
    offset: int = 0
    source_file: str | None = None

    def __str__(self) -> str:
        """Format location like "file.tex:10:5" or "10:5"."""
        if self.source_file:
            return f"{self.source_file}:{self.lineno}:{self.col_offset}"
        return f"{self.lineno}:{self.col_offset}"

    @property
    def is_known(self) -> bool:
        return self.lineno > 0

    @classmethod
    def from_offset(
        cls,
        text: str,
        offset: int,
        *,
        source_file: str | None = None,
        lines: list[str] | None = None,
    ) -> SourceLocation:
        """Locate offset by walking accumulated line lengths.

        Each line accounts for its length plus one for the newline. An offset
        equal to a line's length (the newline itself) belongs to that line.

        Args:
            text: Source text
            offset: Index into text
            source_file: Optional path for display
            lines: Pre-split ``text.split("\\n")`` to avoid re-splitting

        Returns:
            Location of offset, or an unknown location if it is out of range
        """
        if lines is None:
            lines = text.split("\n")
        line_start = 0
        for lineno, line in enumerate(lines, start=1):
            if line_start + len(line) >= offset:
                return cls(
                    lineno=lineno,
                    col_offset=offset - line_start + 1,
                    offset=offset,
                    source_file=source_file,
                )
            line_start += len(line) + 1
        return cls.unknown()

    @classmethod
    def unknown(cls) -> SourceLocation:
        """Create an unknown/placeholder location."""
        return cls(lineno=0, col_offset=0)
