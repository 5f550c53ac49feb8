"""Delimiter table for locating math spans.

A delimiter is an (open, close, display) triple. The table is an ordered,
first-match-wins list: when several open markers could match at the same
position, the earliest entry in the table is used. The default ordering is
part of the public contract (``\\section*{`` must precede ``\\section{``).

Thread Safety:
DelimiterSpec and DelimiterTable are immutable after creation. Safe to share.
Use DelimiterTableBuilder for mutable construction.

Example:
    >>> builder = DelimiterTableBuilder()
    >>> builder.register(DelimiterSpec("\\\\(", "\\\\)"))
    >>> builder.register(DelimiterSpec("\\\\[", "\\\\]", display=True))
    >>> table = builder.build()
    >>> table.match_at("\\\\[x\\\\]", 0).display
    True
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from texspan.errors import DelimiterTableError


class ClosePolicy(Enum):
    """How the end of a delimited construct is found."""

    PAIRED = "paired"
    """Scan forward for the close marker, respecting braces and escapes."""

    SELF_TERMINATING = "self_terminating"
    """No close marker; the open marker alone is the whole construct."""


@dataclass(frozen=True, slots=True)
class DelimiterSpec:
    """A single delimiter entry.

    Attributes:
        open: Open marker (non-empty)
        close: Close marker; empty for self-terminating markers like ``\\item``
        display: Submit the content to the engine in display mode
    """

    open: str
    close: str = ""
    display: bool = False

    def __post_init__(self) -> None:
        if not self.open:
            raise DelimiterTableError("open marker must be non-empty")

    @property
    def policy(self) -> ClosePolicy:
        """Close policy implied by the close marker."""
        if self.close:
            return ClosePolicy.PAIRED
        return ClosePolicy.SELF_TERMINATING

    @property
    def is_environment(self) -> bool:
        """True for ``\\begin{name}`` delimiters."""
        return self.open.startswith("\\begin{")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DelimiterSpec:
        """Create a DelimiterSpec from a mapping.

        Accepts ``open``/``close``/``display`` as well as the
        ``left``/``right`` and ``displayMode`` spellings used by
        JavaScript delimiter tables.

        Raises:
            DelimiterTableError: If no open marker is given
        """
        open_marker = data.get("open", data.get("left"))
        if not isinstance(open_marker, str):
            raise DelimiterTableError("delimiter is missing a string 'open' marker")
        close_marker = data.get("close", data.get("right", "")) or ""
        display = data.get("display", data.get("displayMode", False))
        return cls(open=open_marker, close=str(close_marker), display=bool(display))


class DelimiterTable:
    """Immutable, ordered table of delimiters.

    Thread Safety:
        Immutable after creation. Safe to share across threads.
    """

    __slots__ = ("_by_open", "_open_pattern", "_specs")

    def __init__(self, specs: tuple[DelimiterSpec, ...]) -> None:
        """Initialize table from already-validated specs.

        Use DelimiterTableBuilder to create instances.
        """
        self._specs = specs
        self._by_open = {spec.open: spec for spec in specs}
        # Alternation order follows table order, so at the leftmost match
        # position the regex picks the same entry as match_at().
        self._open_pattern = re.compile("|".join(re.escape(spec.open) for spec in specs))

    def search(self, text: str, start: int = 0) -> int | None:
        """Find the earliest position at or after start where any open marker occurs.

        Args:
            text: Text to search
            start: Index to start searching from

        Returns:
            Index of the open marker, or None if there is none
        """
        if not self._specs:
            return None
        match = self._open_pattern.search(text, start)
        if match is None:
            return None
        return match.start()

    def match_at(self, text: str, position: int) -> DelimiterSpec | None:
        """Return the first delimiter (in table order) whose open marker starts at position."""
        for spec in self._specs:
            if text.startswith(spec.open, position):
                return spec
        return None

    def get(self, open_marker: str) -> DelimiterSpec | None:
        """Get delimiter by its open marker."""
        return self._by_open.get(open_marker)

    @property
    def specs(self) -> tuple[DelimiterSpec, ...]:
        """All delimiters in priority order."""
        return self._specs

    @property
    def open_markers(self) -> tuple[str, ...]:
        """All open markers in priority order."""
        return tuple(spec.open for spec in self._specs)

    def __iter__(self) -> Iterator[DelimiterSpec]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, open_marker: object) -> bool:
        """Support ``"\\\\(" in table`` syntax."""
        return open_marker in self._by_open

    def __repr__(self) -> str:
        return f"DelimiterTable({len(self._specs)} delimiters)"


class DelimiterTableBuilder:
    """Mutable builder for DelimiterTable.

    Register delimiters in priority order, then call build() to create
    an immutable table.
    """

    __slots__ = ("_opens", "_specs")

    def __init__(self) -> None:
        self._specs: list[DelimiterSpec] = []
        self._opens: set[str] = set()

    def register(self, spec: DelimiterSpec) -> DelimiterTableBuilder:
        """Append a delimiter at the lowest priority.

        Args:
            spec: Delimiter to add

        Returns:
            Self for chaining

        Raises:
            DelimiterTableError: If the open marker is already registered
        """
        if spec.open in self._opens:
            raise DelimiterTableError("already registered", open_marker=spec.open)
        self._opens.add(spec.open)
        self._specs.append(spec)
        return self

    def register_all(self, specs: Iterable[DelimiterSpec]) -> DelimiterTableBuilder:
        """Register multiple delimiters in order.

        Returns:
            Self for chaining
        """
        for spec in specs:
            self.register(spec)
        return self

    def build(self) -> DelimiterTable:
        """Build immutable table from registered delimiters."""
        return DelimiterTable(tuple(self._specs))

    def __len__(self) -> int:
        return len(self._specs)


# Priority order is significant. Do not sort.
DEFAULT_DELIMITERS: tuple[DelimiterSpec, ...] = (
    DelimiterSpec("\\(", "\\)"),
    DelimiterSpec("\\[", "\\]", display=True),
    DelimiterSpec("\\begin{equation}", "\\end{equation}"),
    DelimiterSpec("\\begin{align}", "\\end{align}"),
    DelimiterSpec("\\begin{align*}", "\\end{align*}"),
    DelimiterSpec("\\begin{cases}", "\\end{cases}"),
    DelimiterSpec("\\begin{matrix}", "\\end{matrix}"),
    DelimiterSpec("\\begin{bmatrix}", "\\end{bmatrix}"),
    DelimiterSpec("\\begin{pmatrix}", "\\end{pmatrix}"),
    DelimiterSpec("\\begin{array}", "\\end{array}"),
    DelimiterSpec("\\section*{", "}"),
    DelimiterSpec("\\section{", "}"),
    DelimiterSpec("\\subsection*{", "}"),
    DelimiterSpec("\\subsection{", "}"),
    DelimiterSpec("\\textbf{", "}"),
    DelimiterSpec("\\begin{enumerate}", "\\end{enumerate}"),
    DelimiterSpec("\\begin{itemize}", "\\end{itemize}"),
    DelimiterSpec("\\item"),
    DelimiterSpec("\\textit{", "}"),
    DelimiterSpec("\\textrm{", "}"),
    DelimiterSpec("\\text{", "}"),
    DelimiterSpec("\\begin{theorem}", "\\end{theorem}"),
    DelimiterSpec("\\begin{proof}", "\\end{proof}"),
    DelimiterSpec("\\begin{definition}", "\\end{definition}"),
    DelimiterSpec("\\begin{example}", "\\end{example}"),
    DelimiterSpec("\\begin{table}", "\\end{table}"),
    DelimiterSpec("\\begin{tabular}", "\\end{tabular}"),
    DelimiterSpec("\\frac{", "}"),
    DelimiterSpec("\\hat{", "}"),
    DelimiterSpec("\\vec{", "}"),
    DelimiterSpec("\\overline{", "}"),
)


# Cached singleton, safe to share since DelimiterTable is immutable
_DEFAULT_TABLE: DelimiterTable | None = None


def create_default_table() -> DelimiterTable:
    """Get the default delimiter table (cached singleton).

    Returns:
        Table with inline ``\\(...\\)``, display ``\\[...\\]``, the
        ``\\begin{...}`` environment family, formatting macros and the
        self-terminating ``\\item``. A bare ``$`` is deliberately absent so
        currency amounts are never mistaken for math.
    """
    global _DEFAULT_TABLE
    if _DEFAULT_TABLE is None:
        _DEFAULT_TABLE = create_table_with_defaults().build()
    return _DEFAULT_TABLE


def create_table_with_defaults() -> DelimiterTableBuilder:
    """Create a builder pre-populated with the default delimiters.

    New registrations are appended after the defaults (lowest priority).
    """
    return DelimiterTableBuilder().register_all(DEFAULT_DELIMITERS)


def build_table(
    delimiters: DelimiterTable | Iterable[DelimiterSpec | Mapping[str, Any]] | None,
) -> DelimiterTable:
    """Coerce caller-supplied delimiters into a table.

    A caller-supplied table replaces the default wholesale; entries are never
    merged with the defaults.

    Args:
        delimiters: A table, an iterable of specs or mappings, or None for
            the default table

    Raises:
        DelimiterTableError: On an invalid or duplicate entry
    """
    if delimiters is None:
        return create_default_table()
    if isinstance(delimiters, DelimiterTable):
        return delimiters
    builder = DelimiterTableBuilder()
    for item in delimiters:
        spec = item if isinstance(item, DelimiterSpec) else DelimiterSpec.from_dict(item)
        builder.register(spec)
    return builder.build()


__all__ = [
    "DEFAULT_DELIMITERS",
    "ClosePolicy",
    "DelimiterSpec",
    "DelimiterTable",
    "DelimiterTableBuilder",
    "build_table",
    "create_default_table",
    "create_table_with_defaults",
]
