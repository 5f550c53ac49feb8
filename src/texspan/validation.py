"""Math-span validation.

Two strategies share the delimiter table, scanner and engine:

validate_direct (Strategy A)
    Walks the text open marker by open marker. Every open marker is
    accounted for: validated, reported unclosed, or skipped as
    self-terminating. Positions are exact string indices. This is the check
    exposed by the top-level API and the HTTP surface.

validate_segmented (Strategy B)
    Runs the segmenter and validates each MathSpan. Positions are the running
    sum of segment lengths and are approximate. Unclosed delimiters are not
    reported: the segmenter stops at them and drops the remainder.

The strategies agree on well-formed input. They are known to disagree on:
- unclosed delimiters (A reports them, B does not)
- ``\\begin{...}`` environments (A submits the inner content, B submits the
  whole environment including its markers)

Errors are always collected, never short-circuited, and returned in
left-to-right order.

Thread Safety:
All functions are pure given the engine; results are frozen dataclasses.

"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum

from texspan.delimiters import ClosePolicy, DelimiterSpec, DelimiterTable
from texspan.engine import MathEngine
from texspan.errors import EngineError, EngineUnavailableError
from texspan.scanner import find_matching_close
from texspan.segments import MathSpan, iter_segments
from texspan.utils.logger import get_logger

logger = get_logger(__name__)

# Characters of context shown after an unclosed open marker
EXCERPT_LIMIT = 50
ELLIPSIS = "..."


class ErrorKind(StrEnum):
    """Category of a reported validation error."""

    UNCLOSED_DELIMITER = "unclosed_delimiter"
    ENGINE_SYNTAX_ERROR = "engine_syntax_error"
    SEGMENTATION_FAILURE = "segmentation_failure"


@dataclass(frozen=True, slots=True)
class ValidationError:
    """A single problem found in the text.

    Attributes:
        message: Human-readable description
        position: Index of the offending construct in the original text
        length: Length of the offending construct
        excerpt: Source snippet for display
        kind: Error category
    """

    message: str
    position: int
    length: int
    excerpt: str
    kind: ErrorKind


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validating a text. ``errors`` is empty iff ``is_valid``."""

    errors: tuple[ValidationError, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _unclosed_error(text: str, start: int, spec: DelimiterSpec) -> ValidationError:
    return ValidationError(
        message=f'Unclosed LaTeX delimiter: "{spec.open}" at position {start}',
        position=start,
        length=len(spec.open),
        excerpt=text[start : start + EXCERPT_LIMIT] + ELLIPSIS,
        kind=ErrorKind.UNCLOSED_DELIMITER,
    )


def _engine_error(exc: EngineError, position: int, raw: str) -> ValidationError:
    return ValidationError(
        message=f"Invalid LaTeX syntax: {exc.message}",
        position=position,
        length=len(raw),
        excerpt=raw,
        kind=ErrorKind.ENGINE_SYNTAX_ERROR,
    )


def validate_direct(
    text: str,
    table: DelimiterTable,
    engine: MathEngine,
    macros: Mapping[str, str] | None = None,
) -> ValidationResult:
    """Validate every math span in text by scanning open markers directly.

    Args:
        text: Author text with embedded math
        table: Delimiter table (first match wins)
        engine: Engine used to check each span
        macros: Macro definitions passed to the engine on every call

    Returns:
        ValidationResult with exact positions
    """
    errors: list[ValidationError] = []
    position = 0
    length = len(text)

    while position < length:
        start = table.search(text, position)
        if start is None:
            break

        spec = table.match_at(text, start)
        if spec is None:
            position = start + 1
            continue

        content_start = start + len(spec.open)
        if spec.policy is ClosePolicy.SELF_TERMINATING:
            position = content_start
            continue

        close_index = find_matching_close(spec.close, text, content_start)
        if close_index is None:
            logger.debug("Unclosed delimiter %r at %d", spec.open, start)
            errors.append(_unclosed_error(text, start, spec))
            # Resume inside the unclosed span to find further errors
            position = content_start
            continue

        end = close_index + len(spec.close)
        try:
            engine.render(text[content_start:close_index], display=spec.display, macros=macros)
        except EngineError as exc:
            errors.append(_engine_error(exc, start, text[start:end]))

        position = end

    return ValidationResult(errors=tuple(errors))


def validate_segmented(
    text: str,
    table: DelimiterTable,
    engine: MathEngine,
    macros: Mapping[str, str] | None = None,
) -> ValidationResult:
    """Validate math spans found by the segmenter.

    Positions are approximate (running sum of segment lengths). An unexpected
    failure while segmenting is reported as a single SEGMENTATION_FAILURE
    covering the whole input.

    Args:
        text: Author text with embedded math
        table: Delimiter table (first match wins)
        engine: Engine used to check each span
        macros: Macro definitions passed to the engine on every call

    Returns:
        ValidationResult with approximate positions
    """
    errors: list[ValidationError] = []
    offset = 0

    try:
        for seg in iter_segments(text, table):
            if isinstance(seg, MathSpan) and not seg.self_terminating:
                try:
                    engine.render(seg.content, display=seg.display, macros=macros)
                except EngineError as exc:
                    errors.append(_engine_error(exc, offset, seg.raw))
            offset += len(seg.raw)
    except EngineUnavailableError:
        raise
    except Exception as exc:
        logger.exception("Segmentation failed")
        errors.append(
            ValidationError(
                message=f"Parsing error: {exc}",
                position=0,
                length=len(text),
                excerpt=text,
                kind=ErrorKind.SEGMENTATION_FAILURE,
            )
        )

    return ValidationResult(errors=tuple(errors))


__all__ = [
    "ELLIPSIS",
    "EXCERPT_LIMIT",
    "ErrorKind",
    "ValidationError",
    "ValidationResult",
    "validate_direct",
    "validate_segmented",
]
