"""
texspan — Delimiter-aware validation of math embedded in text

Finds math spans in author text (``\\(...\\)``, ``\\[...\\]``,
``\\begin{...}`` environments, formatting macros), checks each one with a
math-rendering engine, and reports every problem with its exact position.

Quick Start:
    >>> from texspan import validate_latex, format_validation_errors
    >>> result = validate_latex("This is valid LaTeX: \\\\(x = \\\\frac{a}{b}\\\\)")
    >>> result.is_valid
    True

    >>> text = "Broken: \\\\(x + 1"
    >>> result = validate_latex(text)
    >>> result.errors[0].kind
    <ErrorKind.UNCLOSED_DELIMITER: 'unclosed_delimiter'>

A bare ``$`` is not a delimiter in the default table, so currency such as
``"The price is $5"`` is plain text.

Installation:
    pip install texspan              # Core validator (latex2mathml engine)
    pip install texspan[server]      # + HTTP endpoint via FastAPI/uvicorn
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, TypeAlias

from texspan.config import (
    ServerSettings,
    ValidationConfig,
    get_validation_config,
    reset_validation_config,
    set_validation_config,
    validation_config_context,
)
from texspan.delimiters import (
    DEFAULT_DELIMITERS,
    ClosePolicy,
    DelimiterSpec,
    DelimiterTable,
    DelimiterTableBuilder,
    build_table,
    create_default_table,
    create_table_with_defaults,
)
from texspan.engine import (
    KatexCliEngine,
    Latex2MathMLEngine,
    MathEngine,
    get_default_engine,
)
from texspan.errors import (
    DelimiterTableError,
    EngineError,
    EngineUnavailableError,
    TexspanError,
)
from texspan.formatter import NO_ERRORS_MESSAGE, VALID_MESSAGE, format_validation_errors
from texspan.location import SourceLocation
from texspan.scanner import find_matching_close
from texspan.segments import MathSpan, PlainText, Segment, iter_segments, reconstruct, segment
from texspan.utils.logger import get_logger
from texspan.validation import (
    ErrorKind,
    ValidationError,
    ValidationResult,
    validate_direct,
    validate_segmented,
)

__version__ = "0.1.0"

logger = get_logger(__name__)

Delimiters: TypeAlias = DelimiterTable | Iterable[DelimiterSpec | Mapping[str, Any]]


def _resolve(
    delimiters: Delimiters | None,
    macros: Mapping[str, str] | None,
    engine: MathEngine | None,
) -> tuple[DelimiterTable, Mapping[str, str] | None, MathEngine]:
    """Apply argument > context config > default precedence."""
    config = get_validation_config()
    if delimiters is None:
        delimiters = config.delimiters
    if macros is None:
        macros = config.macros
    if engine is None:
        engine = config.engine or get_default_engine()
    return build_table(delimiters), macros, engine


def validate_latex(
    text: str,
    delimiters: Delimiters | None = None,
    macros: Mapping[str, str] | None = None,
    *,
    engine: MathEngine | None = None,
) -> ValidationResult:
    """Validate every math span in text.

    Uses the direct scan: every open marker is either validated or reported
    unclosed, and positions are exact.

    Args:
        text: Text with embedded math
        delimiters: Custom delimiters; replaces the default table wholesale
        macros: Macro definitions passed to the engine
        engine: Math engine (defaults to latex2mathml)

    Returns:
        ValidationResult; ``errors`` is in position order

    Raises:
        DelimiterTableError: If delimiters contains an invalid or duplicate entry

    Example:
        >>> validate_latex("Display math: \\\\[E = mc^2\\\\]").is_valid
        True
    """
    table, macros, engine = _resolve(delimiters, macros, engine)
    return validate_direct(text, table, engine, macros)


def validate_latex_using_segmenter(
    text: str,
    delimiters: Delimiters | None = None,
    macros: Mapping[str, str] | None = None,
    *,
    engine: MathEngine | None = None,
) -> ValidationResult:
    """Validate math spans found by the segmenter.

    Error positions are approximate and unclosed delimiters are not
    reported. Prefer validate_latex(); this exists to cross-check it.
    """
    table, macros, engine = _resolve(delimiters, macros, engine)
    return validate_segmented(text, table, engine, macros)


def is_valid_latex(
    text: str,
    delimiters: Delimiters | None = None,
    macros: Mapping[str, str] | None = None,
) -> bool:
    """Return True if every math span in text is valid."""
    return validate_latex(text, delimiters, macros).is_valid


def check_latex_string(text: str) -> ValidationResult:
    """Validate text and log a report (INFO when valid, WARNING otherwise)."""
    result = validate_latex(text)
    if result.is_valid:
        logger.info("%s", VALID_MESSAGE)
    else:
        logger.warning("%s", format_validation_errors(text, result.errors))
    return result


__all__ = [  # noqa: RUF022 grouped by category
    # Version
    "__version__",
    # Core API
    "validate_latex",
    "validate_latex_using_segmenter",
    "is_valid_latex",
    "check_latex_string",
    "format_validation_errors",
    "NO_ERRORS_MESSAGE",
    "VALID_MESSAGE",
    # Results
    "ErrorKind",
    "ValidationError",
    "ValidationResult",
    "validate_direct",
    "validate_segmented",
    # Delimiters
    "DEFAULT_DELIMITERS",
    "ClosePolicy",
    "DelimiterSpec",
    "DelimiterTable",
    "DelimiterTableBuilder",
    "build_table",
    "create_default_table",
    "create_table_with_defaults",
    # Scanning and segmentation
    "find_matching_close",
    "MathSpan",
    "PlainText",
    "Segment",
    "iter_segments",
    "reconstruct",
    "segment",
    # Engines
    "MathEngine",
    "Latex2MathMLEngine",
    "KatexCliEngine",
    "get_default_engine",
    # Errors
    "TexspanError",
    "DelimiterTableError",
    "EngineError",
    "EngineUnavailableError",
    # Configuration (ContextVar-based)
    "ValidationConfig",
    "ServerSettings",
    "get_validation_config",
    "set_validation_config",
    "reset_validation_config",
    "validation_config_context",
    # Location
    "SourceLocation",
]
