"""Human-readable validation reports.

Example:
    >>> from texspan import validate_latex
    >>> text = "a \\\\(x"
    >>> print(format_validation_errors(text, validate_latex(text).errors))
    Found 1 LaTeX error(s):
    <BLANKLINE>
    <BLANKLINE>
    ❌ Error at line 1, column 3:
       Type: unclosed_delimiter
       Message: Unclosed LaTeX delimiter: "\\(" at position 2
       LaTeX: \\(x...
       a \\(x
         ^^
"""

from __future__ import annotations

from collections.abc import Sequence

from texspan.location import SourceLocation
from texspan.validation import ValidationError

NO_ERRORS_MESSAGE = "✓ No LaTeX errors found"
VALID_MESSAGE = "✅ LaTeX formatting is valid!"

# Source lines are printed with this indent; the caret line follows it
_INDENT = "   "


def format_validation_errors(
    text: str,
    errors: Sequence[ValidationError],
    *,
    source_file: str | None = None,
) -> str:
    """Render errors with line/column and a caret under the offending text.

    The caret run is ``min(error.length, characters left on the line)``
    long, starting at the error column.

    Args:
        text: The text that was validated
        errors: Errors reported for text
        source_file: Optional path shown in each error header

    Returns:
        Multi-line report, or NO_ERRORS_MESSAGE when errors is empty
    """
    if not errors:
        return NO_ERRORS_MESSAGE

    lines = text.split("\n")
    out = [f"Found {len(errors)} LaTeX error(s):\n"]

    for error in errors:
        loc = SourceLocation.from_offset(
            text, error.position, source_file=source_file, lines=lines
        )
        where = f"line {loc.lineno}, column {loc.col_offset}"
        if source_file:
            where = f"{source_file} {where}"
        out.extend(
            [
                f"\n❌ Error at {where}:",
                f"{_INDENT}Type: {error.kind}",
                f"{_INDENT}Message: {error.message}",
                f"{_INDENT}LaTeX: {error.excerpt}",
            ]
        )

        if loc.is_known:
            line = lines[loc.lineno - 1]
            width = min(error.length, len(line) - loc.col_offset + 1)
            pointer = " " * (loc.col_offset - 1 + len(_INDENT)) + "^" * width
            out.extend([f"{_INDENT}{line}", pointer])

    return "\n".join(out)


__all__ = ["NO_ERRORS_MESSAGE", "VALID_MESSAGE", "format_validation_errors"]
