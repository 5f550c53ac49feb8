"""Close-marker scanner for math spans.

Finds where a math span ends given its close marker. The scan is a single
forward pass tracking brace depth, so a close marker that appears inside a
``{...}`` group (``\\frac{a}{b}`` inside ``\\text{...}``) does not end the span.

Depth is allowed to go negative. A close marker is accepted whenever the
depth is at or below zero, which tolerates unbalanced input instead of
scanning to the end of the text looking for an exact balance.

Complexity: O(n) in the length of text after start.

Thread Safety:
Pure function over immutable strings.

"""

from __future__ import annotations


def find_matching_close(close: str, text: str, start: int) -> int | None:
    """Find the close marker for a span whose content starts at start.

    A backslash consumes the following character unconditionally, so an
    escaped character can never open or close a brace group or begin a
    close marker.

    Args:
        close: Close marker to look for (non-empty)
        text: Full source text
        start: Index just past the open marker

    Returns:
        Index of the close marker, or None if the text ends first

    Example:
        >>> find_matching_close("}", "\\\\text{a {b} c} tail", 6)
        13
    """
    index = start
    depth = 0
    length = len(text)

    while index < length:
        if depth <= 0 and text.startswith(close, index):
            return index

        char = text[index]
        if char == "\\":
            index += 1
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1

        index += 1

    return None


__all__ = ["find_matching_close"]
