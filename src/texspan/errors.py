"""Exception classes for texspan.

Malformed input text never raises: it is reported through
``ValidationResult.errors``. These exceptions cover contract violations
(a bad delimiter table) and the rendering-engine boundary.
"""

from __future__ import annotations


class TexspanError(Exception):
    """Base exception for all texspan errors.

    Subclass this for specific error categories.
    """

    pass


class DelimiterTableError(TexspanError, ValueError):
    """Invalid delimiter table.

    Raised when a delimiter has an empty open marker or when two entries
    share the same open marker.
    """

    def __init__(self, message: str, open_marker: str | None = None) -> None:
        """Initialize delimiter table error.

        Args:
            message: Description of the contract violation
            open_marker: Offending open marker (optional)
        """
        self.open_marker = open_marker
        if open_marker is not None:
            message = f"Delimiter {open_marker!r}: {message}"
        super().__init__(message)


class EngineError(TexspanError):
    """The rendering engine rejected a math span.

    Only ``message`` is inspected by the validator; it is passed through
    verbatim into the reported error.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class EngineUnavailableError(TexspanError):
    """The rendering engine cannot run at all (missing executable, etc.).

    Not a property of the input, so it propagates out of validation.
    """

    def __init__(self, engine_name: str, message: str) -> None:
        self.engine_name = engine_name
        super().__init__(f"Engine '{engine_name}': {message}")
