"""ContextVar-based validation configuration for texspan.

Provides thread-local defaults for the delimiter table, macros and engine
using Python's ContextVars (PEP 567). Arguments passed directly to
``validate_latex()`` always win over the context configuration, which wins
over the built-in defaults.

Thread Safety:
    ContextVars are thread-local by design. Each thread has independent storage,
    so no locks are needed.

Usage:
    from texspan.config import ValidationConfig, validation_config_context

    with validation_config_context(ValidationConfig(macros={"\\\\RR": "\\\\mathbb{R}"})):
        result = validate_latex("\\\\(x \\\\in \\\\RR\\\\)")

Server settings are read from the environment by ``ServerSettings.from_env()``.

"""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from texspan.delimiters import DelimiterTable
    from texspan.engine import MathEngine


@dataclass(frozen=True, slots=True)
class ValidationConfig:
    """Immutable validation configuration.

    Attributes:
        delimiters: Delimiter table; None uses the default table
        macros: Macro definitions passed to the engine on every call
        engine: Math engine; None uses the default engine

    """

    delimiters: DelimiterTable | None = None
    macros: Mapping[str, str] | None = None
    engine: MathEngine | None = None

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> ValidationConfig:
        """Create ValidationConfig from dictionary.

        Only includes keys that are valid ValidationConfig fields; unknown keys
        are silently ignored. ``delimiters`` may be a list of mappings.

        Example:
            >>> config = ValidationConfig.from_dict({
            ...     "macros": {"\\\\RR": "\\\\mathbb{R}"},
            ...     "unknown_key": "ignored",
            ... })
            >>> config.macros
            {'\\\\RR': '\\\\mathbb{R}'}

        """
        from texspan.delimiters import build_table

        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in config_dict.items() if k in valid_fields}
        if filtered.get("delimiters") is not None:
            filtered["delimiters"] = build_table(filtered["delimiters"])
        return cls(**filtered)


# Module-level default config (reused, never recreated)
_DEFAULT_CONFIG: ValidationConfig = ValidationConfig()

_validation_config: ContextVar[ValidationConfig] = ContextVar(
    "validation_config",
    default=_DEFAULT_CONFIG,
)


def get_validation_config() -> ValidationConfig:
    """Get current validation configuration (thread-local)."""
    return _validation_config.get()


def set_validation_config(config: ValidationConfig) -> None:
    """Set validation configuration for current context."""
    _validation_config.set(config)


def reset_validation_config() -> None:
    """Reset to default configuration."""
    _validation_config.set(_DEFAULT_CONFIG)


@contextmanager
def validation_config_context(config: ValidationConfig) -> Iterator[None]:
    """Context manager for temporary config changes.

    Restores the previous config even if an exception is raised.
    """
    previous = _validation_config.get()
    _validation_config.set(config)
    try:
        yield
    finally:
        _validation_config.set(previous)


DEFAULT_BODY_LIMIT = 256 * 1024


@dataclass(frozen=True, slots=True)
class ServerSettings:
    """HTTP server settings.

    Attributes:
        host: Bind address
        port: Listen port
        body_limit: Largest accepted request body in bytes
        log_level: Logging level name
    """

    host: str = "0.0.0.0"
    port: int = 3000
    body_limit: int = DEFAULT_BODY_LIMIT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServerSettings:
        """Read settings from PORT, HOST, TEXSPAN_BODY_LIMIT and TEXSPAN_LOG_LEVEL."""
        env = os.environ if environ is None else environ
        return cls(
            host=env.get("HOST", "0.0.0.0"),
            port=int(env.get("PORT", "3000")),
            body_limit=int(env.get("TEXSPAN_BODY_LIMIT", DEFAULT_BODY_LIMIT)),
            log_level=env.get("TEXSPAN_LOG_LEVEL", "INFO").upper(),
        )


__all__ = [
    "DEFAULT_BODY_LIMIT",
    "ServerSettings",
    "ValidationConfig",
    "get_validation_config",
    "reset_validation_config",
    "set_validation_config",
    "validation_config_context",
]
