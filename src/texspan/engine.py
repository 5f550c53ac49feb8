"""Rendering-engine boundary.

The validator never interprets math grammar itself. Each math span is handed
to a ``MathEngine``, which either returns normally or raises ``EngineError``
with a human-readable message. That message is reported verbatim.

Engines:
- Latex2MathMLEngine: pure Python, backed by ``latex2mathml`` (default)
- KatexCliEngine: shells out to the ``katex`` npm CLI for exact KaTeX behavior

Macros are passed on every call rather than registered globally, so a single
engine instance is safe to reuse across requests.

Thread Safety:
Both engines are stateless. Spans are still validated one at a time by the
validator; engines are not required to be reentrant.

"""

from __future__ import annotations

import re
import subprocess
from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable

from latex2mathml import commands
from latex2mathml.converter import convert
from latex2mathml.exceptions import (
    DenominatorNotFoundError,
    DoubleSubscriptsError,
    DoubleSuperscriptsError,
    ExtraLeftOrMissingRightError,
    InvalidAlignmentError,
    InvalidStyleForGenfracError,
    InvalidWidthError,
    LimitsMustFollowMathOperatorError,
    MissingEndError,
    MissingSuperScriptOrSubscriptError,
    NoAvailableTokensError,
    NumeratorNotFoundError,
)
from latex2mathml.symbols_parser import SYMBOLS
from latex2mathml.tokenizer import tokenize

from texspan.errors import EngineError, EngineUnavailableError
from texspan.utils.logger import get_logger

logger = get_logger(__name__)

# Same limit and wording as KaTeX's maxExpand guard
MAX_MACRO_EXPANSIONS = 1000

_KATEX_ERROR_RE = re.compile(r"KaTeX parse error: (.+)")


@runtime_checkable
class MathEngine(Protocol):
    """Protocol for math-rendering engines.

    Implementations must be stateless: everything needed to render a span
    arrives as arguments.
    """

    def render(
        self,
        math: str,
        *,
        display: bool = False,
        macros: Mapping[str, str] | None = None,
    ) -> None:
        """Render math, raising EngineError if it is not valid.

        Args:
            math: Math source without its delimiters
            display: Render in display (block) mode
            macros: Macro definitions, e.g. ``{"\\\\RR": "\\\\mathbb{R}"}``

        Raises:
            EngineError: The math has a syntax error
        """
        ...


def _check_groups(math: str) -> None:
    """Reject unbalanced ``{``/``}`` grouping the way KaTeX reports it."""
    depth = 0
    index = 0
    length = len(math)
    while index < length:
        char = math[index]
        if char == "\\":
            index += 2
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            if depth == 0:
                raise EngineError(f"Extra }} at position {index + 1}: {math}")
            depth -= 1
        index += 1
    if depth > 0:
        raise EngineError(f"Expected '}}', got 'EOF' at end of input: {math}")


# Tokens that can never stand as a command argument
_NOT_AN_ARGUMENT = frozenset({"}", "]", "^", "_", "&", commands.DOUBLEBACKSLASH, commands.RIGHT})

# Commands whose next token is the name of a new macro
_DEFINERS = frozenset(
    {commands.NEWCOMMAND, commands.DEF, commands.DECLAREMATHOPERATOR, commands.NEWENVIRONMENT}
)

_COMMAND_RE = re.compile(r"\\[A-Za-z]+")

_KNOWN_COMMANDS: frozenset[str] | None = None


def _known_commands() -> frozenset[str]:
    """Control sequences latex2mathml understands (symbols plus commands)."""
    global _KNOWN_COMMANDS
    if _KNOWN_COMMANDS is None:
        names = {name for name in SYMBOLS if _COMMAND_RE.fullmatch(name)}
        for value in vars(commands).values():
            if isinstance(value, str):
                candidates: Iterable[object] = (value,)
            elif isinstance(value, (tuple, dict)):
                candidates = value
            else:
                continue
            names.update(
                c for c in candidates if isinstance(c, str) and _COMMAND_RE.fullmatch(c)
            )
        _KNOWN_COMMANDS = frozenset(names)
    return _KNOWN_COMMANDS


def _arity(token: str) -> int:
    if token in commands.COMMANDS_WITH_TWO_PARAMETERS:
        return 2
    if token in commands.COMMANDS_WITH_ONE_PARAMETER or token in (
        commands.SQRT,
        commands.SUBSCRIPT,
        commands.SUPERSCRIPT,
    ):
        return 1
    if token.startswith(commands.MATH) and token not in commands.MATH_NON_FONT_COMMANDS:
        return 1
    return 0


def _skip_group(tokens: list[str], index: int, opening: str, closing: str) -> int | None:
    depth = 0
    for position in range(index, len(tokens)):
        if tokens[position] == opening:
            depth += 1
        elif tokens[position] == closing:
            depth -= 1
            if depth == 0:
                return position + 1
    return None


def _skip_argument(tokens: list[str], index: int) -> int | None:
    """Return the index after the argument starting at index, or None if there is none."""
    if index >= len(tokens):
        return None
    token = tokens[index]
    if token in _NOT_AN_ARGUMENT or token.startswith(commands.END):
        return None
    if token == commands.OPENING_BRACE:
        return _skip_group(tokens, index, commands.OPENING_BRACE, commands.CLOSING_BRACE)
    return index + 1


def _command_position(math: str, command: str) -> int:
    match = re.search(re.escape(command) + r"(?![A-Za-z])", math)
    return match.start() + 1 if match else 0


def _check_commands(math: str) -> None:
    """Reject undefined control sequences and commands missing an argument.

    latex2mathml renders an unknown ``\\foo`` as an identifier and a
    ``\\frac`` with one argument as a one-child fraction; KaTeX rejects both.
    """
    tokens = list(tokenize(math))
    known = _known_commands()
    defined: set[str] = set()

    for index, token in enumerate(tokens):
        if token in _DEFINERS:
            following = tokens[index + 1 : index + 3]
            defined.update(t for t in following if _COMMAND_RE.fullmatch(t))
            continue
        if (
            _COMMAND_RE.fullmatch(token)
            and token not in known
            and token not in defined
            and not token.startswith(commands.MATH)
        ):
            position = _command_position(math, token)
            raise EngineError(
                f"Undefined control sequence: {token} at position {position}: {math}"
            )

        cursor: int | None = index + 1
        if token == commands.SQRT and cursor < len(tokens) and tokens[cursor] == "[":
            cursor = _skip_group(tokens, cursor, "[", "]")
        for _ in range(_arity(token)):
            following = _skip_argument(tokens, cursor) if cursor is not None else None
            if following is None:
                where = " at end of input" if cursor is None or cursor >= len(tokens) else ""
                raise EngineError(f"Expected group after '{token}'{where}: {math}")
            cursor = following


# KaTeX wording for the failures latex2mathml signals with bare exception types
_CONVERTER_MESSAGES: dict[type[Exception], str] = {
    DoubleSuperscriptsError: "Double superscript",
    DoubleSubscriptsError: "Double subscript",
    MissingSuperScriptOrSubscriptError: "Expected group after '^' or '_'",
    ExtraLeftOrMissingRightError: "Expected '\\right' to match '\\left'",
    NumeratorNotFoundError: "Expected numerator before fraction",
    DenominatorNotFoundError: "Expected denominator after fraction",
    NoAvailableTokensError: "Unexpected end of input",
    MissingEndError: "Expected '\\end' to close environment",
    InvalidAlignmentError: "Unknown column alignment",
    InvalidWidthError: "Invalid size",
    InvalidStyleForGenfracError: "Invalid style for '\\genfrac'",
    LimitsMustFollowMathOperatorError: "Limit controls must follow a math operator",
    IndexError: "Unexpected end of input",
    StopIteration: "Unexpected end of input",
}


def _converter_message(exc: Exception, math: str) -> str:
    message = _CONVERTER_MESSAGES.get(type(exc)) or str(exc) or type(exc).__name__
    return f"{message}: {math}"


def _macro_pattern(name: str) -> re.Pattern[str]:
    # \RR must not match the start of \RRR
    if name[-1:].isalpha():
        return re.compile(re.escape(name) + r"(?![A-Za-z])")
    return re.compile(re.escape(name))


def expand_macros(math: str, macros: Mapping[str, str] | None) -> str:
    """Substitute macro definitions until the text stops changing.

    Raises:
        EngineError: Expansion does not terminate (a macro refers to itself)
    """
    if not macros:
        return math
    patterns = [(_macro_pattern(name), value) for name, value in macros.items() if name]
    expansions = 0
    while True:
        changed = False
        for pattern, value in patterns:
            math, count = pattern.subn(lambda _m, v=value: v, math)
            if count:
                changed = True
                expansions += count
        if not changed:
            return math
        if expansions > MAX_MACRO_EXPANSIONS:
            raise EngineError(
                "Too many expansions: infinite loop or need to increase maxExpand setting"
            )


class Latex2MathMLEngine:
    """Engine backed by the ``latex2mathml`` converter.

    A span is valid when its braces balance and the converter produces
    MathML without raising.
    """

    __slots__ = ()

    @property
    def name(self) -> str:
        return "latex2mathml"

    def render(
        self,
        math: str,
        *,
        display: bool = False,
        macros: Mapping[str, str] | None = None,
    ) -> None:
        if not math.strip():
            return
        expanded = expand_macros(math, macros)
        _check_groups(expanded)
        _check_commands(expanded)
        try:
            convert(expanded, display="block" if display else "inline")
        except Exception as exc:
            # latex2mathml signals bad input with assorted exception types,
            # most of which carry no message.
            raise EngineError(_converter_message(exc, expanded)) from exc


class KatexCliEngine:
    """Engine that runs the ``katex`` command-line renderer.

    Requires ``npm install -g katex``. Each span is one subprocess call.
    """

    __slots__ = ("executable", "timeout")

    def __init__(self, executable: str = "katex", timeout: float = 5.0) -> None:
        self.executable = executable
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "katex"

    def command(self, *, display: bool, macros: Mapping[str, str] | None) -> list[str]:
        """Build the CLI argument list."""
        cmd = [self.executable]
        if display:
            cmd.append("--display-mode")
        for name, value in (macros or {}).items():
            cmd.extend(["--macro", f"{name}:{value}"])
        return cmd

    def render(
        self,
        math: str,
        *,
        display: bool = False,
        macros: Mapping[str, str] | None = None,
    ) -> None:
        cmd = self.command(display=display, macros=macros)
        try:
            result = subprocess.run(
                cmd,
                input=math,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise EngineUnavailableError(
                self.name, f"{self.executable!r} not found. Install with: npm install -g katex"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise EngineError("Timeout") from exc

        if result.returncode != 0:
            raise EngineError(_katex_message(result.stderr))


def _katex_message(stderr: str) -> str:
    for line in stderr.strip().splitlines():
        match = _KATEX_ERROR_RE.search(line)
        if match:
            return match.group(1)
    return stderr.strip() or "Unknown error"


# Process-wide default; holds no per-document state
_DEFAULT_ENGINE: MathEngine | None = None


def get_default_engine() -> MathEngine:
    """Get the default engine (cached singleton)."""
    global _DEFAULT_ENGINE
    if _DEFAULT_ENGINE is None:
        engine = Latex2MathMLEngine()
        logger.debug("Using %s as default math engine", engine.name)
        _DEFAULT_ENGINE = engine
    return _DEFAULT_ENGINE


__all__ = [
    "KatexCliEngine",
    "Latex2MathMLEngine",
    "MathEngine",
    "expand_macros",
    "get_default_engine",
]
