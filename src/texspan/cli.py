"""Command-line interface for texspan.

    texspan check notes.tex
    echo '\\(x + 1' | texspan check -
    texspan check notes.tex --strategy segmented --macro '\\RR=\\mathbb{R}' --json
    texspan serve --port 3000

``check`` exits with status 1 when the text has errors and 2 when the file
cannot be read or the engine cannot run.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from texspan import validate_latex, validate_latex_using_segmenter
from texspan.config import ServerSettings
from texspan.engine import KatexCliEngine, Latex2MathMLEngine, MathEngine
from texspan.errors import EngineUnavailableError
from texspan.formatter import format_validation_errors
from texspan.serialization import result_to_json

ENGINES: dict[str, type[MathEngine]] = {
    "latex2mathml": Latex2MathMLEngine,
    "katex": KatexCliEngine,
}


def parse_macro(value: str) -> tuple[str, str]:
    """Parse ``NAME=EXPANSION`` into a macro definition."""
    name, sep, expansion = value.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected NAME=EXPANSION, got {value!r}")
    return name, expansion


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="texspan", description=__doc__.splitlines()[0])
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Validate math in a file or stdin")
    check.add_argument(
        "path",
        nargs="?",
        default="-",
        help="File to check, or - for stdin (default: -)",
    )
    check.add_argument(
        "--strategy",
        choices=("direct", "segmented"),
        default="direct",
        help="direct reports exact positions and unclosed delimiters (default)",
    )
    check.add_argument(
        "--engine",
        choices=sorted(ENGINES),
        default="latex2mathml",
        help="Math engine used to check each span",
    )
    check.add_argument(
        "--macro",
        action="append",
        type=parse_macro,
        default=[],
        metavar="NAME=EXPANSION",
        help="Macro definition passed to the engine (repeatable)",
    )
    check.add_argument("--json", action="store_true", help="Print the result as JSON")

    serve = sub.add_parser("serve", help="Run the HTTP validation service")
    serve.add_argument("--host", default=None, help="Bind address (default: $HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: $PORT or 3000)")
    return parser


def _read_source(path: str) -> tuple[str, str | None]:
    if path == "-":
        return sys.stdin.read(), None
    return Path(path).read_text(encoding="utf-8"), path


def _fail(message: str) -> int:
    print(f"texspan: error: {message}", file=sys.stderr)
    return 2


def run_check(args: argparse.Namespace) -> int:
    try:
        text, source_file = _read_source(args.path)
    except (OSError, UnicodeDecodeError) as exc:
        return _fail(f"cannot read {args.path}: {exc}")
    macros = dict(args.macro) or None
    engine = ENGINES[args.engine]()
    validate = validate_latex if args.strategy == "direct" else validate_latex_using_segmenter
    try:
        result = validate(text, None, macros, engine=engine)
    except EngineUnavailableError as exc:
        return _fail(str(exc))

    if args.json:
        print(result_to_json(result, indent=2))
    else:
        print(format_validation_errors(text, result.errors, source_file=source_file))
    return 0 if result.is_valid else 1


def run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from texspan.server import create_app

    settings = ServerSettings.from_env()
    host = args.host or settings.host
    port = args.port or settings.port
    logging.getLogger("texspan").setLevel(settings.log_level)
    logging.getLogger("texspan").info("LaTeX validator listening on http://%s:%s", host, port)
    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if args.command == "check":
        return run_check(args)
    return run_serve(args)


if __name__ == "__main__":
    sys.exit(main())
