"""Tests for the rendering-engine boundary."""

import subprocess

import pytest

import texspan.engine as engine_module
from texspan.engine import (
    MAX_MACRO_EXPANSIONS,
    KatexCliEngine,
    Latex2MathMLEngine,
    MathEngine,
    expand_macros,
    get_default_engine,
)
from texspan.errors import EngineError, EngineUnavailableError, TexspanError

# =========================================================================
# latex2mathml engine
# =========================================================================


class TestLatex2MathMLEngine:
    """Default pure-Python engine."""

    @pytest.mark.parametrize(
        "math",
        ["x = \\frac{a}{b}", "E = mc^2", "a_1 + a_2", "\\sqrt{x^2 + y^2}", "", "   "],
    )
    def test_accepts_valid_math(self, math: str) -> None:
        Latex2MathMLEngine().render(math)

    def test_display_mode(self) -> None:
        Latex2MathMLEngine().render("\\sum_{i=1}^n i", display=True)

    def test_extra_closing_brace(self) -> None:
        with pytest.raises(EngineError, match=r"Extra \} at position 13"):
            Latex2MathMLEngine().render("x = \\frac{a}}{b}")

    def test_missing_closing_brace(self) -> None:
        with pytest.raises(EngineError, match="Expected '}', got 'EOF'"):
            Latex2MathMLEngine().render("\\frac{a{b}")

    def test_escaped_braces_are_not_groups(self, monkeypatch) -> None:
        monkeypatch.setattr(engine_module, "convert", lambda math, display="inline": "<math/>")
        Latex2MathMLEngine().render("\\} x \\{")

    @pytest.mark.parametrize(
        ("math", "message"),
        [
            ("x^2^3", "Double superscript: x^2^3"),
            ("x_1_2", "Double subscript: x_1_2"),
            ("\\left( x", "Expected '\\right' to match '\\left': \\left( x"),
        ],
    )
    def test_converter_errors_are_readable(self, math: str, message: str) -> None:
        with pytest.raises(EngineError) as exc_info:
            Latex2MathMLEngine().render(math)
        assert exc_info.value.message == message
        assert exc_info.value.__cause__ is not None

    def test_unexpected_converter_failure_is_wrapped(self, monkeypatch) -> None:
        def fail(math, display="inline"):
            raise IndexError("tuple index out of range")

        monkeypatch.setattr(engine_module, "convert", fail)
        with pytest.raises(EngineError) as exc_info:
            Latex2MathMLEngine().render("x")
        assert exc_info.value.message == "Unexpected end of input: x"
        assert isinstance(exc_info.value.__cause__, IndexError)

    @pytest.mark.parametrize(
        ("math", "message"),
        [
            ("x^", "Expected group after '^' at end of input: x^"),
            ("a_", "Expected group after '_' at end of input: a_"),
            ("\\sqrt", "Expected group after '\\sqrt' at end of input: \\sqrt"),
            ("\\frac{a}", "Expected group after '\\frac' at end of input: \\frac{a}"),
            ("{\\frac{a}} + 1", "Expected group after '\\frac': {\\frac{a}} + 1"),
            ("\\hat", "Expected group after '\\hat' at end of input: \\hat"),
        ],
    )
    def test_missing_argument(self, math: str, message: str) -> None:
        with pytest.raises(EngineError) as exc_info:
            Latex2MathMLEngine().render(math)
        assert exc_info.value.message == message

    @pytest.mark.parametrize(
        "math",
        ["\\frac12", "\\frac{a}{b}", "\\sqrt[3]{x}", "\\hat{x} + \\vec v", "\\mathbb{R}"],
    )
    def test_arguments_present(self, math: str) -> None:
        Latex2MathMLEngine().render(math)

    def test_undefined_control_sequence(self) -> None:
        with pytest.raises(EngineError) as exc_info:
            Latex2MathMLEngine().render("\\foo x")
        assert exc_info.value.message == "Undefined control sequence: \\foo at position 1: \\foo x"

    def test_undefined_position_is_one_based(self) -> None:
        with pytest.raises(EngineError, match="at position 5"):
            Latex2MathMLEngine().render("a + \\nope")

    def test_prefix_of_known_command_is_undefined(self) -> None:
        with pytest.raises(EngineError, match="Undefined control sequence: \\\\alph "):
            Latex2MathMLEngine().render("\\alph")

    @pytest.mark.parametrize(
        "math",
        ["\\alpha + \\beta", "\\sin x \\cdot \\infty", "\\sum_{i=1}^n i", "\\left( x \\right)"],
    )
    def test_known_control_sequences(self, math: str) -> None:
        Latex2MathMLEngine().render(math)

    def test_macro_defined_in_math(self) -> None:
        Latex2MathMLEngine().render("\\def\\half{\\frac{1}{2}} \\half")

    def test_macros_expanded_before_lookup(self) -> None:
        engine = Latex2MathMLEngine()
        with pytest.raises(EngineError, match="Undefined control sequence"):
            engine.render("x \\in \\RR")
        engine.render("x \\in \\RR", macros={"\\RR": "\\mathbb{R}"})

    def test_converter_receives_display_and_expansion(self, monkeypatch) -> None:
        seen = []

        def record(math, display="inline"):
            seen.append((math, display))
            return "<math/>"

        monkeypatch.setattr(engine_module, "convert", record)
        Latex2MathMLEngine().render("x \\in \\RR", display=True, macros={"\\RR": "\\mathbb{R}"})
        assert seen == [("x \\in \\mathbb{R}", "block")]

    def test_satisfies_protocol(self) -> None:
        assert isinstance(Latex2MathMLEngine(), MathEngine)
        assert Latex2MathMLEngine().name == "latex2mathml"


# =========================================================================
# Macro expansion
# =========================================================================


class TestExpandMacros:
    """expand_macros substitution rules."""

    def test_no_macros(self) -> None:
        assert expand_macros("\\RR", None) == "\\RR"
        assert expand_macros("\\RR", {}) == "\\RR"

    def test_simple_substitution(self) -> None:
        assert expand_macros("x \\in \\RR", {"\\RR": "\\mathbb{R}"}) == "x \\in \\mathbb{R}"

    def test_does_not_match_longer_name(self) -> None:
        assert expand_macros("\\RRR + \\RR", {"\\RR": "Y"}) == "\\RRR + Y"

    def test_nested_definitions(self) -> None:
        macros = {"\\A": "\\B + 1", "\\B": "x"}
        assert expand_macros("\\A", macros) == "x + 1"

    def test_self_reference_raises(self) -> None:
        with pytest.raises(EngineError, match="Too many expansions"):
            expand_macros("\\loop", {"\\loop": "\\loop\\loop"})

    def test_limit_constant(self) -> None:
        assert MAX_MACRO_EXPANSIONS == 1000


# =========================================================================
# KaTeX CLI engine
# =========================================================================


class _Completed:
    def __init__(self, returncode: int, stderr: str = "") -> None:
        self.returncode = returncode
        self.stdout = ""
        self.stderr = stderr


class TestKatexCliEngine:
    """Subprocess-backed engine, with subprocess.run replaced."""

    def test_command_inline(self) -> None:
        assert KatexCliEngine().command(display=False, macros=None) == ["katex"]

    def test_command_display_with_macros(self) -> None:
        cmd = KatexCliEngine("/opt/katex").command(
            display=True, macros={"\\RR": "\\mathbb{R}"}
        )
        assert cmd == ["/opt/katex", "--display-mode", "--macro", "\\RR:\\mathbb{R}"]

    def test_success(self, monkeypatch) -> None:
        calls = []

        def run(cmd, **kwargs):
            calls.append((cmd, kwargs["input"]))
            return _Completed(0)

        monkeypatch.setattr(subprocess, "run", run)
        KatexCliEngine().render("x^2", display=True)
        assert calls == [(["katex", "--display-mode"], "x^2")]

    def test_parse_error_message_extracted(self, monkeypatch) -> None:
        stderr = "Error: KaTeX parse error: Expected '}', got 'EOF' at end of input: \\frac{a\n    at ..."
        monkeypatch.setattr(subprocess, "run", lambda cmd, **kw: _Completed(1, stderr))
        with pytest.raises(EngineError) as exc_info:
            KatexCliEngine().render("\\frac{a")
        assert exc_info.value.message == "Expected '}', got 'EOF' at end of input: \\frac{a"

    def test_unrecognised_stderr_passed_through(self, monkeypatch) -> None:
        monkeypatch.setattr(subprocess, "run", lambda cmd, **kw: _Completed(2, "boom\n"))
        with pytest.raises(EngineError, match="^boom$"):
            KatexCliEngine().render("x")

    def test_empty_stderr(self, monkeypatch) -> None:
        monkeypatch.setattr(subprocess, "run", lambda cmd, **kw: _Completed(1))
        with pytest.raises(EngineError, match="Unknown error"):
            KatexCliEngine().render("x")

    def test_missing_executable(self, monkeypatch) -> None:
        def run(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr(subprocess, "run", run)
        with pytest.raises(EngineUnavailableError) as exc_info:
            KatexCliEngine().render("x")
        assert exc_info.value.engine_name == "katex"
        assert not isinstance(exc_info.value, EngineError)
        assert isinstance(exc_info.value, TexspanError)

    def test_timeout(self, monkeypatch) -> None:
        def run(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

        monkeypatch.setattr(subprocess, "run", run)
        with pytest.raises(EngineError, match="Timeout"):
            KatexCliEngine(timeout=0.1).render("x")

    def test_satisfies_protocol(self) -> None:
        assert isinstance(KatexCliEngine(), MathEngine)


class TestDefaultEngine:
    def test_cached(self) -> None:
        assert get_default_engine() is get_default_engine()

    def test_is_latex2mathml(self) -> None:
        assert isinstance(get_default_engine(), Latex2MathMLEngine)
