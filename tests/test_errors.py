"""Tests for the exception hierarchy."""

import pytest

from texspan.errors import DelimiterTableError, EngineError, EngineUnavailableError, TexspanError


class TestDelimiterTableError:
    def test_message_only(self) -> None:
        err = DelimiterTableError("open marker must be non-empty")
        assert str(err) == "open marker must be non-empty"
        assert err.open_marker is None

    def test_with_open_marker(self) -> None:
        err = DelimiterTableError("already registered", "\\(")
        assert str(err) == "Delimiter '\\\\(': already registered"
        assert err.open_marker == "\\("

    def test_hierarchy(self) -> None:
        err = DelimiterTableError("x")
        assert isinstance(err, TexspanError)
        assert isinstance(err, ValueError)


class TestEngineErrors:
    def test_engine_error_message(self) -> None:
        err = EngineError("Undefined control sequence: \\foo")
        assert err.message == "Undefined control sequence: \\foo"
        assert str(err) == err.message

    def test_unavailable_format(self) -> None:
        err = EngineUnavailableError("katex", "not found")
        assert str(err) == "Engine 'katex': not found"
        assert err.engine_name == "katex"

    def test_unavailable_propagates_out_of_validation(self) -> None:
        from texspan import validate_latex

        class Broken:
            def render(self, math, *, display=False, macros=None):
                raise EngineUnavailableError("broken", "cannot start")

        with pytest.raises(EngineUnavailableError):
            validate_latex("\\(x\\)", engine=Broken())

    def test_unavailable_not_reported_as_segmentation_failure(self) -> None:
        from texspan import validate_latex_using_segmenter

        class Broken:
            def render(self, math, *, display=False, macros=None):
                raise EngineUnavailableError("broken", "cannot start")

        with pytest.raises(EngineUnavailableError):
            validate_latex_using_segmenter("\\(x\\)", engine=Broken())
