from __future__ import annotations

import io
import logging
from typing import Generator

import pytest

from depbound.utils.logger import (
    ColoredFormatter,
    disable_logging,
    get_logger,
    level_for_verbosity,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Leave the depbound logger hierarchy silent after each test."""
    yield
    disable_logging()
    logging.getLogger("depbound").propagate = True


def _record(level: int = logging.INFO, message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("depbound.test", level, __file__, 1, message, None, None)


@pytest.mark.unit
class TestGetLogger:
    """Tests for get_logger name handling."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            (None, "depbound"),
            ("", "depbound"),
            ("depbound", "depbound"),
            ("bound", "depbound.bound"),
            ("depbound.cache", "depbound.cache"),
            ("commands.compat", "depbound.commands.compat"),
        ],
    )
    def test_namespacing(self, name: object, expected: str) -> None:
        assert get_logger(name).name == expected  # type: ignore[arg-type]

    def test_same_instance(self) -> None:
        assert get_logger("bound") is get_logger("depbound.bound")


@pytest.mark.unit
class TestSetupLogging:
    """Tests for setup_logging and disable_logging."""

    def test_writes_to_stream(self) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.INFO, stream=stream)

        get_logger("test").info("hello %s", "world")

        assert "INFO: hello world" in stream.getvalue()

    def test_level_filters(self) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.WARNING, stream=stream)

        get_logger("test").info("hidden")
        get_logger("test").warning("shown")

        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_verbose_format_includes_logger_name(self) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.DEBUG, verbose=True, stream=stream)

        get_logger("cache").debug("entry")

        assert "depbound.cache" in stream.getvalue()

    def test_repeated_setup_replaces_handler(self) -> None:
        setup_logging(stream=io.StringIO())
        setup_logging(stream=io.StringIO())

        assert len(logging.getLogger("depbound").handlers) == 1

    def test_disable(self) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.DEBUG, stream=stream)
        disable_logging()

        get_logger("test").error("silent")

        assert stream.getvalue() == ""


@pytest.mark.unit
class TestColoredFormatter:
    """Tests for ANSI level coloring."""

    def test_plain_when_disabled(self) -> None:
        formatter = ColoredFormatter("%(levelname)s: %(message)s", use_color=False)

        assert formatter.format(_record()) == "INFO: hello"

    def test_colored_on_terminal(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(ColoredFormatter, "_should_use_color", staticmethod(lambda: True))
        formatter = ColoredFormatter("%(levelname)s: %(message)s")

        output = formatter.format(_record(logging.ERROR))

        assert output.startswith("\033[31mERROR\033[0m")

    def test_original_record_untouched(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(ColoredFormatter, "_should_use_color", staticmethod(lambda: True))
        record = _record(logging.WARNING)

        ColoredFormatter("%(levelname)s").format(record)

        assert record.levelname == "WARNING"

    def test_no_color_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NO_COLOR", "1")

        assert ColoredFormatter._should_use_color() is False


@pytest.mark.unit
@pytest.mark.parametrize(
    "verbose, level",
    [(-1, logging.WARNING), (0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG)],
)
def test_level_for_verbosity(verbose: int, level: int) -> None:
    assert level_for_verbosity(verbose) == level
