"""
Tests for the colored console logger.
"""
import io
import logging

from shared.logger import get_logger


def test_logs_with_colored_level_to_given_stream() -> None:
    stream = io.StringIO()
    logger = get_logger("workflow_codegen.test_logger", level="DEBUG", stream=stream)

    logger.debug("compiling %s", "demo")

    output = stream.getvalue()
    assert "compiling demo" in output
    assert "\033[36mDEBUG\033[0m" in output
    assert "workflow_codegen.test_logger" in output


def test_cached_logger_refreshes_level_and_stream() -> None:
    first = io.StringIO()
    second = io.StringIO()
    logger = get_logger("workflow_codegen.test_refresh", level=logging.WARNING, stream=first)
    logger.info("hidden")

    again = get_logger("workflow_codegen.test_refresh", level="INFO", stream=second)
    again.info("shown")

    assert again is logger
    assert len(logger.handlers) == 1
    assert first.getvalue() == ""
    assert "shown" in second.getvalue()


def test_unknown_level_names_fall_back_to_info() -> None:
    logger = get_logger("workflow_codegen.test_fallback", level="LOUD", stream=io.StringIO())

    assert logger.level == logging.INFO
