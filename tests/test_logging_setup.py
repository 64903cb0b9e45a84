import io
import logging

from rich.console import Console

from apisync.logging_setup import LOG_LEVEL_ENV, configure_logging


def _rich_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if type(h).__name__ == "RichHandler"]


def test_configure_logging_is_idempotent(monkeypatch):
    monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
    buf = io.StringIO()

    logger = configure_logging(logging.INFO, console=Console(file=buf, width=200))
    configure_logging(logging.DEBUG)

    assert len(_rich_handlers(logger)) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_env_level_wins(monkeypatch):
    monkeypatch.setenv(LOG_LEVEL_ENV, "warning")
    logger = configure_logging(logging.DEBUG)
    assert logger.level == logging.WARNING

    monkeypatch.setenv(LOG_LEVEL_ENV, "not-a-level")
    assert configure_logging(logging.ERROR).level == logging.ERROR
