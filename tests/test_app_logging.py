"""Tests for logging configuration."""

import logging

from kitchen_cloud.app_logging import LOG_FORMAT, ContextFormatter, configure_logging


def test_configure_logging_idempotent() -> None:
    logger = logging.getLogger("kitchen_cloud")
    logger.handlers.clear()

    configure_logging()
    first_count = len(logger.handlers)

    configure_logging("DEBUG")
    second_count = len(logger.handlers)

    assert first_count == 1
    assert second_count == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False
    assert isinstance(logger.handlers[0].formatter, ContextFormatter)
    configure_logging()


def test_context_formatter_appends_extra_fields() -> None:
    record = logging.makeLogRecord(
        {
            "name": "kitchen_cloud.services.recipes",
            "levelname": "INFO",
            "msg": "Recipe deleted",
            "recipe_id": "abc",
            "author_id": 7,
        }
    )

    formatted = ContextFormatter(LOG_FORMAT).format(record)

    assert formatted == (
        "INFO: kitchen_cloud.services.recipes: Recipe deleted"
        " [author_id=7 recipe_id=abc]"
    )


def test_context_formatter_without_extra_fields() -> None:
    record = logging.makeLogRecord(
        {"name": "kitchen_cloud", "levelname": "WARNING", "msg": "plain"}
    )

    formatted = ContextFormatter(LOG_FORMAT).format(record)

    assert formatted == "WARNING: kitchen_cloud: plain"
