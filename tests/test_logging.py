"""Tests for the structured log formatter."""

import logging

from formchat.core.logging import StructuredFormatter, get_logger, log_with_context


def _record(**attrs) -> logging.LogRecord:
    record = logging.LogRecord("formchat.test", logging.INFO, __file__, 1, "Saved answer", None, None)
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


def test_context_fields_follow_message():
    line = StructuredFormatter().format(_record(session_id="abc", formid=3))

    assert "message=Saved answer session_id=abc formid=3" in line


def test_extra_data_appended():
    line = StructuredFormatter().format(_record(formid=3, extra_data={"answer_count": 2}))

    assert line.endswith("formid=3 answer_count=2")


def test_log_with_context_splits_fields():
    logger = get_logger("formchat.test_logging")
    seen: list[logging.LogRecord] = []

    class Capture(logging.Handler):
        def emit(self, record):
            seen.append(record)

    logger.addHandler(Capture())
    log_with_context(logger, logging.WARNING, "Step failed", session_id="s1", prompt_index=2)

    assert seen[0].session_id == "s1"
    assert seen[0].extra_data == {"prompt_index": 2}


def test_http_client_loggers_are_quieted():
    get_logger("formchat.test_logging_quiet")

    assert logging.getLogger("httpx").level == logging.WARNING
