"""Unit tests for structured logging."""

from __future__ import annotations

import io
import json
import logging
import sys
from collections.abc import Iterator

import pytest

from integration_automation.engine.logging import JsonFormatter, configure_logging, record_context


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="integration_automation.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Workflow %s",
        args=("saved",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields() -> None:
    payload = json.loads(JsonFormatter().format(_record(workflow_id="wf_1", steps=3)))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "integration_automation.test"
    assert payload["message"] == "Workflow saved"
    assert payload["extra"] == {"workflow_id": "wf_1", "steps": 3}
    assert "timestamp" in payload


def test_json_formatter_stringifies_unknown_values() -> None:
    payload = json.loads(JsonFormatter().format(_record(path=object())))
    assert isinstance(payload["extra"]["path"], str)


def test_json_formatter_renders_exceptions() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()

    payload = json.loads(JsonFormatter().format(record))

    assert "RuntimeError: boom" in payload["exception"]


@pytest.mark.usefixtures("restore_root_logger")
def test_configure_logging_does_not_stack_handlers() -> None:
    configure_logging("debug")
    configure_logging("warning")

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JsonFormatter)
    assert root.level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING


def test_record_context_skips_standard_attributes() -> None:
    record = _record(template_id="tpl-budget-alert")
    record.message = record.getMessage()

    assert record_context(record) == {"template_id": "tpl-budget-alert"}


@pytest.mark.usefixtures("restore_root_logger")
def test_configure_logging_writes_json_lines_to_stream() -> None:
    stream = io.StringIO()
    configure_logging("info", stream=stream)

    logging.getLogger("integration_automation.engine").info(
        "Template installed", extra={"installation_id": "inst_1"}
    )
    logging.getLogger("integration_automation.engine").debug("hidden")

    lines = stream.getvalue().splitlines()
    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert payload["message"] == "Template installed"
    assert payload["extra"] == {"installation_id": "inst_1"}
