import json
import logging

from services.logging import JsonFormatter, setup_logging


def make_record(**extra):
    record = logging.LogRecord("radar", logging.INFO, __file__, 10, "Fetched %d items", (3,), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_message_and_extras():
    payload = json.loads(JsonFormatter().format(make_record(source="openai-blog", skip_reasons={"A": 1})))
    assert payload["message"] == "Fetched 3 items"
    assert payload["level"] == "INFO"
    assert payload["source"] == "openai-blog"
    assert payload["skip_reasons"] == {"A": 1}
    assert "args" not in payload and "msg" not in payload


def test_json_formatter_serializes_unknown_types():
    payload = json.loads(JsonFormatter().format(make_record(path=object())))
    assert payload["path"].startswith("<object object")


def test_setup_logging_adds_one_handler_and_quiets_http_clients():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        setup_logging(logging.DEBUG)
        setup_logging(logging.DEBUG)
        added = [h for h in root.handlers if h not in handlers]
        assert len(added) == 1
        assert isinstance(added[0].formatter, JsonFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)
        logging.getLogger("httpx").setLevel(logging.NOTSET)
