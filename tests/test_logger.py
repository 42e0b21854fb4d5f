import json
import logging

from webpush_core.logger import JsonFormatter, get_logger


def test_json_lines_escape_messages():
    record = logging.LogRecord("WebPush.Test", logging.WARNING, __file__, 1, 'bad "quote" %s', ("x",), None)
    line = json.loads(JsonFormatter().format(record))
    assert line["msg"] == 'bad "quote" x'
    assert line["level"] == "WARNING"
    assert line["ts"].endswith("Z")


def test_get_logger_level_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("WEBPUSH_LOG_LEVEL", "debug")
    log = get_logger("WebPush.Test.Env", to_file=str(tmp_path / "logs" / "wp.log"))
    assert log.level == logging.DEBUG
    assert len(log.handlers) == 2
    assert get_logger("WebPush.Test.Env").handlers == log.handlers
