import json
import logging

import pytest
import structlog

from corsgate.core.config import LoggingConfig, LogLevel
from corsgate.core.logging_config import ColorFormatter, JSONFormatter, setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def make_record(level=logging.INFO, msg="CORS: %s allowed", args=("http://localhost",)):
    return logging.LogRecord("corsgate.proxy.policy", level, __file__, 10, msg, args, None)


def test_json_formatter():
    data = json.loads(JSONFormatter().format(make_record()))
    assert data["level"] == "INFO"
    assert data["logger"] == "corsgate.proxy.policy"
    assert data["message"] == "CORS: http://localhost allowed"


def test_color_formatter_wraps_message():
    output = ColorFormatter(fmt="%(levelname)s %(message)s").format(make_record(logging.WARNING))
    assert output.startswith("\033[33m")
    assert output.endswith("\033[0m")
    assert "WARNING CORS: http://localhost allowed" in output


def test_setup_logging_with_file(tmp_path, restore_logging):
    log_file = tmp_path / "logs" / "corsgate.log"
    config = LoggingConfig(level=LogLevel.DEBUG, json_format=True, file_path=str(log_file))

    setup_logging(config)
    logging.getLogger("corsgate.test").debug("preflight reply returned")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert logging.getLogger().level == logging.DEBUG
    lines = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert any(line["message"] == "preflight reply returned" for line in lines)
