import pytest

from corsgate import main as entrypoint
from corsgate.core.config import LogLevel


def test_parse_args_normalizes_log_level():
    args = entrypoint.parse_args(["--log-level", "debug", "--port", "9001"])
    assert args.log_level == "DEBUG"
    assert args.port == 9001
    assert args.config is None


def test_parse_args_rejects_unknown_log_level():
    with pytest.raises(SystemExit):
        entrypoint.parse_args(["--log-level", "loud"])


def test_main_applies_overrides_and_runs_server(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    calls = {}

    def fake_run(app, **kwargs):
        calls["app"] = app
        calls.update(kwargs)

    monkeypatch.setattr(entrypoint.uvicorn, "run", fake_run)
    monkeypatch.setattr(entrypoint, "setup_logging", lambda config: calls.setdefault("logging", config))

    entrypoint.main([
        "--host", "127.0.0.1",
        "--port", "9001",
        "--backend", "http://api.internal:8000/",
        "--log-level", "warning",
    ])

    assert calls["host"] == "127.0.0.1"
    assert calls["port"] == 9001
    assert calls["log_config"] is None
    assert calls["logging"].level == LogLevel.WARNING
    config = calls["app"].state.config
    assert config.proxy.backend_url == "http://api.internal:8000"
    assert calls["app"].state.upstream.backend_url == "http://api.internal:8000"
