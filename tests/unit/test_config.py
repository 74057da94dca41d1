"""
Unit tests for server configuration and the CLI.
"""

import pytest

from minihttp import __version__
from minihttp.__main__ import build_demo_router, main
from minihttp.config import ServerConfig
from minihttp.http import Request, ResultKind
from minihttp.http.dispatch import dispatch


ENV_VARS = ("HTTP_HOST", "HTTP_PORT", "HTTP_TIMEOUT", "HTTP_LOG_LEVEL")


@pytest.fixture
def clean_env(monkeypatch):
    """Make sure no HTTP_* variables leak in from the outer environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 2000
        assert config.backlog == 128
        assert config.buffer_size == 8192
        assert config.timeout is None
        assert config.accept_poll_interval == 1.0
        assert config.log_level == "INFO"

    def test_defaults_validate(self):
        ServerConfig().validate()
        ServerConfig(port=0).validate()  # OS-assigned port

    @pytest.mark.parametrize("kwargs", [
        {"port": -1},
        {"port": 65536},
        {"backlog": 0},
        {"buffer_size": 512},
        {"timeout": 0},
        {"timeout": -1.0},
        {"accept_poll_interval": 0},
    ])
    def test_invalid_values(self, kwargs):
        """Test that validate() rejects out-of-range values."""
        with pytest.raises(ValueError):
            ServerConfig(**kwargs).validate()

    def test_from_env_defaults(self, clean_env):
        config = ServerConfig.from_env()

        assert config.host == "127.0.0.1"
        assert config.port == 2000
        assert config.timeout is None
        assert config.log_level == "INFO"

    def test_from_env(self, clean_env):
        clean_env.setenv("HTTP_HOST", "0.0.0.0")
        clean_env.setenv("HTTP_PORT", "3000")
        clean_env.setenv("HTTP_TIMEOUT", "2.5")
        clean_env.setenv("HTTP_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.timeout == 2.5
        assert config.log_level == "DEBUG"

    def test_from_env_bad_port(self, clean_env):
        clean_env.setenv("HTTP_PORT", "not-a-port")

        with pytest.raises(ValueError):
            ServerConfig.from_env()


class TestCLI:
    """Tests for `python -m minihttp`."""

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_invalid_port_exits_1(self, clean_env, capsys):
        """Test that a config error is reported and exits non-zero."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--port", "70000"])

        assert exc_info.value.code == 1
        assert "Invalid port" in capsys.readouterr().err

    def test_unknown_log_level_rejected(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--log-level", "LOUD"])

        assert exc_info.value.code == 2

    def test_demo_routes(self):
        table = build_demo_router().freeze()

        assert set(table) == {("GET", "/"), ("POST", "/echo"), ("POST", "/sum")}
        assert table[("GET", "/")].kind is ResultKind.TEXT

    def test_demo_handlers(self):
        table = build_demo_router().freeze()

        assert dispatch(table.lookup(Request("GET", "/")), None) == ("hi", "text/plain")
        assert dispatch(table.lookup(Request("POST", "/sum")), {"data": [1, 2, 3]}) == ("6", "application/json")
        assert dispatch(table.lookup(Request("POST", "/echo")), "hey") == ('"hey"', "application/json")
