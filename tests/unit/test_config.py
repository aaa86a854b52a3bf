"""
Unit tests for ServerConfig and the command line.
"""

import socket

import pytest

from lineserver import LineServer, ServerConfig
from lineserver.__main__ import build_parser, main


ENV_VARS = (
    "LINESERVER_HOST",
    "LINESERVER_PORT",
    "LINESERVER_MAX_CLIENTS",
    "LINESERVER_BUFFER_SIZE",
    "LINESERVER_LOG_LEVEL",
    "LINESERVER_LOG_FORMAT",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.port == 6666
        assert config.backlog == 5
        assert config.max_clients == 32
        assert config.buffer_size == 1024
        assert config.poll_interval == 1.0
        assert config.tick_seconds == 60
        assert config.max_idle_ticks == 9
        config.validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LINESERVER_PORT", "7000")
        monkeypatch.setenv("LINESERVER_MAX_CLIENTS", "8")
        monkeypatch.setenv("LINESERVER_LOG_FORMAT", "json")

        config = ServerConfig.from_env()

        assert config.port == 7000
        assert config.max_clients == 8
        assert config.buffer_size == 1024
        assert config.log_format == "json"

    @pytest.mark.parametrize("field, value", [
        ("port", 70000),
        ("max_clients", 0),
        ("buffer_size", 0),
        ("poll_interval", 0),
        ("backlog", 0),
        ("tick_seconds", 0),
        ("max_idle_ticks", -1),
        ("log_format", "xml"),
    ])
    def test_validate_rejects(self, field, value):
        config = ServerConfig(**{field: value})
        with pytest.raises(ValueError):
            config.validate()

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()


class TestCommandLine:
    """Tests for python -m lineserver."""

    def test_parser_defaults(self, clean_env):
        args = build_parser().parse_args([])

        assert args.host == "0.0.0.0"
        assert args.port == 6666
        assert args.max_clients == 32
        assert args.log_format == "text"

    def test_invalid_config_exit_code(self, clean_env):
        assert main(["--max-clients", "0"]) == 2

    def test_bind_failure_exit_code(self, clean_env):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as taken:
            taken.bind(("127.0.0.1", 0))
            taken.listen(1)
            port = taken.getsockname()[1]

            assert main(["--host", "127.0.0.1", "--port", str(port), "--log-level", "ERROR"]) == 1

    def test_environment_supplies_defaults(self, clean_env):
        clean_env.setenv("LINESERVER_PORT", "7000")
        clean_env.setenv("LINESERVER_LOG_LEVEL", "debug")

        args = build_parser().parse_args([])

        assert args.port == 7000
        assert args.log_level == "DEBUG"

    def test_flags_override_environment(self, clean_env):
        clean_env.setenv("LINESERVER_PORT", "7000")

        args = build_parser().parse_args(["--port", "7100"])

        assert args.port == 7100

    def test_main_serves_with_environment_config(self, clean_env):
        clean_env.setenv("LINESERVER_PORT", "7000")
        clean_env.setenv("LINESERVER_MAX_CLIENTS", "8")
        served = []

        def fake_run(self, host=None, port=None):
            served.append(self.config)

        clean_env.setattr(LineServer, "run", fake_run)

        assert main([]) == 0
        assert served[0].port == 7000
        assert served[0].max_clients == 8

    def test_bad_environment_value_exit_code(self, clean_env):
        clean_env.setenv("LINESERVER_PORT", "not-a-port")
        assert main([]) == 2
