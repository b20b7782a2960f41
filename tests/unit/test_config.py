"""
Unit tests for server configuration.
"""

import logging
from pathlib import Path

import pytest

from fileserver.config import ServerConfig, read_properties


def write_properties(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "server.properties"
    path.write_text(text)
    return path


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 8000
        assert config.pool_size == 50
        assert config.timeout_ms == 10000
        assert config.default_host_label == "fileserver"
        assert config.static_dir is None
        assert config.max_request_size == 64 * 1024

    def test_timeout_in_seconds(self):
        assert ServerConfig(timeout_ms=2500).timeout == 2.5


class TestLoad:
    """Tests for ServerConfig.load."""

    def test_no_sources(self):
        assert ServerConfig.load(environ={}) == ServerConfig()

    def test_properties_file(self, tmp_path: Path):
        path = write_properties(tmp_path, "\n".join([
            "# server settings",
            "file.server.port=9000",
            "file.server.pool.size = 20",
            "file.server.connection.timeout.milliseconds: 1500",
            "file.server.default.computer.name=box",
            "file.server.static.dir=/srv/site",
            "file.server.max.request.size=4096",
        ]))

        config = ServerConfig.load(path, environ={})

        assert config.port == 9000
        assert config.pool_size == 20
        assert config.timeout_ms == 1500
        assert config.default_host_label == "box"
        assert config.static_dir == "/srv/site"
        assert config.max_request_size == 4096

    def test_environment(self):
        config = ServerConfig.load(environ={
            "FILESERVER_PORT": "9100",
            "FILESERVER_POOL_SIZE": "5",
            "FILESERVER_TIMEOUT_MS": "250",
            "FILESERVER_HOST": "0.0.0.0",
            "FILESERVER_LOG_LEVEL": "debug",
        })

        assert config.port == 9100
        assert config.pool_size == 5
        assert config.timeout_ms == 250
        assert config.host == "0.0.0.0"
        assert config.log_level == "DEBUG"

    def test_environment_overrides_properties(self, tmp_path: Path):
        path = write_properties(tmp_path, "file.server.port=9000\n")
        config = ServerConfig.load(path, environ={"FILESERVER_PORT": "9001"})

        assert config.port == 9001

    def test_missing_values_logged(self, caplog):
        with caplog.at_level(logging.INFO, logger="fileserver"):
            ServerConfig.load(environ={})

        assert "file.server.port is not set" in caplog.text

    @pytest.mark.parametrize("line", [
        "file.server.port=abc",
        "file.server.port=70000",
        "file.server.port=-1",
        "file.server.pool.size=0",
        "file.server.connection.timeout.milliseconds=0",
        "file.server.default.computer.name=",
        "file.server.max.request.size=0",
    ])
    def test_invalid_values_keep_defaults(self, tmp_path: Path, line: str, caplog):
        path = write_properties(tmp_path, line + "\n")

        with caplog.at_level(logging.WARNING, logger="fileserver"):
            config = ServerConfig.load(path, environ={})

        assert config == ServerConfig()
        assert "Invalid value" in caplog.text

    def test_invalid_env_keeps_properties_value(self, tmp_path: Path):
        path = write_properties(tmp_path, "file.server.pool.size=7\n")
        config = ServerConfig.load(path, environ={"FILESERVER_POOL_SIZE": "many"})

        assert config.pool_size == 7

    def test_missing_file(self, tmp_path: Path, caplog):
        with caplog.at_level(logging.WARNING, logger="fileserver"):
            config = ServerConfig.load(tmp_path / "nope.properties", environ={})

        assert config == ServerConfig()
        assert "nope.properties" in caplog.text

    def test_from_env(self):
        assert ServerConfig.from_env({"FILESERVER_PORT": "8123"}).port == 8123


class TestReadProperties:
    """Tests for read_properties."""

    def test_separators_and_comments(self, tmp_path: Path):
        path = write_properties(tmp_path, "\n".join([
            "# comment",
            "! also a comment",
            "",
            "a=1",
            "b: 2",
            "c 3",
            "d = 4",
            "e",
            "f=x=y",
        ]))

        assert read_properties(path) == {
            "a": "1",
            "b": "2",
            "c": "3",
            "d": "4",
            "e": "",
            "f": "x=y",
        }


class TestValidate:
    """Tests for ServerConfig.validate."""

    def test_defaults_valid(self):
        ServerConfig().validate()

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()

    @pytest.mark.parametrize("kwargs", [
        {"port": 70000},
        {"port": -1},
        {"pool_size": 0},
        {"timeout_ms": 0},
        {"backlog": 0},
        {"max_request_size": 0},
        {"log_level": "LOUD"},
    ])
    def test_invalid(self, kwargs: dict):
        with pytest.raises(ValueError):
            ServerConfig(**kwargs).validate()
