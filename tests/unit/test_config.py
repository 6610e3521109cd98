"""Unit tests for Configuration with precedence testing.

Precedence: CLI > environment > config file > defaults.
"""

import json

import pytest

from cdp_driver.config import Configuration


@pytest.fixture
def config_file(tmp_path):
    def write(content):
        path = tmp_path / ".cdprc"
        path.write_text(content if isinstance(content, str) else json.dumps(content))
        return str(path)

    return write


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for env_var in Configuration.ENV_MAPPINGS:
        monkeypatch.delenv(env_var, raising=False)


@pytest.mark.unit
class TestConfigurationPrecedence:
    """Test configuration precedence (CLI > env > file > defaults)."""

    def test_default_values(self):
        config = Configuration()

        assert config.chrome_host == "localhost"
        assert config.chrome_port == 9222
        assert config.timeout == 5000
        assert config.navigation_timeout == 30000
        assert config.max_size == 2_097_152
        assert config.log_level == "INFO"
        assert config.log_format == "text"

    def test_load_from_file(self, config_file):
        config = Configuration()
        config.load_from_file(config_file({"chrome_port": 9333, "navigation_timeout": 60000, "log_level": "DEBUG"}))

        assert config.chrome_port == 9333
        assert config.navigation_timeout == 60000
        assert config.log_level == "DEBUG"
        # Defaults still apply for unset values
        assert config.timeout == 5000

    def test_load_from_env(self, monkeypatch):
        monkeypatch.setenv("CDP_CHROME_PORT", "9444")
        monkeypatch.setenv("CDP_TIMEOUT", "2500")
        monkeypatch.setenv("CDP_NAVIGATION_TIMEOUT", "45000")
        monkeypatch.setenv("CDP_LOG_FORMAT", "json")

        config = Configuration()
        config.load_from_env()

        assert config.chrome_port == 9444
        assert config.timeout == 2500
        assert config.navigation_timeout == 45000
        assert config.log_format == "json"
        assert config.max_size == 2_097_152

    def test_precedence_chain_file_env_cli(self, config_file, monkeypatch):
        path = config_file({"chrome_port": 9333, "timeout": 6000, "chrome_host": "10.0.0.2"})
        monkeypatch.setenv("CDP_CHROME_PORT", "9444")
        monkeypatch.setenv("CDP_LOG_LEVEL", "DEBUG")

        config = Configuration()
        config.load_from_file(path)
        config.load_from_env()
        config.merge(timeout=1500, log_level=None)

        assert config.chrome_host == "10.0.0.2"  # File wins over default
        assert config.chrome_port == 9444  # Env wins over file
        assert config.timeout == 1500  # CLI wins over file
        assert config.log_level == "DEBUG"  # None does not override
        assert config.max_size == 2_097_152

    def test_invalid_config_file_graceful_fallback(self, config_file):
        config = Configuration()
        config.load_from_file(config_file("INVALID JSON{{{"))

        assert config.to_dict() == Configuration.DEFAULTS

    def test_non_object_config_file_ignored(self, config_file):
        config = Configuration()
        config.load_from_file(config_file([9333]))

        assert config.chrome_port == 9222

    def test_nonexistent_config_file_ignored(self):
        config = Configuration()
        config.load_from_file("/nonexistent/path/.cdprc")

        assert config.to_dict() == Configuration.DEFAULTS

    def test_unknown_keys_ignored(self, config_file):
        config = Configuration()
        config.load_from_file(config_file({"chrome_port": 9999, "colour": "blue"}))
        config.merge(verbose=True)

        assert config.chrome_port == 9999
        assert not hasattr(config, "colour")
        assert not hasattr(config, "verbose")


@pytest.mark.unit
class TestConfigurationTypes:
    """Test type conversion and validation."""

    def test_env_values_are_converted(self, monkeypatch):
        monkeypatch.setenv("CDP_CHROME_PORT", "9333")
        monkeypatch.setenv("CDP_MAX_SIZE", "1048576")

        config = Configuration()
        config.load_from_env()

        assert isinstance(config.chrome_port, int)
        assert config.max_size == 1_048_576

    def test_invalid_env_var_ignored(self, monkeypatch):
        monkeypatch.setenv("CDP_CHROME_PORT", "not_a_number")
        monkeypatch.setenv("CDP_TIMEOUT", "1.5")

        config = Configuration()
        config.load_from_env()

        assert config.chrome_port == 9222
        assert config.timeout == 5000

    def test_repr_lists_values(self):
        assert "chrome_port" in repr(Configuration())
