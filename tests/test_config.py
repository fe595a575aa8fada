"""Tests for the configuration module."""

from pathlib import Path

import pytest

from urlmonitor.config import (
    DEFAULT_TARGETS_PATH,
    INTERACTIVE_BATCH,
    SERVICE_BATCH,
    BatchConfig,
    ConfigError,
    MonitorConfig,
    ProbeConfig,
    WebhookConfig,
    load_config,
    parse_config,
)


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Create a temporary directory for config files."""
    return tmp_path


@pytest.fixture
def valid_config_content() -> str:
    """Return a valid configuration YAML content."""
    return """probe:
  timeout: 20
  max_redirects: 3
  inspect_tls: false
  cert_warning_days: 14

batch:
  size: 4
  pause: 0.25

monitor:
  interval: 120
  targets_file: ./data/urls.json

alerts:
  webhooks:
    - url: https://hooks.example.com/status
      cooldown_seconds: 60
"""


class TestProbeConfig:
    """Tests for ProbeConfig dataclass."""

    def test_defaults(self) -> None:
        """ProbeConfig defaults to a 15s timeout, 5 redirects and TLS inspection."""
        probe = ProbeConfig()
        assert probe.timeout == 15.0
        assert probe.max_redirects == 5
        assert probe.inspect_tls is True
        assert probe.tls_timeout == 10.0
        assert probe.cert_warning_days == 30

    def test_headers_include_user_agent_and_compression(self) -> None:
        headers = ProbeConfig(user_agent="probe/1.0").headers
        assert headers["User-Agent"] == "probe/1.0"
        assert headers["Accept-Encoding"] == "gzip, deflate"
        assert headers["Accept-Language"].startswith("fr-FR")

    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ConfigError, match="Probe timeout must be positive"):
            ProbeConfig(timeout=0)

    def test_rejects_negative_redirects(self) -> None:
        with pytest.raises(ConfigError, match="max_redirects must be non-negative"):
            ProbeConfig(max_redirects=-1)

    def test_rejects_empty_user_agent(self) -> None:
        with pytest.raises(ConfigError, match="User-Agent cannot be empty"):
            ProbeConfig(user_agent="")


class TestBatchConfig:
    """Tests for BatchConfig dataclass."""

    def test_presets(self) -> None:
        """Service and interactive presets match their documented windows."""
        assert (SERVICE_BATCH.size, SERVICE_BATCH.pause) == (3, 0.5)
        assert (INTERACTIVE_BATCH.size, INTERACTIVE_BATCH.pause) == (5, 1.0)

    def test_rejects_zero_size(self) -> None:
        with pytest.raises(ConfigError, match="Batch size must be between 1 and 20"):
            BatchConfig(size=0)

    def test_rejects_oversized_window(self) -> None:
        with pytest.raises(ConfigError, match="Batch size must be between 1 and 20"):
            BatchConfig(size=21)

    def test_rejects_negative_pause(self) -> None:
        with pytest.raises(ConfigError, match="Batch pause must be non-negative"):
            BatchConfig(pause=-0.1)


class TestMonitorConfig:
    """Tests for MonitorConfig dataclass."""

    def test_creates_monitor_config_with_defaults(self) -> None:
        """MonitorConfig uses default interval of 60 seconds."""
        monitor = MonitorConfig()
        assert monitor.interval == 60
        assert monitor.targets_file == DEFAULT_TARGETS_PATH

    def test_rejects_interval_less_than_10(self) -> None:
        with pytest.raises(ConfigError, match="Monitor interval must be at least 10 seconds"):
            MonitorConfig(interval=5)

    def test_accepts_interval_of_10(self) -> None:
        monitor = MonitorConfig(interval=10)
        assert monitor.interval == 10


class TestWebhookConfig:
    """Tests for WebhookConfig dataclass."""

    def test_rejects_url_without_protocol(self) -> None:
        with pytest.raises(ConfigError, match="must start with http:// or https://"):
            WebhookConfig(url="hooks.example.com")

    def test_rejects_no_events(self) -> None:
        with pytest.raises(ConfigError, match="at least one of"):
            WebhookConfig(url="https://hooks.example.com", on_failure=False, on_recovery=False)


class TestLoadConfig:
    """Tests for load_config function."""

    def test_loads_valid_config_from_file(self, config_dir: Path, valid_config_content: str) -> None:
        config_file = config_dir / "config.yaml"
        config_file.write_text(valid_config_content)

        config = load_config(str(config_file))

        assert config.probe.timeout == 20.0
        assert config.probe.max_redirects == 3
        assert config.probe.inspect_tls is False
        assert config.probe.cert_warning_days == 14
        assert config.batch == BatchConfig(size=4, pause=0.25)
        assert config.monitor.interval == 120
        assert config.monitor.targets_file == "./data/urls.json"
        assert len(config.alerts.webhooks) == 1
        assert config.alerts.webhooks[0].cooldown_seconds == 60

    def test_none_path_returns_defaults(self) -> None:
        config = load_config(None)
        assert config.probe == ProbeConfig()
        assert config.batch == SERVICE_BATCH
        assert config.alerts.webhooks == []

    def test_empty_file_returns_defaults(self, config_dir: Path) -> None:
        config_file = config_dir / "empty.yaml"
        config_file.write_text("")

        config = load_config(str(config_file))

        assert config.monitor.interval == 60

    def test_raises_error_for_missing_file(self, config_dir: Path) -> None:
        missing_file = config_dir / "nonexistent.yaml"
        with pytest.raises(ConfigError, match="Configuration file not found"):
            load_config(str(missing_file))

    def test_raises_error_for_invalid_yaml(self, config_dir: Path) -> None:
        config_file = config_dir / "invalid.yaml"
        config_file.write_text("invalid: yaml: syntax: ][")

        with pytest.raises(ConfigError, match="Failed to parse YAML configuration"):
            load_config(str(config_file))

    def test_raises_error_when_config_is_not_dict(self, config_dir: Path) -> None:
        config_file = config_dir / "notdict.yaml"
        config_file.write_text("- item1\n- item2")

        with pytest.raises(ConfigError, match="Configuration must be a YAML dictionary"):
            load_config(str(config_file))

    def test_raises_error_when_section_is_not_dict(self) -> None:
        with pytest.raises(ConfigError, match="'probe' section must be a dictionary"):
            parse_config({"probe": [1, 2]})

    def test_raises_error_for_non_numeric_timeout(self) -> None:
        with pytest.raises(ConfigError, match="Invalid 'probe' section"):
            parse_config({"probe": {"timeout": "soon"}})

    def test_raises_error_when_webhook_missing_url(self) -> None:
        with pytest.raises(ConfigError, match="Webhook entry 0 is missing 'url' field"):
            parse_config({"alerts": {"webhooks": [{"enabled": True}]}})


class TestEnvironmentVariableOverrides:
    """Tests for environment variable override functionality."""

    def test_overrides_monitor_interval(self, config_dir: Path, monkeypatch) -> None:
        config_file = config_dir / "config.yaml"
        config_file.write_text("monitor:\n  interval: 60")

        monkeypatch.setenv("URLMONITOR_MONITOR_INTERVAL", "30")
        config = load_config(str(config_file))

        assert config.monitor.interval == 30

    def test_overrides_targets_file(self, monkeypatch) -> None:
        monkeypatch.setenv("URLMONITOR_TARGETS_FILE", "/tmp/urls.json")
        config = load_config(None)
        assert config.monitor.targets_file == "/tmp/urls.json"

    def test_overrides_batch_size_and_timeout(self, monkeypatch) -> None:
        monkeypatch.setenv("URLMONITOR_BATCH_SIZE", "7")
        monkeypatch.setenv("URLMONITOR_PROBE_TIMEOUT", "2.5")
        config = load_config(None)
        assert config.batch.size == 7
        assert config.probe.timeout == 2.5

    def test_inspect_tls_accepts_true_values(self, monkeypatch) -> None:
        for true_value in ["true", "True", "1", "yes"]:
            monkeypatch.setenv("URLMONITOR_INSPECT_TLS", true_value)
            assert load_config(None).probe.inspect_tls is True, f"Failed for value: {true_value}"

    def test_inspect_tls_rejects_false_values(self, monkeypatch) -> None:
        for false_value in ["false", "0", "no", "anything"]:
            monkeypatch.setenv("URLMONITOR_INSPECT_TLS", false_value)
            assert load_config(None).probe.inspect_tls is False, f"Failed for value: {false_value}"

    def test_invalid_override_raises(self, monkeypatch) -> None:
        monkeypatch.setenv("URLMONITOR_BATCH_SIZE", "many")
        with pytest.raises(ConfigError, match="Invalid environment override"):
            load_config(None)
