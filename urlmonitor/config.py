"""Configuration loader with type-safe dataclasses."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


# Minimum interval between monitor cycles in seconds.
# A full cycle over a handful of targets can take tens of seconds.
MIN_MONITOR_INTERVAL = 10

# Upper bound on a window size; larger values defeat the point of batching.
MAX_BATCH_SIZE = 20

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; URL-Monitor/1.0)"

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "fr-FR,fr;q=0.9,en;q=0.8",
    "Accept-Encoding": "gzip, deflate",
    "Upgrade-Insecure-Requests": "1",
}


@dataclass(frozen=True)
class ProbeConfig:
    """Fixed request policy applied to every probe.

    - timeout: Socket timeout for the HTTP exchange (seconds).
    - max_redirects: Redirects followed before giving up.
    - inspect_tls: Whether HTTPS targets get a certificate report.
    - tls_timeout: Connect + handshake budget for certificate inspection (seconds).
    - cert_warning_days: Days before expiration that trigger a certificate warning.
    """

    timeout: float = 15.0
    max_redirects: int = 5
    user_agent: str = DEFAULT_USER_AGENT
    inspect_tls: bool = True
    tls_timeout: float = 10.0
    cert_warning_days: int = 30

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ConfigError(f"Probe timeout must be positive (got {self.timeout})")
        if self.max_redirects < 0:
            raise ConfigError(f"Probe max_redirects must be non-negative (got {self.max_redirects})")
        if not self.user_agent:
            raise ConfigError("User-Agent cannot be empty")
        if self.tls_timeout <= 0:
            raise ConfigError(f"TLS timeout must be positive (got {self.tls_timeout})")
        if self.cert_warning_days < 0:
            raise ConfigError(f"Certificate warning days must be non-negative (got {self.cert_warning_days})")

    @property
    def headers(self) -> dict[str, str]:
        """Request headers sent with every probe."""
        return {"User-Agent": self.user_agent, **DEFAULT_HEADERS}


@dataclass(frozen=True)
class BatchConfig:
    """Window size and inter-window pause for batch probing."""

    size: int = 3
    pause: float = 0.5  # seconds between windows

    def __post_init__(self) -> None:
        if not (1 <= self.size <= MAX_BATCH_SIZE):
            raise ConfigError(f"Batch size must be between 1 and {MAX_BATCH_SIZE} (got {self.size})")
        if self.pause < 0:
            raise ConfigError(f"Batch pause must be non-negative (got {self.pause})")


# Background service: small windows, short pause.
SERVICE_BATCH = BatchConfig(size=3, pause=0.5)

# Interactive "check all": larger windows, longer pause.
INTERACTIVE_BATCH = BatchConfig(size=5, pause=1.0)


def _get_default_targets_path() -> str:
    """Get the default targets file using an XDG-compliant directory.

    Returns ~/.local/share/urlmonitor/urls.json.
    """
    home = Path.home()
    return str(home / ".local" / "share" / "urlmonitor" / "urls.json")


DEFAULT_TARGETS_PATH = _get_default_targets_path()


@dataclass(frozen=True)
class MonitorConfig:
    """Configuration for the periodic monitor loop."""

    interval: int = 60  # seconds between check cycles
    targets_file: str = DEFAULT_TARGETS_PATH

    def __post_init__(self) -> None:
        if self.interval < MIN_MONITOR_INTERVAL:
            raise ConfigError(
                f"Monitor interval must be at least {MIN_MONITOR_INTERVAL} seconds (got {self.interval})"
            )
        if not self.targets_file:
            raise ConfigError("Targets file path cannot be empty")


@dataclass(frozen=True)
class WebhookConfig:
    """Configuration for a single webhook alert."""

    url: str
    enabled: bool = True
    on_failure: bool = True  # Send alert when a target goes DOWN
    on_recovery: bool = True  # Send alert when a target comes back UP
    cooldown_seconds: int = 300  # Minimum time between alerts for same target

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigError("Webhook URL cannot be empty")
        if not self.url.startswith(("http://", "https://")):
            raise ConfigError(f"Webhook URL must start with http:// or https://, got '{self.url}'")
        if self.cooldown_seconds < 0:
            raise ConfigError(f"Webhook cooldown_seconds must be non-negative, got {self.cooldown_seconds}")
        if not self.on_failure and not self.on_recovery:
            raise ConfigError("Webhook must have at least one of 'on_failure' or 'on_recovery' enabled")


@dataclass(frozen=True)
class AlertsConfig:
    """Configuration for alert mechanisms."""

    webhooks: list[WebhookConfig] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not isinstance(self.webhooks, list):
            raise ConfigError("Webhooks must be a list")


@dataclass(frozen=True)
class Config:
    """Main configuration container."""

    probe: ProbeConfig = field(default_factory=ProbeConfig)
    batch: BatchConfig = field(default_factory=lambda: SERVICE_BATCH)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    alerts: AlertsConfig = field(default_factory=AlertsConfig)


def _section(data: dict, name: str) -> dict:
    """Return a config section as a dict, empty when absent."""
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' section must be a dictionary")
    return section


def _parse_probe_config(data: dict) -> ProbeConfig:
    """Parse probe configuration section."""
    try:
        return ProbeConfig(
            timeout=float(data.get("timeout", 15.0)),
            max_redirects=int(data.get("max_redirects", 5)),
            user_agent=str(data.get("user_agent", DEFAULT_USER_AGENT)),
            inspect_tls=bool(data.get("inspect_tls", True)),
            tls_timeout=float(data.get("tls_timeout", 10.0)),
            cert_warning_days=int(data.get("cert_warning_days", 30)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid 'probe' section: {e}")


def _parse_batch_config(data: dict) -> BatchConfig:
    """Parse batch configuration section."""
    try:
        return BatchConfig(
            size=int(data.get("size", SERVICE_BATCH.size)),
            pause=float(data.get("pause", SERVICE_BATCH.pause)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid 'batch' section: {e}")


def _parse_monitor_config(data: dict) -> MonitorConfig:
    """Parse monitor configuration section."""
    try:
        return MonitorConfig(
            interval=int(data.get("interval", 60)),
            targets_file=str(data.get("targets_file", DEFAULT_TARGETS_PATH)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid 'monitor' section: {e}")


def _parse_webhook_config(data: dict, index: int) -> WebhookConfig:
    """Parse a single webhook configuration entry."""
    if not isinstance(data, dict):
        raise ConfigError(f"Webhook entry {index} must be a dictionary")

    url = data.get("url")
    if url is None:
        raise ConfigError(f"Webhook entry {index} is missing 'url' field")

    return WebhookConfig(
        url=str(url),
        enabled=bool(data.get("enabled", True)),
        on_failure=bool(data.get("on_failure", True)),
        on_recovery=bool(data.get("on_recovery", True)),
        cooldown_seconds=int(data.get("cooldown_seconds", 300)),
    )


def _parse_alerts_config(data: dict) -> AlertsConfig:
    """Parse alerts configuration section."""
    webhooks_data = data.get("webhooks", [])
    if not isinstance(webhooks_data, list):
        raise ConfigError("'alerts.webhooks' must be a list")

    webhooks = [_parse_webhook_config(webhook_data, i) for i, webhook_data in enumerate(webhooks_data)]

    return AlertsConfig(webhooks=webhooks)


def _apply_env_overrides(config_data: dict) -> dict:
    """Apply environment variable overrides to configuration.

    Supported overrides:
    - URLMONITOR_MONITOR_INTERVAL: Override monitor.interval
    - URLMONITOR_TARGETS_FILE: Override monitor.targets_file
    - URLMONITOR_BATCH_SIZE: Override batch.size
    - URLMONITOR_PROBE_TIMEOUT: Override probe.timeout
    - URLMONITOR_INSPECT_TLS: Override probe.inspect_tls (true/false)
    """
    for section in ("monitor", "batch", "probe"):
        if config_data.get(section) is None:
            config_data[section] = {}

    try:
        monitor_interval = os.environ.get("URLMONITOR_MONITOR_INTERVAL")
        if monitor_interval is not None:
            config_data["monitor"]["interval"] = int(monitor_interval)

        targets_file = os.environ.get("URLMONITOR_TARGETS_FILE")
        if targets_file is not None:
            config_data["monitor"]["targets_file"] = targets_file

        batch_size = os.environ.get("URLMONITOR_BATCH_SIZE")
        if batch_size is not None:
            config_data["batch"]["size"] = int(batch_size)

        probe_timeout = os.environ.get("URLMONITOR_PROBE_TIMEOUT")
        if probe_timeout is not None:
            config_data["probe"]["timeout"] = float(probe_timeout)
    except ValueError as e:
        raise ConfigError(f"Invalid environment override: {e}")

    inspect_tls = os.environ.get("URLMONITOR_INSPECT_TLS")
    if inspect_tls is not None:
        config_data["probe"]["inspect_tls"] = inspect_tls.lower() in ("true", "1", "yes")

    return config_data


def parse_config(data: dict) -> Config:
    """Build a validated Config from a configuration dictionary.

    Raises:
        ConfigError: If any section is invalid.
    """
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a YAML dictionary")

    data = _apply_env_overrides(data)

    return Config(
        probe=_parse_probe_config(_section(data, "probe")),
        batch=_parse_batch_config(_section(data, "batch")),
        monitor=_parse_monitor_config(_section(data, "monitor")),
        alerts=_parse_alerts_config(_section(data, "alerts")),
    )


def load_config(config_path: str | None = None) -> Config:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file, or None to use
            defaults (environment overrides still apply).

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If the file cannot be read or configuration is invalid.
    """
    if config_path is None:
        return parse_config({})

    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML configuration: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file: {e}")

    if data is None:
        data = {}

    return parse_config(data)
