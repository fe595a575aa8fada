"""Tests for the probe engine boundary."""

from unittest.mock import MagicMock, patch

import pytest

from urlmonitor.config import INTERACTIVE_BATCH, SERVICE_BATCH, ProbeConfig
from urlmonitor.engine import ProbeEngine


class TestProbeEngine:
    """Tests for ProbeEngine."""

    def test_defaults(self) -> None:
        engine = ProbeEngine()
        assert engine.probe_config == ProbeConfig()
        assert engine.batch_config == SERVICE_BATCH

    def test_is_immutable(self) -> None:
        engine = ProbeEngine()
        with pytest.raises(AttributeError):
            engine.probe_config = ProbeConfig(timeout=1)

    def test_probe_one_uses_probe_config(self) -> None:
        config = ProbeConfig(timeout=5)
        with patch("urlmonitor.engine.probe_url") as mock_probe:
            result = ProbeEngine(probe_config=config).probe_one("https://example.com")

        mock_probe.assert_called_once_with("https://example.com", config)
        assert result is mock_probe.return_value

    def test_probe_many_uses_batch_config(self) -> None:
        sleep = MagicMock()
        engine = ProbeEngine(batch_config=INTERACTIVE_BATCH)
        with patch("urlmonitor.engine.probe_many") as mock_many:
            engine.probe_many(["https://a.example", "https://b.example"], sleep=sleep)

        mock_many.assert_called_once_with(
            ["https://a.example", "https://b.example"],
            engine.probe_config,
            INTERACTIVE_BATCH,
            sleep=sleep,
        )

    def test_inspect_certificate_uses_tls_settings(self) -> None:
        config = ProbeConfig(tls_timeout=3, cert_warning_days=14)
        with patch("urlmonitor.engine.inspect_url") as mock_inspect:
            ProbeEngine(probe_config=config).inspect_certificate("https://example.com")

        mock_inspect.assert_called_once_with("https://example.com", timeout=3, warning_days=14)

    def test_inspect_certificate_non_https(self) -> None:
        report = ProbeEngine().inspect_certificate("http://example.com")
        assert report.has_certificate is False
        assert report.error == "URL non HTTPS"
