"""Tests for the webhook alerter module."""

import time
from datetime import UTC, datetime
from unittest.mock import MagicMock, Mock, patch

import pytest
import requests

from urlmonitor.alerter import Alerter, StateTracker
from urlmonitor.config import AlertsConfig, WebhookConfig
from urlmonitor.models import CertificateReport, ProbeResult

URL = "https://example.com"
HOOK = "https://hooks.example.com/webhook"


class TestStateTracker:
    """Tests for the StateTracker class."""

    def test_initialization(self) -> None:
        tracker = StateTracker()
        assert tracker.last_state == {}
        assert tracker.last_alert_time == {}

    def test_track_state(self) -> None:
        tracker = StateTracker()
        tracker.last_state[URL] = True
        assert tracker.last_state[URL] is True


class TestAlerter:
    """Tests for the Alerter class."""

    @pytest.fixture
    def webhook_config(self) -> AlertsConfig:
        webhook = WebhookConfig(
            url="https://hooks.example.com/webhook",
            enabled=True,
            on_failure=True,
            on_recovery=True,
            cooldown_seconds=300,
        )
        return AlertsConfig(webhooks=[webhook])

    @pytest.fixture
    def alerter(self, webhook_config: AlertsConfig) -> Alerter:
        return Alerter(webhook_config, max_retries=2, retry_delay=0)

    @pytest.fixture
    def result_up(self) -> ProbeResult:
        return ProbeResult(
            url=URL,
            status=200,
            title="Example Domain",
            response_time_ms=100,
            timestamp=datetime.now(UTC),
            success=True,
        )

    @pytest.fixture
    def result_down(self) -> ProbeResult:
        return ProbeResult(
            url=URL,
            status=503,
            title="example.com",
            response_time_ms=5000,
            timestamp=datetime.now(UTC),
            success=False,
            error="Service temporairement indisponible",
        )

    def test_first_result_no_alert(self, alerter: Alerter, result_down: ProbeResult) -> None:
        """The first result for a URL only records its state."""
        with patch.object(alerter, "_send_webhook") as mock_send:
            alerter.process_result(result_down)
            mock_send.assert_not_called()
        assert alerter._state_tracker.last_state[URL] is False

    def test_state_change_down_triggers_alert(self, alerter: Alerter, result_down: ProbeResult) -> None:
        alerter._state_tracker.last_state[URL] = True

        with patch.object(alerter, "_send_webhook") as mock_send:
            alerter.process_result(result_down)
            mock_send.assert_called_once()

    def test_state_change_up_triggers_alert(self, alerter: Alerter, result_up: ProbeResult) -> None:
        alerter._state_tracker.last_state[URL] = False

        with patch.object(alerter, "_send_webhook") as mock_send:
            alerter.process_result(result_up)
            mock_send.assert_called_once()

    def test_no_state_change_no_alert(self, alerter: Alerter, result_up: ProbeResult) -> None:
        alerter._state_tracker.last_state[URL] = True

        with patch.object(alerter, "_send_webhook") as mock_send:
            alerter.process_result(result_up)
            mock_send.assert_not_called()

    def test_on_failure_filter(self, result_down: ProbeResult) -> None:
        webhook = WebhookConfig(url="https://hooks.example.com/webhook", on_failure=False, on_recovery=True)
        alerter = Alerter(AlertsConfig(webhooks=[webhook]))
        alerter._state_tracker.last_state[URL] = True

        with patch.object(alerter, "_send_webhook") as mock_send:
            alerter.process_result(result_down)
            mock_send.assert_not_called()

    def test_on_recovery_filter(self, result_up: ProbeResult) -> None:
        webhook = WebhookConfig(url="https://hooks.example.com/webhook", on_failure=True, on_recovery=False)
        alerter = Alerter(AlertsConfig(webhooks=[webhook]))
        alerter._state_tracker.last_state[URL] = False

        with patch.object(alerter, "_send_webhook") as mock_send:
            alerter.process_result(result_up)
            mock_send.assert_not_called()

    def test_disabled_webhook_not_sent(self, result_down: ProbeResult) -> None:
        webhook = WebhookConfig(url="https://hooks.example.com/webhook", enabled=False)
        alerter = Alerter(AlertsConfig(webhooks=[webhook]))
        alerter._state_tracker.last_state[URL] = True

        with patch.object(alerter, "_send_webhook") as mock_send:
            alerter.process_result(result_down)
            mock_send.assert_not_called()

    def test_cooldown_prevents_alert(self, alerter: Alerter, result_down: ProbeResult) -> None:
        alerter._state_tracker.last_state[URL] = True
        alerter._state_tracker.last_alert_time[(URL, HOOK)] = time.time()

        with patch.object(alerter, "_send_webhook") as mock_send:
            alerter.process_result(result_down)
            mock_send.assert_not_called()

    def test_cooldown_expiration_allows_alert(self, alerter: Alerter, result_down: ProbeResult) -> None:
        alerter._state_tracker.last_state[URL] = True
        alerter._state_tracker.last_alert_time[(URL, HOOK)] = 0  # Very old timestamp

        with patch.object(alerter, "_send_webhook") as mock_send:
            alerter.process_result(result_down)
            mock_send.assert_called_once()

    @patch("urlmonitor.alerter.requests.post")
    def test_every_webhook_receives_alert(
        self, mock_post: Mock, result_up: ProbeResult, result_down: ProbeResult
    ) -> None:
        """Cooldown is tracked per webhook, so one delivery does not mute the others."""
        webhooks = [
            WebhookConfig(url="https://hooks.example.com/a", cooldown_seconds=300),
            WebhookConfig(url="https://hooks.example.com/b", cooldown_seconds=300),
        ]
        alerter = Alerter(AlertsConfig(webhooks=webhooks), max_retries=0, retry_delay=0)

        alerter.process_result(result_up)
        alerter.process_result(result_down)

        posted_to = [call.args[0] for call in mock_post.call_args_list]
        assert posted_to == ["https://hooks.example.com/a", "https://hooks.example.com/b"]

    def test_cooldown_on_one_webhook_does_not_block_another(self, result_down: ProbeResult) -> None:
        webhooks = [
            WebhookConfig(url="https://hooks.example.com/a", cooldown_seconds=300),
            WebhookConfig(url="https://hooks.example.com/b", cooldown_seconds=300),
        ]
        alerter = Alerter(AlertsConfig(webhooks=webhooks))
        alerter._state_tracker.last_state[URL] = True
        alerter._state_tracker.last_alert_time[(URL, "https://hooks.example.com/a")] = time.time()

        with patch.object(alerter, "_send_webhook") as mock_send:
            alerter.process_result(result_down)

        mock_send.assert_called_once()
        assert mock_send.call_args.args[0].url == "https://hooks.example.com/b"

    def test_build_payload(self, alerter: Alerter, result_down: ProbeResult) -> None:
        alerter._state_tracker.last_state[URL] = True

        payload = alerter._build_payload(result_down)

        assert payload["event"] == "url_down"
        assert payload["url"] == {"url": URL, "title": "example.com"}
        assert payload["status"]["code"] == 503
        assert payload["status"]["success"] is False
        assert payload["status"]["response_time_ms"] == 5000
        assert payload["status"]["error"] == "Service temporairement indisponible"
        assert payload["previous_status"] == "up"
        assert "ssl" not in payload

    def test_build_payload_up_event(self, alerter: Alerter, result_up: ProbeResult) -> None:
        alerter._state_tracker.last_state[URL] = False

        payload = alerter._build_payload(result_up)

        assert payload["event"] == "url_up"
        assert payload["status"]["success"] is True
        assert payload["previous_status"] == "down"

    def test_build_payload_includes_certificate_summary(self, alerter: Alerter) -> None:
        report = CertificateReport(has_certificate=True, is_valid=True, days_until_expiry=10,
                                   warning="Certificat expire dans 10 jours")
        result = ProbeResult(
            url=URL,
            status=500,
            title="example.com",
            response_time_ms=20,
            timestamp=datetime.now(UTC),
            success=False,
            error="Erreur interne du serveur",
            ssl=report,
        )

        payload = alerter._build_payload(result)

        assert payload["ssl"] == {
            "days_until_expiry": 10,
            "warning": "Certificat expire dans 10 jours",
            "error": None,
        }

    @patch("urlmonitor.alerter.requests.post")
    def test_send_webhook_success(self, mock_post: Mock, alerter: Alerter, result_down: ProbeResult) -> None:
        mock_response = MagicMock()
        mock_response.raise_for_status.return_value = None
        mock_post.return_value = mock_response

        webhook = alerter._config.webhooks[0]
        alerter._send_webhook(webhook, result_down)

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == "https://hooks.example.com/webhook"
        assert kwargs["timeout"] == 10
        assert kwargs["json"]["event"] == "url_down"
        assert (URL, HOOK) in alerter._state_tracker.last_alert_time

    @patch("urlmonitor.alerter.requests.post")
    def test_send_webhook_retry_on_failure(self, mock_post: Mock, alerter: Alerter, result_down: ProbeResult) -> None:
        mock_post.side_effect = requests.RequestException("Connection error")

        alerter._send_webhook(alerter._config.webhooks[0], result_down)

        # initial attempt + 2 retries
        assert mock_post.call_count == 3
        assert (URL, HOOK) not in alerter._state_tracker.last_alert_time

    @patch("urlmonitor.alerter.requests.post")
    def test_send_webhook_success_after_retry(
        self, mock_post: Mock, alerter: Alerter, result_down: ProbeResult
    ) -> None:
        mock_response = MagicMock()
        mock_response.raise_for_status.return_value = None
        mock_post.side_effect = [requests.RequestException("Connection error"), mock_response]

        alerter._send_webhook(alerter._config.webhooks[0], result_down)

        assert mock_post.call_count == 2

    @patch("urlmonitor.alerter.requests.post")
    def test_test_webhooks_all_success(self, mock_post: Mock, alerter: Alerter) -> None:
        mock_response = MagicMock()
        mock_response.raise_for_status.return_value = None
        mock_post.return_value = mock_response

        results = alerter.test_webhooks()

        assert results == {"https://hooks.example.com/webhook": True}
        assert mock_post.call_args.kwargs["json"]["event"] == "test"

    @patch("urlmonitor.alerter.requests.post")
    def test_test_webhooks_failure(self, mock_post: Mock, alerter: Alerter) -> None:
        mock_post.side_effect = requests.RequestException("Connection error")

        results = alerter.test_webhooks()

        assert results["https://hooks.example.com/webhook"] is False

    def test_test_webhooks_disabled_webhook(self) -> None:
        webhook = WebhookConfig(url="https://hooks.example.com/webhook", enabled=False)
        alerter = Alerter(AlertsConfig(webhooks=[webhook]))

        with patch("urlmonitor.alerter.requests.post") as mock_post:
            results = alerter.test_webhooks()
            assert results["https://hooks.example.com/webhook"] is False
            mock_post.assert_not_called()
