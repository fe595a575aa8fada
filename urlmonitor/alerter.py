"""Webhook alert system with state tracking and cooldown management."""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime

import requests

from .config import AlertsConfig, WebhookConfig
from .models import ProbeResult

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT = 10  # seconds


@dataclass
class StateTracker:
    """Track target state changes and alert cooldowns."""

    last_state: dict[str, bool] = field(default_factory=dict)  # {url: success}
    last_alert_time: dict[tuple[str, str], float] = field(default_factory=dict)  # {(url, webhook): timestamp}


class Alerter:
    """Sends webhook alerts when a target goes down or comes back up."""

    def __init__(self, config: AlertsConfig, max_retries: int = 3, retry_delay: int = 2):
        """Initialize alerter with configuration.

        Args:
            config: Alerts configuration with webhooks
            max_retries: Maximum number of retry attempts for failed webhooks
            retry_delay: Base delay in seconds between retries (increases exponentially)
        """
        self._config = config
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._state_tracker = StateTracker()
        self._lock = threading.Lock()

    def process_result(self, result: ProbeResult) -> None:
        """Process a probe result and send alerts on state change.

        The first result seen for a URL only records its state.
        """
        with self._lock:
            if self._should_alert(result):
                is_failure = not result.success
                for webhook in self._config.webhooks:
                    if not webhook.enabled:
                        continue
                    if is_failure and not webhook.on_failure:
                        continue
                    if not is_failure and not webhook.on_recovery:
                        continue

                    if not self._is_cooldown_expired(result.url, webhook):
                        logger.debug("Webhook cooldown active for %s on %s, skipping", result.url, webhook.url)
                        continue

                    self._send_webhook(webhook, result)

            self._state_tracker.last_state[result.url] = result.success

    def _should_alert(self, result: ProbeResult) -> bool:
        previous_state = self._state_tracker.last_state.get(result.url)
        if previous_state is None:
            return False
        return previous_state != result.success

    def _is_cooldown_expired(self, url: str, webhook: WebhookConfig) -> bool:
        last_alert = self._state_tracker.last_alert_time.get((url, webhook.url))
        if last_alert is None:
            return True
        return time.time() - last_alert >= webhook.cooldown_seconds

    def _send_webhook(self, webhook: WebhookConfig, result: ProbeResult) -> None:
        """Send a webhook alert (with retries).

        Args:
            webhook: The webhook configuration
            result: The probe result that triggered the alert
        """
        payload = self._build_payload(result)
        retry_count = 0

        while retry_count <= self._max_retries:
            try:
                response = requests.post(webhook.url, json=payload, timeout=WEBHOOK_TIMEOUT)
                response.raise_for_status()

                logger.info("Webhook sent successfully for %s to %s", result.url, webhook.url)
                self._state_tracker.last_alert_time[(result.url, webhook.url)] = time.time()
                return

            except requests.RequestException as e:
                retry_count += 1
                if retry_count <= self._max_retries:
                    delay = self._retry_delay * (2 ** (retry_count - 1))
                    logger.warning(
                        "Webhook failed for %s (attempt %d/%d, retrying in %ds): %s",
                        result.url,
                        retry_count,
                        self._max_retries + 1,
                        delay,
                        e,
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        "Webhook failed for %s after %d attempts: %s",
                        result.url,
                        retry_count,
                        e,
                    )

    def _build_payload(self, result: ProbeResult) -> dict:
        """Build the webhook payload for a state change."""
        previous_state = self._state_tracker.last_state.get(result.url)

        payload = {
            "event": "url_down" if not result.success else "url_up",
            "url": {
                "url": result.url,
                "title": result.title,
            },
            "status": {
                "code": result.status,
                "success": result.success,
                "response_time_ms": result.response_time_ms,
                "error": result.error,
                "timestamp": result.timestamp.isoformat(),
            },
            "previous_status": "up" if previous_state else "down" if previous_state is not None else None,
        }
        if result.ssl is not None:
            payload["ssl"] = {
                "days_until_expiry": result.ssl.days_until_expiry,
                "warning": result.ssl.warning,
                "error": result.ssl.error,
            }
        return payload

    def test_webhooks(self) -> dict[str, bool]:
        """Test all configured webhooks by sending a test payload.

        Returns:
            Dictionary mapping webhook URLs to success status
        """
        results = {}

        for webhook in self._config.webhooks:
            if not webhook.enabled:
                results[webhook.url] = False
                continue

            test_payload = {
                "event": "test",
                "url": {
                    "url": "https://example.com",
                    "title": "TEST",
                },
                "status": {
                    "code": 200,
                    "success": True,
                    "response_time_ms": 100,
                    "error": None,
                    "timestamp": datetime.now(UTC).isoformat(),
                },
                "previous_status": "up",
            }

            try:
                response = requests.post(webhook.url, json=test_payload, timeout=WEBHOOK_TIMEOUT)
                response.raise_for_status()
                results[webhook.url] = True
                logger.info("Test webhook sent successfully to %s", webhook.url)

            except requests.RequestException as e:
                results[webhook.url] = False
                logger.error("Test webhook failed for %s: %s", webhook.url, e)

        return results
