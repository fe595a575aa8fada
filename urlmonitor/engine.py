"""Stateless probing service exposed to the persistence and UI layers."""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .batch import probe_many
from .certificate import inspect_url
from .config import SERVICE_BATCH, BatchConfig, ProbeConfig
from .models import CertificateReport, ProbeResult
from .prober import probe_url


@dataclass(frozen=True)
class ProbeEngine:
    """Entry points of the health-check engine.

    Holds only immutable configuration; every call is independent.

    Example:
        engine = ProbeEngine(batch_config=INTERACTIVE_BATCH)
        results = engine.probe_many(["https://example.com", "http://example.org"])
    """

    probe_config: ProbeConfig = field(default_factory=ProbeConfig)
    batch_config: BatchConfig = SERVICE_BATCH

    def probe_one(self, url: str) -> ProbeResult:
        """Probe a single URL."""
        return probe_url(url, self.probe_config)

    def probe_many(
        self,
        urls: Sequence[str],
        sleep: Callable[[float], object] | None = None,
    ) -> list[ProbeResult]:
        """Probe many URLs in windows, results in input order.

        Args:
            urls: URLs to probe.
            sleep: Pause function between windows, e.g. an Event.wait so a
                stopping monitor is not held up by the pause.
        """
        return probe_many(urls, self.probe_config, self.batch_config, sleep=sleep)

    def inspect_certificate(self, url: str) -> CertificateReport:
        """Report on the certificate of an HTTPS URL."""
        return inspect_url(
            url,
            timeout=self.probe_config.tls_timeout,
            warning_days=self.probe_config.cert_warning_days,
        )
