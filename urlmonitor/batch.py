"""Windowed batch probing with bounded concurrency.

URLs are split into fixed-size windows. Each window runs on its own thread
pool sized to the window, and the next window starts only once every probe of
the current one has settled, so no more than ``BatchConfig.size`` probes are
ever in flight.
"""

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime

from .config import BatchConfig, ProbeConfig
from .models import ProbeResult
from .prober import probe_url

logger = logging.getLogger(__name__)

BATCH_FAILURE_TITLE = "Erreur de lot"
BATCH_FAILURE_MESSAGE = "Erreur de traitement par lot"

ProbeFunc = Callable[[str, ProbeConfig], ProbeResult]


def _batch_failure(url: str) -> ProbeResult:
    """Synthetic result for a URL whose window failed as a whole."""
    return ProbeResult(
        url=url,
        status=0,
        title=BATCH_FAILURE_TITLE,
        response_time_ms=0,
        timestamp=datetime.now(UTC),
        success=False,
        error=BATCH_FAILURE_MESSAGE,
        ssl=None,
    )


def _windows(urls: Sequence[str], size: int) -> list[list[str]]:
    return [list(urls[i : i + size]) for i in range(0, len(urls), size)]


def _probe_window(window: list[str], probe_config: ProbeConfig, probe: ProbeFunc) -> list[ProbeResult]:
    """Probe every URL of a window concurrently, preserving input order."""
    with ThreadPoolExecutor(max_workers=len(window), thread_name_prefix="probe") as executor:
        futures = [executor.submit(probe, url, probe_config) for url in window]
        # Leaving the with-block waits for every future, failed or not.
        return [future.result() for future in futures]


def probe_many(
    urls: Sequence[str],
    probe_config: ProbeConfig | None = None,
    batch_config: BatchConfig | None = None,
    probe: ProbeFunc | None = None,
    sleep: Callable[[float], object] | None = None,
) -> list[ProbeResult]:
    """Probe many URLs, one window at a time.

    Args:
        urls: URLs to probe.
        probe_config: Request policy for every probe.
        batch_config: Window size and pause between windows.
        probe: Single-URL probe function, defaults to probe_url.
        sleep: Pause function, defaults to time.sleep.

    Returns:
        One ProbeResult per input URL, in input order.
    """
    probe_config = probe_config or ProbeConfig()
    batch_config = batch_config or BatchConfig()
    probe = probe or probe_url
    sleep = sleep or time.sleep

    results: list[ProbeResult] = []
    windows = _windows(urls, batch_config.size)

    for index, window in enumerate(windows):
        try:
            window_results = _probe_window(window, probe_config, probe)
        except Exception as e:
            logger.error("Batch %d/%d failed: %s", index + 1, len(windows), e)
            window_results = [_batch_failure(url) for url in window]

        results.extend(window_results)

        if index < len(windows) - 1 and batch_config.pause > 0:
            sleep(batch_config.pause)

    logger.debug(
        "Probed %d URLs in %d batch(es): %d up, %d down",
        len(results),
        len(windows),
        sum(1 for r in results if r.success),
        sum(1 for r in results if not r.success),
    )
    return results
