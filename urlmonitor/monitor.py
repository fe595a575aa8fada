"""Periodic monitor loop over the stored targets."""

import logging
from collections.abc import Callable
from threading import Event, Thread

from .engine import ProbeEngine
from .models import ProbeResult, Target
from .store import StoreError, TargetStore

logger = logging.getLogger(__name__)


class Monitor:
    """Threaded monitor that re-probes every stored target at a fixed interval.

    Each cycle loads the target list, probes it through the engine in
    windows, folds the results back into the store and hands every result
    to the optional callback (used for alerting).

    Example:
        monitor = Monitor(ProbeEngine(), TargetStore(path), interval=60)
        monitor.start()
        # ... later ...
        monitor.stop()
    """

    def __init__(
        self,
        engine: ProbeEngine,
        store: TargetStore,
        interval: float = 60,
        on_check: Callable[[ProbeResult], None] | None = None,
    ) -> None:
        """Initialize the monitor.

        Args:
            engine: Probe engine used for every cycle.
            store: Target store read and updated by every cycle.
            interval: Seconds between the end of a cycle and the next one.
            on_check: Optional callback invoked for each probe result.
        """
        self._engine = engine
        self._store = store
        self._interval = interval
        self._on_check = on_check
        self._stop_event = Event()
        self._thread: Thread | None = None

    def start(self) -> None:
        """Start the monitor loop in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Monitor already running")
            return

        self._stop_event.clear()
        self._thread = Thread(target=self._run_loop, daemon=True, name="monitor-loop")
        self._thread.start()
        logger.info("Monitor started (interval %ss, targets in %s)", self._interval, self._store.path)

    def stop(self, timeout: float = 30.0) -> None:
        """Stop the monitor loop gracefully.

        Probes already in flight finish within their own timeouts; no new
        window is started once the stop is requested.

        Args:
            timeout: Maximum seconds to wait for the loop to stop.
        """
        if self._thread is None or not self._thread.is_alive():
            return

        logger.info("Stopping monitor...")
        self._stop_event.set()
        self._thread.join(timeout=timeout)

        if self._thread.is_alive():
            logger.warning("Monitor thread did not stop within timeout")
        else:
            logger.info("Monitor stopped")

    def is_running(self) -> bool:
        """Check if the monitor loop is currently running."""
        return self._thread is not None and self._thread.is_alive()

    def _run_loop(self) -> None:
        """Main monitor loop - runs in background thread."""
        logger.debug("Monitor loop started")

        while not self._stop_event.is_set():
            try:
                self.run_cycle()
            except StoreError as e:
                logger.error("Check cycle failed: %s", e)

            # wait() so the sleep is interrupted by stop()
            self._stop_event.wait(timeout=self._interval)

        logger.debug("Monitor loop exited")

    def run_cycle(self) -> list[Target]:
        """Probe every stored target once and persist the results.

        Returns:
            The updated target list.

        Raises:
            StoreError: If the target list cannot be read or written.
        """
        targets = self._store.load()
        if not targets:
            logger.debug("No targets to check")
            return []

        urls = [target.url for target in targets]
        # Event.wait as the inter-window pause lets stop() cut the cycle short.
        results = self._engine.probe_many(urls, sleep=self._stop_event.wait)

        updated = self._store.apply_results(results)

        for result in results:
            if self._on_check is not None:
                try:
                    self._on_check(result)
                except Exception as e:
                    logger.error("Check callback failed for %s: %s", result.url, e)

        up = sum(1 for r in results if r.success)
        logger.info("Vérification terminée: %d OK, %d erreurs", up, len(results) - up)
        return updated
