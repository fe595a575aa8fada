"""urlmonitor - HTTP(S) availability and certificate health monitoring."""

import argparse
import json
import logging
import signal
import sys
from threading import Event
from typing import Optional

__version__ = "1.1.0"

# Global shutdown event for signal handlers
_shutdown_event: Optional[Event] = None

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False, service: bool = True) -> None:
    """Configure logging for the application.

    One-shot commands print their output on stdout, so their logs go to
    stderr and only from WARNING up unless verbose.
    """
    if verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO if service else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout if service else sys.stderr,
    )


def _handle_shutdown(signum: int, frame: object) -> None:
    """Signal handler for graceful shutdown."""
    sig_name = signal.Signals(signum).name
    logger.info("Received %s, initiating shutdown...", sig_name)
    if _shutdown_event is not None:
        _shutdown_event.set()


def _print_json(data: object) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _load_config(args: argparse.Namespace):
    """Load configuration or exit with an error message."""
    from .config import ConfigError, load_config

    try:
        return load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)


def _open_store(args: argparse.Namespace):
    from .store import TargetStore

    config = _load_config(args)
    return TargetStore(config.monitor.targets_file)


def _cmd_run(args: argparse.Namespace) -> None:
    """Execute the run command - start the monitoring service."""
    global _shutdown_event

    logger.info("urlmonitor %s starting...", __version__)

    # Import here to allow logging setup first
    from .alerter import Alerter
    from .engine import ProbeEngine
    from .monitor import Monitor
    from .store import TargetStore

    # 1. Load configuration
    config = _load_config(args)
    logger.info(
        "Checking targets from %s every %ds (batches of %d)",
        config.monitor.targets_file,
        config.monitor.interval,
        config.batch.size,
    )

    # 2. Setup shutdown handler
    _shutdown_event = Event()
    signal.signal(signal.SIGTERM, _handle_shutdown)
    signal.signal(signal.SIGINT, _handle_shutdown)

    # 3. Initialize alerter
    alerter = Alerter(config.alerts)
    if config.alerts.webhooks:
        logger.info("Alerts configured with %d webhook(s)", len(config.alerts.webhooks))

    # 4. Start monitor
    engine = ProbeEngine(probe_config=config.probe, batch_config=config.batch)
    store = TargetStore(config.monitor.targets_file)
    monitor = Monitor(engine, store, interval=config.monitor.interval, on_check=alerter.process_result)

    try:
        monitor.start()
        logger.info("Monitor started, waiting for shutdown signal...")

        # 5. Wait for shutdown signal
        _shutdown_event.wait()

    except KeyboardInterrupt:
        # Backup handler if signal doesn't work
        logger.info("Keyboard interrupt received")
    finally:
        monitor.stop()
        logger.info("Shutdown complete")


def _cmd_check(args: argparse.Namespace) -> None:
    """Execute the check command - probe URLs once and print the results."""
    from .config import INTERACTIVE_BATCH
    from .engine import ProbeEngine

    config = _load_config(args)

    if len(args.urls) == 1:
        engine = ProbeEngine(probe_config=config.probe)
        results = [engine.probe_one(args.urls[0])]
        _print_json(results[0].to_dict())
    else:
        engine = ProbeEngine(probe_config=config.probe, batch_config=INTERACTIVE_BATCH)
        results = engine.probe_many(args.urls)
        _print_json([result.to_dict() for result in results])

    if not all(result.success for result in results):
        sys.exit(1)


def _cmd_ssl(args: argparse.Namespace) -> None:
    """Execute the ssl command - print the certificate report of a URL."""
    from .engine import ProbeEngine

    config = _load_config(args)
    report = ProbeEngine(probe_config=config.probe).inspect_certificate(args.url)
    _print_json(report.to_dict())

    if report.error:
        sys.exit(1)


def _cmd_add(args: argparse.Namespace) -> None:
    """Execute the add command - start monitoring a URL."""
    from .store import StoreError
    from .validation import InvalidUrlError

    store = _open_store(args)
    try:
        target = store.add(args.url)
    except (InvalidUrlError, StoreError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Added {target.url}")


def _cmd_remove(args: argparse.Namespace) -> None:
    """Execute the remove command - stop monitoring a URL."""
    from .store import StoreError

    store = _open_store(args)
    try:
        removed = store.remove(args.url)
    except StoreError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if not removed:
        print(f"Error: {args.url} is not monitored")
        sys.exit(1)

    print(f"Removed {args.url}")


def _cmd_list(args: argparse.Namespace) -> None:
    """Execute the list command - show monitored targets and their last check."""
    from .store import StoreError

    store = _open_store(args)
    try:
        targets = store.load()
    except StoreError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.json:
        _print_json([target.to_dict() for target in targets])
        return

    if not targets:
        print("No targets monitored.")
        return

    for target in targets:
        if target.check_count == 0:
            state = "----"
        elif target.error:
            state = "DOWN"
        else:
            state = " UP "
        status = target.status if target.status is not None else "-"
        response_time = f"{target.response_time_ms}ms" if target.response_time_ms is not None else "-"
        line = f"[{state}] {status!s:>3} {response_time:>8}  {target.url}"
        if target.title:
            line += f"  {target.title}"
        if target.error:
            line += f"  ({target.error})"
        print(line)


def _cmd_export(args: argparse.Namespace) -> None:
    """Execute the export command - write the target list to a JSON file."""
    from .store import StoreError

    store = _open_store(args)
    try:
        path = store.export(args.path)
    except StoreError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Exported targets to {path}")


def _cmd_import(args: argparse.Namespace) -> None:
    """Execute the import command - replace the target list from a JSON file."""
    from .store import StoreError

    store = _open_store(args)
    try:
        count = store.import_file(args.path)
    except StoreError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Imported {count} target(s)")


def _cmd_stats(args: argparse.Namespace) -> None:
    """Execute the stats command - print aggregate figures over the targets."""
    from .models import summarize_targets
    from .store import StoreError

    store = _open_store(args)
    try:
        stats = summarize_targets(store.load())
    except StoreError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Total:             {stats.total}")
    print(f"Active (2xx):      {stats.active}")
    print(f"Failing:           {stats.failing}")
    print(f"Never checked:     {stats.unchecked}")
    print(f"Checked last hour: {stats.recent_checks}")
    print(f"Avg response time: {stats.avg_response_time_ms:.0f}ms")


def _cmd_test_alert(args: argparse.Namespace) -> None:
    """Execute the test-alert command - verify webhook configuration."""
    from .alerter import Alerter

    # 1. Load configuration
    config = _load_config(args)

    # 2. Check if any webhooks are configured
    if not config.alerts.webhooks:
        print("Error: No webhooks configured in alerts section")
        sys.exit(1)

    # 3. Create alerter and test webhooks
    alerter = Alerter(config.alerts)
    print(f"Testing {len(config.alerts.webhooks)} webhook(s)...\n")

    results = alerter.test_webhooks()

    # 4. Display results
    success_count = sum(1 for success in results.values() if success)
    total_count = len(results)

    for url, success in results.items():
        status = "✓ SUCCESS" if success else "✗ FAILED"
        print(f"{status}: {url}")

    print(f"\nResult: {success_count}/{total_count} webhooks successful")

    if success_count < total_count:
        sys.exit(1)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="urlmonitor",
        description="urlmonitor - HTTP(S) availability and certificate health monitoring",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"urlmonitor {__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to YAML configuration file (default: built-in defaults)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Start the periodic monitor (default)")
    run_parser.set_defaults(func=_cmd_run)

    check_parser = subparsers.add_parser("check", help="Probe one or more URLs once")
    check_parser.add_argument("urls", nargs="+", metavar="URL", help="URL(s) to probe")
    check_parser.set_defaults(func=_cmd_check)

    ssl_parser = subparsers.add_parser("ssl", help="Inspect the certificate of an HTTPS URL")
    ssl_parser.add_argument("url", metavar="URL", help="HTTPS URL to inspect")
    ssl_parser.set_defaults(func=_cmd_ssl)

    add_parser = subparsers.add_parser("add", help="Add a URL to the monitored targets")
    add_parser.add_argument("url", metavar="URL", help="URL to monitor")
    add_parser.set_defaults(func=_cmd_add)

    remove_parser = subparsers.add_parser("remove", help="Remove a URL from the monitored targets")
    remove_parser.add_argument("url", metavar="URL", help="URL to stop monitoring")
    remove_parser.set_defaults(func=_cmd_remove)

    list_parser = subparsers.add_parser("list", help="List monitored targets")
    list_parser.add_argument("--json", action="store_true", help="Print targets as JSON")
    list_parser.set_defaults(func=_cmd_list)

    export_parser = subparsers.add_parser("export", help="Export monitored targets to a JSON file")
    export_parser.add_argument("path", metavar="PATH", help="Destination file")
    export_parser.set_defaults(func=_cmd_export)

    import_parser = subparsers.add_parser("import", help="Replace monitored targets from a JSON export")
    import_parser.add_argument("path", metavar="PATH", help="Export file to import")
    import_parser.set_defaults(func=_cmd_import)

    stats_parser = subparsers.add_parser("stats", help="Show aggregate statistics")
    stats_parser.set_defaults(func=_cmd_stats)

    test_alert_parser = subparsers.add_parser("test-alert", help="Test webhook alert configuration")
    test_alert_parser.set_defaults(func=_cmd_test_alert)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the urlmonitor package."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose, service=args.command in (None, "run"))

    # Default to 'run' if no command specified
    if args.command is None:
        args.func = _cmd_run

    args.func(args)
