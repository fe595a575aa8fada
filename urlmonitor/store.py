"""JSON file persistence for the monitored target list."""

import json
import logging
import os
import tempfile
import threading
from collections.abc import Iterable
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

from .models import ProbeResult, Target
from .validation import InvalidUrlError, validate_url

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.1"


class StoreError(Exception):
    """Raised when the target list cannot be read, written or modified."""

    pass


class TargetStore:
    """Target list stored as a JSON array in a single file.

    Writes go through a temporary file and an atomic rename, so a crash
    mid-write never leaves a truncated list behind. A lock serializes
    access from the monitor thread and the caller.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> list[Target]:
        if not self._path.exists():
            return []

        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreError(f"Targets file is not valid JSON: {e}")
        except OSError as e:
            raise StoreError(f"Failed to read targets file: {e}")

        return _parse_targets(data, source=str(self._path))

    def _write(self, targets: Iterable[Target]) -> None:
        payload = [target.to_dict() for target in targets]
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, prefix=".urls-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self._path)
            except BaseException:
                os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StoreError(f"Failed to write targets file: {e}")

    def load(self) -> list[Target]:
        """Load the stored targets, an empty list if the file does not exist yet."""
        with self._lock:
            return self._read()

    def save(self, targets: Iterable[Target]) -> None:
        """Replace the stored targets."""
        with self._lock:
            self._write(targets)

    def add(self, url: str) -> Target:
        """Validate and append a new target.

        Raises:
            InvalidUrlError: If the URL is not a valid http(s) URL.
            StoreError: If the URL is already monitored.
        """
        url = validate_url(url).url
        with self._lock:
            targets = self._read()
            if any(target.url == url for target in targets):
                raise StoreError(f"URL already monitored: {url}")

            target = Target.new(url)
            existing_ids = {t.id for t in targets}
            if target.id in existing_ids:
                target = Target(id=max(existing_ids) + 1, url=target.url, added_at=target.added_at)

            targets.append(target)
            self._write(targets)

        logger.info("Added target %s", url)
        return target

    def remove(self, url: str) -> bool:
        """Remove a target by URL. Returns False if it was not stored."""
        with self._lock:
            targets = self._read()
            remaining = [target for target in targets if target.url != url]
            if len(remaining) == len(targets):
                return False
            self._write(remaining)

        logger.info("Removed target %s", url)
        return True

    def apply_results(self, results: Iterable[ProbeResult]) -> list[Target]:
        """Fold probe results into the stored targets and save them.

        Targets are re-read under the lock so entries added or removed while
        the probes were running are kept as they are.
        """
        by_url = {result.url: result for result in results}
        with self._lock:
            targets = [
                target.with_result(by_url[target.url]) if target.url in by_url else target
                for target in self._read()
            ]
            self._write(targets)
        return targets

    def export(self, path: str | Path) -> Path:
        """Write the target list to an export document.

        The document is ``{"exportDate": ..., "version": ..., "urls": [...]}``.
        """
        targets = self.load()
        document = {
            "exportDate": datetime.now(UTC).isoformat(),
            "version": EXPORT_VERSION,
            "urls": [target.to_dict() for target in targets],
        }
        export_path = Path(path)
        try:
            export_path.parent.mkdir(parents=True, exist_ok=True)
            with open(export_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise StoreError(f"Failed to write export file: {e}")

        logger.info("Exported %d target(s) to %s", len(targets), export_path)
        return export_path

    def import_file(self, path: str | Path) -> int:
        """Replace the target list with the content of an export document.

        Returns:
            Number of targets imported.
        """
        try:
            with open(path, encoding="utf-8") as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreError(f"Import file is not valid JSON: {e}")
        except OSError as e:
            raise StoreError(f"Failed to read import file: {e}")

        if not isinstance(document, dict) or not isinstance(document.get("urls"), list):
            raise StoreError("Invalid import file format: missing 'urls' list")

        targets = _checked_imports(_parse_targets(document["urls"], source=str(path)), source=str(path))
        self.save(targets)

        logger.info("Imported %d target(s) from %s", len(targets), path)
        return len(targets)


def _parse_targets(data: object, source: str) -> list[Target]:
    """Build targets from a decoded JSON array."""
    if not isinstance(data, list):
        raise StoreError(f"Targets in {source} must be a JSON array")

    targets = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict) or "url" not in entry:
            raise StoreError(f"Target entry {index} in {source} is missing 'url' field")
        try:
            targets.append(Target.from_dict(entry))
        except (TypeError, ValueError) as e:
            raise StoreError(f"Target entry {index} in {source} is invalid: {e}")
    return targets


def _checked_imports(targets: list[Target], source: str) -> list[Target]:
    """Validate imported URLs and drop repeated ones, keeping the first."""
    seen: set[str] = set()
    kept = []
    for target in targets:
        try:
            url = validate_url(target.url).url
        except InvalidUrlError as e:
            raise StoreError(f"Invalid URL in {source}: {e}")
        if url != target.url:
            target = replace(target, url=url)
        if target.url in seen:
            logger.warning("Skipping duplicate target %s in %s", target.url, source)
            continue
        seen.add(target.url)
        kept.append(target)
    return kept
