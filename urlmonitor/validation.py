"""Boundary validation for monitored URLs."""

import logging
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")

DEFAULT_PORTS = {"http": 80, "https": 443}


class InvalidUrlError(ValueError):
    """Raised when a URL cannot be probed (unparsable, bad scheme, no host)."""

    pass


@dataclass(frozen=True)
class ParsedTarget:
    """Components of a validated URL needed by the probers."""

    url: str
    scheme: str
    hostname: str
    port: int

    @property
    def is_https(self) -> bool:
        return self.scheme == "https"


def validate_url(url: str) -> ParsedTarget:
    """Validate a URL before any network call is made.

    Args:
        url: The URL to validate.

    Returns:
        ParsedTarget with scheme, hostname and effective port.

    Raises:
        InvalidUrlError: If the URL is empty, unparsable, uses a scheme other
            than http/https, has no hostname, or has an invalid port.
    """
    if not url or not isinstance(url, str):
        raise InvalidUrlError("URL cannot be empty")

    url = url.strip()

    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise InvalidUrlError(f"Invalid URL format: {e}")

    scheme = parsed.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise InvalidUrlError(f"Scheme '{parsed.scheme}' not supported. Only http:// and https:// are permitted.")

    hostname = parsed.hostname
    if not hostname:
        raise InvalidUrlError("No hostname in URL")

    try:
        port = parsed.port or DEFAULT_PORTS[scheme]
    except ValueError as e:
        raise InvalidUrlError(f"Invalid port in URL: {e}")

    return ParsedTarget(url=url, scheme=scheme, hostname=hostname, port=port)


def is_valid_url(url: str) -> bool:
    """Return True if the URL passes validate_url."""
    try:
        validate_url(url)
    except InvalidUrlError as e:
        logger.debug("Rejected URL %r: %s", url, e)
        return False
    return True


def hostname_of(url: str) -> str | None:
    """Best-effort hostname extraction, None when the URL does not parse."""
    try:
        return urlparse(url).hostname
    except (ValueError, AttributeError):
        return None
