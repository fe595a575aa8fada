"""Single-URL HTTP probe with title extraction and certificate inspection."""

import http.client
import logging
import re
import time
import urllib.error
import urllib.request
import zlib
from datetime import UTC, datetime
from functools import lru_cache

from bs4 import BeautifulSoup

from .certificate import inspect_certificate
from .config import ProbeConfig
from .errors import ErrorCategory, TooManyRedirectsError, categorize, describe, normalize
from .models import CertificateReport, ProbeResult
from .status_codes import classify
from .validation import InvalidUrlError, ParsedTarget, hostname_of, validate_url

logger = logging.getLogger(__name__)

# Only the head of a page is needed for the title; cap memory per probe.
MAX_BODY_SIZE = 1024 * 1024  # 1MB

TITLE_MAX_LENGTH = 100
TITLE_ELLIPSIS = "..."

UNTITLED = "Sans titre"
INVALID_URL_TITLE = "URL invalide"

_CHARSET_RE = re.compile(r"charset=[\"']?([\w.:-]+)", re.IGNORECASE)


class _RedirectHandler(urllib.request.HTTPRedirectHandler):
    """Redirect handler that enforces a fixed redirect limit.

    Follows 301, 302, 303, 307 and 308, raising TooManyRedirectsError once
    the limit is exceeded instead of urllib's HTTPError.
    """

    def __init__(self, max_redirects: int) -> None:
        super().__init__()
        self.max_redirects = max_redirects
        # Keep urllib's own loop detection out of the way of the limit above.
        self.max_redirections = max_redirects + 1
        self.max_repeats = max_redirects + 1

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        """Build the follow-up request, counting redirects along the chain."""
        count = getattr(req, "redirect_count", 0)
        if count >= self.max_redirects:
            raise TooManyRedirectsError(self.max_redirects)
        new_req = super().redirect_request(req, fp, code, msg, headers, newurl)
        if new_req is not None:
            new_req.redirect_count = count + 1
        return new_req

    http_error_308 = urllib.request.HTTPRedirectHandler.http_error_302


@lru_cache(maxsize=8)
def _build_opener(max_redirects: int) -> urllib.request.OpenerDirector:
    """Return an opener applying the redirect policy."""
    return urllib.request.build_opener(_RedirectHandler(max_redirects))


def _truncate_title(title: str) -> str:
    """Truncate a title to TITLE_MAX_LENGTH characters, ellipsis included."""
    if len(title) <= TITLE_MAX_LENGTH:
        return title
    return title[: TITLE_MAX_LENGTH - len(TITLE_ELLIPSIS)] + TITLE_ELLIPSIS


def _is_textual(content_type: str) -> bool:
    """Whether a Content-Type may carry an HTML title."""
    if not content_type:
        return True
    return content_type.startswith("text/") or "html" in content_type or "xml" in content_type


def _decode_body(body: bytes, content_type: str, content_encoding: str) -> str:
    """Decompress and decode a (possibly truncated) response body."""
    if content_encoding in ("gzip", "x-gzip", "deflate"):
        # 32 + MAX_WBITS accepts both gzip and zlib framing; tolerates truncation.
        body = zlib.decompressobj(32 + zlib.MAX_WBITS).decompress(body, MAX_BODY_SIZE)

    match = _CHARSET_RE.search(content_type)
    charset = match.group(1) if match else "utf-8"
    try:
        return body.decode(charset, errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


def extract_title(body: bytes, headers, hostname: str | None) -> str:
    """Extract the page title from a response body.

    Args:
        body: Raw response body (at most MAX_BODY_SIZE bytes).
        headers: Response headers (any mapping with ``get``).
        hostname: Target hostname, used as fallback.

    Returns:
        The trimmed, truncated <title> text; UNTITLED when a textual page has
        no title; the hostname for empty, non-textual or unparsable bodies.
    """
    fallback = hostname or UNTITLED
    content_type = (headers.get("Content-Type") or "").lower() if headers else ""
    content_encoding = (headers.get("Content-Encoding") or "").lower() if headers else ""

    if not body or not _is_textual(content_type):
        return fallback

    try:
        text = _decode_body(body, content_type, content_encoding)
        soup = BeautifulSoup(text, "html.parser")
        title_tag = soup.find("title")
        title = title_tag.get_text().strip() if title_tag else ""
    except Exception as e:
        logger.debug("Title extraction failed for %s: %s", hostname, e)
        return fallback

    if not title:
        return UNTITLED
    return _truncate_title(title)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _response_result(
    url: str,
    target: ParsedTarget,
    status: int,
    headers,
    body: bytes,
    elapsed_ms: int,
    ssl_report: CertificateReport | None,
) -> ProbeResult:
    """Build the result for a probe that obtained an HTTP response."""
    try:
        success, message = classify(status)
    except ValueError:
        success, message = False, f"Code HTTP {status}"

    result = ProbeResult(
        url=url,
        status=status,
        title=extract_title(body, headers, target.hostname),
        response_time_ms=elapsed_ms,
        timestamp=datetime.now(UTC),
        success=success,
        error=None if success else message,
        ssl=ssl_report,
    )
    logger.debug("%s: HTTP %d %s (%dms)", url, status, "UP" if success else "DOWN", elapsed_ms)
    return result


def _failure_result(
    url: str,
    title: str,
    error: str,
    elapsed_ms: int,
    ssl_report: CertificateReport | None = None,
) -> ProbeResult:
    """Build the result for a probe that obtained no HTTP response."""
    logger.debug("%s: DOWN (%s, %dms)", url, error, elapsed_ms)
    return ProbeResult(
        url=url,
        status=0,
        title=title,
        response_time_ms=elapsed_ms,
        timestamp=datetime.now(UTC),
        success=False,
        error=error,
        ssl=ssl_report,
    )


def probe_url(url: str, config: ProbeConfig | None = None) -> ProbeResult:
    """Perform a single probe of a URL.

    Validates the URL, inspects the certificate of HTTPS targets (when
    enabled), then issues a GET request. Never raises: every failure is
    returned as a ProbeResult with ``success=False``.

    Args:
        url: The URL to probe.
        config: Request policy, defaults to ProbeConfig().

    Returns:
        ProbeResult with status, title, timing, and certificate report.
    """
    config = config or ProbeConfig()

    try:
        target = validate_url(url)
    except InvalidUrlError as e:
        logger.debug("Rejected %r before probing: %s", url, e)
        return _failure_result(
            url,
            title=hostname_of(url) or INVALID_URL_TITLE,
            error=describe(ErrorCategory.INVALID_URL),
            elapsed_ms=0,
        )

    # Separate connection, before the request: a TLS inspection failure is
    # reported in the result but never aborts the HTTP probe.
    ssl_report: CertificateReport | None = None
    if target.is_https and config.inspect_tls:
        ssl_report = inspect_certificate(
            target.hostname,
            target.port,
            timeout=config.tls_timeout,
            warning_days=config.cert_warning_days,
        )

    request = urllib.request.Request(target.url, method="GET", headers=config.headers)
    start = time.monotonic()

    try:
        with _build_opener(config.max_redirects).open(request, timeout=config.timeout) as response:
            body = response.read(MAX_BODY_SIZE)
            elapsed_ms = _elapsed_ms(start)
            return _response_result(url, target, response.status, response.headers, body, elapsed_ms, ssl_report)

    except urllib.error.HTTPError as e:
        # 4xx/5xx (and unfollowed 3xx) are responses, not probe failures.
        try:
            body = e.read(MAX_BODY_SIZE)
        except (OSError, http.client.HTTPException, AttributeError):
            body = b""
        elapsed_ms = _elapsed_ms(start)
        return _response_result(url, target, e.code, e.headers, body, elapsed_ms, ssl_report)

    except (urllib.error.URLError, OSError, http.client.HTTPException, TooManyRedirectsError) as e:
        elapsed_ms = _elapsed_ms(start)
        category = categorize(e)
        if category in (ErrorCategory.CONNECT_TIMEOUT, ErrorCategory.REQUEST_TIMEOUT):
            error = describe(category, timeout=config.timeout)
        elif category is ErrorCategory.TOO_MANY_REDIRECTS:
            error = f"{describe(category)} (max {config.max_redirects})"
        else:
            error = normalize(e)
        return _failure_result(url, target.hostname, error, elapsed_ms, ssl_report)

    except Exception as e:
        elapsed_ms = _elapsed_ms(start)
        logger.error("Unexpected failure probing %s: %s", url, e)
        return _failure_result(url, target.hostname, normalize(e), elapsed_ms, ssl_report)
