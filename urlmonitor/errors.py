"""Error taxonomy shared by the HTTP prober and the certificate inspector.

Low-level faults (socket errors, TLS errors, urllib wrappers) are mapped to a
small set of stable categories, each with a fixed user-facing message. Both
probing paths go through :func:`normalize` so the same fault always reads the
same way, whichever component observed it.
"""

import errno
import http.client
import socket
import ssl
import urllib.error
from enum import Enum


class ErrorCategory(str, Enum):
    """Stable categories for transport and TLS failures."""

    DNS_FAILURE = "dns_failure"
    CONNECTION_REFUSED = "connection_refused"
    CONNECT_TIMEOUT = "connect_timeout"
    REQUEST_TIMEOUT = "request_timeout"
    TLS_PROTOCOL = "tls_protocol"
    CERT_EXPIRED = "cert_expired"
    CERT_UNVERIFIABLE = "cert_unverifiable"
    SELF_SIGNED = "self_signed"
    CONNECTION_RESET = "connection_reset"
    HOST_UNREACHABLE = "host_unreachable"
    NETWORK_UNREACHABLE = "network_unreachable"
    NO_RESPONSE = "no_response"
    TOO_MANY_REDIRECTS = "too_many_redirects"
    INVALID_URL = "invalid_url"
    UNKNOWN = "unknown"


CATEGORY_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.DNS_FAILURE: "Nom de domaine introuvable (DNS)",
    ErrorCategory.CONNECTION_REFUSED: "Connexion refusée par le serveur",
    ErrorCategory.CONNECT_TIMEOUT: "Timeout de connexion",
    ErrorCategory.REQUEST_TIMEOUT: "Timeout de la requête",
    ErrorCategory.TLS_PROTOCOL: "Erreur de protocole SSL/TLS",
    ErrorCategory.CERT_EXPIRED: "Certificat SSL expiré",
    ErrorCategory.CERT_UNVERIFIABLE: "Certificat SSL non vérifiable",
    ErrorCategory.SELF_SIGNED: "Certificat auto-signé dans la chaîne",
    ErrorCategory.CONNECTION_RESET: "Connexion fermée par le serveur",
    ErrorCategory.HOST_UNREACHABLE: "Hôte inaccessible",
    ErrorCategory.NETWORK_UNREACHABLE: "Réseau inaccessible",
    ErrorCategory.NO_RESPONSE: "Aucune réponse du serveur",
    ErrorCategory.TOO_MANY_REDIRECTS: "Trop de redirections",
    ErrorCategory.INVALID_URL: "URL invalide",
    ErrorCategory.UNKNOWN: "Erreur de connexion inconnue",
}

# OpenSSL X509_V_ERR_* codes carried by ssl.SSLCertVerificationError.verify_code
X509_V_ERR_CERT_HAS_EXPIRED = 10
X509_V_ERR_DEPTH_ZERO_SELF_SIGNED_CERT = 18
X509_V_ERR_SELF_SIGNED_CERT_IN_CHAIN = 19

_ERRNO_CATEGORIES: dict[int, ErrorCategory] = {
    errno.ECONNREFUSED: ErrorCategory.CONNECTION_REFUSED,
    errno.ECONNRESET: ErrorCategory.CONNECTION_RESET,
    errno.ECONNABORTED: ErrorCategory.CONNECTION_RESET,
    errno.EPIPE: ErrorCategory.CONNECTION_RESET,
    errno.EHOSTUNREACH: ErrorCategory.HOST_UNREACHABLE,
    errno.EHOSTDOWN: ErrorCategory.HOST_UNREACHABLE,
    errno.ENETUNREACH: ErrorCategory.NETWORK_UNREACHABLE,
    errno.ENETDOWN: ErrorCategory.NETWORK_UNREACHABLE,
    errno.ETIMEDOUT: ErrorCategory.CONNECT_TIMEOUT,
}

_TIMEOUT_CATEGORIES = (ErrorCategory.CONNECT_TIMEOUT, ErrorCategory.REQUEST_TIMEOUT)


class TooManyRedirectsError(Exception):
    """Raised when a request exceeds the configured redirect limit."""

    def __init__(self, max_redirects: int) -> None:
        super().__init__(f"Maximum number of redirects exceeded ({max_redirects})")
        self.max_redirects = max_redirects


def _unwrap(exc: BaseException) -> BaseException | str:
    """Return the underlying cause of a urllib URLError."""
    # HTTPError is a response, not a transport failure, and has no socket cause.
    while isinstance(exc, urllib.error.URLError) and not isinstance(exc, urllib.error.HTTPError):
        reason = exc.reason
        if isinstance(reason, BaseException):
            exc = reason
        else:
            return str(reason) if reason else ""
    return exc


def categorize(exc: BaseException, in_request: bool = True) -> ErrorCategory:
    """Map an exception to an error category.

    Args:
        exc: The exception raised by a network operation.
        in_request: True when raised by the HTTP exchange, False when raised
            while opening a raw connection. Only changes how timeouts are
            categorized.

    Returns:
        The matching ErrorCategory, UNKNOWN when nothing matches.

    Within the HTTP exchange, urllib wraps connect and send failures in a
    URLError, while a stalled response read surfaces as a bare TimeoutError.
    """
    # HTTPError is itself a URLError subclass but carries a response.
    wrapped = isinstance(exc, urllib.error.URLError) and not isinstance(exc, urllib.error.HTTPError)
    cause = _unwrap(exc)

    if isinstance(cause, str):
        return ErrorCategory.UNKNOWN

    if isinstance(cause, TooManyRedirectsError):
        return ErrorCategory.TOO_MANY_REDIRECTS

    if isinstance(cause, socket.gaierror):
        return ErrorCategory.DNS_FAILURE

    if isinstance(cause, ssl.SSLCertVerificationError):
        verify_code = getattr(cause, "verify_code", None)
        if verify_code == X509_V_ERR_CERT_HAS_EXPIRED:
            return ErrorCategory.CERT_EXPIRED
        if verify_code in (X509_V_ERR_DEPTH_ZERO_SELF_SIGNED_CERT, X509_V_ERR_SELF_SIGNED_CERT_IN_CHAIN):
            return ErrorCategory.SELF_SIGNED
        return ErrorCategory.CERT_UNVERIFIABLE

    if isinstance(cause, ssl.SSLError):
        return ErrorCategory.TLS_PROTOCOL

    if isinstance(cause, TimeoutError):
        if wrapped or not in_request:
            return ErrorCategory.CONNECT_TIMEOUT
        return ErrorCategory.REQUEST_TIMEOUT

    # RemoteDisconnected subclasses ConnectionResetError: the request went out
    # but the server closed without a status line.
    if isinstance(cause, http.client.RemoteDisconnected):
        return ErrorCategory.NO_RESPONSE

    if isinstance(cause, OSError) and cause.errno in _ERRNO_CATEGORIES:
        return _ERRNO_CATEGORIES[cause.errno]

    if isinstance(cause, ConnectionRefusedError):
        return ErrorCategory.CONNECTION_REFUSED
    if isinstance(cause, (ConnectionResetError, ConnectionAbortedError, BrokenPipeError)):
        return ErrorCategory.CONNECTION_RESET

    if isinstance(cause, http.client.HTTPException):
        return ErrorCategory.NO_RESPONSE

    return ErrorCategory.UNKNOWN


def describe(category: ErrorCategory, detail: str | None = None, timeout: float | None = None) -> str:
    """Return the user-facing message for a category.

    Args:
        category: The error category.
        detail: Raw underlying message, used only for UNKNOWN.
        timeout: Timeout in seconds, appended to timeout messages when known.
    """
    if category is ErrorCategory.UNKNOWN and detail:
        return detail

    message = CATEGORY_MESSAGES[category]
    if category in _TIMEOUT_CATEGORIES and timeout is not None:
        message = f"{message} ({timeout:g}s)"
    return message


def normalize(exc: BaseException, in_request: bool = True, timeout: float | None = None) -> str:
    """Normalize an exception into a stable, human-readable message."""
    category = categorize(exc, in_request=in_request)
    cause = _unwrap(exc)
    detail = cause if isinstance(cause, str) else str(cause)
    return describe(category, detail=detail, timeout=timeout)
