"""TLS certificate inspection for HTTPS targets.

Opens a dedicated TLS connection (separate from the HTTP request) and reports
on the certificate the server presents. Chain and hostname verification are
disabled on purpose: expired, self-signed or mismatched certificates must be
inspected and reported rather than refused at the handshake.
"""

import logging
import math
import socket
import ssl
import time
from datetime import UTC, datetime

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import NameOID, SignatureAlgorithmOID

from .errors import ErrorCategory, describe, normalize
from .models import CertificateReport, CipherInfo, SecurityLevel
from .validation import InvalidUrlError, validate_url

logger = logging.getLogger(__name__)

# Connect + handshake budget, independent of the HTTP request timeout.
DEFAULT_TLS_TIMEOUT = 10.0

# Days before expiration at which a still-valid certificate gets a warning.
DEFAULT_WARNING_DAYS = 30

UNKNOWN_NAME = "Inconnu"
NO_CERTIFICATE_MESSAGE = "Aucun certificat trouvé"
NOT_HTTPS_MESSAGE = "URL non HTTPS"

_SECONDS_PER_DAY = 86400

_SIGNATURE_ALGORITHMS: dict[x509.ObjectIdentifier, str] = {
    SignatureAlgorithmOID.RSA_WITH_SHA1: "sha1WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA224: "sha224WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA256: "sha256WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA384: "sha384WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA512: "sha512WithRSAEncryption",
    SignatureAlgorithmOID.RSASSA_PSS: "rsassaPss",
    SignatureAlgorithmOID.ECDSA_WITH_SHA1: "ecdsa-with-SHA1",
    SignatureAlgorithmOID.ECDSA_WITH_SHA224: "ecdsa-with-SHA224",
    SignatureAlgorithmOID.ECDSA_WITH_SHA256: "ecdsa-with-SHA256",
    SignatureAlgorithmOID.ECDSA_WITH_SHA384: "ecdsa-with-SHA384",
    SignatureAlgorithmOID.ECDSA_WITH_SHA512: "ecdsa-with-SHA512",
    SignatureAlgorithmOID.ED25519: "ED25519",
    SignatureAlgorithmOID.ED448: "ED448",
}

_SAN_PREFIXES: dict[type, str] = {
    x509.DNSName: "DNS",
    x509.IPAddress: "IP Address",
    x509.RFC822Name: "email",
    x509.UniformResourceIdentifier: "URI",
}


def _inspection_context() -> ssl.SSLContext:
    """TLS client context that accepts any certificate."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def _name_of(name: x509.Name) -> str:
    """Return the CN of a distinguished name, else its O, else UNKNOWN_NAME."""
    for oid in (NameOID.COMMON_NAME, NameOID.ORGANIZATION_NAME):
        attributes = name.get_attributes_for_oid(oid)
        if attributes and attributes[0].value:
            value = attributes[0].value
            return value.decode("utf-8", "replace") if isinstance(value, bytes) else str(value)
    return UNKNOWN_NAME


def _format_sans(certificate: x509.Certificate) -> str | None:
    """Format the SubjectAlternativeName extension as "DNS:a, DNS:b"."""
    try:
        extension = certificate.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return None

    entries = []
    for general_name in extension.value:
        prefix = _SAN_PREFIXES.get(type(general_name))
        if prefix is None:
            continue
        entries.append(f"{prefix}:{general_name.value}")
    return ", ".join(entries) if entries else None


def _signature_algorithm(certificate: x509.Certificate) -> str:
    oid = certificate.signature_algorithm_oid
    return _SIGNATURE_ALGORITHMS.get(oid, oid.dotted_string)


def _fingerprint(certificate: x509.Certificate) -> str:
    return ":".join(f"{byte:02X}" for byte in certificate.fingerprint(hashes.SHA1()))


def build_report(
    certificate: x509.Certificate,
    cipher: tuple[str, str, int] | None,
    now: datetime | None = None,
    warning_days: int = DEFAULT_WARNING_DAYS,
) -> CertificateReport:
    """Derive the health verdict for a parsed certificate.

    Args:
        certificate: The peer certificate.
        cipher: Negotiated cipher as returned by SSLSocket.cipher().
        now: Reference instant, defaults to the current UTC time.
        warning_days: Expiry window that triggers a warning.

    Returns:
        CertificateReport with validity, identity and cipher details.
    """
    now = now or datetime.now(UTC)
    valid_from = certificate.not_valid_before_utc
    valid_to = certificate.not_valid_after_utc

    days_until_expiry = math.floor((valid_to - now).total_seconds() / _SECONDS_PER_DAY)
    is_expired = now > valid_to
    is_not_yet_valid = not is_expired and now < valid_from
    is_valid = not is_expired and not is_not_yet_valid

    cipher_info: CipherInfo | None = None
    if cipher:
        name, protocol_version, bits = cipher
        cipher_info = CipherInfo(name=name, protocol_version=protocol_version, bits=bits)

    error: str | None = None
    warning: str | None = None
    if is_expired:
        error = f"Certificat expiré depuis {abs(days_until_expiry)} jours"
    elif is_not_yet_valid:
        error = f"Certificat pas encore valide (valide à partir du {valid_from:%d/%m/%Y})"
    elif 0 < days_until_expiry <= warning_days:
        warning = f"Certificat expire dans {days_until_expiry} jours"

    return CertificateReport(
        has_certificate=True,
        is_valid=is_valid,
        is_expired=is_expired,
        is_not_yet_valid=is_not_yet_valid,
        days_until_expiry=days_until_expiry,
        valid_from=valid_from,
        valid_to=valid_to,
        issuer=_name_of(certificate.issuer),
        subject=_name_of(certificate.subject),
        signature_algorithm=_signature_algorithm(certificate),
        fingerprint=_fingerprint(certificate),
        serial_number=format(certificate.serial_number, "X"),
        version=certificate.version.value + 1,
        cipher=cipher_info,
        security_level=SecurityLevel.from_bits(cipher_info.bits if cipher_info else None),
        subject_alt_names=_format_sans(certificate),
        warning=warning,
        error=error,
    )


def inspect_certificate(
    hostname: str,
    port: int = 443,
    timeout: float = DEFAULT_TLS_TIMEOUT,
    warning_days: int = DEFAULT_WARNING_DAYS,
) -> CertificateReport:
    """Connect to hostname:port over TLS and report on its certificate.

    Never raises: connection, handshake and parsing failures are all returned
    as a CertificateReport with ``error`` set.

    Args:
        hostname: Server name, also sent as SNI.
        port: TCP port.
        timeout: Budget in seconds for connect plus handshake.
        warning_days: Expiry window that triggers a warning.
    """
    deadline = time.monotonic() + timeout
    handshake_done = False

    try:
        with socket.create_connection((hostname, port), timeout=timeout) as sock:
            # Connect and handshake share one budget.
            sock.settimeout(max(deadline - time.monotonic(), 0.001))
            with _inspection_context().wrap_socket(sock, server_hostname=hostname) as tls_sock:
                handshake_done = True
                cert_der = tls_sock.getpeercert(binary_form=True)
                cipher = tls_sock.cipher()
    except TimeoutError:
        logger.debug("TLS inspection of %s:%d timed out after %gs", hostname, port, timeout)
        return CertificateReport.failure(
            describe(ErrorCategory.CONNECT_TIMEOUT, timeout=timeout),
            has_certificate=handshake_done,
        )
    except (OSError, ValueError) as e:
        logger.debug("TLS inspection of %s:%d failed: %s", hostname, port, e)
        return CertificateReport.failure(normalize(e, in_request=False), has_certificate=handshake_done)
    except Exception as e:
        logger.error("Unexpected TLS inspection failure for %s:%d: %s", hostname, port, e)
        return CertificateReport.failure(f"Erreur SSL: {e}", has_certificate=handshake_done)

    if not cert_der:
        return CertificateReport.failure(NO_CERTIFICATE_MESSAGE)

    try:
        certificate = x509.load_der_x509_certificate(cert_der)
        report = build_report(certificate, cipher, warning_days=warning_days)
    except Exception as e:
        logger.debug("Certificate parsing failed for %s:%d: %s", hostname, port, e)
        return CertificateReport.failure(f"Erreur d'analyse du certificat: {e}", has_certificate=True)

    if report.error:
        logger.warning("%s: %s", hostname, report.error)
    elif report.warning:
        logger.warning("%s: %s", hostname, report.warning)

    return report


def inspect_url(
    url: str,
    timeout: float = DEFAULT_TLS_TIMEOUT,
    warning_days: int = DEFAULT_WARNING_DAYS,
) -> CertificateReport:
    """Inspect the certificate of an HTTPS URL.

    Non-HTTPS and invalid URLs yield a report with ``has_certificate=False``.
    """
    try:
        target = validate_url(url)
    except InvalidUrlError as e:
        logger.debug("Certificate inspection rejected %r: %s", url, e)
        return CertificateReport.failure(describe(ErrorCategory.INVALID_URL))

    if not target.is_https:
        return CertificateReport.failure(NOT_HTTPS_MESSAGE)

    return inspect_certificate(target.hostname, target.port, timeout=timeout, warning_days=warning_days)
