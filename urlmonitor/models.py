"""Data models for probe results, certificate reports and monitored targets.

All records are frozen dataclasses. ``to_dict``/``from_dict`` map them to the
camelCase JSON documents exchanged with the persistence layer and the CLI.
"""

from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any


class SecurityLevel(str, Enum):
    """Coarse strength bucket derived from the negotiated cipher key size."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNKNOWN = "unknown"

    @classmethod
    def from_bits(cls, bits: int | None) -> "SecurityLevel":
        if not bits or bits <= 0:
            return cls.UNKNOWN
        if bits >= 256:
            return cls.HIGH
        if bits >= 128:
            return cls.MEDIUM
        return cls.LOW


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class CipherInfo:
    """Negotiated TLS cipher.

    Attributes:
        name: OpenSSL cipher suite name (e.g., "TLS_AES_256_GCM_SHA384").
        protocol_version: TLS protocol version (e.g., "TLSv1.3").
        bits: Secret key size in bits.
    """

    name: str
    protocol_version: str | None
    bits: int | None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "protocolVersion": self.protocol_version, "keyBits": self.bits}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CipherInfo":
        return cls(
            name=str(data.get("name", "")),
            protocol_version=data.get("protocolVersion"),
            bits=data.get("keyBits"),
        )


@dataclass(frozen=True)
class CertificateReport:
    """Health verdict for the certificate presented by an HTTPS endpoint.

    Attributes:
        has_certificate: Whether the peer presented a certificate.
        is_valid: Whether now falls within [valid_from, valid_to].
        is_expired: Whether valid_to is in the past.
        is_not_yet_valid: Whether valid_from is in the future.
        days_until_expiry: Whole days until valid_to (negative once expired).
        valid_from: Start of the validity window (UTC).
        valid_to: End of the validity window (UTC).
        issuer: Issuer common name, else organization, else "Inconnu".
        subject: Subject common name, else organization, else "Inconnu".
        signature_algorithm: Signature algorithm name (e.g., "sha256WithRSAEncryption").
        fingerprint: SHA-1 fingerprint as colon-separated upper-case hex.
        serial_number: Serial number as upper-case hex.
        version: X.509 version number (3 for v3 certificates).
        cipher: Negotiated cipher, or None if unavailable.
        security_level: Bucket derived from the cipher key size.
        subject_alt_names: Raw SAN string (e.g., "DNS:example.com, DNS:www.example.com").
        warning: Set when the certificate expires within the warning window.
        error: Set when the certificate is unusable or could not be inspected.
    """

    has_certificate: bool
    is_valid: bool = False
    is_expired: bool = False
    is_not_yet_valid: bool = False
    days_until_expiry: int | None = None
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    issuer: str | None = None
    subject: str | None = None
    signature_algorithm: str | None = None
    fingerprint: str | None = None
    serial_number: str | None = None
    version: int | None = None
    cipher: CipherInfo | None = None
    security_level: SecurityLevel = SecurityLevel.UNKNOWN
    subject_alt_names: str | None = None
    warning: str | None = None
    error: str | None = None

    @classmethod
    def failure(cls, error: str, has_certificate: bool = False) -> "CertificateReport":
        """Build a report for an inspection that could not complete."""
        return cls(has_certificate=has_certificate, error=error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasCertificatePresented": self.has_certificate,
            "isCurrentlyValid": self.is_valid,
            "isExpired": self.is_expired,
            "isNotYetValid": self.is_not_yet_valid,
            "daysUntilExpiry": self.days_until_expiry,
            "validFrom": _iso(self.valid_from),
            "validTo": _iso(self.valid_to),
            "issuerCommonName": self.issuer,
            "subjectCommonName": self.subject,
            "signatureAlgorithm": self.signature_algorithm,
            "fingerprint": self.fingerprint,
            "serialNumber": self.serial_number,
            "certVersion": self.version,
            "cipher": self.cipher.to_dict() if self.cipher else None,
            "securityLevel": self.security_level.value,
            "subjectAlternativeNames": self.subject_alt_names,
            "warning": self.warning,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CertificateReport":
        cipher = data.get("cipher")
        return cls(
            has_certificate=bool(data.get("hasCertificatePresented", False)),
            is_valid=bool(data.get("isCurrentlyValid", False)),
            is_expired=bool(data.get("isExpired", False)),
            is_not_yet_valid=bool(data.get("isNotYetValid", False)),
            days_until_expiry=data.get("daysUntilExpiry"),
            valid_from=_parse_iso(data.get("validFrom")),
            valid_to=_parse_iso(data.get("validTo")),
            issuer=data.get("issuerCommonName"),
            subject=data.get("subjectCommonName"),
            signature_algorithm=data.get("signatureAlgorithm"),
            fingerprint=data.get("fingerprint"),
            serial_number=data.get("serialNumber"),
            version=data.get("certVersion"),
            cipher=CipherInfo.from_dict(cipher) if cipher else None,
            security_level=SecurityLevel(data.get("securityLevel", SecurityLevel.UNKNOWN.value)),
            subject_alt_names=data.get("subjectAlternativeNames"),
            warning=data.get("warning"),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class ProbeResult:
    """Result of a single URL probe.

    Attributes:
        url: URL that was probed, as given by the caller.
        status: HTTP status code, or 0 if no HTTP response was obtained.
        title: Page title, hostname fallback, or a sentinel.
        response_time_ms: Duration of the HTTP exchange in milliseconds.
        timestamp: When the probe completed (UTC).
        success: Whether the target answered with a non-error status.
        error: Error description if the probe failed, None otherwise.
        ssl: Certificate report for HTTPS targets, None otherwise.
    """

    url: str
    status: int
    title: str
    response_time_ms: int
    timestamp: datetime
    success: bool
    error: str | None = None
    ssl: CertificateReport | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "status": self.status,
            "title": self.title,
            "responseTime": self.response_time_ms,
            "timestamp": _iso(self.timestamp),
            "success": self.success,
            "error": self.error,
            "ssl": self.ssl.to_dict() if self.ssl else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProbeResult":
        ssl_data = data.get("ssl")
        return cls(
            url=str(data["url"]),
            status=int(data.get("status", 0)),
            title=str(data.get("title", "")),
            response_time_ms=int(data.get("responseTime", 0)),
            timestamp=_parse_iso(data.get("timestamp")) or datetime.now(UTC),
            success=bool(data.get("success", False)),
            error=data.get("error"),
            ssl=CertificateReport.from_dict(ssl_data) if ssl_data else None,
        )


@dataclass(frozen=True)
class Target:
    """A monitored URL with its last-check summary.

    Attributes:
        id: Creation timestamp in milliseconds, used as a stable identifier.
        url: URL being monitored.
        added_at: When the target was added (UTC).
        status: Most recent HTTP status code (0 for transport failures), None if never checked.
        title: Most recent page title.
        response_time_ms: Most recent response time in milliseconds.
        last_check: Timestamp of the most recent check.
        error: Most recent error message, cleared by a successful check.
        check_count: Number of checks performed.
        error_count: Number of failed checks.
        ssl: Most recent certificate report for HTTPS targets.
    """

    id: int
    url: str
    added_at: datetime
    status: int | None = None
    title: str | None = None
    response_time_ms: int | None = None
    last_check: datetime | None = None
    error: str | None = None
    check_count: int = 0
    error_count: int = 0
    ssl: CertificateReport | None = None

    @classmethod
    def new(cls, url: str, now: datetime | None = None) -> "Target":
        """Create a never-checked target for a URL."""
        now = now or datetime.now(UTC)
        return cls(id=int(now.timestamp() * 1000), url=url, added_at=now)

    def with_result(self, result: ProbeResult) -> "Target":
        """Return a copy of this target updated with a probe result."""
        return replace(
            self,
            status=result.status,
            title=result.title,
            response_time_ms=result.response_time_ms,
            last_check=result.timestamp,
            error=None if result.success else result.error,
            check_count=self.check_count + 1,
            error_count=self.error_count if result.success else self.error_count + 1,
            ssl=result.ssl,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "status": self.status,
            "title": self.title,
            "responseTime": self.response_time_ms,
            "lastCheck": _iso(self.last_check),
            "error": self.error,
            "addedAt": _iso(self.added_at),
            "checkCount": self.check_count,
            "errorCount": self.error_count,
            "ssl": self.ssl.to_dict() if self.ssl else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Target":
        ssl_data = data.get("ssl")
        added_at = _parse_iso(data.get("addedAt")) or datetime.now(UTC)
        return cls(
            id=int(data.get("id") or added_at.timestamp() * 1000),
            url=str(data["url"]),
            added_at=added_at,
            status=data.get("status"),
            title=data.get("title"),
            response_time_ms=data.get("responseTime"),
            last_check=_parse_iso(data.get("lastCheck")),
            error=data.get("error"),
            check_count=int(data.get("checkCount") or 0),
            error_count=int(data.get("errorCount") or 0),
            ssl=CertificateReport.from_dict(ssl_data) if ssl_data else None,
        )


# Window for TargetStats.recent_checks.
RECENT_CHECK_WINDOW = timedelta(hours=1)


@dataclass(frozen=True)
class TargetStats:
    """Aggregate view over the monitored targets.

    Attributes:
        total: Number of targets.
        active: Targets whose last status was 2xx.
        failing: Targets with an error or a last status of 400 or above.
        unchecked: Targets never checked.
        recent_checks: Targets checked within RECENT_CHECK_WINDOW.
        avg_response_time_ms: Mean of the last response times, 0.0 when none.
    """

    total: int
    active: int
    failing: int
    unchecked: int
    recent_checks: int
    avg_response_time_ms: float


def summarize_targets(targets: list[Target], now: datetime | None = None) -> TargetStats:
    """Compute aggregate statistics over a target list."""
    now = now or datetime.now(UTC)
    response_times = [t.response_time_ms for t in targets if t.response_time_ms]
    return TargetStats(
        total=len(targets),
        active=sum(1 for t in targets if t.status and 200 <= t.status < 300),
        failing=sum(1 for t in targets if t.error or (t.status and t.status >= 400)),
        unchecked=sum(1 for t in targets if t.check_count == 0),
        recent_checks=sum(1 for t in targets if t.last_check and now - t.last_check < RECENT_CHECK_WINDOW),
        avg_response_time_ms=sum(response_times) / len(response_times) if response_times else 0.0,
    )
