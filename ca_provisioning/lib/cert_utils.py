"""Certificate inspection helpers for generated PKI material."""

from datetime import UTC, datetime
from pathlib import Path

from cryptography import x509

from .models import CertificateSummary


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes."""
    return x509.load_pem_x509_certificate(pem_data)


def load_certificate(path: Path) -> x509.Certificate:
    """Load a PEM certificate from disk.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a PEM certificate
    """
    return deserialize_certificate(path.read_bytes())


def get_certificate_serial_hex(cert: x509.Certificate) -> str:
    """Return certificate serial number as hex with colons (e.g., 3A:F2:B1:...)."""
    serial_hex = f"{cert.serial_number:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return ":".join(serial_hex[i : i + 2] for i in range(0, len(serial_hex), 2))


def get_common_name(cert: x509.Certificate) -> str:
    attributes = cert.subject.get_attributes_for_oid(x509.NameOID.COMMON_NAME)
    if not attributes:
        return ""
    cn = attributes[0].value
    if not isinstance(cn, str):
        raise ValueError("CN must be string")
    return cn


def summarize_certificate(path: Path) -> CertificateSummary:
    """Extract CN, serial and validity window from a certificate file."""
    cert = load_certificate(path)
    return CertificateSummary(
        path=path,
        common_name=get_common_name(cert),
        serial_number=get_certificate_serial_hex(cert),
        not_before=cert.not_valid_before_utc.isoformat(),
        not_after=cert.not_valid_after_utc.isoformat(),
    )


def is_certificate_current(path: Path, now: datetime | None = None) -> bool:
    """Return True if path holds a parseable certificate inside its validity window."""
    try:
        cert = load_certificate(path)
    except (OSError, ValueError):
        return False
    now = now or datetime.now(UTC)
    return cert.not_valid_before_utc <= now < cert.not_valid_after_utc
