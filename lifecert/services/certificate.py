"""Life Certificate issuance and export.

A certificate is only ever derived from a successful verification result.
Its ID is derived from the issuance instant, so exports are reproducible
for a fixed clock.
"""

from datetime import datetime

from lifecert.models import Certificate, VerificationResult

CERTIFICATE_ID_PREFIX = "LC-"


class CertificateNotIssuable(ValueError):
    """Raised when a certificate is requested for an unsuccessful result."""


def certificate_id(issued_at: datetime) -> str:
    """
    Build the certificate ID for an issuance instant.

    Args:
        issued_at: Timezone-aware issuance timestamp

    Returns:
        ID like LC-1735689600000 (epoch milliseconds)
    """
    return f"{CERTIFICATE_ID_PREFIX}{int(issued_at.timestamp() * 1000)}"


def issue_certificate(result: VerificationResult | None, issued_at: datetime) -> Certificate:
    """
    Issue a Life Certificate for a verification result.

    Args:
        result: Current verification result of the run
        issued_at: Issuance timestamp

    Returns:
        Certificate: The issued certificate

    Raises:
        CertificateNotIssuable: If there is no result or it was unsuccessful
    """
    if result is None or not result.success:
        raise CertificateNotIssuable("Life Certificate requires a successful verification")

    return Certificate(
        id=certificate_id(issued_at),
        issued_at=issued_at,
        note=result.note.value,
    )


def export_certificate(certificate: Certificate) -> bytes:
    """Serialize a certificate as UTF-8 JSON with id, issuedAt and note."""
    return certificate.model_dump_json(by_alias=True, indent=2).encode("utf-8")


def certificate_filename(certificate: Certificate) -> str:
    return f"{certificate.id}.json"
