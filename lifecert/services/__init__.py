"""Services module for certificate issuance."""

from lifecert.services.certificate import (
    CertificateNotIssuable,
    certificate_filename,
    export_certificate,
    issue_certificate,
)

__all__ = [
    "CertificateNotIssuable",
    "certificate_filename",
    "export_certificate",
    "issue_certificate",
]
