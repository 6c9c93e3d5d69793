import json
from datetime import datetime, timezone

import pytest

from lifecert.models import ResultNote, VerificationResult
from lifecert.services import (
    CertificateNotIssuable,
    certificate_filename,
    export_certificate,
    issue_certificate,
)

ISSUED_AT = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


def result(success, note):
    return VerificationResult(success=success, decided_at=ISSUED_AT, note=note)


def test_issue_certificate_for_successful_result():
    certificate = issue_certificate(result(True, ResultNote.AUTO_VERIFIED), ISSUED_AT)

    assert certificate.id == "LC-1735722000000"
    assert certificate.issued_at == ISSUED_AT
    assert certificate.note == "Verified automatically"


def test_certificate_id_is_deterministic_for_instant():
    first = issue_certificate(result(True, ResultNote.CLEARED_AFTER_FOLLOW_UP), ISSUED_AT)
    second = issue_certificate(result(True, ResultNote.AUTO_VERIFIED), ISSUED_AT)
    assert first.id == second.id


@pytest.mark.parametrize("failed", [
    None,
    result(False, ResultNote.UNRESOLVED_IN_PERSON),
    result(False, ResultNote.USER_OPTED_IN_PERSON),
])
def test_no_certificate_without_success(failed):
    with pytest.raises(CertificateNotIssuable):
        issue_certificate(failed, ISSUED_AT)


def test_export_is_utf8_json_with_three_fields():
    certificate = issue_certificate(result(True, ResultNote.CLEARED_AFTER_FOLLOW_UP), ISSUED_AT)

    payload = json.loads(export_certificate(certificate).decode("utf-8"))

    assert set(payload) == {"id", "issuedAt", "note"}
    assert payload["id"] == "LC-1735722000000"
    assert payload["note"] == "Cleared after follow-up"
    issued_at = datetime.fromisoformat(payload["issuedAt"].replace("Z", "+00:00"))
    assert issued_at == ISSUED_AT


def test_certificate_filename():
    certificate = issue_certificate(result(True, ResultNote.AUTO_VERIFIED), ISSUED_AT)
    assert certificate_filename(certificate) == "LC-1735722000000.json"
