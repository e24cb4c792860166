"""
tests/test_verification.py: document upload and the admin review queue
"""
import pytest
from fastapi import HTTPException

from app.core.config import Settings, get_settings
from app.main import app
from app.schemas.verification_schema import ReviewAction
from app.services.verification_service import (
    MAX_DOCUMENT_SIZE,
    VerificationDocument,
    VerificationStatus,
    review_verification,
    submit_verification,
    validate_documents,
)

PROFILE_ID = "11111111-1111-1111-1111-111111111111"
URL = "/api/v1/verification"
ADMIN_URL = "/api/v1/admin/verifications"

PDF = ("license.pdf", b"%PDF-1.4 registration certificate", "application/pdf")
PNG = ("id-card.png", b"\x89PNG\r\n\x1a\n", "image/png")


def _files(*documents):
    return [("documents", document) for document in documents]


def _jane(fake_db):
    return fake_db.rows("profiles")[0]


def _pending(fake_db):
    _jane(fake_db)["verification_status"] = "pending"
    fake_db.tables["verification_documents"] = [
        {"id": "doc-1", "profile_id": PROFILE_ID, "document_url": f"{PROFILE_ID}/1-0.pdf", "uploaded_at": "2026-01-01T10:00:00+00:00"},
        {"id": "doc-2", "profile_id": PROFILE_ID, "document_url": f"{PROFILE_ID}/1-1.png", "uploaded_at": "2026-01-01T10:00:01+00:00"},
    ]


# --- Validation ---

def test_validate_documents_rules():
    cases = [
        ([], "At least one document is required"),
        ([VerificationDocument("a.pdf", "application/pdf", b"x")] * 4, "Maximum 3 documents allowed"),
        (
            [VerificationDocument("notes.txt", "text/plain", b"x")],
            "Invalid file type: notes.txt. Only JPG, PNG, WebP, and PDF are allowed.",
        ),
        (
            [VerificationDocument("scan.jpg", "image/jpeg", b"x" * (MAX_DOCUMENT_SIZE + 1))],
            "File too large: scan.jpg. Maximum size is 5MB.",
        ),
    ]
    for documents, message in cases:
        with pytest.raises(HTTPException) as exc:
            validate_documents(documents)
        assert exc.value.status_code == 400
        assert exc.value.detail == message


def test_validate_documents_accepts_limit():
    documents = [
        VerificationDocument("a.webp", "image/webp", b"x" * MAX_DOCUMENT_SIZE),
        VerificationDocument("b.jpg", "image/jpeg", b"x"),
        VerificationDocument("c.pdf", "application/pdf", b"x"),
    ]

    assert validate_documents(documents) is None


def test_submit_names_files_by_profile_and_time(fake_db):
    documents = [VerificationDocument("License.PDF", "application/pdf", b"x"), VerificationDocument("scan", "image/png", b"y")]

    count = submit_verification(fake_db, _jane(fake_db), documents, clock=lambda: 1700000000.5)

    assert count == 2
    assert [path for _, path, _ in fake_db.uploads] == [
        f"{PROFILE_ID}/1700000000500-0.pdf",
        f"{PROFILE_ID}/1700000000500-1.bin",
    ]


# --- Doctor side ---

def test_submit_documents(auth_client, fake_db):
    response = auth_client.post(URL, files=_files(PDF, PNG))

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Documents uploaded successfully. Your verification is now under review.",
        "documentsUploaded": 2,
    }

    assert [(bucket, options["content-type"]) for bucket, _, options in fake_db.uploads] == [
        ("verification-docs", "application/pdf"),
        ("verification-docs", "image/png"),
    ]
    rows = fake_db.rows("verification_documents")
    assert [row["profile_id"] for row in rows] == [PROFILE_ID, PROFILE_ID]
    assert rows[0]["document_url"].startswith(f"{PROFILE_ID}/")
    assert rows[0]["document_url"].endswith(".pdf")
    assert _jane(fake_db)["verification_status"] == "pending"


def test_submit_rejects_bad_file_type(auth_client, fake_db):
    response = auth_client.post(URL, files=_files(("notes.txt", b"hello", "text/plain")))

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid file type: notes.txt. Only JPG, PNG, WebP, and PDF are allowed."}
    assert fake_db.uploads == []


def test_submit_rejects_too_many_files(auth_client, fake_db):
    response = auth_client.post(URL, files=_files(PDF, PNG, PDF, PNG))

    assert response.status_code == 400
    assert response.json() == {"error": "Maximum 3 documents allowed"}
    assert fake_db.uploads == []


def test_submit_when_already_pending(auth_client, fake_db):
    _jane(fake_db)["verification_status"] = "pending"

    response = auth_client.post(URL, files=_files(PDF))

    assert response.status_code == 400
    assert response.json() == {"error": "Verification is already pending"}


def test_submit_when_already_verified(auth_client, fake_db):
    _jane(fake_db)["is_verified"] = True

    response = auth_client.post(URL, files=_files(PDF))

    assert response.status_code == 400
    assert response.json() == {"error": "Profile is already verified"}


def test_resubmit_after_rejection(auth_client, fake_db):
    _jane(fake_db)["verification_status"] = "rejected"

    response = auth_client.post(URL, files=_files(PNG))

    assert response.status_code == 200
    assert _jane(fake_db)["verification_status"] == "pending"


def test_submit_upload_failure(auth_client, fake_db):
    fake_db.failures[("storage", "upload")] = RuntimeError("bucket unavailable")

    response = auth_client.post(URL, files=_files(PDF))

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to upload license.pdf"}
    assert fake_db.rows("verification_documents") == []
    assert _jane(fake_db).get("verification_status") is None


def test_get_verification_status(auth_client, fake_db):
    _pending(fake_db)

    response = auth_client.get(URL)

    assert response.status_code == 200
    data = response.json()
    assert data["verificationStatus"] == "pending"
    assert data["isVerified"] is False
    assert [doc["id"] for doc in data["documents"]] == ["doc-2", "doc-1"]


# --- Admin side ---

def test_review_queue_needs_admin(auth_client, fake_db):
    app.dependency_overrides[get_settings] = lambda: Settings(ADMIN_EMAILS="admin@verified.doctor")

    response = auth_client.get(ADMIN_URL)

    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden"}


def test_admin_emails_are_case_insensitive():
    settings = Settings(ADMIN_EMAILS=" Admin@Verified.Doctor , ops@verified.doctor,")

    assert settings.admin_emails == {"admin@verified.doctor", "ops@verified.doctor"}


def test_list_pending_verifications(admin_client, fake_db, other_profile):
    _pending(fake_db)

    response = admin_client.get(ADMIN_URL)

    assert response.status_code == 200
    verifications = response.json()["verifications"]
    assert [v["handle"] for v in verifications] == ["dr-jane"]
    assert {doc["id"] for doc in verifications[0]["documents"]} == {"doc-1", "doc-2"}


def test_approve_verification(admin_client, fake_db):
    _pending(fake_db)

    response = admin_client.patch(f"{ADMIN_URL}/{PROFILE_ID}", json={"action": "approve"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "status": "approved"}
    assert _jane(fake_db)["is_verified"] is True
    assert _jane(fake_db)["verification_status"] == "approved"
    assert len(fake_db.rows("verification_documents")) == 2

    audit = fake_db.rows("admin_audit_logs")[0]
    assert audit["action"] == "verification_approved"
    assert audit["target_id"] == PROFILE_ID
    assert audit["details"]["admin"] == "admin@verified.doctor"


def test_reject_verification_deletes_documents(admin_client, fake_db):
    _pending(fake_db)

    response = admin_client.patch(f"{ADMIN_URL}/{PROFILE_ID}", json={"action": "reject"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "status": "rejected"}
    assert _jane(fake_db)["is_verified"] is False
    assert _jane(fake_db)["verification_status"] == "rejected"
    assert fake_db.rows("verification_documents") == []
    assert sorted(fake_db.removed) == [
        ("verification-docs", f"{PROFILE_ID}/1-0.pdf"),
        ("verification-docs", f"{PROFILE_ID}/1-1.png"),
    ]
    assert fake_db.rows("admin_audit_logs")[0]["action"] == "verification_rejected"


def test_review_requires_pending(admin_client, fake_db):
    _jane(fake_db)["verification_status"] = "approved"

    response = admin_client.patch(f"{ADMIN_URL}/{PROFILE_ID}", json={"action": "reject"})

    assert response.status_code == 409
    assert response.json() == {"error": "Verification is not pending"}
    assert _jane(fake_db)["verification_status"] == "approved"


def test_review_unknown_profile(admin_client):
    response = admin_client.patch(f"{ADMIN_URL}/33333333-3333-3333-3333-333333333333", json={"action": "approve"})

    assert response.status_code == 404
    assert response.json() == {"error": "Profile not found"}


def test_review_survives_audit_failure(fake_db):
    _pending(fake_db)
    fake_db.failures[("admin_audit_logs", "insert")] = RuntimeError("audit down")

    status = review_verification(fake_db, PROFILE_ID, ReviewAction.APPROVE, "admin@verified.doctor")

    assert status is VerificationStatus.APPROVED
    assert _jane(fake_db)["is_verified"] is True
