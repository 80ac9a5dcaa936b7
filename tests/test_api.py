"""
HTTP contract tests for the kiosk endpoints and the operator endpoints.
"""

from datetime import timedelta

from app.core.email import mask_email
from app.core.security import get_password_hash
from app.models.admin_user import AdminUser
from app.models.consent import Consent
from app.models.otp import OTPRecord
from app.models.visitor import Visitor


# ============================================================================
# Identity check
# ============================================================================

def test_mask_email():
    assert mask_email("juan.perez@gmail.com") == "ju********@g***.com"
    assert mask_email("a@b.com") == "a***@b***.com"
    assert mask_email("broken") == "***@***.***"


def test_identity_check_unknown(client):
    response = client.post("/identity/check", json={"cedula": "1234567890"})

    assert response.status_code == 200
    assert response.json() == {"exists": False}


def test_identity_check_known_masks_email(client, db_session):
    db_session.add(Visitor(cedula="99887766", full_name="Carlos Ruiz", email="carlos.ruiz@gmail.com"))
    db_session.commit()

    response = client.post("/identity/check", json={"cedula": "99887766"})

    assert response.json() == {
        "exists": True,
        "profile": {"cedula": "99887766", "emailMasked": "ca*********@g***.com"},
    }


def test_identity_check_rejects_malformed_cedula(client):
    response = client.post("/identity/check", json={"cedula": "12ab"})

    assert response.status_code == 400
    assert response.json()["success"] is False


# ============================================================================
# OTP endpoints
# ============================================================================

def test_issue_requires_identity(client):
    response = client.post("/otp/issue", json={})

    assert response.status_code == 400
    assert "error" in response.json()


def test_issue_unknown_cedula_is_404(client):
    response = client.post("/otp/issue", json={"cedula": "11111111"})

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_issue_known_cedula_without_email_is_404(client, db_session):
    db_session.add(Visitor(cedula="55555555", full_name="Sin Correo"))
    db_session.commit()

    response = client.post("/otp/issue", json={"cedula": "55555555"})

    assert response.status_code == 404
    assert response.json()["code"] == "MISSING_CONTACT"


def test_issue_delivery_failure_is_500(client, notifier, db_session):
    notifier.fail_otp = True

    response = client.post("/otp/issue", json={"email": "a@b.com"})

    assert response.status_code == 500
    assert response.json()["code"] == "DELIVERY_FAILED"
    assert db_session.get(OTPRecord, "a@b.com") is not None


def test_validate_malformed_is_400(client):
    response = client.post("/otp/validate", json={"email": "a@b.com", "code": "abc"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_validate_without_active_code_is_404(client):
    response = client.post("/otp/validate", json={"email": "a@b.com", "code": "123456"})

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Código no solicitado", "code": "NOT_FOUND"}


def test_validate_expired_code(client, notifier, db_session):
    client.post("/otp/issue", json={"email": "a@b.com"})
    record = db_session.get(OTPRecord, "a@b.com")
    record.expires_at = record.expires_at - timedelta(minutes=11)
    db_session.commit()

    response = client.post("/otp/validate", json={"email": "a@b.com", "code": notifier.last_code("a@b.com")})

    assert response.status_code == 404
    assert response.json()["code"] == "EXPIRED"
    db_session.expire_all()
    assert db_session.get(OTPRecord, "a@b.com") is None


# ============================================================================
# End-to-end kiosk session
# ============================================================================

def test_new_visitor_full_session(client, notifier, db_session, consent_payload):
    cedula = "1234567890"

    assert client.post("/identity/check", json={"cedula": cedula}).json() == {"exists": False}

    issued = client.post("/otp/issue", json={"cedula": cedula, "email": "a@b.com"})
    assert issued.status_code == 202
    assert issued.json()["message"] == "OTP enviado"
    code = notifier.last_code("a@b.com")

    wrong = "000000" if code != "000000" else "111111"
    rejected = client.post("/otp/validate", json={"cedula": cedula, "code": wrong})
    assert rejected.status_code == 404
    assert rejected.json()["code"] == "INCORRECT_CODE"

    accepted = client.post("/otp/validate", json={"cedula": cedula, "code": code})
    assert accepted.status_code == 200
    assert accepted.json() == {"success": True}

    consent_payload["responsibleAdult"]["email"] = "a@b.com"
    submitted = client.post(
        "/consent",
        json=consent_payload,
        headers={"X-Forwarded-For": "190.24.1.5, 10.0.0.1"},
    )
    assert submitted.status_code == 200
    body = submitted.json()
    assert body["success"] is True
    assert body["consecutivo"] == 1001
    assert body["emailSent"] is True

    consent = db_session.get(Consent, body["consentId"])
    assert consent.valid_until == consent.signed_at + timedelta(days=365)
    assert consent.ip_address == "190.24.1.5"
    assert consent.minors_snapshot[0]["birthDate"] == "2015-05-01"

    # Real PDF attached to the consent email
    to_email, _, consecutivo, pdf_bytes = notifier.consents[0]
    assert to_email == "a@b.com"
    assert consecutivo == 1001
    assert pdf_bytes.startswith(b"%PDF")


def test_returning_visitor_gets_profile_after_validation(client, notifier, db_session):
    db_session.add(
        Visitor(cedula="99887766", full_name="Carlos Ruiz", email="carlos.ruiz@gmail.com", phone="3109876543")
    )
    db_session.commit()

    assert client.post("/otp/issue", json={"cedula": "99887766"}).status_code == 202
    code = notifier.last_code("carlos.ruiz@gmail.com")

    response = client.post("/otp/validate", json={"cedula": "99887766", "code": code})

    assert response.status_code == 200
    profile = response.json()["profile"]
    assert profile["fullName"] == "Carlos Ruiz"
    assert profile["email"] == "carlos.ruiz@gmail.com"


def test_consent_notification_failure_is_swallowed(client, notifier, db_session, consent_payload):
    notifier.fail_consent = True

    response = client.post("/consent", json=consent_payload)

    assert response.status_code == 200
    assert response.json()["emailSent"] is False
    assert db_session.get(Consent, response.json()["consentId"]) is not None


def test_consent_without_policy_is_400_and_writes_nothing(client, db_session, blobs, consent_payload):
    consent_payload["acceptedPolicy"] = False

    response = client.post("/consent", json=consent_payload)

    assert response.status_code == 400
    assert db_session.query(Consent).count() == 0
    assert db_session.query(Visitor).count() == 0
    assert not blobs.root.exists() or not any(blobs.root.rglob("*.png"))


def test_consent_with_bad_relationship_is_400(client, consent_payload):
    consent_payload["minors"][0]["relationship"] = "vecino"

    response = client.post("/consent", json=consent_payload)

    assert response.status_code == 400


# ============================================================================
# Operator endpoints
# ============================================================================

def _admin_headers(client, db_session):
    db_session.add(AdminUser(username="operador", password_hash=get_password_hash("S3guro!2026")))
    db_session.commit()
    token = client.post("/auth/login", json={"username": "operador", "password": "S3guro!2026"}).json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


def test_login_rejects_bad_password(client, db_session):
    db_session.add(AdminUser(username="operador", password_hash=get_password_hash("S3guro!2026")))
    db_session.commit()

    response = client.post("/auth/login", json={"username": "operador", "password": "nope"})

    assert response.status_code == 401


def test_admin_endpoints_require_token(client):
    response = client.get("/admin/consents/verify", params={"cedula": "1234567890"})

    assert response.status_code in (401, 403)


def test_admin_verify_consent(client, db_session, consent_payload):
    headers = _admin_headers(client, db_session)

    missing = client.get("/admin/consents/verify", params={"cedula": "1234567890"}, headers=headers)
    assert missing.json()["found"] is False

    consent_id = client.post("/consent", json=consent_payload).json()["consentId"]

    found = client.get("/admin/consents/verify", params={"cedula": "1234567890"}, headers=headers).json()
    assert found["found"] is True
    assert found["isExpired"] is False
    assert found["consent"]["id"] == consent_id
    assert found["consent"]["minorsSnapshot"][0]["fullName"] == "Sofia Gomez"

    signature_url = found["consent"]["signatureUrl"]
    image = client.get(signature_url, headers=headers)
    assert image.status_code == 200
    assert image.content.startswith(b"\x89PNG")


def test_admin_file_outside_storage_is_404(client, db_session):
    headers = _admin_headers(client, db_session)

    response = client.get("/admin/files/signatures/../../etc/passwd", headers=headers)

    assert response.status_code == 404
