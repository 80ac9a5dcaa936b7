from fastapi import Depends, Request
from sqlalchemy.orm import Session
from .core.database import get_db
from .core.email import BrevoNotifier
from .core.security import get_current_admin
from .models.admin_user import AdminUser
from .services.blob_store import LocalBlobStore
from .services.consent_service import ConsentOrchestrator
from .services.identity_service import IdentityResolver
from .services.otp_service import OtpIssuer, OtpValidator
from .services.pdf_service import ConsentPdfRenderer
from .services.stores import SqlConsentStore, SqlIdentityStore, SqlOtpStore


def admin_required(admin: AdminUser = Depends(get_current_admin)):
    return True


def get_client_ip(request: Request) -> str:
    """Client IP, honouring X-Forwarded-For behind the kiosk proxy."""
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    if request.headers.get("x-real-ip"):
        return request.headers["x-real-ip"]
    return request.client.host if request.client else "unknown"


# Capabilities. Tests override these with fakes.

def get_notifier():
    return BrevoNotifier()


def get_blob_store():
    return LocalBlobStore()


def get_pdf_renderer():
    return ConsentPdfRenderer()


def get_identity_store(db: Session = Depends(get_db)):
    return SqlIdentityStore(db)


def get_otp_store(db: Session = Depends(get_db)):
    return SqlOtpStore(db)


def get_consent_store(db: Session = Depends(get_db)):
    return SqlConsentStore(db)


# Services

def get_identity_resolver(visitors=Depends(get_identity_store)):
    return IdentityResolver(visitors)


def get_otp_issuer(visitors=Depends(get_identity_store), otps=Depends(get_otp_store), notifier=Depends(get_notifier)):
    return OtpIssuer(visitors, otps, notifier)


def get_otp_validator(visitors=Depends(get_identity_store), otps=Depends(get_otp_store)):
    return OtpValidator(visitors, otps)


def get_consent_orchestrator(
    visitors=Depends(get_identity_store),
    consents=Depends(get_consent_store),
    blobs=Depends(get_blob_store),
    renderer=Depends(get_pdf_renderer),
    notifier=Depends(get_notifier),
):
    return ConsentOrchestrator(visitors, consents, blobs, renderer, notifier)
