from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse
from ..dependencies import admin_required, get_blob_store, get_consent_store
from ..services.blob_store import LocalBlobStore
from ..services.consent_service import consent_summary
from ..services.stores import SqlConsentStore

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(admin_required)])


@router.get("/consents/verify")
def verify_consent(
    cedula: str = Query(..., pattern=r"^\d{6,15}$"),
    consents: SqlConsentStore = Depends(get_consent_store),
):
    """Latest consent signed by this cédula and whether it is still within its validity window."""
    consent = consents.latest_for_user(cedula)
    if consent is None:
        return {"found": False, "message": "No se encontró ningún consentimiento para esta cédula"}
    summary = consent_summary(consent)
    return {"found": True, "isExpired": summary["isExpired"], "consent": summary}


@router.get("/files/{path:path}")
def get_file(path: str, blobs: LocalBlobStore = Depends(get_blob_store)):
    """Stored signature image."""
    return FileResponse(blobs.open(path), media_type="image/png")
