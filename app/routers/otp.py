from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from ..core.config import settings
from ..dependencies import get_otp_issuer, get_otp_validator
from ..schemas.otp import OtpIssueRequest, OtpIssueResponse, OtpValidateRequest
from ..services.otp_service import OtpIssuer, OtpValidator

router = APIRouter(prefix="/otp", tags=["otp"])


@router.post("/issue", status_code=202, response_model=OtpIssueResponse)
async def issue_otp(payload: OtpIssueRequest, issuer: OtpIssuer = Depends(get_otp_issuer)):
    """Send a one-time code to the visitor's email (known cédula or new email)."""
    await issuer.issue(cedula=payload.cedula, email=payload.email)
    return OtpIssueResponse(message="OTP enviado", expiresInMinutes=settings.OTP_EXPIRE_MINUTES)


@router.post("/validate")
def validate_otp(payload: OtpValidateRequest, validator: OtpValidator = Depends(get_otp_validator)):
    """Check and consume the code. Returns the known profile so the kiosk can pre-fill the form."""
    result = validator.validate(payload.code, cedula=payload.cedula, email=payload.email)
    body = {"success": True}
    if result.profile is not None:
        body["profile"] = result.profile.to_profile()
    return JSONResponse(body, status_code=200)
