from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional

CEDULA_PATTERN = r"^\d{6,15}$"


class OtpIssueRequest(BaseModel):
    """Either a known cédula or an email (or both, for a new visitor)."""
    cedula: Optional[str] = Field(None, pattern=CEDULA_PATTERN)
    email: Optional[EmailStr] = None

    @model_validator(mode="after")
    def _require_identity(self):
        if not self.cedula and not self.email:
            raise ValueError("Debes enviar cédula o correo")
        return self


class OtpIssueResponse(BaseModel):
    message: str
    expiresInMinutes: int


class OtpValidateRequest(OtpIssueRequest):
    code: str = Field(..., pattern=r"^\d+$", min_length=4, max_length=12)
