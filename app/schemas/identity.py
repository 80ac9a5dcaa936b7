from pydantic import BaseModel, Field
from typing import Optional


class IdentityCheckRequest(BaseModel):
    cedula: str = Field(..., pattern=r"^\d{6,15}$", description="Cédula del adulto responsable")


class MaskedProfile(BaseModel):
    cedula: str
    emailMasked: Optional[str] = None


class IdentityCheckResponse(BaseModel):
    exists: bool
    profile: Optional[MaskedProfile] = None
