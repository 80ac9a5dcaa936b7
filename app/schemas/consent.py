# Consent schemas - validación del formulario firmado en el kiosco

import base64
import binascii
import re
from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

_DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")


class Relationship(str, Enum):
    CHILD = "hijo"
    NEPHEW = "sobrino"
    GRANDCHILD = "nieto"
    OTHER = "otro"


class IdType(str, Enum):
    CC = "cc"
    TI = "ti"
    PASSPORT = "passport"
    OTHER = "otro"


class MinorIn(BaseModel):
    """
    Menor tal como llega del kiosco (o prellenado por OCR).
    Acepta fullName o firstName/lastName; el nombre canónico se calcula una sola vez.
    """
    fullName: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    birthDate: date
    relationship: Relationship
    eps: Optional[str] = None
    idType: Optional[IdType] = None
    idNumber: Optional[str] = None

    @model_validator(mode="after")
    def _normalize_name(self):
        first = (self.firstName or "").strip()
        last = (self.lastName or "").strip()
        if first or last:
            self.fullName = f"{first} {last}".strip()
        else:
            self.fullName = (self.fullName or "").strip()
        if not self.fullName:
            raise ValueError("El nombre del menor es requerido")
        return self

    def snapshot(self) -> dict:
        return self.model_dump(mode="json")


class ResponsibleAdult(BaseModel):
    fullName: str = Field(..., min_length=3, max_length=120)
    documentId: str = Field(..., pattern=r"^\d{6,15}$")
    email: EmailStr
    phone: str = Field(..., min_length=7, max_length=20)
    address: Optional[str] = Field(None, max_length=120)

    def snapshot(self) -> dict:
        return {
            "uid": self.documentId,
            "fullName": self.fullName,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
        }


class ConsentSubmission(BaseModel):
    acceptedPolicy: bool
    minors: List[MinorIn] = Field(default_factory=list)
    signature: str = Field(..., min_length=1, description="PNG en base64, con o sin prefijo data URL")
    responsibleAdult: ResponsibleAdult

    @field_validator("acceptedPolicy")
    @classmethod
    def _policy_accepted(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("Debes aceptar los términos y condiciones")
        return value

    @field_validator("signature")
    @classmethod
    def _signature_is_base64(cls, value: str) -> str:
        decode_signature(value)
        return value

    def signature_bytes(self) -> bytes:
        return decode_signature(self.signature)


def decode_signature(value: str) -> bytes:
    cleaned = _DATA_URL_PREFIX.sub("", (value or "").strip())
    try:
        data = base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("La firma no es base64 válido")
    if not data:
        raise ValueError("La firma es obligatoria")
    return data


class ConsentResponse(BaseModel):
    success: bool = True
    consentId: str
    consecutivo: int
    emailSent: bool = False
