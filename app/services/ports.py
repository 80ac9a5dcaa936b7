"""Capability interfaces the kiosk services depend on."""

from datetime import datetime
from typing import Optional, Protocol

from ..models.consent import Consent
from ..models.otp import OTPRecord
from ..models.visitor import Visitor


class IdentityStore(Protocol):
    def get(self, cedula: str) -> Optional[Visitor]: ...

    def upsert(self, cedula: str, fields: dict, minors: list) -> Visitor: ...


class OtpStore(Protocol):
    def get(self, email: str) -> Optional[OTPRecord]: ...

    def find_by_cedula(self, cedula: str) -> Optional[OTPRecord]: ...

    def put(self, email: str, code: str, expires_at: datetime, cedula: Optional[str] = None) -> OTPRecord: ...

    def delete(self, email: str) -> None: ...


class ConsentStore(Protocol):
    def allocate_consecutivo(self) -> int: ...

    def create(self, consent: Consent) -> Consent: ...

    def latest_for_user(self, user_id: str) -> Optional[Consent]: ...


class BlobStore(Protocol):
    def save(self, path: str, data: bytes, content_type: str = "image/png") -> str: ...


class Notifier(Protocol):
    async def send_otp(self, to_email: str, otp_code: str) -> None: ...

    async def send_consent(self, to_email: str, full_name: str, consecutivo: int, pdf_bytes: bytes) -> None: ...


class PdfRenderer(Protocol):
    def render(self, consent: Consent, signature_png: bytes) -> bytes: ...
