import logging
from dataclasses import dataclass
from typing import Optional

from ..core.email import mask_email
from ..core.errors import MissingContactError, NotFoundError, ValidationError
from ..models.visitor import Visitor
from .ports import IdentityStore, OtpStore

logger = logging.getLogger(__name__)


@dataclass
class ResolvedDestination:
    """Email an OTP goes to, plus whatever identity we could attach to it."""
    email: str
    cedula: Optional[str] = None
    profile: Optional[Visitor] = None


class IdentityResolver:
    def __init__(self, visitors: IdentityStore):
        self.visitors = visitors

    def resolve(self, cedula: str) -> Visitor:
        visitor = self.visitors.get(cedula)
        if visitor is None:
            raise NotFoundError("Visitante no encontrado")
        return visitor

    def check(self, cedula: str) -> dict:
        """Blind check: tells whether the cédula exists, exposing only a masked email."""
        try:
            visitor = self.resolve(cedula)
        except NotFoundError:
            return {"exists": False}
        return {
            "exists": True,
            "profile": {
                "cedula": visitor.cedula,
                "emailMasked": mask_email(visitor.email) if visitor.email else None,
            },
        }

    def destination(
        self,
        cedula: Optional[str] = None,
        email: Optional[str] = None,
        otps: Optional[OtpStore] = None,
    ) -> ResolvedDestination:
        """
        Email wins when present. Otherwise the cédula must map to a profile with
        an email, or (for a visitor not registered yet) to a pending OTP.
        """
        profile = self.visitors.get(cedula) if cedula else None
        if email:
            return ResolvedDestination(email=email.strip().lower(), cedula=cedula, profile=profile)
        if not cedula:
            raise ValidationError("Debes enviar cédula o correo")
        if profile is not None:
            if not profile.email:
                raise MissingContactError()
            return ResolvedDestination(email=profile.email.strip().lower(), cedula=cedula, profile=profile)
        if otps is not None:
            pending = otps.find_by_cedula(cedula)
            if pending is not None:
                return ResolvedDestination(email=pending.email, cedula=cedula)
        raise NotFoundError("Visitante no encontrado")
