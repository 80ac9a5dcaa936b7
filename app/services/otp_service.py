"""
OTP lifecycle: issuance and validation of the short-lived email code.

State machine per email::

    Unissued -> Issued(code, expiry) -> Consumed | Expired | Overwritten

Only the latest issued code is ever accepted. Superseded codes are simply
overwritten; orphaned codes are left in place until a validation notices
they expired (there is no background sweep).
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..core.config import otp_ttl, settings
from ..core.email import mask_email
from ..core.errors import DeliveryError, ExpiredError, IncorrectCodeError, NotFoundError
from ..models.visitor import Visitor
from .identity_service import IdentityResolver
from .ports import IdentityStore, Notifier, OtpStore

logger = logging.getLogger(__name__)


def generate_otp(digits: int | None = None) -> str:
    """Uniform code over the fixed-width range, e.g. 100000-999999 for 6 digits."""
    digits = max(4, digits or settings.OTP_DIGITS)
    low = 10 ** (digits - 1)
    high = 10 ** digits - 1
    return str(low + secrets.randbelow(high - low + 1))


@dataclass
class ValidationResult:
    valid: bool
    email: str
    profile: Optional[Visitor] = None


class OtpIssuer:
    def __init__(
        self,
        visitors: IdentityStore,
        otps: OtpStore,
        notifier: Notifier,
        ttl: timedelta | None = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.resolver = IdentityResolver(visitors)
        self.otps = otps
        self.notifier = notifier
        self.ttl = ttl or otp_ttl()
        self.clock = clock

    async def issue(self, cedula: Optional[str] = None, email: Optional[str] = None) -> str:
        """
        Persist a fresh code for the resolved email and send it.
        Returns the destination email. The stored code survives a delivery
        failure; calling issue() again simply overwrites it.
        """
        destination = self.resolver.destination(cedula=cedula, email=email)
        code = generate_otp()
        self.otps.put(
            destination.email,
            code,
            expires_at=self.clock() + self.ttl,
            cedula=destination.cedula,
        )
        logger.info(f"OTP issued for {mask_email(destination.email)}")

        try:
            await self.notifier.send_otp(destination.email, code)
        except DeliveryError:
            logger.exception(f"OTP delivery failed for {mask_email(destination.email)}")
            raise
        except Exception as exc:
            logger.exception(f"OTP delivery failed for {mask_email(destination.email)}")
            raise DeliveryError("No se pudo enviar el OTP") from exc
        return destination.email


class OtpValidator:
    def __init__(
        self,
        visitors: IdentityStore,
        otps: OtpStore,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.resolver = IdentityResolver(visitors)
        self.otps = otps
        self.clock = clock

    def validate(self, code: str, cedula: Optional[str] = None, email: Optional[str] = None) -> ValidationResult:
        destination = self.resolver.destination(cedula=cedula, email=email, otps=self.otps)
        masked = mask_email(destination.email)

        record = self.otps.get(destination.email)
        if record is None:
            logger.info(f"OTP validation for {masked}: no active code")
            raise NotFoundError("Código no solicitado")

        # A wrong code leaves the record in place so the visitor can retry.
        if not secrets.compare_digest(str(code).strip(), record.code):
            logger.info(f"OTP validation for {masked}: incorrect code")
            raise IncorrectCodeError()

        if self.clock() > record.expires_at:
            self.otps.delete(destination.email)
            logger.info(f"OTP validation for {masked}: expired")
            raise ExpiredError()

        requested_for = record.cedula
        self.otps.delete(destination.email)
        logger.info(f"OTP validation for {masked}: ok")
        profile = destination.profile
        if profile is None and requested_for:
            profile = self.resolver.visitors.get(requested_for)
        return ValidationResult(valid=True, email=destination.email, profile=profile)
