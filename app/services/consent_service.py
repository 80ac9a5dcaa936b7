"""
Consent Service Layer

Turns a signed kiosk form into a persisted consent:

1. Validate the submission (no side effects on failure)
2. Store the signature image and get its durable URL
3. Upsert the responsible adult's profile (merge)
4. Allocate the consecutivo from the atomic counter
5. Persist the consent with adult/minor snapshots and validity window
6. Render the PDF certificate
7. Email the PDF to the adult

Steps 1-5 are fatal and surface to the kiosk. Once step 5 has committed the
consent is legally valid, so failures in 6-7 are logged and absorbed.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from ..core.config import consent_validity, settings
from ..core.email import mask_email
from ..core.errors import DeliveryError, RenderError, ValidationError, error_details
from ..models.consent import Consent
from ..schemas.consent import ConsentSubmission
from .blob_store import signature_path
from .ports import BlobStore, ConsentStore, IdentityStore, Notifier, PdfRenderer

logger = logging.getLogger(__name__)


@dataclass
class ConsentResult:
    """Result of a consent submission."""
    consent_id: str
    consecutivo: int
    signed_at: datetime
    valid_until: datetime
    pdf_rendered: bool = False
    email_sent: bool = False


class ConsentOrchestrator:
    def __init__(
        self,
        visitors: IdentityStore,
        consents: ConsentStore,
        blobs: BlobStore,
        renderer: PdfRenderer,
        notifier: Notifier,
        validity: timedelta | None = None,
        policy_version: str | None = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.visitors = visitors
        self.consents = consents
        self.blobs = blobs
        self.renderer = renderer
        self.notifier = notifier
        self.validity = validity or consent_validity()
        self.policy_version = policy_version or settings.POLICY_VERSION
        self.clock = clock

    @staticmethod
    def _validate(payload) -> ConsentSubmission:
        if isinstance(payload, ConsentSubmission):
            submission = payload
        else:
            try:
                submission = ConsentSubmission.model_validate(payload)
            except PydanticValidationError as exc:
                raise ValidationError("Validación fallida", details=error_details(exc.errors())) from exc
        if submission.acceptedPolicy is not True:
            raise ValidationError("Debes aceptar los términos y condiciones")
        return submission

    async def submit(self, payload, ip_address: str = "unknown") -> ConsentResult:
        # 1. Validate before touching any store
        submission = self._validate(payload)
        adult = submission.responsibleAdult
        try:
            signature_png = submission.signature_bytes()
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        logger.info(f"[Consent] Starting submission for {adult.documentId}")

        # 2. Signature blob
        timestamp_ms = int(self.clock().replace(tzinfo=timezone.utc).timestamp() * 1000)
        signature_url = self.blobs.save(signature_path(adult.documentId, timestamp_ms), signature_png, "image/png")
        logger.info(f"[Consent] Signature stored for {adult.documentId}")

        # 3. Profile upsert
        minors = [minor.snapshot() for minor in submission.minors]
        self.visitors.upsert(
            adult.documentId,
            {
                "full_name": adult.fullName,
                "email": adult.email,
                "phone": adult.phone,
                "address": adult.address,
            },
            minors,
        )
        logger.info(f"[Consent] Profile upserted: {adult.documentId}")

        # 4 & 5. Consecutivo + consent document
        consecutivo = self.consents.allocate_consecutivo()
        signed_at = self.clock()
        consent = self.consents.create(
            Consent(
                consecutivo=consecutivo,
                user_id=adult.documentId,
                adult_snapshot=adult.snapshot(),
                minors_snapshot=minors,
                signature_url=signature_url,
                policy_version=self.policy_version,
                ip_address=ip_address or "unknown",
                signed_at=signed_at,
                valid_until=signed_at + self.validity,
            )
        )
        logger.info(f"[Consent] Consent created: {consent.id} (consecutivo {consecutivo})")

        result = ConsentResult(
            consent_id=consent.id,
            consecutivo=consecutivo,
            signed_at=consent.signed_at,
            valid_until=consent.valid_until,
        )

        # 6. PDF
        pdf_bytes: Optional[bytes] = None
        try:
            pdf_bytes = await asyncio.to_thread(self.renderer.render, consent, signature_png)
            result.pdf_rendered = True
        except RenderError:
            logger.exception(f"[Consent] PDF rendering failed for {consent.id}")
        except Exception:
            logger.exception(f"[Consent] Unexpected PDF error for {consent.id}")

        # 7. Email
        if pdf_bytes is not None:
            try:
                await self.notifier.send_consent(adult.email, adult.fullName, consecutivo, pdf_bytes)
                result.email_sent = True
            except DeliveryError as exc:
                logger.warning(f"[Consent] Email not sent to {mask_email(adult.email)}: {exc.message}")
            except Exception:
                logger.exception(f"[Consent] Unexpected email error for {mask_email(adult.email)}")
        else:
            logger.warning(f"[Consent] Skipping email for {consent.id}: no PDF")

        logger.info(
            f"[Consent] Done. ID: {consent.id}, consecutivo: {consecutivo}, "
            f"pdf: {result.pdf_rendered}, email: {result.email_sent}"
        )
        return result


def is_expired(consent: Consent, now: datetime | None = None) -> bool:
    return (now or datetime.utcnow()) > consent.valid_until


def consent_summary(consent: Consent, now: datetime | None = None) -> dict:
    """Operator view of a stored consent."""
    return {
        "id": consent.id,
        "consecutivo": consent.consecutivo,
        "userId": consent.user_id,
        "adultSnapshot": consent.adult_snapshot,
        "minorsSnapshot": consent.minors_snapshot or [],
        "signatureUrl": consent.signature_url,
        "policyVersion": consent.policy_version,
        "ipAddress": consent.ip_address,
        "signedAt": consent.signed_at.isoformat(),
        "validUntil": consent.valid_until.isoformat(),
        "isExpired": is_expired(consent, now),
    }
