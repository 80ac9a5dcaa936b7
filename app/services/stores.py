# SQLAlchemy-backed stores for visitors, OTP codes and consents
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import StorageError
from ..models.consent import Consent, ConsentCounter
from ..models.otp import OTPRecord
from ..models.visitor import Visitor

logger = logging.getLogger(__name__)

CONSENT_COUNTER = "consents"


def upsert_insert(db: Session, model):
    """INSERT that supports ON CONFLICT DO UPDATE on the bound database (SQLite or PostgreSQL)."""
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)


class SqlIdentityStore:
    """Visitor profiles keyed by cédula."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, cedula: str) -> Optional[Visitor]:
        try:
            return self.db.get(Visitor, cedula)
        except SQLAlchemyError as exc:
            raise StorageError("No se pudo consultar el visitante") from exc

    def upsert(self, cedula: str, fields: dict, minors: list) -> Visitor:
        """
        Merge-write in a single statement: existing fields are replaced only when
        a new value is given, the minors list is replaced wholesale and
        created_at is preserved. Two kiosks writing the same cédula both succeed.
        """
        now = datetime.utcnow()
        given = {attr: value for attr, value in fields.items() if value is not None}
        values = {
            "full_name": "",
            **given,
            "cedula": cedula,
            "minors": list(minors),
            "created_at": now,
            "updated_at": now,
        }
        try:
            stmt = upsert_insert(self.db, Visitor).values(**values)
            changes = {attr: getattr(stmt.excluded, attr) for attr in given}
            changes["minors"] = stmt.excluded.minors
            changes["updated_at"] = stmt.excluded.updated_at
            self.db.execute(stmt.on_conflict_do_update(index_elements=[Visitor.cedula], set_=changes))
            self.db.commit()
            return self.db.get(Visitor, cedula, populate_existing=True)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("No se pudo guardar el visitante") from exc


class SqlOtpStore:
    """One active OTP row per email."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, email: str) -> Optional[OTPRecord]:
        try:
            return self.db.get(OTPRecord, email, populate_existing=True)
        except SQLAlchemyError as exc:
            raise StorageError("No se pudo consultar el OTP") from exc

    def find_by_cedula(self, cedula: str) -> Optional[OTPRecord]:
        try:
            stmt = (
                select(OTPRecord)
                .where(OTPRecord.cedula == cedula)
                .order_by(OTPRecord.created_at.desc())
                .limit(1)
            )
            return self.db.scalars(stmt).first()
        except SQLAlchemyError as exc:
            raise StorageError("No se pudo consultar el OTP") from exc

    def put(self, email: str, code: str, expires_at: datetime, cedula: Optional[str] = None) -> OTPRecord:
        # Last write wins: a concurrent issuance for the same email overwrites, never collides
        try:
            stmt = upsert_insert(self.db, OTPRecord).values(
                email=email,
                code=code,
                cedula=cedula,
                expires_at=expires_at,
                attempts=0,
                created_at=datetime.utcnow(),
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[OTPRecord.email],
                set_={
                    "code": stmt.excluded.code,
                    "cedula": stmt.excluded.cedula,
                    "expires_at": stmt.excluded.expires_at,
                    "attempts": stmt.excluded.attempts,
                    "created_at": stmt.excluded.created_at,
                },
            )
            self.db.execute(stmt)
            self.db.commit()
            return self.db.get(OTPRecord, email, populate_existing=True)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("No se pudo guardar el OTP") from exc

    def delete(self, email: str) -> None:
        try:
            self.db.execute(delete(OTPRecord).where(OTPRecord.email == email))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("No se pudo eliminar el OTP") from exc


class SqlConsentStore:
    """
    Consent documents plus the consecutivo counter.

    allocate_consecutivo() increments the counter row inside the current
    transaction; create() commits it together with the consent insert, so a
    failed insert never burns a number and two kiosks can never share one.
    """

    def __init__(self, db: Session, sequence_start: int | None = None):
        self.db = db
        self.sequence_start = settings.CONSENT_SEQUENCE_START if sequence_start is None else sequence_start

    def _increment(self) -> Optional[int]:
        stmt = (
            update(ConsentCounter)
            .where(ConsentCounter.name == CONSENT_COUNTER)
            .values(value=ConsentCounter.value + 1, updated_at=datetime.utcnow())
            .returning(ConsentCounter.value)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def allocate_consecutivo(self) -> int:
        try:
            value = self._increment()
            if value is None:
                # First consent ever: create the counter row, then increment it.
                # Nothing else is pending in this transaction yet, so a rollback
                # after losing the insert race only discards the empty update.
                try:
                    self.db.add(ConsentCounter(name=CONSENT_COUNTER, value=self.sequence_start))
                    self.db.flush()
                except IntegrityError:
                    self.db.rollback()
                    logger.info("Consent counter created concurrently, reusing it")
                value = self._increment()
            logger.info(f"Consecutivo allocated: {value}")
            return value
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("No se pudo generar el consecutivo") from exc

    def create(self, consent: Consent) -> Consent:
        try:
            self.db.add(consent)
            self.db.commit()
            self.db.refresh(consent)
            return consent
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("No se pudo guardar el consentimiento") from exc

    def latest_for_user(self, user_id: str) -> Optional[Consent]:
        try:
            stmt = (
                select(Consent)
                .where(Consent.user_id == user_id)
                .order_by(Consent.signed_at.desc(), Consent.consecutivo.desc())
                .limit(1)
            )
            return self.db.scalars(stmt).first()
        except SQLAlchemyError as exc:
            raise StorageError("No se pudo consultar el consentimiento") from exc

    def has_valid_consent(self, user_id: str, now: datetime | None = None) -> bool:
        now = now or datetime.utcnow()
        try:
            stmt = (
                select(Consent.id)
                .where(Consent.user_id == user_id, Consent.valid_until > now)
                .limit(1)
            )
            return self.db.scalars(stmt).first() is not None
        except SQLAlchemyError as exc:
            raise StorageError("No se pudo consultar el consentimiento") from exc
