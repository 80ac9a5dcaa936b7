# Consent models - registro inmutable del consentimiento firmado
import uuid
from sqlalchemy import Integer, String, DateTime, JSON, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from ..core.database import Base


def gen_uuid() -> str:
    return str(uuid.uuid4())


class Consent(Base):
    """
    Consentimiento firmado en el kiosco.
    Se crea una sola vez por envío y nunca se modifica.
    Guarda un snapshot del adulto y de los menores tal como se firmaron.
    """
    __tablename__ = "consents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=gen_uuid)

    # Número de visita, único y creciente
    consecutivo: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)

    user_id: Mapped[str] = mapped_column(String(15), ForeignKey("visitors.cedula"), nullable=False, index=True)

    # Snapshots desnormalizados
    adult_snapshot: Mapped[dict] = mapped_column(JSON, nullable=False)
    minors_snapshot: Mapped[list] = mapped_column(JSON, default=list)

    signature_url: Mapped[str] = mapped_column(Text, nullable=False)
    policy_version: Mapped[str] = mapped_column(String(20), nullable=False)
    ip_address: Mapped[str] = mapped_column(String(255), default="unknown")

    signed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    valid_until: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class ConsentCounter(Base):
    """Contador atómico para el consecutivo (una fila por secuencia)."""
    __tablename__ = "consent_counters"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
