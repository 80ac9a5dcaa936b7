# Visitor profile - perfil del adulto responsable, indexado por cédula
from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from ..core.database import Base


class Visitor(Base):
    """
    Perfil del adulto responsable.
    La cédula es la clave primaria y no cambia una vez creada.
    Los menores se guardan como lista JSON ya normalizada.
    """
    __tablename__ = "visitors"

    cedula: Mapped[str] = mapped_column(String(15), primary_key=True)
    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address: Mapped[str | None] = mapped_column(String(120), nullable=True)

    # [{fullName, firstName, lastName, birthDate, relationship, eps, idType, idNumber}]
    minors: Mapped[list] = mapped_column(JSON, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_profile(self) -> dict:
        return {
            "cedula": self.cedula,
            "fullName": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "minors": list(self.minors or []),
        }
