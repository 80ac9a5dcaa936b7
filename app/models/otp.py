from sqlalchemy import Integer, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from ..core.database import Base

class OTPRecord(Base):
    """One active code per email. A new issuance overwrites the row."""
    __tablename__ = "otps"

    email: Mapped[str] = mapped_column(String(255), primary_key=True)
    code: Mapped[str] = mapped_column(String(12), nullable=False)
    # cédula the code was requested for, lets a new visitor validate by cédula
    cedula: Mapped[str | None] = mapped_column(String(15), nullable=True, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
