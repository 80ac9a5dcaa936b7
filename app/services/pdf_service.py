# PDF Service - certificado de consentimiento firmado (ReportLab)
import io
import logging
import os
from datetime import datetime

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from ..core.config import settings
from ..core.errors import RenderError
from ..models.consent import Consent

logger = logging.getLogger(__name__)

PURPLE = colors.HexColor("#9B59B6")
DARK_TEXT = colors.HexColor("#2C3E50")
LIGHT_TEXT = colors.HexColor("#7F8C8D")
SEPARATOR = colors.HexColor("#ECF0F1")

MARGIN_X = 50
MARGIN_BOTTOM = 60
HEADER_HEIGHT = 80

RELATIONSHIP_LABELS = {
    "hijo": "Hijo(a)",
    "sobrino": "Sobrino(a)",
    "nieto": "Nieto(a)",
    "otro": "Otro",
}

LEGAL_TEXT = (
    "Declaro que he leído y acepto el reglamento de uso de las instalaciones, que conozco los riesgos "
    "inherentes a las actividades recreativas del parque y que asumo la responsabilidad por los menores "
    "relacionados en este documento. Autorizo el tratamiento de mis datos personales y los de los menores "
    "conforme a la política de privacidad vigente, con la finalidad de registrar el ingreso, gestionar la "
    "atención en caso de emergencia y conservar evidencia de este consentimiento."
)

_MONTHS_ES = [
    "", "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]


def format_date_es(value: datetime) -> str:
    return f"{value.day} de {_MONTHS_ES[value.month]} de {value.year}"


class ConsentPdfRenderer:
    """Builds the A4 certificate embedding logo, legal text, people and signature."""

    def __init__(self, logo_path: str | None = None):
        self.logo_path = logo_path if logo_path is not None else settings.PDF_LOGO_PATH

    def render(self, consent: Consent, signature_png: bytes) -> bytes:
        try:
            return self._render(consent, signature_png)
        except Exception as exc:
            raise RenderError(f"No se pudo generar el PDF del consentimiento {consent.consecutivo}") from exc

    def _render(self, consent: Consent, signature_png: bytes) -> bytes:
        buf = io.BytesIO()
        width, height = A4
        c = canvas.Canvas(buf, pagesize=A4)
        c.setTitle(f"Consentimiento #{consent.consecutivo}")

        # Header
        c.setFillColor(PURPLE)
        c.rect(0, height - HEADER_HEIGHT, width, HEADER_HEIGHT, stroke=0, fill=1)
        if self.logo_path and os.path.exists(self.logo_path):
            c.drawImage(
                ImageReader(self.logo_path),
                MARGIN_X,
                height - HEADER_HEIGHT + 15,
                width=120,
                height=50,
                preserveAspectRatio=True,
                mask="auto",
            )
        c.setFillColor(colors.white)
        c.setFont("Helvetica-Bold", 16)
        c.drawRightString(width - MARGIN_X, height - 45, f"Consentimiento Informado #{consent.consecutivo}")

        y = height - HEADER_HEIGHT - 30
        y = self._paragraph(c, LEGAL_TEXT, y, width)

        adult = consent.adult_snapshot or {}
        y = self._section(c, "Adulto responsable", y, width)
        for label, value in (
            ("Nombre", adult.get("fullName")),
            ("Cédula", adult.get("uid")),
            ("Correo", adult.get("email")),
            ("Teléfono", adult.get("phone")),
        ):
            y = self._row(c, label, value, y)

        minors = consent.minors_snapshot or []
        y = self._section(c, f"Menores ({len(minors)})", y, width)
        if not minors:
            y = self._row(c, "-", "Sin menores registrados", y)
        for minor in minors:
            y = self._ensure_space(c, y, 40)
            relationship = RELATIONSHIP_LABELS.get(minor.get("relationship"), minor.get("relationship") or "")
            y = self._row(c, minor.get("fullName") or "", f"{minor.get('birthDate', '')} · {relationship}", y)
            if minor.get("eps") or minor.get("idNumber"):
                extra = " · ".join(
                    part for part in (
                        f"EPS {minor['eps']}" if minor.get("eps") else "",
                        f"{(minor.get('idType') or '').upper()} {minor.get('idNumber') or ''}".strip(),
                    ) if part
                )
                y = self._row(c, "", extra, y)

        y = self._ensure_space(c, y, 140)
        y = self._section(c, "Firma", y, width)
        c.drawImage(
            ImageReader(io.BytesIO(signature_png)),
            MARGIN_X,
            y - 90,
            width=200,
            height=90,
            preserveAspectRatio=True,
            mask="auto",
        )
        y -= 100

        # Footer with the validity window
        c.setFillColor(LIGHT_TEXT)
        c.setFont("Helvetica", 8)
        c.drawString(
            MARGIN_X,
            MARGIN_BOTTOM - 20,
            f"Firmado el {format_date_es(consent.signed_at)} · Válido hasta el {format_date_es(consent.valid_until)}"
            f" · Política v{consent.policy_version}",
        )
        c.drawString(MARGIN_X, MARGIN_BOTTOM - 32, f"ID {consent.id} · IP {consent.ip_address}")

        c.showPage()
        c.save()
        return buf.getvalue()

    @staticmethod
    def _ensure_space(c, y: float, needed: float) -> float:
        if y - needed > MARGIN_BOTTOM:
            return y
        c.showPage()
        return A4[1] - MARGIN_BOTTOM

    def _paragraph(self, c, text: str, y: float, width: float) -> float:
        c.setFillColor(DARK_TEXT)
        c.setFont("Helvetica", 10)
        for line in simpleSplit(text, "Helvetica", 10, width - 2 * MARGIN_X):
            y = self._ensure_space(c, y, 14)
            c.drawString(MARGIN_X, y, line)
            y -= 14
        return y - 10

    def _section(self, c, title: str, y: float, width: float) -> float:
        y = self._ensure_space(c, y, 40)
        c.setStrokeColor(SEPARATOR)
        c.line(MARGIN_X, y, width - MARGIN_X, y)
        y -= 18
        c.setFillColor(PURPLE)
        c.setFont("Helvetica-Bold", 12)
        c.drawString(MARGIN_X, y, title)
        return y - 18

    def _row(self, c, label: str, value, y: float) -> float:
        y = self._ensure_space(c, y, 16)
        c.setFillColor(LIGHT_TEXT)
        c.setFont("Helvetica-Bold", 9)
        c.drawString(MARGIN_X, y, label or "")
        c.setFillColor(DARK_TEXT)
        c.setFont("Helvetica", 10)
        c.drawString(MARGIN_X + 140, y, str(value) if value is not None else "-")
        return y - 16
