import base64
import logging
from datetime import datetime

import aiohttp
from .config import settings
from .errors import DeliveryError

logger = logging.getLogger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"


def mask_email(email: str) -> str:
    """
    Ofusca un email para mostrarlo sin revelar datos completos.
    juan.perez@gmail.com -> ju********@g***.com
    """
    if "*" in email:
        return email
    parts = email.split("@")
    if len(parts) != 2:
        return "***@***.***"
    local, domain = parts
    masked_local = local[:2] + "*" * max(len(local) - 2, 3)
    segments = domain.split(".")
    tld = segments.pop() if len(segments) > 1 else ""
    name = ".".join(segments)
    masked_domain = f"{name[:1] or '*'}***"
    return f"{masked_local}@{masked_domain}" + (f".{tld}" if tld else "")


def _otp_html(otp_code: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: Arial, sans-serif; background-color: #f6f6f6; color: #111827; }}
            .container {{ max-width: 480px; margin: 0 auto; padding: 32px; background: #ffffff; border-radius: 12px; text-align: center; }}
            .otp-code {{ font-size: 48px; letter-spacing: 8px; font-weight: bold; color: #10b981; padding: 24px 0; }}
            .note {{ font-size: 14px; color: #6b7280; }}
            .footer {{ font-size: 12px; color: #9ca3af; margin-top: 24px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <p>Usa este código para validar tu acceso</p>
            <div class="otp-code">{otp_code}</div>
            <p class="note">Este código expira en <strong>{settings.OTP_EXPIRE_MINUTES} minutos</strong>.<br/>
            Si no solicitaste este acceso, ignora este correo.</p>
            <div class="footer">© {datetime.utcnow().year} {settings.EMAIL_FROM_NAME}. Todos los derechos reservados.</div>
        </div>
    </body>
    </html>
    """


def _consent_html(full_name: str, consecutivo: int) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <body style="font-family: Arial, sans-serif; color: #2C3E50;">
        <div style="max-width: 560px; margin: 0 auto; padding: 32px;">
            <h2 style="color: #9B59B6;">¡Hola, {full_name}!</h2>
            <p>Adjuntamos tu consentimiento informado firmado <strong>#{consecutivo}</strong>.</p>
            <p>Consérvalo: es válido por {settings.CONSENT_VALIDITY_DAYS} días desde la firma.</p>
            <p style="font-size: 12px; color: #7F8C8D;">---<br/>{settings.EMAIL_FROM_NAME}</p>
        </div>
    </body>
    </html>
    """


class BrevoNotifier:
    """Transactional email through the Brevo HTTP API."""

    def __init__(self, api_key: str | None = None):
        self.api_key = settings.BREVO_API_KEY if api_key is None else api_key

    async def _send(self, payload: dict, to_email: str) -> str:
        headers = {
            "api-key": self.api_key,
            "Content-Type": "application/json",
        }
        payload = {
            "sender": {"name": settings.EMAIL_FROM_NAME, "email": settings.EMAIL_FROM_ADDRESS},
            "to": [{"email": to_email}],
            **payload,
        }
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(BREVO_SEND_URL, json=payload, headers=headers) as response:
                    result = await response.json(content_type=None)
                    if response.status != 201:
                        raise DeliveryError(f"Brevo API error: {result}")
                    return (result or {}).get("messageId", "unknown")
        except aiohttp.ClientError as exc:
            raise DeliveryError(f"Brevo API unreachable: {exc}") from exc

    async def send_otp(self, to_email: str, otp_code: str) -> None:
        """Send OTP code via Brevo API."""
        if not self.api_key:
            logger.warning(f"[DEV MODE] OTP for {to_email}: {otp_code}")
            return

        text_body = (
            f"Tu código de acceso es: {otp_code}\n\n"
            f"Este código expira en {settings.OTP_EXPIRE_MINUTES} minutos.\n"
            f"Si no solicitaste este acceso, ignora este correo.\n\n---\n{settings.EMAIL_FROM_NAME}"
        )
        message_id = await self._send(
            {
                "subject": f"Tu código de acceso - {settings.EMAIL_FROM_NAME}",
                "htmlContent": _otp_html(otp_code),
                "textContent": text_body,
            },
            to_email,
        )
        logger.info(f"[EMAIL SENT] OTP sent to {mask_email(to_email)}, message_id={message_id}")

    async def send_consent(self, to_email: str, full_name: str, consecutivo: int, pdf_bytes: bytes) -> None:
        """Send the signed consent PDF as an attachment."""
        if not self.api_key:
            logger.warning(f"[DEV MODE] Consent #{consecutivo} for {to_email} not sent ({len(pdf_bytes)} bytes)")
            return

        message_id = await self._send(
            {
                "subject": f"Tu Consentimiento Firmado #{consecutivo} - {settings.EMAIL_FROM_NAME}",
                "htmlContent": _consent_html(full_name, consecutivo),
                "attachment": [
                    {
                        "name": f"Consentimiento-{consecutivo}.pdf",
                        "content": base64.b64encode(pdf_bytes).decode("ascii"),
                    }
                ],
            },
            to_email,
        )
        logger.info(f"[EMAIL SENT] Consent #{consecutivo} sent to {mask_email(to_email)}, message_id={message_id}")
