"""
Error taxonomy for the kiosk core.

Every failure the OTP lifecycle or the consent saga can surface is one of
these classes. Each carries the HTTP status and a machine-readable code so
the exception handler in ``app.main`` can render ``{"success": false, ...}``
without the routers translating errors by hand.
"""


class KioskError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Error interno del servidor"

    def __init__(self, message: str | None = None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(KioskError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Datos inválidos"


class NotFoundError(KioskError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Recurso no encontrado"


class MissingContactError(NotFoundError):
    code = "MISSING_CONTACT"
    default_message = "El visitante no tiene correo registrado"


class ExpiredError(KioskError):
    status_code = 404
    code = "EXPIRED"
    default_message = "Código expirado"


class IncorrectCodeError(KioskError):
    status_code = 404
    code = "INCORRECT_CODE"
    default_message = "Código incorrecto"


class StorageError(KioskError):
    status_code = 500
    code = "STORAGE_UNAVAILABLE"
    default_message = "No se pudo acceder al almacenamiento"


class DeliveryError(KioskError):
    status_code = 500
    code = "DELIVERY_FAILED"
    default_message = "No se pudo enviar el correo"


class RenderError(KioskError):
    status_code = 500
    code = "RENDER_FAILED"
    default_message = "No se pudo generar el PDF"


def error_details(errors) -> list:
    """Pydantic errors reduced to JSON-safe {loc, msg, type} entries."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in errors
    ]
