import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

class Settings:
    APP_NAME: str = os.getenv("APP_NAME", "Kiosk Consent Backend")
    SQLALCHEMY_DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./kiosk_consent.db")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "change_this_secret")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    # Brevo Email API
    BREVO_API_KEY: str = os.getenv("BREVO_API_KEY", "")
    EMAIL_FROM_ADDRESS: str = os.getenv("EMAIL_FROM_ADDRESS", "no-reply@jumpingpark.lat")
    EMAIL_FROM_NAME: str = os.getenv("EMAIL_FROM_NAME", "Jumping Park")

    OTP_EXPIRE_MINUTES: int = int(os.getenv("OTP_EXPIRE_MINUTES", "10"))
    OTP_DIGITS: int = int(os.getenv("OTP_DIGITS", "6"))

    # Consent issuance
    CONSENT_VALIDITY_DAYS: int = int(os.getenv("CONSENT_VALIDITY_DAYS", "365"))
    POLICY_VERSION: str = os.getenv("POLICY_VERSION", "1.0")
    CONSENT_SEQUENCE_START: int = int(os.getenv("CONSENT_SEQUENCE_START", "1000"))

    # Signature blobs live on disk and are served to operators only
    SIGNATURE_STORAGE_DIR: str = os.getenv("SIGNATURE_STORAGE_DIR", "./storage")
    SIGNATURE_PUBLIC_URL: str = os.getenv("SIGNATURE_PUBLIC_URL", "/admin/files")
    PDF_LOGO_PATH: str = os.getenv("PDF_LOGO_PATH", "./static/logo.png")

    ADMIN_USERNAME: str = os.getenv("ADMIN_USERNAME", "")
    ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "")

settings = Settings()

def access_token_expires():
    return timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)


def otp_ttl():
    return timedelta(minutes=settings.OTP_EXPIRE_MINUTES)


def consent_validity():
    return timedelta(days=settings.CONSENT_VALIDITY_DAYS)
