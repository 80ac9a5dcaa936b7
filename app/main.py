import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .core.database import SessionLocal, init_db
from .core.config import settings
from .core.errors import KioskError, error_details
from .core.security import seed_admin
from .routers.admin import router as admin_router
from .routers.auth import router as auth_router
from .routers.consent import router as consent_router
from .routers.identity import router as identity_router
from .routers.otp import router as otp_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)

# Configure CORS
raw_origins = settings.CORS_ORIGINS or "*"
origins = [o.strip() for o in raw_origins.split(",") if o.strip()] if isinstance(raw_origins, str) else raw_origins
allow_credentials = False if "*" in origins else True
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create tables
init_db()

# Seed operator account if configured
with SessionLocal() as db:
    seed_admin(db, settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD)


@app.exception_handler(KioskError)
async def kiosk_error_handler(request: Request, exc: KioskError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.code} {exc.message}")
    body = {"success": False, "error": exc.message, "code": exc.code}
    if exc.details is not None:
        body["details"] = exc.details
    return JSONResponse(body, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {"success": False, "error": "Datos inválidos", "code": "VALIDATION_ERROR", "details": error_details(exc.errors())},
        status_code=400,
    )


# Routers
app.include_router(identity_router)
app.include_router(otp_router)
app.include_router(consent_router)
app.include_router(auth_router)
app.include_router(admin_router)

@app.get("/")
def root():
    return {"status": "ok"}

@app.get("/health")
def health():
    return {"status": "healthy"}
