"""
Shared fixtures for the kiosk consent tests.

Every test gets a fresh in-memory SQLite database, a temporary signature
directory and fake email/PDF capabilities so nothing leaves the process.
"""

import base64
import io
import os

# Set test environment before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BREVO_API_KEY"] = ""
os.environ["ADMIN_USERNAME"] = ""
os.environ["ADMIN_PASSWORD"] = ""

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import get_db, init_db
from app.core.errors import DeliveryError, RenderError
from app.dependencies import get_blob_store, get_notifier, get_pdf_renderer
from app.main import app
from app.services.blob_store import LocalBlobStore
from app.services.pdf_service import ConsentPdfRenderer
from app.services.stores import SqlConsentStore, SqlIdentityStore, SqlOtpStore


# ============================================================================
# Fakes
# ============================================================================

class FakeNotifier:
    def __init__(self):
        self.otps = []
        self.consents = []
        self.fail_otp = False
        self.fail_consent = False

    async def send_otp(self, to_email, otp_code):
        if self.fail_otp:
            raise DeliveryError("Brevo API error: down")
        self.otps.append((to_email, otp_code))

    async def send_consent(self, to_email, full_name, consecutivo, pdf_bytes):
        if self.fail_consent:
            raise DeliveryError("Brevo API error: down")
        self.consents.append((to_email, full_name, consecutivo, pdf_bytes))

    def last_code(self, email):
        return [code for to, code in self.otps if to == email][-1]


class FakeRenderer:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def render(self, consent, signature_png):
        self.calls.append(consent.id)
        if self.fail:
            raise RenderError("boom")
        return b"%PDF-1.4 fake"


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def kiosk_sessions(tmp_path):
    """Two kiosks: independent engines and sessions on the same file-backed database."""
    url = f"sqlite:///{tmp_path / 'kiosk.db'}"
    engines = [create_engine(url), create_engine(url)]
    init_db(bind=engines[0])
    sessions = [sessionmaker(bind=e, autocommit=False, autoflush=False)() for e in engines]
    yield sessions
    for session in sessions:
        session.close()
    for e in engines:
        e.dispose()


@pytest.fixture
def interleave():
    """
    Run `action` right before the first statement `session` sends for `table`,
    the way another kiosk would sneak in between a read and a write.
    """
    hooks = []

    def install(session, table, action):
        bind = session.get_bind()
        state = {"done": False}

        def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            if not state["done"] and table in statement:
                state["done"] = True
                action()

        event.listen(bind, "before_cursor_execute", before_cursor_execute)
        hooks.append((bind, before_cursor_execute))

    yield install
    for bind, fn in hooks:
        event.remove(bind, "before_cursor_execute", fn)


@pytest.fixture
def visitors(db_session):
    return SqlIdentityStore(db_session)


@pytest.fixture
def otps(db_session):
    return SqlOtpStore(db_session)


@pytest.fixture
def consents(db_session):
    return SqlConsentStore(db_session, sequence_start=1000)


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobStore(tmp_path / "blobs", "/admin/files")


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def failing_renderer():
    return FakeRenderer(fail=True)


@pytest.fixture
def signature_b64():
    """Small but real PNG, so ReportLab can embed it."""
    buf = io.BytesIO()
    Image.new("RGB", (40, 20), color=(255, 255, 255)).save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


@pytest.fixture
def consent_payload(signature_b64):
    return {
        "acceptedPolicy": True,
        "minors": [
            {
                "firstName": "Sofia",
                "lastName": "Gomez",
                "birthDate": "2015-05-01",
                "relationship": "hijo",
                "eps": "Sura",
                "idType": "ti",
                "idNumber": "1012345678",
            }
        ],
        "signature": signature_b64,
        "responsibleAdult": {
            "fullName": "Laura Gomez",
            "documentId": "1234567890",
            "email": "laura.gomez@gmail.com",
            "phone": "3001234567",
        },
    }


@pytest.fixture
def client(db_session, notifier, blobs):
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_blob_store] = lambda: blobs
    app.dependency_overrides[get_pdf_renderer] = lambda: ConsentPdfRenderer(logo_path="")
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
