import os
import tempfile
_default_test_secret = "test-jwt-secret-for-pytest-only-0000000000000000"
if len(os.environ.get("JWT_SECRET", "")) < 32:
    os.environ["JWT_SECRET"] = _default_test_secret

_scratch_dir = tempfile.mkdtemp(prefix="quoteflow-tests-")
os.environ.setdefault("DOCUMENT_STORAGE_DIR", os.path.join(_scratch_dir, "documents"))
os.environ.setdefault("ENV", "test")

import subprocess
import sys
import uuid
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

TEST_DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(_scratch_dir, 'quoteflow_test.db')}")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from quoteflow import database
from quoteflow.database import SessionLocal
from quoteflow.models.contact import Contact
from quoteflow.models.conversation import Conversation
from quoteflow.models.integration import Integration
from quoteflow.models.quote_form import QuoteForm
from quoteflow.models.workflow import Workflow
from quoteflow.services.collaborators import Collaborators
from quoteflow.services.document_service import DocumentResult
from quoteflow.services.mailer import EmailSendResult


def _ensure_database_exists(database_url: str) -> None:
    url = make_url(database_url)

    if not url.drivername.startswith("postgresql"):
        return

    db_name = url.database
    admin_url = url.set(database="postgres")
    admin_engine = create_engine(admin_url, isolation_level="AUTOCOMMIT")

    try:
        with admin_engine.connect() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": db_name},
            ).scalar()
            if not exists:
                safe_db_name = db_name.replace('"', '""')
                conn.execute(text(f'CREATE DATABASE "{safe_db_name}"'))
    finally:
        admin_engine.dispose()


@pytest.fixture(scope="session", autouse=True)
def _prepare_test_database() -> None:
    _ensure_database_exists(TEST_DATABASE_URL)

    env = os.environ.copy()
    env["DATABASE_URL"] = TEST_DATABASE_URL

    subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        check=True,
        cwd=Path(__file__).resolve().parents[2],
        env=env,
    )

    database.configure_database()


def _clear_tables() -> None:
    with database.engine.begin() as conn:
        for table in reversed(database.Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="function", autouse=True)
def _truncate_tables_between_tests():
    _clear_tables()
    yield
    _clear_tables()


@pytest.fixture
def auth_headers(client):
    def _headers(account_id: int) -> dict:
        resp = client.post("/auth/token", json={"user_id": "test", "account_id": account_id})
        assert resp.status_code == 200, f"token request failed: {resp.status_code} {resp.text}"
        token = resp.json()["access_token"]
        return {"X-Account-Id": str(account_id), "Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from quoteflow.main import app

    return TestClient(app)


def _save(row):
    db = SessionLocal()
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    finally:
        db.close()


@pytest.fixture
def make_graph():
    """Build editor-style node/edge JSON for a linear chain behind one trigger."""

    def _make(trigger: dict, *actions: dict, extra_edges=()):
        nodes = [{"id": "trigger-1", "type": "trigger", "data": dict(trigger)}]
        edges = []
        previous = "trigger-1"
        for i, data in enumerate(actions, start=1):
            data = dict(data)
            node_type = data.pop("_type", "action")
            node_id = data.pop("_id", f"action-{i}")
            nodes.append({"id": node_id, "type": node_type, "data": data})
            edges.append({"id": f"e-{previous}-{node_id}", "source": previous, "target": node_id})
            previous = node_id
        for source, target in extra_edges:
            edges.append({"id": f"e-{source}-{target}", "source": source, "target": target})
        return nodes, edges

    return _make


@pytest.fixture
def workflow_factory():
    def _create(*, nodes, edges, account_id: int = 1, widget_id: str = "widget-1", status: str = "live", name="Flow"):
        return _save(
            Workflow(
                id=str(uuid.uuid4()),
                account_id=account_id,
                widget_id=widget_id,
                name=name,
                status=status,
                nodes=nodes,
                edges=edges,
            )
        )

    return _create


@pytest.fixture
def contact_factory():
    def _create(
        *,
        account_id: int = 1,
        widget_id: str = "widget-1",
        conversation_id=None,
        name="Jane Doe",
        email="jane@x.com",
        phone=None,
        address=None,
        tags=None,
    ):
        return _save(
            Contact(
                id=str(uuid.uuid4()),
                account_id=account_id,
                widget_id=widget_id,
                conversation_id=conversation_id,
                name=name,
                email=email,
                phone=phone,
                address=address,
                tags=list(tags or []),
                documents=[],
            )
        )

    return _create


@pytest.fixture
def conversation_factory():
    def _create(*, account_id: int = 1, widget_id: str = "widget-1", contact_id=None, conversation_id=None):
        return _save(
            Conversation(
                id=conversation_id or str(uuid.uuid4()),
                account_id=account_id,
                widget_id=widget_id,
                contact_id=contact_id,
            )
        )

    return _create


@pytest.fixture
def form_factory():
    def _create(*, account_id: int = 1, form_id=None, name="Roof quote"):
        return _save(QuoteForm(id=form_id or str(uuid.uuid4()), account_id=account_id, name=name))

    return _create


@pytest.fixture
def integration_factory():
    def _create(*, account_id: int = 1, integration_type: str, config: dict):
        return _save(Integration(account_id=account_id, integration_type=integration_type, config=config))

    return _create


class FakeServices:
    """In-memory stand-ins for the document store, mail provider and model endpoint."""

    def __init__(self):
        self.documents = []
        self.emails = []
        self.prompts = []
        self.document_error = None
        self.email_error = None
        self.api_keys = {"openai": "sk-test"}
        self.reply = "Thanks for reaching out!"

    def generate_document(self, contact, measurement):
        if self.document_error:
            return DocumentResult(error=self.document_error)
        n = len(self.documents) + 1
        self.documents.append((contact, measurement))
        return DocumentResult(
            url=f"https://files.example.com/signed/quote-{n}?token=abc",
            storage_path=f"widget-1/quote_{n}.html",
        )

    def send_email(self, to, subject, html):
        if self.email_error:
            return EmailSendResult(sent=False, error=self.email_error)
        self.emails.append({"to": to, "subject": subject, "html": html})
        return EmailSendResult(sent=True, message_id=f"msg-{len(self.emails)}")

    def complete(self, provider, model, api_key, prompt):
        self.prompts.append({"provider": provider, "model": model, "api_key": api_key, "prompt": prompt})
        return self.reply

    def bundle(self) -> Collaborators:
        return Collaborators(
            generate_document=self.generate_document,
            send_email=self.send_email,
            complete=self.complete,
            resolve_api_key=lambda provider: self.api_keys.get(provider),
            default_llm_provider="openai",
            sender_name="Acme Roofing",
        )


@pytest.fixture
def fake_services():
    return FakeServices()
