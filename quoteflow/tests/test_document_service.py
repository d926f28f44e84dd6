import re
from datetime import datetime, timezone

import pytest

from quoteflow.services.auth_service import create_document_token, verify_document_token
from quoteflow.services.document_service import QuoteDocumentGenerator, resolve_storage_path
from quoteflow.services.run_types import ContactInfo

FIXED_NOW = datetime(2025, 3, 4, 5, 6, 7, tzinfo=timezone.utc)


@pytest.fixture
def storage(tmp_path, monkeypatch):
    monkeypatch.setenv("DOCUMENT_STORAGE_DIR", str(tmp_path))
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://quotes.example.com/")
    return tmp_path


def test_generate_writes_scoped_file_and_signs_url(storage):
    contact = ContactInfo(name="Jane O'Doe", email="jane@x.com", address="1 Main St")
    result = QuoteDocumentGenerator("widget-1", now=lambda: FIXED_NOW).generate(contact, 120.5)

    assert result.error is None
    assert re.fullmatch(r"widget-1/quote_Jane_ODoe_20250304050607_[0-9a-f]{32}\.html", result.storage_path)
    html = (storage / result.storage_path).read_text(encoding="utf-8")
    assert "1 Main St" in html
    assert "120.5" in html
    assert "2025-04-03" in html

    assert result.url.startswith("https://quotes.example.com/documents/")
    token = result.url.rsplit("/", 1)[1]
    assert verify_document_token(token) == result.storage_path


def test_generator_is_callable_as_collaborator(storage):
    result = QuoteDocumentGenerator("../evil", now=lambda: FIXED_NOW)(ContactInfo(email="a@b.com"), 10)
    assert result.storage_path.startswith("evil/quote_abcom_")
    assert (storage / result.storage_path).is_file()


def test_resolve_storage_path_refuses_escape(storage):
    assert resolve_storage_path("w/quote.html") == (storage / "w/quote.html").resolve()
    assert resolve_storage_path("../../etc/passwd") is None


def test_download_serves_stored_document(client, storage):
    (storage / "w").mkdir()
    (storage / "w" / "quote.html").write_text("<p>quote body</p>", encoding="utf-8")

    r = client.get(f"/documents/{create_document_token('w/quote.html', 60)}")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert "quote body" in r.text


def test_download_rejects_bad_or_expired_tokens(client, storage):
    assert client.get("/documents/not-a-token").status_code == 403
    assert client.get(f"/documents/{create_document_token('w/quote.html', -5)}").status_code == 403


def test_download_missing_file_404(client, storage):
    assert client.get(f"/documents/{create_document_token('w/gone.html', 60)}").status_code == 404


def test_same_name_in_same_second_gets_separate_documents(storage):
    generator = QuoteDocumentGenerator("widget-1", now=lambda: FIXED_NOW)
    first = generator.generate(ContactInfo(name="John Smith", email="john.a@x.com"), 50)
    second = generator.generate(ContactInfo(name="John Smith", email="john.b@x.com"), 75)

    assert first.storage_path != second.storage_path
    assert "john.a@x.com" in (storage / first.storage_path).read_text(encoding="utf-8")
    assert "john.b@x.com" in (storage / second.storage_path).read_text(encoding="utf-8")
    assert verify_document_token(first.url.rsplit("/", 1)[1]) == first.storage_path
