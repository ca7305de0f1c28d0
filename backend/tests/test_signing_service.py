#!/usr/bin/env python3
"""Tests for the save unit of work: embed, persist, then mark signed"""

import asyncio
import io
import os
import sys
import tempfile
sys.path.append('.')

from pypdf import PdfReader
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from signdesk.services.annotation_store import AnnotationStore
from signdesk.services.coordinate_transformer import CoordinateTransformer, OverlayGeometry
from signdesk.services.editing_session_service import EditingSession, EditingSessionService
from signdesk.services.embedding_serializer import EmbeddingSerializer
from signdesk.services.font_resolver import FontCatalog, FontResolver
from signdesk.services.signing_service import (
    DocumentUpdateIntent,
    SigningService,
    storage_key,
    suggested_file_name,
)
from signdesk.services.storage_service import LocalStorageService, normalize_key
from signdesk.utils.exceptions import (
    NotFoundError,
    PersistenceFailedError,
    SourceFetchFailedError,
    ValidationError,
)


def _make_pdf(page_count=2) -> bytes:
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=letter)
    for index in range(page_count):
        pdf.drawString(72, 720, f"Page {index + 1}")
        pdf.showPage()
    pdf.save()
    return buffer.getvalue()


class FakeFetcher:
    def __init__(self, document_bytes=None, error=None):
        self.document_bytes = document_bytes
        self.error = error
        self.urls = []

    async def fetch(self, url):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.document_bytes


class FakeStorage:
    def __init__(self, error=None):
        self.error = error
        self.uploads = {}

    async def upload(self, content, key):
        if self.error:
            raise self.error
        self.uploads[key] = content
        return f"https://storage.example.com/{key}"


def _session(page_count=2):
    return EditingSession(
        document_id="doc-1",
        user_id="user-1",
        original_url="https://storage.example.com/user-1/original.pdf",
        page_count=page_count,
        store=AnnotationStore(page_count),
    )


def _service(fetcher, storage):
    serializer = EmbeddingSerializer(CoordinateTransformer(), FontResolver(FontCatalog({})))
    return SigningService(fetcher, serializer, storage=storage, default_geometry=OverlayGeometry(500, 600))


def test_save_persists_then_emits_intent():
    session = _session()
    session.store.add("Jane Doe", "arial", 24, "#1e40af", 2)
    storage = FakeStorage()
    intents = []

    result = asyncio.run(
        _service(FakeFetcher(_make_pdf()), storage).save(session, lambda doc_id, intent: intents.append((doc_id, intent)))
    )

    assert list(storage.uploads) == ["user-1/signed-doc-1.pdf"]
    assert intents == [("doc-1", DocumentUpdateIntent(signed_url="https://storage.example.com/user-1/signed-doc-1.pdf"))]
    assert result.intent.to_dict() == {"status": "signed", "signed_url": result.intent.signed_url}
    assert result.file_name == "signed-doc-1.pdf"
    assert result.page_count == 2
    assert len(session.store) == 0

    stored = PdfReader(io.BytesIO(storage.uploads["user-1/signed-doc-1.pdf"]))
    assert "Jane Doe" in stored.pages[1].extract_text()
    print("[PASS] Save persists then emits intent test passed")


def test_save_rejects_empty_session():
    fetcher = FakeFetcher(_make_pdf())
    try:
        asyncio.run(_service(fetcher, FakeStorage()).save(_session(), lambda *args: None))
        assert False, "Should have raised ValidationError"
    except ValidationError as e:
        assert "at least one signature" in e.message
    assert fetcher.urls == []
    print("[PASS] Empty session test passed")


def test_persistence_failure_emits_no_intent():
    session = _session()
    session.store.add("Jane Doe", "arial", 24, "#1e40af", 1)
    intents = []

    try:
        asyncio.run(
            _service(FakeFetcher(_make_pdf()), FakeStorage(PersistenceFailedError("k", "bucket full")))
            .save(session, lambda *args: intents.append(args))
        )
        assert False, "Should have raised PersistenceFailedError"
    except PersistenceFailedError as e:
        assert e.stage == "persist"

    assert intents == []
    assert len(session.store) == 1
    print("[PASS] Persistence failure test passed")


def test_source_fetch_failure_uploads_nothing():
    session = _session()
    session.store.add("Jane Doe", "arial", 24, "#1e40af", 1)
    storage = FakeStorage()

    try:
        asyncio.run(
            _service(FakeFetcher(error=SourceFetchFailedError(session.original_url, "HTTP 404")), storage)
            .save(session, lambda *args: None)
        )
        assert False, "Should have raised SourceFetchFailedError"
    except SourceFetchFailedError as e:
        assert e.stage == "source_fetch"
    assert storage.uploads == {}
    print("[PASS] Source fetch failure test passed")


def test_render_does_not_persist():
    session = _session()
    session.store.add("Jane Doe", "arial", 24, "#1e40af", 1)
    storage = FakeStorage()

    result = asyncio.run(_service(FakeFetcher(_make_pdf()), storage).render(session))

    assert result.page_count == 2
    assert storage.uploads == {}
    assert len(session.store) == 1
    print("[PASS] Render without persist test passed")


def test_storage_keys():
    assert suggested_file_name("abc") == "signed-abc.pdf"
    assert storage_key("u1", "abc") == "u1/signed-abc.pdf"
    assert normalize_key("/u1/signed-abc.pdf") == "u1/signed-abc.pdf"
    for bad in ["", "../etc/passwd", "u1/../../x.pdf"]:
        try:
            normalize_key(bad)
            assert False, f"Should have rejected {bad!r}"
        except PersistenceFailedError:
            pass
    print("[PASS] Storage key test passed")


def test_local_storage_upload():
    with tempfile.TemporaryDirectory() as tmp:
        storage = LocalStorageService(tmp, "http://localhost:5000/")
        url = asyncio.run(storage.upload(b"%PDF-1.4 test", "user-1/signed-doc-1.pdf"))

        assert url == "http://localhost:5000/files/user-1/signed-doc-1.pdf"
        with open(os.path.join(tmp, "user-1", "signed-doc-1.pdf"), "rb") as f:
            assert f.read() == b"%PDF-1.4 test"
        assert not os.path.exists(os.path.join(tmp, "user-1", ".signed-doc-1.pdf.tmp"))
    print("[PASS] Local storage upload test passed")


def test_editing_session_registry():
    service = EditingSessionService(FakeFetcher(_make_pdf(3)))
    session = asyncio.run(service.open_session("doc-1", "user-1", "https://example.com/a.pdf"))

    assert session.page_count == 3
    assert service.get_session(session.id) is session

    geometry = session.record_geometry(2, 640, 828)
    assert session.geometry_for(2) == geometry
    assert session.geometry_for(1) is None
    assert session.to_dict()["overlay_geometry"] == {"2": {"width": 640.0, "height": 828.0}}

    session.store.add("Jane", "arial", 24, "#000000", 1)
    assert service.discard_session(session.id) is True
    assert len(session.store) == 0
    assert service.discard_session(session.id) is False
    try:
        service.get_session(session.id)
        assert False, "Should have raised NotFoundError"
    except NotFoundError:
        pass
    print("[PASS] Editing session registry test passed")


class BlockingFetcher:
    """Fetcher that holds the request open until released"""

    def __init__(self, document_bytes):
        self.document_bytes = document_bytes
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def fetch(self, url):
        self.started.set()
        await self.release.wait()
        return self.document_bytes


def test_cancelled_save_persists_nothing():
    session = _session()
    session.store.add("Jane Doe", "arial", 24, "#1e40af", 1)
    storage = FakeStorage()
    intents = []

    async def run():
        fetcher = BlockingFetcher(_make_pdf())
        task = asyncio.create_task(
            _service(fetcher, storage).save(session, lambda *args: intents.append(args))
        )
        await fetcher.started.wait()
        task.cancel()
        try:
            await task
            assert False, "Save should have been cancelled"
        except asyncio.CancelledError:
            pass

    asyncio.run(run())

    assert storage.uploads == {}
    assert intents == []
    assert len(session.store) == 1
    print("[PASS] Cancelled save test passed")


def test_discard_during_save_skips_upload():
    storage = FakeStorage()
    intents = []

    async def run():
        fetcher = BlockingFetcher(_make_pdf())
        registry = EditingSessionService(FakeFetcher(_make_pdf()))
        session = await registry.open_session("doc-1", "user-1", "https://example.com/a.pdf")
        session.store.add("Jane Doe", "arial", 24, "#1e40af", 1)

        task = asyncio.create_task(
            _service(fetcher, storage).save(session, lambda *args: intents.append(args))
        )
        await fetcher.started.wait()
        registry.discard_session(session.id)
        fetcher.release.set()
        try:
            await task
            assert False, "Save of a discarded session should fail"
        except NotFoundError as e:
            assert session.id in e.message

    asyncio.run(run())

    assert storage.uploads == {}
    assert intents == []
    print("[PASS] Discard during save test passed")


if __name__ == "__main__":
    test_save_persists_then_emits_intent()
    test_save_rejects_empty_session()
    test_persistence_failure_emits_no_intent()
    test_source_fetch_failure_uploads_nothing()
    test_render_does_not_persist()
    test_storage_keys()
    test_local_storage_upload()
    test_editing_session_registry()
    test_cancelled_save_persists_nothing()
    test_discard_during_save_skips_upload()
    print("\n[SUCCESS] All signing service tests passed!")
