from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import UUID

import pytest
from fastapi import BackgroundTasks
from sqlalchemy import select

from docsafe.core.exceptions import ConflictException, ValidationException
from docsafe.models.activity import Activity
from docsafe.models.document import Document, DocumentStatus
from docsafe.models.ocr_result import OcrResult
from docsafe.models.task import Task, TaskStatus, TaskType
from docsafe.services.documents import document_service
from docsafe.services.ocr import INTERRUPTED_MESSAGE, OcrJobService, OcrPage, ocr_job_service
from docsafe.services.tasks import task_service
from docsafe.utils.local_storage import LocalStorageBackend

from factories import auth_headers, identity_of, seed_document, seed_user


class FlakyEngine:
    name = "flaky"
    needs_content = False

    def __init__(self, failures: int = 0, pages: int = 2):
        self.failures = failures
        self.pages = pages
        self.calls = 0
        self.seen: List[bytes] = []

    async def recognize(self, content: bytes, mime_type: Optional[str]) -> List[OcrPage]:
        self.calls += 1
        self.seen.append(content)
        if self.calls <= self.failures:
            raise RuntimeError("engine down")
        return [
            OcrPage(page_number=i, text=f"página {i}", confidence=90.0, language="es")
            for i in range(1, self.pages + 1)
        ]


async def _fresh(db, model, pk):
    stmt = select(model).where(model.id == pk).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


async def _run(service: OcrJobService, db, user, document):
    background_tasks = BackgroundTasks()
    task = await service.start(db, identity_of(user), document.id, background_tasks)
    await background_tasks()
    return task


@pytest.mark.asyncio
async def test_ocr_over_http_completes_and_can_be_polled(client, db) -> None:
    owner = await seed_user(db, "user_owner")
    doc = await seed_document(db, owner, "Factura")
    headers = auth_headers("user_owner")

    response = await client.post("/api/documents/ocr", json={"document_id": str(doc.id)}, headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Procesamiento OCR iniciado"
    assert body["status"] == "processing"

    task = (await client.get(f"/api/tasks/{body['task_id']}", headers=headers)).json()
    assert task["task_type"] == "ocr_processing"
    assert task["status"] == "completed"
    assert task["progress"] == 100
    assert task["attempts"] == 1
    assert task["max_attempts"] == 3

    document = await _fresh(db, Document, doc.id)
    assert document.status == DocumentStatus.PROCESSED
    results = (await db.execute(select(OcrResult).where(OcrResult.document_id == doc.id))).scalars().all()
    assert len(results) == 1
    assert results[0].confidence == 85.5
    assert results[0].raw_data["engine"] == "mock-ocr"

    actions = (await db.execute(select(Activity.action).order_by(Activity.created_at))).scalars().all()
    assert actions == ["ocr_started", "ocr_completed"]


@pytest.mark.asyncio
async def test_unknown_task_is_not_found(client) -> None:
    response = await client.get(
        "/api/tasks/00000000-0000-0000-0000-000000000000", headers=auth_headers("user_emp")
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Tarea no encontrada"}


@pytest.mark.asyncio
async def test_upload_with_ocr_flag_queues_a_task(client, db, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(document_service, "_storage", LocalStorageBackend(str(tmp_path)))

    response = await client.post(
        "/api/documents/upload",
        files={"file": ("scan.png", b"\x89PNG", "image/png")},
        data={"activateOCR": "true"},
        headers=auth_headers("user_emp"),
    )

    uploaded = response.json()["document"]
    assert uploaded["ocr_enabled"] is True
    assert uploaded["task_id"]
    document = await _fresh(db, Document, UUID(uploaded["id"]))
    assert document.status == DocumentStatus.PROCESSED


@pytest.mark.asyncio
async def test_retry_succeeds_on_second_attempt(db) -> None:
    user = await seed_user(db)
    doc = await seed_document(db, user, "Escaneo")
    engine = FlakyEngine(failures=1)

    task = await _run(OcrJobService(engine=engine), db, user, doc)

    task = await _fresh(db, Task, task.id)
    assert task.status == TaskStatus.COMPLETED
    assert task.attempts == 2
    assert task.started_at is not None and task.completed_at is not None
    assert engine.calls == 2

    document = await _fresh(db, Document, doc.id)
    assert document.status == DocumentStatus.PROCESSED
    assert document.page_count == 2
    pages = (
        await db.execute(select(OcrResult.page_number).where(OcrResult.document_id == doc.id).order_by(OcrResult.page_number))
    ).scalars().all()
    assert pages == [1, 2]


@pytest.mark.asyncio
async def test_exhausted_retries_dead_letter_the_task(db) -> None:
    user = await seed_user(db)
    doc = await seed_document(db, user, "Ilegible")
    engine = FlakyEngine(failures=10)

    task = await _run(OcrJobService(engine=engine), db, user, doc)

    task = await _fresh(db, Task, task.id)
    assert task.status == TaskStatus.DEAD_LETTER
    assert task.attempts == 3
    assert task.error_message == "engine down"
    assert engine.calls == 3

    document = await _fresh(db, Document, doc.id)
    assert document.status == DocumentStatus.OCR_FAILED
    assert document.error_message == "engine down"
    assert (await db.execute(select(OcrResult))).scalars().all() == []


@pytest.mark.asyncio
async def test_engine_reads_stored_bytes_when_needed(db, tmp_path) -> None:
    user = await seed_user(db)
    storage = LocalStorageBackend(str(tmp_path))
    await storage.upload("u/2024/01/1_abcdef_scan.pdf", b"%PDF scan")
    doc = await seed_document(db, user, "Scan", storage_path="u/2024/01/1_abcdef_scan.pdf")
    engine = FlakyEngine()
    engine.needs_content = True

    original = document_service._storage
    document_service._storage = storage
    try:
        await _run(OcrJobService(engine=engine), db, user, doc)
    finally:
        document_service._storage = original

    assert engine.seen == [b"%PDF scan"]


@pytest.mark.asyncio
async def test_document_deleted_before_processing_fails_the_task(db) -> None:
    user = await seed_user(db)
    doc = await seed_document(db, user, "Efímero")
    service = OcrJobService(engine=FlakyEngine())
    background_tasks = BackgroundTasks()
    task = await service.start(db, identity_of(user), doc.id, background_tasks)

    await db.delete(doc)
    await db.commit()
    await background_tasks()

    task = await _fresh(db, Task, task.id)
    assert task.status == TaskStatus.FAILED
    assert task.error_message == "Documento no encontrado"


@pytest.mark.asyncio
async def test_start_rejects_bad_requests(db) -> None:
    user = await seed_user(db)
    busy = await seed_document(db, user, "Ocupado", status=DocumentStatus.PROCESSING)
    done = await seed_document(db, user, "Listo", status=DocumentStatus.PROCESSED)
    service = OcrJobService(engine=FlakyEngine())

    with pytest.raises(ValidationException):
        await service.start(db, identity_of(user), None, BackgroundTasks())
    with pytest.raises(ConflictException) as exc_info:
        await service.start(db, identity_of(user), busy.id, BackgroundTasks())
    assert exc_info.value.detail == "El documento ya se está procesando"
    with pytest.raises(ConflictException):
        await service.start(db, identity_of(user), done.id, BackgroundTasks())

    assert (await db.execute(select(Task))).scalars().all() == []


@pytest.mark.asyncio
async def test_recover_interrupted_dead_letters_stuck_jobs(db) -> None:
    user = await seed_user(db)
    stuck = await seed_document(db, user, "Atascado", status=DocumentStatus.PROCESSING)
    running = task_service.create_task(
        db, TaskType.OCR_PROCESSING, metadata={"document_id": stuck.id}, max_attempts=3
    )
    task_service.set_status(running, TaskStatus.RUNNING)
    finished = task_service.create_task(db, TaskType.OCR_PROCESSING, metadata={"document_id": stuck.id})
    task_service.set_status(finished, TaskStatus.COMPLETED)
    await db.commit()

    # Fresh tasks may belong to a live worker
    assert await ocr_job_service.recover_interrupted() == 0
    recovered = await ocr_job_service.recover_interrupted(now=datetime.now(timezone.utc) + timedelta(hours=1))

    assert recovered == 1
    running = await _fresh(db, Task, running.id)
    assert running.status == TaskStatus.DEAD_LETTER
    assert running.error_message == INTERRUPTED_MESSAGE
    assert (await _fresh(db, Task, finished.id)).status == TaskStatus.COMPLETED

    document = await _fresh(db, Document, stuck.id)
    assert document.status == DocumentStatus.OCR_FAILED
    assert document.error_message == INTERRUPTED_MESSAGE


@pytest.mark.asyncio
async def test_startup_recovery_leaves_queued_jobs_alone(db) -> None:
    user = await seed_user(db)
    doc = await seed_document(db, user, "En cola")
    service = OcrJobService(engine=FlakyEngine())
    background_tasks = BackgroundTasks()
    task = await service.start(db, identity_of(user), doc.id, background_tasks)

    assert await service.recover_interrupted() == 0
    await background_tasks()

    assert (await _fresh(db, Task, task.id)).status == TaskStatus.COMPLETED
    assert (await _fresh(db, Document, doc.id)).status == DocumentStatus.PROCESSED


@pytest.mark.asyncio
async def test_recovered_job_is_not_resumed_by_its_worker(db) -> None:
    user = await seed_user(db)
    doc = await seed_document(db, user, "Reiniciado")
    engine = FlakyEngine()
    service = OcrJobService(engine=engine)
    background_tasks = BackgroundTasks()
    task = await service.start(db, identity_of(user), doc.id, background_tasks)

    later = datetime.now(timezone.utc) + timedelta(hours=1)
    assert await service.recover_interrupted(now=later) == 1
    await background_tasks()

    assert engine.calls == 0
    task = await _fresh(db, Task, task.id)
    assert task.status == TaskStatus.DEAD_LETTER
    assert task.error_message == INTERRUPTED_MESSAGE
    document = await _fresh(db, Document, doc.id)
    assert document.status == DocumentStatus.OCR_FAILED
    assert document.error_message == INTERRUPTED_MESSAGE


class RecoveringEngine(FlakyEngine):
    """Engine during which another process runs recovery."""

    def __init__(self, service: OcrJobService):
        super().__init__()
        self.service = service

    async def recognize(self, content: bytes, mime_type: Optional[str]) -> List[OcrPage]:
        await self.service.recover_interrupted(stale_after=timedelta(0), now=datetime.now(timezone.utc) + timedelta(seconds=1))
        return await super().recognize(content, mime_type)


@pytest.mark.asyncio
async def test_result_is_dropped_when_task_settled_mid_run(db) -> None:
    user = await seed_user(db)
    doc = await seed_document(db, user, "Carrera")
    service = OcrJobService()
    service._engine = RecoveringEngine(service)

    task = await _run(service, db, user, doc)

    task = await _fresh(db, Task, task.id)
    assert task.status == TaskStatus.DEAD_LETTER
    assert task.error_message == INTERRUPTED_MESSAGE
    document = await _fresh(db, Document, doc.id)
    assert document.status == DocumentStatus.OCR_FAILED
    assert (await db.execute(select(OcrResult))).scalars().all() == []
