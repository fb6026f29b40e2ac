import asyncio
from datetime import datetime, timedelta
from typing import Callable, List, Optional
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from docsafe.core.config import settings
from docsafe.core.exceptions import ConflictException, ValidationException
from docsafe.core.logging import get_logger
from docsafe.core.permissions import Identity
from docsafe.db.session import AsyncSessionLocal
from docsafe.models.document import Document, DocumentStatus, can_transition
from docsafe.models.ocr_result import OcrResult
from docsafe.models.task import Task, TaskStatus, TaskType
from docsafe.services.activities import activity_service
from docsafe.services.documents.service import document_service, transition_status
from docsafe.services.ocr.engines import OcrEngine, OcrPage, get_engine
from docsafe.db.base import utcnow
from docsafe.services.tasks import FINISHED_STATUSES, task_service

logger = get_logger(__name__)

INTERRUPTED_MESSAGE = "Procesamiento interrumpido por reinicio del servidor"


class OcrJobService:
    """
    OCR as a queued job.

    `start` flips the document to `processing` and records a task row; the
    work itself runs after the response via `BackgroundTasks`, in its own
    session. Engine failures are retried up to `max_attempts` times with a
    fixed delay, after which the task is dead-lettered and the document
    marked `ocr_failed`.
    """

    def __init__(
        self,
        engine: Optional[OcrEngine] = None,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
    ):
        self._engine = engine
        self._session_factory = session_factory

    @property
    def engine(self) -> OcrEngine:
        return self._engine or get_engine()

    @property
    def session_factory(self) -> Callable[[], AsyncSession]:
        return self._session_factory or AsyncSessionLocal

    async def start(
        self,
        db: AsyncSession,
        identity: Identity,
        document_id: Optional[UUID],
        background_tasks: BackgroundTasks,
    ) -> Task:
        if not document_id:
            raise ValidationException("ID de documento requerido")
        document = await document_service.get_document(db, document_id)
        if DocumentStatus(document.status) == DocumentStatus.PROCESSING:
            raise ConflictException("El documento ya se está procesando")
        transition_status(document, DocumentStatus.PROCESSING)
        document.error_message = None

        task = task_service.create_task(
            db,
            TaskType.OCR_PROCESSING,
            description=f"OCR de {document.filename}",
            metadata={"document_id": document.id, "requested_by": identity.id},
            max_attempts=settings.OCR_MAX_ATTEMPTS,
        )
        activity_service.record(
            db,
            identity.id,
            "ocr_started",
            entity_type="document",
            entity_id=document.id,
            metadata={"engine": self.engine.name},
        )
        await db.commit()
        await db.refresh(task)

        background_tasks.add_task(self.process, task.id, document.id, identity.id)
        logger.info(f"OCR queued for document {document.id} (task {task.id})")
        return task

    async def _recognize(self, document: Document) -> List[OcrPage]:
        content = b""
        if self.engine.needs_content:
            content = await document_service.storage.download(document.storage_path)
        return await self.engine.recognize(content, document.mime_type)

    async def process(self, task_id: UUID, document_id: UUID, user_id: Optional[UUID] = None) -> None:
        async with self.session_factory() as db:
            task = await db.get(Task, task_id)
            if task is None:
                logger.error(f"OCR task {task_id} vanished before it ran")
                return
            if task.status in FINISHED_STATUSES:
                logger.warning(f"OCR task {task_id} already {task.status.value}, skipping")
                return
            task_service.set_status(task, TaskStatus.RUNNING)
            await db.commit()

            pages: Optional[List[OcrPage]] = None
            last_error = None
            while task.attempts < task.max_attempts:
                task.attempts += 1
                await db.commit()

                document = await db.get(Document, document_id)
                if document is None:
                    last_error = "Documento no encontrado"
                    break
                try:
                    pages = await self._recognize(document)
                    break
                except Exception as e:
                    last_error = str(e) or e.__class__.__name__
                    logger.warning(
                        f"OCR attempt {task.attempts}/{task.max_attempts} for {document_id} failed: {last_error}"
                    )
                    if task.attempts < task.max_attempts:
                        await asyncio.sleep(settings.OCR_RETRY_DELAY_SECONDS)

            await db.refresh(task)
            if task.status in FINISHED_STATUSES:
                # Recovered while the engine was running
                logger.warning(f"OCR task {task_id} was settled as {task.status.value} while running, dropping result")
                return

            document = await db.get(Document, document_id)
            if pages is not None and document is not None:
                await self._complete(db, task, document, pages, user_id)
            elif document is None:
                task_service.set_status(task, TaskStatus.FAILED, error_message=last_error)
                await db.commit()
                logger.error(f"OCR task {task_id} failed: document {document_id} no longer exists")
            else:
                await self._dead_letter(db, task, document, last_error, user_id)

    async def _complete(
        self,
        db: AsyncSession,
        task: Task,
        document: Document,
        pages: List[OcrPage],
        user_id: Optional[UUID],
    ) -> None:
        for page in pages:
            db.add(
                OcrResult(
                    document_id=document.id,
                    page_number=page.page_number,
                    text_content=page.text,
                    confidence=page.confidence,
                    language=page.language,
                    raw_data=page.raw_data,
                )
            )
        self._settle_document(document, DocumentStatus.PROCESSED)
        if pages:
            document.page_count = len(pages)
        task_service.set_status(task, TaskStatus.COMPLETED, progress=100)
        activity_service.record(
            db,
            user_id,
            "ocr_completed",
            entity_type="document",
            entity_id=document.id,
            metadata={"pages": len(pages), "attempts": task.attempts},
        )
        await db.commit()
        logger.info(f"OCR completed for document {document.id} after {task.attempts} attempt(s)")

    async def _dead_letter(
        self,
        db: AsyncSession,
        task: Task,
        document: Document,
        error: Optional[str],
        user_id: Optional[UUID],
    ) -> None:
        message = error or "Error desconocido"
        self._settle_document(document, DocumentStatus.OCR_FAILED, message)
        task_service.set_status(task, TaskStatus.DEAD_LETTER, error_message=message)
        activity_service.record(
            db,
            user_id,
            "ocr_failed",
            entity_type="document",
            entity_id=document.id,
            metadata={"error": message, "attempts": task.attempts},
        )
        await db.commit()
        logger.error(f"OCR dead-lettered for document {document.id} after {task.attempts} attempt(s): {message}")

    @staticmethod
    def _settle_document(document: Document, target: DocumentStatus, error: Optional[str] = None) -> None:
        current = DocumentStatus(document.status)
        if not can_transition(current, target):
            # Changed by someone else while the job ran
            logger.warning(f"Document {document.id} left as {current.value}, not {target.value}")
            return
        document.status = target
        document.error_message = error

    @staticmethod
    def stale_after() -> timedelta:
        """How long an unfinished task may sit before it counts as abandoned."""
        retry_window = settings.OCR_MAX_ATTEMPTS * settings.OCR_RETRY_DELAY_SECONDS
        return timedelta(seconds=max(settings.OCR_STALE_AFTER_SECONDS, retry_window))

    async def recover_interrupted(
        self,
        now: Optional[datetime] = None,
        stale_after: Optional[timedelta] = None,
    ) -> int:
        """
        Dead-letter OCR tasks a previous process never finished.

        Only tasks untouched for `stale_after` are recovered; younger ones may
        still belong to a live worker.
        """
        cutoff = (now or utcnow()) - (stale_after if stale_after is not None else self.stale_after())
        async with self.session_factory() as db:
            tasks = await task_service.unfinished_tasks(db, [TaskType.OCR_PROCESSING], older_than=cutoff)
            for task in tasks:
                task_service.set_status(task, TaskStatus.DEAD_LETTER, error_message=INTERRUPTED_MESSAGE)
                document_id = task_service.metadata_of(task).get("document_id")
                if not document_id:
                    continue
                try:
                    document = await db.get(Document, UUID(str(document_id)))
                except ValueError:
                    logger.warning(f"Task {task.id} points at an invalid document id {document_id!r}")
                    continue
                if document is not None and DocumentStatus(document.status) == DocumentStatus.PROCESSING:
                    self._settle_document(document, DocumentStatus.OCR_FAILED, INTERRUPTED_MESSAGE)
            await db.commit()

        if tasks:
            logger.warning(f"Recovered {len(tasks)} interrupted OCR task(s)")
        return len(tasks)


ocr_job_service = OcrJobService()
