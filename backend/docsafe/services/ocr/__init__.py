from .engines import MockOcrEngine, OcrEngine, OcrPage, build_engine, get_engine
from .service import INTERRUPTED_MESSAGE, OcrJobService, ocr_job_service

__all__ = [
    "INTERRUPTED_MESSAGE",
    "MockOcrEngine",
    "OcrEngine",
    "OcrJobService",
    "OcrPage",
    "build_engine",
    "get_engine",
    "ocr_job_service",
]
