"""OCR engines. `build_engine` picks one from configuration."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Optional, Protocol

from docsafe.core.config import settings


@dataclass
class OcrPage:
    page_number: int
    text: str
    confidence: Optional[float] = None
    language: Optional[str] = None
    raw_data: Dict[str, Any] = field(default_factory=dict)


class OcrEngine(Protocol):
    name: str
    needs_content: bool

    async def recognize(self, content: bytes, mime_type: Optional[str]) -> List[OcrPage]:
        ...


class MockOcrEngine:
    """Deterministic stand-in used in development and tests."""
    name = "mock-ocr"
    needs_content = False

    async def recognize(self, content: bytes, mime_type: Optional[str]) -> List[OcrPage]:
        now = datetime.now(timezone.utc)
        text = (
            f"Documento procesado con OCR - {now.isoformat()}\n\n"
            "Este es un texto de ejemplo extraído del documento.\n"
            "Se detectaron los siguientes elementos:\n"
            f"- Fecha: {now.strftime('%d/%m/%Y')}\n"
            "- Documento: Factura/Recibo\n"
            "- Estado: Procesado correctamente\n\n"
            "El procesamiento OCR se completó exitosamente."
        )
        return [
            OcrPage(
                page_number=1,
                text=text,
                confidence=85.5,
                language="es",
                raw_data={
                    "engine": self.name,
                    "processed_at": now.isoformat(),
                    "confidence_threshold": 75,
                    "pages_processed": 1,
                },
            )
        ]


def build_engine(name: str) -> OcrEngine:
    name = (name or "").strip().lower()
    if name == "mock":
        return MockOcrEngine()
    if name == "tesseract":
        from docsafe.services.ocr.tesseract_engine import TesseractOcrEngine
        return TesseractOcrEngine()
    raise ValueError(f"Unknown OCR_ENGINE: {name!r}")


@lru_cache(maxsize=1)
def get_engine() -> OcrEngine:
    return build_engine(settings.OCR_ENGINE)
