import asyncio
import io
from typing import List, Optional

import pytesseract
from pdf2image import convert_from_bytes
from PIL import Image

from docsafe.core.config import settings
from docsafe.core.logging import get_logger
from docsafe.services.ocr.engines import OcrPage

logger = get_logger(__name__)

if settings.TESSERACT_CMD:
    pytesseract.pytesseract.tesseract_cmd = settings.TESSERACT_CMD


def _page_confidence(image: Image.Image, language: str) -> Optional[float]:
    data = pytesseract.image_to_data(image, lang=language, output_type=pytesseract.Output.DICT)
    scores = []
    for value in data.get("conf", []):
        try:
            score = float(value)
        except (TypeError, ValueError):
            continue
        # -1 marks layout boxes without a word
        if score >= 0:
            scores.append(score)
    if not scores:
        return None
    return round(sum(scores) / len(scores), 2)


class TesseractOcrEngine:
    """Tesseract through pytesseract; PDFs are rasterized with pdf2image first."""
    name = "tesseract"
    needs_content = True

    def __init__(self, language: Optional[str] = None, dpi: int = 200):
        self.language = language or settings.OCR_LANGUAGE
        self.dpi = dpi

    def _load_pages(self, content: bytes, mime_type: Optional[str]) -> List[Image.Image]:
        if (mime_type or "").lower() == "application/pdf":
            return convert_from_bytes(content, dpi=self.dpi, poppler_path=settings.POPPLER_PATH)
        if (mime_type or "").lower().startswith("image/"):
            image = Image.open(io.BytesIO(content))
            image.load()
            return [image]
        raise ValueError(f"OCR not supported for {mime_type or 'unknown type'}")

    def _recognize_sync(self, content: bytes, mime_type: Optional[str]) -> List[OcrPage]:
        pages = []
        for number, image in enumerate(self._load_pages(content, mime_type), start=1):
            text = pytesseract.image_to_string(image, lang=self.language)
            pages.append(
                OcrPage(
                    page_number=number,
                    text=text,
                    confidence=_page_confidence(image, self.language),
                    language=self.language,
                    raw_data={"engine": self.name, "dpi": self.dpi, "size": list(image.size)},
                )
            )
        logger.info(f"Tesseract recognized {len(pages)} page(s)")
        return pages

    async def recognize(self, content: bytes, mime_type: Optional[str]) -> List[OcrPage]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._recognize_sync, content, mime_type)
