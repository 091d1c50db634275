# src/disclosures/ingestion/ocr.py
import logging
from abc import ABC, abstractmethod

import fitz  # PyMuPDF

from disclosures.ingestion.storage import BlobStore

logger = logging.getLogger(__name__)


class TextExtractor(ABC):
    @abstractmethod
    def extract_text(self, location: str) -> str:
        """Return the text of the document stored at ``location``. Errors propagate."""
        pass


class PdfTextExtractor(TextExtractor):
    """Text extraction with PyMuPDF.

    Pages with an embedded text layer are read directly; scanned pages go
    through PyMuPDF's Tesseract OCR (``tessdata`` must be installed).
    """

    def __init__(self, blob_store: BlobStore, ocr_language: str = "eng", ocr_dpi: int = 300):
        self.blob_store = blob_store
        self.ocr_language = ocr_language
        self.ocr_dpi = ocr_dpi

    def extract_text(self, location: str) -> str:
        pdf_bytes = self.blob_store.get(location)
        pages: list[str] = []
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            for page_num, page in enumerate(doc):
                page_text = page.get_text("text", sort=True)
                if not page_text.strip():
                    logger.debug("Page %d of %s has no text layer, running OCR", page_num, location)
                    textpage = page.get_textpage_ocr(language=self.ocr_language, dpi=self.ocr_dpi, full=True)
                    page_text = page.get_text("text", textpage=textpage, sort=True)
                pages.append(page_text)
        return "\n".join(pages).strip()
