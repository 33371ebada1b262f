"""
PDF processing service.

Uses pdf2image (poppler) to inspect page counts and PyMuPDF to pull plain
text for the text-fallback extraction path.
"""

import logging
from typing import BinaryIO

logger = logging.getLogger(__name__)

# Appended when fallback text is cut to the character budget.
TRUNCATION_MARKER = "\n\n[Document truncated due to length...]"

DEFAULT_MAX_TEXT_CHARS = 150_000


class PDFProcessingError(Exception):
    """Raised when a PDF cannot be read or yields no usable content."""

    status_code = 422


def _read_bytes(file_bytes: bytes | BinaryIO) -> bytes:
    if hasattr(file_bytes, "read"):
        return file_bytes.read()
    return file_bytes


def validate_pdf_bytes(pdf_bytes: bytes) -> None:
    """
    Check that ``pdf_bytes`` is non-empty and starts with the PDF header.

    Raises:
        PDFProcessingError: If either check fails.
    """
    if not pdf_bytes:
        raise PDFProcessingError("Empty PDF file provided")

    # Validate PDF magic bytes
    if not pdf_bytes[:4] == b"%PDF":
        raise PDFProcessingError("Invalid PDF file: does not start with PDF header")


def truncate_text(text: str, max_chars: int = DEFAULT_MAX_TEXT_CHARS) -> str:
    """Cut ``text`` to ``max_chars`` characters, appending a truncation marker."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


class PDFService:
    """
    Service for PDF processing operations.

    Page counts come from poppler's ``pdfinfo`` (through pdf2image); text
    comes from PyMuPDF.
    """

    def __init__(self, max_text_chars: int = DEFAULT_MAX_TEXT_CHARS):
        """
        Initialize the PDF service.

        Args:
            max_text_chars: Character budget for fallback text; longer text
                is truncated.
        """
        self.max_text_chars = max_text_chars

    def get_page_count(self, file_bytes: bytes | BinaryIO) -> int:
        """
        Get the total number of pages in a PDF.

        Args:
            file_bytes: PDF file as bytes or file-like object.

        Returns:
            Number of pages in the PDF.

        Raises:
            PDFProcessingError: If page count cannot be determined.
        """
        from pdf2image import pdfinfo_from_bytes
        from pdf2image.exceptions import PDFInfoNotInstalledError

        pdf_bytes = _read_bytes(file_bytes)
        validate_pdf_bytes(pdf_bytes)

        try:
            info = pdfinfo_from_bytes(pdf_bytes)
            return int(info.get("Pages", 0))
        except PDFInfoNotInstalledError as e:
            logger.error("Poppler not installed: %s", e)
            raise PDFProcessingError(
                "Poppler not installed. Install poppler-utils: "
                "brew install poppler (macOS) or apt-get install poppler-utils (Linux)"
            ) from e
        except Exception as e:
            logger.error("Could not get page count: %s", e)
            raise PDFProcessingError(f"Could not get page count: {e}") from e

    def extract_text(self, file_bytes: bytes | BinaryIO) -> str:
        """
        Extract the plain text of every page.

        Args:
            file_bytes: PDF file as bytes or file-like object.

        Returns:
            Page texts joined by blank lines.

        Raises:
            PDFProcessingError: If the PDF is corrupted or has no extractable
                text (e.g. a scanned document without a text layer).
        """
        import fitz

        pdf_bytes = _read_bytes(file_bytes)
        validate_pdf_bytes(pdf_bytes)

        try:
            with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
                pages = [page.get_text("text") for page in doc]
        except Exception as e:
            logger.error("PDF text extraction failed: %s", e)
            raise PDFProcessingError(
                f"Could not extract text from PDF (file may be corrupted): {e}"
            ) from e

        text = "\n\n".join(p.strip() for p in pages if p and p.strip())
        if not text:
            raise PDFProcessingError(
                "Could not extract text from PDF: no text layer found"
            )

        logger.info("Extracted %d characters of text from %d page(s)", len(text), len(pages))
        return text

    def extract_truncated_text(self, file_bytes: bytes | BinaryIO) -> str:
        """Extract text and cut it to this service's character budget."""
        text = self.extract_text(file_bytes)
        truncated = truncate_text(text, self.max_text_chars)
        if len(truncated) != len(text):
            logger.info(
                "Truncated document text from %d to %d characters",
                len(text),
                self.max_text_chars,
            )
        return truncated
