"""
AI service package for NI 43-101 report extraction.

This package provides modular AI functionality split into:
- client: OpenAI SDK wrapper and provider error classification
- extraction: Prompts, reply parsing and the native/text fallback flow
- validation: Value normalization and the typed seven-section payload
- exceptions: Typed errors carrying HTTP status and user message

The AIService class bundles a client and a PDF service so route handlers
need a single injected object.
"""

import logging

from ..pdf_service import PDFService
from .client import AIClient, classify_api_error
from .exceptions import (
    AIAuthenticationError,
    AIServiceError,
    DocumentTooLargeError,
    ExtractionTimeoutError,
    ExtractionValidationError,
    MalformedReplyError,
    PayloadValidationError,
    RateLimitedError,
    ServiceOverloadedError,
)
from .extraction import extract_report, parse_reply
from .validation import ExtractionPayload, validate_extraction_payload

logger = logging.getLogger(__name__)

__all__ = [
    "AIClient",
    "AIService",
    "AIServiceError",
    "AIAuthenticationError",
    "DocumentTooLargeError",
    "ExtractionPayload",
    "ExtractionTimeoutError",
    "ExtractionValidationError",
    "MalformedReplyError",
    "PayloadValidationError",
    "RateLimitedError",
    "ServiceOverloadedError",
    "classify_api_error",
    "extract_report",
    "parse_reply",
    "validate_extraction_payload",
]


class AIService:
    """
    Service for AI-powered report extraction.

    Holds the AI client and the PDF service used by the text fallback.
    One instance is built at application startup and kept on ``app.state``.
    """

    def __init__(self, client: AIClient, pdf_service: PDFService):
        self.client = client
        self.pdf_service = pdf_service

    @property
    def use_mock(self) -> bool:
        return self.client.use_mock

    async def extract_report(self, pdf_bytes: bytes, filename: str) -> ExtractionPayload:
        """
        Extract the structured payload from a PDF.

        Delegates to the extraction module.
        """
        return await extract_report(
            pdf_bytes,
            filename,
            client=self.client,
            pdf_service=self.pdf_service,
        )
