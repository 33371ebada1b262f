"""
Services package for the NI 43-101 extraction application.

Contains:
- pdf_service: PDF validation, page counts and text extraction
- ai: OpenAI integration for report extraction
- metrics / transform: derived metrics and record building
- storage: private owner-prefixed PDF storage
- repository / filtering / export: record persistence and table views
"""

from .ai import AIService
from .pdf_service import PDFService
from .storage import StorageService

__all__ = ["PDFService", "AIService", "StorageService"]
