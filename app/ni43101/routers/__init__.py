"""
Routers package for FastAPI endpoints.

Organized by domain:
- files: PDF upload and owner-only retrieval
- extract: AI extraction of an uploaded report
- extractions: Record listing, filters, CSV export and management
- debug: Auth, storage and database reachability
"""

from . import debug, extract, extractions, files

__all__ = ["debug", "extract", "extractions", "files"]
