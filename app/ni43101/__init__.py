"""
NI 43-101 Report Extraction Backend.

A FastAPI service that extracts investment metrics from mining technical
reports (PDF) using AI (OpenAI GPT-4.1), classifies each report and keeps
a per-user table of results with CSV export.
"""

__version__ = "1.0.0"
