"""
Report extraction with native-document input and a plain-text fallback.

Flow:
    native attempt --ok--> parse --> validate
    native attempt --DocumentTooLargeError--> text fallback --> parse --> validate
    anything else --> error propagates (no retries)
"""

import asyncio
import json
import logging
import re
from typing import Any

from ..pdf_service import PDFService
from .client import AIClient
from .exceptions import DocumentTooLargeError, MalformedReplyError
from .validation import ExtractionPayload, validate_extraction_payload

logger = logging.getLogger(__name__)


# =============================================================================
# Extraction Prompts
# =============================================================================

EXTRACTION_SYSTEM_PROMPT = """You are an expert mining analyst specializing in NI 43-101 technical reports. Your task is to extract key investment metrics from these reports with high accuracy.

Focus on the Magellan thesis: identifying projects where geological uncertainty is collapsing faster than market pricing. Look for:
- High Indicated/Inferred ratios (geological confidence improving)
- Stage progression signals
- Low metallurgical/permitting risk
- Clear catalysts

Extract data conservatively - if a field is unclear or not present, use null rather than guessing."""

EXTRACTION_PROMPT = """Extract the following fields from this NI 43-101 technical report. Return ONLY valid JSON with no additional text.

{
  "metadata": {
    "issuer_name": "string - Company name (issuer of the report)",
    "project_name": "string - Name of the mineral project",
    "effective_date": "string - Report effective date (YYYY-MM-DD format)",
    "report_stage": "string - One of: 'Preliminary Assessment' | 'PEA' | 'Pre-Feasibility' | 'PFS' | 'Feasibility' | 'FS' | 'Resource Update' | 'Technical Report'"
  },
  "project_basics": {
    "primary_commodity": "string - Main commodity (e.g., 'lithium', 'copper', 'gold', 'rare earths', 'nickel', 'cobalt')",
    "secondary_commodities": ["array of strings - Other commodities if polymetallic"],
    "country": "string - Country where project is located",
    "province_state": "string - Province, state, or region"
  },
  "resource_estimate": {
    "total_indicated_mt": "number or null - Total Indicated resource in million tonnes",
    "indicated_avg_grade": "string or null - Average grade of Indicated resource with units (e.g., '1.2% Li2O', '0.5 g/t Au')",
    "total_inferred_mt": "number or null - Total Inferred resource in million tonnes",
    "inferred_avg_grade": "string or null - Average grade of Inferred resource with units",
    "total_measured_mt": "number or null - Total Measured resource if available",
    "measured_avg_grade": "string or null - Average grade of Measured resource",
    "cutoff_grade": "string or null - Cutoff grade used for resource estimation",
    "resource_date": "string or null - Date of resource estimate (YYYY-MM-DD)"
  },
  "economics": {
    "has_economic_study": "boolean - true if report contains NPV/IRR analysis",
    "npv_aftertax_musd": "number or null - After-tax NPV in millions USD",
    "npv_discount_rate": "number or null - Discount rate used for NPV (e.g., 8)",
    "irr_aftertax_percent": "number or null - After-tax IRR as percentage",
    "capex_musd": "number or null - Initial capital expenditure in millions USD",
    "opex_per_unit": "string or null - Operating cost per unit with units (e.g., '$4,500/t Li2CO3')",
    "payback_years": "number or null - Payback period in years",
    "mine_life_years": "number or null - Projected mine life in years",
    "commodity_price_assumption": "string or null - Price assumption used (e.g., '$20,000/t Li2CO3')"
  },
  "risk_assessment": {
    "metallurgy_risk": "string - One of: 'low' | 'moderate' | 'high' - Based on: proven flowsheet = low, piloted = moderate, conceptual = high",
    "metallurgy_notes": "string or null - Brief explanation of metallurgy status",
    "permitting_risk": "string - One of: 'low' | 'moderate' | 'high' - Based on: permitted = low, in progress = moderate, not started or contested = high",
    "permitting_notes": "string or null - Brief explanation of permitting status",
    "infrastructure_risk": "string - One of: 'low' | 'moderate' | 'high' - Based on proximity to power, water, roads",
    "geopolitical_risk": "string - One of: 'low' | 'moderate' | 'high' - Based on jurisdiction stability"
  },
  "investment_analysis": {
    "investigation_priority": "string - One of: 'high' | 'medium' | 'low' | 'pass'",
    "priority_rationale": "string - 2-3 sentence explanation of priority rating",
    "next_catalyst": "string or null - Expected next material event (e.g., 'PFS expected Q2 2026', 'Drill results pending')",
    "catalyst_timeline": "string or null - Expected timing of next catalyst",
    "red_flags": ["array of strings - Any concerns (e.g., 'High metallurgical complexity', 'No clear path to permitting')"],
    "positive_signals": ["array of strings - Bullish indicators (e.g., 'Resource upgrade in progress', 'Proven jurisdiction')"],
    "magellan_score": "number 1-10 - How well does this fit the Magellan thesis (geological uncertainty collapsing faster than market pricing)?"
  },
  "derived_metrics": {
    "indicated_inferred_ratio": "number or null - Calculated as total_indicated_mt / total_inferred_mt",
    "resource_confidence": "string - 'high' if ratio > 2, 'moderate' if 0.5-2, 'low' if < 0.5"
  }
}

IMPORTANT RULES:
1. Return ONLY the JSON object, no markdown formatting or explanations
2. Use null for fields that cannot be determined from the report
3. For grades, always include units
4. Convert all resource tonnages to MILLION tonnes
5. Convert all currency values to USD millions
6. For risk assessments, err on the side of caution (if unclear, rate as 'moderate')
7. The Magellan score should reflect: high Ind/Inf ratio + low risk + clear catalysts = high score"""

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def build_text_prompt(document_text: str) -> str:
    """Prompt used by the text fallback: instructions followed by the document."""
    return f"{EXTRACTION_PROMPT}\n\n---\n\nDOCUMENT TEXT:\n\n{document_text}"


def parse_reply(text: str) -> dict[str, Any]:
    """
    Parse the model's reply as a JSON object.

    Markdown code fences (```json ... ```) around the object are removed.

    Raises:
        MalformedReplyError: If the reply is not a JSON object.
    """
    if not text or not text.strip():
        raise MalformedReplyError("No text response from AI")

    cleaned = _FENCE_PATTERN.sub("", text.strip()).strip()

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error("Failed to parse extraction response: %s", cleaned[:500])
        raise MalformedReplyError(f"Invalid JSON in extraction response: {e}") from e

    if not isinstance(data, dict):
        raise MalformedReplyError(
            f"Extraction response must be a JSON object, got {type(data).__name__}"
        )
    return data


# =============================================================================
# Main Extraction Functions
# =============================================================================


async def _extract_native(pdf_bytes: bytes, filename: str, client: AIClient) -> ExtractionPayload:
    logger.info("Native document extraction for '%s' (%d bytes)", filename, len(pdf_bytes))
    reply = await asyncio.to_thread(
        client.complete_with_document,
        pdf_bytes,
        filename,
        EXTRACTION_SYSTEM_PROMPT,
        EXTRACTION_PROMPT,
    )
    return validate_extraction_payload(parse_reply(reply))


async def _extract_from_text(
    pdf_bytes: bytes,
    filename: str,
    client: AIClient,
    pdf_service: PDFService,
) -> ExtractionPayload:
    document_text = await asyncio.to_thread(pdf_service.extract_truncated_text, pdf_bytes)
    logger.info(
        "Text fallback extraction for '%s' (%d chars)",
        filename,
        len(document_text),
    )
    reply = await asyncio.to_thread(
        client.complete_with_text,
        EXTRACTION_SYSTEM_PROMPT,
        build_text_prompt(document_text),
    )
    return validate_extraction_payload(parse_reply(reply))


async def extract_report(
    pdf_bytes: bytes,
    filename: str,
    client: AIClient,
    pdf_service: PDFService,
) -> ExtractionPayload:
    """
    Extract the structured payload from a technical report.

    Tries native PDF input first. Only a ``DocumentTooLargeError`` (page or
    size ceiling) switches to the text fallback, which runs exactly once.
    Every other error propagates unchanged.

    Args:
        pdf_bytes: The PDF document.
        filename: Original filename (sent with the file part, used in logs).
        client: The AI client handle.
        pdf_service: Used to pull text for the fallback.

    Returns:
        The validated extraction payload.

    Raises:
        AIServiceError: Typed provider, parse or validation failure.
        PDFProcessingError: If fallback text cannot be extracted.
    """
    try:
        return await _extract_native(pdf_bytes, filename, client)
    except DocumentTooLargeError:
        logger.info("PDF '%s' too large for native input, falling back to text extraction", filename)

    return await _extract_from_text(pdf_bytes, filename, client, pdf_service)
