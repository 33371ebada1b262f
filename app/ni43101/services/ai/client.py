"""
OpenAI client wrapper for document extraction.

Sends either the PDF itself (native document input) or extracted text to
the chat-completions API and returns the model's raw reply text. SDK
errors are translated here into the typed ``AIServiceError`` family, so
nothing upstream needs to look at vendor error messages.
"""

import base64
import json
import logging
import re
from typing import Any

from .exceptions import (
    AIAuthenticationError,
    AIServiceError,
    DocumentTooLargeError,
    ExtractionTimeoutError,
    MalformedReplyError,
    RateLimitedError,
    ServiceOverloadedError,
)

logger = logging.getLogger(__name__)

# Provider messages that mean the document exceeded a page or size ceiling.
SIZE_LIMIT_PATTERN = re.compile(
    r"PDF pages|context[_ ]length|page limit|request too large",
    re.IGNORECASE,
)

_OVERLOADED_STATUS = {500, 502, 503, 504, 529}


def classify_api_error(error: Exception) -> AIServiceError:
    """
    Translate an OpenAI SDK exception into a typed ``AIServiceError``.

    Args:
        error: Exception raised by the SDK.

    Returns:
        The matching typed error, carrying the original message.
    """
    import openai

    message = str(error)

    if isinstance(error, openai.APITimeoutError):
        return ExtractionTimeoutError()
    if isinstance(error, openai.APIConnectionError):
        return ServiceOverloadedError()
    if isinstance(error, openai.RateLimitError):
        return RateLimitedError()
    if isinstance(error, openai.AuthenticationError):
        return AIAuthenticationError()
    if isinstance(error, openai.APIStatusError):
        if error.status_code == 413:
            return DocumentTooLargeError()
        if error.status_code in (400, 422) and SIZE_LIMIT_PATTERN.search(message):
            return DocumentTooLargeError()
        if error.status_code in _OVERLOADED_STATUS:
            return ServiceOverloadedError()
    return AIServiceError(f"AI request failed: {message}")


class AIClient:
    """
    Thin handle around the OpenAI SDK.

    Built once at application startup and injected wherever an extraction
    call is made. With no API key the client runs in mock mode and returns
    a canned, schema-valid reply.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4.1",
        timeout: float = 120.0,
        max_tokens: int = 8000,
        use_mock: bool = False,
    ):
        """
        Initialize the AI client.

        Args:
            api_key: OpenAI API key. Mock mode is used when empty.
            model: OpenAI model to use (must accept PDF file input).
            timeout: Per-request timeout in seconds.
            max_tokens: Reply token budget.
            use_mock: If True, return mock data instead of calling OpenAI.
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.use_mock = use_mock or not self.api_key
        self._client = None

        if self.use_mock:
            logger.warning(
                "AI client running in MOCK MODE. Set OPENAI_API_KEY in .env for real extraction."
            )

    @property
    def client(self):
        """Lazy-load the OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise AIServiceError(
                    "OpenAI API key not provided. Set OPENAI_API_KEY environment variable."
                )
            from openai import OpenAI

            # Retries are off: transient failures surface to the caller.
            self._client = OpenAI(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def complete_with_document(
        self,
        pdf_bytes: bytes,
        filename: str,
        system_prompt: str,
        prompt: str,
    ) -> str:
        """
        Send the PDF as a native file part along with ``prompt``.

        Returns:
            The model's reply text.
        """
        if self.use_mock:
            logger.info("Extracting '%s' (MOCK MODE, native document)", filename)
            return mock_reply()

        encoded = base64.b64encode(pdf_bytes).decode("utf-8")
        content = [
            {
                "type": "file",
                "file": {
                    "filename": filename,
                    "file_data": f"data:application/pdf;base64,{encoded}",
                },
            },
            {"type": "text", "text": prompt},
        ]
        return self._complete(system_prompt, content)

    def complete_with_text(self, system_prompt: str, prompt: str) -> str:
        """
        Send a text-only prompt.

        Returns:
            The model's reply text.
        """
        if self.use_mock:
            logger.info("Extracting (MOCK MODE, text prompt of %d chars)", len(prompt))
            return mock_reply()

        return self._complete(system_prompt, prompt)

    def _complete(self, system_prompt: str, content: str | list[dict[str, Any]]) -> str:
        import openai

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": content},
                ],
            )
        except openai.OpenAIError as e:
            typed = classify_api_error(e)
            logger.error("OpenAI request failed (%s): %s", type(typed).__name__, e)
            raise typed from e

        text = response.choices[0].message.content if response.choices else None
        if not text:
            raise MalformedReplyError("No text response from AI")
        return text

    def ping(self) -> bool:
        """Return True if the provider answers a model lookup (always True in mock mode)."""
        if self.use_mock:
            return True
        try:
            self.client.models.retrieve(self.model)
            return True
        except Exception as e:
            logger.warning("AI provider unreachable: %s", e)
            return False


def mock_reply() -> str:
    """Return a canned extraction reply for development."""
    return json.dumps(
        {
            "metadata": {
                "issuer_name": "Mock Lithium Corp.",
                "project_name": "Mock Lake Project",
                "effective_date": "2024-01-15",
                "report_stage": "PEA",
            },
            "project_basics": {
                "primary_commodity": "lithium",
                "secondary_commodities": ["tantalum"],
                "country": "Canada",
                "province_state": "Quebec",
            },
            "resource_estimate": {
                "total_indicated_mt": 25.0,
                "indicated_avg_grade": "1.2% Li2O",
                "total_inferred_mt": 10.0,
                "inferred_avg_grade": "1.1% Li2O",
                "total_measured_mt": None,
                "measured_avg_grade": None,
                "cutoff_grade": "0.4% Li2O",
                "resource_date": "2023-11-30",
            },
            "economics": {
                "has_economic_study": True,
                "npv_aftertax_musd": 850.0,
                "npv_discount_rate": 8,
                "irr_aftertax_percent": 32.5,
                "capex_musd": 420.0,
                "opex_per_unit": "$650/t SC6",
                "payback_years": 2.5,
                "mine_life_years": 18,
                "commodity_price_assumption": "$1,500/t SC6",
            },
            "risk_assessment": {
                "metallurgy_risk": "moderate",
                "metallurgy_notes": "DMS flowsheet piloted (MOCK)",
                "permitting_risk": "low",
                "permitting_notes": "Environmental baseline complete (MOCK)",
                "infrastructure_risk": "low",
                "geopolitical_risk": "low",
            },
            "investment_analysis": {
                "investigation_priority": "medium",
                "priority_rationale": "DEVELOPMENT MODE: mock extraction. Set OPENAI_API_KEY for real extraction.",
                "next_catalyst": "PFS expected",
                "catalyst_timeline": "Q2 2026",
                "red_flags": [],
                "positive_signals": ["Tier-1 jurisdiction"],
                "magellan_score": 7,
            },
            "derived_metrics": {
                "indicated_inferred_ratio": 2.5,
                "resource_confidence": "high",
            },
        }
    )
