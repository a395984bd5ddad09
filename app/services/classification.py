"""Tax document classification.

Two layers:

1. **Keyword heuristics** — regular expressions over the extracted text and
   the filename. Cheap, deterministic, and good enough for most IRS forms
   because the form number is printed on the page.
2. **OpenAI fallback** — when the heuristics are inconclusive (no match, or
   confidence below ``CLASSIFICATION_CONFIDENCE_THRESHOLD``) and an OpenAI
   key is configured, the text is sent to the model in JSON mode.

AI failures are non-fatal: the best heuristic result (or the type the
uploader said to expect) is returned instead.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict

from openai import AsyncOpenAI, OpenAIError

from app.core.config import settings
from app.core.exceptions import ClassificationError, ServiceUnavailableError
from app.schemas.document import ClassificationResult

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
MAX_AI_INPUT_CHARS = 8000

# Ordered most specific first; ties go to the earlier entry.
_KEYWORD_RULES: list[tuple[str, list[re.Pattern[str]]]] = [
    (t, [re.compile(p, re.IGNORECASE) for p in patterns])
    for t, patterns in [
        ("W-2", [r"\bw-?2\b", r"wage and tax statement"]),
        ("1099-NEC", [r"\b1099-?nec\b", r"nonemployee compensation"]),
        ("1099-INT", [r"\b1099-?int\b", r"interest income"]),
        ("1099-DIV", [r"\b1099-?div\b", r"dividends and distributions"]),
        ("1099-B", [r"\b1099-?b\b", r"proceeds from broker"]),
        ("1098-T", [r"\b1098-?t\b", r"tuition statement"]),
        ("1098", [r"\b1098\b", r"mortgage interest statement"]),
        ("K-1", [r"\bk-?1\b", r"partner'?s share of income"]),
        ("W-9", [r"\bw-?9\b", r"request for taxpayer identification"]),
        ("Brokerage Statement", [r"brokerage (statement|account)", r"portfolio summary"]),
        ("Bank Statement", [r"bank statement", r"beginning balance"]),
        ("Receipt", [r"\breceipt\b", r"amount paid"]),
    ]
]

SUPPORTED_DOCUMENT_TYPES = [t for t, _ in _KEYWORD_RULES]


def classify_by_keywords(text: str, filename: str = "") -> ClassificationResult | None:
    """Best keyword match, or ``None`` when nothing matches.

    Each pattern hit in the text adds 0.25 to a 0.4 base (capped at 0.95).
    A filename-only match scores 0.5.
    """
    best: tuple[str, float] | None = None
    name = filename.replace("_", " ")

    for doc_type, patterns in _KEYWORD_RULES:
        text_hits = sum(1 for p in patterns if p.search(text))
        if text_hits:
            confidence = min(0.4 + 0.25 * text_hits, 0.95)
        elif any(p.search(name) for p in patterns):
            confidence = 0.5
        else:
            continue
        if best is None or confidence > best[1]:
            best = (doc_type, confidence)

    if best is None:
        return None
    return ClassificationResult(
        document_type=best[0], confidence=round(best[1], 2), method="keyword"
    )


# ── OpenAI fallback ──────────────────────────────────────────────────────

CLASSIFICATION_PROMPT = f"""You classify US tax documents uploaded to an accounting practice.

Allowed document types: {", ".join(SUPPORTED_DOCUMENT_TYPES)}, {UNKNOWN}.

Return ONLY valid JSON:
{{
  "document_type": "<one of the allowed types>",
  "confidence": <float 0.0-1.0>,
  "reasoning": "<one sentence>"
}}

Use "{UNKNOWN}" with confidence 0.0 when the text is not one of the allowed types."""


class DocumentClassifier:
    """Thin async wrapper around OpenAI for document type classification."""

    def __init__(self) -> None:
        if not settings.ai_enabled:
            raise ServiceUnavailableError(
                "OpenAI API key is not configured. Set OPENAI_API_KEY in your .env file."
            )
        self.client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.openai_timeout,
        )
        self.model = settings.openai_model
        self.max_tokens = settings.openai_max_tokens

    async def _call_openai(self, system_prompt: str, user_message: str) -> Dict[str, Any]:
        """Send an async request to OpenAI and return parsed JSON."""
        try:
            logger.info(
                "Calling OpenAI model=%s, input_length=%d", self.model, len(user_message)
            )
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                max_completion_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content
            if not content:
                raise ClassificationError("Empty response from OpenAI")
            return json.loads(content)
        except OpenAIError as exc:
            logger.error("OpenAI API error: %s", exc)
            raise ClassificationError(f"OpenAI service error: {exc}") from exc
        except json.JSONDecodeError as exc:
            logger.error("Invalid JSON from OpenAI: %s", exc)
            raise ClassificationError(f"Invalid JSON response: {exc}") from exc

    async def classify(self, text: str, filename: str = "") -> ClassificationResult:
        user_message = f"Filename: {filename}\n\nDocument text:\n{text[:MAX_AI_INPUT_CHARS]}"
        result = await self._call_openai(CLASSIFICATION_PROMPT, user_message)

        doc_type = result.get("document_type") or UNKNOWN
        if doc_type not in SUPPORTED_DOCUMENT_TYPES:
            doc_type = UNKNOWN
        try:
            confidence = float(result.get("confidence", 0.0))
        except (TypeError, ValueError):
            confidence = 0.0
        return ClassificationResult(
            document_type=doc_type,
            confidence=max(0.0, min(confidence, 1.0)),
            method="ai",
            reasoning=result.get("reasoning"),
        )


def get_classifier() -> DocumentClassifier:
    """Factory for :class:`DocumentClassifier`.

    Raises ``ServiceUnavailableError`` when the OpenAI key is not configured.
    """
    return DocumentClassifier()


# ── Pipeline ─────────────────────────────────────────────────────────────

async def classify_document(
    text: str, filename: str = "", expected_type: str | None = None
) -> ClassificationResult:
    keyword = classify_by_keywords(text, filename)
    if keyword and keyword.confidence >= settings.classification_confidence_threshold:
        return keyword

    if settings.ai_enabled and text.strip():
        try:
            ai_result = await get_classifier().classify(text, filename)
            if ai_result.document_type != UNKNOWN:
                return ai_result
        except ClassificationError as exc:
            logger.warning("AI classification failed (non-fatal): %s", exc)

    if keyword:
        return keyword
    if expected_type:
        return ClassificationResult(
            document_type=expected_type, confidence=0.5, method="expected",
            reasoning="No recognizable form markers; using the type the uploader selected",
        )
    return ClassificationResult(document_type=UNKNOWN, confidence=0.0, method="none")
