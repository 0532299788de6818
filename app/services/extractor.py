from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Sequence, cast

from pydantic import ValidationError

from models.schemas import ExtractedFields

from .formatting import parse_date
from .gemini_client import GEMINI_MODEL_NAME, GeminiConfigError, get_client as _get_client
from .normalizer import normalize_amount

logger = logging.getLogger(__name__)

FIELD_NAMES = list(ExtractedFields.model_fields)
REQUIRED_FIELDS = ["client_name", "start_date", "amount"]
MAX_FOLLOW_UP_QUESTIONS = 5

PROMPT_TEMPLATE = """
You extract key commercial terms from an existing contract so a new draft can be prefilled.
Respond with JSON only, without prose or markdown.
Include every key of the "fields" object; use null when the value is not stated.

Required JSON structure:
{{
  "fields": {{
    "client_name": string or null,
    "start_date": ISO date (YYYY-MM-DD) or null,
    "end_date": ISO date (YYYY-MM-DD) or null,
    "amount": string or null,
    "billing_cycle": string or null,
    "auto_renew": true or false,
    "terms": string or null
  }},
  "follow_up_questions": array of short questions (0-5) about terms that are unclear
}}

Field guidance:
- client_name: the customer or counterparty receiving the services.
- amount: the total contract value exactly as written, including the currency.
- billing_cycle: how often payment is due (for example "monthly" or "50% upfront, 50% on delivery").
- auto_renew: true only when the contract explicitly renews automatically.
- terms: the payment terms clause, summarized in one or two sentences.
Do not guess. Use null when the text gives no evidence.

Contract text:
{contract_text}
"""

_DATE = r"([A-Z][a-z]+ \d{1,2},? \d{4}|\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}/\d{4})"

FIELD_PATTERNS: Dict[str, Sequence[re.Pattern[str]]] = {
    "client_name": (
        re.compile(r"(?:client|customer)(?: name)?\s*[:：]\s*([^\n]+)", re.IGNORECASE),
        re.compile(r"between\s+.+?\s+and\s+([A-Z][^\n,(]+)", re.IGNORECASE),
    ),
    "start_date": (
        re.compile(r"(?:start date|effective date|commencement date)\s*[:：]?\s*" + _DATE, re.IGNORECASE),
        re.compile(r"commence(?:s)? on\s+" + _DATE, re.IGNORECASE),
    ),
    "end_date": (
        re.compile(r"(?:end date|expiration date|termination date)\s*[:：]?\s*" + _DATE, re.IGNORECASE),
        re.compile(r"continue until\s+" + _DATE, re.IGNORECASE),
    ),
    "amount": (
        re.compile(
            r"(?:total (?:amount|value|fee)|contract (?:value|amount)|amount)\s*[:：]?\s*(?:of\s+)?"
            r"([$€£]?\s?[\d,]+(?:\.\d+)?(?:\s*[km]\b)?)",
            re.IGNORECASE,
        ),
        re.compile(r"([$€£]\s?[\d,]+(?:\.\d+)?)"),
    ),
    "billing_cycle": (
        re.compile(r"(?:billing cycle|payment schedule|billed)\s*[:：]?\s*([^\n.]+)", re.IGNORECASE),
    ),
    "terms": (
        re.compile(r"payment terms?\s*[:：]\s*([^\n]+)", re.IGNORECASE),
        re.compile(r"\b(net\s*\d+)\b", re.IGNORECASE),
    ),
}

AUTO_RENEW_PATTERN = re.compile(r"automatically\s+renew|auto[- ]?renew(?:al|s)?\s*[:：]?\s*(?:yes|true)", re.IGNORECASE)


def extract_contract_fields(text: str) -> Dict[str, Any]:
    if not text or not text.strip():
        return {"fields": {}, "missing_fields": [], "error": "The uploaded contract contains no text."}

    try:
        return _extract_with_gemini(text)
    except GeminiConfigError as exc:
        logger.info("Gemini configuration issue: %s", exc)
        fallback = _extract_with_regex(text)
        fallback["error"] = str(exc)
        return fallback
    except Exception as exc:  # pragma: no cover - external API variations
        logger.exception("Gemini extraction failed: %s", exc)
        fallback = _extract_with_regex(text)
        fallback["error"] = "Gemini extraction failed, showing pattern-based results instead."
        return fallback


def _extract_with_gemini(text: str) -> Dict[str, Any]:
    payload = _call_gemini(text)
    raw_fields = payload.get("fields", {})
    if not isinstance(raw_fields, dict):
        raise ValueError("Gemini response did not include a valid 'fields' object")

    fields = _coerce_fields(raw_fields)
    result: Dict[str, Any] = {
        "fields": fields.model_dump(exclude_none=True),
        "missing_fields": _missing(fields),
    }
    follow_ups = _follow_up_questions(payload.get("follow_up_questions"))
    if follow_ups:
        result["follow_up_questions"] = follow_ups
    return result


def _extract_with_regex(text: str) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    source = text or ""

    for field, patterns in FIELD_PATTERNS.items():
        for pattern in patterns:
            match = pattern.search(source)
            if match:
                extracted = match.group(1).strip()
                if extracted:
                    data[field] = extracted
                    break
    data["auto_renew"] = bool(AUTO_RENEW_PATTERN.search(source))

    fields = _coerce_fields(data)
    return {"fields": fields.model_dump(exclude_none=True), "missing_fields": _missing(fields)}


def _missing(fields: ExtractedFields) -> List[str]:
    return [name for name in REQUIRED_FIELDS if not getattr(fields, name)]


def _coerce_fields(raw_fields: Dict[str, Any]) -> ExtractedFields:
    cleaned = _normalize_payload(raw_fields)
    try:
        return ExtractedFields(**cleaned)
    except ValidationError as exc:
        for error in exc.errors():
            raw_loc = error.get("loc")
            loc: Sequence[object] = (
                cast(Sequence[object], raw_loc) if isinstance(raw_loc, (list, tuple)) else []
            )
            field = loc[0] if loc else None
            if isinstance(field, str):
                cleaned.pop(field, None)
        return ExtractedFields(**cleaned)


def _normalize_payload(raw_fields: Dict[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for key in FIELD_NAMES:
        if key not in raw_fields:
            continue
        value = raw_fields[key]
        if value is None:
            continue
        if isinstance(value, (int, float)) and not isinstance(value, bool) and key != "auto_renew":
            value = str(value)
        if isinstance(value, list):
            joined = "\n".join(str(item).strip() for item in value if str(item).strip())
            value = joined or None
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                continue
            value = stripped
        normalized[key] = value
    return normalized


def _follow_up_questions(raw_questions: Any) -> List[str]:
    if not isinstance(raw_questions, Sequence) or isinstance(raw_questions, str):
        return []
    questions = [str(item).strip() for item in raw_questions if str(item).strip()]
    return questions[:MAX_FOLLOW_UP_QUESTIONS]


def _call_gemini(text: str) -> Dict[str, Any]:
    client = _get_client()
    prompt = PROMPT_TEMPLATE.format(contract_text=text.strip())
    response = client.models.generate_content(
        model=GEMINI_MODEL_NAME,
        contents=prompt,
    )
    feedback = getattr(response, "prompt_feedback", None)
    if feedback and getattr(feedback, "block_reason", None):
        raise ValueError(f"Gemini blocked the prompt: {feedback.block_reason}")

    content = getattr(response, "text", None)
    if not content:
        raise ValueError("Gemini response was empty")

    return _load_json(content)


def _load_json(raw_text: str) -> Dict[str, Any]:
    cleaned = raw_text.strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned)
        cleaned = re.sub(r"\s*```$", "", cleaned)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ValueError("Failed to parse Gemini response as JSON") from exc


def fields_to_patch(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Translate extracted fields into a patch for ``ContractStore.update``."""
    patch: Dict[str, Any] = {}
    details: Dict[str, Any] = {}
    financials: Dict[str, Any] = {}

    client = str(fields.get("client_name") or "").strip()
    if client:
        patch["party2"] = {"name": client}

    for key, target in (("start_date", "startDate"), ("end_date", "endDate")):
        parsed = parse_date(fields.get(key))
        if parsed is not None:
            details[target] = parsed.isoformat()
    if fields.get("auto_renew") is True:
        details["autoRenew"] = True
    terms = str(fields.get("terms") or "").strip()
    if terms:
        details["paymentTerms"] = terms

    amount = normalize_amount(str(fields.get("amount") or ""))
    if amount > 0:
        financials["totalValue"] = str(amount)
    cycle = str(fields.get("billing_cycle") or "").strip()
    if cycle:
        financials["paymentSchedule"] = cycle

    if details:
        patch["details"] = details
    if financials:
        patch["financials"] = financials
    return patch


__all__ = ["extract_contract_fields", "fields_to_patch"]
