"""
Response validation for Gemini people-detection output.

Gemini is asked for schema-constrained JSON, but the schema cannot express
coordinate ordering or id uniqueness, so every payload is re-validated here
before it reaches the rest of the application.

Policy: a payload is accepted or rejected as a whole. One malformed person
(or a duplicated id) rejects the entire result; nothing is silently dropped
or clamped.
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from people_analysis_api.exceptions import MalformedResponse, ValidationFailure
from people_analysis_api.models import AnalysisResult

logger = logging.getLogger(__name__)


def strip_code_fences(text: str) -> str:
    """Remove a Markdown code block wrapper, if present."""
    result_text = text.strip()
    if result_text.startswith("```json"):
        result_text = result_text[7:]
    elif result_text.startswith("```"):
        result_text = result_text[3:]
    if result_text.endswith("```"):
        result_text = result_text[:-3]
    return result_text.strip()


def validate_analysis_payload(payload: Any) -> AnalysisResult:
    """
    Validate an untrusted, already-parsed payload.

    Args:
        payload: Object with a ``people`` list, or the bare list itself

    Returns:
        The validated AnalysisResult

    Raises:
        ValidationFailure: If the payload or any person in it is malformed
    """
    if isinstance(payload, list):
        payload = {"people": payload}

    if not isinstance(payload, dict):
        raise ValidationFailure(
            "Expected a JSON object with a 'people' array",
            details=type(payload).__name__,
        )

    if not isinstance(payload.get("people"), list):
        raise ValidationFailure("Response has no 'people' array")

    try:
        result = AnalysisResult.model_validate(payload)
    except ValidationError as e:
        errors = e.errors(include_url=False, include_context=False)
        logger.warning(f"Rejected analysis payload with {len(errors)} error(s)")
        raise ValidationFailure(
            "One or more detected people failed validation",
            details=[{"loc": list(err["loc"]), "msg": err["msg"]} for err in errors],
        ) from e

    return result


def parse_analysis_text(text: str) -> AnalysisResult:
    """
    Parse the raw text of a Gemini response into an AnalysisResult.

    Raises:
        MalformedResponse: If the text is empty or not valid JSON
        ValidationFailure: If the JSON does not describe valid people
    """
    if not text or not text.strip():
        raise MalformedResponse("No response text from Gemini")

    try:
        payload = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise MalformedResponse("Gemini response is not valid JSON", details=str(e)) from e

    return validate_analysis_payload(payload)
