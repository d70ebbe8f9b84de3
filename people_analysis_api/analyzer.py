"""
Extraction Engine (People Detection)

This module sends an image to Gemini with a schema-constrained prompt and
returns the validated list of people found in it:
1. Build the request: image part + instruction + JSON response schema
2. Call Gemini once (no internal retry)
3. Validate the JSON answer into an AnalysisResult
4. Translate every failure into a typed AnalysisError

Prompt Engineering Strategy:
- Boxes are requested on a 0-1000 grid so the result is independent of the
  image resolution
- The response schema mirrors PersonProfile exactly, so Gemini cannot answer
  in free text
- Celebrity recognition is explicit: a flag plus an optional name
"""

import asyncio
import logging
import time
from typing import Any, Callable, Optional

import httpx
from google import genai
from google.genai import errors, types

from people_analysis_api.config import config
from people_analysis_api.exceptions import (
    AnalysisError,
    AuthenticationRejected,
    MissingCredential,
    TransportFailure,
)
from people_analysis_api.images import ImagePayload
from people_analysis_api.models import AnalysisResult
from people_analysis_api.validator import parse_analysis_text

# Configure logging
logger = logging.getLogger(__name__)


ANALYSIS_PROMPT = """Detect and analyse every person visible in this image.

For each person, provide:
1. id: a positive integer, unique for each person, starting at 1
2. box2d: the bounding box around the person as ymin, xmin, ymax, xmax,
   normalized to a 0-1000 grid where (0, 0) is the top-left corner
3. label: a short identifying caption (e.g. "Boy in a blue cap")
4. description: a detailed description of expression, behaviour and overall mood
5. estimatedAge: the estimated age range
6. gender: the estimated gender
7. fashion: a description of the clothing

IMPORTANT: If a person can be identified as a celebrity (entertainer,
politician, athlete, historical figure, etc.), set isCelebrity to true and put
their name in celebrityName. Otherwise set isCelebrity to false.

Use the box2d field to locate each person in the image as precisely as possible.

Return the result as JSON."""


PEOPLE_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "people": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "id": {"type": "INTEGER"},
                    "label": {"type": "STRING", "description": "Short identifying label (e.g. 'Boy in a blue cap')"},
                    "description": {"type": "STRING", "description": "Detailed description of behaviour, expression and mood"},
                    "estimatedAge": {"type": "STRING", "description": "Estimated age range"},
                    "gender": {"type": "STRING", "description": "Estimated gender"},
                    "fashion": {"type": "STRING", "description": "Detailed description of the clothing"},
                    "isCelebrity": {"type": "BOOLEAN", "description": "Whether the person is a celebrity"},
                    "celebrityName": {"type": "STRING", "description": "Name of the celebrity; empty or null otherwise"},
                    "box2d": {
                        "type": "OBJECT",
                        "description": "Bounding box around the person. Coordinates range from 0 to 1000.",
                        "properties": {
                            "ymin": {"type": "NUMBER"},
                            "xmin": {"type": "NUMBER"},
                            "ymax": {"type": "NUMBER"},
                            "xmax": {"type": "NUMBER"},
                        },
                        "required": ["ymin", "xmin", "ymax", "xmax"],
                    },
                },
                "required": ["id", "label", "description", "estimatedAge", "gender", "fashion", "box2d", "isCelebrity"],
            },
        },
    },
    "required": ["people"],
}


# Status codes / statuses / error reasons that mean "the key is bad"
_AUTH_STATUS_CODES = {401, 403}
_AUTH_STATUSES = {"UNAUTHENTICATED", "PERMISSION_DENIED"}
_AUTH_REASONS = {"API_KEY_INVALID", "API_KEY_EXPIRED", "API_KEY_SERVICE_BLOCKED"}


def _error_reasons(details: Any) -> set[str]:
    """Collect ``reason`` values from a Google API error body."""
    if not isinstance(details, dict):
        return set()
    body = details.get("error", details)
    if not isinstance(body, dict):
        return set()
    reasons = set()
    for item in body.get("details") or []:
        if isinstance(item, dict) and item.get("reason"):
            reasons.add(item["reason"])
    return reasons


def classify_api_error(error: errors.APIError) -> AnalysisError:
    """
    Map a google-genai APIError to the analysis error taxonomy.

    Classification uses the HTTP code, the RPC status and the structured
    error reasons only.
    """
    code = getattr(error, "code", None)
    status = getattr(error, "status", None)
    reasons = _error_reasons(getattr(error, "details", None))

    if code in _AUTH_STATUS_CODES or status in _AUTH_STATUSES or reasons & _AUTH_REASONS:
        return AuthenticationRejected(details=getattr(error, "message", None), status_code=code)

    return TransportFailure(
        f"Gemini API error ({code} {status})",
        details=getattr(error, "message", None),
        status_code=code,
    )


def default_client_factory(api_key: str) -> genai.Client:
    """Create a Gemini Developer API client for ``api_key``."""
    return genai.Client(api_key=api_key)


class ExtractionClient:
    """
    Gemini client for structured people extraction.

    One ``analyze`` call performs exactly one request.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: Optional[str] = None,
        client_factory: Optional[Callable[[str], Any]] = None,
        temperature: Optional[float] = None,
    ):
        self.api_key = (api_key or "").strip()
        self.model = model or config.GEMINI_MODEL
        self.temperature = config.GEMINI_TEMPERATURE if temperature is None else temperature
        self._client_factory = client_factory or default_client_factory
        self._client = None

    def _get_client(self):
        if not self.api_key:
            raise MissingCredential()
        if self._client is None:
            self._client = self._client_factory(self.api_key)
        return self._client

    def build_contents(self, image: ImagePayload) -> list:
        """Request parts: the image followed by the instruction."""
        return [
            types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
            types.Part.from_text(text=ANALYSIS_PROMPT),
        ]

    def build_config(self) -> types.GenerateContentConfig:
        """Generation config forcing JSON output that matches the schema."""
        return types.GenerateContentConfig(
            temperature=self.temperature,
            response_mime_type="application/json",
            response_schema=PEOPLE_RESPONSE_SCHEMA,
        )

    async def analyze(self, image: ImagePayload) -> AnalysisResult:
        """
        Detect and describe every person in ``image``.

        Args:
            image: Decoded image bytes and MIME type

        Returns:
            Validated AnalysisResult (possibly with no people)

        Raises:
            MissingCredential: No API key was supplied
            AuthenticationRejected: Gemini rejected the API key
            MalformedResponse: Empty or non-JSON response text
            ValidationFailure: JSON that does not describe valid people
            TransportFailure: Network errors, timeouts and other API errors
        """
        client = self._get_client()

        logger.info(f"Calling {self.model} for people detection ({image.mime_type}, {image.size} bytes)")
        started = time.perf_counter()

        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=self.build_contents(image),
                config=self.build_config(),
            )
        except errors.APIError as e:
            error = classify_api_error(e)
            logger.error(f"Gemini request failed: {error.kind} ({e.code} {e.status})")
            raise error from e
        except (httpx.HTTPError, OSError, asyncio.TimeoutError) as e:
            # aiohttp connection errors are OSError subclasses
            logger.error(f"Gemini request failed: {e!r}")
            raise TransportFailure(details=repr(e)) from e
        except Exception as e:
            logger.exception(f"Unexpected error from Gemini client: {e!r}")
            raise TransportFailure("Unexpected error while calling the model provider", details=repr(e)) from e

        elapsed_ms = (time.perf_counter() - started) * 1000
        result = parse_analysis_text(response.text)
        logger.info(f"Detected {len(result.people)} people in {elapsed_ms:.0f}ms")

        return result
