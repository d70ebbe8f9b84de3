"""
Analysis Session

Drives one image through the extraction pipeline and owns everything the
views read: the current image, the result or error, and the highlight.

State machine:
    IDLE -> SUBMITTED -> SUCCEEDED | FAILED
    SUCCEEDED | FAILED -> IDLE      (reset)
    IDLE | SUCCEEDED | FAILED -> SUBMITTED  (new image)

A submission without an API key never leaves IDLE. There is no cancellation:
once SUBMITTED, the session always ends in SUCCEEDED or FAILED.
"""

import logging
from typing import Any, Callable, Optional

from people_analysis_api.analyzer import ExtractionClient
from people_analysis_api.config import config
from people_analysis_api.exceptions import (
    AnalysisError,
    MissingCredential,
    SessionStateError,
    TransportFailure,
    UnknownPersonError,
)
from people_analysis_api.highlight import HighlightCoordinator
from people_analysis_api.images import ImagePayload, decode_image_payload
from people_analysis_api.models import AnalysisResult, SessionSnapshot, SessionState
from people_analysis_api.views import build_overlay_boxes, build_person_cards

logger = logging.getLogger(__name__)


CREDENTIAL_MESSAGE = "The API key is invalid or missing. Please select or enter your key again."
GENERIC_MESSAGE = (
    "An error occurred while analysing the image. "
    "Please try another image or wait a moment and try again."
)

ExtractorFactory = Callable[[str, str], Any]


def user_message_for(error: AnalysisError) -> str:
    """Collapse an error kind into one of the two user-facing messages."""
    if error.is_credential_error:
        return CREDENTIAL_MESSAGE
    return GENERIC_MESSAGE


def _default_extractor_factory(api_key: str, model: str) -> ExtractionClient:
    return ExtractionClient(api_key=api_key, model=model)


class AnalysisSession:
    """
    Process-local analysis session.

    Args:
        api_key: Initial API key (ignored when host_key_selection is set)
        model: Gemini model name
        host_key_selection: The host provides a key picker; wait for a key
            to be configured before allowing submissions
        extractor_factory: Builds the extraction client from (api_key, model)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        host_key_selection: bool = False,
        extractor_factory: Optional[ExtractorFactory] = None,
    ):
        self.host_key_selection = host_key_selection
        self.model = model or config.GEMINI_MODEL
        self._api_key = None if host_key_selection else (api_key or None)
        self._extractor_factory = extractor_factory or _default_extractor_factory

        self.state = SessionState.IDLE
        self.image: Optional[ImagePayload] = None
        self.result: Optional[AnalysisResult] = None
        self.error: Optional[AnalysisError] = None
        self.error_message: Optional[str] = None
        self.highlight = HighlightCoordinator()
        self.needs_credentials = host_key_selection

    @property
    def has_credentials(self) -> bool:
        return bool(self._api_key)

    def configure_credentials(self, api_key: str, model: Optional[str] = None) -> None:
        """Store the key (and optionally the model) chosen by the user."""
        self._api_key = api_key.strip() or None
        if model:
            self.model = model
        self.needs_credentials = not self.has_credentials
        logger.info(f"Credentials configured (model: {self.model})")

    def set_highlight(self, person_id: Optional[int]) -> None:
        """
        Hover handler shared by the list and the overlay.

        Raises:
            UnknownPersonError: If person_id is not in the current result
        """
        if person_id is not None and (self.result is None or self.result.get(person_id) is None):
            raise UnknownPersonError(person_id)
        self.highlight.set_highlight(person_id)

    def _clear(self) -> None:
        self.image = None
        self.result = None
        self.error = None
        self.error_message = None
        self.highlight.clear()

    def _fail(self, error: AnalysisError) -> None:
        self.error = error
        self.error_message = user_message_for(error)
        if error.is_credential_error:
            self.needs_credentials = True

    def reset(self) -> None:
        """Discard image, result, error and highlight together and return to IDLE."""
        if self.state == SessionState.SUBMITTED:
            raise SessionStateError("Cannot reset while an analysis is in progress")
        self._clear()
        self.state = SessionState.IDLE
        logger.info("Session reset")

    async def submit(
        self,
        image_base64: str,
        mime_type: Optional[str] = None,
        model: Optional[str] = None,
    ) -> SessionState:
        """Decode a base64 upload and analyse it; see ``submit_image``."""
        return await self.submit_image(decode_image_payload(image_base64, mime_type), model=model)

    async def submit_image(self, image: ImagePayload, model: Optional[str] = None) -> SessionState:
        """
        Analyse a new image, replacing whatever the session held before.

        Args:
            image: Decoded image
            model: Gemini model to use from now on; applied only once the
                submission is accepted

        Returns:
            The state the session ended in

        Raises:
            SessionStateError: If an analysis is already in flight
        """
        if self.state == SessionState.SUBMITTED:
            raise SessionStateError("An analysis is already in progress")

        if model:
            self.model = model

        if not self.has_credentials:
            self._clear()
            self.state = SessionState.IDLE
            self._fail(MissingCredential())
            logger.warning("Image submitted without an API key")
            return self.state

        self._clear()
        self.image = image
        self.state = SessionState.SUBMITTED
        logger.info(f"Analysing {image.mime_type} image ({image.size} bytes)")

        try:
            extractor = self._extractor_factory(self._api_key, self.model)
            self.result = await extractor.analyze(image)
        except AnalysisError as e:
            logger.error(f"Analysis failed: {e}")
            self._fail(e)
            self.state = SessionState.FAILED
        except Exception as e:
            logger.exception(f"Unexpected analysis error: {e!r}")
            self._fail(TransportFailure(details=repr(e)))
            self.state = SessionState.FAILED
        else:
            self.state = SessionState.SUCCEEDED

        return self.state

    def snapshot(self) -> SessionSnapshot:
        """Everything the list and overlay views need to render."""
        highlighted_id = self.highlight.highlighted_id
        people = self.result.people if self.result else []
        return SessionSnapshot(
            state=self.state,
            model=self.model,
            has_image=self.image is not None,
            mime_type=self.image.mime_type if self.image else None,
            count=len(people),
            highlighted_id=highlighted_id,
            people=list(people),
            cards=build_person_cards(self.result, highlighted_id),
            boxes=build_overlay_boxes(self.result, highlighted_id),
            error_kind=self.error.kind if self.error else None,
            error_message=self.error_message,
            needs_credentials=self.needs_credentials,
        )
