"""
People Analysis API

FastAPI application providing endpoints for:
- /health: Health check
- /analyze: Stateless analysis of a base64 image
- /analyze/upload: Stateless analysis of a multipart upload
- /session: Process-local session (credentials, image, highlight, reset)
- /session/annotated: Current image with the overlay drawn in

Run locally: python -m people_analysis_api.main
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from people_analysis_api import __version__
from people_analysis_api.analyzer import ExtractionClient
from people_analysis_api.config import config
from people_analysis_api.exceptions import (
    AnalysisError,
    AuthenticationRejected,
    InvalidImageError,
    MalformedResponse,
    MissingCredential,
    SessionStateError,
    TransportFailure,
    UnknownPersonError,
    ValidationFailure,
)
from people_analysis_api.images import ImagePayload, check_image, decode_image_payload
from people_analysis_api.models import (
    AnalysisResponse,
    AnalysisResult,
    AnalyzeRequest,
    CredentialsRequest,
    ErrorResponse,
    HealthResponse,
    HighlightRequest,
    SessionSnapshot,
    SessionState,
)
from people_analysis_api.renderer import render_annotated_image
from people_analysis_api.session import AnalysisSession
from people_analysis_api.views import build_overlay_boxes, build_person_cards

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# HTTP status for each analysis error kind
ERROR_STATUS_CODES = {
    MissingCredential: 401,
    AuthenticationRejected: 401,
    MalformedResponse: 502,
    ValidationFailure: 502,
    TransportFailure: 503,
}

# Error bodies documented on the routes
ANALYZE_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}
SESSION_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


_session: Optional[AnalysisSession] = None


def get_session() -> AnalysisSession:
    """Return the process-local session, creating it on first use."""
    global _session
    if _session is None:
        _session = AnalysisSession(
            api_key=config.GEMINI_API_KEY,
            model=config.GEMINI_MODEL,
            host_key_selection=config.HOST_KEY_SELECTION,
        )
    return _session


def get_extractor_factory() -> Callable[[str, str], ExtractionClient]:
    """Factory used by the stateless endpoints; overridden in tests."""
    return lambda api_key, model: ExtractionClient(api_key=api_key, model=model)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    logger.info("=" * 50)
    logger.info("People Analysis API Starting")
    logger.info(f"Model: {config.GEMINI_MODEL}")
    logger.info(f"Host key selection: {config.HOST_KEY_SELECTION}")
    logger.info("=" * 50)

    config.validate()
    if not config.GEMINI_API_KEY and not config.HOST_KEY_SELECTION:
        logger.warning("GEMINI_API_KEY is not set; requests must supply their own key")

    yield

    # Shutdown
    logger.info("People Analysis API Shutting Down")


# Create FastAPI app
app = FastAPI(
    title="People Analysis API",
    description="Detect and describe the people in a photo with Gemini",
    version=__version__,
    lifespan=lifespan
)

# Add CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AnalysisError)
async def analysis_error_handler(request: Request, exc: AnalysisError):
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    return JSONResponse(status_code=status_code, content={"kind": exc.kind, "detail": exc.message})


@app.exception_handler(InvalidImageError)
async def invalid_image_handler(request: Request, exc: InvalidImageError):
    return JSONResponse(status_code=400, content={"kind": "InvalidImage", "detail": str(exc)})


@app.exception_handler(SessionStateError)
async def session_state_handler(request: Request, exc: SessionStateError):
    return JSONResponse(status_code=409, content={"kind": "SessionState", "detail": str(exc)})


@app.exception_handler(UnknownPersonError)
async def unknown_person_handler(request: Request, exc: UnknownPersonError):
    return JSONResponse(status_code=404, content={"kind": "UnknownPerson", "detail": str(exc)})


def _analysis_response(result: AnalysisResult, model: str) -> AnalysisResponse:
    return AnalysisResponse(
        model=model,
        count=len(result.people),
        people=result.people,
        cards=build_person_cards(result),
        boxes=build_overlay_boxes(result),
    )


async def _run_analysis(
    image: ImagePayload,
    api_key: Optional[str],
    model: Optional[str],
    extractor_factory: Callable[[str, str], ExtractionClient],
) -> AnalysisResponse:
    model = model or config.GEMINI_MODEL
    extractor = extractor_factory(api_key or config.GEMINI_API_KEY, model)
    result = await extractor.analyze(image)
    return _analysis_response(result, model)


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@app.post("/analyze", response_model=AnalysisResponse, tags=["Analysis"], responses=ANALYZE_ERROR_RESPONSES)
async def analyze_endpoint(
    request: AnalyzeRequest,
    x_goog_api_key: Optional[str] = Header(None),
    extractor_factory=Depends(get_extractor_factory),
):
    """
    Detect the people in a base64-encoded image.

    The API key is read from the ``X-Goog-Api-Key`` header and falls back to
    the configured GEMINI_API_KEY.

    Returns:
        AnalysisResponse with people, list cards and overlay boxes
    """
    image = decode_image_payload(request.image_base64, request.mime_type)
    return await _run_analysis(image, x_goog_api_key, request.model, extractor_factory)


@app.post("/analyze/upload", response_model=AnalysisResponse, tags=["Analysis"], responses=ANALYZE_ERROR_RESPONSES)
async def analyze_upload_endpoint(
    file: UploadFile = File(...),
    model: Optional[str] = Form(None),
    x_goog_api_key: Optional[str] = Header(None),
    extractor_factory=Depends(get_extractor_factory),
):
    """Detect the people in an uploaded image file."""
    image = check_image(await file.read(), file.content_type)
    return await _run_analysis(image, x_goog_api_key, model, extractor_factory)


@app.get("/session", response_model=SessionSnapshot, tags=["Session"])
async def get_session_state(session: AnalysisSession = Depends(get_session)):
    """Current session state as rendered by the list and overlay views."""
    return session.snapshot()


@app.post("/session/credentials", response_model=SessionSnapshot, tags=["Session"])
async def set_session_credentials(
    request: CredentialsRequest,
    session: AnalysisSession = Depends(get_session),
):
    """Store the API key (and optionally the model) for the session."""
    session.configure_credentials(request.api_key, request.model)
    return session.snapshot()


@app.post("/session/image", response_model=SessionSnapshot, tags=["Session"], responses=SESSION_ERROR_RESPONSES)
async def submit_session_image(
    request: AnalyzeRequest,
    session: AnalysisSession = Depends(get_session),
):
    """
    Submit a new image to the session and wait for the analysis.

    Analysis failures do not produce an error status: the returned snapshot is
    in the FAILED state with the error kind and message filled in.
    """
    await session.submit(request.image_base64, request.mime_type, model=request.model)
    return session.snapshot()


@app.post("/session/highlight", response_model=SessionSnapshot, tags=["Session"], responses=SESSION_ERROR_RESPONSES)
async def set_session_highlight(
    request: HighlightRequest,
    session: AnalysisSession = Depends(get_session),
):
    """Hover enter (person id) or leave (null) from either view."""
    session.set_highlight(request.person_id)
    return session.snapshot()


@app.post("/session/reset", response_model=SessionSnapshot, tags=["Session"], responses=SESSION_ERROR_RESPONSES)
async def reset_session(session: AnalysisSession = Depends(get_session)):
    """Discard the image, result, error and highlight."""
    session.reset()
    return session.snapshot()


@app.get("/session/annotated", tags=["Session"])
def get_annotated_image(session: AnalysisSession = Depends(get_session)):
    """The analysed image with boxes and the current highlight drawn in (PNG)."""
    if session.state != SessionState.SUCCEEDED or session.image is None:
        raise HTTPException(status_code=409, detail="No analysed image available")

    png = render_annotated_image(
        session.image.data,
        session.result.people,
        session.highlight.highlighted_id,
    )
    return Response(content=png, media_type="image/png")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "people_analysis_api.main:app",
        host="0.0.0.0",
        port=config.PORT,
        reload=True
    )
