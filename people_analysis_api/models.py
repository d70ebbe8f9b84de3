"""
Pydantic models for the People Analysis application.

Defines data validation schemas for:
- Detected people and their bounding boxes (the Gemini response contract)
- Overlay rectangles and list cards rendered from a result
- API requests and responses
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Every coordinate in a bounding box lives on an abstract 1000x1000 grid.
GRID_SIZE = 1000


class BoundingBox(BaseModel):
    """Bounding box on the normalized 0-1000 grid."""

    model_config = ConfigDict(frozen=True)

    ymin: float = Field(..., strict=True, ge=0, le=GRID_SIZE, allow_inf_nan=False, description="Normalized top coordinate")
    xmin: float = Field(..., strict=True, ge=0, le=GRID_SIZE, allow_inf_nan=False, description="Normalized left coordinate")
    ymax: float = Field(..., strict=True, ge=0, le=GRID_SIZE, allow_inf_nan=False, description="Normalized bottom coordinate")
    xmax: float = Field(..., strict=True, ge=0, le=GRID_SIZE, allow_inf_nan=False, description="Normalized right coordinate")

    @model_validator(mode="after")
    def _check_ordering(self) -> "BoundingBox":
        if self.ymin > self.ymax:
            raise ValueError(f"ymin ({self.ymin}) is greater than ymax ({self.ymax})")
        if self.xmin > self.xmax:
            raise ValueError(f"xmin ({self.xmin}) is greater than xmax ({self.xmax})")
        return self


class PersonProfile(BaseModel):
    """One person detected in the analysed image."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(..., strict=True, gt=0, description="Identifier, unique within one result")
    label: str = Field(..., strict=True, description="Short caption, e.g. 'Woman in red'")
    description: str = Field(..., strict=True, description="Behaviour, expression and overall mood")
    estimated_age: str = Field(..., strict=True, alias="estimatedAge", description="Estimated age range")
    gender: str = Field(..., strict=True, description="Estimated gender")
    fashion: str = Field(..., strict=True, description="Clothing description")
    box_2d: BoundingBox = Field(..., alias="box2d", description="Box around the person (0-1000 grid)")
    is_celebrity: bool = Field(..., strict=True, alias="isCelebrity", description="Whether the person is a recognisable public figure")
    celebrity_name: Optional[str] = Field(None, strict=True, alias="celebrityName", description="Name of the public figure, if any")

    @model_validator(mode="before")
    @classmethod
    def _drop_name_for_non_celebrities(cls, data):
        if isinstance(data, dict):
            flag = data.get("isCelebrity", data.get("is_celebrity"))
            if flag is False:
                data = {k: v for k, v in data.items() if k not in ("celebrityName", "celebrity_name")}
        return data

    @field_validator("celebrity_name", mode="before")
    @classmethod
    def _blank_name_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def display_name(self) -> str:
        """Celebrity name when known, the short label otherwise."""
        if self.is_celebrity and self.celebrity_name:
            return self.celebrity_name
        return self.label


class AnalysisResult(BaseModel):
    """Ordered list of people returned by one analysis."""

    model_config = ConfigDict(frozen=True)

    people: list[PersonProfile] = Field(default_factory=list, description="People in the order the model returned them")

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "AnalysisResult":
        seen = set()
        duplicates = []
        for person in self.people:
            if person.id in seen:
                duplicates.append(person.id)
            seen.add(person.id)
        if duplicates:
            raise ValueError(f"duplicate person ids: {sorted(set(duplicates))}")
        return self

    def get(self, person_id: int) -> Optional[PersonProfile]:
        """Return the person with ``person_id`` or None."""
        for person in self.people:
            if person.id == person_id:
                return person
        return None


class BoxStyle(BaseModel):
    """Rectangle expressed as percentages of the rendering surface."""

    model_config = ConfigDict(frozen=True)

    top: float = Field(..., description="Offset from the top edge, in percent")
    left: float = Field(..., description="Offset from the left edge, in percent")
    height: float = Field(..., description="Height, in percent")
    width: float = Field(..., description="Width, in percent")

    def to_css(self) -> dict[str, str]:
        """Absolute-positioning style for a browser overlay."""
        return {
            "top": f"{self.top}%",
            "left": f"{self.left}%",
            "height": f"{self.height}%",
            "width": f"{self.width}%",
        }


class PersonCard(BaseModel):
    """A person as shown in the results list."""

    id: int
    color: str
    highlighted: bool = False
    display_name: str
    tag: str = Field(..., description="Badge text, '#<id> <name>'")
    label: str
    description: str
    estimated_age: str
    gender: str
    fashion: str
    is_celebrity: bool = False
    celebrity_name: Optional[str] = None


class OverlayBox(BaseModel):
    """A person as drawn over the image."""

    id: int
    color: str
    fill: str = Field(default="transparent", description="Background colour of the box")
    highlighted: bool = False
    tag: str
    is_celebrity: bool = False
    style: BoxStyle
    css: dict[str, str] = Field(default_factory=dict)


class SessionState(str, Enum):
    """Lifecycle of an analysis session."""

    IDLE = "idle"
    SUBMITTED = "submitted"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class AnalyzeRequest(BaseModel):
    """Request payload for /analyze and /session/image."""

    image_base64: str = Field(..., description="Base64-encoded image, optionally a data URL")
    mime_type: Optional[str] = Field(None, description="MIME type of the image; read from the data URL when omitted")
    model: Optional[str] = Field(None, description="Gemini model override")


class AnalysisResponse(BaseModel):
    """Response payload for the /analyze endpoints."""

    model: str = Field(..., description="Gemini model used for the analysis")
    count: int = Field(..., description="Number of people detected")
    people: list[PersonProfile] = Field(default_factory=list)
    cards: list[PersonCard] = Field(default_factory=list)
    boxes: list[OverlayBox] = Field(default_factory=list)


class CredentialsRequest(BaseModel):
    """Request payload for /session/credentials."""

    api_key: str = Field(..., min_length=1, description="Gemini API key")
    model: Optional[str] = Field(None, description="Gemini model to use")


class HighlightRequest(BaseModel):
    """Request payload for /session/highlight; null clears the highlight."""

    person_id: Optional[int] = Field(None, description="Person to emphasise, or null")


class SessionSnapshot(BaseModel):
    """Read-only view of the process-local analysis session."""

    state: SessionState
    model: str
    has_image: bool = False
    mime_type: Optional[str] = None
    count: int = 0
    highlighted_id: Optional[int] = None
    people: list[PersonProfile] = Field(default_factory=list)
    cards: list[PersonCard] = Field(default_factory=list)
    boxes: list[OverlayBox] = Field(default_factory=list)
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    needs_credentials: bool = False


class ErrorResponse(BaseModel):
    """Error body returned by every endpoint."""

    kind: str
    detail: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(default="0.1.0")
