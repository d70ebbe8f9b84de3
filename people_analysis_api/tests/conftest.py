"""
Shared fixtures for the People Analysis tests.

Gemini is replaced by FakeGenaiClient, which answers generate_content with a
canned response text or raises a canned error.
"""

import base64
import io
import json
from types import SimpleNamespace

import pytest
from PIL import Image

from people_analysis_api.analyzer import ExtractionClient


def make_person(person_id: int = 1, **overrides) -> dict:
    """A valid person record in Gemini's wire format."""
    person = {
        "id": person_id,
        "label": f"Person {person_id}",
        "description": "Smiling and waving at the camera",
        "estimatedAge": "20-30",
        "gender": "female",
        "fashion": "Red coat and black boots",
        "isCelebrity": False,
        "box2d": {"ymin": 100, "xmin": 100, "ymax": 300, "xmax": 300},
    }
    person.update(overrides)
    return person


class FakeModels:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


class FakeGenaiClient:
    """Stand-in for google.genai.Client exposing only ``aio.models``."""

    def __init__(self, text=None, error=None):
        self.models = FakeModels(text=text, error=error)
        self.aio = SimpleNamespace(models=self.models)


@pytest.fixture
def sample_payload() -> dict:
    return {
        "people": [
            make_person(1),
            make_person(
                2,
                label="Man in a suit",
                isCelebrity=True,
                celebrityName="Famous Actor",
                box2d={"ymin": 50, "xmin": 500, "ymax": 950, "xmax": 900},
            ),
        ]
    }


@pytest.fixture
def payload_text(sample_payload) -> str:
    return json.dumps(sample_payload)


@pytest.fixture
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (200, 100), color=(240, 240, 240)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_base64(png_bytes) -> str:
    return base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def fake_client_factory():
    """
    Returns ``make(text=None, error=None)``, which builds an extractor factory
    backed by a FakeGenaiClient; the fake is available as ``make.client``.
    """

    def make(text=None, error=None):
        client = FakeGenaiClient(text=text, error=error)
        make.client = client

        def extractor_factory(api_key, model):
            return ExtractionClient(api_key=api_key, model=model, client_factory=lambda key: client)

        return extractor_factory

    make.client = None
    return make
