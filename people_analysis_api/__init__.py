"""People Analysis API: person detection and annotation with Gemini."""

__version__ = "0.1.0"
