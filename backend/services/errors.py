from __future__ import annotations

from typing import Optional


class MetadataError(Exception):
    """Base class for failures while generating metadata for one asset."""

    default_message = "An unknown error occurred during AI generation."

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class EmptyResponseError(MetadataError):
    default_message = "Received an empty response from the AI."


class GenerationServiceError(MetadataError):
    """Transport or API failure talking to the generation provider."""

    def __init__(self, message: str = "", cause: Optional[BaseException] = None) -> None:
        super().__init__(f"AI generation failed: {message}" if message else "")
        self.cause = cause


class MetadataParseError(MetadataError):
    default_message = "Failed to parse the response from the AI. The format might be incorrect."
