from __future__ import annotations

from typing import Awaitable, Callable, Protocol

import httpx

from services.errors import EmptyResponseError, GenerationServiceError
from services.metadata_parser import parse_metadata
from services.models import GeneratedMetadata

TITLE_MAX_CHARS = 70
DESCRIPTION_MAX_CHARS = 250
KEYWORD_COUNT = 40

PROMPT_TEMPLATE = """
Generate metadata for a stock asset to be listed on {marketplace}.
Filename: {filename}

The asset is a standard stock photo/video. Do not describe the filename itself, but infer the likely subject matter from the filename for generating the metadata.

Return:
- A concise, descriptive Title (max {title_max} characters) that is highly relevant.
- A compelling Description (max {description_max} characters) detailing the asset's content and potential uses.
- Exactly {keyword_count} SEO-optimized keywords, comma-separated, ordered from most to least important.

Strictly follow this format:
Title: [Your Title Here]
Description: [Your Description Here]
Keywords: [Your Keywords Here]
"""


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str: ...


MetadataRequester = Callable[[str, str], Awaitable[GeneratedMetadata]]


def build_prompt(filename: str, marketplace: str) -> str:
    return PROMPT_TEMPLATE.format(
        marketplace=marketplace,
        filename=filename,
        title_max=TITLE_MAX_CHARS,
        description_max=DESCRIPTION_MAX_CHARS,
        keyword_count=KEYWORD_COUNT,
    )


async def request_metadata(client: TextGenerator, filename: str, marketplace: str) -> GeneratedMetadata:
    """Ask the generation service for metadata for one file.

    Raises GenerationServiceError on transport/API failures, EmptyResponseError
    when no text comes back and MetadataParseError when nothing labelled could
    be read from the text.
    """
    prompt = build_prompt(filename, marketplace)
    try:
        text = await client.generate(prompt)
    except httpx.HTTPError as exc:
        raise GenerationServiceError(str(exc) or exc.__class__.__name__, cause=exc) from exc
    except ValueError as exc:
        # Undecodable provider payload.
        raise GenerationServiceError(str(exc), cause=exc) from exc

    if not text or not text.strip():
        raise EmptyResponseError()
    return parse_metadata(text)


def bind_requester(client: TextGenerator) -> MetadataRequester:
    async def _request(filename: str, marketplace: str) -> GeneratedMetadata:
        return await request_metadata(client, filename, marketplace)

    return _request
