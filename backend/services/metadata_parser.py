from __future__ import annotations

import re
from typing import Dict

from services.errors import MetadataParseError
from services.models import CONTENT_FIELDS, GeneratedMetadata

_LABELS = {field: f"{field}:" for field in CONTENT_FIELDS}
_FALLBACK_PATTERNS = {
    field: re.compile(rf"{field}:(.*)", re.IGNORECASE) for field in CONTENT_FIELDS
}


def _scan_lines(text: str) -> Dict[str, str]:
    found = {field: "" for field in CONTENT_FIELDS}
    lines = [line.strip() for line in text.splitlines()]
    for line in lines:
        if not line:
            continue
        lowered = line.lower()
        for field, label in _LABELS.items():
            if lowered.startswith(label):
                # Last occurrence wins.
                found[field] = line[len(label):].strip()
                break
    return found


def parse_metadata(text: str) -> GeneratedMetadata:
    """Extract title, description and keywords from labelled model output.

    Lines starting with ``Title:``, ``Description:`` or ``Keywords:`` (any
    case) are read first. Fields still missing afterwards are searched for
    anywhere in the text. Partial results are returned; only a response with
    none of the three fields raises :class:`MetadataParseError`.
    """
    text = text or ""
    found = _scan_lines(text)
    # Only gaps are searched, so last-wins line values are never replaced.
    for field, pattern in _FALLBACK_PATTERNS.items():
        if found[field]:
            continue
        match = pattern.search(text)
        if match:
            found[field] = match.group(1).strip()

    if not any(found.values()):
        raise MetadataParseError()
    return GeneratedMetadata(**found)
