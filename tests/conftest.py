from __future__ import annotations

from typing import Dict, List

import pytest

from services.errors import GenerationServiceError
from services.models import Asset, FileHandle, GeneratedMetadata
from services.registry import AssetRegistry


def make_asset(name: str, marketplace: str = "Adobe Stock", **fields) -> Asset:
    return Asset(id=name, file=FileHandle(name=name), marketplace=marketplace, **fields)


class FakeRequester:
    """Records calls; filenames starting with ``bad`` fail."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, str]] = []

    async def __call__(self, filename: str, marketplace: str) -> GeneratedMetadata:
        self.calls.append({"filename": filename, "marketplace": marketplace})
        if filename.startswith("bad"):
            raise GenerationServiceError(f"boom for {filename}")
        return GeneratedMetadata(
            title=f"Title {filename}",
            description=f"Description {filename}",
            keywords="alpha,beta",
        )


@pytest.fixture
def registry() -> AssetRegistry:
    return AssetRegistry()


@pytest.fixture
def requester() -> FakeRequester:
    return FakeRequester()
