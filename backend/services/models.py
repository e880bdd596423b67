from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

AssetStatus = Literal["pending", "loading", "completed", "error"]

PENDING = "pending"
LOADING = "loading"
COMPLETED = "completed"
ERROR = "error"

CONTENT_FIELDS = ("title", "description", "keywords")


class FileHandle(BaseModel):
    # Only the name is used for prompting; bytes are never kept.
    name: str
    content_type: Optional[str] = None
    size: Optional[int] = None


class GeneratedMetadata(BaseModel):
    title: str = ""
    description: str = ""
    keywords: str = ""


class Asset(BaseModel):
    id: str
    file: FileHandle
    title: str = ""
    description: str = ""
    keywords: str = ""
    marketplace: str
    status: AssetStatus = PENDING
    error_message: Optional[str] = None

    @classmethod
    def from_file(cls, handle: FileHandle, marketplace: str) -> "Asset":
        return cls(id=handle.name, file=handle, marketplace=marketplace)


class BatchResult(BaseModel):
    status: Literal["noop", "done", "failed"]
    message: str = ""
    total: int = 0
    completed: int = 0
    failed: int = 0
    assets: List[Asset] = Field(default_factory=list)
