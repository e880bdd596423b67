from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MARKETPLACES = [
    "Adobe Stock",
    "Shutterstock",
    "Getty Images",
    "iStock",
    "Alamy",
    "Dreamstime",
    "123RF",
    "Depositphotos",
    "Pond5",
    "Freepik",
]


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="STOCKMETA_",
        extra="ignore",
    )

    base_dir: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent)

    provider: str = "gemini"
    api_key: str = ""
    base_url: str = ""
    model: str = "gemini-2.5-flash"
    # None leaves the generation call unbounded.
    request_timeout: Optional[float] = None
    max_concurrency: Optional[int] = None

    marketplaces: List[str] = Field(default_factory=lambda: list(DEFAULT_MARKETPLACES))
    default_marketplace: Optional[str] = None

    serve_frontend: bool = False
    frontend_dist_path: Optional[Path] = None

    @model_validator(mode="after")
    def derive_defaults(self) -> "AppSettings":
        self.base_dir = self.base_dir.expanduser().resolve()
        self.frontend_dist_path = (
            self.frontend_dist_path or (self.base_dir / "frontend" / "dist")
        ).expanduser().resolve()
        self.provider = (self.provider or "").strip().lower()
        self.marketplaces = [m.strip() for m in self.marketplaces if m and m.strip()]
        if not self.marketplaces:
            raise ValueError("At least one marketplace must be configured")
        if self.default_marketplace is None:
            self.default_marketplace = self.marketplaces[0]
        elif self.default_marketplace not in self.marketplaces:
            raise ValueError(f"Default marketplace {self.default_marketplace!r} is not in the marketplace list")
        if self.max_concurrency is not None and self.max_concurrency <= 0:
            self.max_concurrency = None
        return self


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    return AppSettings()
