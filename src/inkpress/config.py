"""Application and site configuration."""

import logging
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from inkpress.errors import BuildError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    content_dir: Path = Path("content")
    output_dir: Path = Path("site")
    site_config: Path = Path("site.yaml")
    template_dir: Path | None = None
    workers: int = 4
    debug: bool = False
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="INKPRESS_",
        env_file=".env",
        env_file_encoding="utf-8",
    )


class RelatedTagStrategy(str, Enum):
    """Which of a record's tags feed its related-content list."""

    FIRST_TAG_ONLY = "first_tag_only"
    ALL_TAGS = "all_tags"


class AuthorConfig(BaseModel):
    """Author profile as declared in the site configuration."""

    name: str
    bio: str = ""
    avatar: str | None = None
    links: list[tuple[str, str]] = Field(default_factory=list)


class SiteConfig(BaseModel):
    """Site-wide settings read from the YAML site configuration."""

    model_config = ConfigDict(frozen=True)

    name: str = "Home"
    tagline: str = ""
    url: str = ""
    base_path: str | None = None
    logo_image: str | None = None
    card_image: str | None = None
    footer: str = ""
    language: str = "en"
    date_format: str = "%b %d, %Y"
    pagination: int = Field(default=10, ge=1)
    enable_search: bool = False
    enable_related_content: bool = True
    show_next_prev_links: bool = True
    back_links_limit: int = 10
    related_content_limit: int = 5
    related_tag_strategy: RelatedTagStrategy = RelatedTagStrategy.FIRST_TAG_ONLY
    menu: list[tuple[str, str]] = Field(
        default_factory=lambda: [("Pages", "pages.html"), ("Tags", "tags.html"), ("Archive", "archive.html")]
    )
    authors: dict[str, AuthorConfig] = Field(default_factory=dict)
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("back_links_limit", "related_content_limit")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("limits must not be negative")
        return value

    @property
    def prefix(self) -> str:
        """Deployment prefix all internal URLs are served under, e.g. ``/blog``."""
        path = self.base_path if self.base_path is not None else urlparse(self.url).path
        return "/" + path.strip("/") if path.strip("/") else ""


def load_site_config(path: Path) -> SiteConfig:
    """Load the site configuration from a YAML file.

    A missing file yields the defaults. Invalid YAML is an error the operator
    has to fix, so it propagates.

    Raises:
        BuildError: A setting has an invalid value, e.g. ``pagination: 0``.
    """
    if not path.exists():
        logger.info("No site configuration at %s, using defaults", path)
        return SiteConfig()
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    try:
        return SiteConfig(**data)
    except ValidationError as e:
        raise BuildError(f"invalid site configuration {path}: {e}") from e


settings = Settings()
