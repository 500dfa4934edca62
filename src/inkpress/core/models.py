"""Data models for inkpress."""

import html
import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

EXCERPT_LENGTH = 200

_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")


def strip_markup(text: str) -> str:
    """Remove HTML tags and collapse whitespace."""
    return _SPACE_RE.sub(" ", html.unescape(_TAG_RE.sub(" ", text))).strip()


class ContentRecord(BaseModel):
    """A single post (dated) or page (undated)."""

    model_config = ConfigDict(frozen=True)

    slug: str
    title: str
    date: datetime | None = None
    tags: tuple[str, ...] = ()
    authors: tuple[str, ...] = ()
    html: str = ""
    markdown: str = ""
    description: str | None = None
    banner_image: str | None = None
    card_image: str | None = None
    toc: str | None = None
    links_to: tuple[str, ...] = ()
    stream: str = "index"
    source_path: Path | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_post(self) -> bool:
        return self.date is not None

    @property
    def excerpt(self) -> str:
        """Description, or the body stripped of markup and truncated."""
        if self.description:
            return self.description
        return strip_markup(self.html)[:EXCERPT_LENGTH].rstrip()

    @property
    def url_path(self) -> str:
        return f"{self.slug}.html"


class AuthorRecord(BaseModel):
    """Author profile. Content refers to authors by slug."""

    model_config = ConfigDict(frozen=True)

    slug: str
    name: str
    bio: str = ""
    avatar: str | None = None
    links: tuple[tuple[str, str], ...] = ()

    @property
    def url_path(self) -> str:
        return f"author-{self.slug}.html"


class GroupKind(str, Enum):
    TAG = "tag"
    AUTHOR = "author"
    ARCHIVE = "archive"
    STREAM = "stream"


class GroupedContent(BaseModel):
    """Records grouped under a key, each group sorted newest first."""

    model_config = ConfigDict(frozen=True)

    kind: GroupKind
    map: dict[str, tuple[ContentRecord, ...]] = Field(default_factory=dict)

    def __getitem__(self, key: str) -> tuple[ContentRecord, ...]:
        return self.map[key]

    def __contains__(self, key: object) -> bool:
        return key in self.map

    def __len__(self) -> int:
        return len(self.map)

    def get(self, key: str) -> tuple[ContentRecord, ...]:
        return self.map.get(key, ())

    def iter(self) -> list[tuple[str, tuple[ContentRecord, ...]]]:
        """Groups in display order.

        Tags by number of records (largest first), archive years newest
        first, authors and streams alphabetically.
        """
        items = list(self.map.items())
        if self.kind is GroupKind.TAG:
            items.sort(key=lambda item: (-len(item[1]), item[0]))
        elif self.kind is GroupKind.ARCHIVE:
            items.sort(key=lambda item: item[0], reverse=True)
        else:
            items.sort(key=lambda item: item[0])
        return items


class RelationSnapshot(BaseModel):
    """Cross-links of one record, all expressed as slugs."""

    model_config = ConfigDict(frozen=True)

    back_links: tuple[str, ...] = ()
    related: tuple[str, ...] = ()
    previous: str | None = None
    next: str | None = None


class Page(BaseModel):
    """One slice of a paginated listing."""

    model_config = ConfigDict(frozen=True)

    items: tuple[Any, ...]
    number: int
    total_pages: int
    stem: str = "index"

    @property
    def previous_page(self) -> int | None:
        return self.number - 1 if self.number > 1 else None

    @property
    def next_page(self) -> int | None:
        return self.number + 1 if self.number < self.total_pages else None

    @property
    def filename(self) -> str:
        return page_filename(self.stem, self.number)

    @property
    def previous_filename(self) -> str | None:
        if self.previous_page is None:
            return None
        return page_filename(self.stem, self.previous_page)

    @property
    def next_filename(self) -> str | None:
        if self.next_page is None:
            return None
        return page_filename(self.stem, self.next_page)


def page_filename(stem: str, number: int) -> str:
    """``index.html`` for the first page, ``index-2.html`` onwards."""
    if number == 1:
        return f"{stem}.html"
    return f"{stem}-{number}.html"
