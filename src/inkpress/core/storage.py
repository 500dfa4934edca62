"""Content store: Markdown files with YAML frontmatter parsed into records."""

import logging
import re
import unicodedata
from collections.abc import Iterator
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable

import yaml
from pydantic import BaseModel, ConfigDict

from inkpress.config import SiteConfig
from inkpress.core.models import ContentRecord
from inkpress.core.parser import extract_internal_links, render_markdown
from inkpress.core.urls import UrlResolver
from inkpress.errors import BuildError, ContentError, DuplicateSlugError, InvalidDateError

logger = logging.getLogger(__name__)

DEFAULT_STREAM = "index"
MEDIA_DIR = "media"
DATE_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d")
FILENAME_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase ASCII slug; accented letters decompose into separate runs."""
    normalized = unicodedata.normalize("NFD", text).lower()
    return _SLUG_INVALID.sub("-", normalized).strip("-")


def parse_date(value: Any) -> datetime:
    """Parse a frontmatter date.

    Accepts YAML-native dates and datetimes or the strings
    ``2024-01-01 15:40:56``, ``2024-01-01 15:40`` and ``2024-01-01``.

    Raises:
        ValueError: If the value matches none of the formats.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"unrecognised date format {text!r}")


def date_from_filename(path: Path) -> datetime | None:
    """First ``YYYY-MM-DD`` found in the path, at midnight."""
    match = FILENAME_DATE_PATTERN.search(str(path))
    if not match:
        return None
    try:
        return datetime.strptime(match.group(0), "%Y-%m-%d")
    except ValueError:
        return None


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


def split_list(value: Any) -> list[str]:
    """Frontmatter lists may be YAML sequences or comma separated strings."""
    if value is None:
        return []
    if isinstance(value, str):
        items = [item.strip() for item in value.split(",")]
    elif isinstance(value, (list, tuple)):
        items = ["" if item is None else str(item) for item in value]
    else:
        items = [str(value)]
    seen: list[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def extract_title(frontmatter: dict[str, Any], markdown: str) -> tuple[str, str]:
    """Title from frontmatter or from the first non-empty body line.

    Returns (title, markdown without the leading title line).
    """
    title = frontmatter.get("title")
    if isinstance(title, str) and title.strip():
        title = title.strip()
    else:
        first = next((line for line in markdown.splitlines() if line.strip()), "")
        title = first.strip().lstrip("#").strip()

    lines = markdown.splitlines()
    index = 0
    while index < len(lines):
        stripped = lines[index].strip()
        if not stripped or stripped == title or (
            stripped.startswith("#") and stripped.lstrip("#").strip() == title
        ):
            index += 1
            continue
        break
    return title, "\n".join(lines[index:])


class ContentLoadResult(BaseModel):
    """Records that loaded cleanly plus per-record errors."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    records: tuple[ContentRecord, ...] = ()
    errors: tuple[ContentError, ...] = ()


class ContentStore:
    """Immutable collection of content records keyed by slug."""

    def __init__(self, records: tuple[ContentRecord, ...] | list[ContentRecord] = ()):
        self._records = tuple(records)
        self._by_slug = {record.slug: record for record in self._records}
        if len(self._by_slug) != len(self._records):
            raise BuildError("content store holds duplicate slugs")

    def __iter__(self) -> Iterator[ContentRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, slug: object) -> bool:
        return slug in self._by_slug

    def get(self, slug: str) -> ContentRecord | None:
        return self._by_slug.get(slug)

    @property
    def records(self) -> tuple[ContentRecord, ...]:
        return self._records

    @property
    def posts(self) -> tuple[ContentRecord, ...]:
        """Dated records, newest first."""
        return tuple(sorted((r for r in self._records if r.is_post), key=lambda r: r.date, reverse=True))

    @property
    def pages(self) -> tuple[ContentRecord, ...]:
        """Undated records sorted by title."""
        return tuple(sorted((r for r in self._records if not r.is_post), key=lambda r: r.title.lower()))


class FileContentSource:
    """Reads content records from a directory tree.

    Every ``*.md`` file is a record unless its name starts with ``_``.
    Files carry optional YAML frontmatter between ``---`` fences.
    """

    FRONTMATTER_PATTERN = re.compile(
        r"^---\s*\n(.*?)\n---\s*\n",
        re.DOTALL,
    )

    def __init__(self, base_path: Path, url_for: Callable[[str], str] | None = None, prefix: str = ""):
        self.base_path = base_path
        self.url_for = url_for
        self.prefix = prefix

    def _parse_frontmatter(self, content: str) -> tuple[dict[str, Any], str]:
        """Parse YAML frontmatter from content.

        Returns (frontmatter, content_without_frontmatter).
        """
        match = self.FRONTMATTER_PATTERN.match(content)
        if match:
            try:
                frontmatter = yaml.safe_load(match.group(1)) or {}
            except yaml.YAMLError:
                logger.warning("Ignoring malformed frontmatter")
                return {}, content
            if isinstance(frontmatter, dict):
                return frontmatter, content[match.end() :]
        return {}, content

    def _slug_for(self, frontmatter: dict[str, Any], path: Path, stream: str) -> str:
        if frontmatter.get("slug"):
            slug = slugify(str(frontmatter["slug"]))
        elif frontmatter.get("title"):
            slug = slugify(str(frontmatter["title"]))
        else:
            slug = path.stem
            found = date_from_filename(Path(path.name))
            if found is not None:
                slug = slug.replace(f"{found.date().isoformat()}-", "", 1)
        slug = slug or slugify(path.stem) or path.stem
        if stream != DEFAULT_STREAM:
            slug = f"{stream}-{slug}"
        return slug

    def iter_paths(self) -> list[Path]:
        """Content files in a stable order, skipping the media directory."""
        return sorted(
            p
            for p in self.base_path.rglob("*.md")
            if p.is_file()
            and not p.name.startswith("_")
            and p.relative_to(self.base_path).parts[0] != MEDIA_DIR
        )

    def parse_file(self, path: Path) -> ContentRecord:
        """Parse one content file.

        Raises:
            InvalidDateError: The frontmatter date cannot be parsed.
            BuildError: The file cannot be read at all.
        """
        relative = path.relative_to(self.base_path)
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise BuildError(f"cannot read {relative}: {e}", slug=path.stem) from e

        frontmatter, body = self._parse_frontmatter(raw)
        stream = str(frontmatter.get("stream") or DEFAULT_STREAM).strip() or DEFAULT_STREAM
        slug = self._slug_for(frontmatter, relative, stream)

        if frontmatter.get("date") is not None:
            try:
                record_date = parse_date(frontmatter["date"])
            except ValueError as e:
                raise InvalidDateError(slug, str(e)) from e
        else:
            record_date = date_from_filename(relative)

        title, body = extract_title(frontmatter, body)
        html, toc = render_markdown(body, url_for=self.url_for)
        links_to = tuple(link for link in extract_internal_links(html, self.prefix) if link != slug)

        extra = frontmatter.get("extra")
        return ContentRecord(
            slug=slug,
            title=title,
            date=record_date,
            tags=tuple(split_list(frontmatter.get("tags"))),
            authors=tuple(a for a in split_list(frontmatter.get("authors")) if a.strip()),
            html=html,
            markdown=body,
            description=_optional_str(frontmatter.get("description")),
            banner_image=_optional_str(frontmatter.get("banner_image")),
            card_image=_optional_str(frontmatter.get("card_image")),
            toc=toc,
            links_to=links_to,
            stream=stream,
            source_path=relative,
            extra=extra if isinstance(extra, dict) else {},
        )

    def load(self) -> ContentLoadResult:
        """Parse every content file, isolating per-record failures.

        Records with an unparseable date and records repeating an earlier
        slug are reported and left out. Unreadable files halt the load.

        Raises:
            BuildError: The content directory is missing or a file is unreadable.
        """
        if not self.base_path.is_dir():
            raise BuildError(f"content directory not found: {self.base_path}")

        records: list[ContentRecord] = []
        errors: list[ContentError] = []
        seen: dict[str, Path | None] = {}
        for path in self.iter_paths():
            try:
                record = self.parse_file(path)
            except ContentError as e:
                logger.error("Skipping %s: %s", path.name, e)
                errors.append(e)
                continue
            if record.slug in seen:
                error = DuplicateSlugError(
                    record.slug, f"{record.source_path} repeats the slug of {seen[record.slug]}"
                )
                logger.error("Skipping %s: %s", path.name, error)
                errors.append(error)
                continue
            seen[record.slug] = record.source_path
            records.append(record)

        logger.info("Loaded %d content records (%d skipped)", len(records), len(errors))
        return ContentLoadResult(records=tuple(records), errors=tuple(errors))


def load_content(content_dir: Path, site: SiteConfig) -> ContentLoadResult:
    """Load every record under ``content_dir`` with links rooted at the site prefix."""
    source = FileContentSource(content_dir, url_for=UrlResolver(site.prefix), prefix=site.prefix)
    return source.load()
