"""Index builder: tag, author, archive and stream groupings.

Indexes are derived views of a content snapshot. Every build returns new
immutable objects; nothing here mutates an index after construction.
"""

import logging
from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict, Field

from inkpress.core.models import ContentRecord, GroupedContent, GroupKind
from inkpress.errors import MissingMetadataError

logger = logging.getLogger(__name__)


def sort_newest_first(records: Iterable[ContentRecord]) -> tuple[ContentRecord, ...]:
    """Dated records newest first, then undated ones in their original order."""
    records = list(records)
    dated = sorted((r for r in records if r.date is not None), key=lambda r: r.date, reverse=True)
    undated = [r for r in records if r.date is None]
    return tuple(dated + undated)


def valid_tags(record: ContentRecord) -> tuple[list[str], list[MissingMetadataError]]:
    """Trimmed tags of a record, and an error for each blank one."""
    tags: list[str] = []
    errors: list[MissingMetadataError] = []
    for position, tag in enumerate(record.tags, start=1):
        name = tag.strip()
        if not name:
            errors.append(MissingMetadataError(record.slug, f"tag #{position} is empty"))
        elif name not in tags:
            tags.append(name)
    return tags, errors


class SiteIndexes(BaseModel):
    """All groupings derived from one content snapshot."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    tags: GroupedContent = Field(default_factory=lambda: GroupedContent(kind=GroupKind.TAG))
    authors: GroupedContent = Field(default_factory=lambda: GroupedContent(kind=GroupKind.AUTHOR))
    archive: GroupedContent = Field(default_factory=lambda: GroupedContent(kind=GroupKind.ARCHIVE))
    streams: GroupedContent = Field(default_factory=lambda: GroupedContent(kind=GroupKind.STREAM))
    reverse_links: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    errors: tuple[MissingMetadataError, ...] = ()

    def tags_of(self, record: ContentRecord) -> list[str]:
        """The record's tags that made it into the tag index, in declared order."""
        return [t for t in valid_tags(record)[0] if t in self.tags]


def _group(kind: GroupKind, pairs: Iterable[tuple[str, ContentRecord]]) -> GroupedContent:
    buckets: dict[str, list[ContentRecord]] = {}
    for key, record in pairs:
        buckets.setdefault(key, []).append(record)
    return GroupedContent(kind=kind, map={key: sort_newest_first(group) for key, group in buckets.items()})


def build_reverse_links(records: Sequence[ContentRecord]) -> dict[str, tuple[str, ...]]:
    """Map each slug to the slugs of records linking to it.

    Self links and links to slugs outside the snapshot are dropped.
    """
    known = {r.slug for r in records}
    inbound: dict[str, list[str]] = {}
    for record in records:
        for target in record.links_to:
            if target == record.slug or target not in known:
                continue
            sources = inbound.setdefault(target, [])
            if record.slug not in sources:
                sources.append(record.slug)
    return {target: tuple(sources) for target, sources in inbound.items()}


def build_indexes(records: Sequence[ContentRecord]) -> SiteIndexes:
    """Build the tag, author, archive and stream indexes.

    A record with N tags appears in N tag groups. Blank tags are reported
    as MissingMetadataError and skipped; they never abort the build.

    Args:
        records: Records in their original (load) order.

    Returns:
        A new SiteIndexes snapshot.
    """
    tag_pairs: list[tuple[str, ContentRecord]] = []
    errors: list[MissingMetadataError] = []
    for record in records:
        tags, tag_errors = valid_tags(record)
        for error in tag_errors:
            logger.warning("Skipping tag: %s", error)
        errors.extend(tag_errors)
        tag_pairs.extend((tag, record) for tag in tags)

    indexes = SiteIndexes(
        tags=_group(GroupKind.TAG, tag_pairs),
        authors=_group(GroupKind.AUTHOR, ((a, r) for r in records for a in r.authors)),
        archive=_group(GroupKind.ARCHIVE, ((str(r.date.year), r) for r in records if r.date is not None)),
        streams=_group(GroupKind.STREAM, ((r.stream, r) for r in records)),
        reverse_links=build_reverse_links(records),
        errors=tuple(errors),
    )
    logger.debug(
        "Built indexes: %d tags, %d authors, %d years, %d streams",
        len(indexes.tags),
        len(indexes.authors),
        len(indexes.archive),
        len(indexes.streams),
    )
    return indexes
