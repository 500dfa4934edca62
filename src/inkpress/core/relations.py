"""Relation resolver: back-links, related content and previous/next chains."""

import logging
from collections.abc import Mapping, Sequence
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field

from inkpress.config import RelatedTagStrategy
from inkpress.core.indexes import SiteIndexes, sort_newest_first
from inkpress.core.models import ContentRecord, RelationSnapshot

logger = logging.getLogger(__name__)


class RelationOptions(BaseModel):
    """Caps and policy for relation resolution."""

    model_config = ConfigDict(frozen=True)

    back_links_limit: int = Field(default=10, ge=0)
    related_limit: int = Field(default=5, ge=0)
    related_tag_strategy: RelatedTagStrategy = RelatedTagStrategy.FIRST_TAG_ONLY


def resolve_back_links(
    record: ContentRecord,
    by_slug: Mapping[str, ContentRecord],
    indexes: SiteIndexes,
    limit: int,
) -> tuple[str, ...]:
    """Records linking to ``record``, newest first, capped at ``limit``."""
    sources = [by_slug[slug] for slug in indexes.reverse_links.get(record.slug, ()) if slug in by_slug]
    return tuple(r.slug for r in sort_newest_first(sources)[:limit])


def resolve_related(
    record: ContentRecord,
    indexes: SiteIndexes,
    back_links: Sequence[str],
    options: RelationOptions,
) -> tuple[str, ...]:
    """Records sharing a tag with ``record``.

    With ``first_tag_only`` only the record's first tag is consulted, even
    when it has several. ``all_tags`` walks every tag in declared order.
    The record itself and its back-links are never listed.
    """
    tags = indexes.tags_of(record)
    if not tags or options.related_limit == 0:
        return ()
    if options.related_tag_strategy is RelatedTagStrategy.FIRST_TAG_ONLY:
        tags = tags[:1]

    excluded = {record.slug, *back_links}
    related: list[str] = []
    for tag in tags:
        for candidate in indexes.tags.get(tag):
            if candidate.slug in excluded or candidate.slug in related:
                continue
            related.append(candidate.slug)
            if len(related) >= options.related_limit:
                return tuple(related)
    return tuple(related)


def resolve_chain(records: Sequence[ContentRecord]) -> dict[str, tuple[str | None, str | None]]:
    """Previous/next neighbours of dated records ordered by (date, slug)."""
    ordered = sorted((r for r in records if r.date is not None), key=lambda r: (r.date, r.slug))
    chain: dict[str, tuple[str | None, str | None]] = {}
    for position, record in enumerate(ordered):
        previous = ordered[position - 1].slug if position > 0 else None
        following = ordered[position + 1].slug if position + 1 < len(ordered) else None
        chain[record.slug] = (previous, following)
    return chain


def resolve_relations(
    records: Sequence[ContentRecord],
    indexes: SiteIndexes,
    options: RelationOptions | None = None,
) -> Mapping[str, RelationSnapshot]:
    """Compute a RelationSnapshot for every record.

    A pure function of the records and their indexes; the result is a
    read-only mapping keyed by slug.
    """
    options = options or RelationOptions()
    by_slug = {r.slug: r for r in records}
    chain = resolve_chain(records)

    relations: dict[str, RelationSnapshot] = {}
    for record in records:
        back_links = resolve_back_links(record, by_slug, indexes, options.back_links_limit)
        previous, following = chain.get(record.slug, (None, None))
        relations[record.slug] = RelationSnapshot(
            back_links=back_links,
            related=resolve_related(record, indexes, back_links, options),
            previous=previous,
            next=following,
        )
    logger.debug("Resolved relations for %d records", len(relations))
    return MappingProxyType(relations)
