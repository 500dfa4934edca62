"""Immutable snapshot of one generation cycle."""

import logging
from collections.abc import Mapping, Sequence

from pydantic import BaseModel, ConfigDict

from inkpress.config import SiteConfig
from inkpress.core.indexes import SiteIndexes, build_indexes
from inkpress.core.models import AuthorRecord, ContentRecord, RelationSnapshot
from inkpress.core.relations import RelationOptions, resolve_relations
from inkpress.core.storage import ContentStore
from inkpress.errors import InkpressError

logger = logging.getLogger(__name__)


class SiteSnapshot(BaseModel):
    """Content store plus every view derived from it.

    Built in one piece by ``build_snapshot`` and never modified; a rebuild
    produces a new snapshot.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    generation: int
    site: SiteConfig
    store: ContentStore
    indexes: SiteIndexes
    relations: Mapping[str, RelationSnapshot]
    authors: Mapping[str, AuthorRecord]
    errors: tuple[InkpressError, ...] = ()

    def record(self, slug: str | None) -> ContentRecord | None:
        if slug is None:
            return None
        return self.store.get(slug)

    def records(self, slugs: Sequence[str]) -> list[ContentRecord]:
        return [r for r in (self.store.get(s) for s in slugs) if r is not None]

    def relation(self, slug: str) -> RelationSnapshot:
        return self.relations.get(slug) or RelationSnapshot()


def build_authors(site: SiteConfig, indexes: SiteIndexes) -> dict[str, AuthorRecord]:
    """Author profiles from the site configuration.

    Authors referenced by content but not configured get a bare profile
    named after their id.
    """
    authors = {
        slug: AuthorRecord(
            slug=slug,
            name=profile.name,
            bio=profile.bio,
            avatar=profile.avatar,
            links=tuple(profile.links),
        )
        for slug, profile in site.authors.items()
    }
    for slug in indexes.authors.map:
        if slug not in authors:
            logger.debug("Author %s has no profile in the site configuration", slug)
            authors[slug] = AuthorRecord(slug=slug, name=slug)
    return authors


def build_snapshot(
    records: Sequence[ContentRecord],
    site: SiteConfig,
    generation: int = 1,
    errors: Sequence[InkpressError] = (),
) -> SiteSnapshot:
    """Index and resolve ``records`` into a complete snapshot."""
    store = ContentStore(records)
    indexes = build_indexes(store.records)
    options = RelationOptions(
        back_links_limit=site.back_links_limit,
        related_limit=site.related_content_limit,
        related_tag_strategy=site.related_tag_strategy,
    )
    relations = resolve_relations(store.records, indexes, options)
    return SiteSnapshot(
        generation=generation,
        site=site,
        store=store,
        indexes=indexes,
        relations=relations,
        authors=build_authors(site, indexes),
        errors=(*errors, *indexes.errors),
    )
