"""Render dispatcher: binds snapshot objects to Jinja2 templates."""

import logging
import threading
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Any, NamedTuple

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, select_autoescape
from pydantic import BaseModel, ConfigDict, Field

from inkpress.core.models import AuthorRecord, ContentRecord, GroupedContent, Page
from inkpress.core.pagination import paginate
from inkpress.core.snapshot import SiteSnapshot
from inkpress.core.storage import DEFAULT_STREAM, slugify
from inkpress.core.urls import UrlResolver, is_absolute_url
from inkpress.errors import BuildCancelledError, DuplicateSlugError, InkpressError, RenderError

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES = Path(__file__).parent.parent / "templates"


class MenuItem(NamedTuple):
    label: str
    url: str
    external: bool


class ContentList(BaseModel):
    """Items of one listing page with their pagination state."""

    items: list[Any]
    current_page_number: int
    total_pages: int
    previous_page: str | None = None
    next_page: str | None = None


class RenderJob(BaseModel):
    """One output file: a template plus the context it is rendered with."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    filename: str
    template: str
    key: str
    context: dict[str, Any] = Field(default_factory=dict)


class RenderReport(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    written: list[str] = Field(default_factory=list)
    errors: list[InkpressError] = Field(default_factory=list)


def key_slug(key: str) -> str:
    """Filesystem-safe form of a tag, author or stream key."""
    return slugify(key) or "untitled"


def create_environment(template_dir: Path | None, url_for: UrlResolver, date_format: str) -> Environment:
    """Jinja2 environment with user templates taking precedence over the defaults."""
    loaders = [FileSystemLoader(str(template_dir))] if template_dir else []
    loaders.append(FileSystemLoader(str(DEFAULT_TEMPLATES)))
    env = Environment(
        loader=ChoiceLoader(loaders),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )

    def datefmt(value: datetime | None, fmt: str | None = None) -> str:
        if value is None:
            return ""
        return value.strftime(fmt or date_format)

    env.filters["datefmt"] = datefmt
    env.filters["slugify"] = key_slug
    env.globals["url_for"] = url_for
    return env


class RenderDispatcher:
    """Maps snapshot objects to template contexts and renders them.

    Holds no business logic; everything it needs is read from the frozen
    snapshot, which makes individual jobs safe to render concurrently.
    """

    def __init__(self, snapshot: SiteSnapshot, template_dir: Path | None = None):
        self.snapshot = snapshot
        self.site = snapshot.site
        self.url_for = UrlResolver(self.site.prefix)
        self.env = create_environment(template_dir, self.url_for, self.site.date_format)
        self.menu = [MenuItem(label, url, is_absolute_url(url)) for label, url in self.site.menu]
        self.site_data = {
            "tag": snapshot.indexes.tags,
            "author": snapshot.indexes.authors,
            "archive": snapshot.indexes.archive,
            "stream": snapshot.indexes.streams,
        }

    # ========== Context builders ==========

    def base_context(self, title: str) -> dict[str, Any]:
        return {
            "site": self.site,
            "menu": self.menu,
            "site_data": self.site_data,
            "authors": self.snapshot.authors,
            "title": title,
        }

    def content_context(self, record: ContentRecord) -> dict[str, Any]:
        """Context for a single post or page."""
        relation = self.snapshot.relation(record.slug)
        content = record.model_dump()
        content.update(
            excerpt=record.excerpt,
            url_path=record.url_path,
            is_post=record.is_post,
            back_links=self.snapshot.records(relation.back_links),
            related=self.snapshot.records(relation.related) if self.site.enable_related_content else [],
            previous=self.snapshot.record(relation.previous) if self.site.show_next_prev_links else None,
            next=self.snapshot.record(relation.next) if self.site.show_next_prev_links else None,
        )
        return {**self.base_context(record.title), "content": content}

    def list_context(self, title: str, page: Page, list_kind: str = "content", **extra: Any) -> dict[str, Any]:
        """Context for one page of a listing."""
        content_list = ContentList(
            items=list(page.items),
            current_page_number=page.number,
            total_pages=page.total_pages,
            previous_page=page.previous_filename,
            next_page=page.next_filename,
        )
        return {
            **self.base_context(title),
            "content_list": content_list,
            "page": page,
            "list_kind": list_kind,
            **extra,
        }

    def group_context(self, title: str, group: GroupedContent) -> dict[str, Any]:
        """Context for an overview of all groups of one kind."""
        return {
            **self.base_context(title),
            "groups": group.iter(),
            "kind": group.kind.value,
            "link_prefix": group.kind.value,
        }

    # ========== Jobs ==========

    def _listing_jobs(
        self,
        items: tuple[Any, ...],
        stem: str,
        title: str,
        template: str = "list.html",
        **extra: Any,
    ) -> list[RenderJob]:
        return [
            RenderJob(
                filename=page.filename,
                template=template,
                key=stem,
                context=self.list_context(title, page, **extra),
            )
            for page in paginate(items, self.site.pagination, stem=stem)
        ]

    def _job_groups(self) -> Iterator[tuple[str, list[RenderJob]]]:
        """Jobs grouped by the key they are reported under.

        Listings come before content pages, so a record whose slug matches a
        listing file (``tags``, ``index-2``) is the one that loses.
        """
        snapshot = self.snapshot
        store = snapshot.store
        indexes = snapshot.indexes

        index_posts = tuple(r for r in store.posts if r.stream == DEFAULT_STREAM)
        yield "index", self._listing_jobs(index_posts, "index", self.site.name)
        yield "pages", self._listing_jobs(store.pages, "pages", "Pages")

        for kind, group, stem in (
            ("Tags", indexes.tags, "tags"),
            ("Archive", indexes.archive, "archive"),
        ):
            yield stem, [
                RenderJob(
                    filename=f"{stem}.html",
                    template="group.html",
                    key=stem,
                    context=self.group_context(kind, group),
                )
            ]

        authors = tuple(sorted(snapshot.authors.values(), key=lambda a: a.name.lower()))
        yield "authors", self._listing_jobs(authors, "authors", "Authors", list_kind="author")

        for stream, records in indexes.streams.iter():
            if stream != DEFAULT_STREAM:
                yield stream, self._listing_jobs(records, key_slug(stream), stream)
        for tag, records in indexes.tags.iter():
            yield tag, self._listing_jobs(records, f"tag-{key_slug(tag)}", tag)
        for year, records in indexes.archive.iter():
            yield year, self._listing_jobs(records, f"archive-{year}", year)
        for author in authors:
            yield author.slug, self._author_jobs(author)

        for record in store:
            yield record.slug, [
                RenderJob(
                    filename=record.url_path,
                    template="content.html",
                    key=record.slug,
                    context=self.content_context(record),
                )
            ]

    def plan(self) -> tuple[list[RenderJob], list[DuplicateSlugError]]:
        """Every file the site consists of, plus the outputs left out.

        Two outputs never share a file name: a group whose file is already
        planned is dropped whole and reported under its key.
        """
        claimed: dict[str, str] = {}
        jobs: list[RenderJob] = []
        errors: list[DuplicateSlugError] = []
        for key, group in self._job_groups():
            clash = next((job.filename for job in group if job.filename in claimed), None)
            if clash is not None:
                error = DuplicateSlugError(key, f"{clash} is already written for {claimed[clash]}")
                logger.error("Skipping output of %s", error)
                errors.append(error)
                continue
            for job in group:
                claimed[job.filename] = key
            jobs += group
        return jobs, errors

    def jobs(self) -> list[RenderJob]:
        """Every file the site consists of."""
        return self.plan()[0]

    def _author_jobs(self, author: AuthorRecord) -> list[RenderJob]:
        records = self.snapshot.indexes.authors.get(author.slug)
        return self._listing_jobs(
            records,
            author.url_path.removesuffix(".html"),
            author.name,
            template="author.html",
            author=author,
        )

    # ========== Rendering ==========

    def render(self, job: RenderJob) -> str:
        return self.env.get_template(job.template).render(**job.context)

    def _write(self, job: RenderJob, output_dir: Path, cancel: threading.Event | None) -> str | None:
        if cancel is not None and cancel.is_set():
            return None
        html = self.render(job)
        (output_dir / job.filename).write_text(html, encoding="utf-8")
        return job.filename

    def render_all(
        self,
        output_dir: Path,
        workers: int = 4,
        cancel: threading.Event | None = None,
    ) -> RenderReport:
        """Render every job into ``output_dir`` using a thread pool.

        A failing job is recorded in the report and does not stop the
        others. Outputs dropped for reusing a file name are reported too.

        Raises:
            BuildCancelledError: If ``cancel`` was set before all jobs ran.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        jobs, skipped = self.plan()
        report = RenderReport(errors=list(skipped))
        with ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="render") as pool:
            futures = [(job, pool.submit(self._write, job, output_dir, cancel)) for job in jobs]
            for job, future in futures:
                try:
                    written = future.result()
                except Exception as e:
                    logger.exception("Failed to render %s", job.filename)
                    report.errors.append(RenderError(job.key, e))
                    continue
                if written is not None:
                    report.written.append(written)

        if cancel is not None and cancel.is_set():
            raise BuildCancelledError("rebuild cancelled while rendering")
        logger.info("Rendered %d files (%d failed)", len(report.written), len(report.errors))
        return report
