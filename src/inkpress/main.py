"""inkpress FastAPI application.

Serves the published output directory and a read-only JSON view of the
current site snapshot. ``POST /api/rebuild`` runs a new generation cycle.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.staticfiles import StaticFiles

from inkpress.config import load_site_config, settings
from inkpress.core.site import BuildResult, SiteGenerator
from inkpress.core.snapshot import SiteSnapshot
from inkpress.errors import BuildCancelledError, BuildError

logger = logging.getLogger(__name__)

generator = SiteGenerator(
    content_dir=settings.content_dir,
    output_dir=settings.output_dir,
    site=load_site_config(settings.site_config),
    template_dir=settings.template_dir,
    workers=settings.workers,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the site once on startup; serve the previous output if that fails."""
    try:
        await run_in_threadpool(generator.rebuild)
    except (BuildError, BuildCancelledError):
        logger.exception("Initial build failed, serving existing output")
    yield
    generator.cancel()


app = FastAPI(
    title="inkpress",
    debug=settings.debug,
    lifespan=lifespan,
)


def current_snapshot() -> SiteSnapshot:
    snapshot = generator.snapshot
    if snapshot is None:
        raise HTTPException(status_code=503, detail="Site has not been built yet")
    return snapshot


def build_summary(result: BuildResult) -> dict:
    snapshot = result.snapshot
    return {
        "generation": snapshot.generation,
        "records": len(snapshot.store),
        "written": len(result.written),
        "errors": [str(e) for e in result.errors],
    }


# ========== Snapshot API ==========


@app.get("/api/site")
async def api_site():
    """Summary of the current snapshot."""
    snapshot = current_snapshot()
    return {
        "name": snapshot.site.name,
        "generation": snapshot.generation,
        "posts": len(snapshot.store.posts),
        "pages": len(snapshot.store.pages),
        "tags": len(snapshot.indexes.tags),
        "authors": sorted(snapshot.authors),
        "errors": [str(e) for e in snapshot.errors],
    }


@app.get("/api/tags")
async def api_tags():
    """Tag index, largest groups first."""
    snapshot = current_snapshot()
    return [
        {"tag": tag, "count": len(records), "slugs": [r.slug for r in records]}
        for tag, records in snapshot.indexes.tags.iter()
    ]


@app.get("/api/content/{slug}")
async def api_content(slug: str):
    """Metadata and relations of one record."""
    snapshot = current_snapshot()
    record = snapshot.record(slug)
    if record is None:
        raise HTTPException(status_code=404, detail="Content not found")
    relation = snapshot.relation(slug)
    return {
        "slug": record.slug,
        "title": record.title,
        "date": record.date.isoformat() if record.date else None,
        "tags": list(record.tags),
        "authors": list(record.authors),
        "stream": record.stream,
        "excerpt": record.excerpt,
        "back_links": list(relation.back_links),
        "related": list(relation.related),
        "previous": relation.previous,
        "next": relation.next,
    }


@app.post("/api/rebuild")
async def api_rebuild():
    """Regenerate and publish the site."""
    try:
        result = await run_in_threadpool(generator.rebuild)
    except BuildCancelledError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except BuildError as e:
        logger.error("Rebuild failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    return build_summary(result)


# Published site; mounted last so the API routes take precedence
app.mount(
    "/",
    StaticFiles(directory=str(settings.output_dir), html=True, check_dir=False),
    name="site",
)
