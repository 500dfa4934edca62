"""End-to-end smoke tests for the inkpress HTTP application.

Builds a site into a temp directory, then exercises the snapshot API and
the static file serving.
"""

import importlib

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


@pytest.fixture()
def site_app(content_dir, site_yaml, tmp_path, monkeypatch):
    """Fresh app instance pointing at temp content and output directories.

    Replaces the settings object and reloads main so the module-level
    generator picks up the environment. The site is built once before the
    app is returned.
    """
    monkeypatch.setenv("INKPRESS_CONTENT_DIR", str(content_dir))
    monkeypatch.setenv("INKPRESS_OUTPUT_DIR", str(tmp_path / "public"))
    monkeypatch.setenv("INKPRESS_SITE_CONFIG", str(site_yaml))

    import inkpress.config
    monkeypatch.setattr(inkpress.config, "settings", inkpress.config.Settings())
    import inkpress.main
    importlib.reload(inkpress.main)

    inkpress.main.generator.rebuild()
    return inkpress.main.app


@pytest_asyncio.fixture()
async def client(site_app):
    """Async HTTP client wired to the app (no lifespan)."""
    transport = ASGITransport(app=site_app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# ============================================================
# Snapshot API
# ============================================================


class TestSnapshotApi:
    @pytest.mark.asyncio
    async def test_site_summary(self, client):
        resp = await client.get("/api/site")
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "Test Site"
        assert data["generation"] == 1
        assert data["posts"] == 3
        assert data["pages"] == 1
        assert data["authors"] == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_tags(self, client):
        resp = await client.get("/api/tags")
        assert resp.status_code == 200
        tags = {t["tag"]: t["slugs"] for t in resp.json()}
        assert tags["python"] == ["second-post", "hello-world"]
        assert tags["web"] == ["third-post", "hello-world"]

    @pytest.mark.asyncio
    async def test_content(self, client):
        resp = await client.get("/api/content/hello-world")
        assert resp.status_code == 200
        data = resp.json()
        assert data["title"] == "Hello World"
        assert data["back_links"] == ["third-post", "second-post", "about"]
        assert data["next"] == "second-post"
        assert data["previous"] is None

    @pytest.mark.asyncio
    async def test_unknown_content(self, client):
        resp = await client.get("/api/content/nope")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_rebuild(self, client, content_dir):
        (content_dir / "2024-04-01-fourth.md").write_text("---\ntitle: Fourth\n---\nNew post")
        resp = await client.post("/api/rebuild")
        assert resp.status_code == 200
        data = resp.json()
        assert data["generation"] == 2
        assert data["records"] == 5

        resp = await client.get("/api/content/fourth")
        assert resp.status_code == 200
        assert resp.json()["previous"] == "third-post"

    @pytest.mark.asyncio
    async def test_rebuild_failure_reported(self, client, content_dir, site_app):
        import inkpress.main

        inkpress.main.generator.content_dir = content_dir / "missing"
        resp = await client.post("/api/rebuild")
        assert resp.status_code == 500
        assert "content directory" in resp.json()["detail"]

        resp = await client.get("/api/site")
        assert resp.json()["generation"] == 1


# ============================================================
# Static site
# ============================================================


class TestStaticSite:
    @pytest.mark.asyncio
    async def test_root_serves_index(self, client):
        resp = await client.get("/")
        assert resp.status_code == 200
        assert "Test Site" in resp.text
        assert "Third Post" in resp.text

    @pytest.mark.asyncio
    async def test_content_page(self, client):
        resp = await client.get("/hello-world.html")
        assert resp.status_code == 200
        assert "First post." in resp.text

    @pytest.mark.asyncio
    async def test_missing_page(self, client):
        resp = await client.get("/nope.html")
        assert resp.status_code == 404
