"""Shared fixtures for inkpress tests."""

from datetime import datetime
from pathlib import Path

import pytest

from inkpress.core.models import ContentRecord


@pytest.fixture
def make_record():
    """Factory for in-memory content records."""

    def _make(slug: str, date: str | None = None, tags=(), links_to=(), **kwargs) -> ContentRecord:
        kwargs.setdefault("title", slug.replace("-", " ").title())
        kwargs.setdefault("html", f"<p>Body of {slug}</p>")
        return ContentRecord(
            slug=slug,
            date=datetime.fromisoformat(date) if date else None,
            tags=tuple(tags),
            links_to=tuple(links_to),
            **kwargs,
        )

    return _make


@pytest.fixture
def content_dir(tmp_path) -> Path:
    """A small content directory with posts, a page and cross-links."""
    root = tmp_path / "content"
    root.mkdir()
    files = {
        "2024-01-01-hello.md": (
            "---\ntitle: Hello World\ntags: python, web\nauthors: alice\n---\n"
            "# Hello World\n\nFirst post.\n"
        ),
        "2024-02-01-second.md": (
            "---\ntitle: Second Post\ntags:\n  - python\nauthors:\n  - alice\n  - bob\n---\n"
            "Links back to [the first one](hello-world.html).\n"
        ),
        "2024-03-01-third.md": (
            "---\ntitle: Third Post\ntags: [web]\n---\n"
            "See [[Hello World]] and [[Second Post]].\n"
        ),
        "about.md": "# About\n\nThis site is about [[Hello World|things]].\n",
    }
    for name, text in files.items():
        (root / name).write_text(text, encoding="utf-8")
    return root


@pytest.fixture
def site_yaml(tmp_path) -> Path:
    path = tmp_path / "site.yaml"
    path.write_text(
        "name: Test Site\n"
        "tagline: Testing things\n"
        "pagination: 2\n"
        "authors:\n"
        "  alice:\n"
        "    name: Alice Example\n"
        "    bio: Writes posts.\n"
        "    links:\n"
        "      - [Website, 'https://alice.example']\n",
        encoding="utf-8",
    )
    return path
