"""Markdown parser with wiki link support and internal link extraction."""

import re
from typing import Callable
from urllib.parse import urlparse
from xml.etree.ElementTree import Element

from markdown import Markdown
from markdown.extensions import Extension
from markdown.inlinepatterns import InlineProcessor, SimpleTagInlineProcessor


# Pattern for wiki links: [[slug]] or [[slug|Display Text]]
WIKI_LINK_PATTERN = r"\[\[([^\]|]+)(?:\|([^\]]+))?\]\]"

# Pattern for strikethrough: ~~text~~
# Group 2 must contain the text (SimpleTagInlineProcessor expectation)
STRIKETHROUGH_PATTERN = r"(~~)(.*?)~~"

HREF_PATTERN = re.compile(r"""href\s*=\s*["']([^"']+)["']""", re.IGNORECASE)


class StrikethroughExtension(Extension):
    """Markdown extension for ~~strikethrough~~ text."""

    def extendMarkdown(self, md: Markdown) -> None:
        """Add strikethrough pattern to markdown parser."""
        md.inlinePatterns.register(
            SimpleTagInlineProcessor(STRIKETHROUGH_PATTERN, "del"),
            "strikethrough",
            50,
        )


class WikiLinkInlineProcessor(InlineProcessor):
    """Inline processor turning ``[[slug]]`` into a link to that record."""

    def __init__(self, pattern: str, md: Markdown, url_for: Callable[[str], str]):
        super().__init__(pattern, md)
        self.url_for = url_for

    def handleMatch(self, m: re.Match, data: str) -> tuple[Element | None, int, int]:
        """Convert wiki link match to HTML anchor element."""
        target = m.group(1).strip()
        display_text = m.group(2)
        if display_text:
            display_text = display_text.strip()
        else:
            display_text = target

        el = Element("a")
        el.text = display_text
        el.set("href", self.url_for(f"{slugify_link(target)}.html"))
        el.set("class", "internal-link")
        return el, m.start(0), m.end(0)


class WikiLinkExtension(Extension):
    """Markdown extension for wiki links."""

    def __init__(self, url_for: Callable[[str], str] | None = None, **kwargs):
        self.url_for = url_for or (lambda path: path)
        super().__init__(**kwargs)

    def extendMarkdown(self, md: Markdown) -> None:
        """Add wiki link pattern to markdown parser."""
        md.inlinePatterns.register(
            WikiLinkInlineProcessor(WIKI_LINK_PATTERN, md, self.url_for),
            "wiki_link",
            75,
        )


def slugify_link(target: str) -> str:
    """Normalise a wiki link target the way slugs are normalised."""
    from inkpress.core.storage import slugify

    return slugify(target.removesuffix(".html"))


def create_parser(url_for: Callable[[str], str] | None = None) -> Markdown:
    """Create a Markdown parser with wiki link support.

    Args:
        url_for: Resolver turning a site-relative path into a URL.

    Returns:
        Configured Markdown parser instance.
    """
    return Markdown(
        extensions=[
            "extra",  # Includes: abbreviations, attr_list, def_list, fenced_code, footnotes, md_in_html, tables
            "sane_lists",
            "smarty",
            "toc",
            "pymdownx.tasklist",
            StrikethroughExtension(),
            WikiLinkExtension(url_for=url_for),
        ]
    )


def render_markdown(
    content: str,
    url_for: Callable[[str], str] | None = None,
) -> tuple[str, str | None]:
    """Render Markdown to HTML.

    Returns:
        Tuple of (html, toc_html). ``toc_html`` is None when the body has
        no headings.
    """
    parser = create_parser(url_for)
    html = parser.convert(content)
    toc_html = getattr(parser, "toc", "")
    if "<li" not in toc_html:
        toc_html = None
    return html, toc_html


def extract_internal_links(html: str, prefix: str = "") -> list[str]:
    """Slugs of the records an HTML body links to, in order of appearance.

    Only relative or prefix-rooted links to ``*.html`` count; links with a
    scheme or host, and fragment-only links, are external.

    Args:
        html: Rendered body.
        prefix: Deployment prefix (e.g. ``/blog``) stripped from rooted links.
    """
    slugs: list[str] = []
    for href in HREF_PATTERN.findall(html):
        parsed = urlparse(href)
        if parsed.scheme or parsed.netloc or not parsed.path:
            continue
        path = parsed.path
        if prefix and path.startswith(prefix + "/"):
            path = path[len(prefix):]
        path = path.lstrip("/")
        if path.startswith("./"):
            path = path[2:]
        if "/" in path or not path.endswith(".html"):
            continue
        slug = path.removesuffix(".html")
        if slug and slug not in slugs:
            slugs.append(slug)
    return slugs
