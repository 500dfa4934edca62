"""Path-to-URL resolution for internal links."""

from urllib.parse import urlparse


def is_absolute_url(url: str) -> bool:
    """True for links that leave the site (``https://``, ``mailto:``, ``//host``)."""
    parsed = urlparse(url)
    return bool(parsed.scheme or parsed.netloc)


class UrlResolver:
    """Turns site-relative paths into URLs under the deployment prefix.

    Injected into the Markdown parser and the template context as
    ``url_for``; it is the only place that knows where the site is mounted.
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix.rstrip("/")

    def __call__(self, path: str) -> str:
        if not path:
            return self.prefix + "/"
        if is_absolute_url(path):
            return path
        return f"{self.prefix}/{path.lstrip('/')}"

    def __repr__(self) -> str:
        return f"UrlResolver(prefix={self.prefix!r})"
