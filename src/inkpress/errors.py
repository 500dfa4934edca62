"""Exceptions raised while building a site."""


class InkpressError(Exception):
    """Base class for all inkpress errors."""


class ContentError(InkpressError):
    """A problem isolated to a single content record."""

    def __init__(self, slug: str, message: str):
        self.slug = slug
        super().__init__(f"{slug}: {message}")


class MissingMetadataError(ContentError):
    """Raised when a record declares an empty piece of metadata (e.g. a blank tag)."""


class DuplicateSlugError(ContentError):
    """Raised when two records resolve to the same slug."""


class InvalidDateError(ContentError):
    """Raised when a frontmatter date cannot be parsed."""


class InvalidPageSizeError(InkpressError, ValueError):
    """Raised when pagination is asked for a non-positive page size."""

    def __init__(self, page_size: object):
        self.page_size = page_size
        super().__init__(f"page size must be a positive integer, got {page_size!r}")


class RenderError(InkpressError):
    """Raised when a single page fails to render."""

    def __init__(self, slug: str, cause: Exception):
        self.slug = slug
        self.cause = cause
        super().__init__(f"failed to render {slug}: {cause}")


class BuildError(InkpressError):
    """Unrecoverable failure that halts the whole build."""

    def __init__(self, message: str, slug: str | None = None):
        self.slug = slug
        if slug:
            message = f"{message} (record: {slug})"
        super().__init__(message)


class BuildCancelledError(InkpressError):
    """Raised when a rebuild is cancelled before publishing."""
