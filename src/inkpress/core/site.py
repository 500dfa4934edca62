"""Site generator: runs a full generation cycle and publishes it atomically.

load -> index -> resolve is a full barrier; only once the snapshot is frozen
does rendering start, concurrently, into a staging directory. The staging
directory replaces the published output only when every step succeeded, and
the in-memory snapshot is swapped in the same critical section.
"""

import logging
import shutil
import threading
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from inkpress.config import SiteConfig
from inkpress.core.render import RenderDispatcher
from inkpress.core.snapshot import SiteSnapshot, build_snapshot
from inkpress.core.storage import MEDIA_DIR, load_content
from inkpress.errors import BuildCancelledError, BuildError, InkpressError, InvalidPageSizeError

logger = logging.getLogger(__name__)


class BuildResult(BaseModel):
    """Outcome of a successful rebuild."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    snapshot: SiteSnapshot
    written: list[str] = Field(default_factory=list)
    errors: list[InkpressError] = Field(default_factory=list)


class SiteGenerator:
    """Owns the current snapshot and the published output directory."""

    def __init__(
        self,
        content_dir: Path,
        output_dir: Path,
        site: SiteConfig,
        template_dir: Path | None = None,
        workers: int = 4,
    ):
        self.content_dir = content_dir
        self.output_dir = output_dir
        self.site = site
        self.template_dir = template_dir
        self.workers = workers
        self._snapshot: SiteSnapshot | None = None
        self._generation = 0
        self._lock = threading.Lock()
        self._cancel = threading.Event()

    @property
    def snapshot(self) -> SiteSnapshot | None:
        """The snapshot of the last successful rebuild."""
        return self._snapshot

    def cancel(self) -> None:
        """Abort the rebuild in progress; the published output is kept."""
        self._cancel.set()

    def _check_cancelled(self) -> None:
        if self._cancel.is_set():
            raise BuildCancelledError("rebuild cancelled")

    def load(self, generation: int | None = None) -> SiteSnapshot:
        """Parse, index and resolve the content without rendering.

        Raises:
            BuildError: The site has no name, or the content cannot be loaded.
        """
        if not self.site.name.strip():
            raise BuildError("site name is required")
        loaded = load_content(self.content_dir, self.site)
        return build_snapshot(
            loaded.records,
            self.site,
            generation=generation if generation is not None else self._generation + 1,
            errors=loaded.errors,
        )

    def rebuild(self) -> BuildResult:
        """Run a complete generation cycle and publish it.

        Raises:
            BuildError: On unrecoverable errors; nothing is published.
            BuildCancelledError: If ``cancel`` was called; nothing is published.
        """
        with self._lock:
            self._cancel.clear()
            generation = self._generation + 1
            logger.info("Starting rebuild #%d from %s", generation, self.content_dir)

            snapshot = self.load(generation)
            self._check_cancelled()

            staging = self.output_dir.parent / f".{self.output_dir.name}.staging-{generation}"
            if staging.exists():
                shutil.rmtree(staging)
            try:
                dispatcher = RenderDispatcher(snapshot, template_dir=self.template_dir)
                try:
                    report = dispatcher.render_all(staging, workers=self.workers, cancel=self._cancel)
                except InvalidPageSizeError as e:
                    raise BuildError(f"cannot paginate listings: {e}") from e
                self._copy_media(staging)
                self._check_cancelled()
                self._publish(staging, generation)
            except BaseException:
                shutil.rmtree(staging, ignore_errors=True)
                raise

            self._snapshot = snapshot
            self._generation = generation
            errors: list[InkpressError] = [*snapshot.errors, *report.errors]
            logger.info(
                "Published rebuild #%d: %d records, %d files, %d errors",
                generation,
                len(snapshot.store),
                len(report.written),
                len(errors),
            )
            return BuildResult(snapshot=snapshot, written=report.written, errors=errors)

    def _copy_media(self, staging: Path) -> None:
        media = self.content_dir / MEDIA_DIR
        if media.is_dir():
            shutil.copytree(media, staging / MEDIA_DIR)

    def _publish(self, staging: Path, generation: int) -> None:
        """Swap the staging directory into place.

        The previous output is restored if the swap fails.

        Raises:
            BuildError: The staging directory could not be moved into place.
        """
        self.output_dir.parent.mkdir(parents=True, exist_ok=True)
        previous = self.output_dir.parent / f".{self.output_dir.name}.previous-{generation}"
        if self.output_dir.exists():
            self.output_dir.rename(previous)
        try:
            staging.rename(self.output_dir)
        except OSError as e:
            if previous.exists():
                previous.rename(self.output_dir)
            raise BuildError(f"cannot publish to {self.output_dir}: {e}") from e
        if previous.exists():
            shutil.rmtree(previous)
