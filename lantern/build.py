"""Site building functionality for Lantern.

This module contains the build orchestrator. A build moves through these
stages:

    INIT -> CONFIG_LOADED -> TEMPLATES_LOADED -> PAGES_RENDERING
         -> PAGES_DONE -> TAXONOMIES_RENDERING -> ASSETS_MIRRORING -> DONE

Errors before PAGES_RENDERING (configuration, layouts, content root, output
root) are fatal and raise BuildError. From then on failures are isolated to
the page, term page or asset they concern; they are logged, collected in
the BuildResult, and the build carries on.

Pages are rendered concurrently, one worker per document. Taxonomy pages
are rendered only after every page worker has finished, and static assets
are mirrored last.

Key functions:
- build_site: Build the site under a project root.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from .assets import StaticMirror
from .config import SiteConfig, load_config
from .content import ContentLoader, PageBuilder, RenderedPage
from .errors import (
    BuildError,
    ConfigError,
    MarkdownError,
    PageRenderError,
    TemplateLoadError,
)
from .pages import PageRenderer
from .renderers import MarkdownRenderer
from .taxonomies import TaxonomyIndex, TaxonomyRenderer
from .templates import TemplateResolver, TemplateSet
from .utils import ensure_clean_dir, output_relpath

logger = logging.getLogger(__name__)

__all__ = ["BuildError", "BuildResult", "BuildStage", "BuildStats", "Builder", "build_site"]


class BuildStage(enum.Enum):
    INIT = "init"
    CONFIG_LOADED = "config-loaded"
    TEMPLATES_LOADED = "templates-loaded"
    PAGES_RENDERING = "pages-rendering"
    PAGES_DONE = "pages-done"
    TAXONOMIES_RENDERING = "taxonomies-rendering"
    ASSETS_MIRRORING = "assets-mirroring"
    DONE = "done"


@dataclass
class BuildStats:
    """Build counters, safe to update from concurrent workers.

    Attributes:
        pages: Content pages rendered.
        non_pages: Files in the content tree that are not documents.
        static_files: Static assets copied.
        elapsed: Wall-clock build time in seconds.
    """

    pages: int = 0
    non_pages: int = 0
    static_files: int = 0
    elapsed: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_page(self) -> None:
        with self._lock:
            self.pages += 1

    def record_non_pages(self, count: int = 1) -> None:
        with self._lock:
            self.non_pages += count

    def record_static_files(self, count: int = 1) -> None:
        with self._lock:
            self.static_files += count

    def summary(self) -> str:
        return (
            f"Built {self.pages} pages, skipped {self.non_pages} non-page files, "
            f"copied {self.static_files} static files in {self.elapsed:.2f}s"
        )


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        stats: Final build counters.
        output_dir: Directory where the site was built.
        pages: Successfully rendered pages, sorted by source path.
        errors: Per-item failures (pages, term pages, assets).
        warnings: Recoverable problems (malformed front matter, missing
            optional templates).
    """

    stats: BuildStats
    output_dir: Path
    pages: list[RenderedPage] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class Builder:
    """Runs one build of a Lantern project.

    Attributes:
        project_root: Directory containing config.toml.
        recursive: Whether the content tree is walked recursively.
        clean_output: Whether to empty the output directory first.
        output_dir_override: Optional output directory instead of publishDir.
        stage: Current pipeline stage.
        failed_stage: Stage at which a fatal error occurred, if any.
    """

    def __init__(
        self,
        project_root: Path,
        recursive: bool = True,
        clean_output: bool = True,
        output_dir_override: Path | None = None,
    ):
        self.project_root = project_root
        self.recursive = recursive
        self.clean_output = clean_output
        self.output_dir_override = output_dir_override
        self.stage = BuildStage.INIT
        self.failed_stage: BuildStage | None = None

    def _advance(self, stage: BuildStage) -> None:
        logger.info("Build stage %s -> %s", self.stage.value, stage.value)
        self.stage = stage

    def _fatal(self, message: str, exc: Exception) -> BuildError:
        self.failed_stage = self.stage
        logger.error("Build failed (%s): %s", self.stage.value, message)
        return BuildError(self.stage, message, exc)

    def run(self) -> BuildResult:
        """Build the entire static site.

        Returns:
            BuildResult with statistics and any per-item failures.

        Raises:
            BuildError: On a fatal error before page rendering starts.
        """
        started = time.perf_counter()

        try:
            config = load_config(self.project_root)
        except ConfigError as exc:
            raise self._fatal(str(exc), exc) from exc
        self._advance(BuildStage.CONFIG_LOADED)

        try:
            templates = TemplateResolver(config.layouts_path(self.project_root)).load()
        except TemplateLoadError as exc:
            raise self._fatal(str(exc), exc) from exc
        self._advance(BuildStage.TEMPLATES_LOADED)

        output_dir = self.output_dir_override or config.output_path(self.project_root)
        loader = ContentLoader(config.content_path(self.project_root), self.recursive)
        try:
            discovery = loader.discover()
        except OSError as exc:
            raise self._fatal(f"could not read content directory {loader.content_dir}: {exc}", exc) from exc
        protected = (
            self.project_root,
            loader.content_dir,
            config.theme_path(self.project_root),
        )
        resolved_output = output_dir.resolve()
        for source in protected:
            # the output tree is wiped, so it must not hold any source
            if source.resolve().is_relative_to(resolved_output):
                exc = ValueError(f"refusing to publish into {output_dir}: it contains {source}")
                raise self._fatal(str(exc), exc)
        try:
            if self.clean_output:
                ensure_clean_dir(output_dir)
            else:
                output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise self._fatal(f"could not create output directory {output_dir}: {exc}", exc) from exc

        result = BuildResult(stats=BuildStats(), output_dir=output_dir)
        result.stats.record_non_pages(len(discovery.skipped))
        index = TaxonomyIndex(config.taxonomies)

        self._advance(BuildStage.PAGES_RENDERING)
        self._render_pages(config, templates, loader, discovery.documents, index, result)
        self._advance(BuildStage.PAGES_DONE)

        self._advance(BuildStage.TAXONOMIES_RENDERING)
        taxonomies = TaxonomyRenderer(config, templates, output_dir).render(index.snapshot())
        result.errors.extend(taxonomies.errors)
        result.warnings.extend(taxonomies.skipped)

        self._advance(BuildStage.ASSETS_MIRRORING)
        mirror = StaticMirror(config.static_path(self.project_root), output_dir).run()
        result.stats.record_static_files(len(mirror.copied))
        result.errors.extend(error for _, error in mirror.errors)

        self._advance(BuildStage.DONE)
        result.stats.elapsed = time.perf_counter() - started
        logger.info(result.stats.summary())
        if result.errors:
            logger.warning("Build finished with %d errors", len(result.errors))
        return result

    def _render_pages(
        self,
        config: SiteConfig,
        templates: TemplateSet,
        loader: ContentLoader,
        documents: list[Path],
        index: TaxonomyIndex,
        result: BuildResult,
    ) -> None:
        """Render every document on its own worker and wait for all of them."""
        if not documents:
            logger.info("No content documents found in %s", loader.content_dir)
            return

        builder = PageBuilder(MarkdownRenderer(extended=config.markdown_extensions))
        renderer = PageRenderer(config, templates, result.output_dir)

        def process(path: Path) -> RenderedPage:
            rel = path.relative_to(loader.content_dir)
            try:
                page = builder.build(loader.load(path))
            except (OSError, UnicodeDecodeError, MarkdownError) as exc:
                raise PageRenderError(rel, f"{type(exc).__name__}: {exc}", exc) from exc
            renderer.render(page)
            index.add(page)
            result.stats.record_page()
            return page

        pages: list[RenderedPage] = []
        failures: list[PageRenderError] = []
        documents = self._claim_outputs(loader, documents, failures)
        with ThreadPoolExecutor(
            max_workers=len(documents), thread_name_prefix="lantern-page"
        ) as executor:
            futures = {executor.submit(process, path): path for path in documents}
            for future in as_completed(futures):
                try:
                    page = future.result()
                except PageRenderError as exc:
                    logger.error("Failed to process %s: %s", exc.source_path, exc.message)
                    failures.append(exc)
                    continue
                pages.append(page)

        result.pages = sorted(pages, key=lambda p: p.rel_path.as_posix())
        result.errors.extend(sorted(failures, key=lambda e: str(e.source_path)))
        for page in result.pages:
            result.warnings.extend(page.warnings)

    @staticmethod
    def _claim_outputs(
        loader: ContentLoader, documents: list[Path], failures: list[PageRenderError]
    ) -> list[Path]:
        """Drop documents whose output path is already taken.

        ``hello.md`` and ``hello.markdown`` both produce ``hello.html``; the
        first in sorted order keeps the output and the others are failed.
        """
        owners: dict[Path, Path] = {}
        kept: list[Path] = []
        for path in sorted(documents):
            rel = path.relative_to(loader.content_dir)
            target = output_relpath(rel)
            owner = owners.setdefault(target, rel)
            if owner != rel:
                error = PageRenderError(
                    rel, f"output {target.as_posix()} is already produced by {owner.as_posix()}"
                )
                logger.error("Failed to process %s: %s", rel, error.message)
                failures.append(error)
                continue
            kept.append(path)
        return kept


def build_site(
    project_root: Path,
    recursive: bool = True,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build the site under ``project_root``.

    Args:
        project_root: Directory containing config.toml.
        recursive: Whether to walk the content tree recursively.
        clean_output: Whether to wipe the output directory before building.
        output_dir_override: Optional path to write the build output instead of publishDir.

    Returns:
        BuildResult containing statistics, pages and per-item failures.
    """
    return Builder(
        project_root,
        recursive=recursive,
        clean_output=clean_output,
        output_dir_override=output_dir_override,
    ).run()
