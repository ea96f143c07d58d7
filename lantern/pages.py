"""Page rendering for Lantern.

Writes one HTML file per content document by executing the theme's
``base`` layout with the page's PageBinding.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .bindings import PageBinding
from .config import SiteConfig
from .content import RenderedPage
from .errors import PageRenderError, TemplateLookupError
from .templates import TemplateSet

logger = logging.getLogger(__name__)

BASE_TEMPLATE = "base"


def format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "TemplateSyntaxError":
        return f"Template syntax error on line {getattr(exc, 'lineno', '?')}: {error_msg}"
    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if isinstance(exc, TemplateLookupError):
        return error_msg
    if isinstance(exc, OSError):
        return f"Could not write output: {error_msg}"

    return f"{error_type}: {error_msg}"


def write_output(path: Path, rendered: str) -> None:
    """Write rendered output, creating parent directories as needed.

    Directory creation tolerates directories that already exist, including
    ones created concurrently by another worker.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(rendered)


class PageRenderer:
    """Renders content pages with the ``base`` layout.

    Attributes:
        site: Site configuration bound into every page.
        templates: Compiled templates.
        output_dir: Root of the output tree.
    """

    def __init__(self, site: SiteConfig, templates: TemplateSet, output_dir: Path):
        self.site = site
        self.templates = templates
        self.output_dir = output_dir

    def render(self, page: RenderedPage) -> Path:
        """Render a page and write it to its output path.

        The page is rendered in memory first, so a failing template never
        leaves a partially written file.

        Args:
            page: The processed document.

        Returns:
            Path of the written file.

        Raises:
            PageRenderError: If the layout is missing, fails to execute or
                the output file cannot be written.
        """
        target = self.output_dir / page.output_path
        try:
            template = self.templates.get(BASE_TEMPLATE)
        except TemplateLookupError as exc:
            raise PageRenderError(page.rel_path, str(exc), exc) from exc

        binding = PageBinding.for_page(self.site, page)
        try:
            rendered = template.render(binding.as_context())
        except Exception as exc:
            raise PageRenderError(page.rel_path, format_error_message(exc), exc) from exc

        try:
            write_output(target, rendered)
        except OSError as exc:
            raise PageRenderError(page.rel_path, format_error_message(exc), exc) from exc
        logger.debug("Wrote %s", target)
        return target
