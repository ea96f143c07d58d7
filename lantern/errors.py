"""Exception hierarchy for Lantern.

Errors fall into three classes that the build orchestrator treats
differently:

- Fatal: ConfigError, TemplateLoadError and BuildError abort the build.
- Recoverable: FrontMatterError is logged and default metadata is used.
- Per-item: MarkdownError, TemplateLookupError and PageRenderError skip a
  single document or term page without affecting its siblings.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .build import BuildStage


class LanternError(Exception):
    """Base class for all Lantern errors."""


class ConfigError(LanternError):
    """Raised when config.toml cannot be read or parsed."""


class FrontMatterError(LanternError):
    """Raised (or returned) when a front-matter block is malformed."""


class MarkdownError(LanternError):
    """Raised when Markdown conversion fails."""


class TemplateLoadError(LanternError):
    """Raised when the theme's layouts directory cannot be read."""


class TemplateLookupError(LanternError, KeyError):
    """Raised when a layout or partial is requested by an unknown name."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} template not found: {name}")

    def __str__(self) -> str:
        return f"{self.kind} template not found: {self.name}"


class PageRenderError(LanternError):
    """Error while rendering a single output file.

    Attributes:
        source_path: Path of the document (or taxonomy page) that failed.
        message: Human-readable error message.
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        source_path: Path | str,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


class BuildError(LanternError):
    """Fatal build error.

    Attributes:
        stage: Pipeline stage that failed.
        message: Human-readable error message.
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        stage: BuildStage,
        message: str,
        original_error: Exception | None = None,
    ):
        self.stage = stage
        self.message = message
        self.original_error = original_error
        super().__init__(f"{stage.value}: {message}")
