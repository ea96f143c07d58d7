"""Site configuration for Lantern.

The configuration lives in ``config.toml`` at the project root and is
loaded exactly once per build into an immutable SiteConfig.

Recognized keys:
- title: Site title.
- baseURL: Public base URL of the site.
- theme: Name of a directory under the themes root.
- contentDir, publishDir, themesDir: Override the default directory names.
- markdownExtensions: Enable tables, strikethrough, autolinks and footnotes.
- [taxonomies]: Taxonomy name to list of declared terms.
- [params] author: Default author written into new documents.

Unknown keys are ignored.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.toml"

DEFAULT_TAXONOMIES: dict[str, tuple[str, ...]] = {"tags": (), "categories": ()}


@dataclass(frozen=True)
class SiteConfig:
    """Immutable site configuration shared by every render.

    Attributes:
        title: Site title.
        base_url: Public base URL (``baseURL`` in config.toml).
        theme: Theme directory name.
        content_dir: Content directory, relative to the project root.
        publish_dir: Output directory, relative to the project root.
        themes_dir: Themes root, relative to the project root.
        markdown_extensions: Whether extended Markdown syntax is enabled.
        taxonomies: Taxonomy name to declared terms.
        author: Author from the [params] table, used by `lantern new`.
    """

    title: str = ""
    base_url: str = ""
    theme: str = ""
    content_dir: str = "content"
    publish_dir: str = "public"
    themes_dir: str = "themes"
    markdown_extensions: bool = True
    author: str = ""
    taxonomies: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_TAXONOMIES))
    )

    def theme_path(self, project_root: Path) -> Path:
        return project_root / self.themes_dir / self.theme

    def layouts_path(self, project_root: Path) -> Path:
        return self.theme_path(project_root) / "layouts"

    def static_path(self, project_root: Path) -> Path:
        return self.theme_path(project_root) / "static"

    def content_path(self, project_root: Path) -> Path:
        return project_root / self.content_dir

    def output_path(self, project_root: Path) -> Path:
        return project_root / self.publish_dir


def load_config(project_root: Path) -> SiteConfig:
    """Load site configuration from config.toml.

    Args:
        project_root: Root directory of the project.

    Returns:
        The parsed SiteConfig.

    Raises:
        ConfigError: If the file is missing, unreadable or not valid TOML.
    """
    config_path = project_root / CONFIG_FILENAME
    try:
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)
    except OSError as exc:
        raise ConfigError(f"could not read {config_path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"could not parse {config_path}: {exc}") from exc
    logger.debug("Loaded configuration from %s", config_path)
    return parse_config(raw)


def parse_config(raw: Mapping[str, Any]) -> SiteConfig:
    """Build a SiteConfig from an already-parsed mapping.

    Args:
        raw: Mapping as produced by the TOML parser.

    Returns:
        SiteConfig with defaults applied for missing keys.

    Raises:
        ConfigError: If a recognized key has the wrong type.
    """
    defaults = SiteConfig()
    values: dict[str, Any] = {
        "title": _string(raw, "title", defaults.title),
        "base_url": _string(raw, "baseURL", defaults.base_url),
        "theme": _string(raw, "theme", defaults.theme),
        "content_dir": _string(raw, "contentDir", defaults.content_dir),
        "publish_dir": _string(raw, "publishDir", defaults.publish_dir),
        "themes_dir": _string(raw, "themesDir", defaults.themes_dir),
    }

    extensions = raw.get("markdownExtensions", defaults.markdown_extensions)
    if not isinstance(extensions, bool):
        raise ConfigError("markdownExtensions must be a boolean")
    values["markdown_extensions"] = extensions

    params = raw.get("params", {})
    if not isinstance(params, Mapping):
        raise ConfigError("[params] must be a table")
    values["author"] = _string(params, "author", defaults.author)

    taxonomies = raw.get("taxonomies")
    if taxonomies is not None:
        values["taxonomies"] = MappingProxyType(_taxonomies(taxonomies))

    return SiteConfig(**values)


def _string(raw: Mapping[str, Any], key: str, default: str) -> str:
    value = raw.get(key, default)
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string, got {type(value).__name__}")
    return value


def _taxonomies(value: Any) -> dict[str, tuple[str, ...]]:
    if not isinstance(value, Mapping):
        raise ConfigError("[taxonomies] must be a table")
    result: dict[str, tuple[str, ...]] = {}
    for name, terms in value.items():
        if isinstance(terms, str):
            terms = [terms]
        if not isinstance(terms, list) or not all(isinstance(t, str) for t in terms):
            raise ConfigError(f"taxonomy {name!r} must be a list of strings")
        result[str(name)] = tuple(terms)
    return result
