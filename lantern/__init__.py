"""Lantern static site generator.

This package turns a tree of Markdown documents into HTML pages using a
theme's Jinja2 layouts, renders taxonomy index pages (tags, categories) and
mirrors the theme's static assets into the output directory.

The main entry point is the CLI module, which provides commands for building
a site and creating new content files.

Pipeline stages, in order:
- Configuration: config.toml is parsed into an immutable SiteConfig.
- Templates: the theme's layouts and partials are compiled once.
- Pages: every content document is rendered by a pool of worker threads.
- Taxonomies: term listings and term pages are rendered from the page index.
- Assets: the theme's static directory is copied verbatim.
"""

__all__ = ["__version__"]
__version__ = "0.3.0"
