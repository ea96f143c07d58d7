"""Command-line interface for Lantern.

This module defines the CLI commands using Click framework.

Commands:
- build: Build the site into the publish directory.
- new: Create a new content document with front matter.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import click
import yaml
from jinja2 import Environment, TemplateError

from . import __version__
from .config import CONFIG_FILENAME, load_config
from .errors import BuildError, ConfigError
from .utils import slugify

ARCHETYPE_PATH = Path("archetypes") / "default.md"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@click.group()
@click.version_option(version=__version__, prog_name="lantern")
@click.option("-v", "--verbose", is_flag=True, help="Log every file processed")
def cli(verbose: bool):
    """Lantern static site generator."""
    _configure_logging(verbose)


@cli.command()
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project root containing config.toml (defaults to the current directory)",
)
@click.option("--flat", is_flag=True, help="Only build documents at the top of the content directory")
@click.option("--no-clean", is_flag=True, help="Keep existing files in the publish directory")
@click.option("-v", "--verbose", is_flag=True, help="Log every file processed")
def build(root: Path | None, flat: bool, no_clean: bool, verbose: bool):
    """Build the site into the publish directory."""
    if verbose:
        _configure_logging(verbose)
    project_root = root or Path.cwd()
    from .build import build_site

    try:
        result = build_site(project_root, recursive=not flat, clean_output=not no_clean)
    except BuildError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  Stage: {exc.stage.value}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None

    click.echo(result.stats.summary())
    if result.errors:
        click.echo(
            click.style(f"{len(result.errors)} files failed to build:", fg="yellow"),
            err=True,
        )
        for error in result.errors:
            click.echo(f"  {error}", err=True)


@cli.command()
@click.argument("title")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project root containing config.toml (defaults to the current directory)",
)
def new(title: str, root: Path | None):
    """Create a new content document titled TITLE."""
    project_root = root or Path.cwd()
    try:
        config = load_config(project_root)
    except ConfigError as exc:
        raise click.ClickException(
            f"No usable {CONFIG_FILENAME} found. Run this command from a Lantern project root. ({exc})"
        ) from exc

    slug = slugify(title) or "untitled"
    target = config.content_path(project_root) / f"{slug}.md"
    if target.exists():
        raise click.ClickException(f"File already exists: {target.relative_to(project_root)}")

    date = datetime.now().strftime("%Y-%m-%d")
    try:
        content = _render_archetype(project_root, title, date, config.author)
    except (OSError, TemplateError) as exc:
        raise click.ClickException(f"Could not render {ARCHETYPE_PATH}: {exc}") from exc

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    click.echo(f"Created {target.relative_to(project_root)}")


def _render_archetype(project_root: Path, title: str, date: str, author: str = "") -> str:
    """Render the project's archetype, or the built-in default.

    The archetype is a Jinja2 template receiving ``title``, ``date`` and
    ``author``; the default stub only records an author when one is set.
    """
    archetype = project_root / ARCHETYPE_PATH
    if archetype.is_file():
        template = Environment(keep_trailing_newline=True).from_string(
            archetype.read_text(encoding="utf-8")
        )
        return template.render(title=title, date=date, author=author)

    metadata = {"title": title, "description": "", "date": date, "tags": []}
    if author:
        metadata["author"] = author
    front_matter = yaml.safe_dump(
        metadata,
        sort_keys=False,
        allow_unicode=True,
    )
    return f"---\n{front_matter}---\n\n# {title}\n"


def main():
    """Entry point for the CLI application."""
    cli()
