"""Front-matter extraction for Lantern.

A content document may start with a metadata block in one of two dialects:

    ---                     +++
    title: Hello            title = "Hello"
    ---                     +++

``---`` blocks are parsed as YAML, ``+++`` blocks as TOML. The opening and
closing markers must each sit alone on their own line.

Malformed blocks are recoverable: extraction returns default metadata, the
full original text as the body, and the error, so the caller can log a
warning and carry on. A document that opens a block but never closes it is
treated as malformed rather than as a document without front matter.
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

import yaml

from .errors import FrontMatterError

YAML_DELIMITER = "---"
TOML_DELIMITER = "+++"


def _parse_yaml(block: str) -> Any:
    try:
        return yaml.safe_load(block)
    except yaml.YAMLError as exc:
        raise FrontMatterError(f"invalid YAML front matter: {exc}") from exc


def _parse_toml(block: str) -> Any:
    try:
        return tomllib.loads(block)
    except tomllib.TOMLDecodeError as exc:
        raise FrontMatterError(f"invalid TOML front matter: {exc}") from exc


PARSERS: dict[str, Callable[[str], Any]] = {
    YAML_DELIMITER: _parse_yaml,
    TOML_DELIMITER: _parse_toml,
}


@dataclass(frozen=True)
class FrontMatter:
    """Per-document metadata.

    All fields default to empty values; a document without front matter (or
    with a malformed block) gets ``FrontMatter()``.

    Attributes:
        title: Page title.
        description: Short page description.
        date: Publication date as written in the document (not validated).
        tags: Terms of the ``tags`` taxonomy.
        categories: Terms of the ``categories`` taxonomy.
    """

    title: str = ""
    description: str = ""
    date: str = ""
    tags: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> FrontMatter:
        """Build front matter from parsed metadata, ignoring unknown keys.

        Raises:
            FrontMatterError: If a known key holds an unusable value.
        """
        return cls(
            title=_text(data, "title"),
            description=_text(data, "description"),
            date=_text(data, "date"),
            tags=_terms(data, "tags"),
            categories=_terms(data, "categories"),
        )

    def terms(self, taxonomy: str) -> tuple[str, ...]:
        """Return the terms declared for a taxonomy, or an empty tuple."""
        if taxonomy == "tags":
            return self.tags
        if taxonomy == "categories":
            return self.categories
        return ()


@dataclass(frozen=True)
class Extraction:
    """Result of splitting a document into front matter and body.

    Attributes:
        front_matter: Parsed metadata (defaults when absent or malformed).
        body: Document body; the full original text when extraction failed.
        error: The recoverable error, if the block was malformed.
    """

    front_matter: FrontMatter
    body: str
    error: FrontMatterError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        raise FrontMatterError(f"{key} must be a scalar value")
    return str(value)


def _terms(data: Mapping[str, Any], key: str) -> tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        if any(isinstance(item, (list, dict)) for item in value):
            raise FrontMatterError(f"{key} must be a list of scalar values")
        return tuple(str(item) for item in value if str(item).strip())
    if isinstance(value, dict):
        raise FrontMatterError(f"{key} must be a list")
    return (str(value),)


def decode(raw: bytes | str) -> str:
    """Decode document bytes as UTF-8, dropping a leading byte-order mark."""
    if isinstance(raw, bytes):
        return raw.decode("utf-8-sig")
    return raw.removeprefix("\ufeff")


def extract_front_matter(raw: bytes | str) -> Extraction:
    """Split a document into front matter and body.

    Args:
        raw: Raw document content.

    Returns:
        An Extraction. ``error`` is set when a block was opened but could
        not be closed or parsed; the body is then the whole document.

    Raises:
        UnicodeDecodeError: If ``raw`` is bytes that are not valid UTF-8.
    """
    text = decode(raw)
    lines = text.splitlines(keepends=True)
    if not lines:
        return Extraction(FrontMatter(), text)

    delimiter = lines[0].rstrip()
    parse = PARSERS.get(delimiter)
    if parse is None:
        return Extraction(FrontMatter(), text)

    for index in range(1, len(lines)):
        if lines[index].rstrip() == delimiter:
            block = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            break
    else:
        error = FrontMatterError(f"front matter opened with {delimiter!r} is never closed")
        return Extraction(FrontMatter(), text, error)

    try:
        data = parse(block)
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise FrontMatterError(
                f"front matter must be a mapping, got {type(data).__name__}"
            )
        front_matter = FrontMatter.from_mapping(data)
    except FrontMatterError as exc:
        return Extraction(FrontMatter(), text, exc)
    return Extraction(front_matter, body)
