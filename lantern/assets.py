"""Static asset mirroring for Lantern.

Every regular file under the theme's ``static`` directory is copied to the
same relative path under the output directory. Files are copied verbatim;
no bundling or minification takes place.

Key class:
- StaticMirror: Walks the static directory and copies each file.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class MirrorReport:
    """Outcome of mirroring static assets.

    Attributes:
        copied: Destination paths that were written.
        errors: (source, error) pairs for files that could not be copied.
    """

    copied: list[Path] = field(default_factory=list)
    errors: list[tuple[Path, OSError]] = field(default_factory=list)


class StaticMirror:
    """Copies the theme's static files into the output directory.

    Attributes:
        static_dir: Directory containing static assets.
        output_dir: Root of the output tree.
    """

    def __init__(self, static_dir: Path, output_dir: Path):
        self.static_dir = static_dir
        self.output_dir = output_dir

    def run(self) -> MirrorReport:
        """Copy every static file, overwriting existing destinations.

        A failure on one file is logged and recorded; the remaining files
        are still copied.

        Returns:
            MirrorReport of copied files and failures.
        """
        report = MirrorReport()
        if not self.static_dir.is_dir():
            logger.info("No static directory at %s; nothing to copy", self.static_dir)
            return report

        for source in sorted(self.static_dir.rglob("*")):
            if not source.is_file():
                continue
            dest = self.output_dir / source.relative_to(self.static_dir)
            try:
                self.copy(source, dest)
            except OSError as exc:
                logger.error("Failed to copy %s: %s", source, exc)
                report.errors.append((source, exc))
                continue
            report.copied.append(dest)
        return report

    def copy(self, source: Path, dest: Path) -> None:
        """Copy one file, creating the destination directory first.

        Args:
            source: Source file path.
            dest: Destination path.
        """
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, dest)
        logger.debug("Copied %s -> %s", source, dest)
