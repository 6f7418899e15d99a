from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from .errors import ConfigurationError, WikiIOError

logger = logging.getLogger(__name__)


def list_files(root: Path) -> set[Path]:
    """Every file and symlink below ``root``; symlinked directories are not entered."""
    if not root.is_dir():
        return set()
    found = set()
    for dirpath, dirnames, filenames in os.walk(root):
        for name in filenames:
            found.add(Path(dirpath) / name)
        for name in dirnames:
            path = Path(dirpath) / name
            if path.is_symlink():
                found.add(path)
    return found


def prune_empty_dirs(root: Path) -> list[Path]:
    """Remove every empty directory below ``root``, deepest first.

    ``root`` itself is kept. Directories that cannot be removed are skipped.
    """
    removed = []
    if not root.is_dir():
        return removed
    for dirpath, _, _ in os.walk(root, topdown=False):
        path = Path(dirpath)
        if path == root:
            continue
        try:
            path.rmdir()
        except OSError:
            continue
        removed.append(path)
    return removed


class OutputTracker:
    """Remembers which output files existed before the build.

    Every file the build writes or keeps is passed to :meth:`retain`; whatever
    is left afterwards is stale and removed by :meth:`reconcile`. Entries are
    keyed by their path relative to the output root and symlinks are never
    followed, so only entries inside the root itself can be removed.
    """

    def __init__(self, root: Path):
        self.root = root
        self.existing = {self.key(path) for path in list_files(root)}
        self.retained: set[Path] = set()

    def key(self, path: Path) -> Path:
        return Path(os.path.relpath(os.path.abspath(path), os.path.abspath(self.root)))

    def retain(self, path: Path) -> Path:
        self.retained.add(self.key(path))
        return path

    @property
    def stale(self) -> list[Path]:
        return [self.root / key for key in sorted(self.existing - self.retained, key=lambda p: p.as_posix())]

    def reconcile(self) -> list[Path]:
        deleted = []
        for path in self.stale:
            try:
                path.unlink()
            except OSError as exc:
                logger.warning("Could not remove the stale file '%s': %s", path, exc)
                continue
            logger.info("Removed stale file '%s'", path)
            deleted.append(path)
        for path in prune_empty_dirs(self.root):
            logger.debug("Removed empty directory '%s'", path)
        return deleted


def copy_file(source: Path, dest: Path) -> None:
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        if dest.is_symlink():
            dest.unlink()
        shutil.copy2(source, dest)
    except OSError as exc:
        raise WikiIOError("copying an input file to", dest, exc) from exc


def clean_output_dir(output_dir: Path, project_root: Path) -> bool:
    if not output_dir.exists():
        return False
    output_resolved = output_dir.resolve()
    root_resolved = project_root.resolve()
    if output_resolved == root_resolved:
        raise ConfigurationError("Refusing to clean the project root.")
    if not output_resolved.is_relative_to(root_resolved):
        raise ConfigurationError("Refusing to clean an output directory outside the project root.")
    try:
        shutil.rmtree(output_dir)
    except OSError as exc:
        raise WikiIOError("removing the output directory", output_dir, exc) from exc
    return True
