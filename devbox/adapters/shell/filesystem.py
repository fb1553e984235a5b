"""
Local filesystem adapter — file and directory operations on this machine.

Absence is reported as False/None; every other OSError (permission
denied, I/O error) propagates so callers can tell the two apart.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from devbox.adapters.base import Filesystem

logger = logging.getLogger(__name__)


class LocalFilesystem(Filesystem):
    """Filesystem operations backed by :mod:`pathlib`."""

    @property
    def name(self) -> str:
        return "local"

    def exists(self, path: Path) -> bool:
        try:
            os.lstat(path)
        except FileNotFoundError:
            return False
        return True

    def is_dir(self, path: Path) -> bool:
        try:
            return stat.S_ISDIR(path.stat().st_mode)
        except FileNotFoundError:
            return False

    def read_text(self, path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def readlink(self, path: Path) -> Path | None:
        if not path.is_symlink():
            return None
        return Path(os.readlink(path))

    def mtime(self, path: Path) -> float | None:
        try:
            return path.stat().st_mtime
        except FileNotFoundError:
            return None

    def write_text(self, path: Path, content: str, mode: int | None = None) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        if mode is not None:
            path.chmod(mode)
        logger.debug("Written %d bytes to %s", len(content), path)

    def mkdir(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def symlink(self, target: Path, link: Path) -> None:
        if link.is_symlink():
            link.unlink()
        link.parent.mkdir(parents=True, exist_ok=True)
        link.symlink_to(target)
        logger.debug("Symlinked %s -> %s", link, target)
