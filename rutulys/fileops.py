from __future__ import annotations

import fcntl
import os
import shutil
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError
from .log import Logger
from .utils import is_within

WRITABLE_MODE = 0o644
READONLY_MODE = 0o444


class FileOps:
    """Every mutation of the deploy and backup trees goes through here."""

    def __init__(self, logger: Logger) -> None:
        self.logger = logger

    def publish(self, path: Path, text: str) -> int:
        """Write ``text`` under an exclusive lock and leave the file read-only.

        The file is opened without truncation so readers never see it empty
        before the lock is held; it is truncated to the new length afterwards.
        """
        data = text.encode("utf-8")
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            path.chmod(WRITABLE_MODE)
        try:
            fd = os.open(path, os.O_RDWR | os.O_CREAT, WRITABLE_MODE)
            with os.fdopen(fd, "r+b") as fp:
                fcntl.flock(fp.fileno(), fcntl.LOCK_EX)
                try:
                    fp.seek(0)
                    fp.write(data)
                    fp.flush()
                    fp.truncate(fp.tell())
                    os.fsync(fp.fileno())
                finally:
                    fcntl.flock(fp.fileno(), fcntl.LOCK_UN)
        finally:
            if path.exists():
                path.chmod(READONLY_MODE)
        return len(data)

    def backup(self, path: Path, backup_root: Path, key: str, stamp: str) -> Optional[Path]:
        if not path.is_file():
            return None
        folder = backup_root / key
        folder.mkdir(parents=True, exist_ok=True)
        target = folder / f"{key}.{stamp}"
        counter = 1
        # O_EXCL reserves the name; concurrent backups of one key get distinct suffixes.
        while True:
            try:
                fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_EXCL, WRITABLE_MODE)
                break
            except FileExistsError:
                target = folder / f"{key}.{stamp}.{counter}"
                counter += 1
        with os.fdopen(fd, "wb") as dst, path.open("rb") as src:
            shutil.copyfileobj(src, dst)
        shutil.copystat(path, target)
        return target

    def remove(self, path: Path) -> None:
        path.unlink()

    def reset_dir(self, path: Path) -> None:
        if path.exists():
            if is_within(Path.cwd(), path):
                raise ConfigurationError(f"Refusing to clear {path}: it contains the working directory.")
            shutil.rmtree(path)
        path.mkdir(parents=True)

    def ensure_dir(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def symlink(self, link: Path, target: Path) -> None:
        if link.is_symlink() or link.exists():
            link.unlink()
        link.symlink_to(target)

    def copy_tree(self, source: Path, dest: Path) -> list[Path]:
        copied = []
        for item in source.iterdir():
            target = dest / item.name
            if item.is_dir():
                shutil.copytree(item, target, dirs_exist_ok=True)
                copied.extend(target / path.relative_to(item) for path in item.rglob("*") if path.is_file())
            else:
                shutil.copy2(item, target)
                copied.append(target)
        return copied


class DryRunFileOps(FileOps):
    """Logs what a build would change without touching the filesystem."""

    def publish(self, path: Path, text: str) -> int:
        data = text.encode("utf-8")
        self.logger.info(f"[dry-run] publish {path} ({len(data)} bytes)")
        return len(data)

    def backup(self, path: Path, backup_root: Path, key: str, stamp: str) -> Optional[Path]:
        if not path.is_file():
            return None
        target = backup_root / key / f"{key}.{stamp}"
        self.logger.info(f"[dry-run] back up {path} to {target}")
        return target

    def remove(self, path: Path) -> None:
        self.logger.info(f"[dry-run] remove {path}")

    def reset_dir(self, path: Path) -> None:
        self.logger.info(f"[dry-run] clear {path}")

    def ensure_dir(self, path: Path) -> None:
        self.logger.info(f"[dry-run] create {path}")

    def symlink(self, link: Path, target: Path) -> None:
        self.logger.info(f"[dry-run] link {link} -> {target}")

    def copy_tree(self, source: Path, dest: Path) -> list[Path]:
        copied = []
        for path in source.rglob("*"):
            if path.is_file():
                copied.append(dest / path.relative_to(source))
        self.logger.info(f"[dry-run] copy {len(copied)} asset file(s) from {source} to {dest}")
        return copied
