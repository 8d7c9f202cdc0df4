from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional

from .fileops import FileOps
from .log import Logger
from .models import Index, destination_for

INDEX_NAME = "index.html"


class DeployManager:
    """Owns the deploy tree before and after the worker pool runs."""

    def __init__(
        self,
        deploy_path: Path,
        fileops: FileOps,
        logger: Logger,
        asset_path: Optional[Path] = None,
        backup_path: Optional[Path] = None,
        ignored: Iterable[str] = (),
        stamp: str = "",
    ) -> None:
        self.deploy_path = deploy_path
        self.fileops = fileops
        self.logger = logger
        self.asset_path = asset_path
        self.backup_path = backup_path
        self.ignored = set(ignored)
        self.stamp = stamp

    def prepare(self, full: bool) -> None:
        if full:
            self.logger.debug(f"Clear the deploy directory: {self.deploy_path}")
            self.fileops.reset_dir(self.deploy_path)
        else:
            self.fileops.ensure_dir(self.deploy_path)

    def link_newest(self, index: Index) -> Path:
        """Point index.html at the newest article, whatever the build mode."""
        link = self.deploy_path / INDEX_NAME
        target = destination_for(index.newest, self.deploy_path)
        relative = Path(os.path.relpath(target, self.deploy_path))
        self.fileops.symlink(link, relative)
        self.logger.debug(f"Link {link} -> {relative}")
        return relative

    def asset_files(self) -> set[Path]:
        if self.asset_path is None or not self.asset_path.is_dir():
            return set()
        return {
            self.deploy_path / path.relative_to(self.asset_path)
            for path in self.asset_path.rglob("*")
            if path.is_file()
        }

    def copy_assets(self) -> list[Path]:
        if self.asset_path is None or not self.asset_path.is_dir():
            return []
        copied = self.fileops.copy_tree(self.asset_path, self.deploy_path)
        self.logger.debug(f"Copied {len(copied)} asset file(s) from {self.asset_path}")
        return copied

    def required_files(self, index: Index) -> set[Path]:
        required = {destination_for(entry, self.deploy_path) for entry in index}
        required.add(self.deploy_path / INDEX_NAME)
        return required | self.asset_files()

    def stale_files(self, index: Index) -> list[Path]:
        if not self.deploy_path.is_dir():
            return []
        required = self.required_files(index)
        stale = []
        for path in sorted(self.deploy_path.rglob("*")):
            if path.is_dir() and not path.is_symlink():
                continue
            if path in required or path.name in self.ignored:
                continue
            stale.append(path)
        return stale

    def cleanup(self, index: Index) -> list[Path]:
        removed = []
        for path in self.stale_files(index):
            if self.backup_path is not None and not path.is_symlink():
                self.fileops.backup(path, self.backup_path, path.stem, self.stamp)
            self.fileops.remove(path)
            self.logger.info(f"Remove stale file: {path}")
            removed.append(path)
        return removed

    def finalize(self, index: Index, prune: bool = False) -> None:
        self.link_newest(index)
        self.copy_assets()
        if prune:
            self.cleanup(index)
