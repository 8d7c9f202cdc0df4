"""Tests for the real and dry-run file operation strategies."""

import os
import shutil
import stat
import threading
import time

import pytest

from rutulys.errors import ConfigurationError
from rutulys.fileops import READONLY_MODE, DryRunFileOps, FileOps


@pytest.fixture
def fileops(logger):
    return FileOps(logger)


def mode(path):
    return stat.S_IMODE(path.stat().st_mode)


# ============================================================
# Publish
# ============================================================


class TestPublish:
    def test_creates_read_only_file(self, tmp_path, fileops):
        path = tmp_path / "out" / "archive" / "post.html"
        written = fileops.publish(path, "<p>hi</p>")
        assert path.read_text(encoding="utf-8") == "<p>hi</p>"
        assert written == len("<p>hi</p>")
        assert mode(path) == READONLY_MODE

    def test_shorter_version_truncates(self, tmp_path, fileops):
        path = tmp_path / "post.html"
        fileops.publish(path, "a much longer first version")
        fileops.publish(path, "short")
        assert path.read_text(encoding="utf-8") == "short"
        assert mode(path) == READONLY_MODE

    def test_utf8_length(self, tmp_path, fileops):
        path = tmp_path / "post.html"
        assert fileops.publish(path, "héllo") == len("héllo".encode("utf-8"))
        assert path.read_text(encoding="utf-8") == "héllo"


# ============================================================
# Backup
# ============================================================


class TestBackup:
    def test_copies_existing_file(self, tmp_path, fileops):
        source = tmp_path / "post.html"
        source.write_text("v1", encoding="utf-8")
        saved = fileops.backup(source, tmp_path / "backup", "post", "20240101120000")
        assert saved == tmp_path / "backup" / "post" / "post.20240101120000"
        assert saved.read_text(encoding="utf-8") == "v1"

    def test_never_overwrites_previous_backup(self, tmp_path, fileops):
        source = tmp_path / "post.html"
        source.write_text("v1", encoding="utf-8")
        first = fileops.backup(source, tmp_path / "backup", "post", "20240101120000")
        source.write_text("v2", encoding="utf-8")
        second = fileops.backup(source, tmp_path / "backup", "post", "20240101120000")
        assert first.read_text(encoding="utf-8") == "v1"
        assert second.name == "post.20240101120000.1"
        assert second.read_text(encoding="utf-8") == "v2"

    def test_concurrent_backups_of_one_key_are_kept(self, tmp_path, fileops, monkeypatch):
        archive = tmp_path / "archive" / "tech.html"
        category = tmp_path / "category" / "tech.html"
        for path, text in [(archive, "article"), (category, "category")]:
            path.parent.mkdir()
            path.write_text(text, encoding="utf-8")

        copy = shutil.copyfileobj

        def slow_copy(src, dst, *args, **kwargs):
            time.sleep(0.2)
            return copy(src, dst, *args, **kwargs)

        monkeypatch.setattr(shutil, "copyfileobj", slow_copy)
        threads = [
            threading.Thread(target=fileops.backup, args=(path, tmp_path / "backup", "tech", "20240101000000"))
            for path in (archive, category)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        saved = sorted(p.read_text(encoding="utf-8") for p in (tmp_path / "backup" / "tech").iterdir())
        assert saved == ["article", "category"]

    def test_backup_keeps_source_mtime(self, tmp_path, fileops):
        source = tmp_path / "post.html"
        source.write_text("v1", encoding="utf-8")
        os.utime(source, (1_600_000_000, 1_600_000_000))
        saved = fileops.backup(source, tmp_path / "backup", "post", "1")
        assert saved.stat().st_mtime == 1_600_000_000

    def test_missing_file(self, tmp_path, fileops):
        assert fileops.backup(tmp_path / "nope.html", tmp_path / "backup", "nope", "1") is None
        assert not (tmp_path / "backup").exists()


# ============================================================
# Directory handling
# ============================================================


class TestDirectories:
    def test_reset_dir_removes_read_only_artifacts(self, tmp_path, fileops):
        deploy = tmp_path / "public"
        fileops.publish(deploy / "archive" / "post.html", "x")
        fileops.reset_dir(deploy)
        assert deploy.is_dir()
        assert list(deploy.iterdir()) == []

    def test_reset_dir_creates_missing(self, tmp_path, fileops):
        fileops.reset_dir(tmp_path / "public")
        assert (tmp_path / "public").is_dir()

    def test_reset_dir_refuses_working_directory(self, tmp_path, fileops, monkeypatch):
        (tmp_path / "inner").mkdir()
        monkeypatch.chdir(tmp_path / "inner")
        with pytest.raises(ConfigurationError):
            fileops.reset_dir(tmp_path)
        assert (tmp_path / "inner").is_dir()

    def test_symlink_replaces_existing(self, tmp_path, fileops):
        link = tmp_path / "index.html"
        link.write_text("stale", encoding="utf-8")
        fileops.symlink(link, tmp_path / "a.html")
        fileops.symlink(link, tmp_path / "b.html")
        assert link.is_symlink()
        assert link.resolve() == (tmp_path / "b.html").resolve()

    def test_copy_tree_overwrites(self, tmp_path, fileops):
        assets = tmp_path / "asset"
        (assets / "css").mkdir(parents=True)
        (assets / "css" / "site.css").write_text("new", encoding="utf-8")
        (assets / "robots.txt").write_text("robots", encoding="utf-8")
        dest = tmp_path / "public"
        (dest / "css").mkdir(parents=True)
        (dest / "css" / "site.css").write_text("old", encoding="utf-8")

        copied = fileops.copy_tree(assets, dest)

        assert (dest / "css" / "site.css").read_text(encoding="utf-8") == "new"
        assert (dest / "robots.txt").read_text(encoding="utf-8") == "robots"
        assert sorted(copied) == sorted([dest / "css" / "site.css", dest / "robots.txt"])


# ============================================================
# Dry run
# ============================================================


class TestDryRun:
    def test_publish_writes_nothing(self, tmp_path, logger, log_stream):
        ops = DryRunFileOps(logger)
        path = tmp_path / "archive" / "post.html"
        assert ops.publish(path, "abc") == 3
        assert not path.exists()
        assert f"[dry-run] publish {path}" in log_stream.getvalue()

    def test_reset_and_remove_keep_files(self, tmp_path, logger):
        ops = DryRunFileOps(logger)
        target = tmp_path / "public" / "keep.html"
        target.parent.mkdir()
        target.write_text("x", encoding="utf-8")
        ops.reset_dir(tmp_path / "public")
        ops.remove(target)
        ops.symlink(tmp_path / "public" / "index.html", target)
        assert target.read_text(encoding="utf-8") == "x"
        assert not (tmp_path / "public" / "index.html").exists()

    def test_backup_reports_target(self, tmp_path, logger):
        source = tmp_path / "post.html"
        source.write_text("v1", encoding="utf-8")
        target = DryRunFileOps(logger).backup(source, tmp_path / "backup", "post", "1")
        assert target == tmp_path / "backup" / "post" / "post.1"
        assert not (tmp_path / "backup").exists()
