from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from .fileops import FileOps
from .log import Logger
from .models import Article, Category, Entry, Index, WorkUnit
from .render import build_category_listing, fill_template, nav_fragment
from .utils import build_link, htmlstr, join_url

MIN_THREADS = 1
MAX_THREADS = 20


@dataclass(frozen=True)
class RenderContext:
    """State shared read-only by all workers; built before the pool starts."""

    index: Index
    template: str
    category_list: str
    base_uri: str
    time_format: str
    category_time_format: str
    renderer: Callable[[str], str]
    backup_path: Optional[Path] = None
    stamp: str = ""


@dataclass
class PublishReport:
    published: list[Path] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, path: Path, ok: bool) -> None:
        with self._lock:
            (self.published if ok else self.failed).append(path)

    @property
    def ok(self) -> bool:
        return not self.failed


def raw_content(entry: Entry, ctx: RenderContext) -> str:
    if isinstance(entry, Article):
        return entry.content()
    if isinstance(entry, Category):
        return build_category_listing(entry, ctx.category_time_format)
    raise TypeError(f"Unknown entry type: {type(entry).__name__}")


def render_entry(entry: Entry, ctx: RenderContext, logger: Logger) -> str:
    content = ctx.renderer(raw_content(entry, ctx)).strip()
    if not content:
        logger.warning(f"Empty cache file will be created for {entry.source_path or entry.name}")

    category_links = ""
    if isinstance(entry, Article):
        category_links = "\n".join(
            build_link(category.link, category.display_name)
            for category in ctx.index.categories
            if category.name in entry.categories
        )

    return fill_template(
        ctx.template,
        title=htmlstr(entry.title),
        canonical=htmlstr(join_url(ctx.base_uri, entry.link)),
        category=category_links,
        modified="" if entry.mtime is None else htmlstr(entry.mtime.strftime(ctx.time_format)),
        next=nav_fragment("next", ctx.index.next_of(entry)),
        prev=nav_fragment("prev", ctx.index.prev_of(entry)),
        content=content,
        categlist=ctx.category_list,
    )


def publish_entry(unit: WorkUnit, ctx: RenderContext, fileops: FileOps, logger: Logger) -> None:
    entry = ctx.index.entries[unit.position]
    html_doc = render_entry(entry, ctx, logger)
    if ctx.backup_path is not None:
        saved = fileops.backup(unit.destination, ctx.backup_path, unit.cache_key, ctx.stamp)
        if saved is not None:
            logger.debug(f"Back up {unit.destination} to {saved}")
    fileops.publish(unit.destination, html_doc)
    logger.debug(f"Create a cache file for: {unit.source_path or '-'} ({entry.title})")


class WorkerPool:
    """Fixed number of threads draining one queue, stopped by one sentinel each."""

    def __init__(self, ctx: RenderContext, fileops: FileOps, logger: Logger, threads: int = 4) -> None:
        if not MIN_THREADS <= threads <= MAX_THREADS:
            raise ValueError(f"threads must be between {MIN_THREADS} and {MAX_THREADS}, got {threads}")
        self.ctx = ctx
        self.fileops = fileops
        self.logger = logger
        self.threads = threads

    def _worker(self, work: queue.Queue, report: PublishReport) -> None:
        while True:
            unit = work.get()
            if unit is None:
                return
            try:
                publish_entry(unit, self.ctx, self.fileops, self.logger)
            except Exception as exc:
                self.logger.error(f"Failed to publish {unit.destination}: {exc}")
                report.record(unit.destination, False)
            else:
                report.record(unit.destination, True)

    def run(self, units: list[WorkUnit]) -> PublishReport:
        report = PublishReport()
        work: queue.Queue = queue.Queue(maxsize=len(units) + self.threads)
        for unit in units:
            work.put(unit)
        for _ in range(self.threads):
            work.put(None)

        workers = [
            threading.Thread(target=self._worker, args=(work, report), name=f"rutulys-worker-{i}")
            for i in range(self.threads)
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()
        return report
