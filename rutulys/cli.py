from __future__ import annotations

import argparse
import datetime as dt
import sys
import time
from pathlib import Path
from typing import Callable, Optional

from .changes import all_work, select_work
from .config import DEFAULT_CONFIG, Settings, load_settings
from .deploy import DeployManager
from .errors import ConfigurationError
from .fileops import DryRunFileOps, FileOps
from .indexer import build_index
from .log import Logger
from .publisher import PublishReport, RenderContext, WorkerPool
from .render import build_category_list, read_template, render_markdown

VERSION = "0.2.0"
BACKUP_STAMP_FMT = "%Y%m%d%H%M%S"


def build_site(
    settings: Settings,
    logger: Logger,
    full: bool = True,
    fileops: Optional[FileOps] = None,
    renderer: Callable[[str], str] = render_markdown,
    prune: Optional[bool] = None,
    now: Optional[dt.datetime] = None,
) -> PublishReport:
    """Index the library and publish it; full rebuild or incremental add."""
    fileops = fileops if fileops is not None else FileOps(logger)
    stamp = (now or dt.datetime.now()).strftime(BACKUP_STAMP_FMT)
    prune = settings.prune if prune is None else prune

    template = read_template(settings.template_path)
    index = build_index(
        settings.library_path,
        logger,
        ignore=settings.library_ignore,
        display_names=settings.category_names,
    )

    if full:
        units = all_work(index, settings.deploy_path)
    else:
        units = select_work(index, settings.deploy_path, logger)

    ctx = RenderContext(
        index=index,
        template=template,
        category_list=build_category_list(index.categories),
        base_uri=settings.base_uri,
        time_format=settings.time_format,
        category_time_format=settings.category_time_format,
        renderer=renderer,
        backup_path=settings.backup_path,
        stamp=stamp,
    )
    deploy = DeployManager(
        settings.deploy_path,
        fileops,
        logger,
        asset_path=settings.asset_path,
        backup_path=settings.backup_path,
        ignored=settings.ignored,
        stamp=stamp,
    )

    deploy.prepare(full)
    if units:
        report = WorkerPool(ctx, fileops, logger, threads=settings.threads).run(units)
    else:
        report = PublishReport()
    deploy.finalize(index, prune=prune and not full)

    if report.failed:
        logger.warning(f"{len(report.failed)} of {len(units)} page(s) could not be published.")
    logger.debug(f"Published {len(report.published)} page(s) to {settings.deploy_path}")
    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rutulys", description="Static page builder for a directory of Markdown files.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Path to config file (YAML/TOML/JSON).")
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("-b", "--build", dest="mode", action="store_const", const="build", help="Create caches for ALL entries.")
    mode.add_argument("-a", "--add", dest="mode", action="store_const", const="add", help="Create caches for new entries only.")
    parser.add_argument("--verbose", action="store_true", help="Verbose mode.")
    parser.add_argument(
        "-t",
        "--threads",
        default=None,
        help="Number of threads used to build pages (1-20, default from config or 4).",
    )
    parser.add_argument(
        "--prune",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Remove files that no longer belong to the site (add mode only).",
    )
    parser.add_argument("--dry-run", action="store_true", help="Log changes without writing anything.")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = Logger(verbose=args.verbose)
    start = time.perf_counter()
    try:
        settings = load_settings(Path(args.config), threads=args.threads)
        fileops = DryRunFileOps(logger) if args.dry_run else FileOps(logger)
        build_site(settings, logger, full=args.mode == "build", fileops=fileops, prune=args.prune)
    except ConfigurationError as exc:
        for line in str(exc).splitlines():
            logger.error(line)
        logger.error("Misconfiguration!")
        return 1
    except OSError as exc:
        logger.error(f"Build aborted: {exc}")
        return 1
    elapsed = time.perf_counter() - start
    logger.notice(f"Build completed in {elapsed:.2f}s.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
