"""Work-set selection for full and incremental builds.

Incremental ("add") mode assumes entries are published in time order: it walks
the articles from the newest and stops at the first one that already has an
artifact. That entry is republished too, since its ``next`` link may now point
at a new neighbour. Edits to older entries, deletions and backdated files are
not detected; run a full rebuild for those.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from .log import Logger
from .models import Index, WorkUnit, destination_for, make_work_unit


def all_work(index: Index, deploy_path: Path) -> list[WorkUnit]:
    return [make_work_unit(index, position, deploy_path) for position in range(len(index))]


def select_new_articles(
    index: Index, deploy_path: Path, exists: Callable[[Path], bool] = Path.exists
) -> tuple[list[int], Optional[int]]:
    """Return positions of articles without an artifact and the first article that has one."""
    fresh = []
    for position, article in enumerate(index.articles):
        if exists(destination_for(article, deploy_path)):
            return fresh, position
        fresh.append(position)
    return fresh, None


def select_work(
    index: Index,
    deploy_path: Path,
    logger: Logger,
    exists: Callable[[Path], bool] = Path.exists,
) -> list[WorkUnit]:
    fresh, hit = select_new_articles(index, deploy_path, exists)
    positions = list(fresh)
    # An already published newest article has no new neighbour to re-link.
    if hit is not None and fresh:
        positions.append(hit)

    fresh_articles = {id(index.entries[position]) for position in fresh}
    for offset, category in enumerate(index.categories):
        position = index.article_count + offset
        touched = any(id(member) in fresh_articles for member in category.members)
        if touched or not exists(destination_for(category, deploy_path)):
            positions.append(position)

    if not positions:
        logger.info("Nothing new to publish.")
        return []
    logger.debug(f"{len(fresh)} new article(s); {len(positions)} entry(ies) to publish")
    return [make_work_unit(index, position, deploy_path) for position in positions]
