from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional, Pattern

import yaml

from .errors import ConfigurationError, EmptyIndexError
from .frontmatter import parse_front_matter
from .log import Logger
from .models import Article, Category, Index, sort_key

DEFAULT_IGNORE_PATTERN = r"(^\.|~$|\.sw[a-p]$|\.(bak|lock|tmp)$)"


def load_article(path: Path, logger: Logger) -> Article:
    text = path.read_text(encoding="utf-8")
    try:
        meta, _ = parse_front_matter(text)
    except yaml.YAMLError as exc:
        logger.warning(f"Ignoring malformed front matter in {path}: {exc}")
        meta = None
    return Article.from_path(path, meta)


def scan_library(library: Path, logger: Logger, ignore: Optional[Pattern[str]] = None) -> list[Article]:
    articles = []
    for path in sorted(library.iterdir(), key=lambda p: p.name):
        if ignore is not None and ignore.search(path.name):
            logger.debug(f"Skip ignored file: {path}")
            continue
        if not path.is_file():
            continue
        if not os.access(path, os.R_OK):
            logger.warning(f"Skip unreadable file: {path}")
            continue
        try:
            articles.append(load_article(path, logger))
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"Skip unreadable file: {path} ({exc})")
    return articles


def link_articles(articles: list[Article]) -> None:
    """Chain articles (already sorted newest first) so next points to the newer neighbour."""
    for position in range(len(articles) - 1):
        current, previous = position, position + 1
        articles[current].prev = previous
        articles[previous].next = current


def collect_categories(articles: list[Article], display_names: Optional[dict] = None) -> list[Category]:
    display_names = display_names or {}
    categories: dict[str, Category] = {}
    for article in articles:
        for name in article.categories:
            category = categories.get(name)
            if category is None:
                category = Category(name=name, display_name=str(display_names.get(name) or name))
                categories[name] = category
            category.add(article)
    return sorted(categories.values(), key=lambda c: c.name)


def build_index(
    library: Path,
    logger: Logger,
    ignore: Optional[Pattern[str]] = None,
    display_names: Optional[dict] = None,
) -> Index:
    if ignore is None:
        ignore = re.compile(DEFAULT_IGNORE_PATTERN)
    if not library.is_dir():
        raise ConfigurationError(f"Library directory ({library}) does not exist.")
    articles = scan_library(library, logger, ignore)
    if not articles:
        raise EmptyIndexError(f"No source file is found in {library}.")

    articles.sort(key=sort_key)
    link_articles(articles)

    seen: dict[str, Article] = {}
    for article in articles:
        other = seen.setdefault(article.cache_key, article)
        if other is not article:
            logger.warning(
                f"{article.source_path} and {other.source_path} share the title {article.title!r}; "
                "only one of them will be published."
            )

    categories = collect_categories(articles, display_names)
    logger.debug(f"Indexed {len(articles)} article(s) and {len(categories)} category(ies) from {library}")
    return Index(entries=[*articles, *categories], article_count=len(articles))
