from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union
from urllib.parse import quote_plus

from .frontmatter import parse_categories, parse_title, split_front_matter

ARCHIVE_BUCKET = "archive"
CATEGORY_BUCKET = "category"


@dataclass(eq=False)
class Article:
    source_path: Path
    name: str
    title: str
    mtime: dt.datetime
    categories: list[str] = field(default_factory=list)
    next: Optional[int] = None
    prev: Optional[int] = None

    bucket = ARCHIVE_BUCKET

    @classmethod
    def from_path(cls, path: Path, meta: Optional[dict] = None) -> "Article":
        name = path.stem.strip()
        title = parse_title(meta) or name
        categories = parse_categories(meta.get("category")) if meta else []
        mtime = dt.datetime.fromtimestamp(path.stat().st_mtime)
        return cls(
            source_path=path,
            name=name,
            title=title,
            mtime=mtime,
            categories=categories,
        )

    @property
    def cache_key(self) -> str:
        return quote_plus(self.title)

    @property
    def link(self) -> str:
        return f"/{self.bucket}/{self.cache_key}.html"

    def content(self) -> str:
        """Source text with the front-matter block removed."""
        text = self.source_path.read_text(encoding="utf-8")
        _, body = split_front_matter(text)
        return body


@dataclass(eq=False)
class Category:
    name: str
    display_name: str
    members: list[Article] = field(default_factory=list)
    mtime: Optional[dt.datetime] = None
    next: Optional[int] = None
    prev: Optional[int] = None

    bucket = CATEGORY_BUCKET
    source_path = None

    @property
    def title(self) -> str:
        return f"Category: {self.display_name}"

    @property
    def categories(self) -> list[str]:
        return []

    @property
    def cache_key(self) -> str:
        return quote_plus(self.name)

    @property
    def link(self) -> str:
        return f"/{self.bucket}/{self.cache_key}.html"

    @property
    def count(self) -> int:
        return len(self.members)

    def add(self, article: Article) -> None:
        self.members.append(article)
        if self.mtime is None or article.mtime > self.mtime:
            self.mtime = article.mtime

    def sorted_members(self) -> list[Article]:
        return sorted(self.members, key=sort_key)


Entry = Union[Article, Category]


def sort_key(entry: Entry) -> tuple[float, str]:
    """Newest first, then title ascending."""
    return (-entry.mtime.timestamp(), entry.title)


@dataclass
class Index:
    """Articles in publication order followed by categories sorted by name.

    ``next``/``prev`` on each entry are positions in ``entries``.
    """

    entries: list[Entry]
    article_count: int

    @property
    def articles(self) -> list[Article]:
        return self.entries[: self.article_count]

    @property
    def categories(self) -> list[Category]:
        return self.entries[self.article_count :]

    @property
    def newest(self) -> Article:
        return self.entries[0]

    def next_of(self, entry: Entry) -> Optional[Entry]:
        return None if entry.next is None else self.entries[entry.next]

    def prev_of(self, entry: Entry) -> Optional[Entry]:
        return None if entry.prev is None else self.entries[entry.prev]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)


@dataclass(frozen=True)
class WorkUnit:
    source_path: Optional[Path]
    name: str
    cache_key: str
    destination: Path
    mtime: dt.datetime
    position: int


def destination_for(entry: Entry, deploy_path: Path) -> Path:
    return deploy_path / entry.bucket / f"{entry.cache_key}.html"


def make_work_unit(index: Index, position: int, deploy_path: Path) -> WorkUnit:
    entry = index.entries[position]
    return WorkUnit(
        source_path=entry.source_path,
        name=entry.name,
        cache_key=entry.cache_key,
        destination=destination_for(entry, deploy_path),
        mtime=entry.mtime,
        position=position,
    )
