from __future__ import annotations

import re
from pathlib import Path

import markdown

from .errors import ConfigurationError
from .models import Category
from .utils import build_link

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "codehilite", "sane_lists"]
MARKDOWN_EXTENSION_CONFIGS = {"codehilite": {"guess_lang": False, "css_class": "highlight"}}


def render_markdown(text: str) -> str:
    # Markdown instances keep state between calls, so each call gets its own.
    md = markdown.Markdown(extensions=MARKDOWN_EXTENSIONS, extension_configs=MARKDOWN_EXTENSION_CONFIGS)
    return md.convert(text)


PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")


def fill_template(template: str, **context: str) -> str:
    """Replace ``{{key}}`` placeholders in one pass.

    Substituted values are never scanned again, so placeholder-like text
    inside a rendered article stays literal. Unknown keys are left as-is.
    """
    return PLACEHOLDER_RE.sub(lambda m: context.get(m.group(1), m.group(0)), template)


def read_template(path: Path) -> str:
    text = path.read_text(encoding="utf-8")
    if "{{content}}" not in text:
        raise ConfigurationError(f"Template {path} has no {{{{content}}}} placeholder.")
    return text


def build_category_list(categories: list[Category]) -> str:
    items = []
    for category in categories:
        items.append(f"<li>{build_link(category.link, category.display_name)} <small>{category.count}</small></li>")
    return "\n".join(items)


def build_category_listing(category: Category, time_format: str) -> str:
    lines = []
    for article in category.sorted_members():
        lines.append(f"- {build_link(article.link, article.title)} ({article.mtime.strftime(time_format)})")
    return "\n".join(lines)


def nav_fragment(marker: str, entry) -> str:
    if entry is None:
        return ""
    return f'<div id="{marker}">{build_link(entry.link, entry.title)}</div>'
