from __future__ import annotations

import re
from typing import Optional

import yaml

FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(?P<block>.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE)
CATEGORY_RE = re.compile(r"^\w[\w.-]*$", re.UNICODE)


def split_front_matter(text: str) -> tuple[Optional[str], str]:
    """Return the raw front-matter block (without delimiters) and the body.

    The block is ``None`` when the text does not open with a ``---`` line or
    the block is never closed.
    """
    clean_text = text.lstrip("\ufeff")
    match = FRONT_MATTER_RE.match(clean_text)
    if match is None:
        return None, clean_text
    return match.group("block"), clean_text[match.end():]


def parse_front_matter(text: str) -> tuple[Optional[dict], str]:
    block, body = split_front_matter(text)
    if block is None:
        return None, body
    data = yaml.safe_load(block)
    if not isinstance(data, dict):
        return None, body
    return data, body


def parse_title(meta: Optional[dict]) -> Optional[str]:
    if not meta:
        return None
    value = meta.get("title")
    if value is None:
        return None
    title = str(value).strip()
    return title or None


def parse_categories(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        tokens = [str(item).strip() for item in value]
    else:
        tokens = str(value).split()
    result: list[str] = []
    for token in tokens:
        if not CATEGORY_RE.match(token) or token in result:
            continue
        result.append(token)
    return result
