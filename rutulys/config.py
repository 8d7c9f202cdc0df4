from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Pattern

try:
    import tomllib as toml
except ImportError:
    import tomli as toml

import yaml

from .errors import ConfigurationError
from .indexer import DEFAULT_IGNORE_PATTERN
from .publisher import MAX_THREADS, MIN_THREADS
from .utils import parse_bool, parse_int

DEFAULT_CONFIG = "config.yaml"
DEFAULT_TIME_FORMAT = "%Y-%m-%d %H:%M"
DEFAULT_CATEGORY_TIME_FORMAT = "%Y-%m-%d"
DEFAULT_THREADS = 4


@dataclass(frozen=True)
class Settings:
    deploy_path: Path
    library_path: Path
    template_path: Path
    asset_path: Path
    backup_path: Optional[Path] = None
    base_uri: str = ""
    time_format: str = DEFAULT_TIME_FORMAT
    category_time_format: str = DEFAULT_CATEGORY_TIME_FORMAT
    category_names: dict = field(default_factory=dict)
    ignored: tuple[str, ...] = ()
    library_ignore: Optional[Pattern[str]] = None
    threads: int = DEFAULT_THREADS
    prune: bool = False


def load_config(path: Path) -> dict:
    if not path.is_file() or not os.access(path, os.R_OK):
        raise ConfigurationError(f"Configuration file ({path}) does not exist or is not readable.")
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            raise ConfigurationError(f"Invalid TOML in config file {path}: {exc}") from exc
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc
        if data is None:
            data = {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Invalid JSON in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config must be a mapping: {path}")
    return data


def parse_threads(value: object) -> int:
    try:
        threads = parse_int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"THREAD ({value!r}) should be an integer.") from exc
    if not MIN_THREADS <= threads <= MAX_THREADS:
        raise ConfigurationError(f"THREAD ({value!r}) should be between {MIN_THREADS} and {MAX_THREADS}.")
    return threads


def _resolve(base: Path, value: object) -> Path:
    path = Path(str(value)).expanduser()
    if not path.is_absolute():
        path = base / path
    return path


def _section(config: dict, key: str) -> dict:
    value = config.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{key}' must be a mapping.")
    return value


def settings_from_config(config: dict, base: Path, threads: Optional[object] = None) -> Settings:
    errors = []

    deploy_value = config.get("deploypath")
    if not deploy_value:
        raise ConfigurationError("'deploypath' is required.")
    deploy_path = _resolve(base, deploy_value)
    if not os.access(deploy_path.parent, os.W_OK):
        errors.append(f"Parent directory of deploying point ({deploy_path}) does not exist or is not writable.")

    template_path = _resolve(base, config.get("template") or "template.html")
    if not template_path.is_file() or not os.access(template_path, os.R_OK):
        errors.append(f"Template file ({template_path}) does not exist or is not readable.")

    library_path = _resolve(base, config.get("library") or "library")
    if not library_path.is_dir():
        errors.append(f"Library directory ({library_path}) does not exist.")

    backup_value = config.get("backuppath")
    backup_path = _resolve(base, backup_value) if backup_value else None

    category = _section(config, "category")
    names = category.get("names") or {}
    if not isinstance(names, dict):
        errors.append("'category.names' must be a mapping.")
        names = {}

    ignored = config.get("ignore") or []
    if isinstance(ignored, str):
        ignored = ignored.split()

    try:
        library_ignore = re.compile(config.get("library_ignore") or DEFAULT_IGNORE_PATTERN)
    except re.error as exc:
        errors.append(f"Invalid 'library_ignore' pattern: {exc}")
        library_ignore = None

    thread_value = threads if threads is not None else config.get("threads", DEFAULT_THREADS)
    try:
        thread_count = parse_threads(thread_value)
    except ConfigurationError as exc:
        errors.append(str(exc))
        thread_count = DEFAULT_THREADS

    if errors:
        raise ConfigurationError("\n".join(errors))

    return Settings(
        deploy_path=deploy_path,
        library_path=library_path,
        template_path=template_path,
        asset_path=_resolve(base, config.get("asset") or "asset"),
        backup_path=backup_path,
        base_uri=str(config.get("baseuri") or ""),
        time_format=str(config.get("timeformat") or DEFAULT_TIME_FORMAT),
        category_time_format=str(category.get("timeformat") or DEFAULT_CATEGORY_TIME_FORMAT),
        category_names={str(key): str(value) for key, value in names.items()},
        ignored=tuple(str(name) for name in ignored),
        library_ignore=library_ignore,
        threads=thread_count,
        prune=parse_bool(config.get("prune")),
    )


def load_settings(path: Path, threads: Optional[object] = None) -> Settings:
    config = load_config(path)
    return settings_from_config(config, path.resolve().parent, threads)
