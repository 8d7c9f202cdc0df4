import io
import os

import pytest

from rutulys.config import settings_from_config
from rutulys.log import Logger
from rutulys.models import Article

BASE_TIME = 1_700_000_000

TEMPLATE = (
    "<html><head><title>{{title}}</title>"
    '<link rel="canonical" href="{{canonical}}"></head>\n'
    '<body><p class="modified">{{modified}}</p><nav>{{category}}</nav>\n'
    "{{next}}{{prev}}\n"
    "<article>{{content}}</article>\n"
    "<ul>{{categlist}}</ul><footer>100% static</footer></body></html>\n"
)


def fake_render(text):
    return f"<main>{text.strip()}</main>"


@pytest.fixture
def renderer():
    return fake_render


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def logger(log_stream):
    return Logger(stream=log_stream, verbose=True, color=False)


@pytest.fixture
def write_doc():
    """Write a source document and pin its modification time."""

    def _write(directory, filename, text="", mtime=BASE_TIME):
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / filename
        path.write_text(text, encoding="utf-8")
        os.utime(path, (mtime, mtime))
        return path

    return _write


@pytest.fixture
def article_at(write_doc):
    """Build an Article named ``name`` whose file was modified at ``mtime``."""

    def _make(directory, name, mtime, text="", categories=None):
        path = write_doc(directory, f"{name}.md", text, mtime)
        meta = {"category": categories} if categories else None
        return Article.from_path(path, meta)

    return _make


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "site"
    (root / "library").mkdir(parents=True)
    (root / "asset").mkdir()
    (root / "template.html").write_text(TEMPLATE, encoding="utf-8")
    return root


@pytest.fixture
def make_settings(project):
    def _make(**overrides):
        config = {
            "deploypath": "public",
            "baseuri": "https://example.org",
            "timeformat": "%Y-%m-%d %H:%M",
            "category": {"timeformat": "%Y-%m-%d"},
            "threads": 3,
        }
        config.update(overrides)
        return settings_from_config(config, project)

    return _make
