"""Shared fixtures for sitegate tests."""

from __future__ import annotations

from pathlib import Path

import pytest
import structlog

from sitegate.core.config import clear_config

HEADERS = """\
# Long-lived caching for assets
/assets/{*file}
  Cache-Control: public, max-age=31536000, immutable

/docs/{page}
  X-Robots-Tag: noindex

/
  X-Frame-Options: DENY
  Content-Type: text/plain; charset=utf-8
"""

REDIRECTS = """\
# Moved content
/home                 /
/blog/{year}/{slug}   /posts/{slug}                      301
/external/{*page}     https://example.com/{page}
"""


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Undo logging configuration and cached settings between tests."""
    yield
    structlog.reset_defaults()
    clear_config()


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """A small site with pages, assets and both rule files."""
    (tmp_path / "index.html").write_text("<h1>home</h1>", encoding="utf-8")
    (tmp_path / "404.html").write_text("<h1>missing</h1>", encoding="utf-8")
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "index.html").write_text("<h1>docs</h1>", encoding="utf-8")
    (tmp_path / "docs" / "intro.html").write_text("<h1>intro</h1>", encoding="utf-8")
    (tmp_path / "assets" / "css").mkdir(parents=True)
    (tmp_path / "assets" / "css" / "site.css").write_text("body {}", encoding="utf-8")
    (tmp_path / "_headers").write_text(HEADERS, encoding="utf-8")
    (tmp_path / "_redirects").write_text(REDIRECTS, encoding="utf-8")
    return tmp_path
