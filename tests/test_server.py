"""Tests for the static site server."""

from __future__ import annotations

import pytest
from aiohttp import test_utils

from sitegate.core.config import ServerConfig
from sitegate.rules import (
    RedirectRule,
    RuleEngine,
    RuleSet,
    TargetTemplate,
    parse_pattern,
)
from sitegate.server import SiteServer, create_app, is_hidden
from sitegate.server.app import _resolve_file
from sitegate.server.loader import load_site_rules


def _app_for(site, **overrides):
    config = ServerConfig(site_root=str(site), **overrides)
    engine = RuleEngine(load_site_rules(site))
    return create_app(engine, config), engine


class TestIsHidden:
    """Tests for hidden path checks."""

    HIDDEN = ["/_headers", "/_redirects"]

    def test_exact_path(self):
        assert is_hidden("/_headers", self.HIDDEN)
        assert is_hidden("/_redirects", self.HIDDEN)

    def test_extension_is_hidden(self):
        assert is_hidden("/_headers.bak", self.HIDDEN)
        assert is_hidden("/_redirects~", self.HIDDEN)

    def test_nested_path_is_not_hidden(self):
        assert not is_hidden("/_headers/index.html", self.HIDDEN)
        assert not is_hidden("/docs/_headers", self.HIDDEN)

    def test_other_paths(self):
        assert not is_hidden("/", self.HIDDEN)
        assert not is_hidden("/index.html", self.HIDDEN)

    def test_nothing_hidden(self):
        assert not is_hidden("/_headers", [])


class TestResolveFile:
    """Tests for mapping request paths to files."""

    def test_file(self, site):
        assert _resolve_file(site.resolve(), "/docs/intro.html", "index.html") == (
            site / "docs" / "intro.html"
        ).resolve()

    def test_directory_uses_index(self, site):
        assert _resolve_file(site.resolve(), "/docs/", "index.html") == (
            site / "docs" / "index.html"
        ).resolve()

    def test_missing(self, site):
        assert _resolve_file(site.resolve(), "/nope.html", "index.html") is None

    def test_traversal_is_refused(self, site):
        (site.parent / "secret.txt").write_text("secret", encoding="utf-8")
        assert _resolve_file(site.resolve(), "/../secret.txt", "index.html") is None

    def test_null_byte(self, site):
        assert _resolve_file(site.resolve(), "/index.html\x00", "index.html") is None

    def test_trailing_slash_on_file(self, site):
        """Test a path ending in a slash never resolves to a plain file."""
        assert _resolve_file(site.resolve(), "/_headers/", "index.html") is None
        assert _resolve_file(site.resolve(), "/docs/intro.html/", "index.html") is None


class TestSiteApp:
    """Tests for the request pipeline."""

    @pytest.mark.asyncio
    async def test_serves_index(self, site):
        app, _ = _app_for(site)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get("/docs/")
            assert resp.status == 200
            assert await resp.text() == "<h1>docs</h1>"

    @pytest.mark.asyncio
    async def test_redirect_with_capture(self, site):
        app, _ = _app_for(site)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get("/blog/2024/hello", allow_redirects=False)
            assert resp.status == 301
            assert resp.headers["Location"] == "/posts/hello"

    @pytest.mark.asyncio
    async def test_redirect_default_status(self, site):
        app, _ = _app_for(site)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get("/home", allow_redirects=False)
            assert resp.status == 302
            assert resp.headers["Location"] == "/"

    @pytest.mark.asyncio
    async def test_redirect_to_absolute_url_with_wildcard(self, site):
        app, _ = _app_for(site)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get("/external/a/b/c", allow_redirects=False)
            assert resp.status == 302
            assert resp.headers["Location"] == "https://example.com/a/b/c"

    @pytest.mark.asyncio
    async def test_redirect_beats_existing_file(self, tmp_path):
        """Test a redirect answers before the filesystem is consulted."""
        (tmp_path / "old.html").write_text("old", encoding="utf-8")
        (tmp_path / "_redirects").write_text("/old.html /new.html 301\n", encoding="utf-8")
        app, _ = _app_for(tmp_path)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get("/old.html", allow_redirects=False)
            assert resp.status == 301

    @pytest.mark.asyncio
    async def test_invalid_location_is_server_error(self, tmp_path):
        """Test a target that is not a valid header value gives a 500."""
        rule = RedirectRule(
            pattern=parse_pattern("/bad"),
            target=TargetTemplate(fragments=("/a\r\nSet-Cookie: x=1",)),
        )
        app = create_app(
            RuleEngine(RuleSet(redirects=(rule,))),
            ServerConfig(site_root=str(tmp_path)),
        )
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get("/bad", allow_redirects=False)
            assert resp.status == 500
            assert "Location" not in resp.headers
            assert "Set-Cookie" not in resp.headers

    @pytest.mark.asyncio
    async def test_header_rules(self, site):
        app, _ = _app_for(site)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get("/assets/css/site.css")
            assert resp.status == 200
            assert resp.headers["Cache-Control"] == "public, max-age=31536000, immutable"
            assert "X-Robots-Tag" not in resp.headers

    @pytest.mark.asyncio
    async def test_header_rules_override_defaults(self, site):
        """Test header rules replace headers the file server set."""
        app, _ = _app_for(site)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get("/")
            assert resp.status == 200
            assert resp.headers["Content-Type"] == "text/plain; charset=utf-8"
            assert resp.headers["X-Frame-Options"] == "DENY"

    @pytest.mark.asyncio
    async def test_header_rules_on_missing_pages(self, site):
        app, _ = _app_for(site)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get("/docs/missing")
            assert resp.status == 404
            assert resp.headers["X-Robots-Tag"] == "noindex"

    @pytest.mark.asyncio
    async def test_not_found_page(self, site):
        app, _ = _app_for(site)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get("/nope.html")
            assert resp.status == 404
            assert await resp.text() == "<h1>missing</h1>"

    @pytest.mark.asyncio
    async def test_plain_not_found_without_page(self, tmp_path):
        app, _ = _app_for(tmp_path)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get("/nope.html")
            assert resp.status == 404
            assert "Not Found" in await resp.text()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "path", ["/_headers", "/_redirects", "/_headers.bak", "/_headers/", "/_redirects/"]
    )
    async def test_rule_files_are_hidden(self, site, path):
        (site / "_headers.bak").write_text("backup", encoding="utf-8")
        app, _ = _app_for(site)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get(path)
            assert resp.status == 404
            assert await resp.text() == "<h1>missing</h1>"

    @pytest.mark.asyncio
    async def test_custom_hidden_paths(self, site):
        (site / "private.txt").write_text("private", encoding="utf-8")
        app, _ = _app_for(site, hidden_paths=["/private"])
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            assert (await client.get("/private.txt")).status == 404
            assert (await client.get("/_headers")).status == 200

    @pytest.mark.asyncio
    async def test_head_request(self, site):
        app, _ = _app_for(site)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.head("/docs/intro.html")
            assert resp.status == 200

    @pytest.mark.asyncio
    async def test_engine_reload_takes_effect(self, site):
        app, engine = _app_for(site)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            engine.load(redirects="/docs/intro.html /elsewhere 307\n")
            resp = await client.get("/docs/intro.html", allow_redirects=False)
            assert resp.status == 307
            assert resp.headers["Location"] == "/elsewhere"
            assert (await client.get("/home", allow_redirects=False)).status == 404


class TestSiteServer:
    """Tests for SiteServer."""

    def test_loads_rules_from_site_root(self, site):
        server = SiteServer(ServerConfig(site_root=str(site)))
        assert len(server.engine.ruleset.redirects) == 3

    def test_reload_picks_up_changes(self, site):
        server = SiteServer(ServerConfig(site_root=str(site)))
        (site / "_redirects").write_text("/a /b\n", encoding="utf-8")

        assert server.reload() is True
        assert len(server.engine.ruleset.redirects) == 1

    def test_failed_reload_keeps_rules(self, site):
        server = SiteServer(ServerConfig(site_root=str(site)))
        before = server.engine.ruleset
        (site / "_redirects").write_text("/a\n", encoding="utf-8")

        assert server.reload() is False
        assert server.engine.ruleset is before

    def test_uses_given_engine(self, tmp_path):
        engine = RuleEngine.from_text(redirects="/a /b\n")
        server = SiteServer(ServerConfig(site_root=str(tmp_path)), engine=engine)
        assert server.engine is engine

    @pytest.mark.parametrize(
        ("bind", "expected"),
        [
            ("127.0.0.1:9000", ("127.0.0.1", 9000)),
            ("0.0.0.0:80", ("0.0.0.0", 80)),
            ("8080", ("0.0.0.0", 8080)),
        ],
    )
    def test_parse_bind(self, tmp_path, bind, expected):
        server = SiteServer(ServerConfig(site_root=str(tmp_path)))
        assert server._parse_bind(bind) == expected

    @pytest.mark.asyncio
    async def test_start_and_stop(self, tmp_path):
        server = SiteServer(ServerConfig(site_root=str(tmp_path), bind="127.0.0.1:0"))
        await server.start()
        await server.stop()
        assert server._runner is None
