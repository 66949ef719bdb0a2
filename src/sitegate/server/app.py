"""Static file server with header and redirect rules.

Request flow, outermost first:

1. Redirect rules. A match answers with the rule's status and a ``Location``
   header; the filesystem is never touched.
2. Hidden paths. ``/_headers``, ``/_redirects`` and friends answer 404.
3. Static files from the site root, ``index.html`` for directories and
   ``404.html`` (status 404) when nothing is found.

Header rules run last, from ``on_response_prepare``, once the response
(content type, ETag and all) is fully assembled, so they can override any
default. They apply to redirects and 404s too.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog
from aiohttp import web

from sitegate.core.config import RulesConfig, ServerConfig
from sitegate.rules import RuleEngine
from sitegate.server.loader import SiteRulesError, load_site_rules

logger = structlog.get_logger()

ENGINE_KEY: web.AppKey[RuleEngine] = web.AppKey("engine", RuleEngine)
CONFIG_KEY: web.AppKey[ServerConfig] = web.AppKey("config", ServerConfig)
ROOT_KEY: web.AppKey[Path] = web.AppKey("root", Path)


def rule_path(request: web.Request) -> str:
    """The path rules are matched against: the raw, still percent-encoded path."""
    return request.rel_url.raw_path


def is_hidden(path: str, hidden_paths: list[str]) -> bool:
    """True for a hidden path and any single-segment path extending it.

    ``/_headers`` hides ``/_headers`` and ``/_headers.bak`` but not
    ``/_headers/index.html``.
    """
    for hidden in hidden_paths:
        if path.startswith(hidden) and "/" not in path[len(hidden):]:
            return True
    return False


@web.middleware
async def redirects_middleware(request: web.Request, handler) -> web.StreamResponse:
    redirect = request.app[ENGINE_KEY].resolve_redirect(rule_path(request))
    if redirect is None:
        return await handler(request)

    if "\r" in redirect.location or "\n" in redirect.location:
        logger.error("Redirect target is not a valid header value", path=request.path)
        return web.Response(status=500)

    logger.debug(
        "Redirecting",
        path=request.path,
        location=redirect.location,
        status=redirect.status,
    )
    return web.Response(status=redirect.status, headers={"Location": redirect.location})


@web.middleware
async def hidden_paths_middleware(request: web.Request, handler) -> web.StreamResponse:
    if is_hidden(request.path, request.app[CONFIG_KEY].hidden_paths):
        return await _not_found(request)
    return await handler(request)


async def apply_header_rules(request: web.Request, response: web.StreamResponse) -> None:
    """Set the headers of the winning header rule on an assembled response."""
    engine = request.app.get(ENGINE_KEY)
    if engine is None:
        return
    for name, value in engine.resolve_headers(rule_path(request)):
        response.headers[name] = value


def _resolve_file(root: Path, path: str, index_file: str) -> Path | None:
    """Map a request path to a file under ``root``, or None.

    A path ending in ``/`` only ever names a directory, served through its
    ``index_file``.
    """
    if "\x00" in path:
        return None
    candidate = (root / path.lstrip("/")).resolve()
    if not candidate.is_relative_to(root):
        return None
    if candidate.is_dir():
        candidate = candidate / index_file
    elif path.endswith("/"):
        return None
    if candidate.is_file():
        return candidate
    return None


async def _not_found(request: web.Request) -> web.StreamResponse:
    root = request.app[ROOT_KEY]
    page = root / request.app[CONFIG_KEY].not_found_file
    loop = asyncio.get_running_loop()
    if await loop.run_in_executor(None, page.is_file):
        return web.FileResponse(page, status=404)
    return web.Response(status=404, text="404: Not Found")


async def serve_static(request: web.Request) -> web.StreamResponse:
    config = request.app[CONFIG_KEY]
    loop = asyncio.get_running_loop()
    target = await loop.run_in_executor(
        None, _resolve_file, request.app[ROOT_KEY], request.path, config.index_file
    )
    if target is None:
        return await _not_found(request)
    return web.FileResponse(target)


def create_app(engine: RuleEngine, config: ServerConfig | None = None) -> web.Application:
    """Build the aiohttp application serving ``config.site_root``.

    Args:
        engine: Rule engine consulted on every request. Its rule set can be
            swapped while the application runs.
        config: Server settings. Defaults to the environment-driven
            ``ServerConfig``.
    """
    config = config or ServerConfig()
    app = web.Application(middlewares=[redirects_middleware, hidden_paths_middleware])
    app[ENGINE_KEY] = engine
    app[CONFIG_KEY] = config
    app[ROOT_KEY] = Path(config.site_root).resolve()
    app.router.add_get("/{path:.*}", serve_static)
    app.on_response_prepare.append(apply_header_rules)
    return app


class SiteServer:
    """Runs the static site application and reloads its rules on demand."""

    def __init__(
        self,
        config: ServerConfig | None = None,
        rules_config: RulesConfig | None = None,
        engine: RuleEngine | None = None,
    ) -> None:
        self.config = config or ServerConfig()
        self.rules_config = rules_config or RulesConfig()
        self.engine = engine or RuleEngine(
            load_site_rules(self.config.site_root, self.rules_config)
        )
        self.app = create_app(self.engine, self.config)
        self._runner: web.AppRunner | None = None

    def reload(self) -> bool:
        """Re-read the rule files and swap them in.

        A failed reload keeps the rules already in use.

        Returns:
            True if the new rules are in use.
        """
        try:
            ruleset = load_site_rules(self.config.site_root, self.rules_config)
        except (SiteRulesError, OSError) as e:
            logger.error("Rule reload failed, keeping current rules", error=str(e))
            return False
        self.engine.reload(ruleset)
        return True

    def _parse_bind(self, bind: str) -> tuple[str, int]:
        """Parse bind address into host and port."""
        if ":" in bind:
            host, port = bind.rsplit(":", 1)
            return host, int(port)
        return "0.0.0.0", int(bind)

    async def start(self) -> None:
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()

        host, port = self._parse_bind(self.config.bind)
        site = web.TCPSite(self._runner, host, port)
        await site.start()
        logger.info(
            "Site server started",
            host=host,
            port=port,
            root=str(self.app[ROOT_KEY]),
            rules=len(self.engine),
        )

    async def stop(self) -> None:
        """Stop the server gracefully."""
        logger.info("Stopping site server...")
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        logger.info("Site server stopped")
