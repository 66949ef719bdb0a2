"""Sitegate CLI - Command line interface."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
import sys
from pathlib import Path
from typing import NoReturn

import click
import structlog
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from sitegate.core.config import (
    RulesConfig,
    ServerConfig,
    get_config,
    load_config_from_file,
)
from sitegate.core.exceptions import SitegateError, format_error_for_user

console = Console()

BANNER = """
 ____  _ _                   _
/ ___|(_) |_ ___  __ _  __ _| |_ ___
\\___ \\| | __/ _ \\/ _` |/ _` | __/ _ \\
 ___) | | ||  __/ (_| | (_| | ||  __/
|____/|_|\\__\\___|\\__, |\\__,_|\\__\\___|
                 |___/
        Static sites, your rules
"""

LOG_LEVELS = ["debug", "info", "warning", "error"]


def _configure_logging(level: str) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _load_configs(
    config_file: str | None, root: str | None = None
) -> tuple[ServerConfig, RulesConfig]:
    """Build server and rules settings from env vars, a config file and ROOT."""
    data = load_config_from_file(config_file) if config_file else {}
    server_data = dict(data.get("server") or {})
    if root is not None:
        server_data["site_root"] = root
    return ServerConfig(**server_data), RulesConfig(**(data.get("rules") or {}))


def _fail(error: BaseException) -> NoReturn:
    if isinstance(error, SitegateError):
        console.print(
            Panel(
                f"[red]{escape(error.message)}[/red]",
                title=f"Error: {error.code}",
                border_style="red",
            )
        )
    else:
        console.print(f"[red]Error:[/red] {escape(format_error_for_user(error))}")
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="warning",
    help="Log level (default: warning)",
)
@click.pass_context
def main(ctx: click.Context, log_level: str):
    """Sitegate - Static sites, your rules.

    Serves a directory of static files and applies the custom headers and
    redirects declared in its _headers and _redirects files.

    Examples:

        sitegate check ./public

        sitegate resolve /blog/hello --root ./public

        sitegate serve ./public --bind 127.0.0.1:8080
    """
    _configure_logging(log_level)
    if ctx.invoked_subcommand is None:
        console.print(BANNER, style="cyan")
        click.echo(ctx.get_help())


@main.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False), default=".")
@click.option(
    "--config", "-c",
    "config_file",
    type=click.Path(exists=True),
    help="Path to YAML or TOML config file",
)
def check(root: str, config_file: str | None):
    """Validate the _headers and _redirects files of a site.

    Prints every parsed rule and exits with status 1 on the first error.
    """
    from sitegate.server.loader import load_site_rules

    try:
        _, rules_config = _load_configs(config_file)
        ruleset = load_site_rules(root, rules_config)
    except (SitegateError, OSError, ValueError) as e:
        _fail(e)

    headers_table = Table(title=f"Header rules ({rules_config.headers_file})")
    headers_table.add_column("Line", style="dim", justify="right")
    headers_table.add_column("Path", style="cyan")
    headers_table.add_column("Tier", style="magenta")
    headers_table.add_column("Headers", style="green")
    for rule in ruleset.headers:
        pairs = "\n".join(f"{name}: {value}" for name, value in rule.headers)
        headers_table.add_row(
            str(rule.line),
            escape(str(rule.pattern)),
            rule.pattern.tier.name.lower(),
            escape(pairs) or "[dim]none[/dim]",
        )

    redirects_table = Table(title=f"Redirect rules ({rules_config.redirects_file})")
    redirects_table.add_column("Line", style="dim", justify="right")
    redirects_table.add_column("Path", style="cyan")
    redirects_table.add_column("Target", style="green")
    redirects_table.add_column("Status", style="yellow")
    for rule in ruleset.redirects:
        redirects_table.add_row(
            str(rule.line),
            escape(str(rule.pattern)),
            escape(str(rule.target)),
            str(rule.status),
        )

    console.print(headers_table)
    console.print(redirects_table)
    console.print(
        f"[green]OK[/green] - {len(ruleset.headers)} header rules, "
        f"{len(ruleset.redirects)} redirect rules"
    )


@main.command()
@click.argument("path")
@click.option(
    "--root", "-r",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Site root holding _headers and _redirects (default: .)",
)
@click.option(
    "--config", "-c",
    "config_file",
    type=click.Path(exists=True),
    help="Path to YAML or TOML config file",
)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def resolve(path: str, root: str, config_file: str | None, json_output: bool):
    """Show the redirect and headers the rules give PATH."""
    from sitegate.rules import RuleEngine
    from sitegate.server.loader import load_site_rules

    try:
        _, rules_config = _load_configs(config_file)
        engine = RuleEngine(load_site_rules(root, rules_config))
    except (SitegateError, OSError, ValueError) as e:
        _fail(e)

    redirect = engine.resolve_redirect(path)
    headers = engine.resolve_headers(path)

    if json_output:
        payload = {
            "path": path,
            "redirect": redirect.to_dict() if redirect else None,
            "headers": [list(pair) for pair in headers],
        }
        click.echo(json.dumps(payload, indent=2))
        return

    console.print(f"[bold]Path:[/bold] {escape(path)}")
    if redirect:
        console.print(
            f"[bold]Redirect:[/bold] [yellow]{redirect.status}[/yellow] -> "
            f"[cyan]{escape(redirect.location)}[/cyan]"
        )
    else:
        console.print("[bold]Redirect:[/bold] [dim]none, served from disk[/dim]")

    if headers:
        console.print("[bold]Headers:[/bold]")
        for name, value in headers:
            console.print(f"  [green]{escape(name)}[/green]: {escape(value)}")
    else:
        console.print("[bold]Headers:[/bold] [dim]none[/dim]")


@main.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False), required=False)
@click.option("--bind", "-b", default=None, help="host:port to listen on (default: 0.0.0.0:8080)")
@click.option(
    "--config", "-c",
    "config_file",
    type=click.Path(exists=True),
    help="Path to YAML or TOML config file",
)
def serve(root: str | None, bind: str | None, config_file: str | None):
    """Serve ROOT with its header and redirect rules.

    Send SIGHUP to reload _headers and _redirects without restarting.
    """
    from sitegate.server.app import SiteServer

    try:
        server_config, rules_config = _load_configs(config_file, root)
        if bind is not None:
            server_config = server_config.model_copy(update={"bind": bind})
        server = SiteServer(server_config, rules_config)
    except (SitegateError, OSError, ValueError) as e:
        _fail(e)

    console.print(BANNER, style="cyan")
    console.print(f"Serving {escape(str(Path(server_config.site_root).resolve()))}", style="yellow")
    console.print(f"Listening on {server_config.bind}", style="dim")
    console.print(
        f"Rules: {len(server.engine.ruleset.headers)} header, "
        f"{len(server.engine.ruleset.redirects)} redirect",
        style="dim",
    )

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run_server(server))


async def run_server(server) -> None:
    """Run the site server until interrupted."""
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError, AttributeError):
        loop.add_signal_handler(signal.SIGHUP, server.reload)

    try:
        await server.start()
        console.print("Server started, press Ctrl+C to stop", style="green")

        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\nShutting down...", style="yellow")
    finally:
        await server.stop()


@main.command()
def version():
    """Show version information."""
    from sitegate import __version__

    console.print(BANNER, style="cyan")
    console.print(f"[bold]Version:[/bold] {__version__}")
    console.print(f"[bold]Python:[/bold] {sys.version}")


@main.group()
def config():
    """View and export configuration settings.

    All settings can be configured via environment variables with the
    SITEGATE_ prefix. Use these commands to see current values.

    Examples:

        sitegate config show            # Show all config settings

        sitegate config export          # Export as env vars
    """
    pass


@config.command("show")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--section", "-s", help="Show only specific section (server, rules)")
def config_show(json_output: bool, section: str | None):
    """Show current configuration settings.

    Values come from environment variables or defaults.
    """
    display = get_config().to_display_dict()

    if section:
        section = section.lower()
        if section not in display:
            console.print(f"[red]Unknown section:[/red] {escape(section)}")
            console.print(f"[dim]Available: {', '.join(display.keys())}[/dim]")
            sys.exit(1)
        display = {section: display[section]}

    if json_output:
        click.echo(json.dumps(display, indent=2))
        return

    console.print("[bold]Current Configuration[/bold]\n")

    for section_name, settings in display.items():
        table = Table(title=section_name.title())
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")
        table.add_column("Env Variable", style="dim")

        for key, value in settings.items():
            env_var = f"SITEGATE_{key.upper()}"
            table.add_row(key, escape(str(value)), env_var)

        console.print(table)
        console.print()


@config.command("export")
@click.option("--shell", type=click.Choice(["bash", "powershell", "cmd"]), default="bash", help="Shell format")
def config_export(shell: str):
    """Export current configuration as environment variables."""
    env_dict = get_config().to_env_dict()

    click.echo(f"# Sitegate Configuration Export ({shell})")
    for key, value in env_dict.items():
        if shell == "bash":
            click.echo(f"export {key}='{value}'")
        elif shell == "powershell":
            click.echo(f'$env:{key}="{value}"')
        elif shell == "cmd":
            click.echo(f"set {key}={value}")


if __name__ == "__main__":
    main()
