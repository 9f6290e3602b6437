"""Strix CLI - Main Entry Point.

Commands:
    serve    - Run an application with uvicorn
    routes   - List explicit and auto-routed paths
    config   - Show the effective configuration
    version  - Show version information
"""

import importlib
import json
import sys
from pathlib import Path
from typing import Optional

import click

from .. import __version__
from . import __cli_name__

DEFAULT_APP = "myapp.main:app"


def load_app(target: str):
    """
    Import ``module:attribute`` and return the application.

    The current directory is put on ``sys.path`` first so a project's
    own packages resolve.
    """
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise click.BadParameter(f"expected 'module:attribute', got {target!r}", param_hint="APP")

    cwd = str(Path.cwd())
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import {module_name!r}: {e}", param_hint="APP")

    app = getattr(module, attr, None)
    if app is None:
        raise click.BadParameter(f"{module_name!r} has no attribute {attr!r}", param_hint="APP")
    return app


@click.group()
@click.version_option(version=__version__, prog_name=__cli_name__)
def cli():
    """Strix - a small MVC web framework."""


@cli.command()
@click.argument("app", default=DEFAULT_APP)
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind host")
@click.option("--port", "-p", default=8000, show_default=True, type=int, help="Bind port")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override the configured log level",
)
def serve(app: str, host: str, port: int, log_level: Optional[str]):
    """
    Serve APP (module:attribute) with uvicorn.

    Examples:
      strix serve myapp.main:app
      strix serve myapp.main:app --port 9000 --log-level debug
    """
    application = load_app(app)
    click.secho(f"Serving {app} on http://{host}:{port}", fg="green")
    application.run(host=host, port=port, log_level=log_level)


@cli.command()
@click.argument("app", default=DEFAULT_APP)
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def routes(app: str, as_json: bool):
    """List the routes of APP in match order."""
    application = load_app(app)
    explicit = [entry.to_dict() for entry in application.routes]
    auto = application.controllers.routes() if application.dispatcher.auto_routing else []

    if as_json:
        click.echo(json.dumps({"routes": explicit, "auto": auto}, indent=2))
        return

    if not explicit and not auto:
        click.echo("No routes registered.")
        return

    width = max((len(r["path"]) for r in explicit), default=0)
    for r in explicit:
        gates = f"  [{', '.join(r['middleware'])}]" if r["middleware"] else ""
        click.echo(f"{click.style(r['method'].ljust(7), fg='cyan')} {r['path'].ljust(width)}  {r['handler']}{gates}")

    if auto:
        click.echo()
        click.secho("Auto-routed:", bold=True)
        for path in auto:
            click.echo(f"{click.style('*'.ljust(7), fg='yellow')} {path}")


@cli.command("config")
@click.argument("app", default=DEFAULT_APP)
def show_config(app: str):
    """Show the effective configuration of APP (secrets masked)."""
    application = load_app(app)
    click.echo(json.dumps(application.config.to_dict(), indent=2, default=str))


@cli.command()
def version():
    """Show version information."""
    click.echo(f"{__cli_name__} {__version__}")
    click.echo(f"Python {sys.version.split()[0]}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
