"""Command line interface for browser-command-engine."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from .api.app import create_app, package_version
from .config import load_config
from .errors import EngineError
from .factory import build_service
from .models import BrowserKind, ScreenshotOptions

app = typer.Typer(help="Browser Command Engine entry point")
console = Console()


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging before executing any command."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.command()
def version() -> None:
    """Print the package version."""

    typer.echo(package_version())


@app.command()
def serve(
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to YAML configuration."),
    ] = None,
    env_file: Annotated[
        Optional[Path],
        typer.Option("--env-file", help="Path to an .env file with default configuration values."),
    ] = None,
    host: Annotated[
        Optional[str],
        typer.Option("--host", help="Binding address for the HTTP service."),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", help="HTTP port for the service."),
    ] = None,
) -> None:
    """Serve the session API over HTTP."""

    import uvicorn

    overrides: dict[str, Any] = {}
    if host is not None or port is not None:
        overrides["server"] = {}
        if host is not None:
            overrides["server"]["host"] = host
        if port is not None:
            overrides["server"]["port"] = port
    config = load_config(config_path, env_file=env_file, **overrides)
    service = build_service(config)
    uvicorn.run(create_app(service), host=config.server.host, port=config.server.port)


@app.command()
def run(
    url: Annotated[str, typer.Argument(help="Page to open before running commands.")],
    commands: Annotated[
        Optional[list[str]],
        typer.Argument(help="Chat commands, e.g. 'click Sign in'."),
    ] = None,
    script: Annotated[
        Optional[Path],
        typer.Option("--script", "-s", help="File with one chat command per line."),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to YAML configuration."),
    ] = None,
    env_file: Annotated[
        Optional[Path],
        typer.Option("--env-file", help="Path to an .env file with default configuration values."),
    ] = None,
    browser: Annotated[
        Optional[BrowserKind],
        typer.Option("--browser", help="Browser engine to launch."),
    ] = None,
    headless: Annotated[
        Optional[bool],
        typer.Option("--headless/--headed", help="Run the browser in headless mode (or headed)."),
    ] = None,
    screenshot: Annotated[
        Optional[Path],
        typer.Option("--screenshot", help="Write a full-page PNG here after the commands."),
    ] = None,
) -> None:
    """Open a session, run chat commands against URL, then close it."""

    overrides: dict[str, Any] = {}
    if browser is not None or headless is not None:
        overrides["browser"] = {}
        if browser is not None:
            overrides["browser"]["kind"] = browser.value
        if headless is not None:
            overrides["browser"]["headless"] = headless
    config = load_config(config_path, env_file=env_file, **overrides)

    sentences = list(commands or [])
    if script is not None:
        sentences.extend(
            line.strip()
            for line in script.read_text().splitlines()
            if line.strip() and not line.lstrip().startswith("#")
        )

    service = build_service(config)
    table = Table(title=url)
    table.add_column("Command")
    table.add_column("Result")
    table.add_column("Resolved")
    failed = False
    try:
        session = service.create_session()
        service.navigate(session.id, url)
        for sentence in sentences:
            try:
                result = service.execute_chat(session.id, sentence)
            except EngineError as exc:
                table.add_row(sentence, f"[red]{exc.kind}[/red]", exc.message)
                failed = True
                break
            where = f" ({result.document.url})" if result.document and result.document.index else ""
            table.add_row(sentence, "[green]ok[/green]", f"{result.resolved_selector or '-'}{where}")
        if screenshot is not None and not failed:
            screenshot.write_bytes(
                service.screenshot(session.id, ScreenshotOptions(full_page=True))
            )
    except EngineError as exc:
        console.print(f"[red]{exc.kind}[/red]: {exc.message}")
        raise typer.Exit(code=1) from exc
    finally:
        service.shutdown()
    console.print(table)
    if failed:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
