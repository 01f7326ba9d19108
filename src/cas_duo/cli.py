"""CLI for CAS + Duo login."""

import dataclasses
import json
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from .client import CASDuoClient
from .config import CASDuoConfig
from .exceptions import CASDuoError
from .listeners import DuoStatusListener
from .models import PollResult

app = typer.Typer(help="CAS + Duo two-factor login CLI")
console = Console()
logger = logging.getLogger(__name__)


class ConsoleListener(DuoStatusListener):
    """Report push progress on the console."""

    def __init__(self):
        self._announced = False

    def on_pushed(self, result: PollResult) -> None:
        if not self._announced:
            console.print("Pushed a request to device, waiting for approval...")
            self._announced = True
        else:
            console.print("[dim]  still waiting...[/dim]")

    def on_allowed(self, result: PollResult) -> None:
        console.print("[green]Request accepted, logging in...[/green]")


ENV_FILE = "local.env"


def load_env(filename: str = ENV_FILE, depth: int = 3) -> Path | None:
    """Fill unset environment variables from the nearest env file.

    Looks in the working directory, then up to ``depth`` parents. Values
    already in the environment win over the file. Returns the file used.
    """
    cwd = Path.cwd()
    for directory in [cwd, *cwd.parents][: depth + 1]:
        env_file = directory / filename
        if not env_file.is_file():
            continue
        for raw in env_file.read_text().splitlines():
            line = raw.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.removeprefix("export ").partition("=")
            os.environ.setdefault(key.strip(), value.strip().strip("\"'"))
        return env_file
    return None


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def get_config(retries: int | None, interval: float | None) -> CASDuoConfig:
    """Build configuration from the environment and command-line overrides."""
    env_file = load_env()
    if env_file:
        logger.debug("Loaded settings from %s", env_file)
    config = CASDuoConfig.from_env(listener=ConsoleListener())

    overrides = {}
    if retries is not None:
        overrides["max_retries"] = retries
    if interval is not None:
        overrides["poll_interval"] = interval
    if config.cas_url and config.username and not config.password:
        overrides["password"] = typer.prompt(f"CAS password for {config.username}", hide_input=True)
    if overrides:
        config = dataclasses.replace(config, **overrides)

    missing = config.validate()
    if missing:
        console.print(f"[red]Missing configuration:[/red] {', '.join(missing)}")
        console.print("[dim]Set CAS_URL, CAS_USER, CAS_PASSWORD in environment or local.env[/dim]")
        raise typer.Exit(1)
    return config


def get_client(config: CASDuoConfig) -> CASDuoClient:
    """Create and authenticate a client."""
    client = CASDuoClient(config)
    if not client.login():
        client.close()
        console.print(f"[red]✗ Authentication failed:[/red] {client.last_error}")
        raise typer.Exit(1)
    return client


RETRIES_HELP = "Status polls before giving up (default: CAS_DUO_RETRIES or 10)"
INTERVAL_HELP = "Seconds between status polls (default: CAS_DUO_POLL_INTERVAL or 3)"


@app.command()
def login(
    retries: int | None = typer.Option(None, "--retries", "-r", help=RETRIES_HELP),
    interval: float | None = typer.Option(None, "--interval", "-i", help=INTERVAL_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Test CAS + Duo authentication."""
    setup_logging(verbose)
    config = get_config(retries, interval)

    console.print(f"CAS URL: [cyan]{config.cas_url}[/cyan]")
    console.print(f"User: [cyan]{config.username}[/cyan]")

    with get_client(config) as client:
        console.print("[green]✓ Authentication successful![/green]")
        console.print(f"Session cookies: {', '.join(sorted({c.name for c in client.cookies})) or 'none'}")


@app.command()
def fetch(
    url: str = typer.Argument(..., help="Protected resource URL"),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method"),
    data: list[str] = typer.Option([], "--data", "-d", help="name=value parameter (repeatable)"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write body to file"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Pretty-print a JSON body"),
    retries: int | None = typer.Option(None, "--retries", "-r", help=RETRIES_HELP),
    interval: float | None = typer.Option(None, "--interval", "-i", help=INTERVAL_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Log in, then fetch a protected resource.

    Examples:

        cas-duo fetch https://portal.example.edu/api/me --json

        cas-duo fetch https://portal.example.edu/report -X POST -d term=202610 -o report.html
    """
    params = {}
    for item in data:
        if "=" not in item:
            console.print(f"[red]Invalid --data value:[/red] {item} (expected name=value)")
            raise typer.Exit(1)
        name, _, value = item.partition("=")
        params[name] = value

    setup_logging(verbose)
    config = get_config(retries, interval)

    with get_client(config) as client:
        try:
            response = client.submit_request(url, method=method, params=params or None)
        except CASDuoError as e:
            console.print(f"[red]Request failed:[/red] {e}")
            raise typer.Exit(1)

    if output:
        output.write_bytes(response.content)
        console.print(f"[green]Saved {len(response.content)} bytes to {output}[/green]")
    elif json_output:
        try:
            body = response.json()
        except ValueError:
            console.print("[red]Response is not JSON[/red]")
            raise typer.Exit(1)
        console.print(json.dumps(body, indent=2))
    else:
        console.print(response.text, markup=False, highlight=False)


if __name__ == "__main__":
    app()
