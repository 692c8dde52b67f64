"""CLI interface for the v0 CLI using Typer."""

import dataclasses
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.table import Table

from v0cli.browser import detect_browsers
from v0cli.cookies import parse_manual_cookies, service_domain
from v0cli.exceptions import ManualInputError, V0Error
from v0cli.interaction import ConsoleInteraction
from v0cli.models import AcquisitionState
from v0cli.session import SessionManager
from v0cli.storage import LOG_FILENAME, POSITIVE_SETTINGS, Storage, default_base_path
from v0cli.validity import THIRTY_DAYS_MS, is_valid, now_ms

app = typer.Typer(help="Sign in to v0.dev and chat with it from your terminal")
console = Console()

logger = logging.getLogger(__name__)

_NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(log_path: Path, verbose: bool) -> None:
    """Append diagnostics to the log file; mirror them to the terminal with --verbose."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    file_handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] %(levelname)s %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(file_handler)

    if verbose:
        root_logger.addHandler(
            RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)
        )

    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _handle_error(e: V0Error) -> None:
    """Print a one-line message for a known error and exit."""
    logger.error(f"Command failed: {e.message}")
    console.print(f"[red]{e.message}[/red]")
    raise typer.Exit(1)


def _mask(value: str) -> str:
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}...{value[-4:]}"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging in the terminal"),
) -> None:
    """Sign in to v0.dev and chat with it from your terminal."""
    setup_logging(default_base_path() / LOG_FILENAME, verbose)


@app.command()
def login(
    force: bool = typer.Option(False, "--force", "-f", help="Log in again even if a session exists"),
) -> None:
    """Log in to v0.dev through your browser."""
    interaction = ConsoleInteraction(console)
    session = SessionManager(Storage(), interaction=interaction)

    try:
        if session.is_logged_in() and not force:
            console.print("[green]Already logged in to v0.dev.[/green] Use --force to log in again.")
            return

        console.print("Opening v0.dev in your browser. Complete the login there; press Ctrl-C to cancel.")
        result = interaction.pump(session.login())
    finally:
        session.shutdown()

    if result.success:
        console.print(f"[green bold]Login successful.[/green bold] {result.message}")
        return

    if result.state is AcquisitionState.CANCELLED:
        console.print("[yellow]Login cancelled.[/yellow]")
    else:
        console.print(f"[red]Login failed: {result.message}[/red]")
    raise typer.Exit(1)


@app.command()
def logout() -> None:
    """Forget the stored v0.dev session."""
    session = SessionManager(Storage())
    try:
        session.logout()
    except V0Error as e:
        _handle_error(e)
    finally:
        session.shutdown()

    console.print("Logged out.")


@app.command()
def status() -> None:
    """Show whether a valid session is stored."""
    storage = Storage()
    store = storage.auth_store()
    record = store.load()
    cookies = store.load_cookies()
    logged_in = is_valid(record, store.cookies_present())

    table = Table(show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    table.add_row("Logged in", "[green]yes[/green]" if logged_in else "[red]no[/red]")
    if record is not None:
        created = datetime.fromtimestamp(record.created_at_ms / 1000)
        age_days = (now_ms() - record.created_at_ms) / (24 * 60 * 60 * 1000)
        table.add_row("Session created", created.strftime("%Y-%m-%d %H:%M"))
        table.add_row("Session age", f"{age_days:.1f} days (expires after {THIRTY_DAYS_MS // 86_400_000} days)")
    table.add_row("Cookies", str(len(cookies)))
    table.add_row("Browsers found", ", ".join(detect_browsers()) or "none")
    table.add_row("Data directory", str(storage.base_path))

    console.print(table)


@app.command("cookies")
def list_cookies() -> None:
    """List stored session cookies (values masked)."""
    store = Storage().auth_store()
    cookies = store.load_cookies()

    if len(cookies) == 0:
        console.print("[yellow]No cookies stored.[/yellow]")
        console.print("Use 'v0 login' or 'v0 import' to add a session.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Value")
    table.add_column("Domain")
    table.add_column("Path")
    table.add_column("HttpOnly")
    table.add_column("Secure")

    for cookie in cookies:
        table.add_row(
            cookie.name,
            _mask(cookie.value),
            cookie.domain,
            cookie.path,
            "✓" if cookie.http_only else "",
            "✓" if cookie.secure else "",
        )

    console.print(table)


@app.command("import")
def import_cookies(
    file: Optional[Path] = typer.Argument(None, help="File with cookies (reads stdin when omitted)"),
) -> None:
    """Import cookies copied from a browser instead of logging in."""
    storage = Storage()
    config = storage.get_config()

    if file is not None:
        text = file.read_text(encoding="utf-8")
    else:
        text = typer.get_text_stream("stdin").read()

    session = SessionManager(storage)
    try:
        jar = parse_manual_cookies(text, service_domain(config.base_url))
        if len(jar) == 0:
            raise ManualInputError()
        session.import_cookies(jar)
    except V0Error as e:
        _handle_error(e)
    finally:
        session.shutdown()

    console.print(f"[green]Imported {len(jar)} cookies.[/green]")


@app.command()
def chat(message: str = typer.Argument(..., help="Message to send to v0.dev")) -> None:
    """Send a message to v0.dev and print the reply."""
    session = SessionManager(Storage())

    try:
        client = session.get_client()
        try:
            console.print("Sending message to v0.dev...")
            reply = client.send_message(message)
        finally:
            client.close()
    except V0Error as e:
        _handle_error(e)
    finally:
        session.shutdown()

    console.print(Markdown(reply))


@app.command("config")
def config_command(
    key: Optional[str] = typer.Argument(None, help="Setting to show or change"),
    value: Optional[str] = typer.Argument(None, help="New value"),
) -> None:
    """Show or change configuration."""
    storage = Storage()
    config = storage.get_config()
    fields = {f.name: f for f in dataclasses.fields(config)}

    if key is None:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        for name in fields:
            table.add_row(name, str(getattr(config, name)))
        console.print(table)
        return

    if key not in fields:
        console.print(f"[red]Unknown setting '{key}'. Known: {', '.join(fields)}[/red]")
        raise typer.Exit(1)

    if value is None:
        console.print(str(getattr(config, key)))
        return

    current = getattr(config, key)
    try:
        if isinstance(current, bool):
            if value.lower() not in ("true", "false", "yes", "no", "1", "0"):
                raise ValueError(value)
            new_value = value.lower() in ("true", "yes", "1")
        else:
            new_value = type(current)(value)
        if key in POSITIVE_SETTINGS and not new_value > 0:
            raise ValueError(value)
    except ValueError:
        console.print(f"[red]Invalid value for {key}: {value}[/red]")
        raise typer.Exit(1)

    storage.save_config(dataclasses.replace(config, **{key: new_value}))
    console.print(f"[green]{key}[/green] = {new_value}")


if __name__ == "__main__":
    app()
