from __future__ import annotations

from dotenv import load_dotenv

load_dotenv()

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from taskwhisper.config import Settings
from taskwhisper.errors import TaskWhisperError
from taskwhisper.services.lifecycle import ReminderEngine
from taskwhisper.services.notify import build_channels
from taskwhisper.store import ReminderStore

app = typer.Typer(help="TaskWhisper: voice memos to scheduled reminders")
console = Console()


@app.callback()
def main(
    log_level: str = typer.Option("INFO", help="Logging level"),
) -> None:
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """Start the TaskWhisper API server."""
    import uvicorn

    uvicorn.run("taskwhisper.web:create_app", host=host, port=port, reload=reload, factory=True)


@app.command("init-db")
def init_db() -> None:
    """Create the reminder database if it does not exist."""
    settings = Settings.from_env()
    ReminderStore(settings.db_path).init()
    console.print(f"[green]Database ready at {settings.db_path}[/green]")


@app.command("send-due")
def send_due() -> None:
    """Run one delivery cycle: due reminders, then follow-ups. Meant for cron."""
    settings = Settings.from_env()
    store = ReminderStore(settings.db_path)
    store.init()
    engine = ReminderEngine(store, build_channels(settings), settings)

    try:
        report = asyncio.run(engine.process_due())
    except TaskWhisperError as exc:
        console.print(f"[red]{exc.message}[/red]")
        raise typer.Exit(code=1)

    if not report.results:
        console.print("[green]Nothing due.[/green]")
        return

    table = Table(title=f"Processed {report.processed} reminders")
    table.add_column("Reminder", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Status")
    table.add_column("Error", style="dim")
    for result in report.results:
        status = "[green]sent[/green]" if result.ok else "[red]failed[/red]"
        table.add_row(result.id, result.kind, status, result.error or "")
    console.print(table)


@app.command()
def reminders(email: str = typer.Option(..., help="Recipient address")) -> None:
    """Show the reminders scheduled for an address."""
    settings = Settings.from_env()
    store = ReminderStore(settings.db_path)
    store.init()
    rows = store.list_for_email(email)

    if not rows:
        console.print(f"[green]No reminders for {email}.[/green]")
        return

    table = Table(title=f"Reminders for {email}")
    table.add_column("Scheduled For", style="yellow")
    table.add_column("Tasks", style="cyan")
    table.add_column("Channels", style="magenta")
    table.add_column("State")
    table.add_column("Follow-ups", justify="right")
    for r in rows:
        table.add_row(
            r.scheduled_for.strftime("%Y-%m-%d %H:%M UTC"),
            "\n".join(t.description for t in r.tasks) or "—",
            ", ".join(sorted(c.value for c in r.notification_methods)),
            r.state.value,
            str(r.followup_count),
        )
    console.print(table)
