"""Typer-based operator CLI: run the server, send a message, try a search."""

import os

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from pathlib import Path

_project_root = Path(__file__).resolve().parent.parent.parent
from dotenv import load_dotenv

load_dotenv(_project_root / ".env")
load_dotenv(_project_root / ".env.local")

import asyncio
from typing import Optional

import typer
import uvicorn

from src.config import get_settings
from src.models.search_models import search_result_adapter
from src.services.messaging_protocol import get_messaging_service
from src.services.reply_composer import ReplyComposer
from src.services.scheduler import TaskScheduler
from src.services.search_service import SearchError, get_search_backend

app = typer.Typer(help="Messenger painting bot")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Interface to bind"),
    port: Optional[int] = typer.Option(None, help="Port (default: configured port)"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the webhook server."""
    settings = get_settings()
    uvicorn.run(
        "src.main:create_app",
        factory=True,
        host=host,
        port=port or settings.port,
        reload=reload,
    )


@app.command()
def send(
    recipient_id: str = typer.Argument(..., help="Page-scoped user id (PSID)"),
    text: str = typer.Argument(..., help="Message text"),
):
    """Send one text message through the Send API (honours mock mode)."""
    settings = get_settings()
    messaging = get_messaging_service(settings)
    asyncio.run(messaging.send_text(recipient_id, text))
    mode = "logged (mock mode)" if settings.messenger_mock_mode else "sent"
    typer.echo(f"Message to {recipient_id} {mode}.")


@app.command()
def search(query: str = typer.Argument(..., help="Text as a user would type it")):
    """Classify QUERY like an incoming message and print the search result."""
    settings = get_settings()
    composer = ReplyComposer(
        messaging=get_messaging_service(settings),
        search=get_search_backend(settings),
        scheduler=TaskScheduler(),
    )
    search_name, search_call = composer.choose_search(query.strip().lower())
    typer.echo(f"Search: {search_name}")

    try:
        result = asyncio.run(search_call())
    except SearchError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(search_result_adapter.dump_json(result, indent=2).decode())


if __name__ == "__main__":
    app()
