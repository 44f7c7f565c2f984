"""Main CLI application using Typer."""
import asyncio
import logging
import signal
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..chat import Attachment, render_content
from ..errors import ChatRelayError
from ..logging_setup import setup_logging
from ..orchestrator import ChatReply, ChatTurnRequest, TurnStream
from .providers import get_llm, get_settings, open_runtime

# Load environment variables
load_dotenv()

app = typer.Typer(
    name="chatrelay",
    help="Streaming chat relay for OpenAI-compatible LLM gateways",
    no_args_is_help=True,
    add_completion=True,
)
quota_app = typer.Typer(help="Inspect and grant per-user quotas", no_args_is_help=True)
app.add_typer(quota_app, name="quota")

console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """Configure logging for every command."""
    setup_logging(logging.DEBUG if verbose else logging.WARNING)


@app.command()
def chat(
    session_id: str = typer.Argument(..., help="Conversation session id (created on first use)"),
    message: str = typer.Argument(..., help="Message to send"),
    user: str = typer.Option("local", "--user", "-u", help="User id"),
    files: list[Path] = typer.Option(
        [],
        "--file",
        "-f",
        help="Attach a file (repeatable)"
    ),
    stream: bool = typer.Option(
        True,
        "--stream/--no-stream",
        help="Stream the reply as it is generated"
    )
):
    """Send one chat turn and print the reply."""
    settings = get_settings(console)

    async def _chat():
        async with open_runtime(settings, with_service=True, console=console) as runtime:
            limits = settings.limits
            await runtime.quota.ensure(user, limits.chat_tokens_per_user, limits.search_tokens_per_user)

            request = ChatTurnRequest(
                session_id=session_id,
                user_id=user,
                text=message,
                attachments=[Attachment.from_path(p) for p in files],
                want_stream=stream,
            )
            result = await runtime.service.process_turn(request)

            if isinstance(result, ChatReply):
                console.print(result.text)
                console.print(f"[dim]tokens: {result.token_cost}[/dim]")
                return

            await _print_stream(result)

    try:
        asyncio.run(_chat())
    except ChatRelayError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


async def _print_stream(turn: TurnStream) -> None:
    """Print fragments as they arrive; Ctrl-C cancels the turn."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, turn.cancel)
    except (NotImplementedError, RuntimeError):
        pass

    try:
        async for fragment in turn:
            console.print(fragment, end="", markup=False, highlight=False)
        console.print()
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
        outcome = await turn.wait()
        if outcome.persistence_error is not None:
            console.print(f"\n[yellow]Warning: {outcome.persistence_error}[/yellow]")

    reply = turn.outcome.reply if turn.outcome else None
    if reply is not None:
        console.print(f"[dim]tokens: {reply.token_cost}[/dim]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    user: str = typer.Option("local", "--user", "-u", help="User id"),
    limit: int = typer.Option(
        10,
        "--limit",
        "-l",
        help="Maximum number of results"
    )
):
    """Ask the model to search for information."""
    settings = get_settings(console)

    async def _search():
        async with open_runtime(settings, with_service=True, console=console) as runtime:
            limits = settings.limits
            await runtime.quota.ensure(user, limits.chat_tokens_per_user, limits.search_tokens_per_user)

            response = await runtime.service.process_search(user, query, limit=limit)
            if not response.results:
                console.print("[yellow]No results found[/yellow]")
                return

            for i, hit in enumerate(response.results, 1):
                console.print(Panel(hit.content, title=f"{i}. {hit.title}", border_style="dim"))
            console.print(f"[dim]tokens: {response.token_cost}[/dim]")

    try:
        asyncio.run(_search())
    except ChatRelayError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def sessions(
    user: str = typer.Option("local", "--user", "-u", help="User id"),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum number of sessions")
):
    """List a user's sessions."""
    settings = get_settings(console)

    async def _sessions():
        async with open_runtime(settings) as runtime:
            found = await runtime.history.list_sessions(user, limit=limit)
            if not found:
                console.print("[yellow]No sessions[/yellow]")
                return

            table = Table(show_header=True, header_style="bold cyan")
            table.add_column("Session", style="cyan")
            table.add_column("Title")
            table.add_column("Updated", style="dim")
            for s in found:
                table.add_row(s.id, s.title, s.updated_at.strftime("%Y-%m-%d %H:%M:%S"))
            console.print(table)

    asyncio.run(_sessions())


@app.command()
def history(
    session_id: str = typer.Argument(..., help="Session id"),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum number of turns"),
    offset: int = typer.Option(0, "--offset", "-o", help="Turns to skip")
):
    """Show the turns of a session."""
    settings = get_settings(console)

    async def _history():
        async with open_runtime(settings) as runtime:
            turns = await runtime.history.list_turns(session_id, limit=limit, offset=offset)
            if not turns:
                console.print("[yellow]No turns[/yellow]")
                return
            for turn in turns:
                style = "yellow" if turn.role.value == "user" else "green"
                console.print(f"[bold {style}]{turn.role.value}[/bold {style}] [dim]{turn.created_at:%H:%M:%S}[/dim]")
                console.print(render_content(turn.content), markup=False)
                console.print()

    asyncio.run(_history())


@app.command()
def models():
    """List the models the gateway advertises."""
    settings = get_settings(console)

    async def _models():
        async with get_llm(settings, console) as llm:
            for model_id in sorted(await llm.list_models()):
                console.print(model_id)

    try:
        asyncio.run(_models())
    except ChatRelayError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


@quota_app.command("show")
def quota_show(user: str = typer.Argument(..., help="User id")):
    """Show remaining chat and search uses."""
    settings = get_settings(console)

    async def _show():
        async with open_runtime(settings) as runtime:
            counter = await runtime.quota.get_counter(user)
            if counter is None:
                console.print(f"[yellow]No quota granted to {user}[/yellow]")
                return
            console.print(f"chat: {counter.chat_remaining}")
            console.print(f"search: {counter.search_remaining}")

    asyncio.run(_show())


@quota_app.command("grant")
def quota_grant(
    user: str = typer.Argument(..., help="User id"),
    chat_uses: int | None = typer.Option(None, "--chat", help="Chat uses (default: CHAT_TOKENS_PER_USER)"),
    search_uses: int | None = typer.Option(None, "--search", help="Search uses (default: SEARCH_TOKENS_PER_USER)")
):
    """Set a user's remaining chat and search uses."""
    settings = get_settings(console)
    chat_count = settings.limits.chat_tokens_per_user if chat_uses is None else chat_uses
    search_count = settings.limits.search_tokens_per_user if search_uses is None else search_uses
    if chat_count < 0 or search_count < 0:
        console.print("[red]Error: quota values must not be negative[/red]")
        raise typer.Exit(code=1)

    async def _grant():
        async with open_runtime(settings) as runtime:
            counter = await runtime.quota.grant(user, chat_count, search_count)
            console.print(
                f"[green]Granted {user}: chat={counter.chat_remaining} "
                f"search={counter.search_remaining}[/green]"
            )

    asyncio.run(_grant())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
