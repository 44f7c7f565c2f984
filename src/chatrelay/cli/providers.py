"""Provider factory functions for CLI.

Centralizes creation of the gateway client, stores and chat service from
environment settings. Hides configuration details from command
implementations.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import typer
from rich.console import Console

from ..llm import LLMProvider, create_llm_provider
from ..memory import HistoryStore, create_history_store
from ..orchestrator import ChatService
from ..quota import QuotaGate, QuotaStore, RateLimiter, create_quota_store
from ..settings import Settings
from ..tools import create_default_registry, create_search_registry

_console = Console()


def get_settings(console: Console | None = None) -> Settings:
    """Read settings from the environment, exiting on invalid values."""
    con = console or _console
    try:
        return Settings.from_env()
    except ValueError as e:
        con.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


def get_llm(settings: Settings, console: Console | None = None) -> LLMProvider:
    """Create the gateway client.

    Raises:
        typer.Exit: If AI_API_KEY is not set
    """
    con = console or _console
    gateway = settings.gateway
    if not gateway.api_key:
        con.print("[red]Error: AI_API_KEY not set in environment[/red]")
        raise typer.Exit(code=1)

    try:
        return create_llm_provider(
            gateway.provider,
            api_key=gateway.api_key,
            model=gateway.model,
            base_url=gateway.base_url,
            timeout=gateway.timeout,
        )
    except ValueError as e:
        con.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


def get_history(settings: Settings) -> HistoryStore:
    storage = settings.storage
    if storage.backend == "sqlite":
        return create_history_store("sqlite", path=storage.path)
    return create_history_store(storage.backend)


def get_quota_store(settings: Settings) -> QuotaStore:
    storage = settings.storage
    if storage.backend == "sqlite":
        return create_quota_store("sqlite", path=storage.path)
    return create_quota_store(storage.backend)


@dataclass
class Runtime:
    """Everything a command needs, connected."""

    settings: Settings
    history: HistoryStore
    quota: QuotaStore
    service: ChatService | None = None


@asynccontextmanager
async def open_runtime(
    settings: Settings,
    with_service: bool = False,
    console: Console | None = None
) -> AsyncIterator[Runtime]:
    """Connect the stores (and the chat service) for one command.

    Args:
        settings: Settings bundle
        with_service: Also create the gateway client and ChatService
        console: Optional Rich console for output
    """
    history = get_history(settings)
    quota = get_quota_store(settings)
    llm = get_llm(settings, console) if with_service else None

    await history.connect()
    await quota.connect()
    try:
        runtime = Runtime(settings=settings, history=history, quota=quota)
        if llm is not None:
            limits = settings.limits
            runtime.service = ChatService(
                provider=llm,
                history=history,
                tools=create_default_registry(timeout=limits.tool_timeout),
                quota=QuotaGate(quota, policy=limits.quota_policy),
                settings=settings,
                rate_limiter=RateLimiter(limits.requests_per_minute),
                search_tools=create_search_registry(timeout=limits.tool_timeout),
            )
        yield runtime
    finally:
        await history.disconnect()
        await quota.disconnect()
        if llm is not None:
            await llm.close()
