"""
Actwright - CLI Entry Point.

Configuration Priority:
    1. CLI arguments (--model, --api-url, etc.)
    2. Environment variables (ACTWRIGHT__LLM__MODEL, etc.)
    3. Config file (actwright.yaml)

Usage:
    actwright act https://example.com "Click the login button"
    actwright observe https://example.com "Find the search box"
    actwright extract https://shop.example "Get the price" --field price:string
    actwright cache show
"""

import asyncio
import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

import typer
from playwright.async_api import async_playwright
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from actwright.browsers.playwright_driver import PlaywrightDriver
from actwright.config import Settings, get_settings
from actwright.engine.extraction import KINDS
from actwright.engine.llm.interpreter import LLMInterpreter
from actwright.engine.observation_cache import ObservationCache
from actwright.engine.session import Session
from actwright.exceptions import ActwrightError
from actwright.llm.openai_provider import OpenAIProvider
from actwright.utils.logging import setup_logging

# Create the CLI app
app = typer.Typer(
    name="actwright",
    help="Natural-language browser actions over accessibility snapshots",
    add_completion=False,
)
cache_app = typer.Typer(help="Inspect or clear the persisted observation cache")
app.add_typer(cache_app, name="cache")

console = Console()


def _configure(verbose: bool, model: Optional[str], api_url: Optional[str], visible: bool) -> Settings:
    """Load settings, apply CLI overrides and set up logging."""
    settings = get_settings()
    overrides: Dict[str, Any] = {}
    if model:
        overrides.setdefault("llm", {})["model"] = model
    if api_url:
        overrides.setdefault("llm", {})["base_url"] = api_url
    if visible:
        overrides["browser"] = {"headless": False}
    if overrides:
        settings = settings.merge_with(overrides)

    level = "DEBUG" if verbose or settings.debug else settings.logging.level
    setup_logging(level, settings.logging.file, settings.logging.json_format)
    return settings


@asynccontextmanager
async def _open_session(url: str, settings: Settings) -> AsyncIterator[Session]:
    """Launch a browser, open `url` and yield a Session on it."""
    llm_settings = settings.llm
    provider = OpenAIProvider(
        base_url=llm_settings.base_url,
        model=llm_settings.model,
        api_key=llm_settings.api_key.get_secret_value() if llm_settings.api_key else None,
        timeout=llm_settings.timeout,
    )
    interpreter = LLMInterpreter(
        provider,
        temperature=llm_settings.temperature,
        max_tokens=llm_settings.max_tokens,
    )

    try:
        async with async_playwright() as playwright:
            launcher = getattr(playwright, settings.browser.browser_type)
            browser = await launcher.launch(headless=settings.browser.headless)
            try:
                page = await browser.new_page(viewport={
                    "width": settings.browser.viewport_width,
                    "height": settings.browser.viewport_height,
                })
                await page.goto(url, timeout=settings.browser.timeout_ms)
                driver = PlaywrightDriver(page, poll_interval_ms=settings.executor.actionable_poll_ms)
                session = Session(driver, interpreter, settings=settings)
                yield session
                session.save_cache()
            finally:
                await browser.close()
    finally:
        await provider.close()


def _parse_fields(fields: List[str]) -> Dict[str, str]:
    """`name:kind` options -> extraction shape."""
    shape: Dict[str, str] = {}
    for spec in fields:
        name, sep, kind = spec.partition(":")
        kind = kind.strip() or "string"
        if not name.strip() or (sep and kind.rstrip("?") not in KINDS):
            raise typer.BadParameter(
                f"Invalid field {spec!r}; expected name:kind with kind in {', '.join(KINDS)}"
            )
        shape[name.strip()] = kind
    return shape


def _run(coro: Any) -> Any:
    """Run a coroutine, turning library errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except ActwrightError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def act(
    url: str = typer.Argument(..., help="Page to open"),
    instruction: str = typer.Argument(..., help="Natural language instruction"),
    visible: bool = typer.Option(False, "--visible", "-v", help="Run with visible browser"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="LLM model (default: from config)"),
    api_url: Optional[str] = typer.Option(None, "--api-url", help="LLM API base URL (default: from config)"),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms", help="Execution deadline in milliseconds"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Perform one natural language action on a page.

    Examples:
        actwright act https://example.com "Click the More information link"
        actwright act https://example.com "Scroll to the footer" --visible
    """
    settings = _configure(verbose, model, api_url, visible)

    console.print(Panel.fit(
        f"[bold blue]Actwright[/bold blue]\n"
        f"[dim]URL:[/dim] {url}\n"
        f"[dim]Model:[/dim] {settings.llm.model}\n"
        f"[dim]Instruction:[/dim] {instruction}",
        border_style="blue",
    ))

    async def _act():
        async with _open_session(url, settings) as session:
            return await session.act(instruction, timeout_ms=timeout_ms)

    outcome = _run(_act())

    if outcome.success:
        console.print(f"\n[green]✓ {outcome.proposal}[/green]")
        if outcome.locator:
            console.print(f"  Locator: {outcome.locator.xpath}")
        console.print(f"  From cache: {outcome.from_cache}")
        console.print(f"  Duration: {outcome.duration_ms:.0f}ms")
    else:
        console.print(f"\n[red]✗ {outcome.proposal} failed ({outcome.failure.value})[/red]")
        console.print(f"  Error: {outcome.error}")
        if outcome.needs_reobservation:
            console.print("  [yellow]The page changed; observe again before retrying.[/yellow]")
        raise typer.Exit(1)


@app.command()
def observe(
    url: str = typer.Argument(..., help="Page to open"),
    instruction: str = typer.Argument(..., help="What to look for"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="LLM model (default: from config)"),
    api_url: Optional[str] = typer.Option(None, "--api-url", help="LLM API base URL (default: from config)"),
    as_json: bool = typer.Option(False, "--json", help="Print candidates as JSON"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    List candidate actions for an instruction, best first.
    """
    settings = _configure(verbose, model, api_url, visible=False)

    async def _observe():
        async with _open_session(url, settings) as session:
            return await session.observe(instruction)

    candidates = _run(_observe())

    if as_json:
        console.print_json(json.dumps([c.to_dict() for c in candidates]))
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", width=3)
    table.add_column("Action")
    table.add_column("Locator", style="dim")
    table.add_column("Description")
    for i, candidate in enumerate(candidates, 1):
        table.add_row(
            str(i),
            str(candidate.proposal),
            candidate.locator.xpath if candidate.locator else "-",
            candidate.description,
        )
    console.print(table)


@app.command()
def extract(
    url: str = typer.Argument(..., help="Page to open"),
    instruction: str = typer.Argument(..., help="What to extract"),
    field: List[str] = typer.Option(..., "--field", "-f", help="Field as name:kind (kind defaults to string)"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="LLM model (default: from config)"),
    api_url: Optional[str] = typer.Option(None, "--api-url", help="LLM API base URL (default: from config)"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Extract typed data from a page.

    Examples:
        actwright extract https://shop.example "Get the product" -f title -f price:number
    """
    shape = _parse_fields(field)
    settings = _configure(verbose, model, api_url, visible=False)

    async def _extract():
        async with _open_session(url, settings) as session:
            return await session.extract(instruction, shape)

    data = _run(_extract())
    console.print_json(json.dumps(data))


def _cache_path(path: Optional[Path]) -> Path:
    if path is not None:
        return path
    configured = get_settings().cache.path
    if not configured:
        console.print("[red]No cache path configured.[/red]")
        console.print("Pass --path or set ACTWRIGHT__CACHE__PATH")
        raise typer.Exit(1)
    return Path(configured)


@cache_app.command("show")
def cache_show(
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Cache file (default: from config)"),
):
    """Show the entries of a persisted cache."""
    cache = ObservationCache()
    loaded = cache.load(_cache_path(path))
    if not loaded:
        console.print("[dim]Cache is empty.[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Fingerprint", style="dim")
    table.add_column("Action")
    table.add_column("Locator")
    table.add_column("Created")
    for entry in cache:
        table.add_row(
            entry.fingerprint[:12],
            str(entry.proposal),
            entry.locator.xpath if entry.locator else "-",
            entry.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)


@cache_app.command("clear")
def cache_clear(
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Cache file (default: from config)"),
):
    """Remove every entry from a persisted cache."""
    target = _cache_path(path)
    cache = ObservationCache()
    removed = cache.load(target)
    cache.clear()
    cache.save(target)
    console.print(f"[green]✓ Removed {removed} cached action(s)[/green]")


if __name__ == "__main__":
    app()
