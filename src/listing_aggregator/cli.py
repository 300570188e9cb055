"""CLI interface for the listing aggregator."""

import asyncio
import json
from typing import Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

app = typer.Typer(
    name="listing-aggregator",
    help="Real-estate listing search across Colombian listing sites",
    add_completion=False,
)
console = Console()


def get_config():
    """Load configuration from environment (and a local .env file)."""
    from dotenv import load_dotenv

    from .config import SearchConfig
    from .logging import configure_logging

    load_dotenv()
    config = SearchConfig.from_env()
    configure_logging(config.log_level, json=False)
    return config


def _money(value: int) -> str:
    return f"${value:,}".replace(",", ".") if value else "-"


@app.command()
def providers():
    """List the registered providers and their request budgets."""
    from .schemas.registry import default_registry

    registry = default_registry()
    table = Table(title="Providers")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Mode")
    table.add_column("Req/min")
    table.add_column("Delay (ms)")
    table.add_column("Max pages")

    for schema in registry.resolve():
        budget = schema.performance
        mode = schema.extraction.method.value
        if schema.extraction.can_render and mode == "static":
            mode += " (+rendered)"
        table.add_row(
            schema.id,
            schema.name,
            mode,
            str(budget.requests_per_minute),
            str(budget.delay_between_requests_ms),
            str(budget.max_pages),
        )

    console.print(table)


@app.command()
def search(
    operation: str = typer.Option("rent", "--operation", help="rent or sale"),
    city: Optional[str] = typer.Option(None, "--city", help="City name, e.g. Bogotá"),
    neighborhood: Optional[list[str]] = typer.Option(None, "--neighborhood", "-n", help="Neighborhood (repeatable)"),
    min_rooms: Optional[int] = typer.Option(None, "--min-rooms"),
    max_rooms: Optional[int] = typer.Option(None, "--max-rooms"),
    min_area: Optional[int] = typer.Option(None, "--min-area"),
    max_area: Optional[int] = typer.Option(None, "--max-area"),
    min_stratum: Optional[int] = typer.Option(None, "--min-stratum", help="Estrato 1-6"),
    max_stratum: Optional[int] = typer.Option(None, "--max-stratum"),
    min_price: Optional[int] = typer.Option(None, "--min-price"),
    max_price: Optional[int] = typer.Option(None, "--max-price"),
    allow_admin_overage: bool = typer.Option(
        False, "--allow-admin-overage", help="Compare --max-price against rent without the admin fee"
    ),
    source: Optional[list[str]] = typer.Option(None, "--source", "-s", help="Provider id (repeatable)"),
    page: int = typer.Option(1, "--page", "-p"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Results per page"),
    as_json: bool = typer.Option(False, "--json", help="Print the full response as JSON"),
):
    """Search every provider (or the given ones) and print merged results."""
    from .cache import InMemoryListingCache
    from .errors import InvalidCriteriaError, UnknownProviderError
    from .service import SearchService

    config = get_config()
    payload = {
        "operation": operation,
        "min_rooms": min_rooms,
        "max_rooms": max_rooms,
        "min_area": min_area,
        "max_area": max_area,
        "min_stratum": min_stratum,
        "max_stratum": max_stratum,
        "min_price": min_price,
        "max_price": max_price,
        "allow_admin_overage": allow_admin_overage,
        "location": {"city": city, "neighborhoods": neighborhood or []},
        "sources": source or None,
    }
    service = SearchService(config=config, cache=InMemoryListingCache(ttl_seconds=config.cache_ttl))

    async def run():
        if as_json:
            return await service.search(payload, page=page, limit=limit)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Searching providers...", total=None)
            response = await service.search(payload, page=page, limit=limit)
            progress.update(task, completed=True)
        return response

    try:
        response = asyncio.run(run())
    except InvalidCriteriaError as e:
        console.print(f"[red]Invalid criteria: {e}[/red]")
        for err in e.errors:
            console.print(f"  [dim]{'.'.join(str(p) for p in err['loc'])}[/dim]: {err['msg']}")
        raise typer.Exit(2)
    except UnknownProviderError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)

    if as_json:
        typer.echo(json.dumps(response.model_dump(mode="json"), indent=2, ensure_ascii=False))
        return

    _display_response(response)


def _display_response(response):
    table = Table(title=f"Listings ({response.total} total, page {response.page})")
    table.add_column("Title")
    table.add_column("Total price", justify="right")
    table.add_column("m²", justify="right")
    table.add_column("Rooms", justify="right")
    table.add_column("Neighborhood")
    table.add_column("Source", style="dim")

    for listing in response.listings:
        table.add_row(
            listing.title[:60],
            _money(listing.total_price),
            str(listing.area or "-"),
            str(listing.rooms or "-"),
            listing.location.neighborhood or "-",
            listing.provider_id,
        )
    console.print(table)

    if response.providers:
        provider_table = Table(title="Providers")
        provider_table.add_column("Provider")
        provider_table.add_column("Status")
        provider_table.add_column("Kept")
        provider_table.add_column("Pages")
        provider_table.add_column("Time (ms)")
        for provider_id, run in response.providers.items():
            color = "green" if run.status.value == "ok" else "red"
            provider_table.add_row(
                provider_id,
                f"[{color}]{run.status.value}[/{color}]",
                str(run.kept),
                str(run.pages_fetched),
                str(run.elapsed_ms),
            )
        console.print(provider_table)

    summary = response.summary
    console.print(
        f"Average price: {_money(summary.average_price)}  "
        f"Average area: {summary.average_area or '-'} m²  "
        f"Elapsed: {response.execution_time_ms} ms"
        + ("  [dim](cached)[/dim]" if response.from_cache else "")
    )


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
