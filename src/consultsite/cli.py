"""CLI interface for consultsite."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from consultsite.config import SiteConfig, load_config, merge_cli_overrides
from consultsite.contact.store import JsonSubmissionStore
from consultsite.content.listing import ALL_FACET, ListingResult, apply
from consultsite.content.models import Article, PortfolioEntry
from consultsite.factory import build_repository
from consultsite.fetch import Failed, FetchState, Ready

app = typer.Typer(
    name="consultsite",
    help="Browse site content and contact submissions, or run the API server.",
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to a .consultsite.toml file."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from consultsite import __version__

        console.print(f"consultsite {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Log debug output.")
    ] = False,
) -> None:
    """consultsite - content pipeline and contact intake."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(config_path: Path | None, **overrides: object) -> SiteConfig:
    return merge_cli_overrides(load_config(config_path), **overrides)


def _ready_payload(state: FetchState) -> list:
    """Unwrap a ready state or exit with the failure printed."""
    if isinstance(state, Failed):
        console.print(f"[red]Could not load content:[/red] {state.cause}")
        raise typer.Exit(1)
    if not isinstance(state, Ready):
        console.print("[red]Content did not finish loading.[/red]")
        raise typer.Exit(1)
    return state.payload


def _print_facets(result: ListingResult, selected: str) -> None:
    rendered = [f"[bold]{f}[/bold]" if f == selected else f for f in result.facets]
    console.print("Facets: " + " | ".join(rendered))


def _print_listing(
    title: str, result: ListingResult, columns: list[str], rows: list[list[str]]
) -> None:
    if not result.visible:
        console.print("[yellow]No matching content.[/yellow] Try adjusting your filters.")
        return
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*row)
    console.print(table)


def _article_row(article: Article, featured: bool) -> list[str]:
    return [
        ("★ " if featured else "") + article.title,
        article.published_at.date().isoformat(),
        ", ".join(article.facets),
        ", ".join(article.tags),
    ]


def _portfolio_row(entry: PortfolioEntry, featured: bool) -> list[str]:
    return [
        ("★ " if featured else "") + entry.title,
        entry.client,
        entry.project_type,
        ", ".join(entry.technologies),
    ]


@app.command()
def articles(
    category: Annotated[str, typer.Option("--category", help="Category facet.")] = ALL_FACET,
    search: Annotated[str, typer.Option("--search", "-s", help="Search text.")] = "",
    config_path: ConfigOption = None,
) -> None:
    """List blog articles, filtered by category and search text."""
    repository = build_repository(_load(config_path))
    documents = _ready_payload(asyncio.run(repository.articles()))
    result = apply(documents, category, search)

    _print_facets(result, category)
    ordered = [(a, True) for a in result.featured] + [(a, False) for a in result.regular]
    _print_listing(
        "Articles",
        result,
        ["Title", "Published", "Categories", "Tags"],
        [_article_row(a, featured) for a, featured in ordered],
    )


@app.command()
def portfolio(
    project_type: Annotated[str, typer.Option("--type", help="Project type facet.")] = ALL_FACET,
    search: Annotated[str, typer.Option("--search", "-s", help="Search text.")] = "",
    config_path: ConfigOption = None,
) -> None:
    """List portfolio projects, filtered by project type and search text."""
    repository = build_repository(_load(config_path))
    documents = _ready_payload(asyncio.run(repository.portfolio()))
    result = apply(documents, project_type, search)

    _print_facets(result, project_type)
    ordered = [(e, True) for e in result.featured] + [(e, False) for e in result.regular]
    _print_listing(
        "Portfolio",
        result,
        ["Project", "Client", "Type", "Technologies"],
        [_portfolio_row(e, featured) for e, featured in ordered],
    )


@app.command()
def submissions(
    data_dir: Annotated[
        Optional[Path],
        typer.Option("--data-dir", "-d", help="Directory holding the JSON submission store."),
    ] = None,
    config_path: ConfigOption = None,
) -> None:
    """Show contact submissions saved by the JSON store."""
    config = _load(config_path, data_dir=str(data_dir) if data_dir else None)
    store = JsonSubmissionStore(Path(config.contact.directory))
    records = store.list()
    if not records:
        console.print("No submissions yet.")
        return

    table = Table(title=f"Contact submissions ({len(records)})")
    for column in ("ID", "Submitted", "Name", "Email", "Business", "Message"):
        table.add_column(column)
    for s in records:
        message = s.message if len(s.message) <= 60 else s.message[:57] + "..."
        table.add_row(
            str(s.id),
            s.submitted_at.strftime("%Y-%m-%d %H:%M"),
            s.name,
            s.email,
            s.business or "",
            message,
        )
    console.print(table)


@app.command()
def ask(message: Annotated[str, typer.Argument(help="Message for the chat assistant.")]) -> None:
    """Show the chat widget's reply to a message."""
    from consultsite.assistant import reply

    console.print(reply(message))


@app.command()
def serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address.")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Bind port.")] = None,
    store: Annotated[
        Optional[str], typer.Option("--store", help="Submission store: memory or json.")
    ] = None,
    config_path: ConfigOption = None,
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from consultsite.api.server import create_app

    config = _load(config_path, host=host, port=port, store=store)
    console.print(f"Serving consultsite API on http://{config.api.host}:{config.api.port}")
    uvicorn.run(create_app(config), host=config.api.host, port=config.api.port)


if __name__ == "__main__":
    app()
