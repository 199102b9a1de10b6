#!/usr/bin/env python3
import click
import httpx
import logging
from rich.console import Console
from rich.table import Table

from reading_tracker import config

console = Console()


def _get(path: str, **params):
    response = httpx.get(f"{config.API_BASE_URL}{path}", params=params, timeout=10.0)
    response.raise_for_status()
    return response.json()


def _truncate(text, width: int = 60) -> str:
    text = text or "Untitled"
    return text[:width] + "..." if len(text) > width else text


@click.group()
@click.option('--verbose', is_flag=True, help='Log HTTP requests')
def cli(verbose: bool):
    """Reading Tracker CLI"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@cli.command()
def pulse():
    """Quick stats: top tags, most clicked, most viewed, totals"""
    try:
        _get("/api/ping")
    except httpx.HTTPError as e:
        console.print(f"[red]API server not reachable at {config.API_BASE_URL}:[/red] {e}")
        raise SystemExit(1)

    try:
        tag_stats = _get("/api/analytics/tag-stats")["data"]
        most_clicked = _get("/api/database/most-clicked", limit=5)["data"]
        most_viewed = _get("/api/database/all", limit=5)["data"]
        stats = _get("/api/analytics/dashboard")["data"]
    except httpx.HTTPError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    table = Table(title="Top 10 tags")
    table.add_column("Stories", style="cyan", justify="right")
    table.add_column("Tag", style="magenta")
    for stat in tag_stats[:10]:
        table.add_row(str(stat["story_count"]), stat["tag"])
    console.print(table)

    table = Table(title="Most clicked links")
    table.add_column("Clicks", style="cyan", justify="right")
    table.add_column("Title", style="white")
    for link in most_clicked:
        table.add_row(str(link["click_count"]), _truncate(link["title"]))
    console.print(table)

    table = Table(title="Most surfaced links")
    table.add_column("Impressions", style="cyan", justify="right")
    table.add_column("Title", style="white")
    for link in most_viewed:
        table.add_row(str(link["impression_count"]), _truncate(link["title"]))
    console.print(table)

    console.print(f"Total links: [red]{stats['total_links']}[/red]")
    console.print(f"Total clicks: [red]{stats['total_clicks']}[/red]")
    console.print(f"Viewed links: [red]{stats['viewed_links']}[/red]")
    console.print(f"Untagged links: [red]{stats['untagged_links']}[/red]")
    console.print(f"Unique tags: [yellow]{stats['unique_tags']}[/yellow]")
    console.print(
        f"Click rate: [cyan]{stats['click_rate']}%[/cyan]  "
        f"View rate: [cyan]{stats['view_rate']}%[/cyan]  "
        f"Tag rate: [cyan]{stats['tag_rate']}%[/cyan]"
    )
    for source, count in stats["sources"].items():
        console.print(f"  {source}: {count} links")


@cli.command()
def tags():
    """List every tag in use"""
    try:
        vocabulary = _get("/api/database/tags")["data"]
    except httpx.HTTPError as e:
        console.print(f"[red]Error:[/red] {e}")
        return

    if not vocabulary:
        console.print("[yellow]No tags yet[/yellow]")
        return
    console.print(", ".join(vocabulary))


@cli.command()
@click.argument('query')
def search(query: str):
    """Search links by comma-separated tags"""
    try:
        links = _get("/api/database/search", tags=query)["data"]
    except httpx.HTTPError as e:
        console.print(f"[red]Error:[/red] {e}")
        return

    if not links:
        console.print("[yellow]No links found[/yellow]")
        return

    table = Table(title=f"Links tagged {query}")
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Tags", style="magenta")
    table.add_column("URL", style="blue")
    for link in links:
        table.add_row(
            str(link["id"]),
            _truncate(link["title"], 50),
            ",".join(link["tags"]),
            link["url"][:50] + "..." if len(link["url"]) > 50 else link["url"]
        )
    console.print(table)


if __name__ == '__main__':
    cli()
