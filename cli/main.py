"""Upwork scraper CLI.

Usage:
    python cli/main.py --help
    python cli/main.py scrape --url https://www.upwork.com/jobs/~0123456789
    python cli/main.py serve
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from backend.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
import json
import logging

import typer

from backend.scraper import ScrapeError, scrape_job_url

app = typer.Typer(
    name="upwork-scraper",
    help="Upwork job scraper CLI.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Upwork job scraper CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Scrape
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    url: str = typer.Option(..., help="Upwork job URL to scrape."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
) -> None:
    """Scrape an Upwork job page and print the extracted details."""
    if not as_json:
        typer.echo(f"[scrape] Fetching {url!r} …")
    try:
        result = asyncio.run(scrape_job_url(url))
    except ScrapeError as exc:
        typer.echo(f"[scrape] Error ({exc.code.value}): {exc.message}", err=True)
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    typer.echo(f"[scrape] Mode   : {result.mode}")
    typer.echo(f"[scrape] Title  : {result.title}")
    typer.echo(f"[scrape] Budget : {result.budget or '(none)'}")
    typer.echo(f"[scrape] Skills : {result.skills or '(none)'}")
    for warning in result.warnings:
        typer.echo(f"[scrape] Warning: {warning}")
    typer.echo("")
    typer.echo(result.description)


# ---------------------------------------------------------------------------
# HTTP server
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(3000, help="Bind port."),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("backend.api.app:app", host=host, port=port)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
