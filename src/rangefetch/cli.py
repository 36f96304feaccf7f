"""CLI implementation for rangefetch."""

import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import typer

from . import download, download_sync
from .core.config import DEFAULT_WORKERS, FetchConfig
from .core.model import DownloadResult, IncompleteDownloadError, RangeFetchError

app = typer.Typer(add_completion=False, help="Download a file over HTTP in parallel byte ranges.")

DEFAULT_OUTPUT = "download.bin"


def default_output(url: str) -> Path:
    """Last path segment of the URL, or download.bin."""
    name = unquote(urlparse(url).path).rsplit("/", 1)[-1]
    return Path(name or DEFAULT_OUTPUT)


def result_asdict(res: DownloadResult) -> dict:
    """Return a JSON-serialisable dict for a finished download."""
    return {
        "success": True,
        "destination": res.destination,
        "mode": res.mode,
        "expected_size": res.expected_size,
        "actual_size": res.actual_size,
        "size_matches": res.size_matches,
        "elapsed": round(res.elapsed, 3),
        "throughput": round(res.throughput, 1),
        "chunks": len(res.outcomes),
    }


def _report(res: DownloadResult) -> None:
    typer.echo(f"Download complete. Saved to: {res.destination}")
    typer.echo(f"Mode: {res.mode} ({len(res.outcomes)} request(s))")
    typer.echo(f"File size: {res.actual_size} bytes")
    if res.expected_size is None:
        typer.echo("Expected size unknown; size not verified.")
    elif res.size_matches:
        typer.echo("File size matches the expected value.")
    else:
        typer.echo(f"Warning: downloaded size ({res.actual_size}) differs "
                   f"from expected ({res.expected_size})")
    typer.echo(f"Elapsed: {res.elapsed:.2f}s")
    typer.echo(f"Average speed: {res.throughput / 1024 / 1024:.2f} MB/s")


@app.command()
def main(
    url: str = typer.Argument(..., help="HTTP(S) URL of the resource"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Write to PATH instead of the URL's file name"),
    size: Optional[int] = typer.Option(None, "--size", min=0, help="Expected size in bytes, used when the server sends no Content-Length"),
    workers: int = typer.Option(DEFAULT_WORKERS, "--workers", "-w", min=1, help="Number of parallel range requests"),
    referer: Optional[str] = typer.Option(None, "--referer", help="Referer header to send (default: the URL's origin)"),
    user_agent: Optional[str] = typer.Option(None, "--user-agent", help="Override the User-Agent header"),
    timeout: Optional[float] = typer.Option(None, "--timeout", min=1, help="Per-chunk read timeout in seconds"),
    use_async: bool = typer.Option(False, "--async", help="Use asyncio/httpx instead of threads/requests"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Log progress to stderr"),
):
    """Fetch URL into a pre-sized local file using concurrent range requests."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
                        stream=sys.stderr)

    parsed_url = urlparse(url)
    if parsed_url.scheme not in ("http", "https") or not parsed_url.netloc:
        typer.echo(f"Not an HTTP(S) URL: {url}", err=True)
        raise typer.Exit(code=1)

    config = FetchConfig()
    overrides = {}
    if referer:
        overrides["referer"] = referer
    if user_agent:
        overrides["user_agent"] = user_agent
    if timeout:
        overrides["chunk_timeout"] = timeout
    if overrides:
        config = dataclasses.replace(config, **overrides)

    destination = output or default_output(url)
    if not as_json:
        typer.echo("Starting download...")

    try:
        if use_async:
            res = asyncio.run(download(url, destination, expected_size=size,
                                       workers=workers, config=config))
        else:
            res = download_sync(url, destination, expected_size=size,
                                workers=workers, config=config)
    except IncompleteDownloadError as e:
        for outcome in e.failed:
            typer.echo(f"Chunk {outcome.index} [{outcome.interval.start}-{outcome.interval.end}] "
                       f"failed: {outcome.error}", err=True)
        typer.echo(f"Download incomplete: {len(e.failed)} of {len(e.outcomes)} chunks failed", err=True)
        raise typer.Exit(code=1)
    except RangeFetchError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(result_asdict(res)))
    else:
        _report(res)


if __name__ == "__main__":
    app()
