"""I.R.D. proxy CLI: entry-point for local use.

Usage:
    python cli/main.py --help

Commands:
    scrape    → run one extraction and print the JSON envelope
    serve     → run the HTTP API with uvicorn
    docs      → print the API documentation descriptor
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from ird_proxy.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
import json

import typer

from ird_proxy.config import settings
from ird_proxy.logging_config import configure_logging

app = typer.Typer(
    name="ird-proxy",
    help="I.R.D. proxy CLI.",
    no_args_is_help=True,
)


def _dump(payload: dict) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    url: str = typer.Option(..., help="URL on the allowed domain to summarise."),
    summary: bool = typer.Option(False, "--summary", help="Print a short summary instead of JSON."),
) -> None:
    """Fetch and summarise one page, printing the same envelope the API returns."""
    from ird_proxy.service import ProxyService

    configure_logging(settings.log_level, stream=sys.stderr)
    service = ProxyService.from_settings(settings)
    outcome = asyncio.run(service.handle(url))
    payload = outcome.to_payload()

    if not outcome.success:
        typer.echo(_dump(payload), err=True)
        raise typer.Exit(1)

    if summary:
        data = payload["data"]
        typer.echo(f"[scrape] URL    : {payload['url']}")
        typer.echo(f"[scrape] Title  : {data['metadata']['title']}")
        typer.echo(f"[scrape] Type   : {data['metadata']['page_type']}")
        typer.echo(f"[scrape] Method : {data['metadata']['extraction_method']}")
        typer.echo(f"[scrape] Links  : {data['statistics']['links']}")
        typer.echo(f"[scrape] Tables : {data['statistics']['tables']}")
        return
    typer.echo(_dump(payload))


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind."),
    port: int = typer.Option(8000, help="Port to listen on."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    typer.echo(f"[serve] I.R.D. proxy for {settings.allowed_domain} on http://{host}:{port}")
    uvicorn.run("ird_proxy.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Documentation
# ---------------------------------------------------------------------------
@app.command("docs")
def docs(
    base_url: str = typer.Option("", help="Public base URL to show in examples."),
) -> None:
    """Print the API documentation descriptor."""
    from ird_proxy.api.routers.docs import build_documentation

    typer.echo(_dump(build_documentation(settings.allowed_domain, base_url.rstrip("/"))))


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
