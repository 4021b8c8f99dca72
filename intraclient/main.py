"""Main entry point for the intraclient command line.

Sets up the Typer CLI application, builds the client from the layered
configuration (Composition Root) and renders results with rich.
"""

import asyncio
import logging
from typing import Any, Coroutine, Dict, List, Optional

import typer
from typing_extensions import Annotated

from intraclient.core.client import IntraClient
from intraclient.domain.errors import IntraClientError
from intraclient.infrastructure.cli.display import ConsoleDisplay
from intraclient.infrastructure.config.settings import (
    build_client_config, get_client_credentials, get_config, load_configuration,
)
from intraclient.infrastructure.monitoring.logger_setup import setup_logging
from intraclient.infrastructure.monitoring.request_log import format_payload

logger = logging.getLogger(__name__)

display = ConsoleDisplay()

# --- Client Construction ---

def create_client() -> IntraClient:
    """Creates a client from INTRA_* environment/.env/YAML configuration.

    Raises:
        ValueError: If the client id or secret is not configured.
    """
    load_configuration()
    client_id, client_secret = get_client_credentials()
    missing = [name for name, value in (("INTRA_CLIENT_ID", client_id), ("INTRA_CLIENT_SECRET", client_secret)) if not value]
    if missing:
        raise ValueError(f"Missing configuration: {', '.join(missing)}")
    return IntraClient(client_id, client_secret, build_client_config())

def parse_query_options(values: Optional[List[str]]) -> Dict[str, Any]:
    """Parses repeated `key=value` options; a repeated key collects a list."""
    query: Dict[str, Any] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{item}'", param_hint="--query")
        if key in query:
            existing = query[key]
            query[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            query[key] = value
    return query

# --- Helper for Running Async Commands ---

def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Runs a coroutine, turning client errors into a non-zero exit."""
    try:
        return asyncio.run(coro)
    except IntraClientError as e:
        logger.debug(f"Command failed: {e!r}")
        details = format_payload(e.data) if e.data else None
        display.display_error(str(e), details=details)
        raise typer.Exit(code=1)
    except ValueError as e:
        display.display_error(str(e))
        raise typer.Exit(code=1)

# --- Typer App Definition ---
app = typer.Typer(
    name="intra",
    help="Authenticated, rate limited client for the 42 Intra API.",
    add_completion=False,
)

QueryOption = Annotated[
    Optional[List[str]],
    typer.Option("--query", "-q", help="Query parameter as key=value (repeatable, e.g. 'filter[login]=norminet').")
]
TokenOption = Annotated[
    Optional[str],
    typer.Option("--token", help="Use this access token instead of the client-credentials one.")
]

@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Configure logging before any command runs."""
    load_configuration()
    level_name = "DEBUG" if verbose else str(get_config('logging.level', 'INFO')).upper()
    setup_logging(
        log_level=getattr(logging, level_name, logging.INFO),
        log_file=get_config('logging.file'),
    )

@app.command()
def get(
    endpoint: Annotated[str, typer.Argument(help="Endpoint path (relative to the base URL) or absolute URL.")],
    query: QueryOption = None,
    token: TokenOption = None,
):
    """GET a single resource or page."""
    params = parse_query_options(query)

    async def _run():
        async with create_client() as client:
            return await client.get(endpoint, query=params, token=token)

    display.display_output(run_async(_run()))

@app.command(name="get-all")
def get_all(
    endpoint: Annotated[str, typer.Argument(help="Collection endpoint path or URL.")],
    per_page: Annotated[int, typer.Option("--per-page", min=1, help="Items per page.")] = 100,
    max_pages: Annotated[Optional[int], typer.Option("--max-pages", min=1, help="Stop after this many pages.")] = None,
    query: QueryOption = None,
    token: TokenOption = None,
):
    """GET every page of a collection and print the merged items."""
    params = parse_query_options(query)

    async def _run():
        async with create_client() as client:
            return await client.get_all(endpoint, per_page=per_page, max_pages=max_pages, query=params, token=token)

    items = run_async(_run())
    display.display_output(items)
    if items is not None:
        display.display_info(f"{len(items)} items")
        if items.failed_pages:
            display.display_error(f"Pages {items.failed_pages} failed; the result is partial.")

@app.command(name="oauth-url")
def oauth_url(
    redirect_uri: Annotated[Optional[str], typer.Option("--redirect-uri", help="Overrides the configured redirect URI.")] = None,
    state: Annotated[Optional[str], typer.Option("--state", help="State value (random when omitted).")] = None,
):
    """Print the authorization URL for the authorization-code flow."""
    async def _run():
        async with create_client() as client:
            return client.get_oauth_url(redirect_uri=redirect_uri, state=state)

    result = run_async(_run())
    display.display_output({"url": result.url, "state": result.state})

@app.command(name="exchange-code")
def exchange_code(
    code: Annotated[str, typer.Argument(help="Authorization code received on the redirect URI.")],
    redirect_uri: Annotated[Optional[str], typer.Option("--redirect-uri", help="Redirect URI used for the authorization.")] = None,
):
    """Exchange an authorization code for a user token."""
    async def _run():
        async with create_client() as client:
            return await client.exchange_oauth_code(code, redirect_uri)

    display.display_output(run_async(_run()))

@app.command(name="token-info")
def token_info(token: TokenOption = None):
    """Describe the access token in use."""
    async def _run():
        async with create_client() as client:
            return await client.token_infos(token=token)

    display.display_output(run_async(_run()))

# --- Main Execution Guard ---

def cli_entry_point():
    """Function called by the `intra` console script."""
    app()

if __name__ == "__main__":
    cli_entry_point()
