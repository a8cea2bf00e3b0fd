#!/usr/bin/env python3
"""
PackScan command-line interface.

Analyze packaging photos from the terminal, browse the materials guide,
issue access tokens for the saved-analysis API and run the HTTP service.
"""

import asyncio
import json
import mimetypes
from contextlib import nullcontext
from pathlib import Path
from typing import Optional

import click
import httpx
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from packscan.core.config import get_settings
from packscan.core.security import create_access_token
from packscan.display import PropertyCategory, render_analysis, render_error
from packscan.guide import MATERIALS_GUIDE, RESIN_CODES
from packscan.schemas import AnalysisResult
from packscan.services.ai_gateway import AIGatewayClient, GatewayError
from packscan.services.analysis import AnalysisError, PackagingAnalyzer
from packscan.services.storage import encode_data_url

# ==============================================================================
# Setup
# ==============================================================================
load_dotenv()
console = Console()


# ==============================================================================
# Helper Functions
# ==============================================================================
def image_to_data_url(path: Path) -> str:
    """Read an image file and encode it as a data URL."""
    mime, _ = mimetypes.guess_type(path.name)
    if not mime or not mime.startswith("image/"):
        raise click.BadParameter(f"{path.name} does not look like an image", param_hint="IMAGE")
    return encode_data_url(path.read_bytes(), mime)


async def analyze_locally(data_url: str, structures: Optional[bool]) -> AnalysisResult:
    settings = get_settings()
    gateway = AIGatewayClient.from_settings(settings)
    analyzer = PackagingAnalyzer(gateway, generate_structure_images=settings.generate_structure_images)
    try:
        return await analyzer.analyze(data_url, generate_structure_images=structures)
    finally:
        await gateway.close()


def analyze_remotely(server: str, data_url: str, structures: Optional[bool], timeout: float) -> AnalysisResult:
    url = f"{server.rstrip('/')}/api/v1/analyze"
    payload = {"imageBase64": data_url}
    if structures is not None:
        payload["generateStructureImages"] = structures
    try:
        response = httpx.post(
            url,
            json=payload,
            timeout=timeout,
        )
    except httpx.HTTPError as e:
        raise click.ClickException(f"Could not reach {url}: {e}")

    try:
        body = response.json()
    except ValueError:
        raise click.ClickException(f"Server answered {response.status_code} with a non-JSON body")
    if not response.is_success:
        message = body.get("error") if isinstance(body, dict) else None
        raise click.ClickException(str(message) if message else f"Server error {response.status_code}")
    return AnalysisResult.model_validate(body)


# ==============================================================================
# Main CLI Group
# ==============================================================================
@click.group()
@click.version_option(package_name="packscan", prog_name="packscan")
def cli():
    """PackScan - identify food packaging materials from photos."""


@cli.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--server', help='Base URL of a running PackScan service (default: analyze in-process).')
@click.option('--no-structures', is_flag=True, help='Skip chemical structure image generation.')
@click.option('--material', 'material_index', type=int, help='Index of the material to drill into.')
@click.option('--property', 'category', type=click.Choice([c.value for c in PropertyCategory]),
              help='Property category to show for the selected material.')
@click.option('--json', 'as_json', is_flag=True, help='Print the raw JSON result.')
def analyze(image, server, no_structures, material_index, category, as_json):
    """Identify the packaging materials in IMAGE."""
    if category and material_index is None:
        raise click.UsageError("--property requires --material")

    data_url = image_to_data_url(image)
    # None leaves the choice to GENERATE_STRUCTURE_IMAGES or the server default
    structures = False if no_structures else None

    spinner = nullcontext() if as_json else console.status("Analyzing packaging...")
    with spinner:
        if server:
            result = analyze_remotely(server, data_url, structures, get_settings().http_timeout)
        else:
            try:
                result = asyncio.run(analyze_locally(data_url, structures))
            except (AnalysisError, GatewayError) as e:
                render_error(console, e.message)
                raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    try:
        render_analysis(console, result, material_index=material_index, category=category)
    except IndexError as e:
        raise click.BadParameter(str(e), param_hint="--material")


@cli.command()
@click.option('--resin-codes', is_flag=True, help='Show resin identification codes instead.')
def guide(resin_codes):
    """Show the packaging materials guide."""
    if resin_codes:
        table = Table(title="Resin Identification Codes")
        table.add_column("Code", justify="right", style="bold")
        table.add_column("Resin")
        table.add_column("Name")
        table.add_column("Examples", style="dim")
        for code in sorted(RESIN_CODES):
            rc = RESIN_CODES[code]
            table.add_row(str(rc.code), rc.abbreviation, rc.name, rc.examples)
        console.print(table)
        return

    table = Table(title="Packaging Materials Guide")
    table.add_column("Material", style="bold")
    table.add_column("Recyclable")
    table.add_column("Biodegradable")
    table.add_column("About")
    table.add_column("Tips", style="dim")
    for entry in MATERIALS_GUIDE:
        table.add_row(
            entry.name,
            "yes" if entry.recyclable else "no",
            "yes" if entry.biodegradable else "no",
            entry.description,
            entry.tips,
        )
    console.print(table)


@cli.command()
@click.argument("user_id")
@click.option('--expires', 'expires_minutes', type=int, help='Lifetime in minutes (default from settings).')
def token(user_id, expires_minutes):
    """Issue a bearer token for USER_ID."""
    settings = get_settings()
    minutes = expires_minutes or settings.access_token_expire_minutes
    click.echo(create_access_token(user_id, settings.secret_key, minutes))


@cli.command()
@click.option('--host', help='Bind address (default from settings).')
@click.option('--port', type=int, help='Port (default from settings).')
def serve(host, port):
    """Start the PackScan HTTP service."""
    import uvicorn

    settings = get_settings()
    console.print(f"[bold cyan]{settings.app_name}[/bold cyan] v{settings.app_version} starting on "
                  f"http://{host or settings.host}:{port or settings.port}")
    uvicorn.run(
        "packscan.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    cli()
