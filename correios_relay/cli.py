"""
Command-line interface for the Correios relay.
Provides commands for running the server and checking the carrier setup.
"""

import asyncio
import click
import orjson
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape
from pathlib import Path

from correios_relay import __version__
from correios_relay.errors import RelayError
from correios_relay.models import TrackingObject

console = Console()


def _text(value) -> str:
    """Carrier fields are relayed untyped; render whatever came as plain text."""
    return "" if value is None else escape(str(value))


@click.group()
@click.version_option(version=__version__, prog_name="Correios Relay")
def cli():
    """Correios Relay - tracking proxy for the frontend"""
    pass


@cli.command()
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    help="Path to configuration file"
)
@click.option("--port", "-p", type=int, help="Override the listen port")
def run(config, port):
    """Run the relay in foreground mode."""
    console.print(Panel.fit(
        f"[bold blue]Correios Relay v{__version__}[/bold blue]\n"
        "Press Ctrl+C to stop",
        title="Starting Relay"
    ))

    from correios_relay.core import run_relay
    run_relay(config, port)


@cli.command()
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    help="Path to configuration file"
)
def status(config):
    """Show relay configuration."""
    console.print(Panel.fit(
        f"[bold]Correios Relay v{__version__}[/bold]",
        title="Status"
    ))

    from correios_relay.config import RelayConfig
    cfg = RelayConfig.from_env(config)

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Correios Username", cfg.correios_username or "[dim]Not set[/dim]")
    table.add_row("Correios Password", "********" if cfg.correios_password else "[dim]Not set[/dim]")
    table.add_row("Auth URL", cfg.auth_url)
    table.add_row("Tracking URL", cfg.tracking_url)
    table.add_row("Tracking Auth", cfg.tracking_auth_scheme)
    table.add_row("Frontend Origin", cfg.frontend_origin)
    table.add_row("Listen", f"{cfg.host}:{cfg.port}")
    table.add_row("Request Timeout", f"{cfg.request_timeout:g}s")
    table.add_row("Log File", cfg.log_file or "[dim]Console only[/dim]")

    console.print(table)

    for error in cfg.validate():
        console.print(f"[yellow]! {error}[/yellow]")


@cli.command()
@click.argument("codes", nargs=-1, required=True)
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    help="Path to configuration file"
)
@click.option("--json", "as_json", is_flag=True, help="Print the raw JSON response")
def track(codes, config, as_json):
    """Look up tracking codes directly against Correios."""
    from correios_relay.config import RelayConfig
    from correios_relay.tracking import CorreiosAPI, TokenManager

    cfg = RelayConfig.from_env(config)

    async def lookup():
        async with CorreiosAPI(cfg) as carrier:
            manager = TokenManager(carrier)
            credential = await manager.ensure_valid_token()
            return await carrier.track(list(codes), credential)

    try:
        objects = asyncio.run(lookup())
    except RelayError as e:
        console.print(f"[red]✗ {type(e).__name__}: {escape(str(e))}[/red]")
        raise SystemExit(1)

    if as_json:
        click.echo(orjson.dumps(objects, option=orjson.OPT_INDENT_2).decode())
        return

    table = Table(title="Tracking")
    table.add_column("Code", style="cyan", no_wrap=True)
    table.add_column("Latest Event", style="green")
    table.add_column("Location")
    table.add_column("Date")

    for obj in (TrackingObject.model_validate(raw) for raw in objects):
        code = _text(obj.codigo) or "?"
        event = obj.latest_event
        if event is None:
            table.add_row(code, _text(obj.mensagem) or "[dim]No events[/dim]", "", "")
            continue
        location = " / ".join(part for part in (_text(event.municipio), _text(event.uf)) if part)
        table.add_row(
            code,
            _text(event.descricao_evento) or _text(event.status_evento),
            location,
            _text(event.data_criacao),
        )

    console.print(table)


@cli.command()
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    help="Path to configuration file"
)
def test_auth(config):
    """Request a token from Correios."""
    console.print("[bold]Testing Correios authentication...[/bold]")

    from correios_relay.config import RelayConfig
    from correios_relay.tracking import CorreiosAPI

    cfg = RelayConfig.from_env(config)

    async def authenticate():
        async with CorreiosAPI(cfg) as carrier:
            return await carrier.authenticate()

    try:
        credential = asyncio.run(authenticate())
    except RelayError as e:
        console.print(f"[red]✗ Authentication failed: {escape(str(e))}[/red]")
        raise SystemExit(1)

    console.print("[green]✓ Authentication successful![/green]")
    console.print(f"Token expires at {credential.expires_at.isoformat()}")


@cli.command()
@click.argument("config_path", type=click.Path())
def init(config_path):
    """Initialize configuration file."""
    config_path = Path(config_path)

    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    template = '''# Correios Relay Configuration

# Correios Credentials
CORREIOS_USERNAME=
CORREIOS_PASSWORD=

# Correios Endpoints
CORREIOS_AUTH_URL=https://api.correios.com.br/token/v1/autentica
CORREIOS_TRACKING_URL=https://apps3.correios.com.br/areletronico/v1/ars/eventos
CORREIOS_TRACKING_AUTH=basic

# HTTP Server
FRONTEND_ORIGIN=https://cade.ed-henrique.com
RELAY_HOST=0.0.0.0
RELAY_PORT=8080
REQUEST_TIMEOUT=10

# Logging
LOG_LEVEL=INFO
LOG_FILE=
'''

    config_path.write_text(template, encoding='utf-8')
    console.print(f"[green]✓ Configuration file created: {config_path}[/green]")
    console.print("\nEdit this file with your settings, then run:")
    console.print(f"  correios-relay run --config {config_path}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
