"""Depot CLI - Main entry point."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .api import ApiClient, ApiError, DepotAPI, NotAuthenticatedError
from .auth import LoginError, SessionController, TokenStore
from .calculations import margin_percent, stock_summary
from .config import DepotSettings, get_settings

app = typer.Typer(
    name="depot",
    help="Depot management - sign in and inspect your tenant's stock",
    no_args_is_help=True,
)
console = Console()

# Sub-command groups
auth_app = typer.Typer(help="Authentication commands")
stock_app = typer.Typer(help="Stock and product commands")

app.add_typer(auth_app, name="auth")
app.add_typer(stock_app, name="stock")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """Configure logging for every command."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _make_api(settings: DepotSettings) -> ApiClient:
    return ApiClient(settings, TokenStore.from_settings(settings))


@asynccontextmanager
async def _session() -> AsyncIterator[SessionController]:
    """Open a client, restore the stored session, close on exit."""
    settings = get_settings()
    async with _make_api(settings) as api:
        controller = SessionController(api)
        await controller.hydrate()
        try:
            yield controller
        finally:
            controller.close()


def _require_user(controller: SessionController) -> None:
    if not controller.is_authenticated:
        console.print("[red]Not signed in.[/red] Run [bold]depot auth login[/bold] first.")
        raise typer.Exit(1)


# ============================================================================
# Auth Commands
# ============================================================================


@auth_app.command("login")
def auth_login(
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, help="Account password"
    ),
):
    """Sign in and store the access token."""

    async def _login():
        async with _session() as controller:
            return await controller.login(email, password)

    try:
        user = asyncio.run(_login())
    except LoginError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(
        Panel(
            f"[green]Signed in as {user.name}[/green]\n\n"
            f"Tenant: {user.tenant_name}\n"
            f"Role: {user.role.value}",
            title="Authentication",
        )
    )


@auth_app.command("logout")
def auth_logout():
    """Sign out and remove the stored token."""

    async def _logout():
        async with _session() as controller:
            await controller.logout()

    asyncio.run(_logout())
    console.print("[green]Signed out.[/green]")


@auth_app.command("whoami")
def auth_whoami(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the signed-in user."""

    async def _whoami():
        async with _session() as controller:
            return controller.user

    user = asyncio.run(_whoami())
    if user is None:
        console.print("[yellow]Not signed in.[/yellow]")
        raise typer.Exit(1)

    if json_output:
        console.print_json(json.dumps(user.to_dict()))
        return

    table = Table(title="Signed-in User")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Name", user.name)
    table.add_row("Email", user.email)
    table.add_row("Phone", user.phone)
    table.add_row("Tenant", f"{user.tenant_name} ({user.tenant_id})")
    table.add_row("Role", user.role.value)
    console.print(table)


@auth_app.command("status")
def auth_status():
    """Show client settings and whether a token is stored."""
    settings = get_settings()
    store = TokenStore.from_settings(settings)
    token = asyncio.run(store.get_token())

    table = Table(title="Depot Authentication Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Status", style="green")

    table.add_row("API URL", settings.base_url)
    table.add_row("Timeout", f"{settings.timeout_seconds:g}s")
    table.add_row("Storage", str(settings.storage_path))
    table.add_row("Host bridge", "Installed" if store.uses_host_bridge else "Not installed")
    table.add_row("Token", "Stored" if token else "[red]Not stored[/red]")

    console.print(table)


# ============================================================================
# Stock Commands
# ============================================================================


@stock_app.command("list")
def stock_list(
    low: bool = typer.Option(False, "--low", help="Only products under their critical threshold"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List the tenant's products with their margins."""

    async def _list():
        async with _session() as controller:
            _require_user(controller)
            return await DepotAPI(controller.api, controller).products(low_stock=low)

    try:
        products = asyncio.run(_list())
    except (ApiError, NotAuthenticatedError) as e:
        console.print(f"[red]{getattr(e, 'server_message', None) or e}[/red]")
        raise typer.Exit(1)

    if json_output:
        console.print_json(json.dumps(products, default=str))
        return

    table = Table(title="Low Stock" if low else "Products")
    table.add_column("Name", style="white")
    table.add_column("Stock", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Purchase", justify="right")
    table.add_column("Margin", justify="right", style="green")

    for product in products or []:
        table.add_row(
            str(product.get("name", "")),
            str(product.get("stock", 0)),
            str(product.get("price", 0)),
            str(product.get("purchasePrice", 0)),
            f"{margin_percent(product.get('price'), product.get('purchasePrice')):.1f}%",
        )
    console.print(table)


@stock_app.command("summary")
def stock_summary_cmd():
    """Show stock value and potential profit."""

    async def _summary():
        async with _session() as controller:
            _require_user(controller)
            return await DepotAPI(controller.api, controller).products()

    try:
        products = asyncio.run(_summary())
    except (ApiError, NotAuthenticatedError) as e:
        console.print(f"[red]{getattr(e, 'server_message', None) or e}[/red]")
        raise typer.Exit(1)

    summary = stock_summary(products or [])
    table = Table(title="Stock Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Products", str(summary.total_products))
    table.add_row("Units in stock", str(summary.total_stock))
    table.add_row("Sales value", f"{summary.total_sales_value:,.2f}")
    table.add_row("Potential profit", f"{summary.total_profit:,.2f}")
    table.add_row("Low stock", str(summary.low_stock_count))
    console.print(table)


# ============================================================================
# Main
# ============================================================================


@app.command()
def version():
    """Show version information."""
    from . import __version__

    console.print(f"Depot Client v{__version__}")


if __name__ == "__main__":
    app()
