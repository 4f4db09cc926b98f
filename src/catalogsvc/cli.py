"""CLI interface for stock import and basket pricing."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import TypeAdapter
from rich.console import Console
from rich.table import Table

from catalogsvc import __version__
from catalogsvc.config import CatalogConfig, configure_logging, get_config
from catalogsvc.dependencies import build_repository
from catalogsvc.discount import DiscountEngine
from catalogsvc.exceptions import ContractError
from catalogsvc.mapping import product_to_out
from catalogsvc.models import DiscountCalculationRequest, StockImportRow
from catalogsvc.repositories.base import CatalogRepository
from catalogsvc.stock import StockReconciler

app = typer.Typer(
    name="catalogsvc",
    help="""
    [bold]Catalog Service CLI[/bold]

    Reconcile stock import files into the catalog and price baskets.

    [cyan]Examples:[/cyan]
      catalogsvc import-stock rows.json --database-url sqlite:///catalog.db
      catalogsvc discount basket.json --database-url sqlite:///catalog.db
    """,
    no_args_is_help=True,
)

console = Console()
logger = logging.getLogger(__name__)

_stock_rows = TypeAdapter(list[StockImportRow])


def _load_json(path: Path) -> Any:
    with open(path) as f:
        return json.load(f)


def _open_repository(config: CatalogConfig, database_url: Optional[str]) -> CatalogRepository:
    if database_url:
        config = config.model_copy(update={"database_url": database_url})
    return build_repository(config)


def _print_catalog(repository: CatalogRepository) -> None:
    table = Table(title="Catalog")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Price", justify="right")
    table.add_column("Qty", justify="right")
    table.add_column("Categories")
    for product in (product_to_out(p) for p in repository.list_products()):
        table.add_row(
            str(product.id),
            product.name,
            f"{product.price:.2f}",
            str(product.quantity),
            ", ".join(product.category_names),
        )
    console.print(table)


@app.command("import-stock")
def import_stock(
    input_file: Path = typer.Argument(
        ...,
        help="JSON file with a list of stock rows",
        exists=True,
    ),
    database_url: Optional[str] = typer.Option(
        None,
        "--database-url",
        help="Catalog database URL (overrides DATABASE_URL)",
    ),
    show_catalog: bool = typer.Option(
        False,
        "--show-catalog",
        help="Print the catalog after the import",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed processing information",
    ),
):
    """Create or update catalog products from a stock file."""
    config = get_config()
    configure_logging(config, verbose=verbose)

    try:
        rows = _stock_rows.validate_python(_load_json(input_file))
        repository = _open_repository(config, database_url)
        summary = StockReconciler(repository).reconcile(rows)
    except (ValueError, ContractError) as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {str(e)}")
        raise typer.Exit(code=1)

    console.print(f"[bold green]✓[/bold green] {summary.message}")
    if show_catalog:
        _print_catalog(repository)


@app.command()
def discount(
    input_file: Path = typer.Argument(
        ...,
        help='JSON basket file: {"items": [{"productId": 1, "quantity": 2}]}',
        exists=True,
    ),
    database_url: Optional[str] = typer.Option(
        None,
        "--database-url",
        help="Catalog database URL (overrides DATABASE_URL)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed processing information",
    ),
):
    """Price a basket against the catalog."""
    config = get_config()
    configure_logging(config, verbose=verbose)

    try:
        request = DiscountCalculationRequest.model_validate(_load_json(input_file))
        repository = _open_repository(config, database_url)
        result = DiscountEngine(
            repository, currency_symbol=config.currency_symbol
        ).calculate(request.items)
    except (ValueError, ContractError) as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {str(e)}")
        raise typer.Exit(code=1)

    print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def version():
    """Show version information."""
    console.print(f"catalogsvc version {__version__}")


if __name__ == "__main__":
    app()
