"""Module entry point: ``python -m catalogsvc [--mode api]``."""

from enum import Enum

import typer

from catalogsvc.cli import app as cli_app


class RunMode(str, Enum):
    cli = "cli"
    api = "api"


app = typer.Typer(
    help="Catalog service - CLI or API mode.",
    no_args_is_help=False,
)
app.add_typer(cli_app, name="", help="Catalog service CLI commands.")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    mode: RunMode = typer.Option(
        RunMode.cli,
        "--mode",
        help="Run mode: cli (default) or api",
    ),
) -> None:
    """Catalog service - CLI or API mode."""
    if mode is RunMode.api:
        from catalogsvc import api

        api.main()
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


if __name__ == "__main__":
    app()
