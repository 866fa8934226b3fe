"""
EDucore - Command Line Interface

Operator tooling for the multi-tenant API, built with Typer and Rich.

Usage:
    $ educore --help
    $ educore tenancy models
    $ educore tenancy rewrite Learner find_many --school school-A
    $ educore token issue --user u-1 --role ADMIN --school school-A

Sub-command Groups:
    tenancy - Inspect tenant scoping (protected models, call rewriting)
    token   - Development access tokens
"""

from __future__ import annotations

import logging

import typer

from educore import __version__
from educore.cli.output import console, err_console
from educore.config import configure_logging

app = typer.Typer(
    name="educore",
    help="EDucore - multi-tenant school management",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
)

tenancy_app = typer.Typer(
    name="tenancy",
    help="Inspect automatic tenant scoping",
    no_args_is_help=True,
)

token_app = typer.Typer(
    name="token",
    help="Issue development access tokens",
    no_args_is_help=True,
)

app.add_typer(tenancy_app, name="tenancy")
app.add_typer(token_app, name="token")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"EDucore version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging.",
    ),
) -> None:
    """
    EDucore - multi-tenant school management

    Use --help on any subcommand for detailed information.
    """
    configure_logging(logging.DEBUG if verbose else None)


def _register_subcommands() -> None:
    from educore.cli import tenancy  # noqa: F401
    from educore.cli import token  # noqa: F401


_register_subcommands()

__all__ = [
    "app",
    "tenancy_app",
    "token_app",
    "console",
    "err_console",
]


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
