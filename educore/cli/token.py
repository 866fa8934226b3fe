"""
EDucore CLI - Token Commands

Commands:
    issue - Mint an access token for local development
"""

from __future__ import annotations

from typing import Optional

import typer

from educore.auth.roles import Role
from educore.auth.tokens import AuthenticatedUser, create_access_token
from educore.cli import token_app
from educore.cli.output import err_console, print_error
from educore.config.settings import settings


@token_app.command("issue")
def issue(
    user: str = typer.Option(..., "--user", "-u", help="User id (userId claim)."),
    role: str = typer.Option(..., "--role", "-r", help="Role, e.g. ADMIN or SUPER_ADMIN."),
    school: Optional[str] = typer.Option(None, "--school", "-s", help="School id."),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch id."),
    email: Optional[str] = typer.Option(None, "--email", help="Email claim."),
    expires: Optional[int] = typer.Option(
        None, "--expires", "-e", min=1, help="Lifetime in minutes."
    ),
) -> None:
    """
    Print a signed access token.

    The token is written alone on stdout so it can be captured:
        TOKEN=$(educore token issue --user u-1 --role ADMIN --school school-A)
    """
    try:
        user_role = Role(role.upper())
    except ValueError:
        print_error(
            f"Unknown role {role!r}",
            hint="Use one of: " + ", ".join(r.value for r in Role),
        )
        raise typer.Exit(code=2)

    if user_role is not Role.SUPER_ADMIN and not school:
        print_error("--school is required for roles other than SUPER_ADMIN")
        raise typer.Exit(code=2)

    if settings.ENVIRONMENT == "production":
        err_console.print("[yellow]Warning:[/yellow] issuing a token with the production secret")

    token = create_access_token(
        AuthenticatedUser(
            user_id=user,
            role=user_role,
            email=email,
            school_id=school,
            branch_id=branch,
        ),
        expires_minutes=expires,
    )
    typer.echo(token)
