"""
EDucore CLI - Tenancy Commands

Commands:
    models  - List the tenant-scoped models
    rewrite - Show how a data-access call is rewritten for a tenant
"""

from __future__ import annotations

import json
from typing import Any, Optional

import typer

from educore.cli import tenancy_app
from educore.cli.output import print_error, print_json, print_table
from educore.config.settings import settings
from educore.models import MODEL_REGISTRY
from educore.multitenancy.context import TenantContext
from educore.multitenancy.errors import TenantIsolationError
from educore.multitenancy.interceptor import (
    TENANT_SCOPED_MODELS,
    QueryAction,
    QueryCall,
    QueryInterceptor,
)


@tenancy_app.command("models")
def list_models() -> None:
    """List every model name filtered by tenant and whether it is mapped."""
    rows = [
        [name, "yes" if name in MODEL_REGISTRY else "no"]
        for name in sorted(TENANT_SCOPED_MODELS)
    ]
    print_table(
        f"Tenant-scoped models ({len(rows)})",
        ["Model", "Mapped"],
        rows,
        styles=["cyan", None],
    )


def _parse_json(option: str, raw: Optional[str]) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        print_error(f"{option} is not valid JSON: {exc.msg}")
        raise typer.Exit(code=2) from exc


@tenancy_app.command("rewrite")
def rewrite(
    entity: str = typer.Argument(..., help="Model name, e.g. Learner."),
    action: str = typer.Argument(..., help="Call kind, e.g. find_many or create."),
    school: Optional[str] = typer.Option(None, "--school", "-s", help="Active school id."),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Active branch id."),
    where: Optional[str] = typer.Option(None, "--where", "-w", help="Filter as JSON."),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Payload as JSON."),
    super_admin: bool = typer.Option(False, "--super-admin", help="Act as a super-admin."),
) -> None:
    """
    Print the call descriptor as the interceptor rewrites it.

    Example:
        educore tenancy rewrite Learner find_many --school school-A --where '{"grade": "4"}'
    """
    try:
        query_action = QueryAction(action)
    except ValueError:
        valid = ", ".join(a.value for a in QueryAction)
        print_error(f"Unknown action {action!r}", hint=f"Use one of: {valid}")
        raise typer.Exit(code=2)

    call = QueryCall(
        entity=entity,
        action=query_action,
        where=_parse_json("--where", where),
        data=_parse_json("--data", data),
    )
    context = TenantContext(school_id=school, branch_id=branch, is_super_admin=super_admin)

    try:
        rewritten = QueryInterceptor.from_settings(settings).apply(call, context)
    except TenantIsolationError as exc:
        print_error(str(exc))
        raise typer.Exit(code=1) from exc

    print_json(rewritten.to_dict())
