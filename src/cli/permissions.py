"""CLI command for browsing the permission registry.

Usage:
    product-admin permissions list
"""

from __future__ import annotations

import typer

from src.api.permissions import PERMISSION_GROUPS

permissions_app = typer.Typer(help="Permission registry")


@permissions_app.command("list")
def permissions_list() -> None:
    """Show every permission grouped by domain."""
    for group in PERMISSION_GROUPS:
        typer.echo(typer.style(f"[{group.title}]", fg=typer.colors.CYAN, bold=True))
        for info in group.permissions:
            typer.echo(f"  {info.key:<30} {info.description}")
        typer.echo("")
