"""CLI commands for user management.

Usage:
    product-admin users create --email admin@example.com --name Admin --all-permissions
    product-admin users create --email viewer@example.com --name Viewer -p products:view
    product-admin users list
"""

from __future__ import annotations

import asyncio
import re
from typing import Any

import typer
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.api.auth import hash_password
from src.api.permissions import invalid_permissions, list_all_permissions
from src.api.users import EMAIL_PATTERN, MIN_PASSWORD_LENGTH
from src.config import get_settings
from src.store.users import DuplicateEmailError, UserStore

users_app = typer.Typer(help="User management")


async def _get_engine() -> AsyncEngine:
    settings = get_settings()
    return create_async_engine(settings.database.url)


async def _create_user(
    email: str, name: str, password: str, permissions: list[str]
) -> dict[str, Any]:
    engine = await _get_engine()
    try:
        store = UserStore(engine)
        return await store.create_user(
            email=email,
            name=name,
            password_hash=hash_password(password),
            permissions=permissions,
        )
    finally:
        await engine.dispose()


async def _list_users() -> list[dict[str, Any]]:
    engine = await _get_engine()
    try:
        return await UserStore(engine).list_users()
    finally:
        await engine.dispose()


def _fail(message: str) -> typer.Exit:
    typer.echo(typer.style(message, fg=typer.colors.RED))
    return typer.Exit(code=1)


@users_app.command("create")
def users_create(
    email: str = typer.Option(..., "--email", help="Login email"),
    name: str = typer.Option(..., "--name", help="Display name"),
    password: str = typer.Option(
        ..., "--password", prompt=True, hide_input=True, confirmation_prompt=True
    ),
    permission: list[str] = typer.Option(  # noqa: B008
        [], "--permission", "-p", help="Permission to grant (repeatable)"
    ),
    all_permissions: bool = typer.Option(
        False, "--all-permissions", help="Grant every permission (first administrator)"
    ),
) -> None:
    """Create a user directly in the database."""
    if not re.match(EMAIL_PATTERN, email):
        raise _fail(f"Invalid email: {email}")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise _fail(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    permissions = sorted(list_all_permissions()) if all_permissions else list(permission)
    if not permissions:
        raise _fail("Grant at least one permission (--permission or --all-permissions)")
    invalid = invalid_permissions(permissions)
    if invalid:
        raise _fail(f"Invalid permissions: {', '.join(invalid)}")

    try:
        user = asyncio.run(_create_user(email, name, password, permissions))
    except DuplicateEmailError:
        raise _fail(f"A user with email {email} already exists") from None
    except Exception as e:
        raise _fail(f"Failed to create user: {e}") from None

    typer.echo(
        typer.style(
            f"✅ Created user {user['email']} with {len(user['permissions'])} permission(s)",
            fg=typer.colors.GREEN,
        )
    )


@users_app.command("list")
def users_list() -> None:
    """List all users with their permission counts."""
    try:
        users = asyncio.run(_list_users())
    except Exception as e:
        raise _fail(f"Failed to fetch users: {e}") from None

    if not users:
        typer.echo("No users found.")
        return

    typer.echo(f"{'ID':<38} {'Email':<32} {'Name':<20} {'Perms':<6} {'Projects'}")
    typer.echo("-" * 105)
    for u in users:
        typer.echo(
            f"{u['id']!s:<38} {u['email']:<32} {u.get('name', ''):<20} "
            f"{len(u['permissions']):<6} {u.get('project_count', 0)}"
        )
    typer.echo(f"\n{len(users)} user(s)")
