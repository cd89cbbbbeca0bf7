"""Product Admin CLI main entry point.

Usage:
    product-admin version
    product-admin config check
    product-admin config show
    product-admin users create|list
    product-admin permissions list
"""

from __future__ import annotations

import typer

from src.cli.permissions import permissions_app
from src.cli.users import users_app
from src.config import Settings, get_settings

app = typer.Typer(
    name="product-admin",
    help="Product Admin API administration CLI",
    no_args_is_help=True,
)

config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")
app.add_typer(users_app, name="users")
app.add_typer(permissions_app, name="permissions")

_VERSION = "0.1.0"

# Pattern for masking secrets: keep first 6 chars, mask the rest
_SECRET_FIELDS = {"api_key", "jwt_secret"}
# Connection URLs in these sections may embed credentials
_URL_SECTIONS = {"database", "redis"}


def _mask_secret(value: str, visible_chars: int = 6) -> str:
    """Mask a secret value, keeping first few characters visible."""
    if len(value) <= visible_chars:
        return "***"
    return value[:visible_chars] + "***"


def _collect_config_display(settings: Settings) -> list[tuple[str, str, str]]:
    """Collect (section, key, display_value) tuples from settings."""
    rows: list[tuple[str, str, str]] = []

    for section, sub_settings in settings:
        for sub_name, sub_value in sub_settings:
            display = str(sub_value)
            secret = sub_name in _SECRET_FIELDS or (sub_name == "url" and section in _URL_SECTIONS)
            if secret and display:
                display = _mask_secret(display)
            rows.append((section, sub_name, display))

    return rows


@app.command()
def version() -> None:
    """Show application version."""
    typer.echo(f"Product Admin API v{_VERSION}")


@config_app.command("check")
def config_check() -> None:
    """Validate configuration and show status of each parameter."""
    settings = get_settings()
    result = settings.validate_required()

    if result.ok:
        typer.echo(typer.style("✅ All configuration checks passed", fg=typer.colors.GREEN))
    else:
        for err in result.errors:
            hint = f"  Hint: {err.hint}" if err.hint else ""
            typer.echo(
                typer.style(f"❌ {err.field}: {err.message}.{hint}", fg=typer.colors.RED)
            )
        typer.echo(f"\n{len(result.errors)} error(s) found.")
        raise typer.Exit(code=1)


@config_app.command("show")
def config_show() -> None:
    """Show current configuration (secrets are masked)."""
    settings = get_settings()
    rows = _collect_config_display(settings)

    current_section = ""
    for section, key, value in rows:
        if section != current_section:
            if current_section:
                typer.echo("")
            typer.echo(typer.style(f"[{section}]", fg=typer.colors.CYAN, bold=True))
            current_section = section
        typer.echo(f"  {key} = {value}")


if __name__ == "__main__":
    app()
