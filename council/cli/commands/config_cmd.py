"""Config command for viewing and managing council configuration."""

import typer

from ..app import app, console
from ...config import CONFIG_FILE, API_KEY_ENV, get_api_key, get_config, reset_config


VALID_KEYS = {
    "ledger.initial_balance",
    "ledger.low_balance_threshold",
    "executor.timeout_seconds",
    "executor.fast_timeout_seconds",
    "executor.max_retries",
    "executor.retry_delay_seconds",
    "executor.temperature",
    "endpoint.base_url",
    "endpoint.referer",
    "endpoint.title",
}

INT_FIELDS = {"max_retries"}
FLOAT_FIELDS = {
    "initial_balance",
    "low_balance_threshold",
    "timeout_seconds",
    "fast_timeout_seconds",
    "retry_delay_seconds",
    "temperature",
}


@app.command("config")
def config_command(
    action: str = typer.Argument(..., help="Action: show, set, reset"),
    key: str | None = typer.Argument(None, help="Config key (e.g. ledger.initial_balance)"),
    value: str | None = typer.Argument(None, help="Value to set"),
):
    """View or modify council configuration.

    Examples:
        council config show
        council config set ledger.initial_balance 250
        council config reset
    """
    if action == "show":
        _show_config()
    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage:[/red] council config set <key> <value>")
            console.print()
            console.print("Available keys:")
            for k in sorted(VALID_KEYS):
                console.print(f"  {k}")
            raise typer.Exit(1)
        _set_config(key, value)
    elif action == "reset":
        _reset_config()
    else:
        console.print(f"[red]Unknown action:[/red] {action}")
        console.print("Valid actions: show, set, reset")
        raise typer.Exit(1)


def _show_config():
    """Display current resolved configuration."""
    config = get_config()

    console.print()
    console.print("[bold]Council Configuration[/bold]")
    console.print("─" * 40)

    console.print()
    console.print("[bold cyan]Ledger[/bold cyan]")
    console.print(f"  initial_balance       = {config.ledger.initial_balance}")
    console.print(f"  low_balance_threshold = {config.ledger.low_balance_threshold}")

    console.print()
    console.print("[bold cyan]Executor[/bold cyan]")
    console.print(f"  timeout_seconds       = {config.executor.timeout_seconds}")
    console.print(f"  fast_timeout_seconds  = {config.executor.fast_timeout_seconds}")
    console.print(f"  max_retries           = {config.executor.max_retries}")
    console.print(f"  retry_delay_seconds   = {config.executor.retry_delay_seconds}")
    console.print(f"  temperature           = {config.executor.temperature}")

    console.print()
    console.print("[bold cyan]Endpoint[/bold cyan]")
    console.print(f"  base_url = {config.endpoint.base_url}")
    console.print(f"  referer  = {config.endpoint.referer}")
    console.print(f"  title    = {config.endpoint.title}")

    console.print()
    mode = "sandbox" if config.resolve_sandbox_mode() else "production"
    console.print(f"[bold cyan]Mode[/bold cyan]: {mode} (environment={config.environment})")

    key = get_api_key()
    if key:
        masked = key[:8] + "..." + key[-4:] if len(key) > 16 else "***"
        console.print(f"  {API_KEY_ENV}: [green]{masked}[/green]")
    else:
        console.print(f"  {API_KEY_ENV}: [dim]not set[/dim]")

    console.print()
    if CONFIG_FILE.exists():
        console.print(f"Config file: {CONFIG_FILE}")
    else:
        console.print(f"Config file: [dim]not created yet[/dim] ({CONFIG_FILE})")
    console.print()


def _set_config(key: str, value: str):
    """Set a config value and save."""
    if key not in VALID_KEYS:
        console.print(f"[red]Unknown key:[/red] {key}")
        console.print()
        console.print("Available keys:")
        for k in sorted(VALID_KEYS):
            console.print(f"  {k}")
        raise typer.Exit(1)

    config = get_config()
    section, field_name = key.split(".", 1)
    target = getattr(config, section)

    parsed: object = value
    if field_name in INT_FIELDS:
        try:
            parsed = int(value)
        except ValueError:
            console.print(f"[red]Invalid integer value:[/red] {value}")
            raise typer.Exit(1)
    elif field_name in FLOAT_FIELDS:
        try:
            parsed = float(value)
        except ValueError:
            console.print(f"[red]Invalid number value:[/red] {value}")
            raise typer.Exit(1)

    setattr(target, field_name, parsed)
    config.save()
    console.print(f"[green]✓[/green] Set {key} = {parsed}")


def _reset_config():
    """Reset config file to defaults."""
    if CONFIG_FILE.exists():
        CONFIG_FILE.unlink()
        console.print(f"[green]✓[/green] Removed {CONFIG_FILE}")
    else:
        console.print("[dim]No config file to reset[/dim]")
    reset_config()
