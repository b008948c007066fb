"""Core CLI app definition and global state."""

from typing import Annotated

import typer
from rich.console import Console

app = typer.Typer(
    name="council",
    help="Route tasks to tiered inference providers under a live budget.",
    no_args_is_help=True,
)

console = Console()

# Global state (set by callback)
_json_mode = False
_force_sandbox = False


def get_json_mode() -> bool:
    """Get current JSON mode state."""
    return _json_mode


def build_council():
    """Build a Council from the resolved config (honoring --sandbox)."""
    from dataclasses import replace

    from ..config import get_config
    from ..council import Council

    config = get_config()
    if _force_sandbox:
        config = replace(config, sandbox=True)
    return Council.from_config(config)


def _version_callback(value: bool) -> None:
    if value:
        from .. import __version__

        print(f"council {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output machine-readable JSON instead of human-friendly text",
            is_eager=True,
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = False,
    sandbox: Annotated[
        bool,
        typer.Option(
            "--sandbox",
            help="Never call providers; return deterministic mock results",
            is_eager=True,
        ),
    ] = False,
):
    """Council: cost-aware provider routing with a live spend ledger.

    Use --json for machine-readable output suitable for scripting.
    Use --sandbox to exercise routing and accounting without network calls.
    """
    global _json_mode, _force_sandbox
    _json_mode = json_output
    _force_sandbox = sandbox


# Import commands to register them with the app
from .commands import (  # noqa: E402, F401
    providers,
    route,
    run,
    report,
    config_cmd,
)
