"""CLI commands for the council."""

from . import (
    providers,
    route,
    run,
    report,
    config_cmd,
)

__all__ = [
    "providers",
    "route",
    "run",
    "report",
    "config_cmd",
]
