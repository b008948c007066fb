"""Providers command: show the provider catalog by tier."""

import typer

from ..app import app, console, get_json_mode
from ..utils import Output


@app.command("providers")
def providers_command(
    all_entries: bool = typer.Option(
        False, "--all", "-a", help="Include providers without a model id"
    ),
):
    """List catalog providers with tier, model id and per-call cost.

    Example:
        council providers
        council providers --all
    """
    from ...core.registry import ProviderRegistry

    out = Output(console=console, json_mode=get_json_mode())
    registry = ProviderRegistry.from_env(require_paid=False)

    rows = []
    for provider in registry.all_providers(configured_only=not all_entries):
        rows.append(
            [
                provider.tier.value,
                provider.key,
                provider.name,
                provider.provider_id or "(unset)",
                f"{provider.cost_per_call:.2f}",
                ", ".join(provider.capabilities),
            ]
        )

    out.table(
        "Providers",
        ["Tier", "Key", "Name", "Model", "Cost/call", "Capabilities"],
        rows,
    )
    raise typer.Exit(out.finish())
