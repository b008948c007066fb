"""Route command: show which providers a task would be sent to."""

import typer

from ..app import app, build_council, console, get_json_mode
from ..utils import ExitCode, Output


@app.command("route")
def route_command(
    task_type: str = typer.Argument(..., help="Task type, e.g. STRATEGY, DEVELOPMENT, FAST"),
    domain: str = typer.Option("", "--domain", "-d", help="Target domain name"),
    audit: bool = typer.Option(False, "--audit", help="Also select an auditor"),
    prefer_free: bool = typer.Option(
        False, "--prefer-free", help="Route as if the balance were low"
    ),
):
    """Print the routing decision for a task type.

    Example:
        council route DEVELOPMENT -d tec.pi
        council route STRATEGY --audit --prefer-free
    """
    from ...core.errors import ConfigurationError
    from ...core.models import TaskType

    out = Output(console=console, json_mode=get_json_mode())

    try:
        council = build_council()
    except ConfigurationError as e:
        out.error(
            str(e),
            hint="Set the missing env var, or pass --sandbox to run without providers",
            exit_code=ExitCode.CONFIGURATION_ERROR,
        )
        raise typer.Exit(out.finish())

    if TaskType.parse(task_type) is None:
        out.warning(f"Unknown task type {task_type!r}; using default routing")

    decision = council.council_decision(
        task_type, domain=domain, requires_audit=audit, prefer_free=prefer_free
    )

    out.success(
        f"{decision.task_type} → {decision.primary.name} "
        f"[dim]({decision.primary.provider_id}, {decision.primary.tier.value})[/dim]",
        decision=decision.model_dump(mode="json"),
    )
    if decision.auditor is not None:
        out.text(
            f"  auditor: {decision.auditor.name} "
            f"[dim]({decision.auditor.provider_id}, {decision.auditor.tier.value})[/dim]"
        )
    if decision.meta.low_balance:
        out.text("  [yellow]low balance: free routing in effect[/yellow]")
    if decision.meta.sandbox_mode:
        out.text("  [dim]sandbox mode[/dim]")
    raise typer.Exit(out.finish())
