"""Run command: execute a task for a domain and print the result."""

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from ..app import app, build_council, console, get_json_mode
from ..utils import ExitCode, Output


def setup_logging(verbose: bool = False, debug: bool = False):
    """Route council logs to stderr so --json output stays parseable."""
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    logging.getLogger("council").setLevel(level)


@app.command("run")
def run_command(
    domain: str = typer.Argument(..., help="Target domain name"),
    prompt: str = typer.Argument(..., help="Prompt to send"),
    task_type: str = typer.Option(
        "OPERATION", "--task-type", "-t", help="Task type used for routing"
    ),
    audit: bool = typer.Option(False, "--audit", help="Audit the output with a second provider"),
    max_tokens: int | None = typer.Option(None, "--max-tokens", help="Completion token cap"),
    label: str = typer.Option("", "--label", help="Label stored with the session in history"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show routing and ledger logs"),
    debug: bool = typer.Option(False, "--debug", help="Show debug logs"),
):
    """Route, execute and optionally audit one prompt.

    The session's spend is appended to the history shown by `council report`.

    Example:
        council --sandbox run tec.pi "Summarize today's orders"
        council run tec.pi "Refactor the payment module" -t DEVELOPMENT --audit
    """
    from ...core.errors import ConfigurationError
    from ...service import DomainService

    setup_logging(verbose=verbose, debug=debug)
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

    service = DomainService(council, domain, task_type=task_type, requires_audit=audit)

    async def _run():
        try:
            return await service.run(prompt, max_tokens=max_tokens)
        finally:
            await council.close()

    result = asyncio.run(_run())
    council.persist_report(label=label or f"run:{domain}")

    if not result.ok:
        out.error(result.error or "execution failed", exit_code=ExitCode.EXECUTION_ERROR)
        raise typer.Exit(out.finish())

    out.success(
        f"{result.meta.get('provider')} ({result.meta.get('tier')})",
        result=result.model_dump(mode="json"),
    )
    out.text("")
    out.text(escape(result.content or ""))
    if result.audit is not None:
        out.text("")
        if result.audit.ok:
            status = "[green]ok[/green]"
        else:
            status = f"[red]{escape(result.audit.error or 'failed')}[/red]"
        out.text(f"[bold]Audit[/bold] ({result.audit.meta.provider_name}): {status}")
        if result.audit.ok:
            out.text(escape(result.audit.content))

    out.ledger_footer(council.get_cost_signal(), council.ledger.summary_line())
    raise typer.Exit(out.finish())
