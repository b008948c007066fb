"""Report command: spend history across recorded sessions."""

from datetime import datetime

import typer

from ..app import app, console, get_json_mode
from ..utils import Output


@app.command("report")
def report_command(
    days: int = typer.Option(7, "--days", "-d", help="Days to look back (0 = all time)"),
    limit: int = typer.Option(20, "--limit", "-n", help="Max sessions to list"),
):
    """Show spend totals and recent sessions.

    Example:
        council report
        council report --days 30
    """
    from ...core.history import query_entries, query_totals

    out = Output(console=console, json_mode=get_json_mode())
    window = days if days > 0 else None

    totals = query_totals(days=window)
    entries = query_entries(days=window, limit=limit)

    period = f"last {days} days" if window else "all time"
    out.success(
        f"{totals['sessions']} sessions · {totals['total_calls']} calls · "
        f"${totals['total_cost']:.2f} ({period})",
        totals=totals,
    )
    out.table(
        "Sessions",
        ["When", "Label", "Mode", "Calls", "Tokens", "Cost", "Balance"],
        [
            [
                datetime.fromtimestamp(entry.timestamp).strftime("%Y-%m-%d %H:%M"),
                entry.label or "-",
                "sandbox" if entry.sandbox else "live",
                str(entry.transaction_count),
                str(entry.total_tokens),
                f"${entry.total_cost:.2f}",
                f"${entry.final_balance:.2f}",
            ]
            for entry in entries
        ],
    )
    raise typer.Exit(out.finish())
