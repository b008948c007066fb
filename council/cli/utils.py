"""CLI utilities for dual-mode output (human-friendly + machine-readable).

- Human mode (default): Rich formatting with colors and tables
- Machine mode (--json): Structured JSON output for scripts

Example:
    out = Output(console=console, json_mode=get_json_mode())
    out.success("Routed", provider="GPT-4o")
    out.table("Providers", ["Name", "Tier"], [["GPT-4o", "PAID"]])
    raise typer.Exit(out.finish())
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, PrivateAttr, ConfigDict
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.models import CostSignal


class ExitCode:
    """Standardized exit codes for CLI commands.

        0 = Success
        1 = Invalid input (unknown task type, bad option)
        2 = Configuration error (missing key or model id)
        3 = Execution failed (provider call returned ok=false)
    """

    SUCCESS = 0
    VALIDATION_ERROR = 1
    CONFIGURATION_ERROR = 2
    EXECUTION_ERROR = 3


class Output(BaseModel):
    """Dual-mode output handler for CLI commands.

    In human mode: Uses Rich for terminal output.
    In JSON mode: Collects structured data and prints JSON at the end.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    console: Console
    json_mode: bool = False

    _data: dict[str, Any] = PrivateAttr()
    _exit_code: int = PrivateAttr(default=ExitCode.SUCCESS)

    def model_post_init(self, __context: Any) -> None:
        self._data = {"status": "success", "warnings": [], "errors": []}

    def success(self, message: str, **data: Any) -> None:
        """Output a success message with optional data."""
        if self.json_mode:
            self._data.update(data)
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        if self.json_mode:
            self._data["warnings"].append({"message": message})
        else:
            self.console.print(f"[yellow]⚠[/yellow] {message}")

    def error(
        self,
        message: str,
        *,
        hint: str | None = None,
        exit_code: int = ExitCode.VALIDATION_ERROR,
    ) -> None:
        """Output an error message and set exit code.

        Messages are printed literally; provider errors may contain brackets.
        """
        self._exit_code = exit_code
        self._data["status"] = "error"
        if self.json_mode:
            entry: dict[str, Any] = {"message": message}
            if hint:
                entry["hint"] = hint
            self._data["errors"].append(entry)
        else:
            self.console.print(f"[red]✗[/red] {escape(message)}")
            if hint:
                self.console.print(f"  [dim]→ {hint}[/dim]")

    def ledger_footer(self, signal: CostSignal, line: str | None) -> None:
        """Spend footer after a run: dim text in human mode, signal in JSON."""
        if self.json_mode:
            self._data["cost_signal"] = signal.model_dump()
        elif line:
            style = "yellow" if signal.is_low_balance else "dim"
            self.console.print()
            self.console.print(f"[{style}]Ledger: {line}[/{style}]")

    def text(self, message: str) -> None:
        """Output plain text (human mode only)."""
        if not self.json_mode:
            self.console.print(message)

    def table(
        self,
        title: str,
        columns: list[str],
        rows: list[list[str]],
        *,
        data_key: str | None = None,
    ) -> None:
        """Output a formatted table (list of row dicts in JSON mode)."""
        key = data_key or title.lower().replace(" ", "_")
        if self.json_mode:
            self._data[key] = [dict(zip(columns, row)) for row in rows]
        else:
            table = Table(title=title, show_header=True, header_style="bold")
            for col in columns:
                table.add_column(col)
            for row in rows:
                table.add_row(*row)
            self.console.print(table)

    def set_data(self, key: str, value: Any) -> None:
        """Set arbitrary data in JSON output."""
        self._data[key] = value

    def finish(self) -> int:
        """Finalize output and return exit code.

        In JSON mode, prints the accumulated data as JSON to stdout.
        """
        if self.json_mode:
            self._data["exit_code"] = self._exit_code
            print(json.dumps(self._data, indent=2, default=str))
        return self._exit_code
