"""Output formatting for cooplock CLI."""

import json
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .models import LockRecord


def record_data(record: LockRecord) -> dict[str, Any]:
    """Lock record in its wire (camelCase) shape."""
    return record.model_dump(mode="json", by_alias=True)


@dataclass
class OutputContext:
    """Context for output formatting."""

    console: Console
    json_mode: bool = False

    def print(self, message: str, style: str | None = None) -> None:
        """Print message respecting output mode."""
        if not self.json_mode:
            self.console.print(message, style=style)

    def print_json(self, data: Any) -> None:
        """Print JSON data."""
        if self.json_mode:
            print(json.dumps(data, indent=2, default=str))

    def error(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Print error in appropriate format."""
        if self.json_mode:
            self.print_json({"error": message, **(data or {})})
        else:
            self.console.print(f"[red]Error: {escape(message)}[/red]")

    def success(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Print success message in appropriate format."""
        if self.json_mode:
            self.print_json({"success": message, **(data or {})})
        else:
            self.console.print(f"[green]{escape(message)}[/green]")

    def records(self, records: Iterable[LockRecord], namespace: str) -> None:
        """Print lock records as a JSON list or a table, oldest operation first."""
        ordered = sorted(records, key=lambda r: (r.operation_time, r.operation_id))
        if self.json_mode:
            self.print_json([record_data(record) for record in ordered])
            return
        if not ordered:
            self.console.print(f"No locked operations in {escape(namespace)}")
            return

        now = datetime.now(UTC)
        table = Table(title=f"Locked operations in {escape(namespace)}")
        table.add_column("Operation")
        table.add_column("Type")
        table.add_column("Client")
        table.add_column("Expires")
        table.add_column("Resources")
        for record in ordered:
            expires = record.lock_expiration.isoformat()
            if record.is_expired(now):
                expires = f"[red]{expires} (expired)[/red]"
            table.add_row(
                escape(record.operation_id),
                record.operation_type.value,
                escape(record.client_id),
                expires,
                escape("\n".join(sorted(record.resources))),
            )
        self.console.print(table)


# Global output context (set by cli.py main callback)
_ctx: OutputContext | None = None


def get_output_context() -> OutputContext:
    """Get the current output context.

    Returns a default OutputContext if not yet initialized by CLI.
    """
    if _ctx is None:
        return OutputContext(Console())
    return _ctx


def set_output_context(ctx: OutputContext | None) -> None:
    """Set the global output context. Called by CLI main callback."""
    global _ctx
    _ctx = ctx
