"""Utility functions for the AEM CLI."""

from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def echo_success(message: str) -> None:
    """Print success message."""
    console.print(f"[green]✓ {message}[/green]")


def echo_error(message: str) -> None:
    """Print error message."""
    err_console.print(f"[red]✗ {message}[/red]")


def echo_warning(message: str) -> None:
    """Print warning message."""
    err_console.print(f"[yellow]⚠ {message}[/yellow]")


def echo_info(message: str) -> None:
    """Print info message."""
    console.print(f"[blue]ℹ {message}[/blue]")


def probe_table(report: dict) -> Table:
    """Render a connection report as a table of probes."""
    table = Table(title=f"AEM connection: {report.get('base_url')}")
    table.add_column("Probe", style="cyan")
    table.add_column("Path")
    table.add_column("Status")
    table.add_column("Detail")

    for name, probe in report.get("probes", {}).items():
        if probe["ok"]:
            status = "[green]ok[/green]"
            detail = str(probe.get("detail", ""))
        else:
            status = f"[red]{probe.get('status_code') or 'failed'}[/red]"
            detail = probe.get("error", "")
        table.add_row(name, probe.get("path", ""), status, detail)

    return table


def format_expiry(seconds: int) -> str:
    """Format a token lifetime like '23h 59m'."""
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


IMS_ERROR_HINTS = {
    "unauthorized_client": (
        "The most common cause is wrong or missing scopes. Copy the exact "
        "'Scopes' value from Developer Console -> OAuth Server-to-Server, make "
        "sure a product profile is assigned to the credential, and confirm the "
        "AEM as a Cloud Service API is added to the project."
    ),
    "invalid_client": (
        "Double-check AEM_CLIENT_ID and AEM_CLIENT_SECRET. The client secret may "
        "have expired; regenerate it in Developer Console."
    ),
}
