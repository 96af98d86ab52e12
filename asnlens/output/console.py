"""
Rich console output for asnlens
"""

from typing import Optional
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.text import Text
from rich import box

from ..countries import ISO_CODES
from ..models import Country, Name, Record


def get_flag(code: str) -> str:
    """Get flag emoji for country code"""
    if not code:
        return ''
    code = code.upper()
    if code not in ISO_CODES:
        return '🌍'
    return ''.join(chr(0x1F1E6 + ord(c) - ord('A')) for c in code)


class ConsoleOutput:
    """
    Rich console output for lookup results.

    Features:
    - Records table with country flags
    - Warnings for incomplete batches
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_header(self, transport: str, addresses: int, asns: int):
        """Print lookup header"""
        content = Text()
        content.append("asnlens", style="bold cyan")
        content.append(f" via {transport}\n", style="dim")
        content.append(f"Addresses: {addresses}  |  ASNs: {asns}", style="dim")

        self.console.print(Panel(content, border_style="cyan", padding=(0, 1)))

    def print_records(self, records: list[Record], title: str):
        """Print records table"""
        table = Table(
            show_header=True,
            header_style="bold magenta",
            box=box.ROUNDED,
            border_style="dim",
            padding=(0, 1),
            title=title
        )

        table.add_column("ASN", style="cyan", no_wrap=True)
        table.add_column("Address", no_wrap=True)
        table.add_column("Range", no_wrap=True)
        table.add_column("Country")
        table.add_column("Registry")
        table.add_column("Allocated", no_wrap=True)
        table.add_column("Organization", overflow="ellipsis")

        for record in records:
            table.add_row(
                str(record.asn),
                str(record.address) if record.address else "-",
                str(record.range) if record.range else "-",
                self._format_country(record.country),
                record.registry or "-",
                record.allocated.isoformat() if record.allocated else "-",
                self._format_org(record.name)
            )

        self.console.print(table)

    def print_error(self, message: str):
        """Print error message"""
        self.console.print(f"[bold red]Error:[/] {message}")

    def print_warning(self, message: str):
        """Print warning message"""
        self.console.print(f"[yellow]Warning:[/] {message}")

    def _format_country(self, country: Country) -> str:
        """Format country with flag"""
        if not country:
            return "-"
        label = country.name or country.code
        return f"{get_flag(country.code)} {label}"

    def _format_org(self, name: Optional[Name]) -> str:
        """Format organization name - short handle plus full name when they differ"""
        if not name or not name.raw:
            return "-"
        if name.short and name.short != name.raw:
            return f"{name.short} ({name.raw})"
        return name.raw
