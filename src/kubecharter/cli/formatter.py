# src/kubecharter/cli/formatter.py
import difflib
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from kubecharter.core.models import RenderedResource

# Initialize the Rich console for high-quality terminal output
console = Console()

STATUS_STYLES = {
    "TEMPLATED": ("green", "✅"),
    "ELIDED": ("dim", "➖"),
    "INVALID": ("yellow", "⚠️"),
    "PARSE_ERROR": ("red", "❌"),
}


class KubeFormatter:
    """
    KubeFormatter: The visual heart of the CLI.
    Responsible for rendering Diffs, Template Previews, and Execution Reports.
    """

    def __init__(self, output: Console = console):
        self.console = output

    def display_diff(self, original_text: str, templated_text: str, file_name: str):
        """
        Calculates and renders a colorized diff between the kustomize
        document and its templated form.
        """
        diff_list = list(difflib.unified_diff(
            original_text.splitlines(),
            templated_text.splitlines(),
            fromfile=f"kustomize: {file_name}",
            tofile="helm template",
            lineterm=""
        ))

        if not diff_list:
            self.console.print(f"[dim]ℹ No templating needed for {file_name}.[/dim]")
            return

        syntax = Syntax("\n".join(diff_list), "diff", theme="monokai", line_numbers=True)
        self.console.print(Panel(
            syntax,
            title=f"Proposed Template: {file_name}",
            border_style="green"
        ))

    def print_final_table(self, resources: List[RenderedResource]):
        """
        Builds the summary table shown at the very end of a run.
        """
        table = Table(title="KubeCharter Execution Report", show_header=True, header_style="bold magenta")
        table.add_column("Kind")
        table.add_column("Name", style="cyan")
        table.add_column("Template Path", style="dim")
        table.add_column("Status")
        table.add_column("Result", justify="center")

        for r in resources:
            color, icon = STATUS_STYLES.get(r.status, ("red", "❌"))
            table.add_row(
                r.descriptor.get_kind() or "Unknown",
                r.descriptor.get_name() or "-",
                r.relative_path or "-",
                f"[{color}]{r.status}[/{color}]",
                icon
            )

        self.console.print(table)

    def print_summary(self, summary: Dict[str, Any]):
        self.console.print(Panel(
            f"[bold white]Summary Report[/bold white]\n"
            f"════════════════════════════════════════\n"
            f"Documents:      {summary['total_documents']}\n"
            f"Templated:      [green]{summary['templated']}[/green]\n"
            f"Elided:         {summary['elided']}\n"
            f"Invalid:        [yellow]{summary['invalid']}[/yellow]\n"
            f"Parse Errors:   [red]{summary['parse_errors']}[/red]",
            border_style="dim"
        ))

    def show_problems(self, resources: List[RenderedResource]):
        """Explains WHY a document failed to parse or validate."""
        for r in resources:
            if r.status in ("INVALID", "PARSE_ERROR"):
                label = r.relative_path or r.descriptor.get_name() or "document"
                self.console.print(f"[bold red]{r.status}[/bold red] {label}: {r.message}")
