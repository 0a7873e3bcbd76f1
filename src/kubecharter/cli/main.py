#!/usr/bin/env python3
"""
KUBECHARTER CLI - Chart Templating Front-End
--------------------------------------------
Primary interface for converting a kustomize build output (for example
dist/install.yaml) into Helm chart templates, with optional diffs.

Author: KubeCharter Team
Date: 2026-10-17
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from kubecharter.cli.formatter import KubeFormatter
from kubecharter.core.engine import ChartEngine
from kubecharter.core.models import RenderedResource

# Global console for consistent styling across the application
console = Console()

VERSION = "kubecharter v0.1.0"


class KubeCharterCLI:
    """
    CLI wrapper that translates user commands into Engine actions.
    """

    def __init__(self):
        """Initializes the CLI and sets up the argument parser."""
        self.parser = argparse.ArgumentParser(
            prog="kubecharter",
            description="KubeCharter - Turn kustomize manifests into Helm chart templates",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.formatter = KubeFormatter(console)
        self._setup_args()

    def _setup_args(self):
        """Configures the command-line flags and subcommands."""
        self.parser.add_argument("-v", "--version", action="version", version=VERSION)
        self.parser.add_argument("--verbose", action="store_true", help="Log every templating pass")
        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        # 'template' subcommand - writes chart templates
        template_parser = subparsers.add_parser("template", help="📦 Render manifests into chart templates")
        template_parser.add_argument("path", help="Path to a kustomize build output (multi-document YAML)")
        template_parser.add_argument("--project", required=True, help="Project name baked into the manifests")
        template_parser.add_argument("--output", required=True, help="Chart templates/ directory")
        template_parser.add_argument("--dry-run", action="store_true", help="Preview results without writing")
        template_parser.add_argument("--diff", action="store_true", help="Show a diff for every document")
        template_parser.add_argument("--force", action="store_true", help="Also write templates that failed validation")

        # 'preview' subcommand - read-only
        preview_parser = subparsers.add_parser("preview", help="🔍 Show templated output without writing")
        preview_parser.add_argument("path", help="Path to a kustomize build output")
        preview_parser.add_argument("--project", required=True, help="Project name baked into the manifests")

    def print_header(self, subtitle: str):
        console.print(Panel.fit(
            f"[bold cyan]{VERSION}[/bold cyan]",
            title=f"[bold white]{subtitle}[/bold white]",
            border_style="cyan"
        ))

    def _configure_logging(self, verbose: bool):
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.WARNING,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )

    def _review(self, resources: List[RenderedResource]):
        """Walks every document with a progress bar, pausing it for each diff."""
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=40),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console
        ) as progress:
            task_id = progress.add_task("Reviewing templates...", total=len(resources))
            for r in resources:
                label = r.relative_path or r.descriptor.get_name() or "document"
                if r.status != "PARSE_ERROR":
                    progress.stop()
                    self.formatter.display_diff(r.source, r.content, label)
                    progress.start()
                progress.update(task_id, advance=1, description=f"Reviewed: {label}")

    def _run_engine(self, args: argparse.Namespace, write: bool) -> int:
        input_path = Path(args.path)
        if not input_path.is_file():
            console.print(f"[bold red]Error:[/bold red] Manifest '{args.path}' not found.")
            return 1

        engine = ChartEngine(args.project, getattr(args, "output", None))
        source = input_path.read_text(encoding='utf-8-sig')
        resources = engine.render(source)

        show_diff = getattr(args, "diff", False) or not write
        if show_diff:
            self._review(resources)

        if write:
            try:
                written = engine.write(resources, dry_run=args.dry_run, force=args.force)
            except OSError as e:
                console.print(f"[bold red]Write failed:[/bold red] {str(e)}")
                return 1
            verb = "Would write" if args.dry_run else "Wrote"
            console.print(f"[bold green]{verb} {len(written)} template(s)[/bold green] under {engine.output_dir}")

        self.formatter.print_final_table(resources)
        self.formatter.show_problems(resources)
        summary = engine.generate_summary(resources)
        self.formatter.print_summary(summary)

        return 1 if summary["invalid"] or summary["parse_errors"] else 0

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Primary routing entry point."""
        args = self.parser.parse_args(argv)
        if args.command is None:
            self.print_header("Kustomize to Helm")
            self.parser.print_help()
            return 0

        self._configure_logging(args.verbose)
        if args.command == "template":
            self.print_header("Chart Templating")
            return self._run_engine(args, write=True)
        self.print_header("Template Preview")
        return self._run_engine(args, write=False)


def main():
    """Application entry point with interrupt handling."""
    try:
        sys.exit(KubeCharterCLI().run())
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
