"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output:
status messages, tables of pages, revisions and access rules, and the
site map tree.
Supports verbosity levels and the --no-color flag.
"""

from datetime import datetime
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from src.access_control.models import AccessRule, PageAccessPermissions
from src.page_store.models import WikiHistoryItem, WikiPageInfo
from src.page_store.site_map import SiteMapNode


def _format_time(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


class OutputHandler:
    """Handles all terminal output using Rich library.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Page saved")
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False):
        self.verbosity = verbosity
        self.console = Console(
            no_color=no_color,
            highlight=False,
        )

    def success(self, message: str) -> None:
        """Display success message in green."""
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def error(self, message: str) -> None:
        """Display error message in red."""
        self.console.print(f"[red]✗[/red] {escape(message)}", style="red")

    def warning(self, message: str) -> None:
        """Display warning message in yellow."""
        self.console.print(f"[yellow]⚠[/yellow] {escape(message)}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(escape(message))

    def debug(self, message: str) -> None:
        """Display debug message (only if verbosity >= 2)."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def print(self, message: str) -> None:
        """Display message without markup interpretation."""
        self.console.print(message, markup=False, highlight=False)

    def print_pages(self, pages: Sequence[WikiPageInfo], neutral_culture: str) -> None:
        table = Table(title=f"{len(pages)} page(s)")
        table.add_column("Page")
        table.add_column("Culture")
        table.add_column("Title")
        table.add_column("Last modified")
        table.add_column("By")
        for page in pages:
            table.add_row(
                escape(page.page_name),
                page.culture or neutral_culture,
                escape(page.title or ""),
                _format_time(page.last_modified_at),
                escape(page.last_modified_by or "-"),
            )
        self.console.print(table)

    def print_history(self, history: Sequence[WikiHistoryItem]) -> None:
        table = Table(title=f"{len(history)} revision(s)")
        table.add_column("Commit", style="cyan")
        table.add_column("Date")
        table.add_column("Author")
        table.add_column("Message")
        for item in history:
            table.add_row(
                item.commit_id[:10],
                _format_time(item.timestamp),
                escape(item.author_name),
                escape(item.message.splitlines()[0] if item.message else ""),
            )
        self.console.print(table)

    def print_rules(self, rules: Sequence[AccessRule]) -> None:
        if not rules:
            self.console.print("No access rules: every page is readable and editable by everyone")
            return
        table = Table(title=f"{len(rules)} access rule(s)")
        table.add_column("#", justify="right")
        table.add_column("Pattern")
        table.add_column("Read")
        table.add_column("Write")
        for rule in sorted(rules, key=lambda r: r.order):
            table.add_row(
                str(rule.order),
                escape(rule.pattern),
                escape(", ".join(rule.read_groups) or "(all users)"),
                escape(", ".join(rule.write_groups) or "(all users)"),
            )
        self.console.print(table)

    def print_access(self, page_name: str, access: PageAccessPermissions) -> None:
        def verdict(allowed: bool) -> str:
            return "[green]allowed[/green]" if allowed else "[red]denied[/red]"

        self.console.print(f"Page: {escape(page_name)}")
        self.console.print(f"  read:  {verdict(access.can_read)}")
        self.console.print(f"  edit:  {verdict(access.can_edit)}")
        matched = access.matched_pattern or "(no rule matched)"
        self.console.print(f"  rule:  {escape(matched)}")

    def print_site_map(self, roots: Sequence[SiteMapNode]) -> None:
        if not roots:
            self.console.print("The wiki has no pages")
            return
        tree = Tree("Site map")
        self._add_site_map_branches(tree, roots)
        self.console.print(tree)

    def _add_site_map_branches(self, branch: Tree, nodes: Sequence[SiteMapNode]) -> None:
        for node in nodes:
            label = escape(node.display_name)
            if node.has_page:
                label = f"{label} [dim]({escape(node.page_name)})[/dim]"
            else:
                label = f"[italic]{label}/[/italic]"
            child = branch.add(label)
            self._add_site_map_branches(child, node.children)
