"""Rich console utilities for the phaseflow command line."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from phaseflow.application.orchestrator import AutomationResult
from phaseflow.domain.history import VersionedOutput
from phaseflow.domain.models import (
    AutomationStatus,
    DesignReview,
    PhaseStatus,
    Project,
    SprintStatus,
)

# Shared console instances
console = Console()
error_console = Console(stderr=True)

STATUS_STYLES = {
    PhaseStatus.NOT_STARTED.value: "dim",
    PhaseStatus.IN_PROGRESS.value: "yellow",
    PhaseStatus.IN_REVIEW.value: "magenta",
    PhaseStatus.COMPLETED.value: "green",
}


def _status(value: PhaseStatus | SprintStatus) -> Text:
    return Text(value.value, style=STATUS_STYLES.get(value.value, ""))


def print_header(title: str, subtitle: str | None = None) -> None:
    """Print a styled header panel."""
    content = Text(title, style="bold blue")
    if subtitle:
        content.append(f"\n{subtitle}", style="dim")
    console.print(Panel(content, expand=False))


def print_error(message: str, hint: str | None = None) -> None:
    """Print formatted error message to stderr."""
    content = Text(f"ERROR: {message}", style="bold red")
    if hint:
        content.append(f"\n\nHint: {hint}", style="yellow")
    error_console.print(Panel(content, title="Error", border_style="red"))


def print_success(message: str) -> None:
    """Print success message."""
    console.print(Panel(message, title="Success", border_style="green"))


def print_failure(message: str, details: str | None = None) -> None:
    """Print failure message."""
    content = Text(message, style="bold red")
    if details:
        content.append(f"\n{details}", style="dim")
    console.print(Panel(content, title="Failed", border_style="red"))


def print_project_status(project: Project) -> None:
    """Print phases and sprints with their status and version counts."""
    print_header(project.name, f"{project.id} | owner: {project.owner or '-'}")

    table = Table(show_header=True, box=None)
    table.add_column("#", style="cyan", width=3)
    table.add_column("Phase / Sprint")
    table.add_column("ID", style="dim")
    table.add_column("Status")
    table.add_column("Versions", justify="right")

    for i, phase in enumerate(project.phases):
        table.add_row(
            str(i), phase.name, phase.id, _status(phase.status), str(len(phase.outputs))
        )
        for sprint in phase.sprints:
            table.add_row(
                "",
                f"  └ {sprint.name}",
                sprint.id,
                _status(sprint.status),
                str(len(sprint.outputs)),
            )
            if sprint.deliverables:
                table.add_row(
                    "", f"[dim]    deliverables: {', '.join(sprint.deliverables)}[/dim]"
                )

    console.print(table)
    seeded = "yes" if project.compacted_context else "no"
    console.print(f"\n[bold]Compacted context:[/bold] {seeded}")


def print_versions(label: str, versions: Sequence[VersionedOutput]) -> None:
    """Print the version list of a phase or sprint."""
    table = Table(title=label, show_header=True, box=None)
    table.add_column("Version", style="cyan", justify="right")
    table.add_column("Reason")
    table.add_column("Created")
    table.add_column("Size", justify="right")
    for entry in versions:
        table.add_row(
            str(entry.version),
            entry.reason.value,
            entry.created_at,
            f"{len(entry.content)} chars",
        )
    console.print(table)


def print_document(title: str, content: str) -> None:
    """Render Markdown content in a panel."""
    console.print(Panel(Markdown(content), title=title, border_style="blue"))


def print_review(phase_name: str, review: DesignReview) -> None:
    """Print a design review checklist."""
    console.print(f"\n[bold]Design review: {phase_name}[/bold] ({review.status.value})")
    for item in review.checklist:
        mark = "[green]✓[/green]" if item.checked else "[red]✗[/red]"
        console.print(f"  {mark} [cyan]{item.id}[/cyan] {item.text}")


def print_automation_result(result: AutomationResult) -> None:
    """Print the outcome of an automation run."""
    completed = ", ".join(result.completed_phases) or "(none)"
    details = f"Completed phases: {completed}\nOperations: {result.operations}"
    if result.status == AutomationStatus.COMPLETE:
        print_success(f"Project complete.\n{details}")
    elif result.status == AutomationStatus.ERROR:
        print_failure(
            f"Automation halted at '{result.failed_phase}': {result.error}", details
        )
    else:
        console.print(
            Panel(details, title=f"Automation {result.status.value}", border_style="yellow")
        )
