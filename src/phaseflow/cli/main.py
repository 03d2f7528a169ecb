"""PhaseFlow command line.

Usage:
    phaseflow new "Solar Pump" --requirements "..." --constraints "..." -d mechanical
    phaseflow status <project-id>
    phaseflow generate <project-id> feasibility-study
    phaseflow generate <project-id> requirements --sprint requirements-1
    phaseflow merge <project-id> requirements --complete
    phaseflow automate <project-id> --auto-approve
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import uuid
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, replace
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar

import click

from phaseflow.application.history import EntityRef, VersionBrowser
from phaseflow.application.lifecycle import LifecycleService
from phaseflow.application.orchestrator import AutomationOrchestrator
from phaseflow.cli import console as out
from phaseflow.cli.logging_setup import setup_logging
from phaseflow.config import LifecycleSettings, load_lifecycle_template
from phaseflow.domain.exceptions import LifecycleError, ValidationError
from phaseflow.domain.interfaces import GenerationServiceInterface
from phaseflow.domain.models import DevelopmentMode, Project
from phaseflow.domain.templates import create_project
from phaseflow.infrastructure.llm import OpenAIGenerationConfig
from phaseflow.infrastructure.persistence import (
    FilesystemLifecycleEventStore,
    FilesystemProjectRepository,
)
from phaseflow.infrastructure.registry import GenerationServiceRegistry

logger = logging.getLogger("phaseflow.cli")

F = TypeVar("F", bound=Callable[..., Any])


@dataclass
class CliState:
    """Objects shared by every command of one invocation."""

    settings: LifecycleSettings
    repository: FilesystemProjectRepository
    event_store: FilesystemLifecycleEventStore
    _service: GenerationServiceInterface | None = None

    @property
    def service(self) -> GenerationServiceInterface:
        if self._service is None:
            self._service = build_service(self.settings)
        return self._service

    def lifecycle(self) -> LifecycleService:
        return LifecycleService(
            self.service,
            call_timeout=self.settings.call_timeout,
            event_store=self.event_store,
        )

    def load(self, project_id: str) -> Project:
        try:
            return self.repository.load(project_id)
        except KeyError as e:
            raise click.ClickException(f"Project not found: {project_id}") from e

    def load_for_update(self, project_id: str) -> Project:
        """Load a project for a manual change; refused while automation holds it."""
        holder = self.repository.lease_holder(project_id)
        if holder is not None:
            raise ValidationError(
                f"Project '{project_id}' is under automation ({holder}); "
                "wait for the run to end or use 'phaseflow unlock'"
            )
        return self.load(project_id)


def build_service(settings: LifecycleSettings) -> GenerationServiceInterface:
    """Create the configured generation service."""
    if settings.backend == "openai":
        return GenerationServiceRegistry.create(
            "openai",
            config=OpenAIGenerationConfig(
                model=settings.model,
                base_url=settings.base_url,
                api_key_env=settings.api_key_env,
                timeout=settings.call_timeout,
            ),
        )
    return GenerationServiceRegistry.create(settings.backend)


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    return asyncio.run(coro)


def handle_errors(func: F) -> F:
    """Render lifecycle errors as rich panels and exit non-zero."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except LifecycleError as e:
            logger.debug("Command failed", exc_info=True)
            out.print_error(str(e))
            raise SystemExit(1) from e

    return wrapper  # type: ignore[return-value]


pass_state = click.make_pass_decorator(CliState)


@click.group()
@click.option("--store", default=None, type=click.Path(), help="Project store directory")
@click.option("--backend", default=None, help="Generation service name (openai, mock)")
@click.option("--model", default=None, help="Model name for the openai backend")
@click.option("--base-url", default=None, help="OpenAI-compatible endpoint URL")
@click.option("--timeout", default=None, type=float, help="Seconds per external call")
@click.option("--log-file", default=None, type=click.Path(), help="Path to log file")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose (DEBUG) logging")
@click.pass_context
@handle_errors
def cli(
    ctx: click.Context,
    store: str | None,
    backend: str | None,
    model: str | None,
    base_url: str | None,
    timeout: float | None,
    log_file: str | None,
    verbose: bool,
) -> None:
    """Drive engineering projects through their lifecycle phases."""
    setup_logging(verbose=verbose, log_file=log_file)

    settings = LifecycleSettings.from_env()
    overrides: dict[str, Any] = {
        "store_dir": store,
        "backend": backend,
        "model": model,
        "base_url": base_url,
        "call_timeout": timeout,
    }
    settings = replace(settings, **{k: v for k, v in overrides.items() if v is not None})

    store_dir = Path(settings.store_dir)
    ctx.obj = CliState(
        settings=settings,
        repository=FilesystemProjectRepository(store_dir),
        event_store=FilesystemLifecycleEventStore(store_dir),
    )


# =============================================================================
# PROJECT COMMANDS
# =============================================================================


@cli.command()
@click.argument("name")
@click.option("--requirements", "-r", default="", help="Baseline requirements")
@click.option("--constraints", "-c", default="", help="Project constraints")
@click.option("--discipline", "-d", "disciplines", multiple=True, help="Discipline (repeatable)")
@click.option("--owner", default="", help="Project owner")
@click.option("--rapid", is_flag=True, help="Rapid development mode (concise documents)")
@click.option("--template", default=None, type=click.Path(), help="Lifecycle template JSON")
@pass_state
@handle_errors
def new(
    state: CliState,
    name: str,
    requirements: str,
    constraints: str,
    disciplines: tuple[str, ...],
    owner: str,
    rapid: bool,
    template: str | None,
) -> None:
    """Create a project from a lifecycle template."""
    lifecycle = load_lifecycle_template(template or state.settings.template_path)
    project = create_project(
        project_id=uuid.uuid4().hex[:12],
        name=name,
        owner=owner,
        requirements=requirements,
        constraints=constraints,
        disciplines=disciplines,
        development_mode=DevelopmentMode.RAPID if rapid else DevelopmentMode.FULL,
        template=lifecycle,
    )
    state.repository.save(project)
    out.print_success(f"Created project '{name}' ({project.id})")
    out.print_project_status(project)


@cli.command(name="list")
@pass_state
def list_projects(state: CliState) -> None:
    """List stored projects."""
    ids = state.repository.list_ids()
    if not ids:
        out.console.print("No projects.")
    for project_id in ids:
        out.console.print(project_id)


@cli.command()
@click.argument("project_id")
@pass_state
@handle_errors
def status(state: CliState, project_id: str) -> None:
    """Show phase and sprint status."""
    out.print_project_status(state.load(project_id))


# =============================================================================
# LIFECYCLE COMMANDS
# =============================================================================


@cli.command()
@click.argument("project_id")
@click.argument("phase_id")
@click.option("--sprint", "sprint_id", default=None, help="Sprint to generate")
@click.option("--show", is_flag=True, help="Print the generated document")
@pass_state
@handle_errors
def generate(
    state: CliState, project_id: str, phase_id: str, sprint_id: str | None, show: bool
) -> None:
    """Generate (or regenerate) a phase or sprint document."""
    project = state.load_for_update(project_id)
    lifecycle = state.lifecycle()
    if sprint_id:
        entry = run_async(lifecycle.generate_sprint(project, phase_id, sprint_id))
    else:
        entry = run_async(lifecycle.generate_phase(project, phase_id))
    state.repository.save(project)
    label = f"{phase_id}/{sprint_id}" if sprint_id else phase_id
    out.print_success(f"{label}: version {entry.version} ({entry.reason.value})")
    if show:
        out.print_document(label, entry.content)


@cli.command()
@click.argument("project_id")
@click.argument("phase_id")
@click.option("--sprint", "sprint_id", default=None, help="Sprint to edit")
@click.option(
    "--file", "source", type=click.Path(exists=True, dir_okay=False), default=None,
    help="Read new content from a file (default: open an editor)",
)
@pass_state
@handle_errors
def edit(
    state: CliState,
    project_id: str,
    phase_id: str,
    sprint_id: str | None,
    source: str | None,
) -> None:
    """Save a manual edit as a new version."""
    project = state.load_for_update(project_id)
    if source:
        content = Path(source).read_text()
    else:
        browser = VersionBrowser(project)
        browser.select(EntityRef(phase_id, sprint_id))
        content = click.edit(browser.edit_buffer()) or ""
    if not content.strip():
        raise click.ClickException("Empty content; nothing saved")

    lifecycle = state.lifecycle()
    if sprint_id:
        entry = run_async(lifecycle.edit_sprint(project, phase_id, sprint_id, content))
    else:
        entry = run_async(lifecycle.edit_phase(project, phase_id, content))
    state.repository.save(project)
    out.print_success(f"Saved version {entry.version}")


@cli.command()
@click.argument("project_id")
@click.argument("phase_id")
@pass_state
@handle_errors
def complete(state: CliState, project_id: str, phase_id: str) -> None:
    """Mark a phase complete (or open its design review)."""
    project = state.load_for_update(project_id)
    new_status = run_async(state.lifecycle().mark_complete(project, phase_id))
    state.repository.save(project)
    out.print_success(f"{phase_id}: {new_status.value}")
    phase = project.get_phase(phase_id)
    if phase.design_review and phase.design_review.checklist:
        out.print_review(phase.name, phase.design_review)


@cli.command()
@click.argument("project_id")
@click.argument("phase_id")
@click.option("--complete", "and_complete", is_flag=True, help="Complete after merging")
@pass_state
@handle_errors
def merge(state: CliState, project_id: str, phase_id: str, and_complete: bool) -> None:
    """Merge completed sprints into the phase document."""
    project = state.load_for_update(project_id)
    lifecycle = state.lifecycle()
    try:
        if and_complete:
            new_status = run_async(lifecycle.merge_and_complete(project, phase_id))
            out.print_success(f"{phase_id}: merged, {new_status.value}")
        else:
            entry = run_async(lifecycle.merge(project, phase_id))
            out.print_success(f"{phase_id}: merged as version {entry.version}")
    finally:
        # merge_and_complete may apply the merge before completion fails
        state.repository.save(project)


@cli.command()
@click.argument("project_id")
@click.argument("phase_id")
@pass_state
@handle_errors
def expand(state: CliState, project_id: str, phase_id: str) -> None:
    """Append follow-up sprints proposed from the first sprint batch."""
    project = state.load_for_update(project_id)
    sprints = run_async(state.lifecycle().expand_sprints(project, phase_id))
    state.repository.save(project)
    out.print_success("Added sprints:\n" + "\n".join(f"- {s.id}: {s.name}" for s in sprints))


@cli.command()
@click.argument("project_id")
@click.argument("phase_id")
@click.option("--sprint", "sprint_id", default=None)
@click.option("--version", "version", type=int, default=None, help="Show this version")
@pass_state
@handle_errors
def history(
    state: CliState,
    project_id: str,
    phase_id: str,
    sprint_id: str | None,
    version: int | None,
) -> None:
    """List versions, or show one version's content."""
    browser = VersionBrowser(state.load(project_id))
    ref = EntityRef(phase_id, sprint_id)
    latest = browser.select(ref)
    if version is None:
        out.print_versions(ref.label, browser.versions())
        if latest is None:
            out.console.print("No versions yet.")
        return
    entry = browser.view(version)
    out.print_document(f"{ref.label} v{entry.version} ({entry.reason.value})", entry.content)


@cli.command()
@click.argument("project_id")
@click.argument("phase_id")
@click.argument("version_a", type=int)
@click.argument("version_b", type=int)
@click.option("--sprint", "sprint_id", default=None)
@pass_state
@handle_errors
def compare(
    state: CliState,
    project_id: str,
    phase_id: str,
    version_a: int,
    version_b: int,
    sprint_id: str | None,
) -> None:
    """Describe the differences between two versions."""
    project = state.load(project_id)
    description = run_async(
        state.lifecycle().compare(project, phase_id, version_a, version_b, sprint_id)
    )
    out.print_document(f"v{version_a} vs v{version_b}", description)


@cli.command()
@click.argument("project_id")
@click.argument("phase_id")
@click.option("--check", "checks", multiple=True, help="Toggle a checklist item (repeatable)")
@click.option("--finalize", is_flag=True, help="Approve the review and complete the phase")
@pass_state
@handle_errors
def review(
    state: CliState,
    project_id: str,
    phase_id: str,
    checks: tuple[str, ...],
    finalize: bool,
) -> None:
    """Work through a phase's design review checklist."""
    project = state.load_for_update(project_id)
    lifecycle = state.lifecycle()
    for item_id in checks:
        lifecycle.toggle_checklist_item(project, phase_id, item_id)
    if finalize:
        lifecycle.finalize_review(project, phase_id)
    state.repository.save(project)

    phase = project.get_phase(phase_id)
    if phase.design_review:
        out.print_review(phase.name, phase.design_review)
    if finalize:
        out.print_success(f"{phase_id}: {phase.status.value}")


@cli.command()
@click.argument("project_id")
@click.argument("phase_id")
@click.argument("key")
@click.argument("value", type=int)
@pass_state
@handle_errors
def tune(state: CliState, project_id: str, phase_id: str, key: str, value: int) -> None:
    """Set a phase tuning parameter (0-100)."""
    project = state.load_for_update(project_id)
    state.lifecycle().update_tuning(project, phase_id, key, value)
    state.repository.save(project)
    out.print_success(f"{phase_id}.{key} = {value}")


@cli.command()
@click.argument("project_id")
@click.option("--auto-approve", is_flag=True, help="Approve design reviews")
@click.option("--max-operations", type=int, default=None, help="Pause after N operations")
@pass_state
@handle_errors
def automate(
    state: CliState,
    project_id: str,
    auto_approve: bool,
    max_operations: int | None,
) -> None:
    """Advance the project unattended until done, blocked or failed."""
    project = state.load(project_id)
    approve = auto_approve or state.settings.auto_approve_reviews
    orchestrator = AutomationOrchestrator(
        state.lifecycle(),
        repository=state.repository,
        auto_approve_reviews=approve,
        event_store=state.event_store,
        max_operations=max_operations,
    )

    async def _run() -> Any:
        loop = asyncio.get_running_loop()
        # Ctrl-C stops after the in-flight call instead of killing the run
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signal.SIGINT, orchestrator.stop, "interrupted")
        return await orchestrator.run(project)

    out.print_header(f"Automating {project.name}", project.id)
    result = run_async(_run())
    out.print_automation_result(result)
    if result.status.value == "error":
        raise SystemExit(1)


@cli.command()
@click.argument("project_id")
@pass_state
@handle_errors
def unlock(state: CliState, project_id: str) -> None:
    """Remove the automation lease left behind by an interrupted run."""
    holder = state.repository.lease_holder(project_id)
    if holder is None:
        out.console.print(f"{project_id} is not under automation.")
        return
    state.repository.release_lease(project_id, force=True)
    out.print_success(f"Released automation lease ({holder})")


if __name__ == "__main__":
    cli()
