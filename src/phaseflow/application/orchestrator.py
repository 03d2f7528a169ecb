"""
Automation Orchestrator.

Drives a project to completion unattended by invoking the same lifecycle
operations a user would, in the same order:

- Single-document phase: generate, then complete
- Multi-document phase: generate sprints in order (expanding the sprint
  list when the seed batch is done), merge, then complete
- In-review phase: approve the checklist when allowed, otherwise stop

Responsibilities:
- Find the next operation from the project state
- Poll the stop flag between operations
- Halt on the first error and report it

Does NOT:
- Retry failed operations
- Skip ahead past a failed phase
"""

import logging
from dataclasses import dataclass

from phaseflow.application.event_emitter import LifecycleEventEmitter
from phaseflow.application.lifecycle import LifecycleService
from phaseflow.domain.cancellation import CancellationToken
from phaseflow.domain.exceptions import AutomationCancelled, LifecycleError
from phaseflow.domain.interfaces import (
    LifecycleEventStoreInterface,
    ProjectRepositoryInterface,
)
from phaseflow.domain.models import (
    AutomationStatus,
    Phase,
    PhaseStatus,
    Project,
    SprintStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AutomationResult:
    """Outcome of one automation run."""

    status: AutomationStatus
    completed_phases: tuple[str, ...]  # Phases completed during this run
    failed_phase: str | None = None
    error: str | None = None
    operations: int = 0  # Operations applied during this run

    @property
    def success(self) -> bool:
        return self.status == AutomationStatus.COMPLETE


class AutomationOrchestrator:
    """Cooperative driver advancing a project through its phases."""

    def __init__(
        self,
        lifecycle: LifecycleService,
        repository: ProjectRepositoryInterface | None = None,
        auto_approve_reviews: bool = False,
        event_store: LifecycleEventStoreInterface | None = None,
        max_operations: int | None = None,
    ):
        """
        Args:
            lifecycle: Service whose operations are invoked
            repository: When given, the project is leased for the run and
                saved after every operation
            auto_approve_reviews: Check every checklist item and approve
                open design reviews instead of stopping
            event_store: Optional store for automation start/stop events
            max_operations: Pause after this many operations (None = no limit)
        """
        self._lifecycle = lifecycle
        self._repository = repository
        self._auto_approve = auto_approve_reviews
        self._emitter = LifecycleEventEmitter(event_store) if event_store else None
        self._max_operations = max_operations
        self._token: CancellationToken | None = None
        self._status = AutomationStatus.IDLE

    @property
    def status(self) -> AutomationStatus:
        return self._status

    def stop(self, reason: str = "stop requested") -> None:
        """
        Request the running loop to stop.

        The loop exits before its next operation; a call already in flight
        is allowed to return but its result is discarded.
        """
        if self._token is not None:
            logger.info("Stop requested: %s", reason)
            self._token.cancel(reason)

    async def run(self, project: Project) -> AutomationResult:
        """
        Advance the project until it completes, fails, waits or is stopped.

        Args:
            project: The project aggregate to drive

        Returns:
            AutomationResult describing where the run ended

        Raises:
            ValidationError: If the project is already under automation,
                here or in another process sharing the repository
        """
        token = CancellationToken()
        self._lifecycle.begin_automation(project.id, token)
        if self._repository is not None:
            try:
                self._repository.acquire_lease(project.id)
            except LifecycleError:
                self._lifecycle.end_automation(project.id)
                raise
        self._token = token
        self._status = AutomationStatus.RUNNING
        if self._emitter:
            self._emitter.automation_started(project.id)
        logger.info("Automation started for project %s", project.id)

        try:
            result = await self._loop(project, token)
        finally:
            self._lifecycle.end_automation(project.id)
            if self._repository is not None:
                self._repository.release_lease(project.id)
            self._token = None

        self._status = result.status
        logger.info(
            "Automation for %s ended: %s (%d operations)",
            project.id,
            result.status.value,
            result.operations,
        )
        if self._emitter:
            self._emitter.automation_stopped(
                project.id, result.status.value, result.error or ""
            )
        return result

    async def _loop(self, project: Project, token: CancellationToken) -> AutomationResult:
        completed: list[str] = []
        operations = 0

        while True:
            if token.cancelled:
                return AutomationResult(
                    AutomationStatus.PAUSED, tuple(completed), operations=operations
                )
            if self._max_operations is not None and operations >= self._max_operations:
                return AutomationResult(
                    AutomationStatus.PAUSED, tuple(completed), operations=operations
                )

            phase = project.first_incomplete_phase()
            if phase is None:
                return AutomationResult(
                    AutomationStatus.COMPLETE, tuple(completed), operations=operations
                )

            if phase.status == PhaseStatus.IN_REVIEW and not self._auto_approve:
                logger.info("Phase %s is awaiting design review", phase.id)
                return AutomationResult(
                    AutomationStatus.AWAITING_REVIEW,
                    tuple(completed),
                    failed_phase=None,
                    operations=operations,
                )

            try:
                await self._step(project, phase, token)
            except AutomationCancelled as e:
                logger.info("Automation paused during %s: %s", phase.id, e)
                return AutomationResult(
                    AutomationStatus.PAUSED, tuple(completed), operations=operations
                )
            except LifecycleError as e:
                logger.error("Automation halted at %s: %s", phase.id, e)
                return AutomationResult(
                    AutomationStatus.ERROR,
                    tuple(completed),
                    failed_phase=phase.id,
                    error=str(e),
                    operations=operations,
                )

            operations += 1
            if phase.status == PhaseStatus.COMPLETED:
                completed.append(phase.id)
            if self._repository is not None:
                try:
                    self._repository.save(project)
                except LifecycleError as e:
                    logger.error("Automation could not save %s: %s", project.id, e)
                    return AutomationResult(
                        AutomationStatus.ERROR,
                        tuple(completed),
                        failed_phase=phase.id,
                        error=str(e),
                        operations=operations,
                    )

    async def _step(
        self, project: Project, phase: Phase, token: CancellationToken
    ) -> None:
        """Apply the single next operation for ``phase``."""
        lifecycle = self._lifecycle

        if phase.status == PhaseStatus.IN_REVIEW:
            review = phase.design_review
            for item in review.checklist if review else ():
                if not item.checked:
                    lifecycle.toggle_checklist_item(
                        project, phase.id, item.id, checked=True, cancel=token
                    )
            lifecycle.finalize_review(project, phase.id, cancel=token)
            return

        if not phase.is_multi_document:
            if not phase.outputs:
                await lifecycle.generate_phase(project, phase.id, cancel=token)
            else:
                await lifecycle.mark_complete(project, phase.id, cancel=token)
            return

        if lifecycle.can_expand(phase):
            await lifecycle.expand_sprints(project, phase.id, cancel=token)
            return

        pending = next(
            (s for s in phase.sprints if s.status != SprintStatus.COMPLETED), None
        )
        if pending is not None:
            await lifecycle.generate_sprint(project, phase.id, pending.id, cancel=token)
            return

        if not lifecycle.is_merge_current(phase):
            await lifecycle.merge(project, phase.id, cancel=token)
            return

        await lifecycle.mark_complete(project, phase.id, cancel=token)
