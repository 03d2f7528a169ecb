"""
LifecycleService: the phase and sprint operations of a project.

Every operation follows the same discipline:

1. Validate against the current state (ValidationError, nothing called).
2. Await the generation service, bounded by a timeout.
3. Check the cancellation token; a stopped run discards the result.
4. Apply the whole state delta synchronously.

Because nothing is mutated before step 4, a failure at any step leaves the
project exactly as it was. Mutating operations on the same phase or sprint
are serialized by a per-entity asyncio.Lock so version numbers stay
contiguous.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TypeVar

from phaseflow.application.context import ContextBuilder
from phaseflow.application.event_emitter import LifecycleEventEmitter
from phaseflow.application.merge import check_mergeable, compose, compose_phase
from phaseflow.domain.cancellation import CancellationToken
from phaseflow.domain.exceptions import (
    ContextSeedFailure,
    GenerationFailure,
    LifecycleError,
    ValidationError,
)
from phaseflow.domain.history import VersionedOutput, VersionReason
from phaseflow.domain.interfaces import (
    GenerationServiceInterface,
    LifecycleEventStoreInterface,
)
from phaseflow.domain.models import (
    Attachment,
    ChecklistItem,
    DesignReview,
    Phase,
    PhaseStatus,
    Project,
    ReviewStatus,
    Sprint,
    SprintStatus,
)
from phaseflow.domain.state_machine import (
    check_phase_transition,
    phase_path,
    transition_phase,
    transition_sprint,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CALL_TIMEOUT = 120.0
TUNING_RANGE = (0, 100)

# Phase statuses in which documents may still be generated or merged.
OPEN_STATUSES = frozenset({PhaseStatus.NOT_STARTED, PhaseStatus.IN_PROGRESS})


class LifecycleService:
    """
    Applies lifecycle operations to Project aggregates.

    The service holds no project state of its own; every operation takes
    the project it acts on. It does track which projects are currently
    driven by automation so the manual path cannot run concurrently.
    """

    def __init__(
        self,
        generation_service: GenerationServiceInterface,
        call_timeout: float | None = DEFAULT_CALL_TIMEOUT,
        event_store: LifecycleEventStoreInterface | None = None,
        context_builder: ContextBuilder | None = None,
    ):
        """
        Args:
            generation_service: Port used for every external call
            call_timeout: Seconds allowed per external call (None disables)
            event_store: Optional store for the lifecycle trace
            context_builder: Prompt assembly (default ContextBuilder)
        """
        self._service = generation_service
        self._timeout = call_timeout
        self._emitter = LifecycleEventEmitter(event_store) if event_store else None
        self._builder = context_builder or ContextBuilder()
        # (project_id, entity_id) -> lock and number of holders plus waiters
        self._locks: dict[tuple[str, str], tuple[asyncio.Lock, int]] = {}
        self._automation: dict[str, CancellationToken] = {}

    # =========================================================================
    # AUTOMATION EXCLUSIVITY
    # =========================================================================

    def begin_automation(self, project_id: str, token: CancellationToken) -> None:
        """
        Reserve a project for an automation run.

        Raises:
            ValidationError: If the project is already under automation
        """
        if project_id in self._automation:
            raise ValidationError(f"Project '{project_id}' is already under automation")
        self._automation[project_id] = token

    def end_automation(self, project_id: str) -> None:
        self._automation.pop(project_id, None)

    def is_automated(self, project_id: str) -> bool:
        return project_id in self._automation

    # =========================================================================
    # PHASE OPERATIONS
    # =========================================================================

    async def generate_phase(
        self,
        project: Project,
        phase_id: str,
        cancel: CancellationToken | None = None,
    ) -> VersionedOutput:
        """
        Generate (or regenerate) a single-document phase.

        Args:
            project: The project aggregate
            phase_id: Phase to generate
            cancel: Automation token (None for the manual path)

        Returns:
            The appended version

        Raises:
            ValidationError: If the phase is not eligible or has sprints
            GenerationFailure: If the service fails or times out
            AutomationCancelled: If a stop arrived during the call
        """
        phase = self._phase(project, phase_id)
        async with self._lock(project, phase.id):
            self._check_access(project, cancel, "generate")
            self._require_eligible(project, phase)
            if phase.is_multi_document:
                raise ValidationError(
                    f"Phase '{phase.id}' is multi-document; generate its sprints"
                )
            check_phase_transition(phase, PhaseStatus.IN_PROGRESS)

            request = self._builder.phase_request(project, phase)
            logger.debug(
                "Generating phase %s (prompt %d chars, context %d chars)",
                phase.id,
                len(request.prompt),
                len(request.context),
            )
            content = await self._call(
                project,
                phase.id,
                "generate",
                self._service.generate(
                    request.prompt, request.context, dict(request.tuning_settings)
                ),
                cancel,
            )

            entry = phase.outputs.append(content, phase.outputs.next_generation_reason())
            previous = phase.status
            transition_phase(phase, PhaseStatus.IN_PROGRESS)
            self._record_version(project, phase.id, entry)
            self._record_status(project, phase.id, previous, phase.status)
            return entry

    async def edit_phase(
        self,
        project: Project,
        phase_id: str,
        content: str,
        cancel: CancellationToken | None = None,
    ) -> VersionedOutput:
        """Append a manual edit. Status is never changed."""
        phase = self._phase(project, phase_id)
        async with self._lock(project, phase.id):
            self._check_access(project, cancel, "edit")
            if not phase.is_editable:
                raise ValidationError(f"Phase '{phase.id}' is not editable")
            entry = phase.outputs.append(content, VersionReason.MANUAL_EDIT)
            self._record_version(project, phase.id, entry)
            return entry

    async def mark_complete(
        self,
        project: Project,
        phase_id: str,
        cancel: CancellationToken | None = None,
    ) -> PhaseStatus:
        """
        Complete a phase, or open its design review.

        Phases without a required review move straight to completed. Phases
        with one get a checklist from the generation service and move to
        in-review; completion then happens through ``finalize_review``.
        A phase holding only manual edits is started on the way.

        Returns:
            The phase status after the call

        Raises:
            ValidationError: If the phase has no output or cannot move on
            MergeIncompleteError: If a multi-document phase has open sprints
            GenerationFailure: If the checklist could not be produced
        """
        phase = self._phase(project, phase_id)
        async with self._lock(project, phase.id):
            self._check_access(project, cancel, "complete")
            self._require_eligible(project, phase)
            latest = phase.outputs.latest
            if latest is None:
                raise ValidationError(
                    f"Phase '{phase.id}' has no output; generate or edit it first"
                )
            if phase.is_multi_document:
                check_mergeable(phase)

            if not phase.review_required:
                self._advance(project, phase, PhaseStatus.COMPLETED)
                logger.info("Phase %s completed", phase.id)
                return phase.status

            phase_path(phase, PhaseStatus.IN_REVIEW)
            items = await self._call(
                project,
                phase.id,
                "review_checklist",
                self._service.review_checklist(latest.content),
                cancel,
            )
            checklist = self._normalize_checklist(items)
            if not checklist:
                self._fail(project, phase.id, "review_checklist", "empty checklist")
                raise GenerationFailure(
                    "Generation service returned an empty review checklist",
                    "review_checklist",
                )

            phase.design_review = DesignReview(
                required=True,
                checklist=checklist,
                status=ReviewStatus.IN_REVIEW,
                review_start_date=_now(),
            )
            self._advance(project, phase, PhaseStatus.IN_REVIEW)
            logger.info(
                "Phase %s in review (%d checklist items)", phase.id, len(checklist)
            )
            if self._emitter:
                self._emitter.review_started(project.id, phase.id, len(checklist))
            return phase.status

    def toggle_checklist_item(
        self,
        project: Project,
        phase_id: str,
        item_id: str,
        checked: bool | None = None,
        cancel: CancellationToken | None = None,
    ) -> ChecklistItem:
        """Flip (or set) one review checklist item of an in-review phase."""
        phase = self._phase(project, phase_id)
        self._check_access(project, cancel, "review")
        review = self._open_review(phase)

        items = list(review.checklist)
        for i, item in enumerate(items):
            if item.id == item_id:
                new_value = (not item.checked) if checked is None else checked
                items[i] = ChecklistItem(id=item.id, text=item.text, checked=new_value)
                review.checklist = tuple(items)
                return items[i]
        raise ValidationError(f"Checklist item '{item_id}' not found in '{phase.id}'")

    def finalize_review(
        self,
        project: Project,
        phase_id: str,
        cancel: CancellationToken | None = None,
    ) -> PhaseStatus:
        """
        Approve an in-review phase and complete it.

        Raises:
            ValidationError: If the phase is not in review or items are unchecked
        """
        phase = self._phase(project, phase_id)
        self._check_access(project, cancel, "review")
        review = self._open_review(phase)
        unchecked = [item.id for item in review.checklist if not item.checked]
        if unchecked or not review.checklist:
            raise ValidationError(
                f"Review of '{phase.id}' has unchecked items: {', '.join(unchecked)}"
            )

        previous = phase.status
        transition_phase(phase, PhaseStatus.COMPLETED)
        review.status = ReviewStatus.APPROVED
        logger.info("Review approved, phase %s completed", phase.id)
        self._record_status(project, phase.id, previous, phase.status)
        if self._emitter:
            self._emitter.review_approved(project.id, phase.id)
        return phase.status

    def update_tuning(
        self,
        project: Project,
        phase_id: str,
        key: str,
        value: int,
        cancel: CancellationToken | None = None,
    ) -> None:
        """Set one tuning parameter from the phase's enumerated key set."""
        phase = self._phase(project, phase_id)
        self._check_access(project, cancel, "tune")
        if phase.status == PhaseStatus.COMPLETED:
            raise ValidationError(f"Phase '{phase.id}' is completed")
        if key not in phase.tuning_settings:
            allowed = ", ".join(sorted(phase.tuning_settings)) or "(none)"
            raise ValidationError(
                f"Unknown tuning key '{key}' for '{phase.id}'. Allowed: {allowed}"
            )
        low, high = TUNING_RANGE
        if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
            raise ValidationError(f"Tuning value must be an integer in [{low}, {high}]")
        phase.tuning_settings[key] = value

    # =========================================================================
    # SPRINT OPERATIONS
    # =========================================================================

    async def generate_sprint(
        self,
        project: Project,
        phase_id: str,
        sprint_id: str,
        cancel: CancellationToken | None = None,
    ) -> VersionedOutput:
        """
        Generate (or regenerate) one sprint document.

        A sprint is locked until the sprint before it is completed. The
        first successful generation completes the sprint; the phase moves
        from not-started to in-progress. In a deliverable-tracking phase,
        sprints past the seed batch also replace their deliverables list.

        Raises:
            ValidationError: If the sprint is locked or the phase is closed
            GenerationFailure: If the service fails or times out
            AutomationCancelled: If a stop arrived during the call
        """
        phase = self._phase(project, phase_id)
        sprint = self._sprint(phase, sprint_id)
        async with self._lock(project, sprint.id):
            self._check_access(project, cancel, "generate")
            self._require_eligible(project, phase)
            self._require_open(phase)
            index = phase.sprint_index(sprint.id)
            if index > 0 and phase.sprints[index - 1].status != SprintStatus.COMPLETED:
                raise ValidationError(
                    f"Sprint '{sprint.id}' is locked until "
                    f"'{phase.sprints[index - 1].name}' is completed"
                )

            request = self._builder.sprint_request(project, phase, sprint)
            tuning = dict(request.tuning_settings)
            deliverables: tuple[str, ...] | None = None
            if phase.specifies_deliverables(sprint.id):
                specification = await self._call(
                    project,
                    sprint.id,
                    "specify_sprint",
                    self._service.specify_sprint(request.prompt, request.context, tuning),
                    cancel,
                )
                content = specification.content
                deliverables = tuple(specification.deliverables)
            else:
                content = await self._call(
                    project,
                    sprint.id,
                    "generate",
                    self._service.generate(request.prompt, request.context, tuning),
                    cancel,
                )
            # The phase may have been closed while the call was in flight.
            self._require_open(phase)

            entry = sprint.outputs.append(content, sprint.outputs.next_generation_reason())
            if deliverables is not None:
                sprint.deliverables = deliverables
            self._record_version(project, sprint.id, entry)
            if sprint.status != SprintStatus.COMPLETED:
                previous_sprint = sprint.status
                transition_sprint(sprint, SprintStatus.COMPLETED)
                self._record_status(project, sprint.id, previous_sprint, sprint.status)
            if phase.status == PhaseStatus.NOT_STARTED:
                transition_phase(phase, PhaseStatus.IN_PROGRESS)
                self._record_status(
                    project, phase.id, PhaseStatus.NOT_STARTED, phase.status
                )
            logger.info("Sprint %s generated (v%d)", sprint.id, entry.version)
            return entry

    async def edit_sprint(
        self,
        project: Project,
        phase_id: str,
        sprint_id: str,
        content: str,
        cancel: CancellationToken | None = None,
    ) -> VersionedOutput:
        """Append a manual edit to a sprint. Status is never changed."""
        phase = self._phase(project, phase_id)
        sprint = self._sprint(phase, sprint_id)
        async with self._lock(project, sprint.id):
            self._check_access(project, cancel, "edit")
            if not phase.is_editable:
                raise ValidationError(f"Phase '{phase.id}' is not editable")
            entry = sprint.outputs.append(content, VersionReason.MANUAL_EDIT)
            self._record_version(project, sprint.id, entry)
            return entry

    def update_sprint_notes(
        self,
        project: Project,
        phase_id: str,
        sprint_id: str,
        notes: str,
        cancel: CancellationToken | None = None,
    ) -> None:
        sprint = self._sprint(self._phase(project, phase_id), sprint_id)
        self._check_access(project, cancel, "notes")
        sprint.notes = notes

    def add_attachment(
        self,
        project: Project,
        phase_id: str,
        sprint_id: str,
        name: str,
        mime_type: str = "application/octet-stream",
        cancel: CancellationToken | None = None,
    ) -> Attachment:
        """Attach a file reference to a sprint. Only its name reaches prompts."""
        sprint = self._sprint(self._phase(project, phase_id), sprint_id)
        self._check_access(project, cancel, "attach")
        if not name.strip():
            raise ValidationError("Attachment name must not be empty")
        attachment = Attachment(name=name, mime_type=mime_type)
        sprint.attachments = (*sprint.attachments, attachment)
        return attachment

    async def expand_sprints(
        self,
        project: Project,
        phase_id: str,
        cancel: CancellationToken | None = None,
    ) -> list[Sprint]:
        """
        Append follow-up sprints seeded from the phase's first sprint batch.

        Allowed once per phase, after the first ``expansion_after`` sprints
        are completed. Existing sprints are never removed or reordered.

        Returns:
            The appended sprints

        Raises:
            ValidationError: If the phase does not expand, already did, or
                its seed batch is not completed
            GenerationFailure: If the service fails or proposes nothing
        """
        phase = self._phase(project, phase_id)
        async with self._lock(project, phase.id):
            self._check_access(project, cancel, "expand")
            self._require_eligible(project, phase)
            self._require_open(phase)
            if not self.can_expand(phase):
                raise ValidationError(
                    f"Phase '{phase.id}' cannot expand its sprints now"
                )

            seed_batch = phase.sprints[: phase.expansion_after]
            seeds = await self._call(
                project,
                phase.id,
                "expand_sprints",
                self._service.expand_sprints(compose(seed_batch)),
                cancel,
            )
            if not seeds:
                self._fail(project, phase.id, "expand_sprints", "no sprints proposed")
                raise GenerationFailure(
                    "Generation service proposed no sprints", "expand_sprints"
                )
            self._require_open(phase)

            new_sprints = [
                Sprint(
                    id=f"{phase.id}-dev-{i}",
                    name=seed.name,
                    description=seed.description,
                )
                for i, seed in enumerate(seeds)
            ]
            phase.sprints.extend(new_sprints)
            phase.sprints_expanded = True
            logger.info("Phase %s expanded with %d sprints", phase.id, len(new_sprints))
            if self._emitter:
                self._emitter.sprints_expanded(
                    project.id, phase.id, [s.name for s in new_sprints]
                )
            return new_sprints

    def can_expand(self, phase: Phase) -> bool:
        """True when the phase's one-time sprint expansion is available."""
        n = phase.expansion_after
        if n is None or phase.sprints_expanded or len(phase.sprints) < n:
            return False
        return all(s.status == SprintStatus.COMPLETED for s in phase.sprints[:n])

    # =========================================================================
    # MERGE
    # =========================================================================

    async def merge(
        self,
        project: Project,
        phase_id: str,
        cancel: CancellationToken | None = None,
    ) -> VersionedOutput:
        """
        Merge all sprint outputs into a new phase version.

        For a context-seeding phase the merged content is also summarized
        into ``project.compacted_context`` (overwrite). Summarization runs
        before anything is applied, so a failure leaves the phase and the
        compacted context untouched.

        Raises:
            ValidationError: If the phase has no sprints or is closed
            MergeIncompleteError: If any sprint is not completed
            ContextSeedFailure: If summarization fails
        """
        phase = self._phase(project, phase_id)
        async with self._lock(project, phase.id):
            self._check_access(project, cancel, "merge")
            self._require_eligible(project, phase)
            self._require_open(phase)
            content = compose_phase(phase)

            summary: str | None = None
            if phase.seeds_context:
                try:
                    summary = await self._call(
                        project,
                        phase.id,
                        "summarize",
                        self._service.summarize(
                            self._builder.seed_input(project, phase, content)
                        ),
                        cancel,
                    )
                except GenerationFailure as e:
                    raise ContextSeedFailure(phase.id, str(e)) from e
                if not summary.strip():
                    self._fail(project, phase.id, "summarize", "empty summary")
                    raise ContextSeedFailure(phase.id, "summary was empty")

            entry = phase.outputs.append(content, VersionReason.MERGE)
            previous = phase.status
            transition_phase(phase, PhaseStatus.IN_PROGRESS)
            if summary is not None:
                project.compacted_context = summary
            logger.info(
                "Phase %s merged %d sprints (v%d)",
                phase.id,
                len(phase.sprints),
                entry.version,
            )
            self._record_version(project, phase.id, entry)
            self._record_status(project, phase.id, previous, phase.status)
            if summary is not None and self._emitter:
                self._emitter.context_seeded(project.id, phase.id, len(summary))
            return entry

    async def merge_and_complete(
        self,
        project: Project,
        phase_id: str,
        cancel: CancellationToken | None = None,
    ) -> PhaseStatus:
        """Merge, then run ``mark_complete`` on the merged phase."""
        await self.merge(project, phase_id, cancel)
        return await self.mark_complete(project, phase_id, cancel)

    def is_merge_current(self, phase: Phase) -> bool:
        """True when the latest phase version is the merge of the current sprints."""
        latest = phase.outputs.latest
        if latest is None or latest.reason != VersionReason.MERGE:
            return False
        try:
            return latest.content == compose_phase(phase)
        except LifecycleError:
            return False

    # =========================================================================
    # COMPARISON
    # =========================================================================

    async def compare(
        self,
        project: Project,
        phase_id: str,
        version_a: int,
        version_b: int,
        sprint_id: str | None = None,
    ) -> str:
        """
        Describe the differences between two versions of a phase or sprint.

        Read-only: the version lists are never touched.

        Raises:
            ValidationError: If either version does not exist
            GenerationFailure: If the service fails or times out
        """
        phase = self._phase(project, phase_id)
        owner: Phase | Sprint = self._sprint(phase, sprint_id) if sprint_id else phase
        a = owner.outputs.get(version_a)
        b = owner.outputs.get(version_b)
        return await self._call(
            project,
            owner.id,
            "compare",
            self._service.compare(a.content, b.content, a.reason.value, b.reason.value),
            None,
        )

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @asynccontextmanager
    async def _lock(self, project: Project, entity_id: str) -> AsyncIterator[None]:
        """Serialize work on one entity; the lock is dropped once nobody uses it."""
        key = (project.id, entity_id)
        lock, users = self._locks.get(key, (asyncio.Lock(), 0))
        self._locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[key]
            if users == 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    @property
    def active_locks(self) -> int:
        """Number of entities with an operation running or waiting."""
        return len(self._locks)

    def _advance(self, project: Project, phase: Phase, target: PhaseStatus) -> None:
        for step in phase_path(phase, target):
            previous = phase.status
            transition_phase(phase, step)
            self._record_status(project, phase.id, previous, step)

    def _phase(self, project: Project, phase_id: str) -> Phase:
        try:
            return project.get_phase(phase_id)
        except KeyError as e:
            raise ValidationError(str(e.args[0])) from e

    def _sprint(self, phase: Phase, sprint_id: str) -> Sprint:
        try:
            return phase.get_sprint(sprint_id)
        except KeyError as e:
            raise ValidationError(str(e.args[0])) from e

    def _check_access(
        self, project: Project, cancel: CancellationToken | None, operation: str
    ) -> None:
        owner = self._automation.get(project.id)
        if owner is not None and cancel is not owner:
            raise ValidationError(
                f"Project '{project.id}' is under automation; stop it before '{operation}'"
            )
        if cancel is not None:
            cancel.raise_if_cancelled(operation)

    def _require_eligible(self, project: Project, phase: Phase) -> None:
        if not project.is_phase_eligible(phase.id):
            raise ValidationError(
                f"Phase '{phase.id}' is locked until every earlier phase is completed"
            )

    def _require_open(self, phase: Phase) -> None:
        if phase.status not in OPEN_STATUSES:
            raise ValidationError(f"Phase '{phase.id}' is {phase.status.value}")

    def _open_review(self, phase: Phase) -> DesignReview:
        review = phase.design_review
        if phase.status != PhaseStatus.IN_REVIEW or review is None:
            raise ValidationError(f"Phase '{phase.id}' is not in review")
        return review

    def _normalize_checklist(
        self, items: list[ChecklistItem]
    ) -> tuple[ChecklistItem, ...]:
        """Force every item unchecked and make ids unique."""
        seen: set[str] = set()
        result = []
        for i, item in enumerate(items):
            item_id = item.id or f"item-{i + 1}"
            if item_id in seen:
                item_id = f"{item_id}-{i + 1}"
            seen.add(item_id)
            result.append(ChecklistItem(id=item_id, text=item.text, checked=False))
        return tuple(result)

    async def _call(
        self,
        project: Project,
        entity_id: str,
        operation: str,
        call: Awaitable[T],
        cancel: CancellationToken | None,
    ) -> T:
        """
        Await an external call under the timeout, then poll cancellation.

        Raises:
            GenerationFailure: On timeout or any error from the service
            AutomationCancelled: If a stop arrived while the call was in flight
        """
        try:
            result = await asyncio.wait_for(call, timeout=self._timeout)
        except TimeoutError as e:
            message = f"{operation} timed out after {self._timeout}s"
            self._fail(project, entity_id, operation, message)
            raise GenerationFailure(message, operation) from e
        except LifecycleError as e:
            self._fail(project, entity_id, operation, str(e))
            raise
        except Exception as e:
            message = str(e) or type(e).__name__
            self._fail(project, entity_id, operation, message)
            raise GenerationFailure(message, operation) from e

        if cancel is not None and cancel.cancelled:
            logger.warning("Discarding %s result for %s: stopped", operation, entity_id)
            cancel.raise_if_cancelled(operation)
        return result

    def _fail(self, project: Project, entity_id: str, operation: str, message: str) -> None:
        logger.warning("%s failed for %s: %s", operation, entity_id, message)
        if self._emitter:
            self._emitter.operation_failed(project.id, entity_id, operation, message)

    def _record_version(
        self, project: Project, entity_id: str, entry: VersionedOutput
    ) -> None:
        logger.info("%s: v%d (%s)", entity_id, entry.version, entry.reason.value)
        if self._emitter:
            self._emitter.version_appended(project.id, entity_id, entry)

    def _record_status(
        self,
        project: Project,
        entity_id: str,
        previous: PhaseStatus | SprintStatus,
        current: PhaseStatus | SprintStatus,
    ) -> None:
        if self._emitter:
            self._emitter.status_changed(
                project.id, entity_id, previous.value, current.value
            )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
