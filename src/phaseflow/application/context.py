"""
ContextBuilder: prompt and context assembly for generation requests.

The compacted context produced by a context-seeding phase replaces the raw
documents of that phase in every later prompt. Other completed phases
contribute their latest output.
"""

from dataclasses import dataclass

from phaseflow.domain.models import DevelopmentMode, Phase, PhaseStatus, Project, Sprint
from phaseflow.domain.prompts import (
    PHASE_TEMPLATE,
    RAPID_MODE_CONSTRAINT,
    SPRINT_TEMPLATE,
    document_task,
)

SECTION_SEPARATOR = "\n\n---\n\n"


@dataclass(frozen=True)
class GenerationRequest:
    """Arguments for one call to the generation service."""

    prompt: str
    context: str
    tuning_settings: tuple[tuple[str, int], ...]


class ContextBuilder:
    """Builds generation requests from the current project state."""

    def base_context(self, project: Project) -> str:
        """Project header shared by every prompt."""
        disciplines = ", ".join(project.disciplines) or "general engineering"
        return (
            f"## Project: {project.name}\n"
            f"### Development Mode: {project.development_mode.value}\n"
            f"### Disciplines: {disciplines}\n"
            f"### Requirements:\n{project.requirements}\n"
            f"### Constraints:\n{project.constraints}"
        )

    def project_context(self, project: Project, phase: Phase) -> str:
        """
        Context from the phases before ``phase``.

        Args:
            project: The project aggregate
            phase: The phase being generated

        Returns:
            Compacted context (if seeded) followed by the latest output of
            each earlier completed phase. Context-seeding phases are left
            out once their compacted context exists.
        """
        index = project.phase_index(phase.id)
        parts = [self.base_context(project)]

        if project.compacted_context:
            parts.append(f"## COMPACTED PROJECT CONTEXT:\n{project.compacted_context}")

        for previous in project.phases[:index]:
            if previous.status != PhaseStatus.COMPLETED or previous.outputs.latest is None:
                continue
            if previous.seeds_context and project.compacted_context:
                continue
            parts.append(
                f"## Context from Previous Phase ({previous.name}):\n"
                f"{previous.outputs.latest.content}"
            )

        return SECTION_SEPARATOR.join(parts)

    def previous_sprints_context(self, phase: Phase, sprint: Sprint) -> str:
        """Latest output of each sprint before ``sprint`` in the phase."""
        index = phase.sprint_index(sprint.id)
        blocks = [
            f"## Context from Previous Document ({s.name}):\n{s.outputs.latest.content}"
            for s in phase.sprints[:index]
            if s.outputs.latest is not None
        ]
        return SECTION_SEPARATOR.join(blocks)

    def _format_values(self, project: Project, phase: Phase) -> dict[str, str]:
        return {
            "disciplines": ", ".join(project.disciplines) or "general engineering",
            "phase": phase.name,
        }

    def phase_request(self, project: Project, phase: Phase) -> GenerationRequest:
        """Request for a single-document phase."""
        task = document_task(phase.name, description=phase.description)
        if project.development_mode == DevelopmentMode.RAPID:
            task = f"{task}\n\n{RAPID_MODE_CONSTRAINT}"
        prompt = PHASE_TEMPLATE.render(
            task=task,
            **self._format_values(project, phase),
        )
        return GenerationRequest(
            prompt=prompt,
            context=self.project_context(project, phase),
            tuning_settings=tuple(phase.tuning_settings.items()),
        )

    def sprint_request(
        self, project: Project, phase: Phase, sprint: Sprint
    ) -> GenerationRequest:
        """Request for one sprint document, including its notes and attachments."""
        task = document_task(phase.name, sprint.name, sprint.description)
        if project.development_mode == DevelopmentMode.RAPID:
            task = f"{task}\n\n{RAPID_MODE_CONSTRAINT}"
        prompt = SPRINT_TEMPLATE.render(
            notes=sprint.notes,
            attachments=[f"{a.name} ({a.mime_type})" for a in sprint.attachments],
            task=task,
            sprint=sprint.name,
            **self._format_values(project, phase),
        )
        context = self.project_context(project, phase)
        previous = self.previous_sprints_context(phase, sprint)
        if previous:
            context = f"{context}{SECTION_SEPARATOR}{previous}"
        return GenerationRequest(
            prompt=prompt,
            context=context,
            tuning_settings=tuple(phase.tuning_settings.items()),
        )

    def seed_input(self, project: Project, phase: Phase, merged: str) -> str:
        """Content handed to the summarizer when seeding the compacted context."""
        return (
            f"{self.base_context(project)}\n\n"
            f"## {phase.name} Phase Documentation:\n\n{merged}"
        )
