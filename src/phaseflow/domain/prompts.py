"""
Prompt definitions for document generation.

This module provides:
- PromptTemplate: Structured prompt rendering
- DOCUMENT_TASKS: Task text for the documents of the default lifecycle

These are domain structures only. The project context that accompanies a
prompt is assembled in the application layer.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from types import MappingProxyType

# =============================================================================
# PROMPT TEMPLATE
# =============================================================================

VALIDATION_FOOTER = (
    "At the very end of the document, add a '## Validation' section containing "
    "a single specific goal for this document and a short checklist (3-5 items) "
    "to verify the goal has been met."
)

RAPID_MODE_CONSTRAINT = (
    "Rapid development mode: keep the document concise and focus on the "
    "decisions needed to move forward."
)


@dataclass(frozen=True)
class PromptTemplate:
    """Structured prompt template for the generation service.

    ``role``, ``constraints`` and ``task`` may contain ``str.format``
    placeholders filled by ``render``.
    """

    role: str
    constraints: str
    task: str

    def render(
        self,
        notes: str = "",
        attachments: Sequence[str] = (),
        **values: str,
    ) -> str:
        """Render prompt sections, skipping empty ones."""
        parts = [
            f"# ROLE\n{self.role.format(**values)}",
            f"# CONSTRAINTS\n{self.constraints.format(**values)}",
        ]

        if notes:
            parts.append(
                "# NOTES (incorporate these specific intents)\n" + notes.strip()
            )

        if attachments:
            listing = "\n".join(f"- {name}" for name in attachments)
            parts.append(
                "# ATTACHMENTS (file names only, contents unavailable)\n" + listing
            )

        parts.append(f"# TASK\n{self.task.format(**values)}")
        return "\n\n".join(parts)


PHASE_TEMPLATE = PromptTemplate(
    role=(
        "You are an expert engineering assistant with deep expertise in "
        "{disciplines}. You write the '{phase}' document of an engineering "
        "project lifecycle."
    ),
    constraints=(
        "Output professional, well-structured Markdown. Use terminology "
        "appropriate for the listed disciplines and respect the tuning "
        "parameters. " + VALIDATION_FOOTER
    ),
    task="{task}",
)

SPRINT_TEMPLATE = PromptTemplate(
    role=(
        "You are an expert engineering assistant with deep expertise in "
        "{disciplines}. You write the '{sprint}' document of the '{phase}' phase."
    ),
    constraints=(
        "Output professional, well-structured Markdown. Build on the previous "
        "documents of this phase. " + VALIDATION_FOOTER
    ),
    task="{task}",
)


# =============================================================================
# DOCUMENT TASKS
# =============================================================================

# (phase name, sprint name or "") -> task text
DOCUMENT_TASKS: MappingProxyType[tuple[str, str], str] = MappingProxyType(
    {
        ("Feasibility Study", ""): (
            "Assess market demand, technical feasibility, economic viability and "
            "the political, economic, social and technological environment of "
            "the project. Conclude with a go/no-go recommendation."
        ),
        ("Requirements", "Project Scope"): (
            "Write the Project Scope. Begin with an Introduction followed by "
            "Project Objectives, then in-scope and out-of-scope items."
        ),
        ("Requirements", "Statement of Work (SOW)"): (
            "Write a formal Statement of Work covering deliverables, "
            "milestones, acceptance criteria and responsibilities."
        ),
        ("Requirements", "Technical Requirements Specification"): (
            "Write a Technical Requirements Specification with numbered, "
            "verifiable functional and non-functional requirements."
        ),
        ("Preliminary Design", "Conceptual Design Options"): (
            "Describe at least three distinct high-level design concepts with "
            "their principal advantages and risks."
        ),
        ("Preliminary Design", "Trade Study Analysis"): (
            "Compare the conceptual design options against weighted criteria "
            "and recommend one."
        ),
        ("Preliminary Design", "Design Review Checklist"): (
            "Based on all previous documents of this phase, write a design "
            "review checklist of specific, verifiable questions that confirm "
            "the preliminary design is ready for critical design."
        ),
        ("Critical Design", "Preliminary Specification"): (
            "Write the preliminary technical specification: system breakdown, "
            "component specifications, interfaces and failure modes. It is the "
            "baseline the development sprints of this phase are planned from."
        ),
        ("Testing", "Verification Plan"): (
            "Write a Verification Plan tracing each requirement to a test "
            "method, environment and pass criterion."
        ),
        ("Testing", "Validation Plan"): (
            "Write a Validation Plan describing how the delivered system will "
            "be shown to meet user needs in its operating environment."
        ),
        ("Launch", ""): (
            "Write the launch plan: rollout stages, rollback procedure, "
            "coordination and user training."
        ),
        ("Operation", ""): (
            "Write the operations plan: monitoring, preventative maintenance, "
            "support protocol and incident response."
        ),
        ("Improvement", ""): (
            "Write the improvement plan: feedback collection, performance "
            "analysis, feature roadmap and competitive landscape."
        ),
    }
)


def document_task(phase_name: str, sprint_name: str = "", description: str = "") -> str:
    """Task text for a document, falling back to its description."""
    task = DOCUMENT_TASKS.get((phase_name, sprint_name))
    if task:
        return task
    title = sprint_name or phase_name
    return f'Write the document titled "{title}" with this objective: {description}'
