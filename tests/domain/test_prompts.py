"""Tests for prompt templates and document tasks."""

from phaseflow.domain.prompts import (
    DOCUMENT_TASKS,
    PHASE_TEMPLATE,
    VALIDATION_FOOTER,
    PromptTemplate,
    document_task,
)
from phaseflow.domain.templates import DEFAULT_LIFECYCLE


class TestPromptTemplate:
    def test_render_without_notes_or_attachments(self):
        template = PromptTemplate(role="R {x}", constraints="C", task="T {x}")

        rendered = template.render(x="1")

        assert rendered == "# ROLE\nR 1\n\n# CONSTRAINTS\nC\n\n# TASK\nT 1"

    def test_render_notes_and_attachments_before_task(self):
        template = PromptTemplate(role="R", constraints="C", task="T")

        rendered = template.render(notes="  be brief ", attachments=["a.pdf", "b.png"])

        assert "# NOTES (incorporate these specific intents)\nbe brief" in rendered
        assert "- a.pdf\n- b.png" in rendered
        assert rendered.index("# ATTACHMENTS") < rendered.index("# TASK")

    def test_phase_template_asks_for_validation_section(self):
        rendered = PHASE_TEMPLATE.render(disciplines="civil", phase="Launch", task="go")

        assert VALIDATION_FOOTER in rendered
        assert "'Launch'" in rendered


class TestDocumentTasks:
    def test_every_default_document_has_a_task(self):
        for phase in DEFAULT_LIFECYCLE.phases:
            names = [s.name for s in phase.sprints] or [""]
            for sprint_name in names:
                assert (phase.name, sprint_name) in DOCUMENT_TASKS

    def test_unknown_document_falls_back_to_description(self):
        task = document_task("Custom", "Bench Test", "Measure flow rate")

        assert task == (
            'Write the document titled "Bench Test" with this objective: '
            "Measure flow rate"
        )
