"""Tests for lifecycle templates and project creation."""

import pytest

from phaseflow.domain.models import DevelopmentMode, PhaseStatus, SprintStatus
from phaseflow.domain.templates import (
    DEFAULT_LIFECYCLE,
    TEMPLATES,
    create_project,
    slugify,
)


class TestDefaultLifecycle:
    def test_phase_order(self):
        assert [p.name for p in DEFAULT_LIFECYCLE.phases] == [
            "Feasibility Study",
            "Requirements",
            "Preliminary Design",
            "Critical Design",
            "Testing",
            "Launch",
            "Operation",
            "Improvement",
        ]

    def test_requirements_seeds_context(self):
        requirements = DEFAULT_LIFECYCLE.get("Requirements")

        assert requirements.seeds_context
        assert len(requirements.sprints) == 3
        assert dict(requirements.tuning) == {
            "clarity": 70,
            "technicality": 60,
            "foresight": 50,
            "riskAversion": 60,
            "userCentricity": 75,
            "conciseness": 40,
        }

    def test_design_phases_require_review(self):
        reviewed = [p.name for p in DEFAULT_LIFECYCLE.phases if p.review_required]

        assert reviewed == ["Preliminary Design", "Critical Design"]

    def test_preliminary_design_expands_after_two(self):
        assert DEFAULT_LIFECYCLE.get("Preliminary Design").expansion_after == 2

    def test_critical_design_plans_sprints_from_preliminary_specification(self):
        critical = DEFAULT_LIFECYCLE.get("Critical Design")

        assert [s.name for s in critical.sprints] == ["Preliminary Specification"]
        assert critical.expansion_after == 1
        assert critical.tracks_deliverables

    def test_only_critical_design_tracks_deliverables(self):
        tracked = [p.name for p in DEFAULT_LIFECYCLE.phases if p.tracks_deliverables]

        assert tracked == ["Critical Design"]

    def test_registered_by_name(self):
        assert TEMPLATES["engineering"] is DEFAULT_LIFECYCLE

    def test_unknown_phase(self):
        assert DEFAULT_LIFECYCLE.get("Nope") is None


class TestCreateProject:
    def test_everything_not_started_and_empty(self):
        project = create_project("p1", "Pump", "ana", "reqs", "cons")

        assert project.created_at
        assert project.compacted_context is None
        for phase in project.phases:
            assert phase.status == PhaseStatus.NOT_STARTED
            assert len(phase.outputs) == 0
            for sprint in phase.sprints:
                assert sprint.status == SprintStatus.NOT_STARTED
                assert len(sprint.outputs) == 0

    def test_ids_derived_from_names(self):
        project = create_project("p1", "Pump", "ana", "reqs", "cons")

        phase = project.get_phase("preliminary-design")
        assert [s.id for s in phase.sprints] == [
            "preliminary-design-1",
            "preliminary-design-2",
            "preliminary-design-3",
        ]

    def test_projects_do_not_share_state(self):
        first = create_project("p1", "Pump", "ana", "reqs", "cons")
        second = create_project("p2", "Fan", "ana", "reqs", "cons")

        first.get_phase("feasibility-study").tuning_settings["marketAnalysis"] = 1

        assert second.get_phase("feasibility-study").tuning_settings["marketAnalysis"] == 80

    def test_mode_and_disciplines(self):
        project = create_project(
            "p1",
            "Pump",
            "ana",
            "reqs",
            "cons",
            disciplines=["software"],
            development_mode=DevelopmentMode.RAPID,
        )

        assert project.disciplines == ("software",)
        assert project.development_mode == DevelopmentMode.RAPID


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Feasibility Study", "feasibility-study"),
        ("Statement of Work (SOW)", "statement-of-work-sow"),
        ("  V&V  ", "v-v"),
    ],
)
def test_slugify(name, expected):
    assert slugify(name) == expected
