"""Tests for the Project aggregate."""

import pytest

from phaseflow.domain.models import ChecklistItem, DesignReview, PhaseStatus


class TestProject:
    def test_first_phase_eligible(self, project):
        assert project.is_phase_eligible("concept")
        assert not project.is_phase_eligible("requirements")

    def test_eligibility_follows_completion(self, project):
        project.get_phase("concept").status = PhaseStatus.COMPLETED

        assert project.is_phase_eligible("requirements")
        assert not project.is_phase_eligible("design")
        assert project.first_incomplete_phase().id == "requirements"

    def test_complete_project(self, project):
        for phase in project.phases:
            phase.status = PhaseStatus.COMPLETED

        assert project.is_complete
        assert project.first_incomplete_phase() is None

    def test_unknown_ids(self, project):
        with pytest.raises(KeyError):
            project.get_phase("missing")
        with pytest.raises(KeyError):
            project.get_phase("concept").get_sprint("concept-1")

    def test_multi_document(self, project):
        assert not project.get_phase("concept").is_multi_document
        assert project.get_phase("requirements").is_multi_document


class TestDesignReview:
    def test_empty_checklist_not_all_checked(self):
        assert not DesignReview(required=True).all_checked()

    def test_all_checked(self):
        review = DesignReview(
            required=True,
            checklist=(
                ChecklistItem("a", "A", checked=True),
                ChecklistItem("b", "B", checked=True),
            ),
        )

        assert review.all_checked()
