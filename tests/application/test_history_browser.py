"""Tests for VersionBrowser view and edit semantics."""

import asyncio

import pytest

from phaseflow.application.history import EntityRef, VersionBrowser
from phaseflow.domain.exceptions import ValidationError


@pytest.fixture
def browsed(lifecycle, project):
    """Project whose concept phase has three versions."""
    asyncio.run(lifecycle.generate_phase(project, "concept"))
    asyncio.run(lifecycle.generate_phase(project, "concept"))
    asyncio.run(lifecycle.edit_phase(project, "concept", "v3 text"))
    return project


class TestVersionBrowser:
    def test_select_shows_latest(self, browsed):
        browser = VersionBrowser(browsed)

        latest = browser.select(EntityRef("concept"))

        assert latest.version == 3
        assert browser.viewed_version == 3
        assert browser.current().content == "v3 text"

    def test_view_is_pure_read(self, browsed):
        browser = VersionBrowser(browsed)
        browser.select(EntityRef("concept"))

        entry = browser.view(1)

        assert entry.content == "Document 1"
        assert browser.viewed_version == 1
        assert len(browsed.get_phase("concept").outputs) == 3

    def test_edit_starts_from_latest_not_viewed(self, browsed):
        browser = VersionBrowser(browsed)
        browser.select(EntityRef("concept"))
        browser.view(1)

        assert browser.edit_buffer() == "v3 text"

    def test_switching_entity_resets_view(self, browsed):
        browser = VersionBrowser(browsed)
        browser.select(EntityRef("concept"))
        browser.view(1)

        assert browser.select(EntityRef("requirements", "requirements-1")) is None
        assert browser.viewed_version is None
        assert browser.edit_buffer() == ""

        browser.select(EntityRef("concept"))
        assert browser.viewed_version == 3

    def test_unknown_version_rejected(self, browsed):
        browser = VersionBrowser(browsed)
        browser.select(EntityRef("concept"))

        with pytest.raises(ValidationError):
            browser.view(4)
        assert browser.viewed_version == 3

    def test_unknown_entity_rejected(self, browsed):
        with pytest.raises(ValidationError, match="not found"):
            VersionBrowser(browsed).select(EntityRef("concept", "concept-9"))

    def test_nothing_selected(self, browsed):
        with pytest.raises(ValidationError, match="No phase or sprint selected"):
            VersionBrowser(browsed).versions()

    def test_label(self):
        assert EntityRef("design").label == "design"
        assert EntityRef("design", "design-1").label == "design/design-1"
