"""Tests for settings and lifecycle template loading."""

import json

import pytest

from phaseflow.config import (
    LifecycleSettings,
    load_lifecycle_template,
    template_from_dict,
)
from phaseflow.domain.exceptions import ConfigurationError
from phaseflow.domain.templates import DEFAULT_LIFECYCLE

TEMPLATE = {
    "name": "hardware-lite",
    "phases": [
        {"name": "Concept", "description": "Outline", "tuning": {"clarity": 60}},
        {
            "name": "Build",
            "description": "Build it",
            "sprints": [{"name": "Prototype"}, {"name": "Pilot", "description": "Run"}],
            "review_required": True,
            "expansion_after": 2,
        },
    ],
}


class TestLifecycleSettings:
    def test_defaults(self):
        settings = LifecycleSettings.from_env({})

        assert settings == LifecycleSettings()
        assert settings.backend == "openai"
        assert not settings.auto_approve_reviews

    def test_environment_overrides(self):
        settings = LifecycleSettings.from_env(
            {
                "PHASEFLOW_BACKEND": "mock",
                "PHASEFLOW_MODEL": "llama3",
                "PHASEFLOW_STORE": "/tmp/pf",
                "PHASEFLOW_CALL_TIMEOUT": "30",
                "PHASEFLOW_AUTO_APPROVE": "yes",
                "UNRELATED": "x",
            }
        )

        assert settings.backend == "mock"
        assert settings.model == "llama3"
        assert settings.store_dir == "/tmp/pf"
        assert settings.call_timeout == 30.0
        assert settings.auto_approve_reviews

    def test_bad_timeout(self):
        with pytest.raises(ConfigurationError, match="CALL_TIMEOUT"):
            LifecycleSettings.from_env({"PHASEFLOW_CALL_TIMEOUT": "soon"})

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigurationError, match="positive"):
            LifecycleSettings.from_env({"PHASEFLOW_CALL_TIMEOUT": "0"})

    def test_bad_boolean(self):
        with pytest.raises(ConfigurationError, match="AUTO_APPROVE"):
            LifecycleSettings.from_env({"PHASEFLOW_AUTO_APPROVE": "maybe"})


class TestTemplates:
    def test_template_from_dict(self):
        template = template_from_dict(TEMPLATE)

        build = template.get("Build")
        assert template.name == "hardware-lite"
        assert [s.name for s in build.sprints] == ["Prototype", "Pilot"]
        assert build.sprints[0].description == ""
        assert build.review_required
        assert dict(template.get("Concept").tuning) == {"clarity": 60}

    def test_schema_violation(self):
        data = json.loads(json.dumps(TEMPLATE))
        data["phases"][0]["tuning"]["clarity"] = 150

        with pytest.raises(ConfigurationError, match="Invalid lifecycle template"):
            template_from_dict(data)

    def test_duplicate_phase_names(self):
        data = {"name": "x", "phases": [TEMPLATE["phases"][0], TEMPLATE["phases"][0]]}

        with pytest.raises(ConfigurationError, match="Duplicate phase names: concept"):
            template_from_dict(data)

    def test_expansion_beyond_sprints(self):
        data = json.loads(json.dumps(TEMPLATE))
        data["phases"][1]["expansion_after"] = 3

        with pytest.raises(ConfigurationError, match="expansion_after"):
            template_from_dict(data)

    def test_deliverable_tracking(self):
        data = json.loads(json.dumps(TEMPLATE))
        data["phases"][1]["expansion_after"] = 1
        data["phases"][1]["tracks_deliverables"] = True

        build = template_from_dict(data).get("Build")

        assert build.tracks_deliverables
        assert not template_from_dict(TEMPLATE).get("Build").tracks_deliverables

    def test_load_default(self):
        assert load_lifecycle_template(None) is DEFAULT_LIFECYCLE

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "lifecycle.json"
        path.write_text(json.dumps(TEMPLATE))

        assert load_lifecycle_template(path).name == "hardware-lite"

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_lifecycle_template(tmp_path / "missing.json")

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_lifecycle_template(path)
