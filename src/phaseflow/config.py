"""
Configuration loading for PhaseFlow.

- LifecycleSettings: runtime settings from PHASEFLOW_* environment variables
- load_lifecycle_template: lifecycle skeletons from JSON files
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema

from phaseflow.domain.exceptions import ConfigurationError
from phaseflow.domain.templates import (
    DEFAULT_LIFECYCLE,
    LifecycleTemplate,
    PhaseTemplate,
    SprintTemplate,
)
from phaseflow.schemas import validate_lifecycle

ENV_PREFIX = "PHASEFLOW_"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class LifecycleSettings:
    """Runtime settings.

    This typed config ensures unknown fields are rejected at construction time.
    """

    backend: str = "openai"
    model: str = "qwen2.5:7b"
    base_url: str = "http://localhost:11434/v1"
    api_key_env: str = "OPENAI_API_KEY"
    call_timeout: float = 120.0
    store_dir: str = ".phaseflow"
    template_path: str | None = None
    auto_approve_reviews: bool = False

    def __post_init__(self) -> None:
        if self.call_timeout <= 0:
            raise ConfigurationError(
                f"call_timeout must be positive, got {self.call_timeout}"
            )
        if not self.backend:
            raise ConfigurationError("backend must not be empty")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> LifecycleSettings:
        """
        Build settings from PHASEFLOW_* environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            Settings with defaults for unset variables

        Raises:
            ConfigurationError: If a variable cannot be parsed
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            return env.get(ENV_PREFIX + name)

        values: dict[str, Any] = {}
        for name, field_name in (
            ("BACKEND", "backend"),
            ("MODEL", "model"),
            ("BASE_URL", "base_url"),
            ("API_KEY_ENV", "api_key_env"),
            ("STORE", "store_dir"),
            ("TEMPLATE", "template_path"),
        ):
            value = get(name)
            if value is not None:
                values[field_name] = value

        timeout = get("CALL_TIMEOUT")
        if timeout is not None:
            try:
                values["call_timeout"] = float(timeout)
            except ValueError as e:
                raise ConfigurationError(
                    f"{ENV_PREFIX}CALL_TIMEOUT must be a number, got {timeout!r}"
                ) from e

        approve = get("AUTO_APPROVE")
        if approve is not None:
            values["auto_approve_reviews"] = _parse_bool("AUTO_APPROVE", approve)

        return cls(**values)


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigurationError(f"{ENV_PREFIX}{name} must be a boolean, got {value!r}")


def template_from_dict(data: dict[str, Any]) -> LifecycleTemplate:
    """
    Build a lifecycle template from its JSON form.

    Raises:
        ConfigurationError: If the data does not match lifecycle.schema.json
            or phase names are duplicated
    """
    try:
        validate_lifecycle(data)
    except jsonschema.ValidationError as e:
        raise ConfigurationError(f"Invalid lifecycle template: {e.message}") from e

    phases = tuple(
        PhaseTemplate(
            name=p["name"],
            description=p["description"],
            sprints=tuple(
                SprintTemplate(s["name"], s.get("description", ""))
                for s in p.get("sprints", [])
            ),
            tuning=tuple(p.get("tuning", {}).items()),
            review_required=p.get("review_required", False),
            seeds_context=p.get("seeds_context", False),
            expansion_after=p.get("expansion_after"),
            is_editable=p.get("is_editable", True),
            tracks_deliverables=p.get("tracks_deliverables", False),
        )
        for p in data["phases"]
    )

    ids = [p.phase_id for p in phases]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate phase names: {', '.join(duplicates)}")
    for phase in phases:
        if phase.expansion_after is not None and phase.expansion_after > len(
            phase.sprints
        ):
            raise ConfigurationError(
                f"'{phase.name}': expansion_after exceeds its sprint count"
            )

    return LifecycleTemplate(name=data["name"], phases=phases)


def load_lifecycle_template(path: Path | str | None) -> LifecycleTemplate:
    """
    Load a lifecycle template from a JSON file.

    Args:
        path: Template file (None returns the default lifecycle)

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    if path is None:
        return DEFAULT_LIFECYCLE

    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Lifecycle template not found: {path}")

    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected dict in {path}, got {type(data).__name__}")

    return template_from_dict(data)
