"""PhaseFlow JSON Schema definitions and validation utilities.

Schemas:
    - project.schema.json: Stored project aggregate (filesystem repository)
    - lifecycle.schema.json: Lifecycle template files (phase/sprint skeletons)

Usage:
    from phaseflow.schemas import validate_lifecycle

    with open("lifecycle.json") as f:
        data = json.load(f)
    validate_lifecycle(data)  # Raises jsonschema.ValidationError if invalid
"""

from __future__ import annotations

import json
from functools import cache
from importlib.resources import files
from typing import Any

import jsonschema


@cache
def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema from the schemas package.

    Args:
        name: Schema filename (e.g., 'project.schema.json')

    Returns:
        Parsed JSON schema as a dictionary
    """
    schema_text = files("phaseflow.schemas").joinpath(name).read_text()
    result: dict[str, Any] = json.loads(schema_text)
    return result


def get_project_schema() -> dict[str, Any]:
    """Get the project.json schema."""
    return _load_schema("project.schema.json")


def get_lifecycle_schema() -> dict[str, Any]:
    """Get the lifecycle template schema."""
    return _load_schema("lifecycle.schema.json")


def validate_project(data: dict[str, Any]) -> None:
    """Validate a stored project against the schema.

    Raises:
        jsonschema.ValidationError: If validation fails
    """
    jsonschema.validate(data, get_project_schema())


def validate_lifecycle(data: dict[str, Any]) -> None:
    """Validate a lifecycle template against the schema.

    Raises:
        jsonschema.ValidationError: If validation fails
    """
    jsonschema.validate(data, get_lifecycle_schema())


__all__ = [
    "get_project_schema",
    "get_lifecycle_schema",
    "validate_project",
    "validate_lifecycle",
]
