"""
JSON-compatible (de)serialization of the Project aggregate.

The dict layout is the one described by ``project.schema.json``.
"""

from typing import Any

from phaseflow.domain.history import VersionedOutput, VersionHistory, VersionReason
from phaseflow.domain.models import (
    Attachment,
    ChecklistItem,
    DesignReview,
    DevelopmentMode,
    Phase,
    PhaseStatus,
    Project,
    ReviewStatus,
    Sprint,
    SprintStatus,
)

FORMAT_VERSION = "1.0"


def _history_to_list(history: VersionHistory) -> list[dict[str, Any]]:
    return [
        {
            "version": entry.version,
            "content": entry.content,
            "reason": entry.reason.value,
            "created_at": entry.created_at,
        }
        for entry in history
    ]


def _history_from_list(data: list[dict[str, Any]]) -> VersionHistory:
    # from_entries rejects gaps and reordering
    return VersionHistory.from_entries(
        VersionedOutput(
            version=item["version"],
            content=item["content"],
            reason=VersionReason(item["reason"]),
            created_at=item["created_at"],
        )
        for item in data
    )


def _sprint_to_dict(sprint: Sprint) -> dict[str, Any]:
    return {
        "id": sprint.id,
        "name": sprint.name,
        "description": sprint.description,
        "status": sprint.status.value,
        "deliverables": list(sprint.deliverables),
        "outputs": _history_to_list(sprint.outputs),
        "notes": sprint.notes,
        "attachments": [
            {"name": a.name, "mime_type": a.mime_type} for a in sprint.attachments
        ],
    }


def _sprint_from_dict(data: dict[str, Any]) -> Sprint:
    return Sprint(
        id=data["id"],
        name=data["name"],
        description=data.get("description", ""),
        status=SprintStatus(data["status"]),
        deliverables=tuple(data.get("deliverables", [])),
        outputs=_history_from_list(data.get("outputs", [])),
        notes=data.get("notes", ""),
        attachments=tuple(
            Attachment(name=a["name"], mime_type=a["mime_type"])
            for a in data.get("attachments", [])
        ),
    )


def _review_to_dict(review: DesignReview | None) -> dict[str, Any] | None:
    if review is None:
        return None
    return {
        "required": review.required,
        "checklist": [
            {"id": i.id, "text": i.text, "checked": i.checked} for i in review.checklist
        ],
        "status": review.status.value,
        "review_start_date": review.review_start_date,
    }


def _review_from_dict(data: dict[str, Any] | None) -> DesignReview | None:
    if data is None:
        return None
    return DesignReview(
        required=data["required"],
        checklist=tuple(
            ChecklistItem(id=i["id"], text=i["text"], checked=i["checked"])
            for i in data.get("checklist", [])
        ),
        status=ReviewStatus(data.get("status", ReviewStatus.PENDING.value)),
        review_start_date=data.get("review_start_date"),
    )


def _phase_to_dict(phase: Phase) -> dict[str, Any]:
    return {
        "id": phase.id,
        "name": phase.name,
        "description": phase.description,
        "status": phase.status.value,
        "sprints": [_sprint_to_dict(s) for s in phase.sprints],
        "outputs": _history_to_list(phase.outputs),
        "tuning_settings": dict(phase.tuning_settings),
        "is_editable": phase.is_editable,
        "design_review": _review_to_dict(phase.design_review),
        "seeds_context": phase.seeds_context,
        "expansion_after": phase.expansion_after,
        "sprints_expanded": phase.sprints_expanded,
        "tracks_deliverables": phase.tracks_deliverables,
    }


def _phase_from_dict(data: dict[str, Any]) -> Phase:
    return Phase(
        id=data["id"],
        name=data["name"],
        description=data.get("description", ""),
        status=PhaseStatus(data["status"]),
        sprints=[_sprint_from_dict(s) for s in data.get("sprints", [])],
        outputs=_history_from_list(data.get("outputs", [])),
        tuning_settings=dict(data.get("tuning_settings", {})),
        is_editable=data.get("is_editable", True),
        design_review=_review_from_dict(data.get("design_review")),
        seeds_context=data.get("seeds_context", False),
        expansion_after=data.get("expansion_after"),
        sprints_expanded=data.get("sprints_expanded", False),
        tracks_deliverables=data.get("tracks_deliverables", False),
    )


def project_to_dict(project: Project) -> dict[str, Any]:
    """Serialize a project to a JSON-compatible dict."""
    return {
        "format_version": FORMAT_VERSION,
        "id": project.id,
        "name": project.name,
        "owner": project.owner,
        "requirements": project.requirements,
        "constraints": project.constraints,
        "disciplines": list(project.disciplines),
        "development_mode": project.development_mode.value,
        "compacted_context": project.compacted_context,
        "phases": [_phase_to_dict(p) for p in project.phases],
        "created_at": project.created_at,
        "revision": project.revision,
    }


def project_from_dict(data: dict[str, Any]) -> Project:
    """
    Deserialize a project.

    Raises:
        ValidationError: If a version history is not contiguous
        KeyError, ValueError: If required fields are missing or malformed
    """
    return Project(
        id=data["id"],
        name=data["name"],
        owner=data.get("owner", ""),
        requirements=data.get("requirements", ""),
        constraints=data.get("constraints", ""),
        disciplines=tuple(data.get("disciplines", [])),
        development_mode=DevelopmentMode(data.get("development_mode", "full")),
        compacted_context=data.get("compacted_context"),
        phases=[_phase_from_dict(p) for p in data.get("phases", [])],
        created_at=data.get("created_at", ""),
        revision=data.get("revision", 0),
    )
