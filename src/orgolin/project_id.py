"""Orgo project ID classification.

Philosophy:
- Single responsibility: Decide whether a stored project ID is worth reusing
- Pure functions: No I/O, never raises
- Standard library only

Recognized stale formats and IDs that cannot be sent to the API are
rejected. Other unknown formats are treated as usable unless strict mode is
requested, in which case only canonical UUIDs pass.

Public API:
    ProjectIdFormat: Classification result
    classify: Classify a candidate project ID
    is_usable: True if the ID may be reused for reconnecting
    is_stale: True if the ID is a recognized obsolete value
    describe_project_id: Diagnostic summary for display
"""

import re
from dataclasses import dataclass
from enum import StrEnum

NEW_PROJECT_SENTINEL = "new"
LEGACY_PREFIXES = ("computer-",)

# Characters the Orgo API accepts in a project path segment
PROJECT_ID_PATTERN = re.compile(r"^[A-Za-z0-9._\-]+$")

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


class ProjectIdFormat(StrEnum):
    """Recognized project ID shapes."""

    ABSENT = "absent"
    SENTINEL_NEW = "sentinel_new"
    LEGACY = "legacy"
    VALID_UUID = "valid_uuid"
    OTHER = "other"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class ProjectIdInfo:
    """Diagnostic view of a project ID."""

    project_id: str | None
    format: ProjectIdFormat
    is_valid: bool
    is_stale: bool
    needs_update: bool
    reason: str


def classify(project_id: object) -> ProjectIdFormat:
    """Classify a candidate project ID.

    Args:
        project_id: Value read from storage, a CLI flag or a request body

    Returns:
        ProjectIdFormat for the value (never raises)

    Example:
        >>> classify("computer-abc123")
        <ProjectIdFormat.LEGACY: 'legacy'>
        >>> classify("0f8fad5b-d9cb-469f-a165-70867728950e")
        <ProjectIdFormat.VALID_UUID: 'valid_uuid'>
    """
    if not isinstance(project_id, str) or not project_id.strip():
        return ProjectIdFormat.ABSENT

    if project_id == NEW_PROJECT_SENTINEL:
        return ProjectIdFormat.SENTINEL_NEW

    if project_id.startswith(LEGACY_PREFIXES):
        return ProjectIdFormat.LEGACY

    if UUID_PATTERN.match(project_id):
        return ProjectIdFormat.VALID_UUID

    if not PROJECT_ID_PATTERN.match(project_id):
        return ProjectIdFormat.MALFORMED

    return ProjectIdFormat.OTHER


def is_usable(project_id: object, strict: bool = False) -> bool:
    """Return True if the project ID may be used to reconnect.

    Args:
        project_id: Candidate project ID
        strict: Only accept canonical UUIDs
    """
    fmt = classify(project_id)
    if strict:
        return fmt is ProjectIdFormat.VALID_UUID
    return fmt in (ProjectIdFormat.VALID_UUID, ProjectIdFormat.OTHER)


def is_stale(project_id: object, strict: bool = False) -> bool:
    """Return True if the project ID is present but must not be reused."""
    fmt = classify(project_id)
    if fmt is ProjectIdFormat.ABSENT:
        return False
    return not is_usable(project_id, strict=strict)


_REASONS = {
    ProjectIdFormat.ABSENT: "No project ID",
    ProjectIdFormat.SENTINEL_NEW: "Placeholder project ID 'new' is never reused",
    ProjectIdFormat.LEGACY: "Old project ID format",
    ProjectIdFormat.VALID_UUID: "Valid project ID",
    ProjectIdFormat.OTHER: "Unrecognized project ID format",
    ProjectIdFormat.MALFORMED: "Project ID contains characters the Orgo API does not accept",
}


def describe_project_id(project_id: str | None, strict: bool = False) -> ProjectIdInfo:
    """Build a diagnostic summary of a project ID.

    Example:
        >>> describe_project_id("new").needs_update
        True
    """
    fmt = classify(project_id)
    usable = is_usable(project_id, strict=strict)
    stale = is_stale(project_id, strict=strict)
    reason = _REASONS[fmt]
    if fmt is ProjectIdFormat.OTHER and strict:
        reason += " (rejected in strict mode)"

    return ProjectIdInfo(
        project_id=project_id if isinstance(project_id, str) else None,
        format=fmt,
        is_valid=usable,
        is_stale=stale,
        needs_update=stale,
        reason=reason,
    )


__all__ = [
    "LEGACY_PREFIXES",
    "NEW_PROJECT_SENTINEL",
    "PROJECT_ID_PATTERN",
    "ProjectIdFormat",
    "ProjectIdInfo",
    "classify",
    "describe_project_id",
    "is_stale",
    "is_usable",
]
