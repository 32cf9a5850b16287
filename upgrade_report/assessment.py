"""Conflict risk classification of file paths."""

from __future__ import annotations

from typing import Iterable

from upgrade_report.report_data import Assessment


def build_assessment_map(
    warning_paths: Iterable[str],
    conflict_paths: Iterable[str],
) -> dict[str, Assessment]:
    """Build a path -> Assessment lookup.

    Warning paths are written first and conflict paths second, so a path
    listed in both ends up as CONFLICT.

    Args:
        warning_paths: Files the downstream fork has touched.
        conflict_paths: Files expected to conflict on merge.

    Returns:
        Mapping containing only the listed paths. Unlisted paths are clean.
    """
    assessments: dict[str, Assessment] = {}
    for path in warning_paths:
        assessments[path] = Assessment.WARNING
    for path in conflict_paths:
        assessments[path] = Assessment.CONFLICT
    return assessments


def resolve_assessment(assessments: dict[str, Assessment], path: str) -> Assessment:
    """Look up a path, treating absence as CLEAN."""
    return assessments.get(path, Assessment.CLEAN)
