"""Aggregation engine for upgrade-report.

Turns a TagCompareSnapshot into per-PR and per-file statistics:

- get_pull_request_stats(): counts, top files, packages and risk for one PR
- get_changed_files_stats(): one FileStats per file in the tag compare
- analyze(): runs both over a snapshot and orders the results
- summarize(): totals consumed by the formatters

Everything here is pure: no I/O, inputs are never mutated.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from upgrade_report.assessment import build_assessment_map, resolve_assessment
from upgrade_report.report_data import (
    AnalysisResult,
    AnalysisSummary,
    Assessment,
    FileChange,
    FileStats,
    PackageStats,
    PullRequestChangeSet,
    PullRequestRecord,
    PullRequestStats,
    TagCompareSnapshot,
)

logger = logging.getLogger("upgrade_report.analysis")

DEFAULT_TOP_FILES = 5


def package_path(path: str) -> str:
    """Return the directory part of a file path.

    The whole path is returned when there is no "/" or the only one is
    the leading character.
    """
    last_index = path.rfind("/")
    if last_index > 0:
        return path[:last_index]
    return path


def top_files(files: Iterable[FileChange], limit: int = DEFAULT_TOP_FILES) -> list[FileChange]:
    """Select the most modified files, largest first.

    Ties keep their original order (sorted() is stable).
    """
    ranked = sorted(files, key=lambda f: f.total_modifications, reverse=True)
    return ranked[:limit]


def rank_packages(counts: dict[str, int]) -> list[PackageStats]:
    """Order package buckets by descending count, then by name."""
    return [
        PackageStats(name=name, count=count)
        for name, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


def _file_assessment(
    current: Assessment,
    file: FileChange,
    assessments: dict[str, Assessment],
    legacy_assessment: bool,
) -> Assessment:
    """Fold one file's risk into the PR's running assessment."""
    if legacy_assessment:
        # Reset per file: only the last file decides.
        current = Assessment.CLEAN
        level = assessments.get(file.path)
        if level is not None and current == Assessment.CLEAN:
            current = level
        return current
    return max(current, resolve_assessment(assessments, file.path))


def get_pull_request_stats(
    change_set: PullRequestChangeSet,
    assessments: dict[str, Assessment],
    legacy_assessment: bool = False,
    top_n: int = DEFAULT_TOP_FILES,
) -> PullRequestStats:
    """Aggregate the files of one PR.

    Args:
        change_set: The PR and the files it touched.
        assessments: Lookup from build_assessment_map().
        legacy_assessment: Resolve the PR's risk from its last file only,
            instead of taking the highest risk over all files.
        top_n: How many of the most modified files to keep.

    Returns:
        PullRequestStats for the PR. An empty PR yields zero counts and
        a CLEAN assessment.
    """
    stats = PullRequestStats(record=change_set.record)
    packages: dict[str, int] = defaultdict(int)

    for file in change_set.files:
        stats.assessment = _file_assessment(
            stats.assessment, file, assessments, legacy_assessment,
        )

        stats.lines_added += file.additions
        stats.lines_removed += file.deletions

        packages[package_path(file.path)] += 1

        if file.status == "added":
            stats.files_added += 1
        elif file.status == "modified":
            stats.files_modified += 1
        else:
            stats.files_removed += 1

    stats.top_files = top_files(change_set.files, top_n)
    stats.top_packages = rank_packages(packages)

    logger.debug(
        "PR #%d: %d files, +%d/-%d lines, %s",
        change_set.record.number,
        len(change_set.files),
        stats.lines_added,
        stats.lines_removed,
        stats.assessment.label,
    )
    return stats


def get_changed_files_stats(
    snapshot: TagCompareSnapshot,
    assessments: dict[str, Assessment],
) -> list[FileStats]:
    """Build one FileStats per file of the tag compare.

    The flat file list of the snapshot is the universe: PR files that are
    not part of it are ignored.

    Returns:
        FileStats sorted by descending total modifications, then by path.
    """
    files_by_path: dict[str, FileChange] = {}
    prs_by_path: dict[str, list[PullRequestRecord]] = {}
    for file in snapshot.files:
        if file.path not in files_by_path:
            files_by_path[file.path] = file
            prs_by_path[file.path] = []

    dropped = 0
    for change_set in snapshot.pull_requests:
        for file in change_set.files:
            linked = prs_by_path.get(file.path)
            if linked is None:
                dropped += 1
                continue
            linked.append(change_set.record)

    if dropped:
        logger.debug("Ignored %d PR file(s) absent from the tag compare", dropped)

    result = [
        FileStats(
            file=file,
            associated_prs=prs_by_path[path],
            assessment=resolve_assessment(assessments, path),
        )
        for path, file in files_by_path.items()
    ]
    result.sort(key=lambda s: (-s.file.total_modifications, s.file.path))
    return result


def analyze(
    snapshot: TagCompareSnapshot,
    warning_paths: Iterable[str],
    conflict_paths: Iterable[str],
    legacy_assessment: bool = False,
    top_n: int = DEFAULT_TOP_FILES,
) -> AnalysisResult:
    """Analyze a tag compare snapshot.

    Args:
        snapshot: Merged PRs and flat file diff between two tags.
        warning_paths: Files touched by the downstream fork.
        conflict_paths: Files expected to conflict.
        legacy_assessment: See get_pull_request_stats().
        top_n: Number of top files kept per PR.

    Returns:
        AnalysisResult with PR stats ordered by close time (ties keep
        snapshot order) and file stats ordered by size of change.
    """
    assessments = build_assessment_map(warning_paths, conflict_paths)
    logger.debug(
        "Analyzing %d PRs and %d files against %d classified paths",
        len(snapshot.pull_requests),
        len(snapshot.files),
        len(assessments),
    )

    pr_stats = [
        get_pull_request_stats(pr, assessments, legacy_assessment, top_n)
        for pr in snapshot.pull_requests
    ]
    pr_stats.sort(key=lambda s: s.record.closed_at)

    return AnalysisResult(
        pr_stats=pr_stats,
        file_stats=get_changed_files_stats(snapshot, assessments),
    )


def summarize(result: AnalysisResult) -> AnalysisSummary:
    """Compute report-wide totals from an AnalysisResult."""
    return AnalysisSummary(
        total_prs=len(result.pr_stats),
        total_files=len(result.file_stats),
        conflict_prs=sum(1 for s in result.pr_stats if s.assessment == Assessment.CONFLICT),
        warning_prs=sum(1 for s in result.pr_stats if s.assessment == Assessment.WARNING),
        conflict_files=sum(1 for s in result.file_stats if s.assessment == Assessment.CONFLICT),
        warning_files=sum(1 for s in result.file_stats if s.assessment == Assessment.WARNING),
        lines_added=sum(s.lines_added for s in result.pr_stats),
        lines_removed=sum(s.lines_removed for s in result.pr_stats),
    )
