"""Structured upgrade data model, shared by the analysis core and all formatters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional


class Assessment(IntEnum):
    """Conflict risk of a file or PR. Ordered by severity."""

    CLEAN = 0
    WARNING = 1
    CONFLICT = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class FileChange:
    """One file's diff, inside a single PR or in the overall tag compare."""
    path: str
    status: str              # "added", "modified", "removed"
    additions: int = 0
    deletions: int = 0

    @property
    def total_modifications(self) -> int:
        return self.additions + self.deletions


@dataclass(frozen=True)
class PullRequestRecord:
    """Metadata of a merged upstream PR."""
    number: int
    title: str
    html_url: str
    closed_at: str           # opaque, compared as a string


@dataclass
class PullRequestChangeSet:
    """A merged PR together with the files it touched."""
    record: PullRequestRecord
    files: List[FileChange] = field(default_factory=list)


@dataclass
class TagCompareSnapshot:
    """Everything between two tags: merged PRs plus the flat file diff."""
    pull_requests: List[PullRequestChangeSet] = field(default_factory=list)
    files: List[FileChange] = field(default_factory=list)
    base_tag: str = ""
    head_tag: str = ""


@dataclass
class PackageStats:
    """Number of files touched under one directory."""
    name: str
    count: int


@dataclass
class PullRequestStats:
    """Aggregated statistics for a single PR."""
    record: PullRequestRecord
    files_added: int = 0
    files_modified: int = 0
    files_removed: int = 0
    lines_added: int = 0
    lines_removed: int = 0
    top_files: List[FileChange] = field(default_factory=list)
    top_packages: List[PackageStats] = field(default_factory=list)
    assessment: Assessment = Assessment.CLEAN


@dataclass
class FileStats:
    """A changed file and the PRs that touched it."""
    file: FileChange
    associated_prs: List[PullRequestRecord] = field(default_factory=list)
    assessment: Assessment = Assessment.CLEAN


@dataclass
class AnalysisResult:
    """PR stats sorted by close time, file stats sorted by size of change."""
    pr_stats: List[PullRequestStats] = field(default_factory=list)
    file_stats: List[FileStats] = field(default_factory=list)


@dataclass
class AnalysisSummary:
    """Aggregate metrics for the report."""
    total_prs: int = 0
    total_files: int = 0
    conflict_prs: int = 0
    warning_prs: int = 0
    conflict_files: int = 0
    warning_files: int = 0
    lines_added: int = 0
    lines_removed: int = 0


@dataclass
class ReleaseData:
    """Upstream release published for the target tag."""
    name: str
    tag: str
    published_at: str        # as returned by GitHub, not parsed
    body: str = ""
    html_url: str = ""


@dataclass
class UpgradeReport:
    """Complete report, produced by the pipeline and consumed by formatters."""
    repo: str                # "owner/name"
    base_tag: str
    head_tag: str
    analysis: AnalysisResult = field(default_factory=AnalysisResult)
    summary: AnalysisSummary = field(default_factory=AnalysisSummary)
    release: Optional[ReleaseData] = None
