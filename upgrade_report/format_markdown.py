"""Markdown formatter for upgrade-report."""

from __future__ import annotations

from upgrade_report.report_data import (
    Assessment,
    PullRequestRecord,
    PullRequestStats,
    ReleaseData,
    UpgradeReport,
)

_ASSESSMENT_EMOJI = {
    Assessment.CLEAN: "\u2705",
    Assessment.WARNING: "\u26a0\ufe0f",
    Assessment.CONFLICT: "\u203c\ufe0f",
}

_TASKS = [
    "Assign someone responsible for this upstream upgrade to the PR",
    "Review new features and fixes on the Release Notes",
    "Review Pull Requests in the analysis",
    "Review which new features need to be updated or enhanced for the fork",
    "Solve all conflicts",
    "Review if new unit tests or acceptance tests are required",
    "Document in the Extra Changes section any changes or new code that was added as part of this PR",
]


def format_markdown(report: UpgradeReport, include_header: bool = True) -> str:
    """Render the report as a Markdown string.

    Args:
        report: Complete report with analysis and summary filled in.
        include_header: Prepend the reviewer task checklist.

    Returns:
        The full Markdown report as a single string.
    """
    lines: list[str] = []

    lines.append(f"# Upstream upgrade: `{report.repo}` {report.base_tag} .. {report.head_tag}")
    lines.append("")

    if include_header:
        lines.extend(_header_lines())
    if report.release is not None:
        lines.extend(_release_lines(report.release))
    lines.extend(_analysis_lines(report))

    return "\n".join(lines)


def assessment_emoji(assessment: Assessment) -> str:
    """Return the emoji marking an assessment level."""
    return _ASSESSMENT_EMOJI[assessment]


def _header_lines() -> list[str]:
    lines = ["## Actions", "", "### Tasks to be done", ""]
    lines.extend(f"- [ ] {task}" for task in _TASKS)
    lines.append("")
    lines.extend(["### Extra Changes", "", "* **\\<Example\\>**: \\<change\\>", ""])
    return lines


def _release_lines(release: ReleaseData) -> list[str]:
    lines = [
        f"## Summary of: {release.name}",
        "",
        f"* Version: {release.tag}",
        f"* Published: {release.published_at}",
        "",
        "### Release notes",
        "",
    ]
    lines.append(release.body.strip() if release.body else "_No release notes._")
    lines.append("")
    return lines


def _analysis_lines(report: UpgradeReport) -> list[str]:
    s = report.summary
    lines = [
        "## Analysis",
        "",
        "### Legend",
        "",
        "File Stats: (M) Modified, (A) Added and (R) Removed",
        "",
        "Line Stats: (A) Added and (R) Removed",
        "",
        "Assessment:",
        "",
        f"* {assessment_emoji(Assessment.CLEAN)} No conflict expected",
        f"* {assessment_emoji(Assessment.WARNING)} Review required to assess changes",
        f"* {assessment_emoji(Assessment.CONFLICT)} Conflicts expected and review required",
        "",
        f"**Summary:** {s.total_prs} merged PRs touching {s.total_files} files "
        f"(+{s.lines_added}/\u2212{s.lines_removed} lines). "
        f"PRs: {s.conflict_prs} with conflicts, {s.warning_prs} to review. "
        f"Files: {s.conflict_files} with conflicts, {s.warning_files} to review.",
        "",
        f"### Summary of {len(report.analysis.pr_stats)} merged Pull Requests",
        "",
    ]

    if report.analysis.pr_stats:
        lines.append(
            "| \U0001f50d | Link | Title | File Stats<br>M/A/R | Packages changed<br>(files changed) "
            "| Line Stats<br>A/R | Top Changed Files<br>(lines changed) |"
        )
        lines.append("| :--- | :--- | :--- | :--- | :--- | :--- | :--- |")
        for stats in report.analysis.pr_stats:
            lines.append(_render_pr_row(stats))
    else:
        lines.append("_No merged pull requests found._")
    lines.append("")

    lines.append("### Summary of Changed files")
    lines.append("")
    if report.analysis.file_stats:
        lines.append("| \U0001f50d | File | Lines Changed | Linked PR |")
        lines.append("| :--- | :--- | :--- | :--- |")
        for stat in report.analysis.file_stats:
            lines.append(
                f"| {assessment_emoji(stat.assessment)} | `{stat.file.path}` "
                f"| {stat.file.total_modifications} | {_pr_links(stat.associated_prs)} |"
            )
    else:
        lines.append("_No changed files._")
    lines.append("")

    return lines


def _pr_links(records: list[PullRequestRecord]) -> str:
    """Render PR references as <br>-separated Markdown links."""
    return "<br>".join(f"[#{r.number}]({r.html_url})" for r in records)


def _escape_cell(text: str) -> str:
    """Keep free text from breaking the table row."""
    return text.replace("|", "\\|").replace("\n", " ")


def _render_pr_row(stats: PullRequestStats) -> str:
    """Render a PullRequestStats as a Markdown table row."""
    record = stats.record
    packages = "<br>".join(
        f"`{p.name}` ({p.count})" for p in stats.top_packages if p.count > 0
    )
    top = "<br>".join(
        f"`{f.path}` ({f.total_modifications})"
        for f in stats.top_files
        if f.total_modifications > 0
    )
    return (
        f"| {assessment_emoji(stats.assessment)} "
        f"| [#{record.number}]({record.html_url}) "
        f"| `{_escape_cell(record.title)}` "
        f"| {stats.files_modified}/{stats.files_added}/{stats.files_removed} "
        f"| {packages} "
        f"| +{stats.lines_added}/\u2212{stats.lines_removed} "
        f"| {top} |"
    )
