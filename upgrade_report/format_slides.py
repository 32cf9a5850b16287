"""PPTX slide deck formatter for upgrade-report.

Requires python-pptx: pip install python-pptx
"""

from __future__ import annotations

from pptx import Presentation
from pptx.util import Inches, Pt

from upgrade_report.report_data import (
    FileStats,
    PullRequestStats,
    UpgradeReport,
)

PRS_PER_SLIDE = 12
TOP_FILES_ON_SLIDE = 15
_RELEASE_NOTES_MAX_LINES = 12


def format_slides(report: UpgradeReport, output_path: str) -> None:
    """Render the report as a PPTX slide deck.

    Args:
        report: Complete report with analysis and summary filled in.
        output_path: File path to write the .pptx file.

    Raises:
        OSError: If the file cannot be written (permissions, missing directory).
    """
    prs = Presentation()
    prs.slide_width = Inches(13.333)
    prs.slide_height = Inches(7.5)

    _add_title_slide(prs, report)

    if report.release is not None:
        _add_release_slide(prs, report)

    pr_stats = report.analysis.pr_stats
    for start in range(0, len(pr_stats), PRS_PER_SLIDE):
        chunk = pr_stats[start:start + PRS_PER_SLIDE]
        title = "Merged Pull Requests"
        if len(pr_stats) > PRS_PER_SLIDE:
            title += f" ({start + 1}-{start + len(chunk)} of {len(pr_stats)})"
        _add_text_slide(prs, title, [_render_pr(s) for s in chunk])

    if report.analysis.file_stats:
        files = _files_for_slide(report.analysis.file_stats)
        _add_text_slide(prs, "Changed Files", [_render_file(f) for f in files])

    _add_summary_slide(prs, report)

    prs.save(output_path)


# --- internal helpers (private) ---


def _add_title_slide(prs: Presentation, report: UpgradeReport) -> None:
    """Add the title slide with repository and tag range."""
    layout = prs.slide_layouts[0]  # Title Slide
    slide = prs.slides.add_slide(layout)
    slide.shapes.title.text = "Upstream Upgrade Analysis"
    slide.placeholders[1].text = f"{report.repo}\n{report.base_tag} .. {report.head_tag}"


def _add_release_slide(prs: Presentation, report: UpgradeReport) -> None:
    """Add a slide with the release name, date and the start of its notes."""
    release = report.release
    bullets = [f"Version: {release.tag}", f"Published: {release.published_at}"]
    notes = [line.strip() for line in release.body.splitlines() if line.strip()]
    bullets.extend(notes[:_RELEASE_NOTES_MAX_LINES])
    if len(notes) > _RELEASE_NOTES_MAX_LINES:
        bullets.append("…")
    _add_text_slide(prs, release.name or release.tag, bullets)


def _add_summary_slide(prs: Presentation, report: UpgradeReport) -> None:
    """Add the summary slide with aggregate metrics."""
    s = report.summary
    bullets = [
        f"Merged PRs: {s.total_prs}",
        f"Changed files: {s.total_files}",
        f"Lines: +{s.lines_added} / -{s.lines_removed}",
        f"PRs with expected conflicts: {s.conflict_prs}",
        f"PRs needing review: {s.warning_prs}",
        f"Files with expected conflicts: {s.conflict_files}",
        f"Files needing review: {s.warning_files}",
    ]
    _add_text_slide(prs, "Summary", bullets, font_size=14)


def _add_text_slide(
    prs: Presentation, title: str, bullets: list[str], font_size: int = 12,
) -> None:
    """Add a slide with a title and plain-text bullet items."""
    layout = prs.slide_layouts[1]  # Title and Content
    slide = prs.slides.add_slide(layout)
    slide.shapes.title.text = title

    tf = slide.placeholders[1].text_frame
    tf.clear()
    for i, text in enumerate(bullets):
        p = tf.paragraphs[0] if i == 0 else tf.add_paragraph()
        p.text = text
        p.level = 0
        p.runs[0].font.size = Pt(font_size)


def _files_for_slide(file_stats: list[FileStats]) -> list[FileStats]:
    """Pick the files worth a slide: risky ones first, then the largest."""
    ranked = sorted(file_stats, key=lambda f: -f.assessment)
    return ranked[:TOP_FILES_ON_SLIDE]


def _render_pr(stats: PullRequestStats) -> str:
    """Render a PullRequestStats as plain text for slides."""
    text = f"[{stats.assessment.label}] #{stats.record.number} {stats.record.title}"
    text += (
        f" -- files {stats.files_modified}/{stats.files_added}/{stats.files_removed}"
        f", lines +{stats.lines_added}/-{stats.lines_removed}"
    )
    if stats.top_packages:
        text += f" -- {stats.top_packages[0].name}"
    return text


def _render_file(stat: FileStats) -> str:
    """Render a FileStats as plain text for slides."""
    text = f"[{stat.assessment.label}] {stat.file.path} ({stat.file.total_modifications} lines)"
    if stat.associated_prs:
        refs = ", ".join(f"#{r.number}" for r in stat.associated_prs)
        text += f" -- {refs}"
    return text
