#!/usr/bin/env python3
"""Upstream upgrade report generator.

Three-phase pipeline:
  Phase 1: Snapshot retrieval (gh CLI compare + GraphQL PR mapping),
           or loading a previously saved snapshot
  Phase 2: Analysis (risk classification, per-PR and per-file stats)
  Phase 3: Output (Markdown or PPTX slide deck)
"""

import argparse
import logging
import re
import sys

from upgrade_report.analysis import analyze, summarize
from upgrade_report.config import load_config, parse_repo, read_path_list
from upgrade_report.format_markdown import format_markdown
from upgrade_report.github_client import fetch_release, fetch_snapshot
from upgrade_report.report_data import UpgradeReport
from upgrade_report.snapshot import load_snapshot, save_snapshot

logger = logging.getLogger("upgrade_report")


def _safe_filename_part(value: str) -> str:
    """Remove characters unsafe for filenames."""
    return re.sub(r'[^a-zA-Z0-9._-]', '_', value)


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="upgrade_report",
        description="Summarize the risk of merging an upstream tag range into a fork",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="--from/--to are required unless --snapshot is given.",
    )
    parser.add_argument("--repo", default=None, help="upstream repository, owner/name (default: from config)")
    parser.add_argument("--from", dest="base_tag", default=None, help="tag the fork is currently based on (requires --to)")
    parser.add_argument("--to", dest="head_tag", default=None, help="tag to upgrade to (requires --from)")
    parser.add_argument("--snapshot", default=None, help="read a saved snapshot JSON instead of calling GitHub")
    parser.add_argument("--save-snapshot", dest="save_snapshot", default=None, help="write the fetched snapshot JSON to this path")
    parser.add_argument("--config", dest="config_path", default=None, help="path to YAML config file (default: ~/.config/upgrade-report/config.yaml)")
    parser.add_argument("--fork-files", dest="fork_files", default=None, help="file listing paths changed by the fork, one per line")
    parser.add_argument("--conflicts", dest="conflicts", default=None, help="file listing paths expected to conflict, one per line")
    parser.add_argument(
        "--legacy-assessment", dest="legacy_assessment", action="store_true", default=False,
        help="assess each PR by its last file only instead of its riskiest file",
    )
    parser.add_argument("--top-files", dest="top_files", type=int, default=None, help="top changed files kept per PR (default: 5)")
    parser.add_argument("--no-release", dest="no_release", action="store_true", default=False, help="do not fetch release notes")
    parser.add_argument("--no-header", dest="no_header", action="store_true", default=False, help="omit the reviewer task checklist")
    parser.add_argument("--output", default=None, help="write Markdown to this file (default: stdout)")
    parser.add_argument(
        "--slides", action="store_true", default=False,
        help="generate .pptx slide deck instead of Markdown output",
    )
    parser.add_argument(
        "--slides-output", dest="slides_output", default=None,
        help="output path for .pptx file (default: auto-generated name in CWD)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="enable debug logging")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # Validate arguments
    if (args.base_tag is None) != (args.head_tag is None):
        _fail("--from and --to must be used together.")
    if args.snapshot is None and args.base_tag is None:
        _fail("--from/--to or --snapshot is required.")
    if args.snapshot and args.save_snapshot:
        _fail("--save-snapshot cannot be combined with --snapshot.")
    if args.slides_output and not args.slides:
        _fail("--slides-output requires --slides.")
    if args.output and args.slides:
        _fail("--output and --slides are mutually exclusive.")
    if args.top_files is not None and args.top_files < 1:
        _fail("--top-files must be at least 1.")

    cfg = load_config(args.config_path)

    warning_paths = list(cfg.warning_paths)
    conflict_paths = list(cfg.conflict_paths)
    for list_path, target in ((args.fork_files, warning_paths), (args.conflicts, conflict_paths)):
        if list_path:
            try:
                target.extend(read_path_list(list_path))
            except OSError as e:
                _fail(f"cannot read {list_path}: {e}")

    legacy_assessment = args.legacy_assessment or cfg.legacy_assessment
    top_files = args.top_files or cfg.top_files

    # -----------------------------------------------------------------------
    # Phase 1: Snapshot
    # -----------------------------------------------------------------------
    repo = args.repo or cfg.repo
    release = None

    if args.snapshot:
        try:
            snapshot = load_snapshot(args.snapshot)
        except (OSError, ValueError) as e:
            _fail(f"cannot load snapshot {args.snapshot}: {e}")
        if args.base_tag:
            snapshot.base_tag, snapshot.head_tag = args.base_tag, args.head_tag
    else:
        if not repo:
            _fail("--repo is required (or set 'repo' in the config file).")
        try:
            owner, name = parse_repo(repo)
        except ValueError as e:
            _fail(str(e))

        print(f"Fetching {repo} {args.base_tag}...{args.head_tag}...", file=sys.stderr)
        try:
            snapshot = fetch_snapshot(owner, name, args.base_tag, args.head_tag)
        except (RuntimeError, ValueError) as e:
            _fail(f"snapshot retrieval failed: {e}")

        if args.save_snapshot:
            try:
                save_snapshot(snapshot, args.save_snapshot)
            except OSError as e:
                _fail(f"cannot write snapshot {args.save_snapshot}: {e}")
            print(f"Snapshot written to {args.save_snapshot}", file=sys.stderr)

        if not args.no_release:
            release = fetch_release(owner, name, args.head_tag)

    # -----------------------------------------------------------------------
    # Phase 2: Analysis
    # -----------------------------------------------------------------------
    analysis = analyze(
        snapshot,
        warning_paths,
        conflict_paths,
        legacy_assessment=legacy_assessment,
        top_n=top_files,
    )
    report = UpgradeReport(
        repo=repo or "upstream",
        base_tag=snapshot.base_tag,
        head_tag=snapshot.head_tag,
        analysis=analysis,
        summary=summarize(analysis),
        release=release,
    )
    logger.debug(
        "Report: %d PRs, %d files", report.summary.total_prs, report.summary.total_files,
    )

    # -----------------------------------------------------------------------
    # Phase 3: Output
    # -----------------------------------------------------------------------
    if args.slides:
        # Lazy import -- python-pptx is only needed for slides
        try:
            from upgrade_report.format_slides import format_slides
        except ImportError:
            _fail(
                "python-pptx is required for --slides. "
                "Install it with: pip install python-pptx"
            )

        if args.slides_output:
            output_path = args.slides_output
        else:
            safe_repo = _safe_filename_part(report.repo)
            safe_range = _safe_filename_part(f"{report.base_tag}_{report.head_tag}")
            output_path = f"upgrade-report-{safe_repo}-{safe_range}.pptx"

        try:
            format_slides(report, output_path)
        except OSError as e:
            _fail(f"cannot write {output_path}: {e}")
        print(f"Slides written to {output_path}", file=sys.stderr)
    else:
        output = format_markdown(report, include_header=not args.no_header)
        if args.output:
            try:
                with open(args.output, "w", encoding="utf-8") as f:
                    f.write(output + "\n")
            except OSError as e:
                _fail(f"cannot write {args.output}: {e}")
            print(f"Report written to {args.output}", file=sys.stderr)
        else:
            print(output)


if __name__ == "__main__":
    main()
