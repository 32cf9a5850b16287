"""Functional tests for the upgrade_report CLI.

Offline tests drive `python -m upgrade_report` against a saved snapshot.
The live test fetches a real tag range from GitHub and is skipped without
an authenticated gh CLI.

Run with: python3 -m pytest tests/test_cli.py -v
"""

import json
import subprocess
import sys
from pathlib import Path

import pytest
from pptx import Presentation

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def run_report(*extra_args: str, cwd=None):
    """Run upgrade_report and return (stdout, stderr, returncode)."""
    cmd = [sys.executable, "-m", "upgrade_report", "--config", "/nonexistent/config.yaml", *extra_args]
    result = subprocess.run(
        cmd, capture_output=True, text=True, timeout=120, cwd=str(cwd or PROJECT_ROOT),
    )
    return result.stdout, result.stderr, result.returncode


@pytest.fixture
def snapshot_file(tmp_path):
    doc = {
        "base_tag": "v1.0.0",
        "head_tag": "v1.1.0",
        "pull_requests": [
            {
                "number": 7,
                "title": "core: rework state",
                "html_url": "https://github.com/o/r/pull/7",
                "closed_at": "2021-01-02T00:00:00Z",
                "files": [
                    {"filename": "core/state.go", "status": "modified", "additions": 5, "deletions": 2},
                    {"filename": "core/extra.go", "status": "added", "additions": 9, "deletions": 0},
                ],
            },
        ],
        "files": [
            {"filename": "core/state.go", "status": "modified", "additions": 5, "deletions": 2},
            {"filename": "core/extra.go", "status": "added", "additions": 9, "deletions": 0},
        ],
    }
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(doc))
    return path


# ---------------------------------------------------------------------------
# Argument validation
# ---------------------------------------------------------------------------

class TestCLIValidation:
    """Verify error handling for invalid argument combinations."""

    def test_from_without_to(self):
        _, err, rc = run_report("--from", "v1.0.0")
        assert rc != 0
        assert "must be used together" in err

    def test_no_range_and_no_snapshot(self):
        _, err, rc = run_report()
        assert rc != 0
        assert "--snapshot is required" in err

    def test_slides_output_requires_slides(self, snapshot_file):
        _, err, rc = run_report("--snapshot", str(snapshot_file), "--slides-output", "x.pptx")
        assert rc != 0
        assert "--slides-output requires --slides" in err

    def test_output_and_slides_exclusive(self, snapshot_file):
        _, err, rc = run_report("--snapshot", str(snapshot_file), "--slides", "--output", "x.md")
        assert rc != 0
        assert "mutually exclusive" in err

    def test_top_files_must_be_positive(self, snapshot_file):
        _, err, rc = run_report("--snapshot", str(snapshot_file), "--top-files", "0")
        assert rc != 0
        assert "--top-files" in err

    def test_invalid_repo(self):
        _, err, rc = run_report("--repo", "not-a-repo", "--from", "a", "--to", "b")
        assert rc != 0
        assert "owner/name" in err

    def test_missing_snapshot_file(self, tmp_path):
        _, err, rc = run_report("--snapshot", str(tmp_path / "missing.json"))
        assert rc != 0
        assert "cannot load snapshot" in err

    def test_snapshot_with_string_count(self, snapshot_file, tmp_path):
        doc = json.loads(snapshot_file.read_text())
        doc["files"][0]["additions"] = "5"
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps(doc))
        _, err, rc = run_report("--snapshot", str(bad))
        assert rc == 1
        assert "cannot load snapshot" in err
        assert "Traceback" not in err

    def test_unwritable_slides_output(self, snapshot_file, tmp_path):
        target = tmp_path / "missing-dir" / "deck.pptx"
        _, err, rc = run_report(
            "--snapshot", str(snapshot_file), "--slides", "--slides-output", str(target),
        )
        assert rc == 1
        assert "cannot write" in err
        assert "Traceback" not in err

    def test_missing_fork_files(self, snapshot_file, tmp_path):
        _, err, rc = run_report(
            "--snapshot", str(snapshot_file), "--fork-files", str(tmp_path / "none.txt"),
        )
        assert rc != 0
        assert "cannot read" in err


# ---------------------------------------------------------------------------
# Offline runs
# ---------------------------------------------------------------------------

class TestCLISnapshot:
    """Full pipeline against a saved snapshot."""

    def test_markdown_to_stdout(self, snapshot_file):
        out, err, rc = run_report("--snapshot", str(snapshot_file))
        assert rc == 0, err
        assert "v1.0.0 .. v1.1.0" in out
        assert "[#7](https://github.com/o/r/pull/7)" in out
        assert "`core/extra.go` | 9 |" in out

    def test_conflict_list_applied(self, snapshot_file, tmp_path):
        conflicts = tmp_path / "conflicts.txt"
        conflicts.write_text("core/state.go\n")
        out, err, rc = run_report(
            "--snapshot", str(snapshot_file), "--conflicts", str(conflicts), "--no-header",
        )
        assert rc == 0, err
        assert "## Actions" not in out
        assert "| ‼️ | `core/state.go` |" in out
        assert "| ‼️ | [#7]" in out

    def test_legacy_assessment_flag(self, snapshot_file, tmp_path):
        conflicts = tmp_path / "conflicts.txt"
        conflicts.write_text("core/state.go\n")
        out, err, rc = run_report(
            "--snapshot", str(snapshot_file), "--conflicts", str(conflicts),
            "--legacy-assessment",
        )
        assert rc == 0, err
        # the PR's last file is unclassified, so the legacy mode reports it clean
        assert "| ✅ | [#7]" in out

    def test_tags_override(self, snapshot_file):
        out, err, rc = run_report("--snapshot", str(snapshot_file), "--from", "x1", "--to", "x2")
        assert rc == 0, err
        assert "x1 .. x2" in out

    def test_markdown_to_file(self, snapshot_file, tmp_path):
        target = tmp_path / "report.md"
        out, err, rc = run_report("--snapshot", str(snapshot_file), "--output", str(target))
        assert rc == 0, err
        assert out == ""
        assert "## Analysis" in target.read_text(encoding="utf-8")

    def test_slides(self, snapshot_file, tmp_path):
        target = tmp_path / "deck.pptx"
        _, err, rc = run_report(
            "--snapshot", str(snapshot_file), "--slides", "--slides-output", str(target),
        )
        assert rc == 0, err
        assert "Slides written to" in err
        assert len(Presentation(str(target)).slides) == 4

    def test_config_file(self, snapshot_file, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("fork_files:\n  - core/extra.go\n")
        cmd = [
            sys.executable, "-m", "upgrade_report",
            "--config", str(config), "--snapshot", str(snapshot_file),
        ]
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=120, cwd=str(PROJECT_ROOT))
        assert result.returncode == 0, result.stderr
        assert "| ⚠️ | `core/extra.go` |" in result.stdout


# ---------------------------------------------------------------------------
# Live run
# ---------------------------------------------------------------------------

@pytest.mark.requires_gh
class TestCLILive:
    """Fetch a small real tag range from GitHub."""

    def test_go_ethereum_patch_release(self, tmp_path):
        saved = tmp_path / "snap.json"
        out, err, rc = run_report(
            "--repo", "ethereum/go-ethereum",
            "--from", "v1.9.7", "--to", "v1.9.8",
            "--save-snapshot", str(saved),
        )
        assert rc == 0, err
        assert "## Analysis" in out
        assert json.loads(saved.read_text())["head_tag"] == "v1.9.8"
