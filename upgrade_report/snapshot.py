"""JSON (de)serialization of TagCompareSnapshot.

Field names follow the GitHub REST API so that API payloads and saved
snapshots share one shape.
"""

from __future__ import annotations

import json

from upgrade_report.report_data import (
    FileChange,
    PullRequestChangeSet,
    PullRequestRecord,
    TagCompareSnapshot,
)


def _int_field(raw: dict, key: str) -> int:
    """Read an integer field; missing or null means 0.

    Raises:
        ValueError: If the value is present but not an integer.
    """
    value = raw.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Field '{key}' must be an integer (got {value!r})")
    return value


def file_change_from_dict(raw: dict) -> FileChange:
    """Build a FileChange from a GitHub file entry.

    Raises:
        ValueError: If additions or deletions is not an integer.
    """
    return FileChange(
        path=raw.get("filename", "") or "",
        status=raw.get("status", "") or "",
        additions=_int_field(raw, "additions"),
        deletions=_int_field(raw, "deletions"),
    )


def pull_request_from_dict(raw: dict) -> PullRequestRecord:
    """Build a PullRequestRecord from a GitHub pull request entry.

    Raises:
        ValueError: If number is not an integer.
    """
    return PullRequestRecord(
        number=_int_field(raw, "number"),
        title=raw.get("title", "") or "",
        html_url=raw.get("html_url", "") or "",
        closed_at=raw.get("closed_at", "") or "",
    )


def snapshot_from_dict(data: dict) -> TagCompareSnapshot:
    """Parse a snapshot document.

    Raises:
        ValueError: If the document is not a JSON object or a count or PR
            number is not an integer.
    """
    if not isinstance(data, dict):
        raise ValueError(
            f"Snapshot must be a JSON object (got {type(data).__name__})"
        )

    pull_requests: list[PullRequestChangeSet] = []
    for raw_pr in data.get("pull_requests") or []:
        if not isinstance(raw_pr, dict):
            continue
        files = [
            file_change_from_dict(f)
            for f in raw_pr.get("files") or []
            if isinstance(f, dict)
        ]
        pull_requests.append(PullRequestChangeSet(
            record=pull_request_from_dict(raw_pr),
            files=files,
        ))

    return TagCompareSnapshot(
        pull_requests=pull_requests,
        files=[
            file_change_from_dict(f)
            for f in data.get("files") or []
            if isinstance(f, dict)
        ],
        base_tag=data.get("base_tag", "") or "",
        head_tag=data.get("head_tag", "") or "",
    )


def _file_to_dict(file: FileChange) -> dict:
    return {
        "filename": file.path,
        "status": file.status,
        "additions": file.additions,
        "deletions": file.deletions,
    }


def snapshot_to_dict(snapshot: TagCompareSnapshot) -> dict:
    """Convert a snapshot to a JSON-serializable dict."""
    return {
        "base_tag": snapshot.base_tag,
        "head_tag": snapshot.head_tag,
        "pull_requests": [
            {
                "number": pr.record.number,
                "title": pr.record.title,
                "html_url": pr.record.html_url,
                "closed_at": pr.record.closed_at,
                "files": [_file_to_dict(f) for f in pr.files],
            }
            for pr in snapshot.pull_requests
        ],
        "files": [_file_to_dict(f) for f in snapshot.files],
    }


def load_snapshot(path: str) -> TagCompareSnapshot:
    """Read a snapshot from a JSON file.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the content is not a valid snapshot document.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return snapshot_from_dict(data)


def save_snapshot(snapshot: TagCompareSnapshot, path: str) -> None:
    """Write a snapshot to a JSON file."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(snapshot_to_dict(snapshot), f, indent=2)
        f.write("\n")
