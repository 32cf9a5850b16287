"""GitHub access for upgrade-report via the gh CLI.

Fetches everything needed to build a TagCompareSnapshot:

- the REST compare between two tags (commit SHAs and the flat file diff)
- the merged PRs behind those commits, via batched GraphQL queries
- the files of each merged PR
- the release published for the target tag

All requests go through `gh api`, which owns authentication. Requests are
made sequentially and are not retried.
"""

from __future__ import annotations

import json
import logging
import subprocess
import sys
from typing import Optional

from upgrade_report.report_data import (
    PullRequestChangeSet,
    PullRequestRecord,
    ReleaseData,
    TagCompareSnapshot,
)
from upgrade_report.snapshot import file_change_from_dict

logger = logging.getLogger("upgrade_report.github_client")

# GraphQL aliases per commit-to-PR query
COMMIT_BATCH_SIZE = 25

# Commits per compare page; the compare endpoint caps its file list
COMPARE_PAGE_SIZE = 100
COMPARE_FILES_LIMIT = 300

# One JSON object per compare page
_COMPARE_JQ = (
    "{total_commits, commits: [(.commits // [])[] | .sha], "
    "files: [(.files // [])[] | {filename, status, additions, deletions}]}"
)


def gh_command(args: list[str], timeout: int = 60) -> str:
    """Run a gh CLI command and return stdout."""
    try:
        result = subprocess.run(
            ["gh"] + args,
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
        )
        return result.stdout.strip()
    except FileNotFoundError:
        print("Error: gh CLI is not installed.", file=sys.stderr)
        sys.exit(1)
    except subprocess.TimeoutExpired:
        raise RuntimeError(f"gh command timed out: {' '.join(args)}") from None
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "")[:500]
        raise RuntimeError(f"gh command failed: {' '.join(args)}\n{stderr}") from e


def gh_json(args: list[str]):
    """Run a gh CLI command and parse JSON output."""
    output = gh_command(args)
    if not output:
        return []
    return json.loads(output)


def gh_json_lines(args: list[str]) -> list:
    """Run a gh CLI command emitting one JSON value per line (--jq output)."""
    output = gh_command(args)
    return [json.loads(line) for line in output.splitlines() if line.strip()]


def graphql_query(query: str, variables: Optional[dict] = None) -> dict:
    """Execute a GraphQL query via gh api graphql and return the data dict.

    Args:
        query: The GraphQL query string.
        variables: Optional dict of variables to pass to the query.

    Returns:
        The 'data' dict from the GraphQL response.

    Raises:
        RuntimeError: If the response contains errors or the gh command fails.
    """
    cmd = ["api", "graphql", "-f", f"query={query}"]
    if variables:
        for key, value in variables.items():
            cmd.extend(["-f", f"{key}={value}"])

    try:
        response = gh_json(cmd)
    except RuntimeError as e:
        raise RuntimeError(f"gh api graphql failed:\n{e}") from e

    if not isinstance(response, dict):
        raise RuntimeError("gh api graphql returned no data")

    errors = response.get("errors")
    if errors:
        messages = "; ".join(err.get("message", str(err)) for err in errors)
        raise RuntimeError(f"GraphQL errors: {messages}")

    return response.get("data") or {}


# ---------------------------------------------------------------------------
# Query builders and response parsers
# ---------------------------------------------------------------------------


def _sanitize_graphql_string(value: str) -> str:
    """Escape a value for embedding in a double-quoted GraphQL string."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def build_commit_to_pr_query(owner: str, repo: str, shas: list[str]) -> str:
    """Build a batch GraphQL query mapping commits to their PRs.

    Args:
        owner: Repository owner/organization.
        repo: Repository name.
        shas: Commit SHAs; only the first COMMIT_BATCH_SIZE are used.

    Returns:
        A GraphQL query string with index-based aliases (c0, c1, ...).
    """
    fragments = []
    for i, sha in enumerate(shas[:COMMIT_BATCH_SIZE]):
        fragments.append(
            f'    c{i}: object(expression: "{_sanitize_graphql_string(sha)}") {{\n'
            f"      ... on Commit {{\n"
            f"        oid\n"
            f"        associatedPullRequests(first: 5) {{\n"
            f"          nodes {{\n"
            f"            number\n"
            f"            title\n"
            f"            url\n"
            f"            state\n"
            f"            closedAt\n"
            f"            mergedAt\n"
            f"          }}\n"
            f"        }}\n"
            f"      }}\n"
            f"    }}"
        )
    return (
        "{\n"
        f'  repository(owner: "{_sanitize_graphql_string(owner)}", '
        f'name: "{_sanitize_graphql_string(repo)}") {{\n'
        + "\n".join(fragments)
        + "\n  }\n}"
    )


def parse_commit_to_pr_response(data: dict, shas: list[str]) -> list[PullRequestRecord]:
    """Parse the commit-to-PR batch response.

    Args:
        data: The 'data' dict from a build_commit_to_pr_query response.
        shas: The SHAs passed to build_commit_to_pr_query, in order.

    Returns:
        Merged PRs in commit order, without duplicates.
    """
    records: list[PullRequestRecord] = []
    seen: set[int] = set()
    repo_data = data.get("repository")
    if not repo_data:
        return records

    for i in range(min(len(shas), COMMIT_BATCH_SIZE)):
        obj = repo_data.get(f"c{i}")
        if not obj:
            continue
        nodes = (obj.get("associatedPullRequests") or {}).get("nodes") or []
        for node in nodes:
            if not node or not node.get("mergedAt"):
                continue
            number = node.get("number")
            if not number or number in seen:
                continue
            seen.add(number)
            records.append(PullRequestRecord(
                number=number,
                title=node.get("title", "") or "",
                html_url=node.get("url", "") or "",
                closed_at=node.get("closedAt") or node.get("mergedAt") or "",
            ))
    return records


def parse_release_response(data: dict) -> ReleaseData:
    """Build ReleaseData from a REST release payload."""
    return ReleaseData(
        name=data.get("name") or data.get("tag_name", "") or "",
        tag=data.get("tag_name", "") or "",
        published_at=data.get("published_at", "") or "",
        body=data.get("body", "") or "",
        html_url=data.get("html_url", "") or "",
    )


# ---------------------------------------------------------------------------
# Fetchers
# ---------------------------------------------------------------------------


def fetch_compare(owner: str, repo: str, base: str, head: str):
    """Fetch commits and changed files between two refs.

    Commits are paginated and merged across pages. GitHub lists the changed
    files on the first page only and truncates them at COMPARE_FILES_LIMIT;
    hitting that cap, or receiving fewer commits than total_commits, logs a
    warning since the snapshot is then incomplete.

    Returns:
        Tuple of (commit SHAs oldest first, list of FileChange).

    Raises:
        RuntimeError: If the gh command fails or returns no compare data.
    """
    pages = gh_json_lines([
        "api", "--paginate",
        f"repos/{owner}/{repo}/compare/{base}...{head}?per_page={COMPARE_PAGE_SIZE}",
        "--jq", _COMPARE_JQ,
    ])
    if not pages or not all(isinstance(page, dict) for page in pages):
        raise RuntimeError(f"Unexpected compare response for {base}...{head}")

    shas: list[str] = []
    files = []
    seen_paths: set[str] = set()
    total_commits = 0
    for page in pages:
        total_commits = page.get("total_commits") or total_commits
        shas.extend(sha for sha in page.get("commits") or [] if sha)
        for raw in page.get("files") or []:
            file = file_change_from_dict(raw)
            if file.path not in seen_paths:
                seen_paths.add(file.path)
                files.append(file)

    logger.info(
        "Compare %s...%s: %d commits in %d page(s), %d files",
        base, head, len(shas), len(pages), len(files),
    )
    if total_commits > len(shas):
        logger.warning(
            "Compare %s...%s returned %d of %d commits; some PRs may be missing",
            base, head, len(shas), total_commits,
        )
    if len(files) >= COMPARE_FILES_LIMIT:
        logger.warning(
            "Compare %s...%s lists %d files, GitHub's limit; the changed file list may be truncated",
            base, head, len(files),
        )
    return shas, files


def fetch_merged_pull_requests(owner: str, repo: str, shas: list[str]) -> list[PullRequestRecord]:
    """Resolve commits to the merged PRs that introduced them."""
    records: list[PullRequestRecord] = []
    seen: set[int] = set()
    for i in range(0, len(shas), COMMIT_BATCH_SIZE):
        batch = shas[i:i + COMMIT_BATCH_SIZE]
        data = graphql_query(build_commit_to_pr_query(owner, repo, batch))
        for record in parse_commit_to_pr_response(data, batch):
            if record.number not in seen:
                seen.add(record.number)
                records.append(record)
    logger.info("Resolved %d commits to %d merged PRs", len(shas), len(records))
    return records


def fetch_pull_request_files(owner: str, repo: str, number: int):
    """Fetch all files of a PR (paginated)."""
    entries = gh_json_lines([
        "api", "--paginate",
        f"repos/{owner}/{repo}/pulls/{int(number)}/files",
        "--jq", ".[] | {filename, status, additions, deletions}",
    ])
    return [file_change_from_dict(e) for e in entries if isinstance(e, dict)]


def fetch_release(owner: str, repo: str, tag: str) -> Optional[ReleaseData]:
    """Fetch the release published for a tag, or None if there is none."""
    try:
        data = gh_json(["api", f"repos/{owner}/{repo}/releases/tags/{tag}"])
    except RuntimeError as e:
        logger.warning("No release found for %s: %s", tag, e)
        return None
    if not isinstance(data, dict):
        return None
    return parse_release_response(data)


def fetch_snapshot(owner: str, repo: str, base: str, head: str) -> TagCompareSnapshot:
    """Fetch the complete TagCompareSnapshot between two tags.

    Raises:
        RuntimeError: If any gh call fails.
    """
    shas, files = fetch_compare(owner, repo, base, head)
    records = fetch_merged_pull_requests(owner, repo, shas)

    pull_requests: list[PullRequestChangeSet] = []
    for record in records:
        logger.debug("Fetching files of PR #%d", record.number)
        pull_requests.append(PullRequestChangeSet(
            record=record,
            files=fetch_pull_request_files(owner, repo, record.number),
        ))

    return TagCompareSnapshot(
        pull_requests=pull_requests,
        files=files,
        base_tag=base,
        head_tag=head,
    )
