"""Configuration loader for upgrade-report.

Reads YAML configuration from ~/.config/upgrade-report/config.yaml (or a
custom path) describing the upstream repository and the downstream fork's
known-risk files.

Requires PyYAML (pip install pyyaml).
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import List, Optional

import yaml

from upgrade_report.analysis import DEFAULT_TOP_FILES

logger = logging.getLogger("upgrade_report.config")

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.config/upgrade-report/config.yaml")

# owner/name, as accepted by `gh api repos/{owner}/{name}`
_REPO_RE = re.compile(r"^([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)$")


@dataclass
class Config:
    """Top-level application configuration."""

    repo: str = ""
    warning_paths: List[str] = field(default_factory=list)
    conflict_paths: List[str] = field(default_factory=list)
    legacy_assessment: bool = False
    top_files: int = DEFAULT_TOP_FILES


def parse_repo(repo: str) -> tuple[str, str]:
    """Split "owner/name" into its parts.

    Raises:
        ValueError: If the string is not of the form owner/name.
    """
    match = _REPO_RE.match(repo.strip())
    if not match:
        raise ValueError(f"Invalid repository '{repo}'. Use owner/name.")
    return match.group(1), match.group(2)


def _expand_path(path: str, base_dir: str = "") -> str:
    """Expand ~ and environment variables, resolving relative to base_dir."""
    path = os.path.expanduser(os.path.expandvars(path))
    if base_dir and not os.path.isabs(path):
        path = os.path.join(base_dir, path)
    return path


def read_path_list(path: str) -> list[str]:
    """Read one file path per line, skipping blank lines and # comments.

    Raises:
        OSError: If the file cannot be read.
    """
    paths: list[str] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            entry = line.strip()
            if entry and not entry.startswith("#"):
                paths.append(entry)
    return paths


def _collect_paths(data: dict, list_key: str, file_key: str, base_dir: str) -> list[str]:
    """Merge an inline YAML list with the contents of a referenced list file."""
    paths: list[str] = []

    inline = data.get(list_key, [])
    if isinstance(inline, list):
        paths.extend(str(p) for p in inline if p)

    list_file = data.get(file_key, "")
    if list_file:
        list_file = _expand_path(str(list_file), base_dir)
        try:
            paths.extend(read_path_list(list_file))
        except OSError as e:
            logger.warning("Cannot read %s %s: %s", file_key, list_file, e)

    return paths


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML config file. Defaults to
            ~/.config/upgrade-report/config.yaml.

    Returns:
        A Config instance. If the config file does not exist, is not valid
        YAML or is not a mapping, returns a default Config (graceful
        degradation).
    """
    path = _expand_path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if not os.path.isfile(path):
        logger.debug("No config file at %s, using defaults", path)
        return Config()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.warning("Ignoring config %s: invalid YAML: %s", path, e)
        return Config()

    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: expected a mapping", path)
        return Config()

    base_dir = os.path.dirname(os.path.abspath(path))

    repo = data.get("repo", "") or ""
    if not isinstance(repo, str):
        repo = ""

    legacy_assessment = data.get("legacy_assessment", False)
    if not isinstance(legacy_assessment, bool):
        legacy_assessment = False

    top_files = data.get("top_files", DEFAULT_TOP_FILES)
    if not isinstance(top_files, int) or isinstance(top_files, bool) or top_files < 1:
        top_files = DEFAULT_TOP_FILES

    return Config(
        repo=repo,
        warning_paths=_collect_paths(data, "fork_files", "fork_files_file", base_dir),
        conflict_paths=_collect_paths(data, "expected_conflicts", "expected_conflicts_file", base_dir),
        legacy_assessment=legacy_assessment,
        top_files=top_files,
    )
