"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import os
import shutil
import subprocess

import pytest


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "requires_gh: mark test as requiring an authenticated gh CLI "
        "and network access",
    )


def _gh_available() -> bool:
    """Check whether gh is installed and authenticated."""
    if shutil.which("gh") is None:
        return False
    if os.environ.get("GH_TOKEN") or os.environ.get("GITHUB_TOKEN"):
        return True
    try:
        result = subprocess.run(
            ["gh", "auth", "status"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (subprocess.TimeoutExpired, OSError):
        return False
    return result.returncode == 0


def pytest_collection_modifyitems(config, items):
    if not any("requires_gh" in item.keywords for item in items):
        return
    if _gh_available():
        return
    skip_gh = pytest.mark.skip(
        reason="No authenticated gh CLI available (need gh + GH_TOKEN or gh auth login)",
    )
    for item in items:
        if "requires_gh" in item.keywords:
            item.add_marker(skip_gh)
