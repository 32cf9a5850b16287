"""Upstream upgrade risk report: merged PRs and changed files between two tags."""
