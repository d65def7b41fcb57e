"""Inline style review for pull request diffs."""

__version__ = "0.1.0"
