"""Collect GitHub pull request and issue process metrics."""
