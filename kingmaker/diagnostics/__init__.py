"""Operational checks."""

from .checklist import ChecklistIssue, run_checklist

__all__ = ["ChecklistIssue", "run_checklist"]
