"""Formatting utilities for repo-keeper.

This package provides formatting functions for tables and reports,
organized into logical modules:
- date: Date and age formatting
- branch: Branch name and sync formatting
- status: Repository, outcome and deletion formatting
"""

# Date formatters
from .date import format_date, format_age, age_in_days

# Branch formatters
from .branch import format_branch_name, format_counts, format_sync

# Status formatters
from .status import (
    format_changes,
    format_notes,
    format_prune_reasons,
    format_outcome,
    format_prune_result,
    format_tag_result,
    get_branch_style_type,
)

__all__ = [
    # Date
    "format_date",
    "format_age",
    "age_in_days",
    # Branch
    "format_branch_name",
    "format_counts",
    "format_sync",
    # Status
    "format_changes",
    "format_notes",
    "format_prune_reasons",
    "format_outcome",
    "format_prune_result",
    "format_tag_result",
    "get_branch_style_type",
]
