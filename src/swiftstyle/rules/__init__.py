"""
swiftstyle.rules - Style Rules

Importing this package registers every built-in rule.
"""

from swiftstyle.rules.base import (
    Category,
    Edit,
    ProjectRule,
    Rule,
    RuleContext,
    all_rules,
    apply_edits,
    get_rule,
    register,
    select_rules,
)
from swiftstyle.rules import spacing, naming, optionals, closures, control_flow, organization, architecture  # noqa: F401
from swiftstyle.rules.architecture import FileIndex, build_file_index

__all__ = [
    "Category",
    "Edit",
    "ProjectRule",
    "Rule",
    "RuleContext",
    "all_rules",
    "apply_edits",
    "get_rule",
    "register",
    "select_rules",
    "FileIndex",
    "build_file_index",
]
