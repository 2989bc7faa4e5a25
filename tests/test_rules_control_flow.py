"""
Tests for control flow rules (SS5xx).
"""

import pytest
from conftest import codes, lines


class TestNoConditionParens:
    """SS501 no-condition-parens."""

    def test_if(self, lint):
        """A parenthesised if condition is flagged at the paren."""
        diags = lint("if (x > 0) {\n}\n", "SS501")
        assert [d.message for d in diags] == ["Unnecessary parentheses around `if` condition"]
        assert diags[0].column == 4

    def test_guard_and_while(self, lint):
        """guard and while conditions are checked too."""
        source = (
            "func f() {\n"
            "    guard (value > 0) else {\n"
            "        return\n"
            "    }\n"
            "    while (running) {\n"
            "    }\n"
            "}\n"
        )
        assert lines(lint(source, "SS501")) == [2, 5]

    def test_partial_parens(self, lint):
        """Parentheses around part of a condition are left alone."""
        source = "if (a || b) && c {\n}\nif (a, b) == (1, 2) {\n}\n"
        assert lint(source, "SS501") == []

    def test_plain_condition(self, lint):
        """Unparenthesised conditions pass."""
        assert lint("if x > 0 {\n}\n", "SS501") == []

    def test_fix_spaced(self, fix):
        """Fixing removes the parentheses."""
        assert fix("if (x > 0) {\n}\n", "SS501") == "if x > 0 {\n}\n"

    def test_fix_glued(self, fix):
        """Fixing keeps single spaces around the condition when the parens were glued."""
        assert fix("if(ready){\n}\n", "SS501") == "if ready {\n}\n"

    def test_fix_guard(self, fix):
        """guard conditions lose their parentheses before `else`."""
        source = "func f() {\n    guard (ok) else { return }\n}\n"
        assert fix(source, "SS501") == "func f() {\n    guard ok else { return }\n}\n"


class TestUnreachableDefault:
    """SS502 unreachable-default."""

    def test_default_break(self, lint):
        """A default that only breaks is reported as information."""
        source = (
            "switch value {\n"
            "case .a:\n"
            "    run()\n"
            "default:\n"
            "    break\n"
            "}\n"
        )
        diags = lint(source, "SS502")
        assert lines(diags) == [4]
        assert diags[0].severity.value == "info"

    def test_empty_default(self, lint):
        """A default with no statements is flagged."""
        source = "switch value {\ncase .a:\n    run()\ndefault:\n}\n"
        assert codes(lint(source, "SS502")) == ["SS502"]

    def test_default_with_handling(self, lint):
        """A default that does something passes."""
        source = (
            "switch value {\n"
            "case .a:\n"
            "    break\n"
            "default:\n"
            "    fatalError(\"Unexpected value\")\n"
            "}\n"
        )
        assert lint(source, "SS502") == []

    def test_case_with_nested_if(self, lint):
        """Nested statements in a default body count as handling."""
        source = (
            "switch value {\n"
            "default:\n"
            "    if flag {\n"
            "        log()\n"
            "    }\n"
            "}\n"
        )
        assert lint(source, "SS502") == []

    def test_default_member_reference(self, lint):
        """`.default` is not a switch label."""
        assert lint("let config = Config.default\nlet style: Style = .default\n", "SS502") == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
