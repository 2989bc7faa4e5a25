"""
Tests for spacing and formatting rules (SS1xx).
"""

import pytest
from conftest import codes, lines


class TestTrailingWhitespace:
    """SS101 trailing-whitespace."""

    def test_flags_trailing_spaces(self, lint):
        """Spaces and tabs at end of line are flagged at the first one."""
        diags = lint("let a = 1  \nlet b = 2\t\n", "SS101")
        assert lines(diags) == [1, 2]
        assert diags[0].column == 10

    def test_ignores_multiline_string_content(self, lint):
        """Lines inside a multi-line string literal are content, not code."""
        source = 'let s = """\n    keep  \n    """\n'
        assert lint(source, "SS101") == []

    def test_fix_preserves_crlf(self, fix):
        """Fixing keeps Windows line endings."""
        assert fix("let a = 1  \r\nlet b = 2\r\n", "SS101") == "let a = 1\r\nlet b = 2\r\n"


class TestLineLength:
    """SS102 line-length."""

    def test_long_line(self, lint):
        """Lines over the limit are flagged at the first column past it."""
        diags = lint("let name = \"abcdefghij\"\n", "SS102", max_line_length=20)
        assert codes(diags) == ["SS102"]
        assert diags[0].column == 21

    def test_urls_exempt(self, lint):
        """Lines containing URLs are exempt by default."""
        source = "// see https://example.com/a/very/long/path/to/documentation\n"
        assert lint(source, "SS102", max_line_length=20) == []

    def test_comment_lines_exempt_when_configured(self, lint):
        """Comment-only lines are exempt when ignore_comment_lines is set."""
        source = "// a rather long comment line that keeps going\n"
        assert codes(lint(source, "SS102", max_line_length=20)) == ["SS102"]
        assert lint(source, "SS102", max_line_length=20, ignore_comment_lines=True) == []


class TestNoTabs:
    """SS103 no-tabs."""

    def test_tab_indent(self, lint):
        """Tab indentation is flagged."""
        assert lines(lint("func f() {\n\treturn\n}\n", "SS103")) == [2]

    def test_fix_uses_indent_width(self, fix):
        """Tabs become indent_width spaces."""
        assert fix("\tlet a = 1\n", "SS103", indent_width=2) == "  let a = 1\n"


class TestColonSpacing:
    """SS104 colon-spacing."""

    def test_well_formed(self, lint):
        """Declarations, dictionaries and labels with `a: b` spacing pass."""
        source = (
            "let a: Int = 1\n"
            "let d: [String: Int] = [:]\n"
            "f(label: value)\n"
        )
        assert lint(source, "SS104") == []

    def test_space_before_colon(self, lint):
        """`name : Type` is flagged."""
        diags = lint("let a : Int = 1\n", "SS104")
        assert [d.message for d in diags] == ["Unexpected space before colon"]

    def test_missing_space_after_colon(self, lint):
        """`name:Type` is flagged."""
        diags = lint("let a:Int = 1\n", "SS104")
        assert [d.message for d in diags] == ["Expected exactly one space after colon"]

    def test_ternary_exempt(self, lint):
        """The colon of a ternary expression is not a type colon."""
        assert lint("let x = flag ? a : b\n", "SS104") == []

    def test_case_label_at_line_end(self, lint):
        """A colon ending a line is fine."""
        source = "switch x {\ncase .a:\n    break\ndefault:\n    break\n}\n"
        assert lint(source, "SS104") == []

    def test_selector_references(self, lint):
        """Selector names like `perform(_:with:)` are exempt."""
        source = "let s = #selector(perform(_:with:))\nlet t = perform(_:with:)\n"
        assert lint(source, "SS104") == []


class TestCommaSpacing:
    """SS105 comma-spacing."""

    def test_missing_space(self, lint):
        """`f(a,b)` is flagged."""
        assert codes(lint("f(a,b)\n", "SS105")) == ["SS105"]

    def test_space_before(self, lint):
        """`f(a , b)` is flagged."""
        diags = lint("f(a , b)\n", "SS105")
        assert [d.message for d in diags] == ["Unexpected space before comma"]

    def test_trailing_comma_in_literal(self, lint):
        """A comma at the end of a line is fine."""
        assert lint("let a = [\n    1,\n    2,\n]\n", "SS105") == []


class TestOpeningBraceSameLine:
    """SS106 opening-brace-same-line."""

    def test_allman_style(self, lint):
        """A brace on its own line after a declaration is flagged."""
        diags = lint("func f()\n{\n}\n", "SS106")
        assert lines(diags) == [2]

    def test_same_line(self, lint):
        """K&R braces pass."""
        assert lint("if ok {\n    run()\n}\n", "SS106") == []

    def test_closure_after_return(self, lint):
        """A closure literal after `return` on the next line is not a statement brace."""
        assert lint("return\n{ x in x }\n", "SS106") == []


class TestNoSemicolons:
    """SS107 no-semicolons."""

    def test_trailing_semicolon(self, lint):
        """A trailing semicolon is fixable."""
        diags = lint("let a = 1;\n", "SS107")
        assert codes(diags) == ["SS107"]
        assert diags[0].fixable

    def test_multiple_statements(self, lint):
        """Two statements on one line are flagged but not fixable."""
        diags = lint("let a = 1; let b = 2\n", "SS107")
        assert [d.fixable for d in diags] == [False]

    def test_fix(self, fix):
        """Fixing removes the semicolon and whitespace before it."""
        assert fix("let a = 1 ;\nlet b = 2; // note\n", "SS107") == "let a = 1\nlet b = 2 // note\n"


class TestVerticalWhitespace:
    """SS108 vertical-whitespace."""

    def test_two_blank_lines(self, lint):
        """The first blank line over the limit is flagged once per run."""
        diags = lint("let a = 1\n\n\n\nlet b = 2\n", "SS108")
        assert lines(diags) == [3]

    def test_limit_is_configurable(self, lint):
        """max_blank_lines raises the limit."""
        assert lint("let a = 1\n\n\nlet b = 2\n", "SS108", max_blank_lines=2) == []

    def test_fix_collapses_runs(self, fix):
        """Fixing keeps exactly max_blank_lines blank lines."""
        assert fix("let a = 1\n\n\n\nlet b = 2\n", "SS108") == "let a = 1\n\nlet b = 2\n"


class TestTrailingNewline:
    """SS109 trailing-newline."""

    def test_missing_newline(self, lint):
        """A file without a final newline is flagged."""
        assert codes(lint("let a = 1", "SS109")) == ["SS109"]

    def test_extra_newlines(self, lint):
        """More than one final newline is flagged."""
        assert codes(lint("let a = 1\n\n", "SS109")) == ["SS109"]

    def test_single_newline(self, lint):
        """Exactly one newline passes."""
        assert lint("let a = 1\n", "SS109") == []

    def test_fix(self, fix):
        """Fixing normalises to a single newline."""
        assert fix("let a = 1", "SS109") == "let a = 1\n"
        assert fix("let a = 1\n\n\n", "SS109") == "let a = 1\n"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
