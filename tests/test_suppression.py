"""
Tests for inline suppression directives.
"""

import pytest
from swiftstyle.parser import parse_source
from swiftstyle.suppression import ALL, Suppressions, build_suppressions


def suppressions(source):
    return build_suppressions(parse_source(source).tokens)


class TestDirectives:
    """Parsing of swiftstyle:disable / enable comments."""

    def test_no_directives(self):
        """Files without directives suppress nothing."""
        sup = suppressions("let a = 1 // plain comment\n")
        assert not sup
        assert not sup.is_suppressed("SS301", "no-force-unwrap", 1)

    def test_disable_this(self):
        """`disable:this` applies to the comment's line."""
        sup = suppressions("let a = b! // swiftstyle:disable:this SS301\n")
        assert sup.line_rules == {1: {"SS301"}}

    def test_disable_next_ignores_reason(self):
        """Text after the rule list is a free-form reason."""
        sup = suppressions("// swiftstyle:disable:next SS102 - long URL\nlet url = 1\n")
        assert sup.line_rules == {2: {"SS102"}}

    def test_disable_next_after_block_comment(self):
        """`disable:next` in a block comment applies after the comment ends."""
        sup = suppressions("/* swiftstyle:disable:next SS301\n */\nlet a = b!\n")
        assert sup.is_suppressed("SS301", "no-force-unwrap", 3)
        assert not sup.is_suppressed("SS301", "no-force-unwrap", 2)

    def test_comma_separated_and_lowercase(self):
        """Codes may be comma separated and any case."""
        sup = suppressions("// swiftstyle:disable:this ss301,SS302\n")
        assert sup.line_rules == {1: {"SS301", "SS302"}}

    def test_no_keys_means_all(self):
        """A bare disable silences every rule to the end of the file."""
        sup = suppressions("// swiftstyle:disable\nlet a = b!\n")
        assert set(sup.regions) == {ALL}
        assert sup.is_suppressed("SS101", "trailing-whitespace", 500)

    def test_region_by_name(self):
        """Regions close at the matching enable; names are keyed by code."""
        source = (
            "// swiftstyle:disable no-force-unwrap\n"
            "let a = b!\n"
            "// swiftstyle:enable no-force-unwrap\n"
            "let c = d!\n"
        )
        sup = suppressions(source)
        assert sup.regions == {"SS301": [(1, 3)]}
        assert sup.is_suppressed("SS301", "no-force-unwrap", 2)
        assert not sup.is_suppressed("SS301", "no-force-unwrap", 4)

    def test_enable_all_closes_every_region(self):
        """`enable all` closes all open regions."""
        source = (
            "// swiftstyle:disable SS301 SS302\n"
            "let a = try! b()!\n"
            "// swiftstyle:enable all\n"
        )
        sup = suppressions(source)
        assert sup.regions == {"SS301": [(1, 3)], "SS302": [(1, 3)]}

    def test_name_and_code_interchangeable(self):
        """A region opened by name closes at an enable by code, and vice versa."""
        source = (
            "// swiftstyle:disable no-force-unwrap\n"
            "let a = b!\n"
            "// swiftstyle:enable SS301\n"
            "let c = d!\n"
            "// swiftstyle:disable SS303\n"
            "let e = f as! G\n"
            "// swiftstyle:enable no-force-cast\n"
            "let h = i as! J\n"
        )
        sup = suppressions(source)
        assert sup.regions == {"SS301": [(1, 3)], "SS303": [(5, 7)]}
        assert not sup.is_suppressed("SS301", "no-force-unwrap", 4)
        assert not sup.is_suppressed("SS303", "no-force-cast", 8)

    def test_enable_one_rule_inside_disable_all(self):
        """`enable X` after `disable all` turns X back on until it is disabled again."""
        source = (
            "// swiftstyle:disable all\n"
            "let a = b!\n"
            "// swiftstyle:enable no-force-unwrap\n"
            "let c = d!\n"
            "// swiftstyle:disable SS301\n"
            "let e = f!\n"
            "// swiftstyle:enable all\n"
            "let g = h!\n"
        )
        sup = suppressions(source)
        assert sup.is_suppressed("SS301", "no-force-unwrap", 2)
        assert not sup.is_suppressed("SS301", "no-force-unwrap", 4)
        assert sup.is_suppressed("SS102", "line-length", 4)
        assert sup.is_suppressed("SS301", "no-force-unwrap", 6)
        assert not sup.is_suppressed("SS301", "no-force-unwrap", 8)

    def test_enable_without_disable(self):
        """A stray enable is harmless."""
        assert not suppressions("// swiftstyle:enable SS301\n")

    def test_lookalikes_ignored(self):
        """Similar words and string contents are not directives."""
        source = '// swiftstyle:disabled SS301\nlet s = "// swiftstyle:disable"\n'
        assert not suppressions(source)


class TestSuppressions:
    """Suppressions.is_suppressed()."""

    def test_matches_code_or_name(self):
        """A key matches either the code or the rule name."""
        sup = Suppressions(line_rules={3: {"no-tabs"}}, regions={"SS102": [(10, 20)]})
        assert sup.is_suppressed("SS103", "no-tabs", 3)
        assert sup.is_suppressed("SS102", "line-length", 15)
        assert not sup.is_suppressed("SS102", "line-length", 21)
        assert not sup.is_suppressed("SS101", "trailing-whitespace", 3)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
