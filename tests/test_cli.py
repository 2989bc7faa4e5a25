"""
Tests for the swiftstyle command line.
"""

import json

import pytest
from swiftstyle.cli import build_parser, main
from swiftstyle.docs import DOC_RULES
from swiftstyle.rules import all_rules

CLEAN = "struct User {\n    let id: Int\n}\n"


@pytest.fixture
def project(tmp_path):
    """A directory with one clean and one dirty Swift file."""
    (tmp_path / "User.swift").write_text(CLEAN, encoding="utf-8")
    (tmp_path / "Loader.swift").write_text(
        "struct Loader {\n    let value = cache!.first\n}\n", encoding="utf-8")
    return tmp_path


class TestLint:
    """swiftstyle lint."""

    def test_clean_file(self, project, capsys):
        """A clean file exits 0."""
        assert main(["lint", str(project / "User.swift")]) == 0
        assert "swiftstyle: OK - 1 file(s), no issues" in capsys.readouterr().out

    def test_findings(self, project, capsys):
        """Warnings fail the run by default."""
        assert main(["lint", str(project)]) == 1
        out = capsys.readouterr().out
        assert "Loader.swift:2:22: warning SS301 Force unwrapping an optional" in out
        assert "Summary: 1 issue(s) in 2 file(s) (1 warning)" in out

    def test_fail_on_error(self, project):
        """--fail-on error lets warnings pass."""
        assert main(["lint", str(project), "--fail-on", "error"]) == 0

    def test_min_severity(self, project, capsys):
        """--min-severity hides less severe findings."""
        assert main(["lint", str(project), "--min-severity", "error"]) == 0
        assert "no issues" in capsys.readouterr().out

    def test_json(self, project, capsys):
        """--json emits machine-readable output."""
        main(["lint", str(project), "--json"])
        data = json.loads(capsys.readouterr().out)
        assert [d["code"] for d in data["diagnostics"]] == ["SS301"]
        assert data["files_checked"] == 2

    def test_github(self, project, capsys):
        """--format github emits workflow annotations."""
        main(["lint", str(project), "--format", "github"])
        assert capsys.readouterr().out.startswith("::warning file=")

    def test_select_and_disable(self, project, capsys):
        """--select and --disable choose rules."""
        assert main(["lint", str(project), "--disable", "SS301"]) == 0
        assert main(["lint", str(project), "--select", "SS101,SS102"]) == 0
        capsys.readouterr()

    def test_jobs(self, project, capsys):
        """Parallel runs give the same result."""
        assert main(["lint", str(project), "--jobs", "2"]) == 1
        assert "SS301" in capsys.readouterr().out

    def test_missing_path(self, tmp_path, capsys):
        """A missing path is a usage error."""
        assert main(["lint", str(tmp_path / "nope")]) == 2
        assert "No such file or directory" in capsys.readouterr().err

    def test_bad_config(self, project, capsys):
        """An invalid config is a usage error."""
        (project / ".swiftstyle.yml").write_text("colour: red\n", encoding="utf-8")
        assert main(["lint", str(project)]) == 2
        assert "Unknown configuration key(s): colour" in capsys.readouterr().err

    def test_config_file_applies(self, project):
        """Settings in .swiftstyle.yml are honoured."""
        (project / ".swiftstyle.yml").write_text("disabled_rules: [no-force-unwrap]\n", encoding="utf-8")
        assert main(["lint", str(project)]) == 0


class TestFix:
    """swiftstyle lint --fix."""

    def test_fix(self, tmp_path, capsys):
        """--fix rewrites files and lints the result."""
        path = tmp_path / "User.swift"
        path.write_text("struct User {\n    let id: Int;  \n}\n", encoding="utf-8")
        assert main(["lint", str(path), "--fix"]) == 0
        assert path.read_text(encoding="utf-8") == CLEAN
        assert f"Fixed: {path}" in capsys.readouterr().out

    def test_fix_check(self, tmp_path, capsys):
        """--fix --check writes nothing and fails if anything would change."""
        path = tmp_path / "User.swift"
        original = "struct User {\n    let id: Int;\n}\n"
        path.write_text(original, encoding="utf-8")
        assert main(["lint", str(path), "--fix", "--check"]) == 1
        assert path.read_text(encoding="utf-8") == original
        assert f"Would fix: {path}" in capsys.readouterr().out

    def test_fix_unreadable_file(self, tmp_path, monkeypatch, capsys):
        """An unreadable file is reported as E000 instead of aborting --fix."""
        from swiftstyle import engine

        (tmp_path / "User.swift").write_text(CLEAN, encoding="utf-8")
        locked = tmp_path / "Locked.swift"
        locked.write_text(CLEAN, encoding="utf-8")

        def deny(read):
            def wrapper(path):
                if path.endswith("Locked.swift"):
                    raise PermissionError(13, "Permission denied", path)
                return read(path)
            return wrapper

        monkeypatch.setattr(engine, "read_source", deny(engine.read_source))
        monkeypatch.setattr(engine, "read_source_encoded", deny(engine.read_source_encoded))
        assert main(["lint", str(tmp_path), "--fix"]) == 1
        out = capsys.readouterr().out
        assert "Locked.swift:1:1: error E000 Cannot read file" in out
        assert "Fixed:" not in out


class TestLayers:
    """Architecture rules when linting part of a project."""

    @pytest.fixture
    def domain(self, tmp_path):
        domain = tmp_path / "Sources" / "Domain"
        domain.mkdir(parents=True)
        (domain / "User.swift").write_text("import UIKit\n\nstruct User {\n}\n", encoding="utf-8")
        return domain

    def test_lint_layer_directory(self, domain, capsys):
        """Linting the Domain directory itself still applies Domain rules."""
        assert main(["lint", str(domain), "--select", "SS702"]) == 1
        assert "error SS702 Domain layer imports UI framework 'UIKit'" in capsys.readouterr().out

    def test_lint_single_file(self, domain, capsys):
        """Linting one Domain file applies Domain rules."""
        assert main(["lint", str(domain / "User.swift"), "--select", "SS702"]) == 1
        assert "SS702" in capsys.readouterr().out

    def test_with_project_config(self, domain, capsys):
        """A config at the project root anchors layer paths."""
        project = domain.parent.parent
        (project / ".swiftstyle.yml").write_text("max_line_length: 100\n", encoding="utf-8")
        assert main(["lint", str(domain / "User.swift"), "--select", "SS702"]) == 1
        assert "SS702" in capsys.readouterr().out


class TestRules:
    """swiftstyle rules / explain."""

    def test_list(self, capsys):
        """Every code and document rule is listed."""
        assert main(["rules"]) == 0
        out = capsys.readouterr().out
        assert "SS301" in out and "MD001" in out
        assert out.rstrip().endswith(f"{len(all_rules()) + len(DOC_RULES)} rules")

    def test_list_json(self, capsys):
        """--json lists rule metadata."""
        main(["rules", "--json"])
        rows = json.loads(capsys.readouterr().out)
        by_code = {row["code"]: row for row in rows}
        assert by_code["SS403"]["fixable"] is True
        assert by_code["SS701"]["category"] == "architecture"
        assert by_code["MD003"]["category"] == "docs"

    def test_explain(self, capsys):
        """explain accepts codes and names."""
        assert main(["explain", "ss304"]) == 0
        out = capsys.readouterr().out
        assert out.startswith("SS304 no-implicitly-unwrapped-optional")
        assert "exempt_attributes=['@IBOutlet']" in out
        assert main(["explain", "prefer-let"]) == 0
        assert capsys.readouterr().out.startswith("SS401 prefer-let")

    def test_explain_doc_rule(self, capsys):
        """Document rules can be explained too."""
        assert main(["explain", "MD002"]) == 0
        assert "fence-language" in capsys.readouterr().out

    def test_explain_unknown(self, capsys):
        """Unknown rules are a usage error."""
        assert main(["explain", "SS000"]) == 2
        assert "unknown rule" in capsys.readouterr().err


class TestParse:
    """swiftstyle parse."""

    def test_outline(self, tmp_path, capsys):
        """-v prints nested declarations."""
        path = tmp_path / "User.swift"
        path.write_text(CLEAN, encoding="utf-8")
        assert main(["parse", str(path), "-v"]) == 0
        out = capsys.readouterr().out
        assert "Top-level declarations: 1" in out
        assert "  struct User (L1)" in out
        assert "    let id (L2)" in out

    def test_json(self, tmp_path, capsys):
        """--json prints the tree."""
        path = tmp_path / "User.swift"
        path.write_text(CLEAN, encoding="utf-8")
        main(["parse", str(path), "--json"])
        data = json.loads(capsys.readouterr().out)
        assert data["children"][0]["name"] == "User"

    def test_lexer_error(self, tmp_path, capsys):
        """Untokenizable files fail."""
        path = tmp_path / "Bad.swift"
        path.write_text('let s = "open\n', encoding="utf-8")
        assert main(["parse", str(path)]) == 1
        assert "Parse error" in capsys.readouterr().err


class TestDocsAndConfig:
    """swiftstyle docs / config."""

    def test_docs(self, tmp_path, capsys):
        """Unclosed fences fail the docs check."""
        (tmp_path / "Guide.md").write_text("# Guide\n\n```swift\nlet a = 1\n", encoding="utf-8")
        assert main(["docs", str(tmp_path)]) == 1
        assert "MD001" in capsys.readouterr().out

    def test_config(self, tmp_path, capsys):
        """config prints the effective settings as YAML."""
        (tmp_path / ".swiftstyle.yml").write_text("max_line_length: 100\n", encoding="utf-8")
        assert main(["config", str(tmp_path)]) == 0
        out = capsys.readouterr().out
        assert out.startswith("# source: ")
        assert "max_line_length: 100" in out

    def test_no_command(self, capsys):
        """Without a command the help is printed."""
        assert main([]) == 0
        assert "usage: swiftstyle" in capsys.readouterr().out


class TestParser:
    """Argument parsing."""

    def test_defaults(self):
        """lint defaults to the current directory and warning threshold."""
        args = build_parser().parse_args(["lint"])
        assert args.paths == []
        assert args.fail_on == "warning"
        assert args.jobs == 1

    def test_invalid_choice(self):
        """Unknown formats are rejected by argparse."""
        with pytest.raises(SystemExit) as exc:
            build_parser().parse_args(["lint", "--format", "xml"])
        assert exc.value.code == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
