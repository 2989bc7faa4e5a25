"""
Pytest configuration and shared fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Import swiftstyle modules
from swiftstyle import config as swiftstyle_config
from swiftstyle.config import LintConfig
from swiftstyle.engine import Linter
from swiftstyle.parser import parse_source


# =============================================================================
# ISOLATION
# =============================================================================

@pytest.fixture(autouse=True)
def no_user_config(tmp_path_factory, monkeypatch):
    """Never pick up ~/.swiftstyle/config.yml or SWIFTSTYLE_* from the developer's machine."""
    monkeypatch.setattr(swiftstyle_config, "USER_CONFIG_PATH",
                        tmp_path_factory.mktemp("home") / "config.yml")
    for var in ("SWIFTSTYLE_CONFIG", "SWIFTSTYLE_DISABLE", "SWIFTSTYLE_MAX_LINE_LENGTH"):
        monkeypatch.delenv(var, raising=False)


# =============================================================================
# LINT FIXTURES
# =============================================================================

@pytest.fixture
def lint():
    """Lint source with only the given rules enabled; returns the diagnostics."""
    def _lint(source: str, *codes: str, path: str = "Example.swift", **settings):
        cfg = LintConfig(enabled_only=frozenset(codes) if codes else None, **settings)
        return Linter(cfg).lint_source(source, path)
    return _lint


@pytest.fixture
def fix():
    """Fix source with only the given rules enabled; returns the new text."""
    def _fix(source: str, *codes: str, **settings):
        cfg = LintConfig(enabled_only=frozenset(codes) if codes else None, **settings)
        return Linter(cfg).fix_source(source, "Example.swift")
    return _fix


@pytest.fixture
def layered_project(tmp_path):
    """A small Clean Architecture project tree."""
    files = {
        "Domain/User.swift": (
            "import Foundation\n"
            "\n"
            "struct User {\n"
            "    let id: Int\n"
            "}\n"
        ),
        "Domain/UserRepository.swift": (
            "protocol UserRepository {\n"
            "    func fetch(id: Int) -> User?\n"
            "}\n"
        ),
        "Data/UserRepositoryImpl.swift": (
            "final class UserRepositoryImpl: UserRepository {\n"
            "    func fetch(id: Int) -> User? {\n"
            "        return User(id: id)\n"
            "    }\n"
            "}\n"
        ),
        "Presentation/UserView.swift": (
            "import SwiftUI\n"
            "\n"
            "struct UserView {\n"
            "    let repository = UserRepositoryImpl()\n"
            "    let user: User\n"
            "}\n"
        ),
    }
    for rel, text in files.items():
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return tmp_path


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def codes(diagnostics) -> list:
    """Codes of diagnostics, in order."""
    return [d.code for d in diagnostics]


def lines(diagnostics, code: str = None) -> list:
    """Line numbers of diagnostics, optionally for one code."""
    return [d.line for d in diagnostics if code is None or d.code == code]


def declarations(source: str):
    """Parse source and return its top-level declarations."""
    return parse_source(source).tree.declarations()
