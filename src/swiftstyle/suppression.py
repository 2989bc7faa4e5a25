"""
Inline suppression comments.

    // swiftstyle:disable SS301 no-force-cast    until a matching enable
    // swiftstyle:enable SS301                    (or `all`)
    // swiftstyle:disable:next SS102              the following line only
    let x = y!  // swiftstyle:disable:this SS301  this line only

Rules are named by code or by rule name; no names means `all`. A rule's
name and code are interchangeable, so `disable no-force-unwrap` is closed
by `enable SS301`. Inside a `disable all` region, `enable SS301` turns
that one rule back on until it is disabled again or `all` is enabled.
Anything after the rule list (e.g. `- reason`) is ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from .parser import Token, TokenType
from .rules import get_rule

ALL = "all"

_DIRECTIVE = re.compile(r"swiftstyle:(disable|enable)(?::(next|this))?(?![\w:-])(.*)")
_CODE = re.compile(r"^[A-Za-z]+\d+$")
_NAME = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")

_OPEN = 10 ** 9


def _canonical_key(word: str) -> str:
    """Known rules are keyed by code; anything else keeps its spelling."""
    rule = get_rule(word)
    if rule is not None:
        return rule.code
    return word.upper() if _CODE.match(word) else word


def _parse_keys(rest: str) -> set[str]:
    keys: set[str] = set()
    for word in rest.replace(",", " ").split():
        if word.lower() == ALL:
            keys.add(ALL)
        elif _CODE.match(word) or _NAME.match(word):
            keys.add(_canonical_key(word))
        else:
            break
    return keys or {ALL}


def _in_ranges(ranges: dict[str, list[tuple[int, int]]], keys: Iterable[str], line: int) -> bool:
    return any(first <= line <= last for key in keys for first, last in ranges.get(key, ()))


@dataclass
class Suppressions:
    """Suppressed (rule, line) pairs for one file."""
    line_rules: dict[int, set[str]] = field(default_factory=dict)
    # key -> [(first_line, last_line)], inclusive
    regions: dict[str, list[tuple[int, int]]] = field(default_factory=dict)
    # rules re-enabled inside an `all` region
    enabled: dict[str, list[tuple[int, int]]] = field(default_factory=dict)

    def is_suppressed(self, code: str, name: str, line: int) -> bool:
        on_line = self.line_rules.get(line)
        if on_line and any(k in on_line for k in (ALL, code, name)):
            return True
        if _in_ranges(self.regions, (code, name), line):
            return True
        return _in_ranges(self.regions, (ALL,), line) and not _in_ranges(self.enabled, (code, name), line)

    def __bool__(self) -> bool:
        return bool(self.line_rules or self.regions)


def _close(ranges: dict[str, list[tuple[int, int]]], opened: dict[str, int], key: str, last: int) -> None:
    first = opened.pop(key)
    if first <= last:
        ranges.setdefault(key, []).append((first, last))


def build_suppressions(tokens: Iterable[Token]) -> Suppressions:
    """Collect suppression directives from a file's comment tokens."""
    sup = Suppressions()
    open_regions: dict[str, int] = {}
    open_enabled: dict[str, int] = {}

    for tok in tokens:
        if tok.type not in (TokenType.COMMENT, TokenType.DOC_COMMENT):
            continue
        m = _DIRECTIVE.search(tok.value)
        if not m:
            continue
        action, scope, rest = m.group(1), m.group(2), m.group(3)
        keys = _parse_keys(rest)

        if action == "disable" and scope == "this":
            sup.line_rules.setdefault(tok.line, set()).update(keys)
        elif action == "disable" and scope == "next":
            sup.line_rules.setdefault(tok.end_line + 1, set()).update(keys)
        elif action == "disable":
            ending = list(open_enabled) if ALL in keys else [k for k in keys if k in open_enabled]
            for key in ending:
                _close(sup.enabled, open_enabled, key, tok.line - 1)
            for key in keys:
                open_regions.setdefault(key, tok.line)
        elif scope is None and ALL in keys:
            for key in list(open_regions):
                _close(sup.regions, open_regions, key, tok.line)
            for key in list(open_enabled):
                _close(sup.enabled, open_enabled, key, tok.line)
        elif scope is None:
            for key in keys:
                if key in open_regions:
                    _close(sup.regions, open_regions, key, tok.line)
                if ALL in open_regions:
                    open_enabled.setdefault(key, tok.line + 1)

    for key in list(open_regions):
        _close(sup.regions, open_regions, key, _OPEN)
    for key in list(open_enabled):
        _close(sup.enabled, open_enabled, key, _OPEN)
    return sup
