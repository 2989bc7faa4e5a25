"""
CLI entry point for swiftstyle.

Usage:
    swiftstyle lint [paths...]           Lint Swift sources
    swiftstyle lint Sources --fix        Apply automatic fixes, then lint
    swiftstyle rules                     List available rules
    swiftstyle explain <code|name>       Describe one rule
    swiftstyle parse <file>              Show the declaration outline of a file
    swiftstyle docs <paths...>           Check Markdown style-guide documents
    swiftstyle watch <root>              Re-lint Swift files as they change
    swiftstyle config [path]             Show the effective configuration
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

import yaml

from . import __version__
from .config import LintConfig, load_config
from .errors import ConfigError
from .reporting import Severity

FORMATS = ("human", "json", "github")
SEVERITIES = tuple(s.value for s in Severity)


def _split_codes(values):
    codes = []
    for value in values or []:
        codes.extend(v.strip() for v in value.split(",") if v.strip())
    return codes


def _common_root(paths):
    resolved = [Path(p).resolve() for p in paths]
    if len(resolved) == 1:
        return resolved[0]
    root = resolved[0]
    for p in resolved[1:]:
        while root not in (p, *p.parents):
            root = root.parent
    return root


def _load(args, paths) -> LintConfig:
    cfg = load_config(_common_root(paths), Path(args.config) if args.config else None)
    disabled = _split_codes(getattr(args, "disable", None))
    selected = _split_codes(getattr(args, "select", None))
    if disabled:
        cfg = replace(cfg, disabled_rules=cfg.disabled_rules | frozenset(disabled))
    if selected:
        cfg = replace(cfg, enabled_only=frozenset(selected))
    return cfg


def cmd_lint(args):
    """Lint Swift files."""
    from .engine import Linter
    from .scanner import iter_swift_files

    paths = args.paths or ["."]
    try:
        cfg = _load(args, paths)
    except ConfigError as e:
        print(f"swiftstyle: {e}", file=sys.stderr)
        return 2

    linter = Linter(cfg)
    fmt = "json" if args.json else args.format
    would_change = []

    try:
        if args.fix:
            for path in iter_swift_files(cfg, [Path(p) for p in paths]):
                if linter.fix_file(path, write=not args.check):
                    would_change.append(str(path))
        reporter = linter.lint_paths(paths, jobs=max(1, args.jobs))
    except FileNotFoundError as e:
        print(f"swiftstyle: {e}", file=sys.stderr)
        return 2

    if args.fix and fmt == "human":
        verb = "Would fix" if args.check else "Fixed"
        for path in would_change:
            print(f"{verb}: {path}")

    reporter.filter(Severity.parse(args.min_severity))
    print(reporter.render(fmt))

    if args.check and would_change:
        return 1
    return reporter.exit_code(Severity.parse(args.fail_on))


def cmd_rules(args):
    """List available rules."""
    from .docs import DOC_RULES
    from .rules import all_rules

    rows = [
        {
            "code": r.code,
            "name": r.name,
            "category": r.category.value,
            "severity": r.severity.value,
            "fixable": r.fixable,
            "description": r.description,
        }
        for r in all_rules()
    ]
    rows.extend(
        {
            "code": r.code,
            "name": r.name,
            "category": "docs",
            "severity": r.severity.value,
            "fixable": False,
            "description": r.description,
        }
        for r in DOC_RULES
    )

    if args.json:
        print(json.dumps(rows, indent=2))
        return 0

    for row in rows:
        fix = "fix" if row["fixable"] else "   "
        print(f"{row['code']:6} {fix} {row['severity']:8} {row['name']:34} {row['description']}")
    print(f"\n{len(rows)} rules")
    return 0


def cmd_explain(args):
    """Describe one rule."""
    from .docs import DOC_RULES
    from .rules import get_rule

    rule = get_rule(args.rule)
    if rule is not None:
        print(f"{rule.code} {rule.name}")
        print(f"  category: {rule.category.value}")
        print(f"  severity: {rule.severity.value}")
        print(f"  fixable:  {'yes' if rule.fixable else 'no'}")
        if rule.options:
            print(f"  options:  {', '.join(f'{k}={v!r}' for k, v in rule.options.items())}")
        print()
        print(f"  {rule.description}")
        return 0

    for doc_rule in DOC_RULES:
        if args.rule in (doc_rule.code, doc_rule.name) or args.rule.upper() == doc_rule.code:
            print(f"{doc_rule.code} {doc_rule.name}")
            print("  category: docs")
            print(f"  severity: {doc_rule.severity.value}")
            print()
            print(f"  {doc_rule.description}")
            return 0

    print(f"swiftstyle: unknown rule '{args.rule}'", file=sys.stderr)
    return 2


def cmd_parse(args):
    """Parse a file and show its declaration outline."""
    from .parser import DeclNode, LexerError, parse_file

    try:
        result = parse_file(args.file)
    except (LexerError, OSError) as e:
        print(f"Parse error: {e}", file=sys.stderr)
        return 1

    tree = result.tree
    if args.json:
        print(json.dumps(tree.to_dict(), indent=2))
        return 0

    print(f"Parsed: {args.file}")
    print(f"Top-level declarations: {len(tree.declarations())}")
    if args.verbose:
        for node, ancestors in tree.walk():
            if isinstance(node, DeclNode):
                indent = "  " * (len([a for a in ancestors if isinstance(a, DeclNode)]) + 1)
                mods = " ".join(node.attributes + node.modifiers)
                prefix = f"{mods} " if mods else ""
                print(f"{indent}{prefix}{node.kind} {node.name} (L{node.line})")
    for diag in result.diagnostics:
        print(f"{args.file}:{diag.line}:{diag.column}: {diag.message}", file=sys.stderr)
    return 1 if result.diagnostics else 0


def cmd_docs(args):
    """Check Markdown documents."""
    from .docs import check_docs

    paths = args.paths or ["."]
    try:
        cfg = _load(args, paths)
        reporter = check_docs(cfg, [Path(p) for p in paths])
    except (ConfigError, FileNotFoundError) as e:
        print(f"swiftstyle: {e}", file=sys.stderr)
        return 2

    print(reporter.render(args.format))
    return reporter.exit_code(Severity.parse(args.fail_on))


def cmd_watch(args):
    """Watch a tree and re-lint changed files."""
    from .daemon import run_watch

    root = Path(args.root).resolve()
    if not root.is_dir():
        print(f"swiftstyle: not a directory: {root}", file=sys.stderr)
        return 2
    try:
        cfg = _load(args, [root])
    except ConfigError as e:
        print(f"swiftstyle: {e}", file=sys.stderr)
        return 2
    return run_watch(
        root,
        cfg,
        interval=max(0.1, args.interval),
        log_path=Path(args.log).expanduser() if args.log else None,
    )


def cmd_config(args):
    """Print the effective configuration."""
    try:
        cfg = _load(args, [args.path])
    except ConfigError as e:
        print(f"swiftstyle: {e}", file=sys.stderr)
        return 2
    source = cfg.config_path or "built-in defaults"
    print(f"# source: {source}")
    print(yaml.safe_dump(cfg.to_dict(), sort_keys=False), end="")
    return 0


def _add_config_args(p):
    p.add_argument('--config', metavar='FILE', help='Config file (default: nearest .swiftstyle.yml)')
    p.add_argument('--disable', action='append', metavar='CODES', help='Disable rules (comma separated)')
    p.add_argument('--select', action='append', metavar='CODES', help='Run only these rules (comma separated)')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='swiftstyle',
        description="Swift style conformance linter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    swiftstyle lint Sources/
    swiftstyle lint Sources/ --fix
    swiftstyle lint . --format github --fail-on warning
    swiftstyle explain SS301
    swiftstyle docs docs/StyleGuide.md
"""
    )
    parser.add_argument('--version', action='version', version=f'swiftstyle {__version__}')
    parser.add_argument('-v', '--verbose', dest='debug', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # lint
    lint_p = subparsers.add_parser('lint', help='Lint Swift files')
    lint_p.add_argument('paths', nargs='*', help='Files or directories (default: .)')
    lint_p.add_argument('--format', choices=FORMATS, default='human', help='Output format')
    lint_p.add_argument('--json', action='store_true', help='Shorthand for --format json')
    lint_p.add_argument('--fix', action='store_true', help='Apply automatic fixes before linting')
    lint_p.add_argument('--check', action='store_true', help='With --fix: report files that would change, write nothing')
    lint_p.add_argument('-j', '--jobs', type=int, default=1, help='Worker processes (default: 1)')
    lint_p.add_argument('--min-severity', choices=SEVERITIES, default='hint', help='Hide less severe findings')
    lint_p.add_argument('--fail-on', choices=SEVERITIES, default='warning',
                        help='Exit 1 if a finding is at least this severe (default: warning)')
    _add_config_args(lint_p)
    lint_p.set_defaults(func=cmd_lint)

    # rules
    rules_p = subparsers.add_parser('rules', help='List available rules')
    rules_p.add_argument('--json', action='store_true', help='Output as JSON')
    rules_p.set_defaults(func=cmd_rules)

    # explain
    explain_p = subparsers.add_parser('explain', help='Describe a rule')
    explain_p.add_argument('rule', help='Rule code or name')
    explain_p.set_defaults(func=cmd_explain)

    # parse
    parse_p = subparsers.add_parser('parse', help='Parse a Swift file')
    parse_p.add_argument('file', help='File to parse')
    parse_p.add_argument('-v', '--verbose', action='store_true', help='Print the declaration outline')
    parse_p.add_argument('--json', action='store_true', help='Print the tree as JSON')
    parse_p.set_defaults(func=cmd_parse)

    # docs
    docs_p = subparsers.add_parser('docs', help='Check Markdown documents')
    docs_p.add_argument('paths', nargs='*', help='Files or directories (default: .)')
    docs_p.add_argument('--format', choices=FORMATS, default='human', help='Output format')
    docs_p.add_argument('--fail-on', choices=SEVERITIES, default='warning')
    _add_config_args(docs_p)
    docs_p.set_defaults(func=cmd_docs)

    # watch
    watch_p = subparsers.add_parser('watch', help='Re-lint Swift files as they change')
    watch_p.add_argument('root', nargs='?', default='.', help='Directory to watch (default: .)')
    watch_p.add_argument('--interval', type=float, default=0.75, help='Poll interval in seconds')
    watch_p.add_argument('--log', metavar='FILE', help='Also append results to a JSON log')
    _add_config_args(watch_p)
    watch_p.set_defaults(func=cmd_watch)

    # config
    config_p = subparsers.add_parser('config', help='Show the effective configuration')
    config_p.add_argument('path', nargs='?', default='.', help='Directory to resolve config for')
    config_p.add_argument('--config', metavar='FILE', help='Config file')
    config_p.set_defaults(func=cmd_config)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
