"""
Linter Configuration

Runtime configuration for swiftstyle. Loads `.swiftstyle.yml` from the
lint root (or any parent), falling back to `~/.swiftstyle/config.yml`,
then applies environment variable overrides.
"""

from __future__ import annotations

import fnmatch
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .errors import ConfigError
from .reporting import Severity

logger = logging.getLogger(__name__)


CONFIG_FILENAMES = (".swiftstyle.yml", ".swiftstyle.yaml")
USER_CONFIG_PATH = Path.home() / ".swiftstyle" / "config.yml"


@dataclass(frozen=True)
class LayerSpec:
    """One Clean Architecture layer: which directories it owns and what it may use."""
    name: str
    paths: tuple[str, ...]
    may_depend_on: frozenset[str] = frozenset()


DEFAULT_LAYERS = {
    "Domain": LayerSpec("Domain", ("Domain",), frozenset()),
    "Data": LayerSpec("Data", ("Data",), frozenset({"Domain"})),
    "Presentation": LayerSpec("Presentation", ("Presentation",), frozenset({"Domain"})),
}


@dataclass
class LintConfig:
    """Runtime configuration for swiftstyle."""

    root: Path = field(default_factory=Path.cwd)

    # File extensions
    swift_exts: tuple[str, ...] = (".swift",)
    docs_exts: tuple[str, ...] = (".md", ".markdown")

    # Directory exclusions
    exclude_dirs: tuple[str, ...] = (
        ".git",
        ".build",
        ".swiftpm",
        "Pods",
        "Carthage",
        "DerivedData",
        "build",
        "node_modules",
    )
    # Glob patterns relative to root
    exclude: tuple[str, ...] = ()

    # Rule selection (codes or names)
    disabled_rules: frozenset[str] = frozenset()
    enabled_only: Optional[frozenset[str]] = None
    severity_overrides: dict[str, Severity] = field(default_factory=dict)
    rule_options: dict[str, dict[str, Any]] = field(default_factory=dict)

    # Thresholds
    max_line_length: int = 120
    indent_width: int = 4
    max_blank_lines: int = 1
    ignore_url_lines: bool = True
    ignore_comment_lines: bool = False
    allow_leading_underscore: bool = True

    # Architecture
    layers: dict[str, LayerSpec] = field(default_factory=lambda: dict(DEFAULT_LAYERS))
    forbidden_domain_imports: tuple[str, ...] = ("UIKit", "SwiftUI", "AppKit", "WatchKit")

    # Explicit file list (disables directory scan)
    explicit_files: Optional[tuple[Path, ...]] = None

    # Where the settings came from
    config_path: Optional[Path] = None

    def rule_enabled(self, code: str, name: str) -> bool:
        if code in self.disabled_rules or name in self.disabled_rules:
            return False
        if self.enabled_only is not None:
            return code in self.enabled_only or name in self.enabled_only
        return True

    def severity_for(self, code: str, name: str, default: Severity) -> Severity:
        return self.severity_overrides.get(code) or self.severity_overrides.get(name) or default

    def options_for(self, code: str, name: str) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        merged.update(self.rule_options.get(name, {}))
        merged.update(self.rule_options.get(code, {}))
        return merged

    def to_dict(self) -> dict[str, Any]:
        """Export the effective configuration in YAML file form."""
        return {
            "disabled_rules": sorted(self.disabled_rules),
            "enabled_only": sorted(self.enabled_only) if self.enabled_only is not None else None,
            "severity": {k: v.value for k, v in sorted(self.severity_overrides.items())},
            "max_line_length": self.max_line_length,
            "indent_width": self.indent_width,
            "max_blank_lines": self.max_blank_lines,
            "ignore_url_lines": self.ignore_url_lines,
            "ignore_comment_lines": self.ignore_comment_lines,
            "allow_leading_underscore": self.allow_leading_underscore,
            "exclude": list(self.exclude),
            "layers": {
                name: {"paths": list(spec.paths), "may_depend_on": sorted(spec.may_depend_on)}
                for name, spec in self.layers.items()
            },
            "forbidden_domain_imports": list(self.forbidden_domain_imports),
            "rule_options": dict(self.rule_options),
        }


def should_exclude_path(cfg: LintConfig, path: Path) -> bool:
    """Check if path should be excluded from scanning."""
    if any(d in path.parts for d in cfg.exclude_dirs):
        return True
    if not cfg.exclude:
        return False
    try:
        rel = path.resolve().relative_to(cfg.root.resolve()).as_posix()
    except ValueError:
        rel = path.as_posix()
    return any(fnmatch.fnmatch(rel, pattern) or fnmatch.fnmatch(path.name, pattern) for pattern in cfg.exclude)


def layer_for_path(cfg: LintConfig, path: Path | str) -> Optional[str]:
    """
    Return the architecture layer owning path, or None.

    Directories below the root are searched outermost first. Unless the
    root is a project config file's directory, the root's own directories
    are then tried innermost first, so linting `Sources/Domain` by itself
    still knows its layer.
    """
    p = Path(path)
    root = cfg.root.resolve()
    try:
        candidates = list(p.resolve().relative_to(root).parts[:-1])
    except ValueError:
        candidates = list(p.parts[:-1])
    else:
        anchored = cfg.config_path is not None and cfg.config_path.resolve().parent == root
        if not anchored:
            candidates.extend(reversed(root.parts))
    for part in candidates:
        for spec in cfg.layers.values():
            if part in spec.paths:
                return spec.name
    return None


# =============================================================================
# Loading
# =============================================================================

_KNOWN_KEYS = {
    "disabled_rules", "enabled_only", "severity", "max_line_length", "indent_width",
    "max_blank_lines", "ignore_url_lines", "ignore_comment_lines",
    "allow_leading_underscore", "exclude", "exclude_dirs", "layers",
    "forbidden_domain_imports", "rule_options",
}

_INT_KEYS = ("max_line_length", "indent_width", "max_blank_lines")
_BOOL_KEYS = ("ignore_url_lines", "ignore_comment_lines", "allow_leading_underscore")


def find_config_file(start: Path) -> Optional[Path]:
    """Search start and its parents for a config file, then the user config."""
    start = start.resolve()
    if start.is_file():
        start = start.parent
    for directory in (start, *start.parents):
        for name in CONFIG_FILENAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    if USER_CONFIG_PATH.is_file():
        return USER_CONFIG_PATH
    return None


def _string_list(key: str, value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [v for v in value.replace(",", " ").split() if v]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return tuple(value)


def _parse_layers(value: Any) -> dict[str, LayerSpec]:
    if not isinstance(value, Mapping):
        raise ConfigError("'layers' must be a mapping of layer name to settings")
    layers: dict[str, LayerSpec] = {}
    for name, settings in value.items():
        settings = settings or {}
        if not isinstance(settings, Mapping):
            raise ConfigError(f"Layer '{name}' must be a mapping")
        paths = _string_list(f"layers.{name}.paths", settings.get("paths", [name]))
        deps = _string_list(f"layers.{name}.may_depend_on", settings.get("may_depend_on", []))
        layers[str(name)] = LayerSpec(str(name), paths, frozenset(deps))
    for spec in layers.values():
        unknown = spec.may_depend_on - set(layers)
        if unknown:
            raise ConfigError(f"Layer '{spec.name}' depends on unknown layer(s): {', '.join(sorted(unknown))}")
    return layers


def apply_settings(cfg: LintConfig, data: Mapping[str, Any]) -> LintConfig:
    """Return a copy of cfg with settings from a parsed config mapping applied."""
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ConfigError(f"Unknown configuration key(s): {', '.join(sorted(unknown))}")

    changes: dict[str, Any] = {}
    if "disabled_rules" in data:
        changes["disabled_rules"] = frozenset(_string_list("disabled_rules", data["disabled_rules"]))
    if data.get("enabled_only"):
        changes["enabled_only"] = frozenset(_string_list("enabled_only", data["enabled_only"]))
    if "severity" in data:
        raw = data["severity"] or {}
        if not isinstance(raw, Mapping):
            raise ConfigError("'severity' must be a mapping of rule to severity")
        try:
            changes["severity_overrides"] = {str(k): Severity.parse(v) for k, v in raw.items()}
        except ValueError as e:
            raise ConfigError(str(e)) from e
    for key in _INT_KEYS:
        if key in data:
            value = data[key]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigError(f"'{key}' must be a non-negative integer")
            changes[key] = value
    for key in _BOOL_KEYS:
        if key in data:
            if not isinstance(data[key], bool):
                raise ConfigError(f"'{key}' must be true or false")
            changes[key] = data[key]
    if "exclude" in data:
        changes["exclude"] = _string_list("exclude", data["exclude"])
    if "exclude_dirs" in data:
        changes["exclude_dirs"] = cfg.exclude_dirs + _string_list("exclude_dirs", data["exclude_dirs"])
    if "layers" in data:
        changes["layers"] = _parse_layers(data["layers"])
    if "forbidden_domain_imports" in data:
        changes["forbidden_domain_imports"] = _string_list("forbidden_domain_imports", data["forbidden_domain_imports"])
    if "rule_options" in data:
        raw = data["rule_options"] or {}
        if not isinstance(raw, Mapping) or not all(isinstance(v, Mapping) for v in raw.values()):
            raise ConfigError("'rule_options' must map rule names to option mappings")
        changes["rule_options"] = {str(k): dict(v) for k, v in raw.items()}
    return replace(cfg, **changes)


def _apply_env_overrides(cfg: LintConfig, env: Mapping[str, str]) -> LintConfig:
    """Apply SWIFTSTYLE_* environment variable overrides."""
    changes: dict[str, Any] = {}
    if "SWIFTSTYLE_MAX_LINE_LENGTH" in env:
        try:
            changes["max_line_length"] = int(env["SWIFTSTYLE_MAX_LINE_LENGTH"])
        except ValueError:
            raise ConfigError("SWIFTSTYLE_MAX_LINE_LENGTH must be an integer") from None
    if env.get("SWIFTSTYLE_DISABLE"):
        extra = _string_list("SWIFTSTYLE_DISABLE", env["SWIFTSTYLE_DISABLE"])
        changes["disabled_rules"] = cfg.disabled_rules | frozenset(extra)
    return replace(cfg, **changes) if changes else cfg


def load_config(
    root: Path,
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> LintConfig:
    """
    Build the effective configuration for a lint run rooted at root.

    Raises:
        ConfigError: the config file is missing, unreadable or invalid.
    """
    env = os.environ if env is None else env
    root = Path(root).resolve()
    if root.is_file():
        root = root.parent
    cfg = LintConfig(root=root)

    if config_path is None and env.get("SWIFTSTYLE_CONFIG"):
        config_path = Path(env["SWIFTSTYLE_CONFIG"])
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        config_path = find_config_file(root)
        # Layer paths and exclude globs are relative to the project config
        if config_path is not None and config_path != USER_CONFIG_PATH:
            cfg = replace(cfg, root=config_path.parent)

    if config_path is not None:
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {config_path}: {e}") from e
        if not isinstance(data, Mapping):
            raise ConfigError(f"Config file {config_path} must contain a mapping")
        cfg = apply_settings(cfg, data)
        cfg = replace(cfg, config_path=config_path)
        logger.debug("Loaded configuration from %s", config_path)

    return _apply_env_overrides(cfg, env)
