"""
Exception hierarchy for swiftstyle.
"""


class SwiftStyleError(Exception):
    """Base class for all swiftstyle errors."""


class ConfigError(SwiftStyleError):
    """Invalid or unreadable configuration."""
