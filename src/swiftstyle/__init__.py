"""
swiftstyle - Swift Style Conformance Linter

A Python toolkit for checking Swift sources against a team style guide:
naming, spacing, optionals, closures and Clean Architecture layering.
"""

__version__ = "0.1.0"
__author__ = "swiftstyle contributors"

from swiftstyle.parser import parse_file, parse_source
