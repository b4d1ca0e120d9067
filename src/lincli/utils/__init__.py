"""lincli Utilities

This package contains utility modules for the Linear attachment CLI.
"""

__all__ = [
    "validation",
    "errors",
]
