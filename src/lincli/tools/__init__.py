"""lincli Tools

This package contains the operations behind the lincli commands.
"""

__all__ = [
    "attachment_tools",
]
