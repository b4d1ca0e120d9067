"""lincli Data Models

This package contains Pydantic models for Linear attachments and the
upload pipeline.
"""

__all__ = [
    "attachment",
    "upload",
]
