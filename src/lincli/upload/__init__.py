"""lincli Upload Pipeline

File validation feeds the orchestrator, which drives each file through
upload target request, byte transfer and attachment registration.
"""

__all__ = [
    "transfer",
    "orchestrator",
    "results",
]
