"""
Reliability Module — Retry and token lifetime policy.
"""

from .policy import NO_RETRY, RetryPolicy

__all__ = [
    "RetryPolicy",
    "NO_RETRY",
]
