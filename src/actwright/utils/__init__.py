"""
Utilities module - Logging setup and retry helpers.
"""

from actwright.utils.logging import setup_logging
from actwright.utils.retry import retry_async, RetryConfig

__all__ = [
    "setup_logging",
    "retry_async",
    "RetryConfig",
]
