"""Utility functions for docsync."""

from docsync.utils.binary import detect_binary, is_binary_content, is_binary_extension
from docsync.utils.retry import call_with_retry, retry_with_backoff
from docsync.utils.vectors import normalize_embedding

__all__ = [
    "call_with_retry",
    "detect_binary",
    "is_binary_content",
    "is_binary_extension",
    "normalize_embedding",
    "retry_with_backoff",
]
