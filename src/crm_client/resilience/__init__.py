"""Retry primitives for recovery-sensitive calls."""

from __future__ import annotations

from src.crm_client.resilience.retry import RetryAttempt, RetryPolicy, is_transient_error

__all__ = [
    "RetryAttempt",
    "RetryPolicy",
    "is_transient_error",
]
