"""Recovery and guard flows built on the retry policy.

Exports:
    AuthRecoveryService: Password reset request/validate/submit.
    AuthGuard: Verify-or-logout session check.
"""

from __future__ import annotations

from src.crm_client.services.auth_guard import AuthGuard, AuthVerificationError
from src.crm_client.services.recovery import AuthRecoveryService

__all__ = [
    "AuthGuard",
    "AuthRecoveryService",
    "AuthVerificationError",
]
