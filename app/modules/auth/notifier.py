from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class ResetTokenNotifier(Protocol):
    async def deliver(self, recipient_id: str, token: str) -> None: ...


class LoggingResetTokenNotifier:
    """Writes reset tokens to the server log instead of sending mail.

    Meant for local deployments where the operator reads the console.
    """

    def __init__(self, *, ttl_seconds: int) -> None:
        self._ttl_seconds = ttl_seconds

    async def deliver(self, recipient_id: str, token: str) -> None:
        logger.warning(
            "Password reset token for login_id=%s token=%s expires_in_seconds=%s use_at=%s",
            recipient_id,
            token,
            self._ttl_seconds,
            "POST /api/v1/auth/reset-password",
        )
