"""Security audit logging for the order-intake API.

Provides structured logging for security-relevant events:
- Bearer token rejections
- Failed admin logins
- Rate limit violations
- Administrator account changes

Events are JSON lines on the "security" logger. When a log directory is
configured they are also written to a rotating file.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

SECURITY_LOG_NAME = "security.log"

# Log rotation settings
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10MB per file
BACKUP_COUNT = 5


class SecurityLogger:
    """Structured security event logger with rotation."""

    def __init__(self):
        self.logger = logging.getLogger("security")
        self._file_handler: Optional[RotatingFileHandler] = None

    def configure(self, log_dir: Optional[str]) -> None:
        """Attach a rotating file handler under log_dir (once)."""
        if not log_dir or self._file_handler is not None:
            return
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)

        handler = RotatingFileHandler(
            path / SECURITY_LOG_NAME,
            maxBytes=MAX_LOG_SIZE,
            backupCount=BACKUP_COUNT
        )
        handler.setLevel(logging.WARNING)
        handler.setFormatter(logging.Formatter('%(message)s'))

        self.logger.addHandler(handler)
        self._file_handler = handler

    def log_event(
        self,
        event_type: str,
        severity: str,  # 'low', 'medium', 'high'
        details: Dict[str, Any],
        ip: Optional[str] = None,
        uid: Optional[str] = None,
        path: Optional[str] = None
    ):
        """Log a security event.

        Args:
            event_type: Type of event (auth_failure, login_failure, etc.)
            severity: low, medium, high
            details: Event-specific details
            ip: Client IP address
            uid: Administrator id if known
            path: Request path
        """
        event = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": event_type,
            "severity": severity,
            "ip": ip,
            "uid": uid,
            "path": path,
            **details
        }

        # Remove None values
        event = {k: v for k, v in event.items() if v is not None}

        self.logger.warning(json.dumps(event, default=str))

    # Convenience methods for common events

    def auth_failure(
        self,
        ip: str,
        reason: str,
        path: str,
        user_agent: Optional[str] = None,
        uid: Optional[str] = None
    ):
        """Log a rejected bearer token."""
        self.log_event(
            event_type="auth_failure",
            severity="medium",
            details={
                "reason": reason,
                "user_agent": user_agent
            },
            ip=ip,
            uid=uid,
            path=path
        )

    def login_failure(self, ip: str, reason: str, path: str):
        """Log a failed admin login. The attempted email is not recorded."""
        self.log_event(
            event_type="login_failure",
            severity="medium",
            details={"reason": reason},
            ip=ip,
            path=path
        )

    def rate_limit_exceeded(
        self,
        ip: str,
        path: str,
        limit: str
    ):
        """Log rate limit violation."""
        self.log_event(
            event_type="rate_limit_exceeded",
            severity="medium",
            details={
                "limit": limit
            },
            ip=ip,
            path=path
        )

    def admin_changed(self, actor_uid: str, target_uid: str, action: str):
        """Log creation or modification of an administrator account."""
        self.log_event(
            event_type="admin_account_change",
            severity="high",
            details={
                "target": target_uid,
                "action": action
            },
            uid=actor_uid
        )


# Singleton instance
security_logger = SecurityLogger()
