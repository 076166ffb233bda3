"""Runtime configuration.

All settings come from environment variables (a local `.env` file is loaded
first when present). Settings are read once at startup into an immutable
Settings value which is handed to every component that needs it.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_TOKEN_LIFETIME = "12h"
DEFAULT_MAIL_FROM = "Sørgulen Industriservice <no-reply@sorgulen.no>"

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$", re.IGNORECASE)
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> int:
    """Parse a lifetime such as '12h', '30m', '7d' or '3600' into seconds."""
    match = _DURATION_PATTERN.match(value or "")
    if not match:
        raise ConfigurationError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    seconds = int(amount) * _DURATION_UNITS[unit.lower()]
    if seconds <= 0:
        raise ConfigurationError(f"Duration must be positive: {value!r}")
    return seconds


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _origins(raw: str) -> Tuple[str, ...]:
    return tuple(o.strip() for o in raw.split(",") if o.strip())


@dataclass(frozen=True)
class Settings:
    """Immutable application configuration."""

    jwt_secret: str = field(repr=False)
    token_lifetime_seconds: int = 12 * 3600

    # Firestore
    firebase_credentials: Optional[str] = None
    firestore_project_id: Optional[str] = None

    # Admin bootstrap
    seed_owner_email: Optional[str] = None
    seed_owner_password: Optional[str] = field(default=None, repr=False)

    # Mail
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    smtp_secure: bool = True
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = field(default=None, repr=False)
    mail_from: str = DEFAULT_MAIL_FROM
    company_email: Optional[str] = None
    company_name: str = "Sørgulen Industriservice"
    base_url: str = ""
    admin_base_url: str = "/admin"

    # HTTP
    allowed_origins: Tuple[str, ...] = ()
    trust_proxy: bool = True
    rate_limit_enabled: bool = True
    debug: bool = False

    bcrypt_rounds: int = 12
    notify_workers: int = 4
    security_log_dir: Optional[str] = None

    def __post_init__(self):
        if not self.jwt_secret:
            raise ConfigurationError("JWT_SECRET is not defined")

    @property
    def alert_recipient(self) -> Optional[str]:
        """Operations mailbox for internal new-order alerts."""
        return self.company_email or self.smtp_user

    @property
    def admin_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.admin_base_url}"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from the process environment.

        Raises:
            ConfigurationError if a required value is missing or malformed.
        """
        if env is None:
            load_dotenv()
            env = os.environ

        credentials_path = env.get("FIREBASE_CREDENTIALS") or env.get("GOOGLE_APPLICATION_CREDENTIALS")
        project_id = env.get("FIRESTORE_PROJECT_ID")
        if not credentials_path and not project_id:
            raise ConfigurationError(
                "Database is not configured: set FIREBASE_CREDENTIALS "
                "(or GOOGLE_APPLICATION_CREDENTIALS) or FIRESTORE_PROJECT_ID"
            )

        return cls(
            jwt_secret=env.get("JWT_SECRET", ""),
            token_lifetime_seconds=parse_duration(env.get("JWT_EXPIRES") or DEFAULT_TOKEN_LIFETIME),
            firebase_credentials=credentials_path,
            firestore_project_id=project_id,
            seed_owner_email=env.get("SEED_OWNER_EMAIL") or None,
            seed_owner_password=env.get("SEED_OWNER_PASSWORD") or None,
            smtp_host=env.get("SMTP_HOST") or "smtp.gmail.com",
            smtp_port=_int(env, "SMTP_PORT", 465),
            smtp_secure=_flag(env.get("SMTP_SECURE"), True),
            smtp_user=env.get("SMTP_USER") or None,
            smtp_password=env.get("SMTP_PASS") or None,
            mail_from=env.get("MAIL_FROM") or DEFAULT_MAIL_FROM,
            company_email=env.get("COMPANY_EMAIL") or None,
            company_name=env.get("COMPANY_NAME") or "Sørgulen Industriservice",
            base_url=env.get("BASE_URL", ""),
            admin_base_url=env.get("ADMIN_BASE_URL") or "/admin",
            allowed_origins=_origins(env.get("ALLOWED_ORIGINS") or env.get("NETLIFY_ORIGIN") or ""),
            trust_proxy=_flag(env.get("TRUST_PROXY"), True),
            rate_limit_enabled=_flag(env.get("RATE_LIMIT_ENABLED"), True),
            debug=_flag(env.get("DEBUG"), False),
            bcrypt_rounds=_int(env, "BCRYPT_ROUNDS", 12),
            notify_workers=_int(env, "NOTIFY_WORKERS", 4),
            security_log_dir=env.get("SECURITY_LOG_DIR") or None,
        )
