"""Seed the first administrator.

Runs at startup, before the app accepts traffic. If no administrator exists
the owner account is created from SEED_OWNER_EMAIL / SEED_OWNER_PASSWORD;
otherwise nothing happens.
"""

from __future__ import annotations

import logging
from typing import Optional

from .config import Settings
from .errors import ConfigurationError
from .models import Admin
from .security import hash_password
from .stores import AdminStore

logger = logging.getLogger("sorgulen_api.bootstrap")


def ensure_owner(admins: AdminStore, settings: Settings) -> Optional[Admin]:
    """Create the owner account if the credential store is empty.

    Returns the created administrator, or None if one already existed.

    Raises:
        ConfigurationError if the store is empty and no seed credentials
        are configured.
    """
    if admins.count() > 0:
        return None

    email = settings.seed_owner_email
    password = settings.seed_owner_password
    if not email or not password:
        raise ConfigurationError(
            "SEED_OWNER_EMAIL and SEED_OWNER_PASSWORD must be set to seed the initial admin"
        )

    admin = admins.create(email, hash_password(password, rounds=settings.bcrypt_rounds))
    logger.info(f"Seeded initial admin {admin.email}")
    return admin
