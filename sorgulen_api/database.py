"""Firestore client initialization."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore

from .config import Settings
from .errors import ConfigurationError

logger = logging.getLogger("sorgulen_api.database")

APP_NAME = "sorgulen-api"


def get_firebase_app(settings: Settings) -> firebase_admin.App:
    """Get or initialize the Firebase Admin app for this service."""
    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        pass

    options = {}
    if settings.firestore_project_id:
        options["projectId"] = settings.firestore_project_id

    if settings.firebase_credentials:
        if not Path(settings.firebase_credentials).exists():
            raise ConfigurationError(f"Service account not found: {settings.firebase_credentials}")
        cred = credentials.Certificate(settings.firebase_credentials)
    elif settings.firestore_project_id:
        cred = credentials.ApplicationDefault()
    else:
        raise ConfigurationError("Database is not configured")

    app = firebase_admin.initialize_app(cred, options or None, name=APP_NAME)
    logger.info("Firebase Admin initialized")
    return app


def get_firestore(settings: Settings, app: Optional[firebase_admin.App] = None):
    """Create a Firestore client bound to the service's Firebase app."""
    client = firestore.client(app or get_firebase_app(settings))
    logger.info("Firestore client initialized")
    return client
